import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Sequence, TypeVar

logger = logging.getLogger("oculus-backup")

T = TypeVar("T")

TIMESTAMP_TAG = "$ts"
MAPPING_TAG = "$map"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


def encode_value(value: Any) -> Any:
    """Convert a document field value into a JSON-safe structure.

    Timestamps become {"$ts": iso}. Mappings holding a key that starts with "$"
    are wrapped in {"$map": ...} so the tags stay unambiguous.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return {TIMESTAMP_TAG: value.isoformat()}
    if isinstance(value, dict):
        encoded = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"mapping keys must be strings, got {type(key).__name__}")
            encoded[key] = encode_value(item)
        if any(key.startswith("$") for key in encoded):
            return {MAPPING_TAG: encoded}
        return encoded
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    raise TypeError(f"unsupported field value type: {type(value).__name__}")


def decode_value(value: Any) -> Any:
    """Inverse of encode_value."""
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    if isinstance(value, dict):
        if len(value) == 1 and TIMESTAMP_TAG in value:
            raw = value[TIMESTAMP_TAG]
            if not isinstance(raw, str):
                raise ValueError(f"timestamp tag must hold a string, got {type(raw).__name__}")
            return datetime.fromisoformat(raw)
        if len(value) == 1 and MAPPING_TAG in value:
            inner = value[MAPPING_TAG]
            if not isinstance(inner, dict):
                raise ValueError("mapping tag must hold an object")
            return {key: decode_value(item) for key, item in inner.items()}
        return {key: decode_value(item) for key, item in value.items()}
    return value


def write_json(json_obj: Any, file_name: str) -> None:
    """Write JSON atomically: temp file in the same directory, then rename."""
    path = Path(file_name)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(json_obj, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def load_json(file_name: str) -> Any:
    if not os.path.exists(file_name):
        return None
    with open(file_name, encoding="utf-8") as f:
        return json.load(f)
