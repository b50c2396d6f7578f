"""Storage module with lazy loading support."""

from typing import TYPE_CHECKING

# Always import factory and registration (lightweight)
from .factory import StorageFactory, _register_backends

# Type checking imports (no runtime cost)
if TYPE_CHECKING:
    from .doc_memory import MemoryDocumentStorage
    from .doc_json import JsonDocumentStorage
    from .doc_redis import RedisDocumentStorage


def __getattr__(name):
    """Lazy import storage backends."""
    if name == "MemoryDocumentStorage":
        from .doc_memory import MemoryDocumentStorage
        return MemoryDocumentStorage
    elif name == "JsonDocumentStorage":
        from .doc_json import JsonDocumentStorage
        return JsonDocumentStorage
    elif name == "RedisDocumentStorage":
        from .doc_redis import RedisDocumentStorage
        return RedisDocumentStorage
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "StorageFactory",
    "_register_backends",
    "MemoryDocumentStorage",
    "JsonDocumentStorage",
    "RedisDocumentStorage",
]
