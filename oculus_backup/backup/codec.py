"""Archive codec: canonical serialization plus password-bound authenticated encryption.

Archive layout is ``salt (16 bytes) || Fernet token``. The key is derived from
the password with PBKDF2-HMAC-SHA256; Fernet authenticates the ciphertext, so a
wrong password or any tampering fails the HMAC check instead of yielding garbage.
Inside the token is a gzip-compressed compact JSON document.
"""

import base64
import gzip
import json
import os
import zlib
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError as PydanticValidationError

from .._utils import logger, encode_value, decode_value
from ..schemas import Record
from .errors import AuthenticationFailed, EncodingError, MalformedPayload
from .models import CollectionSnapshot, SnapshotSet

FORMAT_VERSION = 1
SALT_SIZE = 16
DEFAULT_KDF_ITERATIONS = 390_000


class SnapshotCodec:
    """Encode snapshot sets into archives and back."""

    def __init__(self, kdf_iterations: int = DEFAULT_KDF_ITERATIONS):
        if kdf_iterations <= 0:
            raise ValueError(f"kdf_iterations must be positive, got {kdf_iterations}")
        self.kdf_iterations = kdf_iterations

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.kdf_iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))

    def serialize(self, snapshot: SnapshotSet) -> bytes:
        """Canonical byte form: collection order and capture order preserved."""
        try:
            document = {
                "format_version": FORMAT_VERSION,
                "collections": [
                    {
                        "name": collection.name,
                        "records": [
                            {"id": record.id, "fields": encode_value(record.fields)}
                            for record in collection.records
                        ],
                    }
                    for collection in snapshot.collections.values()
                ],
            }
            payload = json.dumps(document, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
            return payload.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Snapshot cannot be serialized: {e}") from e

    def deserialize(self, payload: bytes) -> SnapshotSet:
        try:
            document = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayload(f"Archive payload is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise MalformedPayload("Archive payload must be a JSON object")
        version = document.get("format_version")
        if version != FORMAT_VERSION:
            raise MalformedPayload(f"Unsupported archive format version: {version!r}")

        collections = document.get("collections")
        if not isinstance(collections, list):
            raise MalformedPayload("Archive payload has no collection list")

        try:
            snapshots = [self._parse_collection(entry) for entry in collections]
            return SnapshotSet.from_snapshots(snapshots)
        except (PydanticValidationError, ValueError, TypeError, KeyError) as e:
            raise MalformedPayload(f"Archive payload has invalid structure: {e}") from e

    def _parse_collection(self, entry: Any) -> CollectionSnapshot:
        if not isinstance(entry, dict):
            raise TypeError("collection entry must be an object")
        records = entry["records"]
        if not isinstance(records, list):
            raise TypeError(f"records of {entry.get('name')!r} must be a list")
        parsed = []
        for raw in records:
            if not isinstance(raw, dict) or not isinstance(raw.get("fields"), dict):
                raise TypeError(f"malformed record in {entry.get('name')!r}")
            parsed.append(Record(id=raw["id"], fields=decode_value(raw["fields"])))
        return CollectionSnapshot(name=entry["name"], records=parsed)

    def encode(self, snapshot: SnapshotSet, password: str) -> bytes:
        """Serialize, compress and encrypt a snapshot under a password."""
        plaintext = gzip.compress(self.serialize(snapshot), mtime=0)
        salt = os.urandom(SALT_SIZE)
        token = Fernet(self._derive_key(password, salt)).encrypt(plaintext)
        logger.debug(f"Encoded snapshot: {len(plaintext):,} compressed bytes, {len(token):,} token bytes")
        return salt + token

    def decode(self, archive: bytes, password: str) -> SnapshotSet:
        """Reverse encode; wrong passwords fail with AuthenticationFailed."""
        if len(archive) <= SALT_SIZE:
            raise AuthenticationFailed("Invalid password or corrupted backup file")

        salt, token = archive[:SALT_SIZE], archive[SALT_SIZE:]
        try:
            plaintext = Fernet(self._derive_key(password, salt)).decrypt(token)
        except InvalidToken:
            raise AuthenticationFailed("Invalid password or corrupted backup file") from None

        try:
            payload = gzip.decompress(plaintext)
        except (OSError, EOFError, zlib.error) as e:
            raise MalformedPayload(f"Archive payload is not compressed data: {e}") from e

        return self.deserialize(payload)
