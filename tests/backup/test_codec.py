"""Tests for the archive codec."""

import gzip
import json
import pytest
from datetime import datetime, timezone

from cryptography.fernet import Fernet

from oculus_backup.backup.codec import FORMAT_VERSION, SALT_SIZE, SnapshotCodec
from oculus_backup.backup.errors import (
    AuthenticationFailed,
    EncodingError,
    MalformedPayload,
    ValidationError,
)
from oculus_backup.backup.models import CollectionSnapshot, SnapshotSet
from oculus_backup.schemas import Record


@pytest.fixture
def codec():
    return SnapshotCodec(kdf_iterations=1_000)


@pytest.fixture
def snapshot():
    return SnapshotSet.from_snapshots([
        CollectionSnapshot(name="students", records=[
            Record(id="s-2", fields={"name": "Ben", "year": 3}),
            Record(id="s-1", fields={"name": "Ana", "enrolledAt": datetime(2024, 2, 1, tzinfo=timezone.utc)}),
        ]),
        CollectionSnapshot(name="courses", records=[]),
        CollectionSnapshot(name="system", records=[
            Record(id="config", fields={"flags": {"maintenance": False}, "$meta": {"$ts": "literal"}}),
        ]),
    ])


def _encrypt_payload(codec, payload: bytes, password: str) -> bytes:
    """Build an archive around an arbitrary payload with the codec's own key derivation."""
    salt = b"s" * SALT_SIZE
    token = Fernet(codec._derive_key(password, salt)).encrypt(gzip.compress(payload))
    return salt + token


def test_round_trip(codec, snapshot):
    archive = codec.encode(snapshot, "secret1")
    restored = codec.decode(archive, "secret1")

    assert restored == snapshot
    assert restored.names() == ["students", "courses", "system"]
    assert [r.id for r in restored["students"].records] == ["s-2", "s-1"]


def test_empty_snapshot_round_trip(codec):
    empty = SnapshotSet()
    assert codec.decode(codec.encode(empty, "secret1"), "secret1") == empty


def test_archive_is_not_plaintext(codec, snapshot):
    archive = codec.encode(snapshot, "secret1")
    assert b"Ana" not in archive
    assert b"secret1" not in archive


def test_each_encode_uses_fresh_salt(codec, snapshot):
    first = codec.encode(snapshot, "secret1")
    second = codec.encode(snapshot, "secret1")
    assert first[:SALT_SIZE] != second[:SALT_SIZE]


def test_wrong_password(codec, snapshot):
    archive = codec.encode(snapshot, "secret1")

    with pytest.raises(AuthenticationFailed, match="Invalid password or corrupted backup file"):
        codec.decode(archive, "secret2")


def test_tampered_archive(codec, snapshot):
    archive = bytearray(codec.encode(snapshot, "secret1"))
    archive[-5] ^= 0x01

    with pytest.raises(ValidationError):
        codec.decode(bytes(archive), "secret1")


@pytest.mark.parametrize("archive", [b"", b"x" * SALT_SIZE, b"not an archive at all, just text"])
def test_garbage_archive(codec, archive):
    with pytest.raises(AuthenticationFailed):
        codec.decode(archive, "secret1")


def test_authenticated_but_malformed_payload(codec):
    archive = _encrypt_payload(codec, b'{"format_version": 1, "collections": "nope"}', "secret1")

    with pytest.raises(MalformedPayload):
        codec.decode(archive, "secret1")


def test_authenticated_non_json_payload(codec):
    archive = _encrypt_payload(codec, b"\xff\xfe not json", "secret1")

    with pytest.raises(MalformedPayload):
        codec.decode(archive, "secret1")


def test_unsupported_format_version(codec):
    payload = json.dumps({"format_version": 99, "collections": []}).encode()
    archive = _encrypt_payload(codec, payload, "secret1")

    with pytest.raises(MalformedPayload, match="Unsupported archive format version"):
        codec.decode(archive, "secret1")


def test_duplicate_collection_is_malformed(codec):
    payload = json.dumps({
        "format_version": FORMAT_VERSION,
        "collections": [{"name": "users", "records": []}, {"name": "users", "records": []}],
    }).encode()

    with pytest.raises(MalformedPayload):
        codec.deserialize(payload)


def test_record_without_id_is_malformed(codec):
    payload = json.dumps({
        "format_version": FORMAT_VERSION,
        "collections": [{"name": "users", "records": [{"fields": {}}]}],
    }).encode()

    with pytest.raises(MalformedPayload):
        codec.deserialize(payload)


def test_serialize_is_canonical(codec, snapshot):
    payload = codec.serialize(snapshot)
    document = json.loads(payload)

    assert document["format_version"] == FORMAT_VERSION
    assert [c["name"] for c in document["collections"]] == ["students", "courses", "system"]
    assert document["collections"][0]["records"][1]["fields"]["enrolledAt"] == {
        "$ts": "2024-02-01T00:00:00+00:00"
    }
    assert codec.serialize(snapshot) == payload


def test_unserializable_value(codec):
    snapshot = SnapshotSet.from_snapshots([
        CollectionSnapshot(name="users", records=[Record(id="u-1", fields={"blob": object()})]),
    ])

    with pytest.raises(EncodingError):
        codec.encode(snapshot, "secret1")


def test_nan_is_rejected(codec):
    snapshot = SnapshotSet.from_snapshots([
        CollectionSnapshot(name="users", records=[Record(id="u-1", fields={"score": float("nan")})]),
    ])

    with pytest.raises(EncodingError):
        codec.serialize(snapshot)


def test_lone_surrogate_is_encoding_error(codec):
    snapshot = SnapshotSet.from_snapshots([
        CollectionSnapshot(name="users", records=[Record(id="u-1", fields={"name": "\ud800"})]),
    ])

    with pytest.raises(EncodingError):
        codec.encode(snapshot, "secret1")


def test_invalid_iterations():
    with pytest.raises(ValueError):
        SnapshotCodec(kdf_iterations=0)
