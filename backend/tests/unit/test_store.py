"""Tests for document.store: filesystem blob bucket."""

import uuid

import pytest

from document.store import (
    ObjectNotFound,
    StorageError,
    delete_object,
    get_object,
    key_within,
    object_exists,
    object_key,
    put_object,
)


def test_object_key_layout():
    uid = uuid.UUID("12345678-1234-5678-1234-567812345678")
    assert object_key(uid, "nda_abcd1234.pdf") == f"documents/{uid}/nda_abcd1234.pdf"


def test_put_get_delete(storage_root):
    key = put_object("documents/u1/a.pdf", b"%PDF-1.4 data")
    assert (storage_root / "documents" / key).read_bytes() == b"%PDF-1.4 data"
    assert get_object(key) == b"%PDF-1.4 data"
    assert delete_object(key) is True
    assert delete_object(key) is False


def test_put_refuses_overwrite():
    put_object("documents/u1/a.pdf", b"one")
    with pytest.raises(StorageError, match="already exists"):
        put_object("documents/u1/a.pdf", b"two")
    assert get_object("documents/u1/a.pdf") == b"one"


def test_get_missing_raises_not_found():
    with pytest.raises(ObjectNotFound):
        get_object("documents/u1/missing.pdf")


def test_rejects_path_traversal():
    with pytest.raises(StorageError, match="Invalid object key"):
        put_object("../outside.pdf", b"x")


def test_object_exists():
    put_object("documents/u1/a.pdf", b"x")
    assert object_exists("documents/u1/a.pdf") is True
    assert object_exists("documents/u1/b.pdf") is False
    assert object_exists("documents/u1") is False
    assert object_exists("../outside.pdf") is False


def test_key_within_resolves_dot_segments():
    assert key_within("documents/u1/a.pdf", "documents/u1/")
    assert not key_within("documents/u1/../u2/a.pdf", "documents/u1/")
    assert not key_within("documents/u10/a.pdf", "documents/u1/")
    assert not key_within("documents/u1", "documents/u1/")
    assert not key_within("../../etc/passwd", "documents/u1/")
