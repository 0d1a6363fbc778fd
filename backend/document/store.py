"""Filesystem-backed blob bucket for generated document binaries.

Objects live under ``<STORAGE_ROOT>/<STORAGE_BUCKET>/`` and are addressed by a
relative key, ``documents/<user_id>/<filename>`` for generated documents.
"""

import logging
import os
import uuid
from pathlib import Path

from config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a blob cannot be written, read or removed."""


class ObjectNotFound(StorageError):
    pass


def object_key(user_id: uuid.UUID, filename: str) -> str:
    """Build the bucket key for a user's document."""
    return f"documents/{user_id}/{filename}"


def _bucket_root() -> Path:
    return Path(settings.storage_root) / settings.storage_bucket


def _resolve(key: str) -> Path:
    root = _bucket_root().resolve()
    path = (root / key).resolve()
    if root not in path.parents:
        raise StorageError(f"Invalid object key: {key}")
    return path


def put_object(key: str, data: bytes) -> str:
    """Write bytes under a new key. Overwriting an existing object is an error.

    Returns:
        The key, for storing on the metadata record.
    """
    path = _resolve(key)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "xb") as f:
            f.write(data)
    except FileExistsError:
        raise StorageError(f"Object already exists: {key}")
    except OSError as e:
        logger.error("Blob write failed for %s: %s", key, e)
        raise StorageError(f"Failed to store {key}: {e}")
    logger.info("Stored %d bytes at %s", len(data), key)
    return key


def get_object(key: str) -> bytes:
    """Read an object's bytes.

    Raises:
        ObjectNotFound: If no object exists under the key.
    """
    path = _resolve(key)
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        raise ObjectNotFound(f"Object not found: {key}")
    except OSError as e:
        logger.error("Blob read failed for %s: %s", key, e)
        raise StorageError(f"Failed to read {key}: {e}")


def delete_object(key: str) -> bool:
    """Remove an object. Returns False when it was already gone."""
    path = _resolve(key)
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error("Blob delete failed for %s: %s", key, e)
        raise StorageError(f"Failed to delete {key}: {e}")
    return True


def object_exists(key: str) -> bool:
    try:
        return _resolve(key).is_file()
    except StorageError:
        return False


def key_within(key: str, prefix: str) -> bool:
    """True when ``key`` resolves to a location inside ``prefix`` (``..`` segments included)."""
    try:
        path = _resolve(key)
        root = _resolve(prefix)
    except StorageError:
        return False
    return root in path.parents
