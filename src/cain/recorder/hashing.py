"""Content hashing used to name stored resources."""

from __future__ import annotations

import hashlib
from pathlib import Path

from cain.errors import IOFailureError

_CHUNK_SIZE = 1024 * 1024


def hash_bytes(data: bytes) -> str:
    """Return the hex MD5 digest of ``data``.

    The digest only provides stable file names; it is not a security measure.
    """
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def hash_file(path: Path) -> str:
    """Return the hex MD5 digest of the file contents at ``path``.

    Raises:
        IOFailureError: If the file cannot be read.
    """
    digest = hashlib.md5(usedforsecurity=False)
    try:
        with path.open("rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        raise IOFailureError(f"Failed to read file at {path}: {exc}") from exc
    return digest.hexdigest()


__all__ = ["hash_bytes", "hash_file"]
