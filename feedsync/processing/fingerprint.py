"""Content fingerprints of locally mirrored feeds."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


def fingerprint_file(path: Path) -> str | None:
    """Return the SHA-256 hex digest of a file, or None if it does not exist."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(block)
    except FileNotFoundError:
        return None
    return digest.hexdigest()


def local_size(path: Path) -> int | None:
    """Return the size of a file in bytes, or None if it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None
