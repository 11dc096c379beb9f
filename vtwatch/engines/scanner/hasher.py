"""Streaming SHA-256 content digests."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

from vtwatch.exceptions import ScanIOError

CHUNK_SIZE = 64 * 1024


def hash_file(path: str | Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Return the lowercase hex SHA-256 of *path*'s full contents.

    The file is read in *chunk_size* pieces so memory stays flat for large
    binaries. Any OS-level failure is re-raised as :class:`ScanIOError`.
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            while chunk := fh.read(chunk_size):
                digest.update(chunk)
    except OSError as exc:
        raise ScanIOError(f"failed to read {path}: {exc}") from exc
    return digest.hexdigest()


async def hash_file_async(path: str | Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Run :func:`hash_file` in a worker thread."""
    return await asyncio.to_thread(hash_file, path, chunk_size)
