"""
Content hashing used as the tie-breaker after timestamp comparison.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from _hashlib import HASH

CHUNK_SIZE = 1024 * 1024


def new_digest() -> HASH:
    """Fresh SHA-256 state for callback-driven streaming."""
    return hashlib.sha256()


def digest_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> bytes:
    """SHA-256 of everything left in `stream`, read in chunks."""
    digest = new_digest()
    while chunk := stream.read(chunk_size):
        digest.update(chunk)
    return digest.digest()


def digest_file(path: Path, chunk_size: int = CHUNK_SIZE) -> bytes:
    with path.open("rb") as handle:
        return digest_stream(handle, chunk_size)
