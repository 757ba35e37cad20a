"""Provides git blob hashing helpers used as content hashes and commit tokens."""

import hashlib
from typing import Union

from common.blobs import Blob


def to_bytes(data: Union[str, bytes, Blob]) -> bytes:
    """
    Normalize text, bytes or a Blob to the bytes git would store.

    Args:
        data: Content to normalize

    Returns:
        Raw bytes (UTF-8 for text)
    """
    if isinstance(data, Blob):
        return data.data
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def compute_git_hash(data: Union[str, bytes, Blob]) -> str:
    """
    Compute the git blob SHA-1 for given content.

    Args:
        data: Text, bytes or Blob to hash

    Returns:
        Hexadecimal SHA-1 of `blob <size>\\0<content>`
    """
    content = to_bytes(data)
    hasher = hashlib.sha1()
    hasher.update(f"blob {len(content)}\0".encode("ascii"))
    hasher.update(content)
    return hasher.hexdigest()


class IncrementalGitHasher:
    """
    Compute a git blob SHA-1 for a file read in pieces. The total size must be known
    up front since it is part of the blob header.

    Usage:
        hasher = IncrementalGitHasher(size)
        for piece in pieces:
            hasher.update(piece)
        sha = hasher.finalize()
    """

    def __init__(self, size: int):
        self._size = size
        self._received = 0
        self._hasher = hashlib.sha1(f"blob {size}\0".encode("ascii"))
        self._finalized = False

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._received += len(data)
        self._hasher.update(data)

    def finalize(self) -> str:
        if self._received != self._size:
            raise ValueError(f"Expected {self._size} bytes, received {self._received}")
        self._finalized = True
        return self._hasher.hexdigest()
