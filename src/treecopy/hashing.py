"""
Content hashing used to verify copied files.
"""

import hashlib
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles
import xxhash

HASH_ALGORITHMS = ("xxh64be", "md5", "sha1", "sha256")

# Read size while hashing
HASH_CHUNK_SIZE = 1024 * 1024  # 1MB


class HashCalculator:
    """
    Incremental hash calculator supporting multiple algorithms.

    Parameters
    ----------
    algorithm : str, default="xxh64be"
        Hash algorithm to use. Supported: xxh64be, md5, sha1, sha256
    """

    def __init__(self, algorithm: str = "xxh64be"):
        self.algorithm = algorithm.lower()
        if self.algorithm == "xxh64be":
            self._hasher = xxhash.xxh64()
        elif self.algorithm in HASH_ALGORITHMS:
            self._hasher = hashlib.new(self.algorithm)
        else:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    def update(self, data: bytes) -> None:
        self._hasher.update(data)

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()

    @staticmethod
    async def hash_file_async(
        path: Path, algorithm: str = "xxh64be"
    ) -> AsyncIterator[tuple[int, str]]:
        """
        Hash a file asynchronously and yield progress.

        Parameters
        ----------
        path : Path
            Path to file to hash
        algorithm : str, default="xxh64be"
            Hash algorithm to use

        Yields
        ------
        tuple[int, str]
            (bytes_hashed, final_hash_or_empty_string)
            Progress updates yield empty string, final yield contains complete hash
        """
        hasher = HashCalculator(algorithm)
        total_bytes = 0

        async with aiofiles.open(path, "rb") as f:
            while chunk := await f.read(HASH_CHUNK_SIZE):
                hasher.update(chunk)
                total_bytes += len(chunk)
                yield (total_bytes, "")

        yield (total_bytes, hasher.hexdigest())

    @staticmethod
    async def digest(path: Path, algorithm: str = "xxh64be") -> str:
        """Hash a whole file and return the final digest."""
        final_hash = ""
        async for _, final_hash in HashCalculator.hash_file_async(path, algorithm):
            pass
        return final_hash
