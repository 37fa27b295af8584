"""
Configuration for tree copy operations.
"""

import argparse
from dataclasses import dataclass
from enum import Enum

from .hashing import HASH_ALGORITHMS
from .streams import QUEUE_SIZE

# Buffer for the read/write fallback loop
BUFFER_SIZE = 4096

# Max bytes per kernel copy call on the fast path
FAST_CHUNK_SIZE = 8 * 1024 * 1024  # 8MB


class CopyStrategy(Enum):
    """
    How regular files are transferred.

    Attributes
    ----------
    AUTO : str
        Kernel-side copy when supported, buffered loop otherwise
    FAST : str
        Kernel-side copy only; fails when unsupported
    BUFFERED : str
        Buffered read/write loop only
    """

    AUTO = "auto"
    FAST = "fast"
    BUFFERED = "buffered"


@dataclass
class CopyConfig:
    """Configuration for tree copy operations."""

    buffer_size: int = BUFFER_SIZE
    fast_chunk_size: int = FAST_CHUNK_SIZE
    strategy: CopyStrategy = CopyStrategy.AUTO
    queue_size: int = QUEUE_SIZE
    verify: bool = False
    hash_algorithm: str = "xxh64be"
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration."""
        for name in ("buffer_size", "fast_chunk_size", "queue_size"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.hash_algorithm.lower() not in HASH_ALGORITHMS:
            raise ValueError(f"Invalid hash algorithm: {self.hash_algorithm}")
        self.hash_algorithm = self.hash_algorithm.lower()

        if not isinstance(self.strategy, CopyStrategy):
            self.strategy = CopyStrategy(self.strategy)

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "CopyConfig":
        """Create config from command-line arguments."""
        return cls(
            buffer_size=args.buffer_size,
            strategy=CopyStrategy(args.strategy),
            verify=args.verify,
            hash_algorithm=args.hash_algorithm,
            verbose=args.verbose,
        )
