"""
treecopy: recursive copy of files, directories and symlinks.

This package copies whole source trees into a destination directory from a
background task, with conflict-safe destination naming, a kernel-side fast
copy that falls back to a buffered loop, and asynchronous progress and error
streams.
"""

from .config import CopyConfig, CopyStrategy
from .copier import copy_file
from .engine import TreeCopyEngine, copy_all, destination_root
from .errors import (
    CopyFailure,
    HashMismatch,
    MkdirFailure,
    RelativePathFailure,
    SourceNotFound,
    SymlinkFailure,
    TreeCopyError,
    WalkFailure,
)
from .hashing import HashCalculator
from .main import CLIProcessor, main
from .streams import CopyJob, EventStream
from .walk import TreeEntry, estimate_size, walk_tree

__version__ = "1.0.0"
__author__ = "thomjiji"
__description__ = "Recursive tree copy with streamed progress and per-entry errors"

__all__ = [
    "CLIProcessor",
    "CopyConfig",
    "CopyFailure",
    "CopyJob",
    "CopyStrategy",
    "EventStream",
    "HashCalculator",
    "HashMismatch",
    "MkdirFailure",
    "RelativePathFailure",
    "SourceNotFound",
    "SymlinkFailure",
    "TreeCopyEngine",
    "TreeCopyError",
    "TreeEntry",
    "WalkFailure",
    "copy_all",
    "copy_file",
    "destination_root",
    "estimate_size",
    "main",
    "walk_tree",
]
