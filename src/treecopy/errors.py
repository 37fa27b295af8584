"""
Error taxonomy for tree copy operations.

Every failure carries the operation that failed, the path it failed on and the
underlying cause, so consumers of the error stream can classify events without
parsing messages.
"""

from pathlib import Path


class TreeCopyError(Exception):
    """
    Base exception for tree copy failures.

    Parameters
    ----------
    path : Path | str
        Path of the entry (or source tree) the failure belongs to
    cause : BaseException | None, default=None
        Underlying error, also chained as ``__cause__``
    """

    op = "copy"

    def __init__(self, path, cause: BaseException | None = None):
        self.path = Path(path)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        super().__init__(self.path, cause)

    def __str__(self) -> str:
        if self.cause is None:
            return f"{self.op}: {self.path}"
        return f"{self.op}: {self.path}: {self.cause}"


class SourceNotFound(TreeCopyError):
    """Source path does not exist (size estimate only)."""

    op = "stat"

    def __init__(self, path, cause: BaseException | None = None, total: int = 0):
        super().__init__(path, cause)
        self.total = total


class WalkFailure(TreeCopyError):
    """Entry could not be visited while traversing a source tree."""

    op = "walk"

    def __init__(self, path, cause: BaseException | None = None, total: int = 0):
        super().__init__(path, cause)
        self.total = total


class RelativePathFailure(TreeCopyError):
    op = "relative"


class MkdirFailure(TreeCopyError):
    op = "mkdir"


class SymlinkFailure(TreeCopyError):
    op = "symlink"


class CopyFailure(TreeCopyError):
    op = "copy"


class HashMismatch(TreeCopyError):
    """Destination content differs from the source after copy."""

    op = "verify"

    def __init__(self, path, source_hash: str, dest_hash: str):
        super().__init__(path)
        self.source_hash = source_hash
        self.dest_hash = dest_hash

    def __str__(self) -> str:
        return f"{self.op}: {self.path}: hash mismatch: {self.dest_hash} != {self.source_hash}"
