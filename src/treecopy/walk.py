"""
Tree traversal and the size pre-scan.
"""

import os
import stat
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path

import aiofiles.os

from .errors import SourceNotFound, WalkFailure


@dataclass(frozen=True)
class TreeEntry:
    """
    One node visited during a walk.

    Attributes
    ----------
    path : Path
        Path of the entry (source root joined with its relative path)
    stat : os.stat_result
        Metadata from lstat; symlinks are never followed
    """

    path: Path
    stat: os.stat_result

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.stat.st_mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.stat.st_mode)

    @property
    def is_file(self) -> bool:
        """Regular file; FIFOs, sockets and devices are not."""
        return stat.S_ISREG(self.stat.st_mode)

    @property
    def size(self) -> int:
        return self.stat.st_size

    @property
    def mode(self) -> int:
        """Permission bits of the entry."""
        return stat.S_IMODE(self.stat.st_mode)


async def _lstat(path: Path) -> os.stat_result:
    return await aiofiles.os.stat(path, follow_symlinks=False)


async def walk_tree(root) -> AsyncIterator[TreeEntry | WalkFailure]:
    """
    Walk a tree depth-first, parents before children, siblings in lexical order.

    Errors do not stop the traversal; they are yielded in place of the entry
    that could not be visited. A directory whose listing fails is reported
    only as a WalkFailure.

    Parameters
    ----------
    root : str | os.PathLike
        Tree root; may be a file or a symlink

    Yields
    ------
    TreeEntry | WalkFailure
    """
    root = Path(root)
    try:
        st = await _lstat(root)
    except OSError as e:
        yield WalkFailure(root, e)
        return

    async for item in _walk(root, st):
        yield item


async def _walk(path: Path, st: os.stat_result) -> AsyncIterator[TreeEntry | WalkFailure]:
    entry = TreeEntry(path, st)
    if not entry.is_dir:
        yield entry
        return

    try:
        names = sorted(await aiofiles.os.listdir(path))
    except OSError as e:
        yield WalkFailure(path, e)
        return

    yield entry

    for name in names:
        child = path / name
        try:
            child_st = await _lstat(child)
        except OSError as e:
            yield WalkFailure(child, e)
            continue
        async for item in _walk(child, child_st):
            yield item


async def estimate_size(sources: Iterable) -> int:
    """
    Total size of every entry under the given sources.

    Directory and symlink entries contribute their own st_size, as reported
    by lstat, alongside regular files.

    Parameters
    ----------
    sources : Iterable[str | os.PathLike]
        Source trees, checked and walked in order

    Returns
    -------
    int
        Total bytes

    Raises
    ------
    SourceNotFound
        If a source does not exist; ``total`` holds the bytes summed so far
    WalkFailure
        On the first entry that cannot be visited; ``total`` holds the
        partial sum
    """
    total = 0

    for source in sources:
        source = Path(source)
        try:
            await _lstat(source)
        except FileNotFoundError as e:
            raise SourceNotFound(source, e, total=total) from e
        except OSError:
            # Reported by the walk below
            pass

        async for item in walk_tree(source):
            if isinstance(item, WalkFailure):
                item.total = total
                raise item
            total += item.size

    return total
