"""
Tree copy engine.

Copies whole source trees into a destination directory from a background
task. Progress (byte counts) and failures (TreeCopyError) are published on
two streams; a failure on one entry never stops the rest of the copy.
"""

import asyncio
import logging
import os
from collections.abc import Iterable
from pathlib import Path

import aiofiles.os

from .config import CopyConfig
from .copier import copy_file
from .errors import (
    CopyFailure,
    MkdirFailure,
    RelativePathFailure,
    SymlinkFailure,
    TreeCopyError,
    WalkFailure,
)
from .streams import CopyJob, EventStream
from .walk import TreeEntry, walk_tree


async def _lexists(path: Path) -> bool:
    try:
        await aiofiles.os.stat(path, follow_symlinks=False)
    except FileNotFoundError:
        return False
    return True


async def destination_root(source, dest_dir) -> Path:
    """
    Pick a destination path for a source tree that does not exist yet.

    ``dest_dir/<name>`` is used if free, otherwise the first free of
    ``<name>.~1~``, ``<name>.~2~``, ...

    Notes
    -----
    The check is not atomic; another process may create the chosen path
    before the copy writes to it.
    """
    dst = Path(dest_dir) / Path(os.path.abspath(source)).name
    if not await _lexists(dst):
        return dst

    i = 1
    while True:
        candidate = dst.with_name(f"{dst.name}.~{i}~")
        if not await _lexists(candidate):
            return candidate
        i += 1


class TreeCopyEngine:
    """
    Copies source trees into a destination directory.

    Parameters
    ----------
    sources : Iterable[str | os.PathLike]
        Source trees, copied one after another
    dest_dir : str | os.PathLike
        Directory receiving one copy per source
    config : CopyConfig | None, default=None
        Copy settings
    """

    def __init__(self, sources: Iterable, dest_dir, config: CopyConfig | None = None):
        self.sources = [Path(s) for s in sources]
        self.dest_dir = Path(dest_dir)
        self.config = config or CopyConfig()
        self.progress = EventStream(self.config.queue_size)
        self.errors = EventStream(self.config.queue_size)

    def start(self) -> CopyJob:
        """
        Schedule the copy on the running event loop.

        Returns
        -------
        CopyJob
            Streams to consume and the background task
        """
        task = asyncio.create_task(self.run())
        return CopyJob(progress=self.progress, errors=self.errors, task=task)

    async def run(self) -> None:
        """Copy every source tree, then close both streams."""
        try:
            for source in self.sources:
                await self._copy_tree(source)
        finally:
            await self.errors.close()
            await self.progress.close()

    # ------------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------------

    async def _error(self, err: TreeCopyError) -> None:
        logging.warning(str(err))
        await self.errors.put(err)

    async def _copy_tree(self, source: Path) -> None:
        try:
            root = await destination_root(source, self.dest_dir)
        except OSError as e:
            await self._error(MkdirFailure(self.dest_dir, e))
            return
        logging.info(f"copying {source} to {root}")

        async for item in walk_tree(source):
            if isinstance(item, WalkFailure):
                await self._error(item)
                continue

            # walk_tree joins from source; other walkers may not
            try:
                rel = item.path.relative_to(source)
            except ValueError as e:
                await self._error(RelativePathFailure(item.path, e))
                continue

            await self._copy_entry(item, root / rel)

        logging.info(f"done {source}")

    async def _copy_entry(self, entry: TreeEntry, dst: Path) -> None:
        if entry.is_dir:
            try:
                await aiofiles.os.makedirs(dst, mode=entry.mode, exist_ok=True)
            except OSError as e:
                await self._error(MkdirFailure(dst, e))
            await self.progress.put(entry.size)

        elif entry.is_symlink:
            try:
                target = await aiofiles.os.readlink(entry.path)
                await aiofiles.os.symlink(target, dst)
            except OSError as e:
                await self._error(SymlinkFailure(entry.path, e))
            await self.progress.put(entry.size)

        else:
            try:
                await copy_file(entry.path, dst, entry, self.progress, self.config)
            except CopyFailure as e:
                await self._error(e)


def copy_all(sources: Iterable, dest_dir, config: CopyConfig | None = None) -> CopyJob:
    """
    Start copying source trees into ``dest_dir`` in the background.

    Must be called from a running event loop. The copy is finished once both
    streams of the returned job are closed; the error stream closes first.

    Parameters
    ----------
    sources : Iterable[str | os.PathLike]
        Source trees
    dest_dir : str | os.PathLike
        Destination directory
    config : CopyConfig | None, default=None
        Copy settings

    Returns
    -------
    CopyJob
        Progress and error streams plus the background task
    """
    return TreeCopyEngine(sources, dest_dir, config).start()
