"""
Single-file copy: kernel-side fast path with a buffered fallback.

The fast path hands the transfer to the kernel (copy_file_range, which can
clone blocks on filesystems that support it, then sendfile). When neither is
usable for a pair of files the bytes are moved through a small user-space
buffer instead.
"""

import asyncio
import contextlib
import errno
import logging
import os
from pathlib import Path

import aiofiles
import aiofiles.os

from .config import CopyConfig, CopyStrategy
from .errors import CopyFailure, HashMismatch
from .hashing import HashCalculator
from .streams import EventStream
from .walk import TreeEntry

# Errors meaning the kernel method cannot handle this pair of files
_UNSUPPORTED_ERRNOS = frozenset(
    getattr(errno, name)
    for name in ("ENOSYS", "EXDEV", "EINVAL", "ENOTSUP", "EOPNOTSUPP", "EBADF", "ENOTSOCK")
    if hasattr(errno, name)
)


class FastPathUnsupported(Exception):
    """Kernel copy method not usable for these files."""


def _sendfile(infd: int, outfd: int, count: int) -> int:
    return os.sendfile(outfd, infd, None, count)


def kernel_methods() -> list[tuple[str, object]]:
    """
    Kernel copy methods available on this platform, in order of preference.

    copy_file_range is driven by the destination and goes first; sendfile is
    driven by the source.
    """
    methods = []
    if hasattr(os, "copy_file_range"):
        methods.append(("copy_file_range", os.copy_file_range))
    if hasattr(os, "sendfile"):
        methods.append(("sendfile", _sendfile))
    return methods


def _kernel_copy(method, infd: int, outfd: int, chunk_size: int, expected: int) -> int:
    written = 0
    while True:
        try:
            n = method(infd, outfd, chunk_size)
        except OSError as e:
            if written == 0 and e.errno in _UNSUPPORTED_ERRNOS:
                raise FastPathUnsupported(e) from e
            raise
        if n == 0:
            # Pseudo files report size but copy nothing
            if written == 0 and expected > 0:
                raise FastPathUnsupported("no data transferred")
            return written
        written += n


_run_kernel_copy = aiofiles.os.wrap(_kernel_copy)
_chmod = aiofiles.os.wrap(os.chmod)


async def _fast_copy(reader, writer, expected: int, chunk_size: int) -> int | None:
    """
    Try each kernel method in turn.

    Returns
    -------
    int | None
        Bytes transferred, or None when no method is supported
    """
    for name, method in kernel_methods():
        try:
            written = await _run_kernel_copy(
                method, reader.fileno(), writer.fileno(), chunk_size, expected
            )
        except FastPathUnsupported as e:
            logging.debug(f"{name} unsupported: {e}")
            continue
        logging.debug(f"Picked {name}")
        return written
    return None


async def _buffered_copy(reader, writer, progress: EventStream, buffer_size: int) -> int:
    logging.debug("Picked buffered loop copy")
    written = 0
    while chunk := await reader.read(buffer_size):
        await writer.write(chunk)
        written += len(chunk)
        await progress.put(len(chunk))
    return written


async def _transfer(
    reader, writer, expected: int, progress: EventStream, config: CopyConfig
) -> int:
    if config.strategy != CopyStrategy.BUFFERED:
        written = await _fast_copy(reader, writer, expected, config.fast_chunk_size)
        if written is not None:
            await progress.put(written)
            return written
        if config.strategy == CopyStrategy.FAST:
            raise OSError(errno.ENOTSUP, "No kernel copy method supported")

    return await _buffered_copy(reader, writer, progress, config.buffer_size)


async def _verify(src: Path, dst: Path, algorithm: str) -> None:
    source_hash = await HashCalculator.digest(src, algorithm)
    dest_hash = await HashCalculator.digest(dst, algorithm)
    if source_hash != dest_hash:
        raise HashMismatch(dst, source_hash, dest_hash)


def _discard(dst: Path) -> None:
    with contextlib.suppress(OSError):
        dst.unlink()


async def copy_file(
    src,
    dst,
    entry: TreeEntry,
    progress: EventStream,
    config: CopyConfig | None = None,
) -> int:
    """
    Copy one regular file and give it the source's permission bits.

    Parameters
    ----------
    src : str | os.PathLike
        Source file
    dst : str | os.PathLike
        Destination file; overwritten if it exists
    entry : TreeEntry
        Source metadata (mode bits and expected size)
    progress : EventStream
        Receives one event for a kernel copy, or one per chunk for the
        buffered loop
    config : CopyConfig | None, default=None
        Strategy, buffer sizes and verification settings

    Returns
    -------
    int
        Bytes written

    Raises
    ------
    CopyFailure
        If the source is not a regular file, or on any failure; the
        destination is closed and, if it was opened, removed before raising
    """
    config = config or CopyConfig()
    src, dst = Path(src), Path(dst)
    opened = False

    # Opening a FIFO or device would block or never reach EOF
    if not entry.is_file:
        raise CopyFailure(src, OSError(errno.EINVAL, "Not a regular file"))

    try:
        async with aiofiles.open(src, "rb") as reader:
            async with aiofiles.open(dst, "wb") as writer:
                opened = True
                written = await _transfer(reader, writer, entry.size, progress, config)

        if config.verify:
            await _verify(src, dst, config.hash_algorithm)

        await _chmod(dst, entry.mode)

    except asyncio.CancelledError:
        if opened:
            _discard(dst)
        raise
    except Exception as e:
        if opened:
            _discard(dst)
        raise CopyFailure(src, e) from e

    return written
