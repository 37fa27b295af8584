#!/usr/bin/env python3
"""
Tests for single-file copy strategies and content hashing.
"""

import asyncio
import errno
import hashlib
import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import treecopy.copier as copier
from treecopy import (
    CopyConfig,
    CopyFailure,
    CopyStrategy,
    EventStream,
    HashCalculator,
    HashMismatch,
    TreeEntry,
    copy_file,
)


# ============================================================================
# Helpers
# ============================================================================


def entry_for(path: Path) -> TreeEntry:
    return TreeEntry(path, os.lstat(path))


async def copy_and_collect(src: Path, dst: Path, config: CopyConfig):
    progress = EventStream()
    written = await copy_file(src, dst, entry_for(src), progress, config)
    await progress.close()
    return written, await progress.drain()


def unsupported(infd, outfd, count):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def file_env():
    """Create a 10000-byte source file."""
    test_dir = tempfile.mkdtemp()
    test_path = Path(test_dir)

    source = test_path / "source.dat"
    data = os.urandom(10000)
    source.write_bytes(data)

    yield test_path, source, data
    shutil.rmtree(test_dir)


# ============================================================================
# Buffered Path Tests
# ============================================================================


@pytest.mark.asyncio
async def test_buffered_chunks_sum_to_size(file_env) -> None:
    """Test one progress event per 4096-byte chunk."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    written, events = await copy_and_collect(
        source, dest, CopyConfig(strategy=CopyStrategy.BUFFERED)
    )

    assert written == 10000
    assert events == [4096, 4096, 1808]
    assert dest.read_bytes() == data


@pytest.mark.asyncio
async def test_buffered_custom_buffer_size(file_env) -> None:
    """Test that the buffer size sets the chunk size."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    _, events = await copy_and_collect(
        source, dest, CopyConfig(strategy=CopyStrategy.BUFFERED, buffer_size=3000)
    )

    assert events == [3000, 3000, 3000, 1000]
    assert sum(events) == len(data)


@pytest.mark.asyncio
async def test_buffered_empty_file(file_env) -> None:
    """Test that an empty file yields no chunk events."""
    test_path, source, data = file_env
    empty = test_path / "empty"
    empty.touch()
    dest = test_path / "dest"

    written, events = await copy_and_collect(
        empty, dest, CopyConfig(strategy=CopyStrategy.BUFFERED)
    )

    assert written == 0
    assert events == []
    assert dest.exists()


# ============================================================================
# Fast Path Tests
# ============================================================================


@pytest.mark.skipif(not copier.kernel_methods(), reason="no kernel copy method")
@pytest.mark.asyncio
async def test_fast_path_single_event(file_env) -> None:
    """Test that a kernel copy reports one event equal to the file size."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    written, events = await copy_and_collect(
        source, dest, CopyConfig(strategy=CopyStrategy.FAST)
    )

    assert written == len(data)
    assert events == [len(data)]
    assert dest.read_bytes() == data


@pytest.mark.asyncio
async def test_auto_prefers_destination_method(file_env, monkeypatch) -> None:
    """Test that the first supported method in preference order is used."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    calls = []

    def pull(infd, outfd, count):
        calls.append("pull")
        chunk = os.read(infd, count)
        return os.write(outfd, chunk)

    def push(infd, outfd, count):
        calls.append("push")
        return 0

    monkeypatch.setattr(copier, "kernel_methods", lambda: [("pull", pull), ("push", push)])

    _, events = await copy_and_collect(source, dest, CopyConfig())

    assert set(calls) == {"pull"}
    assert events == [len(data)]
    assert dest.read_bytes() == data


@pytest.mark.asyncio
async def test_auto_falls_back_when_unsupported(file_env, monkeypatch) -> None:
    """Test that AUTO drops to the buffered loop when no method works."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    monkeypatch.setattr(copier, "kernel_methods", lambda: [("fake", unsupported)])

    _, events = await copy_and_collect(source, dest, CopyConfig())

    assert events == [4096, 4096, 1808]
    assert dest.read_bytes() == data


@pytest.mark.asyncio
async def test_auto_falls_back_without_methods(file_env, monkeypatch) -> None:
    """Test the buffered loop on platforms without kernel copy."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    monkeypatch.setattr(copier, "kernel_methods", lambda: [])

    _, events = await copy_and_collect(source, dest, CopyConfig())

    assert sum(events) == len(data)
    assert len(events) == 3


@pytest.mark.asyncio
async def test_force_fast_fails_when_unsupported(file_env, monkeypatch) -> None:
    """Test that FAST never falls back."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    monkeypatch.setattr(copier, "kernel_methods", lambda: [("fake", unsupported)])

    with pytest.raises(CopyFailure) as exc_info:
        await copy_and_collect(source, dest, CopyConfig(strategy=CopyStrategy.FAST))

    assert exc_info.value.cause.errno == errno.ENOTSUP
    assert not dest.exists()


@pytest.mark.asyncio
async def test_buffered_never_calls_kernel(file_env, monkeypatch) -> None:
    """Test that BUFFERED skips the fast path entirely."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    def forbidden():
        raise AssertionError("kernel copy should not be attempted")

    monkeypatch.setattr(copier, "kernel_methods", forbidden)

    _, events = await copy_and_collect(
        source, dest, CopyConfig(strategy=CopyStrategy.BUFFERED)
    )

    assert sum(events) == len(data)


# ============================================================================
# Failure Cleanup Tests
# ============================================================================


@pytest.mark.asyncio
async def test_midway_kernel_failure_removes_destination(file_env, monkeypatch) -> None:
    """Test that a failure after partial transfer removes the destination."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    state = {"calls": 0}

    def flaky(infd, outfd, count):
        state["calls"] += 1
        if state["calls"] == 1:
            return os.write(outfd, os.read(infd, 100))
        raise OSError(errno.EIO, "Input/output error")

    monkeypatch.setattr(copier, "kernel_methods", lambda: [("flaky", flaky)])
    progress = EventStream()

    with pytest.raises(CopyFailure) as exc_info:
        await copy_file(source, dest, entry_for(source), progress, CopyConfig())

    assert exc_info.value.cause.errno == errno.EIO
    assert exc_info.value.path == source
    assert not dest.exists()


@pytest.mark.asyncio
async def test_buffered_write_failure_removes_destination(file_env, monkeypatch) -> None:
    """Test that a write error in the buffered loop gets the same cleanup."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    async def failing_loop(reader, writer, progress, buffer_size):
        await writer.write(await reader.read(buffer_size))
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(copier, "_buffered_copy", failing_loop)

    with pytest.raises(CopyFailure) as exc_info:
        await copy_and_collect(source, dest, CopyConfig(strategy=CopyStrategy.BUFFERED))

    assert exc_info.value.cause.errno == errno.ENOSPC
    assert not dest.exists()


@pytest.mark.asyncio
async def test_missing_source_leaves_existing_destination(file_env) -> None:
    """Test that a destination is only removed if the copy opened it."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"
    dest.write_text("keep me")
    missing = test_path / "missing"

    with pytest.raises(CopyFailure) as exc_info:
        await copy_file(missing, dest, entry_for(source), EventStream(), CopyConfig())

    assert isinstance(exc_info.value.cause, FileNotFoundError)
    assert dest.read_text() == "keep me"


@pytest.mark.asyncio
async def test_missing_destination_parent(file_env) -> None:
    """Test failure to create the destination."""
    test_path, source, data = file_env
    dest = test_path / "no" / "such" / "dir" / "dest.dat"

    with pytest.raises(CopyFailure) as exc_info:
        await copy_and_collect(source, dest, CopyConfig())

    assert isinstance(exc_info.value.cause, FileNotFoundError)
    assert str(exc_info.value).startswith("copy: ")


@pytest.mark.asyncio
async def test_mode_is_copied(file_env) -> None:
    """Test that the destination gets the source permission bits."""
    test_path, source, data = file_env
    os.chmod(source, 0o600)
    dest = test_path / "dest.dat"

    await copy_and_collect(source, dest, CopyConfig())

    assert dest.stat().st_mode & 0o777 == 0o600


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
@pytest.mark.asyncio
async def test_fifo_rejected_without_opening(file_env) -> None:
    """Test that a FIFO source fails at once instead of blocking on open."""
    test_path, source, data = file_env
    fifo = test_path / "pipe"
    os.mkfifo(fifo)
    dest = test_path / "dest.dat"

    with pytest.raises(CopyFailure) as exc_info:
        await asyncio.wait_for(copy_and_collect(fifo, dest, CopyConfig()), timeout=5)

    assert exc_info.value.path == fifo
    assert exc_info.value.cause.errno == errno.EINVAL
    assert not dest.exists()


# ============================================================================
# Verification Tests
# ============================================================================


@pytest.mark.asyncio
async def test_verify_passes_for_good_copy(file_env) -> None:
    """Test that verification accepts an identical copy."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    written, _ = await copy_and_collect(source, dest, CopyConfig(verify=True))

    assert written == len(data)
    assert dest.read_bytes() == data


@pytest.mark.asyncio
async def test_verify_mismatch_removes_destination(file_env, monkeypatch) -> None:
    """Test that a hash mismatch fails the copy and removes the destination."""
    test_path, source, data = file_env
    dest = test_path / "dest.dat"

    async def fake_digest(path, algorithm="xxh64be"):
        return "aaaa" if Path(path) == source else "bbbb"

    monkeypatch.setattr(HashCalculator, "digest", staticmethod(fake_digest))

    with pytest.raises(CopyFailure) as exc_info:
        await copy_and_collect(source, dest, CopyConfig(verify=True, hash_algorithm="md5"))

    assert isinstance(exc_info.value.cause, HashMismatch)
    assert "mismatch" in str(exc_info.value.cause)
    assert not dest.exists()


# ============================================================================
# Hash Calculator Tests
# ============================================================================


@pytest.mark.asyncio
async def test_digest_md5(file_env) -> None:
    """Test MD5 digest of a file."""
    test_path, source, data = file_env

    assert await HashCalculator.digest(source, "md5") == hashlib.md5(data).hexdigest()


@pytest.mark.asyncio
async def test_hash_file_async_progress(file_env) -> None:
    """Test progress and final hash from the async generator."""
    test_path, source, data = file_env

    results = [item async for item in HashCalculator.hash_file_async(source, "sha256")]

    assert results[-1] == (len(data), hashlib.sha256(data).hexdigest())
    assert all(h == "" for _, h in results[:-1])


def test_xxh64_digest_is_stable() -> None:
    """Test that xxh64be gives the same digest for the same data."""
    first = HashCalculator("xxh64be")
    second = HashCalculator("XXH64BE")
    first.update(b"xxHash test data")
    second.update(b"xxHash test data")

    assert first.hexdigest() == second.hexdigest()
    assert len(first.hexdigest()) == 16


def test_unsupported_algorithm() -> None:
    """Test error handling for unsupported hash algorithm."""
    with pytest.raises(ValueError):
        HashCalculator("unsupported_algorithm")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
