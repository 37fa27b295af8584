#!/usr/bin/env python3
"""
Example usage script for the treecopy library.

This script builds a small project tree, copies it twice into the same
destination to show collision naming, and consumes the progress and error
streams while the copy runs.
"""

import asyncio
import logging
import os
import sys
import tempfile
from pathlib import Path

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from treecopy import CopyConfig, CopyStrategy, copy_all, estimate_size


def setup_logging() -> None:
    """Configure logging for the example script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def create_sample_tree(base_path: Path) -> Path:
    """
    Create a sample directory tree.

    Parameters
    ----------
    base_path : Path
        Base path where to create the tree

    Returns
    -------
    Path
        Root of the created tree
    """
    root = base_path / "shoot_day_01"
    for dir_path in ["video/raw", "audio", "docs"]:
        (root / dir_path).mkdir(parents=True, exist_ok=True)

    (root / "video" / "raw" / "clip001.mov").write_bytes(b"\x00" * 3 * 1024 * 1024)
    (root / "audio" / "take1.wav").write_bytes(b"\x01" * 512 * 1024)
    (root / "docs" / "notes.txt").write_text("Scene 1, take 3 is the keeper\n")
    os.symlink("docs/notes.txt", root / "NOTES")

    logging.info(f"Created sample tree: {root}")
    return root


async def copy_with_progress(sources: list[Path], dest: Path, config: CopyConfig) -> bool:
    """
    Copy sources into dest, printing progress as it arrives.

    Returns
    -------
    bool
        True if no entry failed
    """
    total = await estimate_size(sources)
    job = copy_all(sources, dest, config)

    async def show_progress() -> None:
        copied = 0
        async for n in job.progress:
            copied += n
            print(f"\r  {copied:,}/{total:,} bytes", end="", flush=True)
        print()

    _, errors = await asyncio.gather(show_progress(), job.errors.drain())
    await job.wait()

    for err in errors:
        logging.error(f"✗ {err}")
    return not errors


async def run_examples() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        source = create_sample_tree(temp_path)
        dest = temp_path / "archive"
        dest.mkdir()

        logging.info("=" * 60)
        logging.info("EXAMPLE 1: Default strategy (kernel copy when available)")
        logging.info("=" * 60)
        await copy_with_progress([source], dest, CopyConfig())

        logging.info("=" * 60)
        logging.info("EXAMPLE 2: Same tree again, buffered loop with verification")
        logging.info("=" * 60)
        config = CopyConfig(strategy=CopyStrategy.BUFFERED, verify=True)
        await copy_with_progress([source], dest, config)

        for path in sorted(dest.iterdir()):
            logging.info(f"Destination root: {path.name}")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run_examples())
