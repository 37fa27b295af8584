#!/usr/bin/env python3
"""
treecopy - recursive copy of files, directories and symlinks.

Architecture:
- Core engine is UI-agnostic (publishes events on streams, never touches stdout)
- Copy runs in a background task; the CLI drains progress and errors concurrently
- Per-entry error tracking; one failed entry never stops the copy
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import BUFFER_SIZE, CopyConfig, CopyStrategy
from .engine import copy_all
from .errors import TreeCopyError
from .hashing import HASH_ALGORITHMS
from .streams import EventStream
from .walk import estimate_size


class CLIProcessor:
    """
    Handles CLI orchestration and presentation.

    Parameters
    ----------
    sources : list[Path]
        Source trees to copy
    dest_dir : Path
        Destination directory
    config : CopyConfig
        Copy settings
    """

    def __init__(self, sources: list[Path], dest_dir: Path, config: CopyConfig):
        self.sources = sources
        self.dest_dir = dest_dir
        self.config = config

    async def run(self) -> bool:
        """
        Copy all sources.

        Returns
        -------
        bool
            True if every entry was copied, False otherwise

        Raises
        ------
        SourceNotFound
            If a source does not exist
        """
        total = await estimate_size(self.sources)
        job = copy_all(self.sources, self.dest_dir, self.config)

        _, errors = await asyncio.gather(
            self._show_progress(job.progress, total), job.errors.drain()
        )
        await job.wait()

        sys.stdout.write("\n")
        sys.stdout.flush()

        self._show_final_summary(errors)
        return not errors

    async def _show_progress(self, progress: EventStream, total: int) -> int:
        copied = 0
        async for n in progress:
            copied += n
            percent = (copied / total * 100) if total else 100.0
            mb_done = copied / (1024 * 1024)
            mb_total = total / (1024 * 1024)
            sys.stdout.write(
                f"\rCopying: {percent:.1f}% ({mb_done:.1f}/{mb_total:.1f} MB)".ljust(80)
            )
            sys.stdout.flush()
        return copied

    def _show_final_summary(self, errors: list[TreeCopyError]) -> None:
        print("=" * 60)

        if not errors:
            print(f"All {len(self.sources)} source(s) copied successfully")
            return

        print(f"{len(errors)} error(s):")
        for err in errors:
            print(f"  ✗ {err}")


def main() -> int:
    """
    CLI entry point.

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure, 130 for keyboard interrupt
    """
    parser = argparse.ArgumentParser(
        description="Recursively copy files, directories and symlinks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  treecopy /photos /backup                      # Creates /backup/photos (or photos.~1~ if taken)
  treecopy -s buffered dir1 dir2 file.txt /dest # Force the buffered copy loop
  treecopy --verify /footage /mnt/archive       # Hash-check every copied file
        """,
    )

    parser.add_argument(
        "sources",
        type=Path,
        nargs="+",
        help="One or more source files or directories",
    )

    parser.add_argument(
        "dest",
        type=Path,
        help="Destination directory",
    )

    parser.add_argument(
        "-s",
        "--strategy",
        type=str,
        default="auto",
        choices=[s.value for s in CopyStrategy],
        help="File transfer strategy (default: auto)",
    )

    parser.add_argument(
        "-b",
        "--buffer-size",
        type=int,
        default=BUFFER_SIZE,
        help=f"Buffer size in bytes for the buffered copy loop (default: {BUFFER_SIZE})",
    )

    parser.add_argument(
        "--verify",
        action="store_true",
        help="Hash source and destination after each file copy",
    )

    parser.add_argument(
        "--hash-algorithm",
        type=str,
        default="xxh64be",
        choices=list(HASH_ALGORITHMS),
        help="Hash algorithm for verification (default: xxh64be)",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    try:
        config = CopyConfig.from_args(args)

        logging.basicConfig(
            level=logging.DEBUG if config.verbose else logging.WARNING,
            format="%(levelname)s: %(message)s",
        )

        processor = CLIProcessor(
            sources=args.sources,
            dest_dir=args.dest,
            config=config,
        )

        success = asyncio.run(processor.run())
        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
