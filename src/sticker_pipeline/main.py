"""Main module for the sticker pipeline CLI."""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .optimize import run as optimize_run
from .manifest import run as manifest_run


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the unified command-line interface (CLI) of the sticker pipeline.

    The "optimize" and "manifest" commands forward every remaining argument
    to the respective stage CLI, so ``sticker-pipeline optimize --dry-run``
    behaves exactly like ``sticker-optimize --dry-run``.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="sticker-pipeline",
        description="Sticker Pipeline - staged images to content-addressed upload batches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stage 1: transform staged images into processed variants
  sticker-pipeline optimize --fail-fast

  # Stage 2: build manifest + upload batch for one pack
  sticker-pipeline manifest --pack test_pack.source.json

  # Check every pack without writing anything
  sticker-pipeline manifest --all --dry-run

  # Show version
  sticker-pipeline version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )
    subparsers.add_parser(
        "optimize", help="Transform staged images into processed variants", add_help=False
    )
    subparsers.add_parser(
        "manifest", help="Build manifests and upload batches for packs", add_help=False
    )
    subparsers.add_parser("version", help="Show version information")

    args, remaining = parser.parse_known_args(argv)

    if args.command == "optimize":
        sys.exit(optimize_run(remaining))
    elif args.command == "manifest":
        sys.exit(manifest_run(remaining))
    elif args.command == "version":
        print("Sticker Pipeline CLI")
        print(f"Version {__version__}")
        print("Staged images to content-addressed upload batches")
        sys.exit(0)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
