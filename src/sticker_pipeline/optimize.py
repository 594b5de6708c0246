#!/usr/bin/env python3
"""
Sticker Asset Optimize CLI

Scans staged assets, transforms them into profile-compliant variants and
writes them into the processed folder. No manifest or upload metadata is
generated in this step.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .core import OptimizeConfig, get_logger
from .core.exceptions import ConfigurationError, DiscoveryError
from .core.factories import PipelineFactory
from .core.logging_config import enable_debug_logging
from .core.paths import AssetLayout, find_repo_root
from .core.profiles import DEFAULT_PROFILE_ID, PROFILES

EXIT_OK = 0
EXIT_FAILURES = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sticker-optimize",
        description="Transform staged images into processed sticker variants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Defaults:
  staged:    <repoRoot>/data/assets/staged
  processed: <repoRoot>/data/assets/processed

Exit codes:
  0  every file processed
  2  one or more files failed, or the repo root or staged directory was not found
        """,
    )
    parser.add_argument("--staged", type=Path, default=None, help="Override staged input directory")
    parser.add_argument("--processed", type=Path, default=None, help="Override processed output directory")
    parser.add_argument(
        "--profile",
        default=DEFAULT_PROFILE_ID,
        choices=sorted(PROFILES),
        help=f"Transform profile (default: {DEFAULT_PROFILE_ID})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate and report, do not write files")
    parser.add_argument("--fail-fast", action="store_true", help="Stop on first error")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the optimize stage.

    Returns:
        An `argparse.Namespace` object containing the parsed arguments.
    """
    return build_parser().parse_args(argv)


def build_config(args: argparse.Namespace) -> OptimizeConfig:
    """Resolve CLI arguments into an OptimizeConfig, discovering the repo root only when needed."""
    staged, processed = args.staged, args.processed
    if staged is None or processed is None:
        layout = AssetLayout(repo_root=find_repo_root())
        staged = staged or layout.staged_dir
        processed = processed or layout.processed_dir

    return OptimizeConfig(
        staged_dir=Path(staged).resolve(),
        processed_dir=Path(processed).resolve(),
        profile=args.profile,
        dry_run=args.dry_run,
        fail_fast=args.fail_fast,
        debug=args.debug,
    )


def run(argv: Optional[List[str]] = None) -> int:
    """Run the optimize stage and return the process exit code."""
    logger = get_logger("sticker-pipeline.optimize")
    args = parse_args(argv)

    try:
        config = build_config(args)
        if config.debug:
            enable_debug_logging("sticker-pipeline.optimize", "sticker-pipeline")

        service = PipelineFactory.create_optimize_service(config.profile, debug=config.debug)
        summary = service.run(config)
    except (DiscoveryError, ConfigurationError) as e:
        logger.error(str(e))
        return EXIT_FAILURES

    return EXIT_FAILURES if summary.failed else EXIT_OK


def main() -> None:
    """Console entry point."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        get_logger("sticker-pipeline.optimize").warning("Optimize interrupted by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
