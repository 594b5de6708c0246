#!/usr/bin/env python3
"""
Sticker Pack Manifest CLI

Reads pack descriptors (``*.source.json``), verifies the processed variants
of every sticker, derives the deterministic batch id, writes
``manifest.<batchId>.json``, stages ``uploads/<batchId>/files/`` and writes
``uploads/<batchId>/_upload.json`` for the external uploader.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .core import ManifestConfig, get_logger
from .core.exceptions import ConfigurationError, DiscoveryError
from .core.factories import PipelineFactory
from .core.logging_config import enable_debug_logging
from .core.paths import AssetLayout, find_repo_root
from .core.profiles import DEFAULT_PROFILE_ID

EXIT_OK = 0
EXIT_FAILURES = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sticker-manifest",
        description="Build manifests and upload batches for sticker packs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Defaults:
  processed-root:     <repoRoot>/data/assets/processed
  packs-dir:          <repoRoot>/data/assets/manifests/packs
  generated-dir:      <repoRoot>/data/assets/manifests/generated
  uploads-dir:        <repoRoot>/data/assets/uploads
  object-prefix-base: catalog

Exit codes:
  0  every pack built
  2  one or more packs failed, or a required directory was not found

Examples:
  sticker-manifest --pack test_pack.source.json
  sticker-manifest --all --dry-run
        """,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--pack", type=Path, help="Pack descriptor (bare names resolve in the packs dir)")
    target.add_argument("--all", action="store_true", help="Process every *.source.json in the packs dir")

    parser.add_argument("--dry-run", action="store_true", help="Report what would be produced, write nothing")
    parser.add_argument("--processed-root", type=Path, default=None, help="Processed variants root")
    parser.add_argument("--packs-dir", type=Path, default=None, help="Directory of pack descriptors")
    parser.add_argument("--generated-dir", type=Path, default=None, help="Output directory for manifests")
    parser.add_argument("--uploads-dir", type=Path, default=None, help="Output directory for upload batches")
    parser.add_argument("--object-prefix-base", default="catalog", help="Object key prefix (default: catalog)")
    parser.add_argument("--repo-root", type=Path, default=None, help="Repo root paths are reported against")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments for the manifest stage."""
    return build_parser().parse_args(argv)


def build_config(args: argparse.Namespace) -> ManifestConfig:
    """Resolve CLI arguments into a ManifestConfig with absolute paths."""
    overrides = {
        "processed_root": args.processed_root,
        "packs_dir": args.packs_dir,
        "generated_dir": args.generated_dir,
        "uploads_dir": args.uploads_dir,
    }
    repo_root = args.repo_root
    if repo_root is None:
        repo_root = find_repo_root()
    layout = AssetLayout(repo_root=Path(repo_root).resolve())

    defaults = {
        "processed_root": layout.processed_dir,
        "packs_dir": layout.packs_dir,
        "generated_dir": layout.generated_dir,
        "uploads_dir": layout.uploads_dir,
    }
    paths = {
        name: Path(value if value is not None else defaults[name]).resolve()
        for name, value in overrides.items()
    }

    return ManifestConfig(
        repo_root=layout.repo_root,
        object_prefix_base=args.object_prefix_base,
        default_profile=DEFAULT_PROFILE_ID,
        pack_file=args.pack,
        all_packs=args.all,
        dry_run=args.dry_run,
        debug=args.debug,
        **paths,
    )


def run(argv: Optional[List[str]] = None) -> int:
    """Run the manifest stage and return the process exit code."""
    logger = get_logger("sticker-pipeline.manifest")
    args = parse_args(argv)

    try:
        config = build_config(args)
        if config.debug:
            enable_debug_logging("sticker-pipeline.manifest", "sticker-pipeline")

        service = PipelineFactory.create_manifest_service(debug=config.debug)
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
        get_logger("sticker-pipeline.manifest").warning("Manifest run interrupted by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
