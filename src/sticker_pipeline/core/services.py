"""Stage services: optimize staged images and build pack manifests."""

import asyncio
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence

from .canonical import compute_batch_id
from .error_handling import BatchOperationContextManager
from .exceptions import (
    AlphaChannelLost,
    DiscoveryError,
    MissingVariantOutput,
    ProcessedFolderMissing,
    StagingError,
    StickerPipelineError,
    TransformError,
    VariantSizeExceeded,
    batch_error_handler,
)
from .image_utils import is_image_file, source_has_alpha
from .inspector import inspect_variant
from .manifest import (
    UPLOAD_PLAN_FILENAME,
    StickerVariants,
    build_manifest,
    build_upload_plan,
    effective_profile,
    manifest_filename,
    pack_default_profile,
    staged_files,
    variant_hashes,
)
from .models import (
    FileResult,
    ManifestConfig,
    ManifestSummary,
    OptimizeConfig,
    OptimizeSummary,
    PackIndex,
    PackResult,
    Receipt,
    ReceiptVariant,
    TransformProfile,
    VariantResult,
)
from .observability import LogContext, MetricsCollector, track_operation
from .pack_index import load_pack_index
from .paths import rel_to_root
from .profiles import get_profile
from .protocols import LoggerProtocol, TransformerProtocol
from .staging import BatchLock, ensure_dir, stage_file, write_bytes_atomic, write_json
from .transformer import transform

RECEIPT_FILENAME = "_receipt.json"
PACK_FILE_SUFFIX = ".source.json"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _sorted_entries(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


async def walk_files(directory: Path) -> AsyncIterator[Path]:
    """Yield every regular file below ``directory``, depth-first in name order."""
    for entry in await asyncio.to_thread(_sorted_entries, directory):
        if entry.is_dir(follow_symlinks=False):
            async for path in walk_files(Path(entry.path)):
                yield path
        elif entry.is_file():
            yield Path(entry.path)


def rel_path_without_ext(path: Path, root: Path) -> Path:
    rel = path.relative_to(root)
    return rel.with_suffix("")


def validate_variants(
    variants: Sequence[VariantResult], profile: TransformProfile, input_had_alpha: bool
) -> None:
    """
    Check transformer output against every VariantSpec of ``profile``.

    Raises:
        MissingVariantOutput: If a spec has no matching variant
        VariantSizeExceeded: If a variant is larger than its ceiling
        AlphaChannelLost: If the source had alpha and a variant does not
    """
    by_key = {variant.key: variant for variant in variants}
    for spec in profile.variants:
        variant = by_key.get(spec.key)
        if variant is None:
            raise MissingVariantOutput(spec.key)
        if variant.width <= 0 or variant.height <= 0:
            raise TransformError(
                f"Invalid dimensions for {variant.key}: {variant.width}x{variant.height}"
            )
        if variant.width > spec.max_size_px or variant.height > spec.max_size_px:
            raise VariantSizeExceeded(spec.key, spec.max_size_px, variant.width, variant.height)
        if input_had_alpha and not variant.has_alpha:
            raise AlphaChannelLost(spec.key)


def build_receipt(variants: Sequence[VariantResult], profile: TransformProfile) -> Receipt:
    return Receipt(
        profile=profile.identity,
        variants=[
            ReceiptVariant(
                key=v.key,
                format=v.format,
                width=v.width,
                height=v.height,
                byte_size=v.byte_size,
            )
            for v in variants
        ],
    )


def write_variants(
    variants: Sequence[VariantResult], receipt: Receipt, out_folder: Path
) -> None:
    """
    Write variant files plus their receipt into ``out_folder``.

    Any old receipt is removed first and the new one written last, so a
    folder with a receipt always holds a complete set of variants.
    """
    ensure_dir(out_folder)
    (out_folder / RECEIPT_FILENAME).unlink(missing_ok=True)
    for variant in variants:
        write_bytes_atomic(out_folder / f"{variant.key}.{variant.format}", variant.buffer)
    write_json(out_folder / RECEIPT_FILENAME, receipt.to_json_dict())


class OptimizeService:
    """Transforms every staged image into the processed variant tree."""

    def __init__(
        self,
        profile: TransformProfile,
        logger: LoggerProtocol,
        transformer: TransformerProtocol = transform,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._profile = profile
        self._logger = logger
        self._transformer = transformer
        self._metrics_collector = metrics_collector

    @property
    def profile(self) -> TransformProfile:
        return self._profile

    async def discover_files(self, staged_dir: Path) -> AsyncIterator[Path]:
        """Lazily yield staged files with a recognized image extension."""
        async for path in walk_files(staged_dir):
            if is_image_file(path):
                yield path

    async def process_file(self, path: Path, config: OptimizeConfig) -> FileResult:
        """Transform, validate and (unless dry-run) write one staged file."""
        staged_dir = Path(config.staged_dir)
        rel = path.relative_to(staged_dir).as_posix()
        log_context = LogContext(
            operation="optimize_file", component="optimize_service"
        ).with_metadata(source=rel)
        result = FileResult(source_path=str(path), rel_path=rel)
        start_time = time.time()

        with track_operation("optimize_file", self._metrics_collector, source=rel) as metric:
            try:
                input_had_alpha = await asyncio.to_thread(source_has_alpha, path)
                variants = await asyncio.to_thread(self._transformer, path, self._profile)
                validate_variants(variants, self._profile, input_had_alpha)

                receipt = build_receipt(variants, self._profile)
                if not config.dry_run:
                    out_folder = Path(config.processed_dir) / rel_path_without_ext(path, staged_dir)
                    await asyncio.to_thread(write_variants, variants, receipt, out_folder)

                result.variants = receipt.variants
                result.success = True
                self._logger.info(f"OK   {rel}", log_context)
            except (StickerPipelineError, OSError, ValueError) as e:
                result.success = False
                result.error = str(e)
                metric.success = False
                metric.error_message = str(e)
                self._logger.error(f"FAIL {rel}: {e}", log_context.with_metadata(error=str(e)))

        result.processing_time = time.time() - start_time
        return result

    async def run_async(self, config: OptimizeConfig) -> OptimizeSummary:
        """Process every staged image; per-file failures do not stop the batch."""
        staged_dir = Path(config.staged_dir)
        if not staged_dir.is_dir():
            raise DiscoveryError(f"Staged directory does not exist: {staged_dir}")
        if not config.dry_run:
            ensure_dir(config.processed_dir)

        self._log_configuration(config)
        summary = OptimizeSummary()
        start_time = time.time()

        with BatchOperationContextManager("optimize", logger=self._logger) as batch:
            async for path in self.discover_files(staged_dir):
                result = await self.process_file(path, config)
                summary.results.append(result)
                if result.success:
                    batch.add_success(result.rel_path)
                    continue
                batch.add_error(result.error, result.rel_path)
                if config.fail_fast:
                    summary.aborted = True
                    self._logger.warning("Fail-fast set; abandoning remaining files.")
                    break

        summary.ok = batch.succeeded
        summary.failed = batch.failed
        summary.processing_time = time.time() - start_time
        return summary

    def run(self, config: OptimizeConfig) -> OptimizeSummary:
        """Synchronous wrapper running the stage in a fresh event loop."""
        return asyncio.run(self.run_async(config))

    def _log_configuration(self, config: OptimizeConfig) -> None:
        self._logger.info("=" * 80)
        self._logger.info("STICKER ASSET OPTIMIZE")
        self._logger.info("=" * 80)
        self._logger.info(f"  Staged:    {config.staged_dir}")
        self._logger.info(f"  Processed: {config.processed_dir}")
        self._logger.info(f"  Profile:   {self._profile.identity}")
        self._logger.info(f"  Mode:      {'dry-run' if config.dry_run else 'write'}")
        self._logger.info("=" * 80)


class ManifestService:
    """Builds the manifest, staged upload batch and upload plan of packs."""

    def __init__(
        self,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self._logger = logger
        self._metrics_collector = metrics_collector
        self._clock = clock

    def resolve_pack_paths(self, config: ManifestConfig) -> List[Path]:
        """Pack descriptors named by ``--pack`` or found by ``--all``."""
        packs_dir = Path(config.packs_dir)
        if config.all_packs:
            paths = sorted(
                p for p in packs_dir.iterdir()
                if p.is_file() and p.name.endswith(PACK_FILE_SUFFIX)
            )
            if not paths:
                raise DiscoveryError(f"No {PACK_FILE_SUFFIX} pack files found in {packs_dir}")
            return paths
        if config.pack_file is None:
            raise DiscoveryError("No pack file given")
        pack_file = Path(config.pack_file)
        # a bare file name is looked up in the packs dir
        return [pack_file if pack_file.is_absolute() else packs_dir / pack_file]

    async def collect_sticker_variants(
        self, pack: PackIndex, config: ManifestConfig
    ) -> Dict[str, StickerVariants]:
        """Inspect every expected variant file of every sticker in the pack."""
        processed_root = Path(config.processed_root)
        stickers: Dict[str, StickerVariants] = {}
        for entry in pack.stickers:
            profile_id = effective_profile(entry, pack, config.default_profile)
            profile = get_profile(profile_id)

            folder = processed_root / entry.input_ref
            if not folder.is_dir():
                raise ProcessedFolderMissing(entry.input_ref, str(folder))
            if not (folder / RECEIPT_FILENAME).is_file():
                self._logger.debug(f"No {RECEIPT_FILENAME} in {folder}")

            infos = []
            for spec in profile.variants:
                infos.append(
                    await asyncio.to_thread(inspect_variant, processed_root, entry.input_ref, spec)
                )
            stickers[entry.sticker_id] = StickerVariants(profile=profile_id, variants=infos)
        return stickers

    async def build_for_pack(self, pack_path: Path, config: ManifestConfig) -> PackResult:
        """
        Run the manifest stage for one pack descriptor.

        Raises:
            StickerPipelineError: On any validation, consistency or staging failure
        """
        repo_root = Path(config.repo_root)
        processed_root = Path(config.processed_root)
        pack = await asyncio.to_thread(load_pack_index, pack_path)
        created_at = self._clock()

        stickers = await self.collect_sticker_variants(pack, config)
        batch_id = compute_batch_id(pack.raw, variant_hashes(stickers))

        manifest = build_manifest(
            pack,
            batch_id,
            created_at,
            stickers,
            pack_index_path=rel_to_root(repo_root, pack_path),
            processed_root=rel_to_root(repo_root, processed_root),
            default_profile=pack_default_profile(pack, config.default_profile),
        )

        batch_dir = Path(config.uploads_dir) / batch_id
        files = staged_files(pack, stickers, processed_root, batch_dir)
        upload_plan = build_upload_plan(
            pack,
            batch_id,
            created_at,
            files,
            repo_root=repo_root,
            processed_root=processed_root,
            batch_dir=batch_dir,
            object_prefix_base=config.object_prefix_base,
        )

        result = PackResult(
            pack_path=rel_to_root(repo_root, pack_path),
            success=True,
            batch_id=batch_id,
            object_count=len(upload_plan.objects),
            manifest=manifest,
            upload_plan=upload_plan,
        )
        if config.dry_run:
            return result

        manifest_path = Path(config.generated_dir) / manifest_filename(batch_id)
        plan_path = batch_dir / UPLOAD_PLAN_FILENAME
        with batch_error_handler(StagingError), BatchLock(batch_dir):
            # stage first so the plan only ever points at real files
            for staged in files:
                await asyncio.to_thread(
                    stage_file, staged.source, staged.destination, staged.info.sha256
                )
            await asyncio.to_thread(write_json, manifest_path, manifest.to_json_dict())
            await asyncio.to_thread(write_json, plan_path, upload_plan.to_json_dict())

        result.manifest_path = rel_to_root(repo_root, manifest_path)
        result.upload_plan_path = rel_to_root(repo_root, plan_path)
        return result

    async def run_async(self, config: ManifestConfig) -> ManifestSummary:
        """Build every requested pack; a failing pack does not stop the others."""
        if not Path(config.processed_root).is_dir():
            raise DiscoveryError(f"Processed root does not exist: {config.processed_root}")
        if not Path(config.packs_dir).is_dir():
            raise DiscoveryError(f"Packs dir does not exist: {config.packs_dir}")

        pack_paths = self.resolve_pack_paths(config)
        self._log_configuration(config)
        summary = ManifestSummary()

        with BatchOperationContextManager("manifest", logger=self._logger) as batch:
            for pack_path in pack_paths:
                rel_pack = rel_to_root(config.repo_root, pack_path)
                log_context = LogContext(
                    operation="build_pack", component="manifest_service"
                ).with_metadata(pack=rel_pack)
                self._logger.info(f"Pack: {rel_pack}", log_context)

                with track_operation("build_pack", self._metrics_collector, pack=rel_pack) as metric:
                    try:
                        result = await self.build_for_pack(pack_path, config)
                    except (StickerPipelineError, OSError, ValueError) as e:
                        metric.success = False
                        metric.error_message = str(e)
                        result = PackResult(pack_path=rel_pack, success=False, error=str(e))
                        self._logger.error(f"  FAIL: {rel_pack}: {e}", log_context)

                summary.results.append(result)
                if not result.success:
                    batch.add_error(result.error, rel_pack)
                    continue

                batch.add_success(rel_pack)
                self._logger.info(f"  batchId:     {result.batch_id}")
                self._logger.info(f"  objects:     {result.object_count}")
                if result.manifest_path:
                    self._logger.info(f"  manifest:    {result.manifest_path}")
                    self._logger.info(f"  upload plan: {result.upload_plan_path}")

        summary.ok = batch.succeeded
        summary.failed = batch.failed
        return summary

    def run(self, config: ManifestConfig) -> ManifestSummary:
        """Synchronous wrapper running the stage in a fresh event loop."""
        return asyncio.run(self.run_async(config))

    def _log_configuration(self, config: ManifestConfig) -> None:
        self._logger.info("=" * 80)
        self._logger.info("STICKER PACK MANIFEST")
        self._logger.info("=" * 80)
        self._logger.info(f"  Processed root: {config.processed_root}")
        self._logger.info(f"  Packs dir:      {config.packs_dir}")
        self._logger.info(f"  Generated dir:  {config.generated_dir}")
        self._logger.info(f"  Uploads dir:    {config.uploads_dir}")
        self._logger.info(f"  Mode:           {'dry-run' if config.dry_run else 'write+stage'}")
        self._logger.info("=" * 80)
