"""Assemble the generated manifest and upload plan of a pack batch."""

from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional

from .canonical import VariantHash
from .models import (
    GeneratedManifest,
    ManifestAssets,
    ManifestPack,
    ManifestSource,
    ManifestSticker,
    PackIndex,
    StickerEntry,
    UploadObject,
    UploadPlan,
    VariantInfo,
)
from .paths import rel_to_root

CACHE_CONTROL = "public, max-age=31536000, immutable"
UPLOAD_PLAN_FILENAME = "_upload.json"


class StickerVariants(NamedTuple):
    """Inspected variants of one sticker under its effective profile."""

    profile: str
    variants: List[VariantInfo]


class StagedFile(NamedTuple):
    sticker_id: str
    info: VariantInfo
    source: Path
    destination: Path


def merge_tags(defaults: Optional[Iterable[str]], extra: Optional[Iterable[str]]) -> List[str]:
    """Union of two tag lists, first occurrence wins the position."""
    merged: Dict[str, None] = {}
    for tag in list(defaults or []) + list(extra or []):
        merged.setdefault(tag, None)
    return list(merged)


def pack_default_profile(pack: PackIndex, fallback: str) -> str:
    if pack.defaults and pack.defaults.profile:
        return pack.defaults.profile
    return fallback


def effective_profile(entry: StickerEntry, pack: PackIndex, fallback: str) -> str:
    """The sticker's own profile override, else the pack default."""
    return entry.profile or pack_default_profile(pack, fallback)


def variant_hashes(stickers: Dict[str, StickerVariants]) -> List[VariantHash]:
    return [
        (sticker_id, info.key, info.sha256)
        for sticker_id, entry in stickers.items()
        for info in entry.variants
    ]


def manifest_filename(batch_id: str) -> str:
    return f"manifest.{batch_id}.json"


def object_prefix(base: str, pack_id: str, batch_id: str) -> str:
    return "/".join(part.strip("/") for part in (base, pack_id, batch_id) if part.strip("/"))


def build_manifest(
    pack: PackIndex,
    batch_id: str,
    created_at: str,
    stickers: Dict[str, StickerVariants],
    *,
    pack_index_path: str,
    processed_root: str,
    default_profile: str,
) -> GeneratedManifest:
    """
    Describe a pack batch: pack summary plus every sticker's variants.

    ``pack_index_path`` and ``processed_root`` are already repo-relative.
    """
    pack_tags = pack.default_tags
    return GeneratedManifest(
        batch_id=batch_id,
        created_at=created_at,
        source=ManifestSource(
            pack_index_path=pack_index_path,
            processed_root=processed_root,
            profile=pack_default_profile(pack, default_profile),
        ),
        pack=ManifestPack(
            pack_id=pack.pack.pack_id,
            name=pack.pack.name,
            description=pack.pack.description,
            is_active=pack.pack.is_active,
            tags=pack_tags,
        ),
        stickers=[
            ManifestSticker(
                sticker_id=entry.sticker_id,
                name=entry.name,
                description=entry.description,
                tags=merge_tags(pack_tags, entry.tags),
                input_ref=entry.input_ref,
                assets=ManifestAssets(
                    profile=stickers[entry.sticker_id].profile,
                    variants=list(stickers[entry.sticker_id].variants),
                ),
            )
            for entry in pack.stickers
        ],
    )


def staged_files(
    pack: PackIndex,
    stickers: Dict[str, StickerVariants],
    processed_root: Path,
    batch_dir: Path,
) -> List[StagedFile]:
    """Every (processed file -> batch file) pair a batch needs, in pack order."""
    files_dir = batch_dir / "files"
    pairs: List[StagedFile] = []
    for entry in pack.stickers:
        for info in stickers[entry.sticker_id].variants:
            filename = Path(info.path).name
            pairs.append(
                StagedFile(
                    sticker_id=entry.sticker_id,
                    info=info,
                    source=processed_root / entry.input_ref / filename,
                    destination=files_dir / entry.sticker_id / filename,
                )
            )
    return pairs


def build_upload_plan(
    pack: PackIndex,
    batch_id: str,
    created_at: str,
    files: List[StagedFile],
    *,
    repo_root: Path,
    processed_root: Path,
    batch_dir: Path,
    object_prefix_base: str,
) -> UploadPlan:
    """List every staged file with the object key and caching headers it uploads under."""
    prefix = object_prefix(object_prefix_base, pack.pack.pack_id, batch_id)
    return UploadPlan(
        batch_id=batch_id,
        created_at=created_at,
        processed_root=rel_to_root(repo_root, processed_root),
        uploads_root=rel_to_root(repo_root, batch_dir),
        object_prefix=prefix,
        objects=[
            UploadObject(
                sticker_id=staged.sticker_id,
                variant_key=staged.info.key,
                local_path=rel_to_root(repo_root, staged.destination),
                sha256=staged.info.sha256,
                byte_size=staged.info.byte_size,
                mime=staged.info.mime,
                object_key=f"{prefix}/{staged.sticker_id}/{staged.destination.name}",
                cache_control=CACHE_CONTROL,
            )
            for staged in files
        ],
    )
