"""Shared data models for the sticker pipeline."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, StrictBool, field_validator
from pydantic.alias_generators import to_camel

VariantKey = Literal["thumb", "small", "medium", "full"]
OutputFormat = Literal["webp", "png"]

MIME_TYPES: Dict[str, str] = {"webp": "image/webp", "png": "image/png"}


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump to a JSON-ready dict using on-disk key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class VariantSpec(BaseModel):
    """One required output rendition of an asset."""

    model_config = ConfigDict(frozen=True)

    key: VariantKey
    max_size_px: int = Field(gt=0)
    format: OutputFormat

    @property
    def extension(self) -> str:
        return self.format

    @property
    def filename(self) -> str:
        return f"{self.key}.{self.extension}"

    @property
    def mime(self) -> str:
        return MIME_TYPES[self.format]


class TransformProfile(BaseModel):
    """Named, versioned set of variant specs and encoder settings."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: int = Field(ge=1)
    variants: Tuple[VariantSpec, ...]
    webp_quality: int = Field(default=82, ge=0, le=100)
    png_compression_level: int = Field(default=9, ge=0, le=9)
    forbid_enlarge: bool = True
    strip_metadata: bool = True

    @field_validator("variants")
    @classmethod
    def _check_variant_keys(cls, variants: Tuple[VariantSpec, ...]) -> Tuple[VariantSpec, ...]:
        if not variants:
            raise ValueError("a profile needs at least one variant")
        keys = [spec.key for spec in variants]
        if len(set(keys)) != len(keys):
            raise ValueError(f"duplicate variant keys: {keys}")
        return variants

    @property
    def identity(self) -> str:
        return f"{self.name}-v{self.version}"


class VariantResult(BaseModel):
    """In-memory output of the transformer for one VariantSpec."""

    key: VariantKey
    format: OutputFormat
    width: int
    height: int
    byte_size: int
    has_alpha: bool = False
    buffer: bytes = Field(repr=False)


class ReceiptVariant(CamelModel):
    key: VariantKey
    format: OutputFormat
    width: int
    height: int
    byte_size: int = Field(alias="bytes")


class Receipt(CamelModel):
    """Diagnostic summary written next to each processed asset."""

    profile: str
    variants: List[ReceiptVariant]


class PackInfo(CamelModel):
    pack_id: str
    name: str
    description: Optional[str] = None
    is_active: StrictBool


class PackDefaults(CamelModel):
    profile: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class StickerEntry(CamelModel):
    sticker_id: str
    name: str
    description: Optional[str] = None
    input_ref: str
    tags: Optional[List[str]] = None
    profile: Optional[str] = None


class PackIndex(CamelModel):
    """Authored pack descriptor (``*.source.json``)."""

    schema_version: int
    pack: PackInfo
    defaults: Optional[PackDefaults] = None
    stickers: List[StickerEntry]

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def raw(self) -> Dict[str, Any]:
        """The descriptor exactly as authored, used for batch identity."""
        return self._raw

    @property
    def default_tags(self) -> List[str]:
        return list(self.defaults.tags) if self.defaults else []


class VariantInfo(CamelModel):
    """Measured facts about one processed variant file."""

    key: VariantKey
    format: OutputFormat
    mime: str
    path: str
    sha256: str
    byte_size: int = Field(alias="bytes")
    width: int
    height: int


class ManifestSource(CamelModel):
    pack_index_path: str
    processed_root: str
    profile: str


class ManifestPack(CamelModel):
    pack_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    tags: List[str] = Field(default_factory=list)


class ManifestAssets(CamelModel):
    profile: str
    variants: List[VariantInfo]


class ManifestSticker(CamelModel):
    sticker_id: str
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    input_ref: str
    assets: ManifestAssets


class GeneratedManifest(CamelModel):
    schema_version: Literal[1] = 1
    batch_id: str
    created_at: str
    source: ManifestSource
    pack: ManifestPack
    stickers: List[ManifestSticker]


class UploadObject(CamelModel):
    sticker_id: str
    variant_key: VariantKey
    local_path: str
    sha256: str
    byte_size: int = Field(alias="bytes")
    mime: str
    object_key: str
    cache_control: str


class UploadPlan(CamelModel):
    schema_version: Literal[1] = 1
    batch_id: str
    created_at: str
    processed_root: str
    uploads_root: str
    object_prefix: str
    objects: List[UploadObject]


class OptimizeConfig(BaseModel):
    """Configuration for an optimize stage run."""

    staged_dir: Path
    processed_dir: Path
    profile: str = "stickers-v1"
    dry_run: bool = False
    fail_fast: bool = False
    debug: bool = False


class ManifestConfig(BaseModel):
    """Configuration for a manifest stage run."""

    repo_root: Path
    processed_root: Path
    packs_dir: Path
    generated_dir: Path
    uploads_dir: Path
    object_prefix_base: str = "catalog"
    default_profile: str = "stickers-v1"
    pack_file: Optional[Path] = None
    all_packs: bool = False
    dry_run: bool = False
    debug: bool = False


class FileResult(BaseModel):
    """Result of optimizing a single staged file."""

    source_path: str
    rel_path: str
    success: bool = False
    error: str = ""
    variants: List[ReceiptVariant] = Field(default_factory=list)
    processing_time: float = 0.0


class OptimizeSummary(BaseModel):
    ok: int = 0
    failed: int = 0
    aborted: bool = False
    results: List[FileResult] = Field(default_factory=list)
    processing_time: float = 0.0


class PackResult(BaseModel):
    """Result of running the manifest stage for one pack descriptor."""

    pack_path: str
    success: bool = False
    error: str = ""
    batch_id: str = ""
    object_count: int = 0
    manifest_path: Optional[str] = None
    upload_plan_path: Optional[str] = None
    manifest: Optional[GeneratedManifest] = None
    upload_plan: Optional[UploadPlan] = None


class ManifestSummary(BaseModel):
    ok: int = 0
    failed: int = 0
    results: List[PackResult] = Field(default_factory=list)
