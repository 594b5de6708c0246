"""Core components of the sticker asset pipeline."""

from .canonical import compute_batch_id, stable_stringify
from .logging_config import get_logger, setup_logger
from .exceptions import (
    StickerPipelineError,
    ConfigurationError,
    UnknownProfileError,
    DiscoveryError,
    TransformError,
    VariantSizeExceeded,
    AlphaChannelLost,
    MissingVariantOutput,
    PackValidationError,
    DuplicateKey,
    AssetConsistencyError,
    ProcessedFolderMissing,
    MissingVariant,
    StagingError,
    BatchLockedError,
    CircularReferenceError,
)
from .models import (
    GeneratedManifest,
    ManifestConfig,
    OptimizeConfig,
    PackIndex,
    TransformProfile,
    UploadPlan,
    VariantInfo,
    VariantResult,
    VariantSpec,
)
from .profiles import STICKERS_V1, get_profile
from .transformer import transform

__all__ = [
    "TransformProfile",
    "VariantSpec",
    "VariantResult",
    "VariantInfo",
    "PackIndex",
    "GeneratedManifest",
    "UploadPlan",
    "OptimizeConfig",
    "ManifestConfig",
    "STICKERS_V1",
    "get_profile",
    "transform",
    "stable_stringify",
    "compute_batch_id",
    "setup_logger",
    "get_logger",
    "StickerPipelineError",
    "ConfigurationError",
    "UnknownProfileError",
    "DiscoveryError",
    "TransformError",
    "VariantSizeExceeded",
    "AlphaChannelLost",
    "MissingVariantOutput",
    "PackValidationError",
    "DuplicateKey",
    "AssetConsistencyError",
    "ProcessedFolderMissing",
    "MissingVariant",
    "StagingError",
    "BatchLockedError",
    "CircularReferenceError",
]
