"""Exception hierarchy for the sticker pipeline."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any


class StickerPipelineError(Exception):
    """Base exception for all sticker pipeline errors."""


class ConfigurationError(StickerPipelineError):
    """Error raised for invalid configuration options."""


class UnknownProfileError(ConfigurationError):
    """Error raised when a profile identity has no registered profile."""


class DiscoveryError(StickerPipelineError):
    """Error raised when the repo root or a required directory is missing."""


class TransformError(StickerPipelineError):
    """Error raised when transforming or validating a single asset fails."""


class VariantSizeExceeded(TransformError):
    """An encoded variant is larger than its VariantSpec ceiling."""

    def __init__(self, key: str, max_size_px: int, width: int, height: int):
        super().__init__(
            f"Variant {key} exceeds maxSizePx={max_size_px}: got {width}x{height}"
        )
        self.key = key
        self.max_size_px = max_size_px
        self.width = width
        self.height = height


class AlphaChannelLost(TransformError):
    """An encoded variant dropped the alpha channel of its source."""

    def __init__(self, key: str):
        super().__init__(f"Variant {key} lost alpha channel (input had alpha).")
        self.key = key


class MissingVariantOutput(TransformError):
    """The transformer did not produce a variant the profile requires."""

    def __init__(self, key: str):
        super().__init__(f"Missing expected variant: {key}")
        self.key = key


class PackValidationError(StickerPipelineError):
    """Error raised when a pack descriptor is structurally invalid."""


class DuplicateKey(PackValidationError):
    """Two sticker entries share a stickerId or inputRef."""

    def __init__(self, label: str, value: str):
        super().__init__(f"Duplicate {label}: {value}")
        self.label = label
        self.value = value


class AssetConsistencyError(StickerPipelineError):
    """Error raised when the processed tree does not match a pack descriptor."""


class ProcessedFolderMissing(AssetConsistencyError):
    """A sticker's inputRef has no processed folder."""

    def __init__(self, input_ref: str, expected: str):
        super().__init__(
            f"Processed folder missing for inputRef={input_ref} (expected: {expected})"
        )
        self.input_ref = input_ref


class MissingVariant(AssetConsistencyError):
    """A processed folder lacks one of its profile's variant files."""

    def __init__(self, input_ref: str, filename: str):
        super().__init__(f"Missing variant for inputRef={input_ref}: {filename}")
        self.input_ref = input_ref
        self.filename = filename


class StagingError(StickerPipelineError):
    """Error raised when materializing the upload batch directory fails."""


class BatchLockedError(StagingError):
    """Another run holds the lock on the same batch directory."""


class CircularReferenceError(StickerPipelineError, ValueError):
    """A structure passed to canonical serialization references itself."""


@contextmanager
def batch_error_handler(error_cls: type = StickerPipelineError) -> Any:
    """Context manager re-raising foreign exceptions as pipeline errors."""
    try:
        yield
    except StickerPipelineError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise error_cls(str(exc)) from exc
