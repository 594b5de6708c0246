"""Turn one source image into every variant a profile requires."""

from pathlib import Path
from typing import List, Union

from PIL import Image

from .error_handling import with_error_handling
from .exceptions import VariantSizeExceeded
from .image_utils import encode_variant, normalize_color, read_image_info, resize_inside
from .logging_config import get_logger
from .models import TransformProfile, VariantResult


def load_source(input_path: Union[str, Path]) -> "Image.Image":
    """Decode a source image fully, failing on truncated or corrupt data."""
    with Image.open(input_path) as img:
        img.load()
        return normalize_color(img)


@with_error_handling
def transform(
    input_path: Union[str, Path], profile: TransformProfile
) -> List[VariantResult]:
    """
    Produce one re-encoded buffer per VariantSpec of ``profile``.

    The source is decoded once; every variant is resized from that same
    base so quality loss never compounds across variants.

    Args:
        input_path: Path of the staged source image
        profile: Transform profile describing the variants

    Returns:
        Variant results in profile order

    Raises:
        VariantSizeExceeded: If an encoded variant is larger than its ceiling
        TransformError: If the source cannot be decoded
    """
    logger = get_logger("transformer")
    base = load_source(input_path)
    logger.debug(f"[{input_path}] Loaded source: {base.width}x{base.height} {base.mode}")

    results: List[VariantResult] = []
    for spec in profile.variants:
        resized = resize_inside(base, spec, profile.forbid_enlarge)
        data = encode_variant(resized, spec, profile)

        # Encoder rounding must not sneak past the ceiling.
        width, height, alpha = read_image_info(data)
        if width > spec.max_size_px or height > spec.max_size_px:
            raise VariantSizeExceeded(spec.key, spec.max_size_px, width, height)

        results.append(
            VariantResult(
                key=spec.key,
                format=spec.format,
                width=width,
                height=height,
                byte_size=len(data),
                has_alpha=alpha,
                buffer=data,
            )
        )
        logger.debug(f"[{input_path}] {spec.key}: {width}x{height}, {len(data)} bytes")

    return results
