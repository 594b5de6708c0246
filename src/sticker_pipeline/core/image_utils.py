"""Image processing utilities for the sticker pipeline."""

import io
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, ImageCms, ImageOps

from .error_handling import with_error_handling
from .logging_config import get_logger
from .models import TransformProfile, VariantSpec

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")

_SRGB_PROFILE = ImageCms.createProfile("sRGB")


def is_image_file(path: Union[str, Path]) -> bool:
    """Return True when the file extension is one the optimize stage accepts."""
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def has_alpha_channel(img: "Image.Image") -> bool:
    """Return True if the image carries an alpha channel (or palette transparency)."""
    return img.mode in _ALPHA_MODES or "transparency" in img.info


def has_transparency(img: "Image.Image") -> bool:
    """
    Return True if at least one pixel is not fully opaque.

    An alpha channel whose every value is 255 does not count: WebP encoders
    drop such a channel, so it cannot be carried into the variants.
    """
    if not has_alpha_channel(img):
        return False
    alpha = img.convert("RGBA").getchannel("A")
    low, _ = alpha.getextrema()
    return low < 255


def normalize_color(img: "Image.Image") -> "Image.Image":
    """
    Bring a decoded image into sRGB with a canonical mode.

    EXIF orientation is applied, embedded ICC profiles are converted to sRGB
    and the result is RGBA when the source had alpha, RGB otherwise.
    """
    img = ImageOps.exif_transpose(img)
    keep_alpha = has_alpha_channel(img)
    target_mode = "RGBA" if keep_alpha else "RGB"

    icc = img.info.get("icc_profile")
    if icc and img.mode in ("RGB", "RGBA", "CMYK"):
        try:
            src_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc))
            img = ImageCms.profileToProfile(
                img,
                src_profile,
                _SRGB_PROFILE,
                outputMode="RGBA" if img.mode == "RGBA" else "RGB",
            )
        except ImageCms.PyCMSError as exc:
            get_logger("transformer").warning(
                f"Ignoring unusable ICC profile, assuming sRGB: {exc}"
            )

    if img.mode != target_mode:
        img = img.convert(target_mode)
    img.info.pop("icc_profile", None)
    return img


def fit_inside(
    width: int, height: int, max_size_px: int, forbid_enlarge: bool = True
) -> Tuple[int, int]:
    """
    Calculate the size of a box fitting inside ``max_size_px`` on both axes.

    Aspect ratio is preserved; when ``forbid_enlarge`` is set an image that
    already fits keeps its size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid source dimensions: {width}x{height}")

    scale = min(max_size_px / width, max_size_px / height)
    if forbid_enlarge:
        scale = min(scale, 1.0)

    new_width = min(max_size_px, max(1, round(width * scale)))
    new_height = min(max_size_px, max(1, round(height * scale)))
    if forbid_enlarge:
        new_width = min(new_width, width)
        new_height = min(new_height, height)
    return new_width, new_height


def resize_inside(
    img: "Image.Image", spec: VariantSpec, forbid_enlarge: bool = True
) -> "Image.Image":
    """Resize a copy of ``img`` to fit inside the spec's max edge."""
    size = fit_inside(img.width, img.height, spec.max_size_px, forbid_enlarge)
    if size == img.size:
        return img.copy()
    return img.resize(size, Image.Resampling.LANCZOS)


def encode_variant(
    img: "Image.Image", spec: VariantSpec, profile: TransformProfile
) -> bytes:
    """
    Encode an image according to a variant spec and the profile's settings.

    Args:
        img: Resized, colour-normalized PIL Image
        spec: Variant spec choosing the output format
        profile: Profile supplying quality/compression and metadata policy

    Returns:
        Encoded image bytes
    """
    save_kwargs = {}
    if not profile.strip_metadata and img.info.get("exif"):
        save_kwargs["exif"] = img.info["exif"]

    output = io.BytesIO()
    if spec.format == "webp":
        img.save(
            output,
            format="WEBP",
            quality=profile.webp_quality,
            method=4,
            **save_kwargs,
        )
    elif spec.format == "png":
        img.save(
            output,
            format="PNG",
            compress_level=profile.png_compression_level,
            **save_kwargs,
        )
    else:
        raise ValueError(f"Unknown output format: {spec.format}")
    return output.getvalue()


def read_image_info(source: Union[str, Path, bytes]) -> Tuple[int, int, bool]:
    """
    Read width, height and alpha presence from image headers.

    Only the header is parsed; pixel data is not decoded.
    """
    stream = io.BytesIO(source) if isinstance(source, bytes) else source
    with Image.open(stream) as img:
        return img.width, img.height, has_alpha_channel(img)


@with_error_handling
def source_has_alpha(path: Union[str, Path]) -> bool:
    """Return True if the staged source image has meaningful transparency."""
    with Image.open(path) as img:
        return has_transparency(img)
