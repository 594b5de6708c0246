"""Transform profiles known to the pipeline."""

from typing import Dict

from .exceptions import UnknownProfileError
from .models import TransformProfile, VariantSpec

STICKERS_V1 = TransformProfile(
    name="stickers",
    version=1,
    variants=(
        VariantSpec(key="thumb", max_size_px=128, format="webp"),
        VariantSpec(key="small", max_size_px=256, format="webp"),
        VariantSpec(key="medium", max_size_px=512, format="webp"),
        VariantSpec(key="full", max_size_px=1024, format="png"),
    ),
    webp_quality=82,
    png_compression_level=9,
    forbid_enlarge=True,
    strip_metadata=True,
)

DEFAULT_PROFILE_ID = STICKERS_V1.identity

PROFILES: Dict[str, TransformProfile] = {
    STICKERS_V1.identity: STICKERS_V1,
}


def get_profile(identity: str) -> TransformProfile:
    """
    Look up a registered profile by its ``<name>-v<version>`` identity.

    Raises:
        UnknownProfileError: If no profile is registered under ``identity``.
    """
    try:
        return PROFILES[identity]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise UnknownProfileError(
            f"Unknown profile '{identity}' (known profiles: {known})"
        ) from None
