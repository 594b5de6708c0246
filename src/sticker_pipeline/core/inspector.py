"""Measure processed variant files: size, dimensions and content hash."""

import hashlib
from pathlib import Path
from typing import Union

from .exceptions import MissingVariant
from .image_utils import read_image_info
from .models import VariantInfo, VariantSpec

HASH_CHUNK_SIZE = 64 * 1024


def sha256_file(path: Union[str, Path], chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute the SHA-256 of a file by streaming it in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as stream:
        for chunk in iter(lambda: stream.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def variant_rel_path(input_ref: str, spec: VariantSpec) -> str:
    """Processed-root relative POSIX path of a variant file."""
    return f"{input_ref.strip('/')}/{spec.filename}"


def inspect_variant(
    processed_root: Union[str, Path], input_ref: str, spec: VariantSpec
) -> VariantInfo:
    """
    Collect the facts the manifest records about one variant file.

    Nothing is cached: every call reads the file system afresh.

    Raises:
        MissingVariant: If the variant file does not exist
    """
    path = Path(processed_root) / input_ref / spec.filename
    if not path.is_file():
        raise MissingVariant(input_ref, spec.filename)

    width, height, _ = read_image_info(path)
    return VariantInfo(
        key=spec.key,
        format=spec.format,
        mime=spec.mime,
        path=variant_rel_path(input_ref, spec),
        sha256=sha256_file(path),
        byte_size=path.stat().st_size,
        width=width,
        height=height,
    )
