"""Tests for processed variant inspection."""

import hashlib

import pytest

from sticker_pipeline.core.exceptions import AssetConsistencyError, MissingVariant
from sticker_pipeline.core.inspector import inspect_variant, sha256_file, variant_rel_path
from sticker_pipeline.core.models import VariantSpec
from sticker_pipeline.testing.fakes import write_test_image

THUMB = VariantSpec(key="thumb", max_size_px=128, format="webp")
FULL = VariantSpec(key="full", max_size_px=1024, format="png")


def test_sha256_file_streams_in_chunks(tmp_path):
    path = tmp_path / "blob.bin"
    data = bytes(range(256)) * 1000
    path.write_bytes(data)
    assert sha256_file(path, chunk_size=1000) == hashlib.sha256(data).hexdigest()
    assert sha256_file(path) == hashlib.sha256(data).hexdigest()


def test_sha256_of_empty_file(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert sha256_file(path) == hashlib.sha256(b"").hexdigest()


def test_variant_rel_path_is_posix():
    assert variant_rel_path("animals/cat", THUMB) == "animals/cat/thumb.webp"
    assert variant_rel_path("/animals/cat/", FULL) == "animals/cat/full.png"


def test_inspect_variant(tmp_path):
    path = write_test_image(
        tmp_path / "animals" / "cat" / "thumb.webp", width=128, height=85, image_format="WEBP"
    )
    info = inspect_variant(tmp_path, "animals/cat", THUMB)

    assert info.key == "thumb"
    assert info.format == "webp"
    assert info.mime == "image/webp"
    assert info.path == "animals/cat/thumb.webp"
    assert (info.width, info.height) == (128, 85)
    assert info.byte_size == path.stat().st_size
    assert info.sha256 == hashlib.sha256(path.read_bytes()).hexdigest()


def test_inspect_reads_fresh_content(tmp_path):
    target = tmp_path / "animals" / "cat" / "full.png"
    write_test_image(target, width=10, height=10)
    first = inspect_variant(tmp_path, "animals/cat", FULL)
    write_test_image(target, width=20, height=10)
    second = inspect_variant(tmp_path, "animals/cat", FULL)
    assert first.sha256 != second.sha256
    assert second.width == 20


def test_missing_variant(tmp_path):
    (tmp_path / "animals" / "cat").mkdir(parents=True)
    with pytest.raises(MissingVariant) as excinfo:
        inspect_variant(tmp_path, "animals/cat", FULL)
    assert isinstance(excinfo.value, AssetConsistencyError)
    assert excinfo.value.input_ref == "animals/cat"
    assert excinfo.value.filename == "full.png"
    assert "inputRef=animals/cat" in str(excinfo.value)
