"""Testing utilities and fakes for the sticker pipeline."""

from .fakes import (
    FakeLogger,
    FakeTransformer,
    create_test_image,
    write_test_image,
    make_pack_index,
    setup_test_repo,
    write_processed_variants,
)

__all__ = [
    "FakeLogger",
    "FakeTransformer",
    "create_test_image",
    "write_test_image",
    "make_pack_index",
    "setup_test_repo",
    "write_processed_variants",
]
