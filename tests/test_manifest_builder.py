"""Tests for manifest and upload plan assembly."""

from pathlib import Path

from sticker_pipeline.core.manifest import (
    CACHE_CONTROL,
    StickerVariants,
    build_manifest,
    build_upload_plan,
    effective_profile,
    manifest_filename,
    merge_tags,
    object_prefix,
    pack_default_profile,
    staged_files,
    variant_hashes,
)
from sticker_pipeline.core.models import VariantInfo
from sticker_pipeline.core.pack_index import validate_pack_index
from sticker_pipeline.testing.fakes import make_pack_index

CREATED_AT = "2024-05-01T12:00:00.000Z"
BATCH_ID = "b_0123456789ab"


def _info(input_ref, key, fmt, digest):
    return VariantInfo(
        key=key,
        format=fmt,
        mime=f"image/{fmt}",
        path=f"{input_ref}/{key}.{fmt}",
        sha256=digest * 64,
        byte_size=100,
        width=64,
        height=32,
    )


def _stickers():
    return {
        "cat": StickerVariants(
            profile="stickers-v1",
            variants=[
                _info("animals/cat", "thumb", "webp", "a"),
                _info("animals/cat", "full", "png", "b"),
            ],
        ),
        "dog": StickerVariants(
            profile="stickers-v1",
            variants=[_info("animals/dog", "thumb", "webp", "c")],
        ),
    }


class TestHelpers:
    def test_merge_tags_keeps_first_occurrence_order(self):
        assert merge_tags(["animals", "cute"], ["cute", "cat", "animals"]) == ["animals", "cute", "cat"]
        assert merge_tags(None, ["x"]) == ["x"]
        assert merge_tags(["x"], None) == ["x"]
        assert merge_tags(None, None) == []

    def test_profile_resolution(self):
        data = make_pack_index(
            stickers=[
                {"stickerId": "a", "name": "A", "inputRef": "a", "profile": "custom-v2"},
                {"stickerId": "b", "name": "B", "inputRef": "b"},
            ]
        )
        pack = validate_pack_index(data)
        assert effective_profile(pack.stickers[0], pack, "stickers-v1") == "custom-v2"
        assert effective_profile(pack.stickers[1], pack, "fallback-v1") == "stickers-v1"

        del data["defaults"]
        bare = validate_pack_index(data)
        assert pack_default_profile(bare, "stickers-v1") == "stickers-v1"
        assert bare.default_tags == []

    def test_object_prefix(self):
        assert object_prefix("catalog", "pack", BATCH_ID) == f"catalog/pack/{BATCH_ID}"
        assert object_prefix("/cdn/catalog/", "pack", BATCH_ID) == f"cdn/catalog/pack/{BATCH_ID}"
        assert object_prefix("", "pack", BATCH_ID) == f"pack/{BATCH_ID}"

    def test_manifest_filename(self):
        assert manifest_filename(BATCH_ID) == f"manifest.{BATCH_ID}.json"

    def test_variant_hashes(self):
        assert variant_hashes(_stickers()) == [
            ("cat", "thumb", "a" * 64),
            ("cat", "full", "b" * 64),
            ("dog", "thumb", "c" * 64),
        ]


class TestBuildManifest:
    def test_manifest_contents(self):
        pack = validate_pack_index(make_pack_index(description="A pack"))
        manifest = build_manifest(
            pack,
            BATCH_ID,
            CREATED_AT,
            _stickers(),
            pack_index_path="data/assets/manifests/packs/test_pack.source.json",
            processed_root="data/assets/processed",
            default_profile="stickers-v1",
        )
        dumped = manifest.to_json_dict()

        assert dumped["schemaVersion"] == 1
        assert dumped["batchId"] == BATCH_ID
        assert dumped["createdAt"] == CREATED_AT
        assert dumped["source"] == {
            "packIndexPath": "data/assets/manifests/packs/test_pack.source.json",
            "processedRoot": "data/assets/processed",
            "profile": "stickers-v1",
        }
        assert dumped["pack"] == {
            "packId": "test_pack",
            "name": "Test Pack",
            "description": "A pack",
            "isActive": True,
            "tags": ["animals"],
        }
        cat, dog = dumped["stickers"]
        assert cat["tags"] == ["animals", "cute"]
        assert dog["tags"] == ["animals"]
        assert cat["inputRef"] == "animals/cat"
        assert cat["assets"]["profile"] == "stickers-v1"
        assert [v["key"] for v in cat["assets"]["variants"]] == ["thumb", "full"]
        assert cat["assets"]["variants"][0]["path"] == "animals/cat/thumb.webp"


class TestUploadPlan:
    def test_staged_files_follow_pack_order(self, tmp_path):
        pack = validate_pack_index(make_pack_index())
        processed = tmp_path / "processed"
        batch_dir = tmp_path / "uploads" / BATCH_ID
        files = staged_files(pack, _stickers(), processed, batch_dir)

        assert [(f.sticker_id, f.info.key) for f in files] == [
            ("cat", "thumb"),
            ("cat", "full"),
            ("dog", "thumb"),
        ]
        assert files[0].source == processed / "animals/cat" / "thumb.webp"
        assert files[0].destination == batch_dir / "files" / "cat" / "thumb.webp"

    def test_upload_plan_contents(self, tmp_path):
        pack = validate_pack_index(make_pack_index())
        repo_root = tmp_path
        processed = repo_root / "data" / "assets" / "processed"
        batch_dir = repo_root / "data" / "assets" / "uploads" / BATCH_ID
        files = staged_files(pack, _stickers(), processed, batch_dir)

        plan = build_upload_plan(
            pack,
            BATCH_ID,
            CREATED_AT,
            files,
            repo_root=repo_root,
            processed_root=processed,
            batch_dir=batch_dir,
            object_prefix_base="catalog",
        )
        dumped = plan.to_json_dict()

        assert dumped["schemaVersion"] == 1
        assert dumped["batchId"] == BATCH_ID
        assert dumped["processedRoot"] == "data/assets/processed"
        assert dumped["uploadsRoot"] == f"data/assets/uploads/{BATCH_ID}"
        assert dumped["objectPrefix"] == f"catalog/test_pack/{BATCH_ID}"
        assert len(dumped["objects"]) == 3

        first = dumped["objects"][0]
        assert first == {
            "stickerId": "cat",
            "variantKey": "thumb",
            "localPath": f"data/assets/uploads/{BATCH_ID}/files/cat/thumb.webp",
            "sha256": "a" * 64,
            "bytes": 100,
            "mime": "image/webp",
            "objectKey": f"catalog/test_pack/{BATCH_ID}/cat/thumb.webp",
            "cacheControl": CACHE_CONTROL,
        }
        for obj in dumped["objects"]:
            assert obj["objectKey"].startswith(dumped["objectPrefix"] + "/")
            assert not Path(obj["localPath"]).is_absolute()
