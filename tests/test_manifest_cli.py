"""Tests for the sticker-manifest command line."""

import json

import pytest

from sticker_pipeline.core.profiles import STICKERS_V1
from sticker_pipeline.manifest import EXIT_FAILURES, EXIT_OK, build_config, parse_args, run
from sticker_pipeline.testing.fakes import setup_test_repo, write_processed_variants


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("STICKER_REPO_ROOT", raising=False)
    monkeypatch.delenv("STICKER_REPO_NAME", raising=False)


@pytest.fixture
def layout(tmp_path):
    layout = setup_test_repo(tmp_path)
    write_processed_variants(layout.processed_dir, "animals/cat", STICKERS_V1)
    write_processed_variants(layout.processed_dir, "animals/dog", STICKERS_V1)
    return layout


def test_pack_or_all_is_required():
    with pytest.raises(SystemExit) as excinfo:
        parse_args([])
    assert excinfo.value.code == 2


def test_pack_and_all_are_exclusive():
    with pytest.raises(SystemExit) as excinfo:
        parse_args(["--pack", "x.source.json", "--all"])
    assert excinfo.value.code == 2


def test_build_config_defaults(layout):
    config = build_config(parse_args(["--all", "--repo-root", str(layout.repo_root)]))
    root = layout.repo_root.resolve()
    assert config.repo_root == root
    assert config.processed_root == root / "data" / "assets" / "processed"
    assert config.packs_dir == root / "data" / "assets" / "manifests" / "packs"
    assert config.generated_dir == root / "data" / "assets" / "manifests" / "generated"
    assert config.uploads_dir == root / "data" / "assets" / "uploads"
    assert config.object_prefix_base == "catalog"
    assert config.all_packs is True


def test_build_config_discovers_repo_root(layout, monkeypatch):
    monkeypatch.chdir(layout.packs_dir)
    config = build_config(parse_args(["--pack", "test_pack.source.json"]))
    assert config.repo_root == layout.repo_root.resolve()


def test_run_writes_batch(layout):
    code = run(["--pack", "test_pack.source.json", "--repo-root", str(layout.repo_root)])

    assert code == EXIT_OK
    manifests = list(layout.generated_dir.glob("manifest.b_*.json"))
    assert len(manifests) == 1
    batch_id = json.loads(manifests[0].read_text(encoding="utf-8"))["batchId"]
    plan = json.loads((layout.uploads_dir / batch_id / "_upload.json").read_text(encoding="utf-8"))
    assert len(plan["objects"]) == 8
    assert (layout.uploads_dir / batch_id / "files" / "cat" / "full.png").is_file()


def test_object_prefix_base_option(layout):
    code = run([
        "--pack", "test_pack.source.json",
        "--repo-root", str(layout.repo_root),
        "--object-prefix-base", "cdn/v2",
    ])
    assert code == EXIT_OK
    (plan_path,) = layout.uploads_dir.glob("b_*/_upload.json")
    plan = json.loads(plan_path.read_text(encoding="utf-8"))
    assert plan["objectPrefix"].startswith("cdn/v2/test_pack/b_")


def test_dry_run_writes_nothing(layout):
    assert run(["--all", "--dry-run", "--repo-root", str(layout.repo_root)]) == EXIT_OK
    assert not layout.generated_dir.exists()
    assert not layout.uploads_dir.exists()


def test_single_pack_failure_exits_2(layout):
    (layout.processed_dir / "animals" / "dog" / "thumb.webp").unlink()
    code = run(["--pack", "test_pack.source.json", "--repo-root", str(layout.repo_root)])
    assert code == EXIT_FAILURES
    assert not layout.generated_dir.exists()


def test_missing_pack_file_exits_2(layout):
    code = run(["--pack", "nope.source.json", "--repo-root", str(layout.repo_root)])
    assert code == EXIT_FAILURES


def test_missing_processed_root_exits_2(tmp_path):
    layout = setup_test_repo(tmp_path)
    assert run(["--all", "--repo-root", str(layout.repo_root)]) == EXIT_FAILURES
