"""Repo root discovery and the on-disk asset layout."""

import json
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from .exceptions import DiscoveryError

DEFAULT_REPO_NAME = "stickerboards"


def find_repo_root(start: Optional[Union[str, Path]] = None, repo_name: Optional[str] = None) -> Path:
    """
    Walk upward from ``start`` to the directory whose package.json names the repo.

    Only CLI argument defaults use this; pipeline code receives explicit
    paths. ``STICKER_REPO_ROOT`` short-circuits the walk and
    ``STICKER_REPO_NAME`` changes the project name looked for.

    Raises:
        DiscoveryError: If no matching package.json is found
    """
    env_root = os.getenv("STICKER_REPO_ROOT")
    if env_root:
        root = Path(env_root).resolve()
        if not root.is_dir():
            raise DiscoveryError(f"STICKER_REPO_ROOT is not a directory: {root}")
        return root

    name = repo_name or os.getenv("STICKER_REPO_NAME", DEFAULT_REPO_NAME)
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        pkg_path = directory / "package.json"
        if not pkg_path.is_file():
            continue
        try:
            pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            # unreadable package.json: keep walking
            continue
        if isinstance(pkg, dict) and pkg.get("name") == name:
            return directory

    raise DiscoveryError(f"Could not find repo root (package.json with name '{name}').")


def rel_to_root(root: Union[str, Path], path: Union[str, Path]) -> str:
    """Path relative to ``root`` with POSIX separators."""
    return Path(os.path.relpath(Path(path), Path(root))).as_posix()


class AssetLayout(BaseModel):
    """Default directories of the asset pipeline below a repo root."""

    repo_root: Path

    @property
    def assets_root(self) -> Path:
        return self.repo_root / "data" / "assets"

    @property
    def staged_dir(self) -> Path:
        return self.assets_root / "staged"

    @property
    def processed_dir(self) -> Path:
        return self.assets_root / "processed"

    @property
    def packs_dir(self) -> Path:
        return self.assets_root / "manifests" / "packs"

    @property
    def generated_dir(self) -> Path:
        return self.assets_root / "manifests" / "generated"

    @property
    def uploads_dir(self) -> Path:
        return self.assets_root / "uploads"
