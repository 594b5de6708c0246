"""Materialize upload batches on disk."""

import json
import os
import shutil
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import BatchLockedError, StagingError
from .inspector import sha256_file
from .logging_config import get_logger

LOCK_FILENAME = ".lock"


def ensure_dir(path: Union[str, Path]) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def stage_file(
    src: Union[str, Path], dst: Union[str, Path], expected_sha256: Optional[str] = None
) -> str:
    """
    Place ``src`` at ``dst`` by hardlink, falling back to a byte copy.

    A destination left by an earlier run of the same batch is accepted as long
    as its content still matches ``expected_sha256``.

    Returns:
        "linked", "copied" or "existing"

    Raises:
        StagingError: If the copy fails or an existing file has other content
    """
    logger = get_logger("staging")
    src, dst = Path(src), Path(dst)
    ensure_dir(dst.parent)

    try:
        os.link(src, dst)
        return "linked"
    except FileExistsError:
        if expected_sha256 is not None and sha256_file(dst) != expected_sha256:
            raise StagingError(
                f"Staged file {dst} exists with different content than {src}"
            ) from None
        logger.debug(f"Already staged: {dst}")
        return "existing"
    except OSError as exc:
        # EXDEV and filesystems without hardlinks
        logger.debug(f"Hardlink failed for {dst} ({exc}), copying instead")

    try:
        shutil.copyfile(src, dst)
    except OSError as exc:
        raise StagingError(f"Failed to stage {src} -> {dst}: {exc}") from exc
    return "copied"


def write_bytes_atomic(path: Union[str, Path], data: bytes) -> Path:
    """
    Write ``data`` to a temp file and move it over ``path``.

    The destination gets a fresh inode, so hardlinks to the previous file
    (staged upload batches) keep their old content.
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise StagingError(f"Failed to write {path}: {exc}") from exc
    return path


def write_json(path: Union[str, Path], data: Any) -> Path:
    """Write ``data`` as indented JSON, replacing the file atomically."""
    text = json.dumps(data, indent=2, ensure_ascii=False)
    return write_bytes_atomic(path, text.encode("utf-8"))


class BatchLock:
    """
    Exclusive lock on an upload batch directory.

    Held while a run stages files and writes its plan so two concurrent
    invocations cannot interleave inside the same batch.
    """

    def __init__(self, batch_dir: Union[str, Path]):
        self.batch_dir = Path(batch_dir)
        self.lock_path = self.batch_dir / LOCK_FILENAME
        self._held = False

    def __enter__(self) -> "BatchLock":
        ensure_dir(self.batch_dir)
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            raise BatchLockedError(
                f"Batch directory {self.batch_dir} is locked by another run "
                f"(remove {self.lock_path} if that run is gone)"
            ) from None
        with os.fdopen(fd, "w") as fh:
            fh.write(str(os.getpid()))
        self._held = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self._held:
            self.lock_path.unlink(missing_ok=True)
            self._held = False
        return False
