"""Load and structurally validate authored pack descriptors."""

import copy
import json
import math
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from pydantic import ValidationError

from .canonical import stable_stringify
from .exceptions import DuplicateKey, PackValidationError
from .models import PackIndex

SUPPORTED_SCHEMA_VERSIONS = (1,)


def _assert_no_dupes(values: Iterable[Any], label: str) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise DuplicateKey(label, str(value))
        seen.add(value)


def validate_pack_index(data: Any) -> PackIndex:
    """
    Validate a parsed pack descriptor and return it as a PackIndex.

    Purely structural: the file system is never consulted.

    Raises:
        DuplicateKey: If two stickers share a stickerId or an inputRef
        PackValidationError: For any other structural problem
    """
    if not isinstance(data, dict):
        raise PackValidationError("Pack index must be a JSON object")

    schema_version = data.get("schemaVersion")
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise PackValidationError(f"Unsupported schemaVersion: {schema_version}")

    pack = data.get("pack")
    if not isinstance(pack, dict):
        raise PackValidationError("pack is required")
    if not pack.get("packId"):
        raise PackValidationError("pack.packId is required")
    if not pack.get("name"):
        raise PackValidationError("pack.name is required")
    if not isinstance(pack.get("isActive"), bool):
        raise PackValidationError("pack.isActive must be boolean")

    stickers = data.get("stickers")
    if not isinstance(stickers, list) or not stickers:
        raise PackValidationError("stickers[] is required")
    if not all(isinstance(entry, dict) for entry in stickers):
        raise PackValidationError("stickers[] entries must be objects")

    for entry in stickers:
        for key in ("stickerId", "inputRef"):
            value = entry.get(key)
            if value is not None and not isinstance(value, str):
                raise PackValidationError(f"{key} must be a string, got {type(value).__name__}")

    _assert_no_dupes((entry.get("stickerId") for entry in stickers), "stickerId")
    _assert_no_dupes((entry.get("inputRef") for entry in stickers), "inputRef")

    for entry in stickers:
        sticker_id = entry.get("stickerId")
        if not sticker_id:
            raise PackValidationError("stickerId is required")
        if not entry.get("name"):
            raise PackValidationError(f"sticker {sticker_id}: name is required")
        if not entry.get("inputRef"):
            raise PackValidationError(f"sticker {sticker_id}: inputRef is required")

    try:
        stable_stringify(data)
    except (ValueError, TypeError) as exc:
        raise PackValidationError(f"Pack index is not canonical JSON: {exc}") from exc

    try:
        index = PackIndex.model_validate(data)
    except ValidationError as exc:
        raise PackValidationError(f"Invalid pack index: {exc}") from exc

    index._raw = copy.deepcopy(data)
    return index


def _reject_constant(name: str) -> Any:
    raise PackValidationError(f"Non-finite number {name} is not allowed")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        _reject_constant(text)
    return value


def load_pack_index(path: Union[str, Path]) -> PackIndex:
    """Read a ``*.source.json`` file and validate it."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data: Dict[str, Any] = json.load(
                fh, parse_constant=_reject_constant, parse_float=_finite_float
            )
    except UnicodeDecodeError as exc:
        raise PackValidationError(f"{path} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PackValidationError(f"Invalid JSON in {path}: {exc}") from exc
    return validate_pack_index(data)
