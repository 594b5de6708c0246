"""Canonical JSON serialization and batch identity derivation."""

import hashlib
import json
from typing import Any, Iterable, List, Mapping, Tuple

from .exceptions import CircularReferenceError

BATCH_ID_PREFIX = "b_"
BATCH_ID_LENGTH = 12

VariantHash = Tuple[str, str, str]


def _sorted_copy(value: Any, active: set) -> Any:
    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            raise CircularReferenceError("Cannot stable_stringify circular structure.")
        active.add(marker)
        try:
            return {str(k): _sorted_copy(value[k], active) for k in sorted(value, key=str)}
        finally:
            active.discard(marker)
    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in active:
            raise CircularReferenceError("Cannot stable_stringify circular structure.")
        active.add(marker)
        try:
            return [_sorted_copy(item, active) for item in value]
        finally:
            active.discard(marker)
    return value


def stable_stringify(value: Any) -> str:
    """
    Serialize ``value`` to deterministic JSON.

    Object keys are sorted recursively, arrays keep their order and the
    output is compact. Self-referential structures raise
    CircularReferenceError.
    """
    return json.dumps(
        _sorted_copy(value, set()),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_batch_id(pack_raw: Mapping[str, Any], variant_hashes: Iterable[VariantHash]) -> str:
    """
    Derive the deterministic batch id of a pack.

    Args:
        pack_raw: The pack descriptor exactly as authored
        variant_hashes: ``(sticker_id, variant_key, sha256)`` triples

    Returns:
        ``b_`` followed by the first 12 hex chars of the combined SHA-256
    """
    ordered: List[VariantHash] = sorted(
        variant_hashes, key=lambda item: f"{item[0]}:{item[1]}"
    )
    hashes = [
        {"stickerId": sticker_id, "variantKey": variant_key, "sha256": digest}
        for sticker_id, variant_key, digest in ordered
    ]
    combined = stable_stringify(pack_raw) + "\n" + stable_stringify(hashes)
    digest = sha256_hex(combined.encode("utf-8"))
    return f"{BATCH_ID_PREFIX}{digest[:BATCH_ID_LENGTH]}"
