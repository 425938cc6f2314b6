"""JSON export/import of the prototype store.

Two on-disk shapes are accepted when reading:

* extended: ``{"Ana": {"vector": [...], "sampleCount": 3}}``
* legacy:   ``{"Ana": [...]}`` (sample count assumed to be 1)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np

from facegeom.errors import ImportFormatError
from facegeom.io_utils import dump_json, load_json
from facegeom.recognition.prototypes import PrototypeStore
from facegeom.types import PrototypeRecord

LOGGER = logging.getLogger("facegeom.exchange")


def export_prototypes(store: PrototypeStore, with_counts: bool = True) -> Dict[str, Any]:
    if with_counts:
        return {label: record.to_dict() for label, record in store.items()}
    return {label: record.vector.tolist() for label, record in store.items()}


def _sample_count(raw: Any) -> int:
    # bool is an int subclass; JSON true/false is not a count.
    if isinstance(raw, bool):
        raise ImportFormatError(f"sampleCount must be a positive integer, got {raw!r}")
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int) or raw < 1:
        raise ImportFormatError(f"sampleCount must be a positive integer, got {raw!r}")
    return raw


def decode_record(raw: Any) -> PrototypeRecord:
    """Turn either exchanged shape into a PrototypeRecord."""
    if isinstance(raw, Mapping):
        if "vector" not in raw:
            raise ImportFormatError("Prototype object is missing 'vector'")
        vector = raw["vector"]
        sample_count = _sample_count(raw.get("sampleCount", 1))
    else:
        vector = raw
        sample_count = 1
    if not isinstance(vector, (list, tuple)):
        raise ImportFormatError(f"Unsupported prototype vector of type {type(vector).__name__}")
    try:
        record = PrototypeRecord(vector=vector, sample_count=sample_count)
    except (TypeError, ValueError) as exc:
        raise ImportFormatError(f"Invalid prototype entry: {exc}") from exc
    if not np.all(np.isfinite(record.vector)):
        raise ImportFormatError("Prototype vector contains null or non-finite values")
    return record


def import_prototypes(store: PrototypeStore, payload: Any) -> List[str]:
    """Overwrite store entries with ``payload``; returns the overwritten labels.

    Every entry is decoded before the store is touched, so a rejected payload
    leaves the store unchanged. Vector dimensions are not checked here.
    """
    if not isinstance(payload, Mapping):
        raise ImportFormatError(
            f"Prototype payload must be a JSON object, got {type(payload).__name__}"
        )
    decoded: Dict[str, PrototypeRecord] = {}
    for label, raw in payload.items():
        if not isinstance(label, str) or not label:
            raise ImportFormatError(f"Invalid prototype label: {label!r}")
        try:
            decoded[label] = decode_record(raw)
        except ImportFormatError as exc:
            raise ImportFormatError(f"{label}: {exc}") from exc

    overwritten = [label for label, record in decoded.items() if store.set(label, record)]
    if overwritten:
        LOGGER.warning("Imported %d prototypes (overwritten: %s)", len(decoded), ", ".join(overwritten))
    else:
        LOGGER.info("Imported %d prototypes", len(decoded))
    return overwritten


def loads_prototypes(store: PrototypeStore, text: str) -> List[str]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatError(f"Invalid JSON: {exc}") from exc
    return import_prototypes(store, payload)


def export_to_file(store: PrototypeStore, path: Path, with_counts: bool = True) -> Path:
    if len(store) == 0:
        LOGGER.warning("Exporting an empty prototype store to %s", path)
    dump_json(path, export_prototypes(store, with_counts=with_counts))
    LOGGER.info("Exported %d prototypes to %s", len(store), path)
    return path


def import_from_file(store: PrototypeStore, path: Path) -> List[str]:
    try:
        payload = load_json(path)
    except json.JSONDecodeError as exc:
        raise ImportFormatError(f"Invalid JSON in {path}: {exc}") from exc
    return import_prototypes(store, payload)
