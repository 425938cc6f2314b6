"""In-memory prototype store with exact incremental averaging."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from facegeom.errors import DimensionMismatchError
from facegeom.types import PrototypeRecord

LOGGER = logging.getLogger("facegeom.recognition.prototypes")


class PrototypeStore:
    """Maps identity label -> aggregated feature vector and sample count.

    The store never normalizes on its own; callers pass already-normalized
    vectors. Iteration follows insertion order.
    """

    def __init__(self, records: Optional[Dict[str, PrototypeRecord]] = None) -> None:
        self._records: Dict[str, PrototypeRecord] = dict(records or {})

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, label: object) -> bool:
        return label in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def labels(self) -> List[str]:
        return list(self._records.keys())

    def items(self) -> List[Tuple[str, PrototypeRecord]]:
        return list(self._records.items())

    def get(self, label: str) -> Optional[PrototypeRecord]:
        return self._records.get(label)

    def merge(self, label: str, vector: np.ndarray, sample_count: int) -> PrototypeRecord:
        """Fold ``sample_count`` observations averaging to ``vector`` into ``label``.

        updated = (old * old_count + new * new_count) / (old_count + new_count)
        """
        if not label:
            raise ValueError("Prototype label must be a non-empty string")
        if sample_count < 1:
            raise ValueError(f"sample_count must be >= 1, got {sample_count}")
        new_vec = np.asarray(vector, dtype=np.float64).reshape(-1)

        existing = self._records.get(label)
        if existing is None:
            record = PrototypeRecord(vector=new_vec.copy(), sample_count=sample_count)
            self._records[label] = record
            LOGGER.info("Registered %s (%d frames)", label, sample_count)
            return record

        if existing.vector.shape != new_vec.shape:
            raise DimensionMismatchError(
                f"Prototype {label!r} has dimension {existing.dimension}, got {new_vec.shape[0]}"
            )
        total = existing.sample_count + sample_count
        existing.vector = (existing.vector * existing.sample_count + new_vec * sample_count) / total
        existing.sample_count = total
        LOGGER.info("Updated %s (+%d frames, %d total)", label, sample_count, total)
        return existing

    def set(self, label: str, record: PrototypeRecord) -> bool:
        """Replace ``label`` unconditionally; returns True when a record was overwritten."""
        overwritten = label in self._records
        self._records[label] = record
        return overwritten

    def remove(self, label: str) -> bool:
        record = self._records.pop(label, None)
        if record is None:
            return False
        LOGGER.info("Removed %s", label)
        return True

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        if count:
            LOGGER.info("Cleared %d prototypes", count)
        return count

    def summary_frame(self) -> pd.DataFrame:
        """Tabular listing of enrolled identities."""
        rows = [
            {
                "label": label,
                "sample_count": record.sample_count,
                "dimension": record.dimension,
            }
            for label, record in self._records.items()
        ]
        return pd.DataFrame(rows, columns=["label", "sample_count", "dimension"])
