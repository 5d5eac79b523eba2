from __future__ import annotations

"""
Pipeline phases and the persisted record of which of them have completed.
"""

from enum import IntEnum
from pathlib import Path
from typing import Dict, List

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .config import (
    COOCCURRENCE_DATASET,
    ITEM_ID_INDEX_DATASET,
    PARTIAL_MULTIPLY_DATASET,
    USER_VECTORS_DATASET,
)


class Phase(IntEnum):
    ITEM_ID_INDEX = 0
    USER_VECTORS = 1
    COOCCURRENCE = 2
    PARTIAL_MULTIPLY = 3
    AGGREGATE_AND_RECOMMEND = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: str) -> "Phase":
        """Accept either the phase number or its name (any case)."""
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        try:
            return cls[text.upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown phase {value!r}; expected 0-4 or one of {[p.label for p in cls]}")


# Dataset each phase writes under the temp dir; the last phase writes the output file.
PHASE_DATASETS = {
    Phase.ITEM_ID_INDEX: ITEM_ID_INDEX_DATASET,
    Phase.USER_VECTORS: USER_VECTORS_DATASET,
    Phase.COOCCURRENCE: COOCCURRENCE_DATASET,
    Phase.PARTIAL_MULTIPLY: PARTIAL_MULTIPLY_DATASET,
}


class PipelineState(BaseModel):
    """
    Completion markers, one per phase, each tagged with the configuration
    fingerprint the phase completed under.

    A phase is listed only after its output is durable.
    """

    phases: Dict[int, str] = Field(default_factory=dict)

    @property
    def completed(self) -> List[int]:
        return sorted(self.phases)

    def is_complete(self, phase: Phase, fingerprint: str) -> bool:
        return self.phases.get(int(phase)) == fingerprint

    def mark_complete(self, phase: Phase, fingerprint: str) -> None:
        self.phases[int(phase)] = fingerprint

    def invalidate_from(self, phase: Phase) -> None:
        """Drop markers for ``phase`` and everything downstream of it."""
        self.phases = {p: fp for p, fp in self.phases.items() if p < int(phase)}

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(path)

    @classmethod
    def load(cls, path: Path) -> "PipelineState":
        """Read the saved state, or start fresh when there is none."""
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.warning("Ignoring unreadable pipeline state at {}: {}", path, e)
            return cls()
