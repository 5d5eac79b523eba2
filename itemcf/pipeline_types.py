"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union


class Excluded(Enum):
    """Marker for a preference pruned out of the partial-product join.

    The slot keeps its item index (the user still rated the item) but the
    value must never be used in a score.
    """

    EXCLUDED = "excluded"

    def __repr__(self) -> str:
        return "EXCLUDED"


EXCLUDED = Excluded.EXCLUDED

# A user-vector slot is either a real preference value or EXCLUDED.
PrefSlot = Union[float, Excluded]

# Sparse vector: index -> value, absent indices are implicitly zero.
SparseVector = Dict[int, float]


def is_excluded(slot: PrefSlot) -> bool:
    return slot is EXCLUDED


@dataclass(frozen=True)
class Preference:
    """One raw (user, item, value) record."""

    user_id: int
    item_id: int
    value: float = 1.0


@dataclass
class UserVector:
    """A user's preferences keyed by item index."""

    user_id: int
    entries: Dict[int, PrefSlot] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class VectorOrPref:
    """
    Either a co-occurrence column or one (user, value) contribution.

    Both producers feeding the join share one keyed stream through this type.
    """

    vector: Optional[SparseVector] = None
    user_id: Optional[int] = None
    value: Optional[PrefSlot] = None

    @classmethod
    def of_vector(cls, vector: SparseVector) -> "VectorOrPref":
        return cls(vector=vector)

    @classmethod
    def of_pref(cls, user_id: int, value: PrefSlot) -> "VectorOrPref":
        return cls(user_id=user_id, value=value)

    @property
    def is_vector(self) -> bool:
        return self.vector is not None


@dataclass
class VectorAndPrefs:
    """A co-occurrence column joined with the users who rated its item."""

    vector: SparseVector
    user_ids: List[int]
    values: List[PrefSlot]


@dataclass
class PartialScoreVector:
    """
    Partial recommendation scores for one user.

    ``rated`` holds the item indices the user already has a preference for;
    they survive every sum so the final ranking can drop them.
    """

    scores: SparseVector = field(default_factory=dict)
    rated: FrozenSet[int] = frozenset()
