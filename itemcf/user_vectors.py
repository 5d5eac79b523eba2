from __future__ import annotations

"""
User vector builder: groups preferences by user into sparse vectors keyed by
item index.
"""

from functools import partial
from typing import Dict, Iterator, List, Sequence, Tuple

from loguru import logger

from .errors import InputConsistencyError
from .pipeline_types import Preference, UserVector
from .runtime import Record, StageInput, run_stage


def to_item_prefs(key, pref: Preference) -> Iterator[Record]:
    yield pref.user_id, (pref.item_id, pref.value)


def to_user_vector(
    user_id: int,
    values: List[Tuple[int, float]],
    item_index: Dict[int, int],
) -> Iterator[Record]:
    """
    Build one user's vector. Values arrive in input order, so a repeated item
    keeps its last value.
    """
    entries: Dict[int, float] = {}
    for item_id, value in values:
        index = item_index.get(item_id)
        if index is None:
            raise InputConsistencyError(
                f"Preference of user {user_id} references unknown item {item_id}"
            )
        entries[index] = value
    yield user_id, UserVector(user_id=user_id, entries=entries)


def build_user_vectors(
    records: Sequence[Record],
    item_index: Dict[int, int],
    workers: int = 1,
    num_splits: int = 4,
) -> List[Tuple[int, UserVector]]:
    vectors = run_stage(
        [StageInput(records=records, mapper=to_item_prefs)],
        reducer=partial(to_user_vector, item_index=item_index),
        workers=workers,
        num_splits=num_splits,
        name="userVectors",
    )
    logger.info("Built {} user vectors", len(vectors))
    return vectors
