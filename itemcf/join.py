from __future__ import annotations

"""
Partial-product joiner.

Both the co-occurrence columns and the split user preferences are keyed by
item index. For each index the reducer receives exactly one column and the
(user, value) contributions of every user who rated that item.
"""

from typing import Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from .errors import InvariantViolationError
from .pipeline_types import PrefSlot, SparseVector, UserVector, VectorAndPrefs, VectorOrPref
from .runtime import Mapper, Record, StageInput, run_stage


def wrap_cooccurrence_column(index: int, column: SparseVector) -> Iterator[Record]:
    yield index, VectorOrPref.of_vector(column)


def to_vector_and_prefs(index: int, values: List[VectorOrPref]) -> Iterator[Record]:
    user_ids: List[int] = []
    pref_values: List[PrefSlot] = []
    column: Optional[SparseVector] = None
    for value in values:
        if value.is_vector:
            if column is not None:
                raise InvariantViolationError(
                    f"Found two co-occurrence columns for item index {index}"
                )
            column = value.vector
        else:
            user_ids.append(value.user_id)
            pref_values.append(value.value)

    # No column: the item co-occurs with nothing. No prefs: nobody to score for.
    if column is None or not user_ids:
        return
    yield index, VectorAndPrefs(vector=column, user_ids=user_ids, values=pref_values)


def join_columns_and_prefs(
    columns: Sequence[Tuple[int, SparseVector]],
    user_vectors: Sequence[Tuple[int, UserVector]],
    splitter: Mapper,
    workers: int = 1,
    num_splits: int = 4,
) -> List[Tuple[int, VectorAndPrefs]]:
    joined = run_stage(
        [
            StageInput(records=columns, mapper=wrap_cooccurrence_column),
            StageInput(records=user_vectors, mapper=splitter),
        ],
        reducer=to_vector_and_prefs,
        workers=workers,
        num_splits=num_splits,
        name="partialMultiply",
    )
    logger.info("Joined {} item columns with user preferences", len(joined))
    return joined
