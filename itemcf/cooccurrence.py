from __future__ import annotations

"""
Co-occurrence builder.

Every pair of items rated by the same user is one unit of co-occurrence
evidence, counted in both directions. Work per user is quadratic in the
number of rated items; the fan-out cap lives in the join phase, not here,
because that phase reads the same unpruned vectors.
"""

from typing import Dict, Iterator, List, Sequence, Tuple

from loguru import logger

from .pipeline_types import SparseVector, UserVector
from .runtime import Record, StageInput, run_stage

COOCCURRENCE_UNIT = 1.0


def user_vector_to_cooccurrence(user_id: int, vector: UserVector) -> Iterator[Record]:
    """Emit, for each rated item, a partial column of the other items the user rated."""
    indices = sorted(vector.entries)
    if len(indices) < 2:
        return
    for i in indices:
        yield i, {j: COOCCURRENCE_UNIT for j in indices if j != i}


def add_into(total: SparseVector, other: SparseVector) -> SparseVector:
    for index, value in other.items():
        total[index] = total.get(index, 0.0) + value
    return total


def sum_columns(index: int, partial_columns: List[SparseVector]) -> Iterator[Record]:
    column: SparseVector = {}
    for partial in partial_columns:
        add_into(column, partial)
    yield index, column


def build_cooccurrence(
    user_vectors: Sequence[Tuple[int, UserVector]],
    workers: int = 1,
    num_splits: int = 4,
) -> List[Tuple[int, SparseVector]]:
    columns = run_stage(
        [StageInput(records=user_vectors, mapper=user_vector_to_cooccurrence)],
        reducer=sum_columns,
        combiner=sum_columns,
        workers=workers,
        num_splits=num_splits,
        name="cooccurrence",
    )
    if columns:
        widest = max(len(col) for _, col in columns)
        logger.info("Built {} co-occurrence columns (widest has {} entries)", len(columns), widest)
    else:
        logger.info("No co-occurring items found")
    return columns
