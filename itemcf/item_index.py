from __future__ import annotations

"""
Item indexer: a dense, zero-based ItemIndex for every distinct ItemID.

Map emits each preference's ItemID; the same dedup step runs as combiner and
reducer, so each ItemID survives exactly once however often it is applied.
Indices are then assigned in ascending ItemID order, which makes the table a
pure function of the set of observed items.
"""

from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from loguru import logger

from .pipeline_types import Preference
from .runtime import Record, StageInput, run_stage

IndexTable = List[Tuple[int, int]]  # [(item_index, item_id), ...]


def map_item_ids(key, pref: Preference) -> Iterator[Record]:
    yield pref.item_id, None


def dedup_item_ids(item_id: int, values: List) -> Iterator[Record]:
    yield item_id, None


def assign_indices(distinct_item_ids: Iterable[int]) -> IndexTable:
    """Number the distinct ItemIDs densely from zero, in ascending order."""
    return [(index, item_id) for index, item_id in enumerate(sorted(set(distinct_item_ids)))]


def build_item_index(
    records: Sequence[Record],
    workers: int = 1,
    num_splits: int = 4,
) -> IndexTable:
    """
    Run the indexing phase over ``(key, Preference)`` records.
    """
    distinct = run_stage(
        [StageInput(records=records, mapper=map_item_ids)],
        reducer=dedup_item_ids,
        combiner=dedup_item_ids,
        workers=workers,
        num_splits=num_splits,
        name="itemIDIndex",
    )
    table = assign_indices(item_id for item_id, _ in distinct)
    logger.info("Indexed {} distinct items", len(table))
    return table


def item_id_to_index(table: IndexTable) -> Dict[int, int]:
    return {item_id: index for index, item_id in table}


def index_to_item_id(table: IndexTable) -> Dict[int, int]:
    return {index: item_id for index, item_id in table}
