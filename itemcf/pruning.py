from __future__ import annotations

"""
Vector pruner / splitter.

Caps how many of a user's preferences take part in the partial-product join,
then re-keys what is left by item index so it can be joined with the
co-occurrence columns.

Pruning keeps the K preferences of largest absolute value. One pass over the
vector with a bounded min-heap finds the smallest of those K values; a second
pass marks every entry strictly below it as EXCLUDED. Entries tied with that
threshold stay in, so ties can admit more than K entries but never fewer.
Excluded entries are still emitted: the user rated the item, and the
aggregator needs that to keep it out of the user's recommendations.
"""

import heapq
from functools import partial
from typing import Dict, Iterator, List, Mapping, Optional, Set

from loguru import logger

from .pipeline_types import EXCLUDED, PrefSlot, UserVector, VectorOrPref, is_excluded
from .runtime import Record


def find_smallest_large_value(entries: Mapping[int, float], max_prefs: int) -> float:
    heap: List[float] = []
    for value in entries.values():
        magnitude = abs(value)
        if len(heap) < max_prefs:
            heapq.heappush(heap, magnitude)
        elif magnitude > heap[0]:
            heapq.heapreplace(heap, magnitude)
    return heap[0]


def maybe_prune_user_vector(entries: Mapping[int, PrefSlot], max_prefs: int) -> Dict[int, PrefSlot]:
    """
    Return the entries with all but the ``max_prefs`` largest-magnitude values
    replaced by EXCLUDED. Vectors with ``max_prefs`` entries or fewer come back
    unchanged.
    """
    if len(entries) <= max_prefs:
        return dict(entries)

    present = {index: value for index, value in entries.items() if not is_excluded(value)}
    if len(present) <= max_prefs:
        return dict(entries)

    threshold = find_smallest_large_value(present, max_prefs)
    pruned: Dict[int, PrefSlot] = {}
    for index, value in entries.items():
        if is_excluded(value) or abs(value) < threshold:
            pruned[index] = EXCLUDED
        else:
            pruned[index] = value
    return pruned


def split_user_vector(
    user_id: int,
    vector: UserVector,
    max_prefs: int,
    users_to_recommend_for: Optional[Set[int]] = None,
) -> Iterator[Record]:
    if users_to_recommend_for is not None and user_id not in users_to_recommend_for:
        return
    pruned = maybe_prune_user_vector(vector.entries, max_prefs)
    for index in sorted(pruned):
        yield index, VectorOrPref.of_pref(user_id, pruned[index])


def user_vector_splitter(
    max_prefs: int,
    users_to_recommend_for: Optional[Set[int]] = None,
):
    """Bind the splitter's settings into a picklable mapper."""
    if users_to_recommend_for is not None:
        logger.info("Splitting user vectors for {} selected users", len(users_to_recommend_for))
    return partial(
        split_user_vector,
        max_prefs=max_prefs,
        users_to_recommend_for=users_to_recommend_for,
    )
