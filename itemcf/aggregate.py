from __future__ import annotations

"""
Aggregation and top-N selection.

Each joined record fans out one partial score vector per contributing user:
the user's preference value times the item's co-occurrence column. Partial
vectors are summed per user (the same sum serves as combiner), items the user
already rated are dropped, and the best N remaining items are returned.
"""

from functools import partial
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import RecommendedItem
from .pipeline_types import PartialScoreVector, VectorAndPrefs, is_excluded
from .runtime import Record, StageInput, run_stage


def partial_multiply(index: int, joined: VectorAndPrefs) -> Iterator[Record]:
    rated = frozenset((index,))
    for user_id, value in zip(joined.user_ids, joined.values):
        if is_excluded(value):
            # Pruned: no score, but the item still counts as rated.
            yield user_id, PartialScoreVector(scores={}, rated=rated)
            continue
        scores = {j: value * weight for j, weight in joined.vector.items()}
        yield user_id, PartialScoreVector(scores=scores, rated=rated)


def sum_partials(vectors: Iterable[PartialScoreVector]) -> PartialScoreVector:
    scores: Dict[int, float] = {}
    rated: set = set()
    for vector in vectors:
        for index, value in vector.scores.items():
            scores[index] = scores.get(index, 0.0) + value
        rated.update(vector.rated)
    return PartialScoreVector(scores=scores, rated=frozenset(rated))


def combine_partials(user_id: int, vectors: List[PartialScoreVector]) -> Iterator[Record]:
    yield user_id, sum_partials(vectors)


def top_n_items(
    scores: Dict[int, float],
    index_to_item: Dict[int, int],
    n: int,
) -> List[RecommendedItem]:
    """
    Rank by score descending, then ItemID ascending, and keep the first ``n``.
    """
    if not scores or n <= 0:
        return []
    item_ids = np.fromiter((index_to_item[i] for i in scores), dtype=np.int64, count=len(scores))
    values = np.fromiter(scores.values(), dtype=np.float64, count=len(scores))
    # lexsort sorts by the last key first
    order = np.lexsort((item_ids, -values))[:n]
    return [RecommendedItem(item_id=int(item_ids[k]), score=float(values[k])) for k in order]


def aggregate_and_recommend(
    user_id: int,
    vectors: List[PartialScoreVector],
    index_to_item: Dict[int, int],
    num_recommendations: int,
) -> Iterator[Record]:
    total = sum_partials(vectors)
    candidates = {
        index: score
        for index, score in total.scores.items()
        if index not in total.rated and score != 0.0
    }
    recommended = top_n_items(candidates, index_to_item, num_recommendations)
    if recommended:
        yield user_id, recommended


def aggregate_recommendations(
    joined: Sequence[Tuple[int, VectorAndPrefs]],
    index_to_item: Dict[int, int],
    num_recommendations: int,
    workers: int = 1,
    num_splits: int = 4,
) -> List[Tuple[int, List[RecommendedItem]]]:
    recommendations = run_stage(
        [StageInput(records=joined, mapper=partial_multiply)],
        reducer=partial(
            aggregate_and_recommend,
            index_to_item=index_to_item,
            num_recommendations=num_recommendations,
        ),
        combiner=combine_partials,
        workers=workers,
        num_splits=num_splits,
        name="aggregateAndRecommend",
    )
    logger.info("Produced recommendations for {} users", len(recommendations))
    return recommendations
