import math
import random

from itemcf.aggregate import (
    aggregate_and_recommend,
    aggregate_recommendations,
    partial_multiply,
    sum_partials,
    top_n_items,
)
from itemcf.pipeline_types import EXCLUDED, PartialScoreVector, VectorAndPrefs


def test_excluded_values_contribute_no_scores():
    joined = VectorAndPrefs(
        vector={1: 2.0, 2: 3.0},
        user_ids=[7, 8, 9],
        values=[EXCLUDED, 0.5, EXCLUDED],
    )

    out = list(partial_multiply(0, joined))

    by_user = {user_id: vector for user_id, vector in out}
    assert by_user[7].scores == {} and by_user[9].scores == {}
    assert by_user[8].scores == {1: 1.0, 2: 1.5}
    # every contributing user still has the item marked as rated
    assert all(vector.rated == frozenset({0}) for vector in by_user.values())


def test_twelve_preference_user_excluded_entries_reach_no_item():
    # Item i's column links it to item 100 only; user 1 rated items 1..12.
    # Items 1 and 2 were pruned, so item 100's score comes from 3..12 only.
    partials = []
    for i in range(1, 13):
        value = EXCLUDED if i in (1, 2) else float(i)
        joined = VectorAndPrefs(vector={100: 1.0}, user_ids=[1], values=[value])
        partials.extend(v for _, v in partial_multiply(i, joined))

    total = sum_partials(partials)

    assert total.scores == {100: float(sum(range(3, 13)))}
    assert total.rated == frozenset(range(1, 13))


def test_sum_partials_is_associative_and_commutative():
    rng = random.Random(0)
    vectors = [
        PartialScoreVector(
            scores={rng.randrange(20): rng.uniform(-3, 3) for _ in range(6)},
            rated=frozenset({rng.randrange(20)}),
        )
        for _ in range(30)
    ]

    flat = sum_partials(vectors)
    shuffled = vectors[:]
    rng.shuffle(shuffled)
    grouped = sum_partials(
        sum_partials(shuffled[i:i + 7]) for i in range(0, len(shuffled), 7)
    )

    assert flat.rated == grouped.rated
    assert flat.scores.keys() == grouped.scores.keys()
    for index, score in flat.scores.items():
        assert math.isclose(score, grouped.scores[index], rel_tol=1e-9, abs_tol=1e-12)


def test_rated_items_are_never_recommended():
    vectors = [
        PartialScoreVector(scores={0: 9.0, 1: 2.0, 2: 5.0}, rated=frozenset({0})),
        PartialScoreVector(scores={0: 1.0, 3: 1.0}, rated=frozenset({3})),
    ]
    index_to_item = {0: 100, 1: 101, 2: 102, 3: 103}

    (user_id, items), = aggregate_and_recommend(5, vectors, index_to_item, num_recommendations=10)

    assert user_id == 5
    assert [item.item_id for item in items] == [102, 101]


def test_top_n_is_capped_and_descending_with_itemid_tiebreak():
    scores = {0: 1.0, 1: 3.0, 2: 3.0, 3: 0.5, 4: 2.0}
    index_to_item = {0: 50, 1: 40, 2: 30, 3: 20, 4: 10}

    items = top_n_items(scores, index_to_item, n=3)

    assert [(i.item_id, i.score) for i in items] == [(30, 3.0), (40, 3.0), (10, 2.0)]
    scores_out = [i.score for i in items]
    assert scores_out == sorted(scores_out, reverse=True)


def test_user_with_only_excluded_prefs_gets_nothing():
    vectors = [PartialScoreVector(scores={}, rated=frozenset({1, 2}))]
    assert list(aggregate_and_recommend(1, vectors, {1: 1, 2: 2}, 10)) == []


def test_example_jane_paul_fred_end_to_end():
    # Mouse=0, PC=1, Game=2, Disk=3 (ItemIDs 10..13); Jane=1, Paul=2, Fred=3
    joined = [
        (0, VectorAndPrefs({1: 1.0}, [1], [1.0])),
        (1, VectorAndPrefs({0: 1.0, 2: 1.0}, [1, 2], [2.0, 1.0])),
        (2, VectorAndPrefs({1: 1.0}, [2], [1.0])),
    ]
    index_to_item = {0: 10, 1: 11, 2: 12, 3: 13}

    recs = dict(aggregate_recommendations(joined, index_to_item, 10, num_splits=2))

    # Jane reaches Game only through PC's column: 2.0 * 1.0
    assert [(i.item_id, i.score) for i in recs[1]] == [(12, 2.0)]
    # Paul reaches Mouse through PC's column
    assert [(i.item_id, i.score) for i in recs[2]] == [(10, 1.0)]
    assert 3 not in recs
