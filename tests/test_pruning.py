from itemcf.pipeline_types import EXCLUDED, UserVector, is_excluded
from itemcf.pruning import (
    find_smallest_large_value,
    maybe_prune_user_vector,
    split_user_vector,
    user_vector_splitter,
)


def test_small_vectors_pass_through_unchanged():
    entries = {i: float(i + 1) for i in range(10)}
    assert maybe_prune_user_vector(entries, max_prefs=10) == entries

    short = {3: -2.0, 8: 0.5}
    assert maybe_prune_user_vector(short, max_prefs=10) == short


def test_twelve_entries_exclude_two_smallest_magnitudes():
    # Magnitudes 1..12 with mixed signs; 1 and 2 are the smallest.
    entries = {i: float(i) * (-1 if i % 2 else 1) for i in range(1, 13)}

    pruned = maybe_prune_user_vector(entries, max_prefs=10)

    excluded = sorted(i for i, v in pruned.items() if is_excluded(v))
    assert excluded == [1, 2]
    assert set(pruned) == set(entries)
    assert all(pruned[i] == entries[i] for i in range(3, 13))


def test_keeps_k_largest_absolute_values():
    entries = {0: 0.1, 1: -9.0, 2: 3.0, 3: -0.2, 4: 7.0, 5: 0.3}

    pruned = maybe_prune_user_vector(entries, max_prefs=3)

    kept = {i for i, v in pruned.items() if not is_excluded(v)}
    assert kept == {1, 2, 4}


def test_ties_at_threshold_are_retained():
    entries = {0: 5.0, 1: 2.0, 2: -2.0, 3: 2.0, 4: 1.0}

    assert find_smallest_large_value(entries, 2) == 2.0
    pruned = maybe_prune_user_vector(entries, max_prefs=2)

    kept = {i for i, v in pruned.items() if not is_excluded(v)}
    assert kept == {0, 1, 2, 3}
    assert pruned[4] is EXCLUDED


def test_split_emits_every_entry_keyed_by_item_index():
    vector = UserVector(7, {i: float(i) for i in range(1, 13)})

    out = list(split_user_vector(7, vector, max_prefs=10))

    assert [index for index, _ in out] == list(range(1, 13))
    assert all(pref.user_id == 7 and not pref.is_vector for _, pref in out)
    assert [index for index, pref in out if is_excluded(pref.value)] == [1, 2]


def test_split_skips_users_outside_users_file():
    splitter = user_vector_splitter(max_prefs=10, users_to_recommend_for={1})

    assert list(splitter(2, UserVector(2, {0: 1.0, 1: 1.0}))) == []
    assert len(list(splitter(1, UserVector(1, {0: 1.0, 1: 1.0})))) == 2
