from functools import partial

from itemcf.runtime import StageInput, group_by_key, run_stage, split_records


def _emit_words(key, line):
    for word in line.split():
        yield word, 1


def _sum_counts(word, counts):
    yield word, sum(counts)


def _collect(key, values):
    yield key, list(values)


def _tag(key, value, tag):
    yield key, (tag, value)


def test_split_records_is_contiguous_and_balanced():
    splits = split_records(list(enumerate("abcdefg")), 3)
    assert [len(s) for s in splits] == [3, 2, 2]
    assert [r for s in splits for r in s] == list(enumerate("abcdefg"))
    assert split_records([], 3) == []


def test_group_by_key_keeps_value_order():
    groups = group_by_key([("a", 1), ("b", 2), ("a", 3)])
    assert groups == {"a": [1, 3], "b": [2]}


def test_run_stage_with_and_without_combiner_agree():
    lines = list(enumerate(["a b a", "c a", "b b", "c", "a"]))

    plain = run_stage([StageInput(lines, _emit_words)], reducer=_sum_counts, num_splits=3)
    combined = run_stage(
        [StageInput(lines, _emit_words)], reducer=_sum_counts, combiner=_sum_counts, num_splits=3
    )

    assert plain == combined == [("a", 4), ("b", 3), ("c", 2)]


def test_values_for_a_key_arrive_in_input_order():
    records = [(0, "x"), (1, "y"), (2, "z"), (3, "w")]
    keyed = [(1, v) for _, v in records]

    out = run_stage([StageInput(keyed, lambda k, v: [(k, v)])], reducer=_collect, num_splits=3)

    assert out == [(1, ["x", "y", "z", "w"])]


def test_multiple_inputs_share_one_keyed_stream():
    left = [(1, "L1"), (2, "L2")]
    right = [(2, "R2"), (3, "R3")]

    out = dict(
        run_stage(
            [
                StageInput(left, partial(_tag, tag="left")),
                StageInput(right, partial(_tag, tag="right")),
            ],
            reducer=_collect,
            num_splits=2,
        )
    )

    assert out[2] == [("left", "L2"), ("right", "R2")]
    assert set(out) == {1, 2, 3}


def test_worker_pool_matches_single_process():
    lines = list(enumerate(["a b a", "c a", "b b", "c", "a", "d d d"]))
    inputs = [StageInput(lines, _emit_words)]

    serial = run_stage(inputs, reducer=_sum_counts, combiner=_sum_counts, workers=1, num_splits=3)
    pooled = run_stage(inputs, reducer=_sum_counts, combiner=_sum_counts, workers=2, num_splits=3)

    assert serial == pooled
