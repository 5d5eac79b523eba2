from __future__ import annotations

"""
Local batch runtime for the recommender phases.

A phase is a set of keyed inputs, each with its own mapper, plus an optional
combiner and a reducer:

* every input is cut into ``num_splits`` contiguous splits;
* each split is mapped and, when a combiner is given, pre-aggregated per key;
* map output is shuffled into ``num_splits`` partitions by key;
* every key of a partition is reduced with all of its values, in input order.

Mappers, combiners and reducers must be picklable (module-level functions or
``functools.partial`` over them) so that ``workers > 1`` can hand tasks to a
``multiprocessing.Pool``. Split and partition boundaries depend only on
``num_splits``, so output is identical for any worker count.
"""

from collections import defaultdict
from dataclasses import dataclass
from multiprocessing import Pool
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .config import DEFAULT_NUM_SPLITS

Record = Tuple[Any, Any]
Mapper = Callable[[Any, Any], Iterable[Record]]
Reducer = Callable[[Any, List[Any]], Iterable[Record]]


@dataclass
class StageInput:
    """One keyed dataset read by a phase, with the mapper applied to it."""

    records: Sequence[Record]
    mapper: Mapper


def split_records(records: Sequence[Record], num_splits: int) -> List[List[Record]]:
    """Cut records into at most ``num_splits`` contiguous, non-empty splits."""
    records = list(records)
    if not records:
        return []
    num_splits = max(1, min(num_splits, len(records)))
    size, extra = divmod(len(records), num_splits)
    splits: List[List[Record]] = []
    start = 0
    for i in range(num_splits):
        end = start + size + (1 if i < extra else 0)
        splits.append(records[start:end])
        start = end
    return splits


def group_by_key(pairs: Iterable[Record]) -> Dict[Any, List[Any]]:
    """Group values by key, keeping first-seen key order and value order."""
    groups: Dict[Any, List[Any]] = defaultdict(list)
    for key, value in pairs:
        groups[key].append(value)
    return groups


def partition_for(key: Any, num_partitions: int) -> int:
    return hash(key) % num_partitions


def _map_split(task: Tuple[Mapper, Optional[Reducer], List[Record]]) -> List[Record]:
    mapper, combiner, records = task
    emitted: List[Record] = []
    for key, value in records:
        emitted.extend(mapper(key, value))
    if combiner is None:
        return emitted
    combined: List[Record] = []
    for key, values in group_by_key(emitted).items():
        combined.extend(combiner(key, values))
    return combined


def _reduce_partition(task: Tuple[Reducer, List[Tuple[Any, List[Any]]]]) -> List[Record]:
    reducer, groups = task
    out: List[Record] = []
    for key, values in groups:
        out.extend(reducer(key, values))
    return out


def _run_tasks(fn: Callable, tasks: List[Any], workers: int) -> List[Any]:
    if workers <= 1 or len(tasks) <= 1:
        return [fn(t) for t in tasks]
    with Pool(processes=min(workers, len(tasks))) as pool:
        return pool.map(fn, tasks)


def run_stage(
    inputs: Sequence[StageInput],
    reducer: Reducer,
    combiner: Optional[Reducer] = None,
    workers: int = 1,
    num_splits: int = DEFAULT_NUM_SPLITS,
    name: str = "stage",
) -> List[Record]:
    """
    Run one map/combine/shuffle/reduce pass and return its output sorted by key.
    """
    map_tasks = [
        (inp.mapper, combiner, split)
        for inp in inputs
        for split in split_records(inp.records, num_splits)
    ]
    logger.info(
        "[{}] mapping {} splits over {} inputs (workers={})",
        name, len(map_tasks), len(inputs), workers,
    )
    map_outputs = _run_tasks(_map_split, map_tasks, workers)

    partitions: List[Dict[Any, List[Any]]] = [defaultdict(list) for _ in range(num_splits)]
    shuffled = 0
    for output in map_outputs:
        for key, value in output:
            partitions[partition_for(key, num_splits)][key].append(value)
            shuffled += 1
    logger.info("[{}] shuffled {} records into {} partitions", name, shuffled, num_splits)

    reduce_tasks = [
        (reducer, sorted(part.items(), key=lambda kv: kv[0]))
        for part in partitions
        if part
    ]
    reduce_outputs = _run_tasks(_reduce_partition, reduce_tasks, workers)

    result = [record for output in reduce_outputs for record in output]
    result.sort(key=lambda kv: kv[0])
    logger.info("[{}] reduced into {} records", name, len(result))
    return result
