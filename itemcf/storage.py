from __future__ import annotations

"""
Persistence for phase datasets and the final recommendation file.

Intermediate datasets are pickled record lists. Writes go to a temporary file
that is renamed into place, so a dataset on disk is always complete.
"""

import os
import pickle
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from loguru import logger

from .config import RecommendedItem
from .errors import InputConsistencyError


def _atomic_write_bytes(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with tmp_path.open("wb") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, path)


def write_dataset(path: Path, records: Sequence[Tuple[Any, Any]]) -> Path:
    _atomic_write_bytes(path, pickle.dumps(list(records), protocol=pickle.HIGHEST_PROTOCOL))
    logger.info("Wrote {} records to {}", len(records), path)
    return path


def read_dataset(path: Path) -> List[Tuple[Any, Any]]:
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found at {path}. Run the phase that writes it first.")
    with path.open("rb") as f:
        records = pickle.load(f)
    logger.info("Loaded {} records from {}", len(records), path)
    return records


# ---------------------------
# Final output (text)
# ---------------------------

def format_recommendations(user_id: int, items: Sequence[RecommendedItem]) -> str:
    body = ",".join(f"{item.item_id}:{item.score!r}" for item in items)
    return f"{user_id}\t[{body}]"


def write_recommendations(
    path: Path,
    recommendations: Iterable[Tuple[int, Sequence[RecommendedItem]]],
) -> Path:
    lines = [format_recommendations(user_id, items) for user_id, items in recommendations]
    text = "".join(line + "\n" for line in lines)
    _atomic_write_bytes(path, text.encode("utf-8"))
    logger.info("Wrote recommendations for {} users to {}", len(lines), path)
    return path


_LINE_RE = re.compile(r"^(-?\d+)\t\[(.*)\]$")


def parse_recommendation_line(line: str) -> Tuple[int, List[RecommendedItem]]:
    m = _LINE_RE.match(line.rstrip("\n"))
    if not m:
        raise InputConsistencyError(f"Malformed recommendation line: {line!r}")
    user_id = int(m.group(1))
    items: List[RecommendedItem] = []
    body = m.group(2)
    if body:
        for pair in body.split(","):
            item_id, _, score = pair.partition(":")
            items.append(RecommendedItem(item_id=int(item_id), score=float(score)))
    return user_id, items


def read_recommendations(path: Path) -> Dict[int, List[RecommendedItem]]:
    if not path.exists():
        raise FileNotFoundError(f"Recommendations not found at {path}. Run the pipeline first.")
    out: Dict[int, List[RecommendedItem]] = {}
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            user_id, items = parse_recommendation_line(line)
            out[user_id] = items
    logger.info("Loaded recommendations for {} users from {}", len(out), path)
    return out
