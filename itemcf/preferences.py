from __future__ import annotations

"""
Preference input readers.

Input lines look like ``userID,itemID[,value]`` (comma or tab separated).
A path may name one file or a directory of part files, which are read in
name order.
"""

from pathlib import Path
from typing import List, Optional, Set

import pandas as pd
from loguru import logger

from .config import BOOLEAN_PREF_VALUE
from .errors import InputConsistencyError
from .pipeline_types import Preference

PREF_COLUMNS = ["user_id", "item_id", "value"]
_SEPARATOR = r"[,\t]"


def list_input_files(path: Path) -> List[Path]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    if path.is_dir():
        files = sorted(
            p for p in path.iterdir()
            if p.is_file() and not p.name.startswith((".", "_"))
        )
        if not files:
            raise FileNotFoundError(f"No input files under {path}")
        return files
    return [path]


def _read_lines(path: Path) -> pd.Series:
    """Non-blank lines of ``path``, indexed by their 1-based line number."""
    lines = pd.Series(Path(path).read_text(encoding="utf-8").splitlines(), dtype=object)
    lines.index = pd.RangeIndex(1, len(lines) + 1)
    return lines[lines.str.strip() != ""]


def _read_table(path: Path) -> pd.DataFrame:
    # Two or three fields per line; a missing value comes back as None.
    lines = _read_lines(path)
    if lines.empty:
        return pd.DataFrame(columns=PREF_COLUMNS)

    fields = lines.str.split(_SEPARATOR, regex=True)
    counts = fields.str.len()
    bad = (counts < 2) | (counts > len(PREF_COLUMNS))
    if bad.any():
        line = int(bad.idxmax())
        raise InputConsistencyError(
            f"Malformed record in {path} at line {line}: "
            f"expected 2 or 3 fields, got {counts[line]} in {lines[line]!r}"
        )

    df = pd.DataFrame(fields.tolist(), index=fields.index)
    df = df.reindex(columns=range(len(PREF_COLUMNS))).astype(object)
    df.columns = PREF_COLUMNS
    return df


def _parse_ids(df: pd.DataFrame, column: str, path: Path) -> List[int]:
    raw = df[column].str.strip()
    bad = ~raw.str.fullmatch(r"[+-]?\d+").fillna(False).astype(bool)
    if bad.any():
        line = int(bad.idxmax())
        raise InputConsistencyError(
            f"Malformed record in {path} at line {line}: "
            f"{column}={df.at[line, column]!r} is not an integer"
        )
    return [int(v) for v in raw.tolist()]


def parse_preferences(df: pd.DataFrame, path: Path, boolean_data: bool) -> List[Preference]:
    """
    Validate a raw three-column table and convert it into Preference records.
    """
    if df.empty:
        return []

    user_ids = _parse_ids(df, "user_id", path)
    item_ids = _parse_ids(df, "item_id", path)

    if boolean_data:
        values = pd.Series(BOOLEAN_PREF_VALUE, index=df.index, dtype="float64")
    else:
        values = pd.to_numeric(df["value"].str.strip(), errors="coerce")
        bad = values.isna()
        if bad.any():
            line = int(bad.idxmax())
            raise InputConsistencyError(
                f"Malformed record in {path} at line {line}: "
                f"missing or non-numeric preference value {df.at[line, 'value']!r}"
            )

    return [
        Preference(user_id=int(u), item_id=int(i), value=float(v))
        for u, i, v in zip(user_ids, item_ids, values.tolist())
    ]


def read_preferences(path: Path, boolean_data: bool = False) -> List[Preference]:
    """
    Read every preference under ``path`` in file then line order.
    """
    prefs: List[Preference] = []
    for file_path in list_input_files(path):
        logger.info("Reading preferences from {}", file_path)
        df = _read_table(file_path)
        prefs.extend(parse_preferences(df, file_path, boolean_data))
    logger.info("Read {} preferences (boolean_data={})", len(prefs), boolean_data)
    return prefs


def read_user_ids(path: Optional[Path]) -> Optional[Set[int]]:
    """
    Load the optional users file (one UserID per line). ``None`` means all users.
    """
    if path is None:
        return None
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Users file not found: {path}")
    df = _read_lines(path).to_frame("user_id")
    if df.empty:
        user_ids: Set[int] = set()
    else:
        user_ids = set(_parse_ids(df, "user_id", path))
    logger.info("Restricting recommendations to {} users from {}", len(user_ids), path)
    return user_ids
