"""Grouping and reduction of repeated 360 rows."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable, Sequence

from intake import columns
from intake.reader import CellValue, Row
from intake.utils import clean_text

NO_STRENGTHS = "No strengths highlighted."
NO_IMPROVEMENTS = "No improvement points highlighted."
NO_WORK_AGAIN = "No answer provided."

_LEADING_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][-+]?\d+)?)")
_INTEGER_RE = re.compile(r"\d+")


def group_by_key(
    rows: Iterable[Row], key: str | Callable[[Row], CellValue],
) -> dict[Hashable | None, list[Row]]:
    """Group rows by a header label or key function, keeping first-seen order.

    Rows whose key is blank or missing are collected under ``None``; callers
    are expected to discard that group.
    """
    getter = key if callable(key) else (lambda row: row.get(key))
    groups: dict[Hashable | None, list[Row]] = {}
    for row in rows:
        value = getter(row)
        if isinstance(value, str):
            value = value.strip() or None
        groups.setdefault(value, []).append(row)
    return groups


def parse_score(value: CellValue) -> float | None:
    """Leading number of a cell (``"4,5 - good"`` -> 4.5), or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER_RE.match(str(value))
    if not match:
        return None
    return float(match.group(1).replace(",", "."))


def parse_int(value: CellValue) -> int | None:
    score = parse_score(value)
    if score is None:
        return None
    return int(score)


def parse_days(value: CellValue) -> int:
    """First integer found anywhere in a free-text period, else 0."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _INTEGER_RE.search(str(value))
    return int(match.group(0)) if match else 0


def join_text(values: Iterable[CellValue], fallback: str) -> str:
    parts = [clean_text(v) for v in values]
    joined = "\n".join(p for p in parts if p)
    return joined or fallback


@dataclass(frozen=True)
class PeerAggregate:
    overall_score: float
    strengths: str
    areas_to_improve: str
    would_work_again: str
    rows: int


def aggregate_peer_rows(rows: Sequence[Row]) -> PeerAggregate:
    """Reduce every 360 row about one evaluated person into a single record.

    ``overall_score`` is the mean of the parseable scores rounded to two
    decimals. It is ``0.0`` when no row carries a usable score: that is the
    import policy, not a marker for missing data.
    """
    scores = [
        s for s in (parse_score(columns.resolve_column(r, *columns.PEER_SCORE)) for r in rows)
        if s is not None
    ]
    overall = round(sum(scores) / len(scores), 2) if scores else 0.0
    return PeerAggregate(
        overall_score=overall,
        strengths=join_text(
            (columns.resolve_column(r, *columns.PEER_STRENGTHS) for r in rows), NO_STRENGTHS,
        ),
        areas_to_improve=join_text(
            (columns.resolve_column(r, *columns.PEER_IMPROVEMENTS) for r in rows), NO_IMPROVEMENTS,
        ),
        would_work_again=join_text(
            (columns.resolve_column(r, *columns.PEER_WORK_AGAIN) for r in rows), NO_WORK_AGAIN,
        ),
        rows=len(rows),
    )
