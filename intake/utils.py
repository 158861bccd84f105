"""Shared utility functions used across intake modules."""
from __future__ import annotations

import re
import unicodedata
from datetime import UTC, datetime

_WS_RE = re.compile(r"\s+")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def clean_text(value: object) -> str:
    """Safely coerce cell value to stripped string."""
    if value is None:
        return ""
    return str(value).strip()


def fold_text(value: str) -> str:
    """Collapse whitespace, strip accents and casefold."""
    normalized = unicodedata.normalize("NFKD", value)
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return _WS_RE.sub(" ", normalized).strip().casefold()
