"""Utility helpers for task priorities."""
from __future__ import annotations

from typing import Any

# Three levels only; anything else collapses to the default.
PRIORITIES = frozenset({"low", "medium", "high"})

DEFAULT_PRIORITY = "medium"


def normalize_priority(value: Any) -> str:
    """Map external values onto ``low``/``medium``/``high``."""
    if not isinstance(value, str):
        return DEFAULT_PRIORITY
    candidate = value.strip().lower()
    if candidate in PRIORITIES:
        return candidate
    return DEFAULT_PRIORITY


__all__ = ["DEFAULT_PRIORITY", "PRIORITIES", "normalize_priority"]
