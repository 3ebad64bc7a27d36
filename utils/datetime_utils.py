"""Utilities for working with ISO-8601 timestamps and UTC datetimes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso_timestamp(dt: Optional[datetime] = None) -> str:
    """Format ``dt`` (default: now) as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Millisecond precision with a fixed width keeps lexical order equal to
    chronological order, which the storage queries rely on.
    """

    value = ensure_utc(dt) or utc_now()
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_iso_timestamp(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


__all__ = [
    "UTC",
    "ensure_utc",
    "parse_iso_timestamp",
    "to_iso_timestamp",
    "utc_now",
]
