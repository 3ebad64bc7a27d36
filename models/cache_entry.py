"""SQLModel table backing the native read cache."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field, SQLModel


class CacheEntry(SQLModel, table=True):
    __tablename__ = "app_cache"

    key: str = Field(primary_key=True)
    value: str
    timestamp: float
    expires_at: Optional[float] = Field(default=None, index=True)


__all__ = ["CacheEntry"]
