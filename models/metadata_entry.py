"""SQLModel table for app metadata (onboarding flag, preferences)."""
from __future__ import annotations

from sqlmodel import Field, SQLModel


class MetadataEntry(SQLModel, table=True):
    """One JSON document per key."""

    __tablename__ = "app_metadata"

    key: str = Field(primary_key=True)
    value: str
    updated_at: str


__all__ = ["MetadataEntry"]
