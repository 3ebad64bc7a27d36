"""ORM models and the normalised task exposed by the Planner core."""
from .cache_entry import CacheEntry
from .metadata_entry import MetadataEntry
from .task import Task, TaskRow, normalize_task

__all__ = ["CacheEntry", "MetadataEntry", "Task", "TaskRow", "normalize_task"]
