"""Data models for TODO attribution."""

from gittodos.models.commit import (
    UNCOMMITTED,
    UNCOMMITTED_HASH,
    AttributionRecord,
    CommitInfo,
    TagInfo,
    TodoMatch,
)
from gittodos.models.config import GroupBy, ScanConfig, Settings

__all__ = [
    "UNCOMMITTED",
    "UNCOMMITTED_HASH",
    "AttributionRecord",
    "CommitInfo",
    "TagInfo",
    "TodoMatch",
    "GroupBy",
    "ScanConfig",
    "Settings",
]
