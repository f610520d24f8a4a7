"""History providers backed by version control."""

from gittodos.extraction.base import HistoryProvider
from gittodos.extraction.git_provider import GitHistoryProvider

__all__ = ["HistoryProvider", "GitHistoryProvider"]
