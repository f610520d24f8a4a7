"""Attribution of TODO markers to commits, authors and tags."""

from gittodos.attribution.cache import BlameCache
from gittodos.attribution.engine import AttributionEngine, ScanResult, ScanStats

__all__ = ["AttributionEngine", "BlameCache", "ScanResult", "ScanStats"]
