"""Attribution engine: resolves every TODO match to its commit, author and tag."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field

from gittodos.attribution.cache import BlameCache
from gittodos.errors import BlameUnresolved, FileUnreadable, GitTodosError, TagResolutionAmbiguous
from gittodos.extraction.base import HistoryProvider
from gittodos.models import UNCOMMITTED, AttributionRecord, CommitInfo, ScanConfig, TagInfo, TodoMatch
from gittodos.scanning import MarkerScanner

logger = structlog.get_logger(__name__)


class ScanStats(BaseModel):
    """Counters collected during one scan."""

    files_listed: int = Field(0, description="Tracked files considered after filtering")
    files_scanned: int = Field(0, description="Files read and scanned")
    files_skipped: int = Field(0, description="Files that could not be read")
    files_with_matches: int = Field(0, description="Files containing at least one marker")
    matches: int = Field(0, description="Marker lines found")
    lines_unresolved: int = Field(0, description="Matched lines attributed to the uncommitted pseudo-commit")
    tags_ambiguous: int = Field(0, description="Commits whose tag data was inconsistent")


class ScanResult(BaseModel):
    """Output of a full scan."""

    revision: Optional[str] = Field(None, description="Scanned commit hash, None for the working tree")
    records: List[AttributionRecord] = Field(default_factory=list, description="One record per matched line")
    stats: ScanStats = Field(default_factory=ScanStats, description="Scan counters")


class AttributionEngine:
    """Combines marker scanning with line-level blame.

    Blame is computed once per (file, revision) and nearest-tag resolution
    once per commit; both caches live for the lifetime of the engine, which
    is one scan.

    Lines that blame cannot attribute (never committed, or the file is not
    in history at all) are attributed to the ``UNCOMMITTED`` pseudo-commit.
    """

    def __init__(
        self,
        provider: HistoryProvider,
        config: ScanConfig,
        scanner: Optional[MarkerScanner] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            provider: History provider to read files, blame and tags from
            config: Scan configuration
            scanner: Marker scanner; built from the config when omitted
        """
        self.provider = provider
        self.config = config
        self.scanner = scanner or MarkerScanner(
            tokens=config.tokens,
            require_comment=config.require_comment,
            max_file_size_bytes=config.max_file_size_bytes,
        )
        self.blame_cache = BlameCache()
        self._tag_cache: Dict[str, Optional[TagInfo]] = {}
        self._tag_lock = threading.Lock()
        self._tags_ambiguous = 0

    # ============================================================================
    # Per-line attribution
    # ============================================================================

    def attribute_file(
        self,
        path: str,
        matches: Iterable[TodoMatch],
        revision: Optional[str] = None,
    ) -> Tuple[List[AttributionRecord], int]:
        """Attribute the matches found in one file.

        Args:
            path: File path relative to the repository root
            matches: Scanner output for the file
            revision: Revision being scanned (None for the working tree)

        Returns:
            Tuple of (records, number of lines that fell back to UNCOMMITTED)
        """
        matches = list(matches)
        if not matches:
            return [], 0

        try:
            blame = self.blame_cache.get_or_compute(
                path, revision, lambda: self.provider.blame_file(revision, path)
            )
        except BlameUnresolved:
            logger.debug("file_blame_unresolved", path=path, matches=len(matches))
            blame = {}

        records = []
        unresolved = 0
        for match in matches:
            commit = blame.get(match.line_number)
            if commit is None:
                commit = UNCOMMITTED
                unresolved += 1
            elif commit.is_uncommitted:
                unresolved += 1

            records.append(
                AttributionRecord(
                    file_path=path,
                    line_number=match.line_number,
                    text=match.text,
                    labels=match.labels,
                    commit=commit,
                    tag=self.resolve_tag(commit),
                )
            )

        return records, unresolved

    def resolve_tag(self, commit: CommitInfo) -> Optional[TagInfo]:
        """Nearest tag for a commit, cached per commit.

        The uncommitted pseudo-commit is never tagged. Inconsistent tag data
        from the provider falls back to no tag.
        """
        if commit.is_uncommitted:
            return None

        with self._tag_lock:
            if commit.hash in self._tag_cache:
                return self._tag_cache[commit.hash]

            try:
                tag = self._nearest_tag(commit.hash)
            except TagResolutionAmbiguous as e:
                logger.warning("tag_resolution_ambiguous", commit=commit.short_hash, error=str(e))
                self._tags_ambiguous += 1
                tag = None

            self._tag_cache[commit.hash] = tag
            return tag

    def _nearest_tag(self, commit_hash: str) -> Optional[TagInfo]:
        tags = sorted(
            self.provider.tags_reachable_from(commit_hash, nearest_only=True),
            key=lambda tag: (tag.distance, tag.name),
        )
        if not tags:
            return None

        nearest = tags[0]
        if nearest.distance < 0:
            raise TagResolutionAmbiguous(f"Negative distance for tag {nearest.name}")
        for other in tags[1:]:
            if (other.distance, other.name) != (nearest.distance, nearest.name):
                break
            if other.commit_hash != nearest.commit_hash:
                raise TagResolutionAmbiguous(
                    f"Tag {nearest.name} points at both {nearest.commit_hash[:7]} and {other.commit_hash[:7]}"
                )
        return nearest

    # ============================================================================
    # Full scan
    # ============================================================================

    def scan_file(self, path: str, revision: Optional[str] = None) -> Tuple[List[AttributionRecord], int, int]:
        """Read, scan and attribute one file.

        Returns:
            Tuple of (records, match count, unresolved line count)

        Raises:
            FileUnreadable: If the file cannot be read
        """
        content = self.provider.read_file(revision, path)
        matches = list(self.scanner.scan(path, content))
        records, unresolved = self.attribute_file(path, matches, revision)
        return records, len(matches), unresolved

    def select_files(self, revision: Optional[str]) -> List[str]:
        """Tracked files to scan, filtered by configuration and base ref."""
        files = [path for path in self.provider.list_tracked_files(revision) if self.config.should_include(path)]
        if self.config.base_ref:
            changed = self.provider.changed_files(self.config.base_ref, revision)
            files = [path for path in files if path in changed]
        return sorted(set(files))

    def scan(self) -> ScanResult:
        """Scan every selected file and attribute all matches.

        Returns:
            ScanResult with records in file order, then line order

        Raises:
            ProviderUnavailable: If the revision or file list cannot be obtained
        """
        revision = self.provider.resolve_revision(self.config.revision)
        files = self.select_files(revision)
        stats = ScanStats(files_listed=len(files))

        logger.info(
            "scan_started",
            revision=revision or "working tree",
            files=len(files),
            workers=self.config.max_workers,
        )

        records: List[AttributionRecord] = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [(path, executor.submit(self.scan_file, path, revision)) for path in files]

            # Results are gathered in submission order so the record order is stable
            for path, future in futures:
                try:
                    file_records, match_count, unresolved = future.result()
                except FileUnreadable as e:
                    logger.warning("file_unreadable", path=path, reason=e.reason)
                    stats.files_skipped += 1
                    continue
                except GitTodosError as e:
                    logger.warning("file_failed", path=path, error=str(e))
                    stats.files_skipped += 1
                    continue

                stats.files_scanned += 1
                stats.matches += match_count
                stats.lines_unresolved += unresolved
                if match_count:
                    stats.files_with_matches += 1
                records.extend(file_records)

        stats.tags_ambiguous = self._tags_ambiguous

        logger.info(
            "scan_completed",
            revision=revision or "working tree",
            matches=stats.matches,
            files_skipped=stats.files_skipped,
            blame_cache=self.blame_cache.get_stats(),
        )

        return ScanResult(revision=revision, records=records, stats=stats)
