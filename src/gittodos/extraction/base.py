"""Base class for history providers."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from gittodos.errors import BlameUnresolved
from gittodos.models import CommitInfo, TagInfo


class HistoryProvider(ABC):
    """Read-only access to a repository's files, blame and tags.

    A ``revision`` of ``None`` stands for the working tree.
    """

    @abstractmethod
    def resolve_revision(self, revision: Optional[str]) -> Optional[str]:
        """Resolve a revision to a full commit hash.

        Returns:
            The commit hash, or None for the working tree

        Raises:
            ProviderUnavailable: If the revision does not exist
        """

    @abstractmethod
    def list_revisions(self, revision: Optional[str] = None, max_count: Optional[int] = None) -> List[CommitInfo]:
        """List commits reachable from a revision, newest first."""

    @abstractmethod
    def list_tracked_files(self, revision: Optional[str]) -> List[str]:
        """List tracked file paths at a revision.

        Raises:
            ProviderUnavailable: If files cannot be enumerated
        """

    @abstractmethod
    def changed_files(self, base_ref: str, revision: Optional[str]) -> Set[str]:
        """Paths that differ between ``base_ref`` and ``revision``."""

    @abstractmethod
    def read_file(self, revision: Optional[str], path: str) -> bytes:
        """Read the raw content of a file.

        Raises:
            FileNotFoundInHistory: If the file does not exist at the revision
            FileUnreadable: If the file exists but cannot be read
        """

    @abstractmethod
    def blame_file(self, revision: Optional[str], path: str) -> Dict[int, CommitInfo]:
        """Attribute every line of a file to the commit that last touched it.

        Returns:
            Mapping of 1-based line number to commit

        Raises:
            BlameUnresolved: If the file cannot be blamed at all
        """

    def blame_line(self, revision: Optional[str], path: str, line: int) -> CommitInfo:
        """Attribute a single line.

        Raises:
            BlameUnresolved: If the line has no blame entry
        """
        commit = self.blame_file(revision, path).get(line)
        if commit is None:
            raise BlameUnresolved(path, line)
        return commit

    @abstractmethod
    def tags_reachable_from(self, commit_hash: str, nearest_only: bool = False) -> List[TagInfo]:
        """Tags on the commit or its ancestors, nearest first.

        Args:
            commit_hash: Commit to start from
            nearest_only: Stop at the first ancestry distance that carries a tag

        Returns:
            Tags ordered by distance, then name
        """

    def nearest_tag(self, commit_hash: str) -> Optional[TagInfo]:
        """The closest tag reachable from a commit, if any."""
        tags = self.tags_reachable_from(commit_hash, nearest_only=True)
        return tags[0] if tags else None
