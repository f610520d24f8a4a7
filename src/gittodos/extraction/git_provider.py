"""Git history provider built on GitPython."""

import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

import git
import structlog
from git import Repo

from gittodos.errors import (
    BlameUnresolved,
    FileNotFoundInHistory,
    FileUnreadable,
    ProviderUnavailable,
)
from gittodos.extraction.base import HistoryProvider
from gittodos.models import UNCOMMITTED, UNCOMMITTED_HASH, CommitInfo, TagInfo

logger = structlog.get_logger(__name__)


class GitHistoryProvider(HistoryProvider):
    """Reads files, blame and tags from a Git repository.

    ``git`` subprocess calls (blame, ls-files, rev-list) may run from several
    threads at once; object database reads go through a single lock because
    GitPython shares one persistent ``cat-file`` process per repository.
    """

    def __init__(self, repo_path: Path, first_parent: bool = False) -> None:
        """Open a repository.

        Args:
            repo_path: Path to the repository (working tree or bare)
            first_parent: Follow only first parents when walking ancestry for tags

        Raises:
            ProviderUnavailable: If the path does not exist or is not a repository
        """
        self.repo_path = Path(repo_path)
        self.first_parent = first_parent
        if not self.repo_path.exists():
            raise ProviderUnavailable(f"Repository path does not exist: {self.repo_path}")

        try:
            self.repo = Repo(self.repo_path)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise ProviderUnavailable(f"Invalid Git repository: {self.repo_path}") from e

        self._lock = threading.Lock()
        self._commit_cache: Dict[str, CommitInfo] = {}
        self._parents: Optional[Dict[str, List[str]]] = None
        self._tags_by_commit: Optional[Dict[str, List[str]]] = None

    def _require_working_tree(self) -> Path:
        if self.repo.bare or self.repo.working_tree_dir is None:
            raise ProviderUnavailable(f"Repository has no working tree: {self.repo_path}")
        return Path(self.repo.working_tree_dir)

    # ============================================================================
    # Revisions
    # ============================================================================

    def resolve_revision(self, revision: Optional[str]) -> Optional[str]:
        if revision is None:
            self._require_working_tree()
            return None
        try:
            with self._lock:
                return self.repo.commit(revision).hexsha
        except (git.BadName, ValueError) as e:
            raise ProviderUnavailable(f"Revision not found: {revision}") from e

    def list_revisions(self, revision: Optional[str] = None, max_count: Optional[int] = None) -> List[CommitInfo]:
        kwargs = {}
        if max_count:
            kwargs["max_count"] = max_count

        if not self.repo.head.is_valid() and revision is None:
            return []

        try:
            with self._lock:
                commits = list(self.repo.iter_commits(revision or "HEAD", **kwargs))
                return [self._to_commit_info(commit) for commit in commits]
        except (git.BadName, ValueError, git.GitCommandError) as e:
            raise ProviderUnavailable(f"Cannot list revisions from {revision or 'HEAD'}: {e}") from e

    def commit_info(self, commit_hash: str) -> CommitInfo:
        """Look up a commit, caching the result.

        Raises:
            ValueError: If the commit does not exist
        """
        if commit_hash == UNCOMMITTED_HASH:
            return UNCOMMITTED

        cached = self._commit_cache.get(commit_hash)
        if cached is not None:
            return cached

        with self._lock:
            info = self._to_commit_info(self.repo.commit(commit_hash))
        self._commit_cache[commit_hash] = info
        return info

    # ============================================================================
    # Files
    # ============================================================================

    def list_tracked_files(self, revision: Optional[str]) -> List[str]:
        try:
            if revision is None:
                self._require_working_tree()
                output = self.repo.git.ls_files("-z")
            else:
                output = self.repo.git.ls_tree("-r", "-z", "--name-only", revision)
        except git.GitCommandError as e:
            raise ProviderUnavailable(f"Cannot list files at {revision or 'working tree'}: {e}") from e

        return [path for path in output.split("\0") if path]

    def changed_files(self, base_ref: str, revision: Optional[str]) -> Set[str]:
        args = ["--name-only", "-z", base_ref]
        if revision is not None:
            args.append(revision)
        try:
            output = self.repo.git.diff(*args)
        except git.GitCommandError as e:
            raise ProviderUnavailable(f"Cannot diff against {base_ref}: {e}") from e

        return {path for path in output.split("\0") if path}

    def read_file(self, revision: Optional[str], path: str) -> bytes:
        if revision is None:
            file_path = self._require_working_tree() / path
            # Blame covers the link text, not the target's content
            if file_path.is_symlink():
                raise FileUnreadable(path, "symbolic link")
            try:
                return file_path.read_bytes()
            except FileNotFoundError as e:
                raise FileNotFoundInHistory(path, "missing from working tree") from e
            except OSError as e:
                raise FileUnreadable(path, str(e)) from e

        with self._lock:
            try:
                commit = self.repo.commit(revision)
                blob = commit.tree / path
            except KeyError as e:
                raise FileNotFoundInHistory(path, f"not in {revision[:7]}") from e
            except (git.BadName, ValueError) as e:
                raise FileUnreadable(path, str(e)) from e

            if blob.type != "blob":
                raise FileUnreadable(path, f"not a blob ({blob.type})")
            if blob.mode == blob.link_mode:
                raise FileUnreadable(path, "symbolic link")

            try:
                return blob.data_stream.read()
            except (ValueError, OSError) as e:
                raise FileUnreadable(path, str(e)) from e

    # ============================================================================
    # Blame
    # ============================================================================

    def blame_file(self, revision: Optional[str], path: str) -> Dict[int, CommitInfo]:
        if revision is None and not self.repo.head.is_valid():
            # Nothing committed yet; every line is uncommitted
            raise BlameUnresolved(path, 1)

        lines: Dict[int, CommitInfo] = {}
        try:
            for entry in self.repo.blame_incremental(revision, path):
                commit = self.commit_info(entry.commit.hexsha)
                for line_number in entry.linenos:
                    lines[line_number] = commit
        except (git.GitCommandError, git.BadName, ValueError) as e:
            logger.debug("blame_failed", path=path, revision=revision, error=str(e))
            raise BlameUnresolved(path, 1) from e

        logger.debug("blame_computed", path=path, revision=revision, lines=len(lines))
        return lines

    # ============================================================================
    # Tags
    # ============================================================================

    def tags_reachable_from(self, commit_hash: str, nearest_only: bool = False) -> List[TagInfo]:
        parents = self._load_parents()
        tags_by_commit = self._load_tags()
        if commit_hash not in parents:
            return []

        found: List[TagInfo] = []
        seen = {commit_hash}
        queue = deque([(commit_hash, 0)])
        nearest_distance: Optional[int] = None

        while queue:
            current, distance = queue.popleft()
            if nearest_only and nearest_distance is not None and distance > nearest_distance:
                break

            for name in tags_by_commit.get(current, []):
                found.append(TagInfo(name=name, commit_hash=current, distance=distance))
                if nearest_distance is None:
                    nearest_distance = distance

            next_commits = parents.get(current, [])
            if self.first_parent:
                next_commits = next_commits[:1]
            for parent in next_commits:
                if parent not in seen:
                    seen.add(parent)
                    queue.append((parent, distance + 1))

        found.sort(key=lambda tag: (tag.distance, tag.name))
        return found

    def _load_parents(self) -> Dict[str, List[str]]:
        if self._parents is None:
            with self._lock:
                if self._parents is None:
                    self._parents = self._read_commit_graph()
        return self._parents

    def _read_commit_graph(self) -> Dict[str, List[str]]:
        try:
            output = self.repo.git.rev_list("--parents", "--all")
        except git.GitCommandError as e:
            logger.warning("commit_graph_unavailable", error=str(e))
            return {}

        graph: Dict[str, List[str]] = {}
        for line in output.splitlines():
            shas = line.split()
            if shas:
                graph[shas[0]] = shas[1:]
        return graph

    def _load_tags(self) -> Dict[str, List[str]]:
        if self._tags_by_commit is None:
            with self._lock:
                if self._tags_by_commit is None:
                    tags: Dict[str, List[str]] = {}
                    for tag in self.repo.tags:
                        try:
                            target = tag.commit.hexsha
                        except ValueError:
                            # Tag points at a tree or blob
                            logger.debug("tag_not_a_commit", tag=tag.name)
                            continue
                        tags.setdefault(target, []).append(tag.name)
                    self._tags_by_commit = tags
        return self._tags_by_commit

    @staticmethod
    def _to_commit_info(commit: git.Commit) -> CommitInfo:
        message_lines = commit.message.strip().split("\n")
        return CommitInfo(
            hash=commit.hexsha,
            short_hash=commit.hexsha[:7],
            author_name=commit.author.name or "Unknown",
            author_email=commit.author.email or "",
            timestamp=datetime.fromtimestamp(commit.committed_date, tz=timezone.utc),
            message_summary=message_lines[0] if message_lines else "",
        )
