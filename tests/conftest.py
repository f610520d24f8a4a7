"""Shared fixtures: throwaway Git repositories built with GitPython."""

import tempfile
from pathlib import Path
from typing import Dict, Optional

import git
import pytest


class RepoBuilder:
    """Builds commits with explicit authors and deterministic dates."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.repo = git.Repo.init(path)
        self.repo.config_writer().set_value("user", "name", "Test User").release()
        self.repo.config_writer().set_value("user", "email", "test@example.com").release()
        self.clock = 1_700_000_000

    def write(self, name: str, content: str) -> Path:
        file_path = self.path / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content.encode("utf-8"))
        return file_path

    def commit(
        self,
        files: Dict[str, str],
        message: str = "Update files",
        author: str = "Alice",
        when: Optional[int] = None,
        **kwargs,
    ) -> git.Commit:
        for name, content in files.items():
            self.write(name, content)
        if files:
            self.repo.index.add(list(files))

        self.clock = when if when is not None else self.clock + 3600
        date = f"{self.clock} +0000"
        actor = git.Actor(author, f"{author.lower()}@example.com")
        return self.repo.index.commit(
            message,
            author=actor,
            committer=actor,
            author_date=date,
            commit_date=date,
            **kwargs,
        )

    def tag(self, name: str, commit: git.Commit) -> None:
        self.repo.create_tag(name, ref=commit)


@pytest.fixture
def repo_builder():
    """Create an empty Git repository for a test to populate."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield RepoBuilder(Path(tmpdir))
