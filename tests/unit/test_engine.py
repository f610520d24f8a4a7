"""Tests for the attribution engine and the full scan pipeline."""

import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
from unittest.mock import patch

import pytest

from gittodos.attribution import AttributionEngine
from gittodos.errors import BlameUnresolved, FileNotFoundInHistory, FileUnreadable, ProviderUnavailable
from gittodos.extraction import GitHistoryProvider, HistoryProvider
from gittodos.models import CommitInfo, ScanConfig, TagInfo, TodoMatch
from gittodos.report import build_report, render_json


def run_scan(path, **options):
    config = ScanConfig(repo_path=path, max_workers=2, **options)
    provider = GitHistoryProvider(path, first_parent=config.first_parent)
    engine = AttributionEngine(provider, config)
    return engine, engine.scan()


# ============================================================================
# Against real repositories
# ============================================================================


def test_single_todo_scenario(repo_builder):
    """Test the basic commit -> tag -> author -> leaf report."""
    c1 = repo_builder.commit({"a.txt": "// todo: fix this\n"}, "c1", author="Alice")
    repo_builder.tag("v1", c1)

    _, result = run_scan(repo_builder.path)
    tree = build_report(result.records)

    assert len(tree.groups) == 1
    group = tree.groups[0]
    assert group.key == c1.hexsha
    assert group.tags[0].tag == "v1"
    assert group.tags[0].authors[0].author == "Alice"
    leaf = group.tags[0].authors[0].leaves[0]
    assert (leaf.file_path, leaf.line_number, leaf.text) == ("a.txt", 1, "// todo: fix this")


def test_no_todos_gives_empty_tree(repo_builder):
    """Test a repository without markers."""
    repo_builder.commit({"a.py": "print('done')\n", "b.md": "# Notes\n"}, "clean")

    _, result = run_scan(repo_builder.path)

    assert result.records == []
    assert result.stats.files_scanned == 2
    assert build_report(result.records).is_empty


def test_lines_from_different_commits_split(repo_builder):
    """Test that two TODOs in one file resolve to their own commits."""
    first = repo_builder.commit({"main.py": "# TODO: one\nx = 1\n"}, "first", author="Alice")
    second = repo_builder.commit({"main.py": "# TODO: one\nx = 1\n# TODO: two\n"}, "second", author="Bob")

    _, result = run_scan(repo_builder.path)
    tree = build_report(result.records)

    assert [g.key for g in tree.groups] == [second.hexsha, first.hexsha]
    assert tree.groups[0].tags[0].authors[0].leaves[0].line_number == 3
    assert tree.groups[1].tags[0].authors[0].leaves[0].line_number == 1
    assert tree.groups[0].timestamp >= tree.groups[1].timestamp


def test_untagged_commit_nests_under_ancestor_tag(repo_builder):
    """Test nearest-tag resolution through ancestry."""
    tagged = repo_builder.commit({"a.txt": "base\n"}, "release")
    repo_builder.tag("v1", tagged)
    repo_builder.commit({"a.txt": "base\n# TODO: after release\n"}, "follow-up")

    _, result = run_scan(repo_builder.path)

    assert result.records[0].tag.name == "v1"
    assert result.records[0].tag.distance == 1


def test_untagged_history_goes_to_no_tag_group(repo_builder):
    """Test the no-tag bucket."""
    repo_builder.commit({"a.txt": "# TODO: untagged\n"}, "untagged")

    _, result = run_scan(repo_builder.path)
    tree = build_report(result.records)

    assert [t.tag for t in tree.groups[0].tags] == [None]


def test_uncommitted_lines_use_pseudo_commit(repo_builder):
    """Test the uncommitted-line policy on a dirty working tree."""
    repo_builder.commit({"a.py": "# TODO: committed\n"}, "base")
    repo_builder.write("a.py", "# TODO: committed\n# TODO: local edit\n")

    _, result = run_scan(repo_builder.path)
    tree = build_report(result.records)

    assert result.stats.lines_unresolved == 1
    assert tree.groups[0].is_uncommitted
    assert tree.groups[0].tags[0].tag is None
    assert tree.groups[0].tags[0].authors[0].leaves[0].line_number == 2
    assert not tree.groups[1].is_uncommitted


def test_staged_new_file_is_uncommitted(repo_builder):
    """Test a file added to the index but never committed."""
    repo_builder.commit({"a.py": "x = 1\n"}, "base")
    repo_builder.write("new.py", "# TODO: brand new\n")
    repo_builder.repo.index.add(["new.py"])

    _, result = run_scan(repo_builder.path)

    assert len(result.records) == 1
    assert result.records[0].commit.is_uncommitted
    assert result.stats.lines_unresolved == 1


def test_symlinks_are_skipped(repo_builder):
    """Test that a tracked symlink does not repeat its target's TODOs."""
    repo_builder.write("real.py", "x = 1\ny = 2\n# TODO: only once\n")
    os.symlink("real.py", repo_builder.path / "link.py")
    repo_builder.repo.index.add(["real.py", "link.py"])
    head = repo_builder.commit({}, "add real and link")

    for revision in (None, head.hexsha):
        _, result = run_scan(repo_builder.path, revision=revision)

        assert [(r.file_path, r.line_number) for r in result.records] == [("real.py", 3)]
        assert result.records[0].commit.hash == head.hexsha
        assert result.stats.lines_unresolved == 0
        assert result.stats.files_skipped == 1


def test_scan_named_revision(repo_builder):
    """Test that scanning a revision ignores working tree edits."""
    first = repo_builder.commit({"a.py": "# TODO: old\n"}, "first")
    repo_builder.commit({"a.py": "done\n"}, "second")
    repo_builder.write("a.py", "# TODO: dirty\n")

    _, at_first = run_scan(repo_builder.path, revision=first.hexsha)
    _, at_head = run_scan(repo_builder.path, revision="HEAD")

    assert at_first.revision == first.hexsha
    assert [r.text for r in at_first.records] == ["# TODO: old"]
    assert at_first.records[0].commit.hash == first.hexsha
    assert at_head.records == []


def test_binary_files_are_skipped(repo_builder):
    """Test that binary content yields no matches and no errors."""
    repo_builder.commit({"a.txt": "# TODO: text\n"}, "text")
    (repo_builder.path / "blob.bin").write_bytes(b"TODO\x00\x00binary")
    repo_builder.repo.index.add(["blob.bin"])
    repo_builder.commit({}, "binary")

    _, result = run_scan(repo_builder.path)

    assert [r.file_path for r in result.records] == ["a.txt"]
    assert result.stats.files_skipped == 0


def test_missing_working_tree_file_is_skipped(repo_builder):
    """Test that a tracked file deleted from disk is a soft failure."""
    repo_builder.commit({"a.txt": "# TODO: keep\n", "gone.txt": "# TODO: gone\n"}, "base")
    (repo_builder.path / "gone.txt").unlink()

    _, result = run_scan(repo_builder.path)

    assert [r.file_path for r in result.records] == ["a.txt"]
    assert result.stats.files_skipped == 1


def test_filters_and_base_ref(repo_builder):
    """Test extension filters and --base restriction."""
    base = repo_builder.commit({"a.py": "# TODO: py\n", "b.md": "TODO: md\n"}, "base")
    repo_builder.commit({"c.py": "# TODO: new file\n"}, "feature")

    _, only_py = run_scan(repo_builder.path, included_extensions=[".py"])
    _, since_base = run_scan(repo_builder.path, base_ref=base.hexsha)

    assert sorted(r.file_path for r in only_py.records) == ["a.py", "c.py"]
    assert [r.file_path for r in since_base.records] == ["c.py"]


def test_blame_computed_once_per_file(repo_builder):
    """Test that many matches in one file share a single blame."""
    repo_builder.commit({"a.py": "".join(f"# TODO: item {i}\n" for i in range(20))}, "many")
    config = ScanConfig(repo_path=repo_builder.path, max_workers=4)
    provider = GitHistoryProvider(repo_builder.path)
    engine = AttributionEngine(provider, config)

    with patch.object(provider, "blame_file", wraps=provider.blame_file) as blame_file:
        result = engine.scan()

    assert len(result.records) == 20
    blame_file.assert_called_once()


def test_scan_is_idempotent(repo_builder):
    """Test that two scans of the same revision produce identical reports."""
    c1 = repo_builder.commit({"a.py": "# TODO: a\n", "b.py": "x\n"}, "one", author="Alice")
    repo_builder.tag("v1", c1)
    repo_builder.commit({"b.py": "x\n# TODO(perf): b\n"}, "two", author="Bob")

    _, first = run_scan(repo_builder.path, revision="HEAD")
    _, second = run_scan(repo_builder.path, revision="HEAD")

    assert render_json(build_report(first.records)) == render_json(build_report(second.records))


def test_invalid_revision_is_fatal(repo_builder):
    """Test that provider-level failures propagate."""
    repo_builder.commit({"a.py": "x\n"}, "base")

    with pytest.raises(ProviderUnavailable):
        run_scan(repo_builder.path, revision="does-not-exist")


# ============================================================================
# Against an in-memory provider
# ============================================================================


def commit_info(sha: str, author: str = "Alice") -> CommitInfo:
    return CommitInfo(
        hash=sha * 40,
        short_hash=sha * 7,
        author_name=author,
        timestamp=datetime(2024, 1, 15, tzinfo=timezone.utc),
    )


class FakeProvider(HistoryProvider):
    """In-memory provider with configurable failures."""

    def __init__(self, files: Dict[str, bytes], blame: Dict[str, Dict[int, CommitInfo]], tags=None):
        self.files = files
        self.blame = blame
        self.tags: Dict[str, List[TagInfo]] = tags or {}
        self.unreadable: Set[str] = set()

    def resolve_revision(self, revision: Optional[str]) -> Optional[str]:
        return revision

    def list_revisions(self, revision=None, max_count=None):
        return []

    def list_tracked_files(self, revision):
        return list(self.files) + sorted(self.unreadable)

    def changed_files(self, base_ref, revision):
        return set(self.files)

    def read_file(self, revision, path):
        if path in self.unreadable:
            raise FileUnreadable(path, "permission denied")
        if path not in self.files:
            raise FileNotFoundInHistory(path)
        return self.files[path]

    def blame_file(self, revision, path):
        if path not in self.blame:
            raise BlameUnresolved(path, 1)
        return self.blame[path]

    def tags_reachable_from(self, commit_hash, nearest_only=False):
        return self.tags.get(commit_hash, [])


def make_engine(provider: HistoryProvider) -> AttributionEngine:
    return AttributionEngine(provider, ScanConfig(repo_path=".", max_workers=2))


def test_attribute_file_resolves_each_line():
    """Test per-line attribution with a partial blame map."""
    alice, bob = commit_info("a", "Alice"), commit_info("b", "Bob")
    provider = FakeProvider({}, {"x.py": {1: alice, 3: bob}})
    engine = make_engine(provider)
    matches = [TodoMatch(line_number=1, text="# TODO a"), TodoMatch(line_number=3, text="# TODO b"),
               TodoMatch(line_number=5, text="# TODO c")]

    records, unresolved = engine.attribute_file("x.py", matches)

    assert [r.commit.author_name for r in records] == ["Alice", "Bob", "Not Committed Yet"]
    assert [r.line_number for r in records] == [1, 3, 5]
    assert unresolved == 1


def test_attribute_file_without_matches_skips_blame():
    """Test that files without matches are never blamed."""
    provider = FakeProvider({}, {})
    engine = make_engine(provider)

    with patch.object(provider, "blame_file") as blame_file:
        assert engine.attribute_file("x.py", []) == ([], 0)

    blame_file.assert_not_called()


def test_unreadable_file_is_counted_and_skipped():
    """Test soft failure for files that cannot be read."""
    alice = commit_info("a")
    provider = FakeProvider({"ok.py": b"# TODO ok\n"}, {"ok.py": {1: alice}})
    provider.unreadable.add("locked.py")

    result = make_engine(provider).scan()

    assert [r.file_path for r in result.records] == ["ok.py"]
    assert result.stats.files_skipped == 1
    assert result.stats.files_scanned == 1


def test_ambiguous_tags_fall_back_to_no_tag():
    """Test that conflicting tag data resolves to no tag."""
    alice = commit_info("a")
    tags = {
        alice.hash: [
            TagInfo(name="v1", commit_hash="1" * 40, distance=1),
            TagInfo(name="v1", commit_hash="2" * 40, distance=1),
        ]
    }
    provider = FakeProvider({"x.py": b"# TODO\n"}, {"x.py": {1: alice}}, tags)

    result = make_engine(provider).scan()

    assert result.records[0].tag is None
    assert result.stats.tags_ambiguous == 1


def test_tag_resolution_cached_per_commit():
    """Test that each commit's tag is resolved once."""
    alice = commit_info("a")
    tags = {alice.hash: [TagInfo(name="v1", commit_hash=alice.hash, distance=0)]}
    provider = FakeProvider(
        {"x.py": b"# TODO 1\n# TODO 2\n", "y.py": b"# TODO 3\n"},
        {"x.py": {1: alice, 2: alice}, "y.py": {1: alice}},
        tags,
    )
    engine = make_engine(provider)

    with patch.object(provider, "tags_reachable_from", wraps=provider.tags_reachable_from) as reachable:
        result = engine.scan()

    assert {r.tag.name for r in result.records} == {"v1"}
    reachable.assert_called_once_with(alice.hash, nearest_only=True)
