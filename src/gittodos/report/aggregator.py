"""Fold attribution records into the ordered report tree."""

from datetime import timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from gittodos.models import AttributionRecord, CommitInfo, GroupBy
from gittodos.report.tree import AuthorGroup, CommitGroup, ReportTree, TagGroup, TodoLeaf

UNCOMMITTED_KEY = "uncommitted"


def group_key(commit: CommitInfo, group_by: GroupBy = "commit") -> str:
    """Key of the commit group a commit belongs to.

    Args:
        commit: Commit to classify
        group_by: commit, day, week (ISO) or month; buckets use UTC

    Returns:
        The commit hash, a bucket label such as ``2024-01-15``, ``2024-W03``
        or ``2024-01``, or ``uncommitted``
    """
    if commit.is_uncommitted or commit.timestamp is None:
        return UNCOMMITTED_KEY
    if group_by == "commit":
        return commit.hash

    timestamp = commit.timestamp.astimezone(timezone.utc)
    if group_by == "day":
        return timestamp.strftime("%Y-%m-%d")
    if group_by == "week":
        year, week, _ = timestamp.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == "month":
        return timestamp.strftime("%Y-%m")
    raise ValueError(f"Unknown grouping: {group_by}")


def _record_order(record: AttributionRecord) -> Tuple:
    # Most recent commit first, so deduplication keeps the newest attribution
    timestamp = record.commit.timestamp
    recency = float("inf") if timestamp is None else timestamp.timestamp()
    return (record.file_path, record.line_number, -recency, record.commit.hash, record.text)


def _group_order(group: CommitGroup) -> Tuple:
    if group.timestamp is None:
        return (0, 0.0, group.key)
    return (1, -group.timestamp.timestamp(), group.key)


def _tag_order(tag_group: TagGroup) -> Tuple:
    if tag_group.tag is None:
        return (1, 0, "")
    return (0, tag_group.distance or 0, tag_group.tag)


def build_report(records: Iterable[AttributionRecord], group_by: GroupBy = "commit") -> ReportTree:
    """Build the report tree from an unordered collection of records.

    Ordering rules:
        - commit groups by timestamp, most recent first (uncommitted first),
          ties by key
        - tag groups: tagged before untagged, then distance, then name
        - author groups alphabetically
        - leaves by file path, then line number

    At most one leaf exists per (file, line) in a commit group; groups only
    exist when they hold at least one leaf.

    Args:
        records: Attribution records, in any order
        group_by: Outermost grouping

    Returns:
        The ordered ReportTree
    """
    groups: Dict[str, CommitGroup] = {}
    tag_groups: Dict[Tuple[str, Optional[str]], TagGroup] = {}
    author_groups: Dict[Tuple[str, Optional[str], str], AuthorGroup] = {}
    seen: Set[Tuple[str, str, int]] = set()
    group_commits: Dict[str, Dict[str, CommitInfo]] = {}

    for record in sorted(records, key=_record_order):
        key = group_key(record.commit, group_by)
        if (key, record.file_path, record.line_number) in seen:
            continue
        seen.add((key, record.file_path, record.line_number))

        group = groups.get(key)
        if group is None:
            group = CommitGroup(key=key, timestamp=record.commit.timestamp)
            groups[key] = group
            group_commits[key] = {}
        elif record.commit.timestamp is not None and (
            group.timestamp is None or record.commit.timestamp > group.timestamp
        ):
            group.timestamp = record.commit.timestamp
        group_commits[key].setdefault(record.commit.hash, record.commit)

        tag_name = record.tag.name if record.tag else None
        tag_group = tag_groups.get((key, tag_name))
        if tag_group is None:
            tag_group = TagGroup(tag=tag_name, distance=record.tag.distance if record.tag else None)
            tag_groups[(key, tag_name)] = tag_group
            group.tags.append(tag_group)
        elif record.tag is not None and record.tag.distance < (tag_group.distance or 0):
            tag_group.distance = record.tag.distance

        author = record.commit.author_name
        author_group = author_groups.get((key, tag_name, author))
        if author_group is None:
            author_group = AuthorGroup(author=author)
            author_groups[(key, tag_name, author)] = author_group
            tag_group.authors.append(author_group)

        author_group.leaves.append(
            TodoLeaf(
                file_path=record.file_path,
                line_number=record.line_number,
                text=record.text,
                labels=list(record.labels),
            )
        )

    ordered: List[CommitGroup] = []
    for key, group in groups.items():
        group.commits = sorted(
            group_commits[key].values(),
            key=lambda c: (-(c.timestamp.timestamp() if c.timestamp else float("inf")), c.hash),
        )
        for tag_group in group.tags:
            for author_group in tag_group.authors:
                author_group.leaves.sort(key=lambda leaf: (leaf.file_path, leaf.line_number))
            tag_group.authors = [a for a in tag_group.authors if a.leaves]
            tag_group.authors.sort(key=lambda a: (a.author.casefold(), a.author))
        group.tags = [t for t in group.tags if t.authors]
        group.tags.sort(key=_tag_order)
        if group.tags:
            ordered.append(group)

    ordered.sort(key=_group_order)
    return ReportTree(group_by=group_by, groups=ordered)

