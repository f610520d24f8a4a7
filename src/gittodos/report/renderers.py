"""Renderers for the report tree: rich glyph tree, plain text and JSON."""

import json
import re
from datetime import datetime, timezone
from typing import List, Optional

from rich.text import Text
from rich.tree import Tree

from gittodos.report.tree import CommitGroup, ReportTree, TodoLeaf

TAG_GLYPH = "🏷️"
AUTHOR_GLYPH = "👤"
NO_TODOS_MESSAGE = "✅ No TODOs found in the repository."


def humanize_delta(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Relative time such as ``3 days ago``.

    Args:
        timestamp: Point in time, None for uncommitted changes
        now: Reference time (defaults to the current UTC time)
    """
    if timestamp is None:
        return "not committed"

    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    seconds = int((now - timestamp).total_seconds())
    future = seconds < 0
    seconds = abs(seconds)

    units = (
        ("year", 365 * 24 * 3600),
        ("month", 30 * 24 * 3600),
        ("week", 7 * 24 * 3600),
        ("day", 24 * 3600),
        ("hour", 3600),
        ("minute", 60),
    )
    for name, size in units:
        if seconds >= size:
            count = seconds // size
            phrase = f"{count} {name}{'s' if count != 1 else ''}"
            return f"in {phrase}" if future else f"{phrase} ago"
    return "just now"


def commit_label(group: CommitGroup, use_message: bool = False, now: Optional[datetime] = None) -> str:
    """Header for a commit group, e.g. ``[1a2b3c4/3 days ago]``."""
    when = humanize_delta(group.timestamp, now)
    if group.is_uncommitted:
        return f"[uncommitted/{when}]"

    if len(group.commits) == 1 and group.key == group.commits[0].hash:
        commit = group.commits[0]
        name = commit.label if use_message else commit.short_hash
        return f"[{name}/{when}]"

    count = len(group.commits)
    return f"[{group.key}/{when}] {count} commit{'s' if count != 1 else ''}"


def leaf_label(leaf: TodoLeaf) -> str:
    """``path:line - text`` with labels appended."""
    label = f"{leaf.file_path}:{leaf.line_number} - {leaf.text}"
    if leaf.labels:
        label += f" ({', '.join(leaf.labels)})"
    return label


def _highlighted(label: str, tokens: List[str]) -> Text:
    text = Text(label)
    if tokens:
        alternatives = "|".join(re.escape(token) for token in tokens)
        text.highlight_regex(re.compile(rf"(?i)\b(?:{alternatives})\b"), style="bold red")
    return text


def render_tree(
    tree: ReportTree,
    tokens: Optional[List[str]] = None,
    use_message: bool = False,
    now: Optional[datetime] = None,
) -> List[Tree]:
    """Build one rich Tree per commit group.

    Untagged TODOs hang directly below the commit; tagged ones sit under a
    tag node.

    Args:
        tree: Report to render
        tokens: Marker tokens to highlight in leaf text
        use_message: Show the commit message summary instead of the short hash
        now: Reference time for relative timestamps

    Returns:
        Rich renderables, in report order
    """
    tokens = tokens or ["todo"]
    rendered = []
    for group in tree.groups:
        root = Tree(Text(commit_label(group, use_message, now), style="bold cyan"))
        for tag_group in group.tags:
            parent = root.add(Text(f"{TAG_GLYPH} {tag_group.tag}", style="yellow")) if tag_group.is_tagged else root
            for author_group in tag_group.authors:
                author_node = parent.add(Text(f"{AUTHOR_GLYPH} {author_group.author}", style="green"))
                for leaf in author_group.leaves:
                    author_node.add(_highlighted(leaf_label(leaf), tokens))
        rendered.append(root)
    return rendered


def render_text(tree: ReportTree) -> str:
    """Plain indented text with absolute timestamps, stable across runs."""
    if tree.is_empty:
        return NO_TODOS_MESSAGE + "\n"

    lines = []
    for depth, node in tree.walk():
        indent = "  " * depth
        if depth == 0:
            when = node.timestamp.isoformat() if node.timestamp else "uncommitted"
            key = node.key[:7] if tree.group_by == "commit" and node.timestamp else node.key
            lines.append(f"{indent}[{key}/{when}]")
        elif depth == 1:
            lines.append(f"{indent}tag: {node.tag if node.is_tagged else '(none)'}")
        elif depth == 2:
            lines.append(f"{indent}author: {node.author}")
        else:
            lines.append(f"{indent}{leaf_label(node)}")
    return "\n".join(lines) + "\n"


def render_json(tree: ReportTree) -> str:
    """JSON document of the full tree."""
    return json.dumps(tree.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
