"""Report tree construction and rendering."""

from gittodos.report.aggregator import build_report, group_key
from gittodos.report.renderers import render_json, render_text, render_tree
from gittodos.report.tree import AuthorGroup, CommitGroup, ReportTree, TagGroup, TodoLeaf

__all__ = [
    "build_report",
    "group_key",
    "render_json",
    "render_text",
    "render_tree",
    "AuthorGroup",
    "CommitGroup",
    "ReportTree",
    "TagGroup",
    "TodoLeaf",
]
