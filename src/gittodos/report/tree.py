"""Report tree: commit group -> tag -> author -> TODO leaves."""

from datetime import datetime
from typing import Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from gittodos.models import CommitInfo


class TodoLeaf(BaseModel):
    """A single TODO line in the report."""

    file_path: str = Field(..., description="Path relative to the repository root")
    line_number: int = Field(..., ge=1, description="1-based line number")
    text: str = Field(..., description="Trimmed line content")
    labels: List[str] = Field(default_factory=list, description="Labels from TODO(label, ...) annotations")


class AuthorGroup(BaseModel):
    """TODOs written by one author."""

    author: str = Field(..., description="Author name")
    leaves: List[TodoLeaf] = Field(default_factory=list, description="TODO lines, by file then line")


class TagGroup(BaseModel):
    """TODOs whose commit resolves to the same nearest tag."""

    tag: Optional[str] = Field(None, description="Tag name, None for the no-tag group")
    distance: Optional[int] = Field(None, description="Smallest ancestry distance to the tag within the group")
    authors: List[AuthorGroup] = Field(default_factory=list, description="Author groups, alphabetical")

    @property
    def is_tagged(self) -> bool:
        return self.tag is not None


class CommitGroup(BaseModel):
    """Outermost report level: one commit, or one time bucket of commits."""

    key: str = Field(..., description="Commit hash or time bucket label")
    timestamp: Optional[datetime] = Field(None, description="Most recent commit time in the group, None if uncommitted")
    commits: List[CommitInfo] = Field(default_factory=list, description="Commits contributing to the group")
    tags: List[TagGroup] = Field(default_factory=list, description="Tag groups, tagged first")

    @property
    def is_uncommitted(self) -> bool:
        return self.timestamp is None


ReportNode = Union[CommitGroup, TagGroup, AuthorGroup, TodoLeaf]


class ReportTree(BaseModel):
    """The complete, ordered report.

    Ordering is fixed when the tree is built, so renderers only need to walk
    it: ``walk()`` yields nodes depth-first, CommitGroup (depth 0), TagGroup
    (1), AuthorGroup (2), TodoLeaf (3).
    """

    group_by: str = Field("commit", description="Outermost grouping used to build the tree")
    groups: List[CommitGroup] = Field(default_factory=list, description="Commit groups, most recent first")

    def walk(self) -> Iterator[Tuple[int, ReportNode]]:
        for group in self.groups:
            yield 0, group
            for tag_group in group.tags:
                yield 1, tag_group
                for author_group in tag_group.authors:
                    yield 2, author_group
                    for leaf in author_group.leaves:
                        yield 3, leaf

    def leaves(self) -> Iterator[Tuple[CommitGroup, TagGroup, AuthorGroup, TodoLeaf]]:
        """Every leaf together with its ancestors."""
        for group in self.groups:
            for tag_group in group.tags:
                for author_group in tag_group.authors:
                    for leaf in author_group.leaves:
                        yield group, tag_group, author_group, leaf

    @property
    def is_empty(self) -> bool:
        return not self.groups

    @property
    def todo_count(self) -> int:
        return sum(1 for _ in self.leaves())
