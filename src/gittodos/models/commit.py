"""Data models for commits, tags and attributed TODO matches."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNCOMMITTED_HASH = "0" * 40


class CommitInfo(BaseModel):
    """Identity of a commit that last touched a line."""

    model_config = ConfigDict(frozen=True)

    hash: str = Field(..., description="Full commit SHA hash")
    short_hash: str = Field(..., description="Short commit SHA hash (7 chars)")
    author_name: str = Field(..., description="Author name")
    author_email: str = Field("", description="Author email")
    timestamp: Optional[datetime] = Field(None, description="Commit timestamp (UTC), None for uncommitted lines")
    message_summary: str = Field("", description="First line of commit message")

    @property
    def is_uncommitted(self) -> bool:
        """Whether this is the pseudo-commit for lines not yet committed."""
        return self.hash == UNCOMMITTED_HASH

    @property
    def label(self) -> str:
        """Message summary, falling back to the short hash."""
        return self.message_summary or self.short_hash


UNCOMMITTED = CommitInfo(
    hash=UNCOMMITTED_HASH,
    short_hash=UNCOMMITTED_HASH[:7],
    author_name="Not Committed Yet",
    author_email="not.committed.yet",
    timestamp=None,
    message_summary="Uncommitted changes",
)


class TagInfo(BaseModel):
    """A tag reachable from a commit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Tag name")
    commit_hash: str = Field(..., description="Hash of the commit the tag points to")
    distance: int = Field(0, description="Ancestry edges between the queried commit and the tag target")


class TodoMatch(BaseModel):
    """A single marker found by the scanner."""

    model_config = ConfigDict(frozen=True)

    line_number: int = Field(..., ge=1, description="1-based line number")
    text: str = Field(..., description="Trimmed line content")
    labels: List[str] = Field(default_factory=list, description="Labels from TODO(label, ...) annotations")


class AttributionRecord(BaseModel):
    """A TODO match resolved to the commit, author and tag behind it."""

    file_path: str = Field(..., description="Path relative to the repository root")
    line_number: int = Field(..., ge=1, description="1-based line number")
    text: str = Field(..., description="Trimmed line content")
    labels: List[str] = Field(default_factory=list, description="Labels from TODO(label, ...) annotations")
    commit: CommitInfo = Field(..., description="Commit that last modified the line")
    tag: Optional[TagInfo] = Field(None, description="Nearest tag, None when untagged")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "file_path": "src/auth.py",
                "line_number": 42,
                "text": "# TODO(security): validate token expiry",
                "labels": ["security"],
                "commit": {
                    "hash": "abc123def456",
                    "short_hash": "abc123d",
                    "author_name": "John Doe",
                    "author_email": "john@example.com",
                    "timestamp": "2024-01-15T10:30:00Z",
                    "message_summary": "Add token validation",
                },
                "tag": {"name": "v1.2.0", "commit_hash": "abc123def456", "distance": 0},
            }
        },
    )
