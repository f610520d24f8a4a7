"""Configuration models."""

import os
from pathlib import Path, PurePosixPath
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GroupBy = Literal["commit", "day", "week", "month"]


class ScanConfig(BaseModel):
    """Options for a single scan of a repository."""

    repo_path: Path = Field(..., description="Path to the Git repository")
    revision: Optional[str] = Field(
        None,
        description="Revision to scan; None scans the working tree",
    )
    base_ref: Optional[str] = Field(
        None,
        description="Only scan files that differ between this ref and the scanned revision",
    )
    tokens: List[str] = Field(
        default_factory=lambda: ["todo"],
        description="Marker tokens, matched case-insensitively as whole words",
    )
    require_comment: bool = Field(
        False,
        description="Require the marker to follow a comment-introducing sequence",
    )
    included_extensions: List[str] = Field(
        default_factory=list,
        description="File extensions to include (empty includes everything)",
    )
    excluded_paths: List[str] = Field(
        default_factory=lambda: ["node_modules/", ".git/", "__pycache__/", "venv/", "dist/", "build/"],
        description="Paths to exclude",
    )
    max_file_size_bytes: int = Field(
        default=1_000_000,  # 1MB
        description="Files larger than this are skipped",
    )
    first_parent: bool = Field(
        False,
        description="Follow only first parents when resolving the nearest tag",
    )
    group_by: GroupBy = Field("commit", description="Outermost grouping: commit, day, week or month")
    max_workers: int = Field(
        default_factory=lambda: os.cpu_count() or 4,
        description="Worker threads for reading, scanning and blaming files",
    )

    @field_validator("tokens")
    @classmethod
    def _tokens_not_empty(cls, value: List[str]) -> List[str]:
        tokens = [t.strip() for t in value if t.strip()]
        if not tokens:
            raise ValueError("At least one marker token is required")
        return tokens

    @field_validator("max_workers")
    @classmethod
    def _positive_workers(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_workers must be at least 1")
        return value

    def should_include(self, file_path: str) -> bool:
        """Check if a file should be scanned based on configuration.

        Args:
            file_path: Path relative to the repository root

        Returns:
            True if the file should be scanned
        """
        parts = PurePosixPath(file_path).parts
        for excluded in self.excluded_paths:
            # Whole path components only: "build/" must not match "rebuild/"
            excluded_parts = PurePosixPath(excluded.strip("/")).parts
            size = len(excluded_parts)
            if size and any(parts[i : i + size] == excluded_parts for i in range(len(parts) - size + 1)):
                return False

        if not self.included_extensions:
            return True

        return Path(file_path).suffix in self.included_extensions

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "repo_path": "/path/to/repo",
                "revision": "HEAD",
                "tokens": ["todo", "fixme"],
                "group_by": "commit",
                "max_file_size_bytes": 1000000,
            }
        }
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are prefixed with GITTODOS_ (e.g., GITTODOS_LOG_LEVEL).
    """

    model_config = SettingsConfigDict(
        env_prefix="GITTODOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scanning
    tokens: List[str] = ["todo"]
    max_file_size_bytes: int = 1_000_000
    max_workers: Optional[int] = None
    group_by: GroupBy = "commit"

    # Logging
    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"
