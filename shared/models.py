"""
Data models for the deploy info service.

This module provides:
- Commit records read from repository history
- Deployment classification results and status
- The load-time snapshot
- The aggregate info record served to consumers
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator


class DeployStatus(str, Enum):
    """Deploy status derived from the most recent commit."""
    UNKNOWN = "unknown"
    SUCCESS = "success"
    FAILED = "failed"


class CommitRecord(BaseModel):
    """A single commit as read from history."""

    hash: str = Field(..., min_length=1, description="Full commit hash")
    author_name: str = Field(default="", description="Author name")
    author_email: str = Field(default="", description="Author email")
    committer_name: str = Field(default="", description="Committer name")
    message: str = Field(default="", description="Full commit message")
    timestamp: datetime = Field(..., description="Commit timestamp")

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v):
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @computed_field
    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @computed_field
    @property
    def subject(self) -> str:
        """First paragraph of the message folded onto one line, as git's ``%s`` shows it."""
        lines = []
        for line in self.message.strip().splitlines():
            if not line.strip():
                break
            lines.append(line.rstrip())
        return " ".join(lines)


class DeploymentSummary(BaseModel):
    """Result of classifying a history."""

    count: int = Field(default=0, ge=0, description="Number of qualifying commits")
    last_qualifying: Optional[CommitRecord] = Field(
        default=None, description="Most recent qualifying commit"
    )

    model_config = {"frozen": True}


class DeploymentInfo(BaseModel):
    """Deployment summary together with status and history availability."""

    status: DeployStatus = Field(default=DeployStatus.UNKNOWN)
    history_available: bool = Field(default=False, description="Whether history could be read")
    pattern: str = Field(..., description="Pattern used for classification")
    count: int = Field(default=0, ge=0)
    last_qualifying: Optional[CommitRecord] = None

    model_config = {"frozen": True}


class Snapshot(BaseModel):
    """Values captured once when a deploy info context is created."""

    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="1.0.0")
    build_label: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class InfoRecord(BaseModel):
    """Aggregate deploy info for one query."""

    snapshot: Snapshot
    short_hash: str = Field(default="unknown")
    branch: str = Field(default="unknown")
    head: Optional[CommitRecord] = None
    commit_count: int = Field(default=0, ge=0, description="Commits reachable from HEAD")
    deployment: DeploymentInfo
    latest_tag: str = Field(default="no-tag")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}
