"""Core data models for ctxkit token monitoring and context bundles."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

BUNDLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ThresholdStage(str, Enum):
    """Token budget pressure stages, ordered from least to most severe."""

    FRESH = "fresh"
    GROWING = "growing"
    LARGE = "large"
    CRITICAL = "critical"
    OVERLOAD = "overload"

    @property
    def rank(self) -> int:
        """Position of the stage in the severity order (0 = fresh)."""
        return list(ThresholdStage).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ThresholdStage):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ThresholdStage):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ThresholdStage):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ThresholdStage):
            return NotImplemented
        return self.rank >= other.rank


class RecommendedAction(str, Enum):
    """What the agent should do about its current context usage."""

    NONE = "none"
    DELEGATE = "delegate"
    SAVE_BUNDLE = "save_bundle"
    HANDOFF = "handoff"


class Classification(BaseModel):
    """Result of classifying a token count."""

    model_config = ConfigDict(frozen=True)

    stage: ThresholdStage = Field(..., description="Matched threshold stage")
    icon: str = Field(..., description="Severity icon")
    label: str = Field(..., description="Severity label, e.g. NOTICE")
    tokens: int = Field(..., description="Token count that was classified")
    message: str = Field(..., description="One-line human readable status")
    action: RecommendedAction = Field(..., description="Recommended next step")

    @property
    def badge(self) -> str:
        """Icon and label joined, e.g. '🟡 NOTICE'."""
        return f"{self.icon} {self.label}"


class ThresholdConfig(BaseModel):
    """Inclusive lower bounds of each non-fresh stage."""

    growing: int = Field(default=60_000, gt=0)
    large: int = Field(default=100_000, gt=0)
    critical: int = Field(default=120_000, gt=0)
    overload: int = Field(default=150_000, gt=0)

    @model_validator(mode="after")
    def validate_ascending(self) -> ThresholdConfig:
        """Breakpoints must be strictly ascending."""
        bounds = [self.growing, self.large, self.critical, self.overload]
        if any(low >= high for low, high in zip(bounds, bounds[1:])):
            msg = "Thresholds must be strictly ascending: growing < large < critical < overload"
            raise ValueError(msg)
        return self


class BundleStatus(str, Enum):
    """Recency-derived status of a stored bundle."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class StatusPolicy(BaseModel):
    """Age windows used to derive a bundle's status."""

    active_hours: int = Field(default=24, gt=0)
    archive_days: int = Field(default=30, gt=0)

    @model_validator(mode="after")
    def validate_windows(self) -> StatusPolicy:
        """The active window must end before the archive window starts."""
        if timedelta(hours=self.active_hours) > timedelta(days=self.archive_days):
            msg = "active_hours must not exceed archive_days"
            raise ValueError(msg)
        return self

    def status_for(self, created: datetime, now: datetime | None = None) -> BundleStatus:
        """Derive a status from a bundle's creation time."""
        now = now or datetime.now(tz=UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        age = now - created
        if age < timedelta(hours=self.active_hours):
            return BundleStatus.ACTIVE
        if age > timedelta(days=self.archive_days):
            return BundleStatus.ARCHIVED
        return BundleStatus.COMPLETED


class BundleContext(BaseModel):
    """Task state captured in a bundle."""

    model_config = ConfigDict(frozen=True, extra="allow")

    task: str = Field(default="", description="What the session was working on")
    files_modified: list[str] = Field(
        default_factory=list,
        description="Paths touched during the session, in order",
    )
    decisions: list[str] = Field(
        default_factory=list,
        description="Decisions made during the session, in order",
    )
    progress: str = Field(default="", description="Summary of progress so far")


class Bundle(BaseModel):
    """A named snapshot of task state handed off between agent sessions."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(..., description="Unique bundle name")
    created: datetime = Field(
        default_factory=lambda: datetime.now(tz=UTC),
        description="When the bundle was created",
    )
    context: BundleContext = Field(default_factory=BundleContext)
    tokens: int = Field(..., ge=0, description="Token count at save time")
    next_agent: str | None = Field(default=None, description="Agent to hand off to")
    next_task: str | None = Field(default=None, description="Task for the next agent")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate bundle name is usable as a file name."""
        if not BUNDLE_NAME_PATTERN.fullmatch(v):
            msg = (
                "Bundle name must start with a letter or digit and contain only "
                "letters, digits, '.', '_' or '-'"
            )
            raise ValueError(msg)
        return v

    @property
    def task(self) -> str:
        """Task description from the bundle context."""
        return self.context.task

    @property
    def files_modified(self) -> list[str]:
        """Copy of the modified file paths, in order."""
        return list(self.context.files_modified)

    @property
    def decisions(self) -> list[str]:
        """Copy of the recorded decisions, in order."""
        return list(self.context.decisions)

    @property
    def progress(self) -> str:
        """Progress summary from the bundle context."""
        return self.context.progress

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted JSON layout."""
        document = self.model_dump(mode="json")
        for key in ("next_agent", "next_task"):
            if document.get(key) is None:
                document.pop(key, None)
        return document


class BundleSummary(BaseModel):
    """Condensed view of a bundle returned by listings."""

    name: str
    created: datetime
    tokens: int
    status: BundleStatus
    task: str = ""
