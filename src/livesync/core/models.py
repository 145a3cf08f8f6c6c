"""
LiveSync data models.

Defines the ephemeral file records produced during enumeration and the
reports returned by adapters and the sync coordinator.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SyncDirection(Enum):
    """Direction of a single adapter call."""

    PULL = "pull"
    PUSH = "push"


class LocationOutcome(Enum):
    """How an adapter call ended."""

    OK = auto()
    UNREACHABLE = auto()
    FAILED = auto()
    CANCELLED = auto()


@dataclass
class FileRecord:
    """A file seen during one enumeration. Never persisted between cycles."""

    relative_path: str
    modified: datetime
    size: int | None = None
    hash_loader: Callable[[], bytes] | None = field(default=None, repr=False, compare=False)
    _content_hash: bytes | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.relative_path.rsplit("/", 1)[-1]

    @property
    def content_hash(self) -> bytes:
        """SHA-256 of the file content, computed on first access."""
        if self._content_hash is None:
            if self.hash_loader is None:
                raise ValueError(f"No hash source for {self.relative_path}")
            self._content_hash = self.hash_loader()
        return self._content_hash


@dataclass
class TransferSummary:
    copied: int = 0
    skipped: int = 0
    unchanged: int = 0
    errors: int = 0
    bytes_copied: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "copied": self.copied,
            "skipped": self.skipped,
            "unchanged": self.unchanged,
            "errors": self.errors,
            "bytes_copied": self.bytes_copied,
        }


@dataclass
class LocationReport:
    """Result of one pull or push call against one location."""

    location: str
    location_type: str
    direction: SyncDirection
    outcome: LocationOutcome = LocationOutcome.OK
    summary: TransferSummary = field(default_factory=TransferSummary)
    errors: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.summary.errors += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location,
            "location_type": self.location_type,
            "direction": self.direction.value,
            "outcome": self.outcome.name,
            "summary": self.summary.to_dict(),
            "errors": self.errors,
        }


@dataclass
class SyncReport:
    """Result of one full pull/push cycle for a sync setting."""

    setting: str
    cache_directory: str
    started_at: datetime
    ended_at: datetime | None = None
    pulls: list[LocationReport] = field(default_factory=list)
    pushes: list[LocationReport] = field(default_factory=list)
    cancelled: bool = False

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return None

    @property
    def files_copied(self) -> int:
        return sum(r.summary.copied for r in self.pulls + self.pushes)

    @property
    def bytes_copied(self) -> int:
        return sum(r.summary.bytes_copied for r in self.pulls + self.pushes)

    @property
    def success(self) -> bool:
        return not self.cancelled and all(
            r.outcome == LocationOutcome.OK and not r.errors for r in self.pulls + self.pushes
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "setting": self.setting,
            "cache_directory": self.cache_directory,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": self.duration_seconds,
            "cancelled": self.cancelled,
            "pulls": [report.to_dict() for report in self.pulls],
            "pushes": [report.to_dict() for report in self.pushes],
            "summary": {
                "files_copied": self.files_copied,
                "bytes_copied": self.bytes_copied,
                "success": self.success,
            },
        }
