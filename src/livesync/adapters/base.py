"""
LiveSync location adapter base.

Defines the capability every storage backend offers ({pull_latest,
push_latest}) and the decision rule shared by all of them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Collection, Iterable
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING

from livesync.core.config import normalize_extension
from livesync.core.errors import SyncCancelledError, TransientLocationError
from livesync.core.logging import get_logger
from livesync.core.models import (
    EPOCH,
    FileRecord,
    LocationOutcome,
    LocationReport,
    SyncDirection,
)

if TYPE_CHECKING:
    from livesync.core.cancellation import CancellationToken
    from livesync.core.config import Location

PART_SUFFIX = ".part"


class CopyDecision(Enum):
    """Outcome of comparing a source file with its destination."""

    COPY = auto()
    UP_TO_DATE = auto()
    IDENTICAL = auto()


def decide(source: FileRecord, destination: FileRecord | None) -> CopyDecision:
    """
    Timestamp first, content hash only as a tie-breaker when the
    destination exists and is older.
    """
    if destination is None:
        return CopyDecision.COPY
    if destination.modified >= source.modified:
        return CopyDecision.UP_TO_DATE
    if source.content_hash == destination.content_hash:
        return CopyDecision.IDENTICAL
    return CopyDecision.COPY


class LocationAdapter(ABC):
    """One-directional synchronization between one location and the cache."""

    # log method used when the location cannot be reached
    unreachable_log_level = "debug"

    def __init__(
        self,
        cache_dir: Path,
        location: Location,
        extensions: Collection[str],
        max_backups: int,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.location = location
        self.extensions = frozenset(normalize_extension(ext) for ext in extensions)
        self.max_backups = max_backups
        self.logger = get_logger(f"livesync.adapters.{type(self).__name__}").bind(
            location=location.describe()
        )

    @abstractmethod
    def pull_latest(self, token: CancellationToken) -> LocationReport:
        """Copy location files that are newer than the cached copy into the cache."""

    @abstractmethod
    def push_latest(self, token: CancellationToken) -> LocationReport:
        """Copy cache files that are newer than the location's copy out to the location."""

    # ==================== Rename Mapping ====================

    @property
    def location_extensions(self) -> frozenset[str]:
        """Extensions to enumerate at the location, after renaming."""
        mappings = self.location.rename_mappings
        return self.extensions | {mappings[ext] for ext in self.extensions if ext in mappings}

    def to_cache_path(self, relative_path: str) -> str:
        """Destination path in the cache for a file pulled from the location."""
        for cache_ext, location_ext in self.location.rename_mappings.items():
            if relative_path.endswith(location_ext):
                return relative_path[: -len(location_ext)] + cache_ext
        return relative_path

    def to_location_path(self, relative_path: str) -> str:
        """Destination path at the location for a file pushed from the cache."""
        for cache_ext, location_ext in self.location.rename_mappings.items():
            if relative_path.endswith(cache_ext):
                return relative_path[: -len(cache_ext)] + location_ext
        return relative_path

    # ==================== Shared Driver ====================

    def is_transient(self, exc: BaseException) -> bool:
        """Whether `exc` means the location itself is unreachable right now."""
        return False

    def _run(
        self,
        direction: SyncDirection,
        body: Callable[[LocationReport], None],
    ) -> LocationReport:
        report = LocationReport(
            location=self.location.describe(),
            location_type=self.location.type.value,
            direction=direction,
        )
        try:
            body(report)
        except SyncCancelledError:
            report.outcome = LocationOutcome.CANCELLED
            self.logger.warning("Sync cancelled", direction=direction.value)
        except TransientLocationError as e:
            report.outcome = LocationOutcome.UNREACHABLE
            self._log_unreachable(direction, e.reason)
        except Exception as e:
            if self.is_transient(e):
                report.outcome = LocationOutcome.UNREACHABLE
                self._log_unreachable(direction, str(e))
            else:
                report.outcome = LocationOutcome.FAILED
                report.add_error(str(e))
                self.logger.error(
                    f"An error occurred while {direction.value}ing the latest files",
                    direction=direction.value,
                    error=str(e),
                    exc_info=True,
                )
        return report

    def _log_unreachable(self, direction: SyncDirection, reason: str) -> None:
        log = getattr(self.logger, self.unreachable_log_level)
        log("Location unreachable, skipping", direction=direction.value, reason=reason)

    def _sync_files(
        self,
        report: LocationReport,
        token: CancellationToken,
        sources: Iterable[FileRecord],
        destination_path: Callable[[str], str],
        lookup: Callable[[str], FileRecord | None],
        copy: Callable[[FileRecord, str, FileRecord | None], int],
    ) -> None:
        """
        Apply the decision rule to every source file. A failure on one
        file is logged and that file skipped; transient failures abort
        the whole call.
        """
        for source in sources:
            token.check_cancelled()
            target = destination_path(source.relative_path)
            try:
                destination = lookup(target)
                decision = decide(source, destination)
                if decision is CopyDecision.UP_TO_DATE:
                    report.summary.skipped += 1
                    continue
                if decision is CopyDecision.IDENTICAL:
                    report.summary.unchanged += 1
                    self.logger.debug("Content identical, not copying", file=source.relative_path)
                    continue

                self.logger.info(
                    "Source file is newer than destination",
                    direction=report.direction.value,
                    source=source.relative_path,
                    source_modified=source.modified.isoformat(),
                    destination=target,
                    destination_modified=(destination.modified if destination else EPOCH).isoformat(),
                )
                report.summary.bytes_copied += copy(source, target, destination)
                report.summary.copied += 1
            except (SyncCancelledError, TransientLocationError):
                raise
            except Exception as e:
                if self.is_transient(e):
                    raise
                report.add_error(f"{source.relative_path}: {e}")
                self.logger.error(
                    "Failed to synchronize file",
                    file=source.relative_path,
                    error=str(e),
                    exc_info=True,
                )
