"""
LiveSync sync coordinator.

Drives the two-phase cycle for one sync setting. Every location is first
pulled into the setting's cache subdirectory, then the cache is pushed
back out to every location. Routing all comparisons through the cache
means each location sees the newest version of every file discovered
during the pull phase after a single cycle.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from livesync.adapters.base import LocationAdapter
from livesync.adapters.factory import AdapterFactory
from livesync.core.cancellation import CancellationToken
from livesync.core.config import SyncSetting
from livesync.core.errors import ConfigurationError
from livesync.core.logging import OperationLogger, get_logger
from livesync.core.models import LocationOutcome, LocationReport, SyncReport

logger = get_logger(__name__)

MIN_LOCATIONS = 2


class SyncCoordinator:
    """Runs pull/push cycles for sync settings."""

    def __init__(
        self,
        factory: AdapterFactory | None = None,
        cycle_timeout: float | None = 120.0,
    ) -> None:
        self.factory = factory or AdapterFactory()
        self.cycle_timeout = cycle_timeout

    def synchronize(
        self,
        setting: SyncSetting,
        cache_root: Path,
        max_backups: int,
        token: CancellationToken | None = None,
    ) -> SyncReport:
        """
        Run one full cycle for `setting`.

        Raises ConfigurationError before any I/O if the setting has fewer
        than two locations or a location cannot be adapted. Location
        failures are recorded in the report, never raised.
        """
        if len(setting.locations) < MIN_LOCATIONS:
            raise ConfigurationError(
                f"Sync setting {setting.name!r} needs at least {MIN_LOCATIONS} locations, "
                f"found {len(setting.locations)}"
            )

        cache_dir = Path(cache_root) / setting.name
        adapters = [
            self.factory.create(cache_dir, location, setting.file_extensions, max_backups)
            for location in setting.locations
        ]

        cycle_token = (token or CancellationToken()).child(self.cycle_timeout)
        report = SyncReport(
            setting=setting.name,
            cache_directory=str(cache_dir),
            started_at=datetime.now(timezone.utc),
        )

        with OperationLogger("sync cycle", logger, setting=setting.name) as operation:
            cache_dir.mkdir(parents=True, exist_ok=True)
            try:
                if self._run_phase(adapters, "pull", report.pulls, cycle_token):
                    self._run_phase(adapters, "push", report.pushes, cycle_token)
            finally:
                report.ended_at = datetime.now(timezone.utc)
            report.cancelled = cycle_token.is_cancelled or any(
                r.outcome == LocationOutcome.CANCELLED for r in report.pulls + report.pushes
            )
            if report.cancelled:
                logger.warning("Sync cycle stopped before completion", setting=setting.name)
            operation.update(files_copied=report.files_copied, cancelled=report.cancelled)

        return report

    def _run_phase(
        self,
        adapters: list[LocationAdapter],
        phase: str,
        reports: list[LocationReport],
        token: CancellationToken,
    ) -> bool:
        """Run one phase over every adapter in order. False if cancelled."""
        for adapter in adapters:
            if token.is_cancelled:
                return False
            if phase == "pull":
                result = adapter.pull_latest(token)
            else:
                result = adapter.push_latest(token)
            reports.append(result)
            if result.outcome == LocationOutcome.CANCELLED:
                return False
        return True
