"""
LiveSync background worker.

Runs one sync cycle per configured setting on a fixed interval. Each
setting gets its own cycle deadline; anything escaping a cycle is logged
and retried on the next tick.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from livesync.adapters.factory import AdapterFactory
from livesync.core.cancellation import CancellationToken
from livesync.core.config import LiveSyncConfig, SyncSetting
from livesync.core.logging import get_logger
from livesync.core.models import SyncReport
from livesync.sync.coordinator import SyncCoordinator

logger = get_logger(__name__)


class SyncWorker:
    """Periodic trigger for the sync coordinator."""

    def __init__(
        self,
        config: LiveSyncConfig,
        coordinator: SyncCoordinator | None = None,
    ) -> None:
        self.config = config
        self.coordinator = coordinator or SyncCoordinator(
            factory=AdapterFactory(ftp_timeout=config.sync.ftp_timeout_seconds),
            cycle_timeout=config.sync.cycle_timeout_seconds,
        )
        self._stop = CancellationToken()

    def stop(self) -> None:
        """Ask a running loop to finish after the current step."""
        self._stop.cancel()

    @property
    def stopped(self) -> bool:
        return self._stop.is_cancelled

    def run_once(self, names: Iterable[str] | None = None) -> list[SyncReport]:
        """Synchronize every setting (or only `names`) once."""
        settings = self._select(names)
        reports: list[SyncReport] = []

        logger.info(
            "Worker running",
            time=datetime.now(timezone.utc).isoformat(),
            settings=len(settings),
        )
        for setting in settings:
            if self.stopped:
                break
            try:
                reports.append(
                    self.coordinator.synchronize(
                        setting,
                        self.config.sync.cache_directory,
                        self.config.sync.max_backups,
                        self._stop,
                    )
                )
            except Exception as e:
                logger.critical(
                    "An unhandled exception occurred",
                    setting=setting.name,
                    error=str(e),
                    exc_info=True,
                )

        if reports:
            self.save_status(reports)
        return reports

    def run_forever(self) -> None:
        """Loop until stop() is called."""
        logger.info("Worker started", interval_seconds=self.config.sync.interval_seconds)
        while not self.stopped:
            self.run_once()
            if self._stop.wait(self.config.sync.interval_seconds):
                break
        logger.info("Worker stopped")

    def save_status(self, reports: list[SyncReport]) -> None:
        """Persist the last cycle's reports to the configured status file."""
        path = self.config.sync.status_file
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(
                {
                    "saved_at": datetime.now(timezone.utc).isoformat(),
                    "reports": [report.to_dict() for report in reports],
                },
                handle,
                indent=2,
            )

    def load_status(self) -> dict[str, Any] | None:
        """Load the last saved status, if any."""
        path = self.config.sync.status_file
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)

    def _select(self, names: Iterable[str] | None) -> list[SyncSetting]:
        if names is None:
            return list(self.config.sync.sync_settings)
        return [self.config.get_setting(name) for name in names]
