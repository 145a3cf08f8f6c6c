"""
Filesystem adapter for local folders and network shares.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from livesync.adapters.base import PART_SUFFIX, LocationAdapter
from livesync.core.cancellation import CancellationToken
from livesync.core.config import LocationType
from livesync.core.errors import TransientLocationError
from livesync.core.models import FileRecord, LocationReport, SyncDirection
from livesync.sync.backup import backup_file
from livesync.sync.scanner import file_record, scan_directory


class FilesystemAdapter(LocationAdapter):
    """
    Synchronizes a directory reachable through the local filesystem.

    Any I/O error on a FileShare location is treated as the share being
    temporarily unavailable and the rest of the call is skipped quietly.
    """

    @property
    def root(self) -> Path:
        return Path(self.location.path).expanduser()

    @property
    def is_share(self) -> bool:
        return self.location.type == LocationType.FILE_SHARE

    def is_transient(self, exc: BaseException) -> bool:
        return self.is_share and isinstance(exc, OSError)

    def pull_latest(self, token: CancellationToken) -> LocationReport:
        return self._run(SyncDirection.PULL, lambda report: self._pull(report, token))

    def push_latest(self, token: CancellationToken) -> LocationReport:
        return self._run(SyncDirection.PUSH, lambda report: self._push(report, token))

    def _pull(self, report: LocationReport, token: CancellationToken) -> None:
        self._check_share()
        self._sync_files(
            report,
            token,
            sources=scan_directory(self.root, self.location_extensions),
            destination_path=self.to_cache_path,
            lookup=lambda relative_path: file_record(self.cache_dir, relative_path),
            copy=lambda source, target, destination: self._copy(
                self.root, self.cache_dir, source, target, destination
            ),
        )

    def _push(self, report: LocationReport, token: CancellationToken) -> None:
        self._check_share()
        self._sync_files(
            report,
            token,
            sources=scan_directory(self.cache_dir, self.extensions),
            destination_path=self.to_location_path,
            lookup=lambda relative_path: file_record(self.root, relative_path),
            copy=lambda source, target, destination: self._copy(
                self.cache_dir, self.root, source, target, destination
            ),
        )

    def _check_share(self) -> None:
        # An unmounted share must not be recreated as an empty local directory.
        if self.is_share and not self.root.is_dir():
            raise TransientLocationError(self.location.path, "share is not available")

    def _copy(
        self,
        source_root: Path,
        destination_root: Path,
        source: FileRecord,
        target: str,
        destination: FileRecord | None,
    ) -> int:
        source_path = source_root / source.relative_path
        destination_path = destination_root / target

        if destination is not None:
            backup_file(destination_path, self.max_backups)

        destination_path.parent.mkdir(parents=True, exist_ok=True)
        partial = destination_path.with_name(destination_path.name + PART_SUFFIX)
        try:
            shutil.copyfile(source_path, partial)
            stat = source_path.stat()
            os.utime(partial, ns=(stat.st_atime_ns, stat.st_mtime_ns))
            os.replace(partial, destination_path)
        except Exception:
            partial.unlink(missing_ok=True)
            raise

        self.logger.info(
            "Copied file",
            source=str(source_path),
            destination=str(destination_path),
        )
        return stat.st_size
