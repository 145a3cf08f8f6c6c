"""
FTP adapter.

Each pull or push call opens its own control connection and closes it
on exit, whatever the outcome. Every network operation runs under a
timeout no larger than what is left of the cycle deadline.
"""

from __future__ import annotations

import errno
import ftplib
import os
import posixpath
import socket
from collections.abc import Callable, Collection, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from functools import partial
from pathlib import Path

from livesync.adapters.base import PART_SUFFIX, LocationAdapter
from livesync.core.cancellation import CancellationToken
from livesync.core.config import Location, LocationType
from livesync.core.errors import ConfigurationError
from livesync.core.models import FileRecord, LocationReport, SyncDirection
from livesync.sync.backup import backup_file, backup_name, expired_backups
from livesync.sync.hasher import CHUNK_SIZE, new_digest
from livesync.sync.scanner import file_record, matches_extension, scan_directory

FTP_TIME_FORMAT = "%Y%m%d%H%M%S"
QUIT_TIMEOUT = 5.0

# Server replies meaning "command not implemented"
_UNSUPPORTED_REPLIES = ("500", "501", "502", "504")
_NETWORK_ERRNOS = {errno.ENETUNREACH, errno.EHOSTUNREACH, errno.ENETDOWN, errno.EHOSTDOWN}


def parse_ftp_time(value: str) -> datetime:
    """Parse an MLSD/MDTM timestamp (`YYYYMMDDHHMMSS[.fff]`) as UTC."""
    return datetime.strptime(value.strip()[:14], FTP_TIME_FORMAT).replace(tzinfo=timezone.utc)


class FtpAdapter(LocationAdapter):
    """Synchronizes a directory on an FTP server."""

    unreachable_log_level = "info"

    def __init__(
        self,
        cache_dir: Path,
        location: Location,
        extensions: Collection[str],
        max_backups: int,
        *,
        timeout: float = 30.0,
        client_factory: Callable[[], ftplib.FTP] = ftplib.FTP,
    ) -> None:
        if location.type != LocationType.FTP:
            raise ConfigurationError("The location must be of type FTP.")
        if not location.ftp_host:
            raise ConfigurationError("The FTP host must be specified.")
        if not location.ftp_port or location.ftp_port <= 0:
            raise ConfigurationError("The FTP port must be specified.")

        super().__init__(cache_dir, location, extensions, max_backups)
        self.timeout = timeout
        self._client_factory = client_factory
        self._server_offset = timedelta(hours=location.ftp_timezone)
        self._ftp: ftplib.FTP | None = None
        self._token: CancellationToken | None = None
        self._known_dirs: set[str] = set()
        self._flat_listing = False

    @property
    def base_path(self) -> str:
        return posixpath.normpath("/" + self.location.path.strip("/"))

    def remote_path(self, relative_path: str) -> str:
        return posixpath.join(self.base_path, relative_path)

    def is_transient(self, exc: BaseException) -> bool:
        if isinstance(exc, (TimeoutError, ConnectionError, socket.gaierror, socket.herror, EOFError)):
            return True
        if isinstance(exc, ftplib.error_temp) and str(exc).startswith("421"):
            return True
        return isinstance(exc, OSError) and exc.errno in _NETWORK_ERRNOS

    def pull_latest(self, token: CancellationToken) -> LocationReport:
        return self._run(SyncDirection.PULL, lambda report: self._pull(report, token))

    def push_latest(self, token: CancellationToken) -> LocationReport:
        return self._run(SyncDirection.PUSH, lambda report: self._push(report, token))

    # ==================== Connection ====================

    @contextmanager
    def _session(self, token: CancellationToken) -> Iterator[ftplib.FTP]:
        ftp = self._client_factory()
        self._ftp = ftp
        self._token = token
        self._known_dirs = {self.base_path}
        try:
            ftp.connect(
                self.location.ftp_host,
                self.location.ftp_port,
                timeout=token.bounded(self.timeout),
            )
            self._arm()
            ftp.login(self.location.username or "anonymous", self.location.password or "")
            ftp.set_pasv(True)
            yield ftp
        finally:
            self._disconnect(ftp)
            self._ftp = None
            self._token = None

    def _disconnect(self, ftp: ftplib.FTP) -> None:
        if getattr(ftp, "sock", None) is None:
            ftp.close()
            return
        try:
            ftp.sock.settimeout(QUIT_TIMEOUT)
            ftp.quit()
        except ftplib.all_errors:
            ftp.close()

    def _arm(self) -> ftplib.FTP:
        """Apply the per-operation timeout before the next network call."""
        if self._ftp is None or self._token is None:
            raise RuntimeError("No FTP session is open")
        timeout = self._token.bounded(self.timeout)
        self._ftp.timeout = timeout
        if self._ftp.sock is not None:
            self._ftp.sock.settimeout(timeout)
        return self._ftp

    # ==================== Listing ====================

    def _list_remote(self) -> dict[str, FileRecord]:
        """
        All files below the base path, keyed by relative path.

        A missing base directory yields an empty listing. Any listing
        failure below it propagates, so a partial listing is never used.
        """
        records: dict[str, FileRecord] = {}
        self._flat_listing = False
        try:
            entries = self._mlsd(self.base_path)
        except ftplib.error_perm as e:
            if str(e).startswith(_UNSUPPORTED_REPLIES):
                self._flat_listing = True
                self._list_flat(records)
            elif str(e).startswith("550"):
                self._known_dirs.discard(self.base_path)
                self.logger.warning("Remote directory not found", directory=self.base_path, error=str(e))
            else:
                raise
        else:
            self._walk_mlsd(self.base_path, "", entries, records)
        return records

    def _mlsd(self, directory: str) -> list[tuple[str, dict[str, str]]]:
        return list(self._arm().mlsd(directory, facts=["type", "modify", "size"]))

    def _walk_mlsd(
        self,
        directory: str,
        prefix: str,
        entries: list[tuple[str, dict[str, str]]],
        records: dict[str, FileRecord],
    ) -> None:
        for name, facts in entries:
            kind = facts.get("type", "").lower()
            path = posixpath.join(directory, name)
            if kind == "dir":
                self._known_dirs.add(path)
                self._walk_mlsd(path, f"{prefix}{name}/", self._mlsd(path), records)
            elif kind == "file":
                modify = facts.get("modify")
                # MLSD facts are UTC (RFC 3659); only MDTM replies use the server clock
                modified = parse_ftp_time(modify) if modify else self._mdtm(path)
                records[prefix + name] = FileRecord(
                    relative_path=prefix + name,
                    modified=modified,
                    size=int(facts["size"]) if "size" in facts else None,
                    hash_loader=partial(self._remote_digest, path),
                )

    def _list_flat(self, records: dict[str, FileRecord]) -> None:
        """
        Fallback for servers without MLSD: NLST plus one MDTM per entry.
        Only the base directory is listed; see _remote_lookup.
        """
        for entry in self._arm().nlst(self.base_path):
            name = posixpath.basename(entry.rstrip("/"))
            if name in (".", ".."):
                continue
            record = self._stat_remote(name)
            if record is not None:
                records[name] = record

    def _stat_remote(self, relative_path: str) -> FileRecord | None:
        """Record for one remote file, or None when MDTM reports no plain file."""
        path = self.remote_path(relative_path)
        try:
            modified = self._mdtm(path)
        except ftplib.error_perm as e:
            if str(e).startswith("550"):
                return None  # absent, or a directory
            raise
        return FileRecord(
            relative_path=relative_path,
            modified=modified,
            hash_loader=partial(self._remote_digest, path),
        )

    def _remote_lookup(self, remote: dict[str, FileRecord]) -> Callable[[str], FileRecord | None]:
        """Destination lookup for push. Nested paths are not covered by a flat listing."""

        def lookup(relative_path: str) -> FileRecord | None:
            if relative_path in remote:
                return remote[relative_path]
            if self._flat_listing and "/" in relative_path:
                return self._stat_remote(relative_path)
            return None

        return lookup

    def _mdtm(self, path: str) -> datetime:
        response = self._arm().sendcmd(f"MDTM {path}")
        return self._from_server_time(response[4:])

    def _from_server_time(self, value: str) -> datetime:
        return parse_ftp_time(value) - self._server_offset

    def _to_server_time(self, value: datetime) -> str:
        return (value.astimezone(timezone.utc) + self._server_offset).strftime(FTP_TIME_FORMAT)

    def _remote_digest(self, path: str) -> bytes:
        digest = new_digest()
        self._arm().retrbinary(f"RETR {path}", digest.update, blocksize=CHUNK_SIZE)
        return digest.digest()

    def _cache_record(self, relative_path: str) -> FileRecord | None:
        record = file_record(self.cache_dir, relative_path)
        if record is not None:
            record.modified = record.modified.replace(microsecond=0)
        return record

    # ==================== Pull ====================

    def _pull(self, report: LocationReport, token: CancellationToken) -> None:
        with self._session(token):
            remote = self._list_remote()
            sources = [
                remote[key]
                for key in sorted(remote)
                if matches_extension(remote[key].name, self.location_extensions)
            ]
            self._sync_files(
                report,
                token,
                sources=sources,
                destination_path=self.to_cache_path,
                lookup=self._cache_record,
                copy=self._download,
            )

    def _download(self, source: FileRecord, target: str, destination: FileRecord | None) -> int:
        remote_path = self.remote_path(source.relative_path)
        destination_path = self.cache_dir / target

        if destination is not None:
            backup_file(destination_path, self.max_backups)

        destination_path.parent.mkdir(parents=True, exist_ok=True)
        partial_path = destination_path.with_name(destination_path.name + PART_SUFFIX)
        try:
            with open(partial_path, "wb") as handle:
                self._arm().retrbinary(f"RETR {remote_path}", handle.write, blocksize=CHUNK_SIZE)
            timestamp = source.modified.timestamp()
            os.utime(partial_path, (timestamp, timestamp))
            os.replace(partial_path, destination_path)
        except Exception:
            partial_path.unlink(missing_ok=True)
            raise

        self.logger.info("Downloaded file", source=remote_path, destination=str(destination_path))
        return destination_path.stat().st_size

    # ==================== Push ====================

    def _push(self, report: LocationReport, token: CancellationToken) -> None:
        with self._session(token):
            remote = self._list_remote()
            sources = scan_directory(self.cache_dir, self.extensions)
            for record in sources:
                record.modified = record.modified.replace(microsecond=0)
            self._sync_files(
                report,
                token,
                sources=sources,
                destination_path=self.to_location_path,
                lookup=self._remote_lookup(remote),
                copy=self._upload,
            )

    def _upload(self, source: FileRecord, target: str, destination: FileRecord | None) -> int:
        source_path = self.cache_dir / source.relative_path
        remote_path = self.remote_path(target)
        self._ensure_remote_dir(posixpath.dirname(remote_path))

        partial_path = remote_path + PART_SUFFIX
        with open(source_path, "rb") as handle:
            self._arm().storbinary(f"STOR {partial_path}", handle, blocksize=CHUNK_SIZE)

        if destination is not None:
            self._backup_remote(remote_path)
        self._arm().rename(partial_path, remote_path)
        self._set_remote_time(remote_path, source.modified)

        self.logger.info("Uploaded file", source=str(source_path), destination=remote_path)
        return source_path.stat().st_size

    def _ensure_remote_dir(self, directory: str) -> None:
        if directory in self._known_dirs or directory in ("", "/"):
            return
        self._ensure_remote_dir(posixpath.dirname(directory))
        try:
            self._arm().mkd(directory)
        except ftplib.error_perm:
            pass  # exists already
        self._known_dirs.add(directory)

    def _backup_remote(self, remote_path: str) -> None:
        """Move the current remote file to its backup name and prune old backups."""
        directory, name = posixpath.split(remote_path)
        backup = backup_name(name)
        names = {posixpath.basename(entry) for entry in self._arm().nlst(directory)}
        if backup in names:
            # the first backup taken within a second is kept
            self._arm().delete(remote_path)
            self.logger.info(
                "Backup already exists, keeping it",
                file=remote_path,
                backup=posixpath.join(directory, backup),
            )
        else:
            self._arm().rename(remote_path, posixpath.join(directory, backup))
            self.logger.info("Created backup", file=remote_path, backup=posixpath.join(directory, backup))

        names.add(backup)
        for expired in expired_backups(name, names, self.max_backups):
            self._arm().delete(posixpath.join(directory, expired))
            self.logger.info("Deleted old backup", backup=posixpath.join(directory, expired))

    def _set_remote_time(self, remote_path: str, modified: datetime) -> None:
        # MFMT takes UTC; the MDTM variant takes the server clock
        utc_stamp = modified.astimezone(timezone.utc).strftime(FTP_TIME_FORMAT)
        server_stamp = self._to_server_time(modified)
        for command in (f"MFMT {utc_stamp} {remote_path}", f"MDTM {server_stamp} {remote_path}"):
            try:
                self._arm().sendcmd(command)
                return
            except ftplib.error_perm:
                continue
        self.logger.warning("Server cannot set modification times", file=remote_path)
