"""
Adapter selection by location type.
"""

from __future__ import annotations

import ftplib
from collections.abc import Callable, Collection
from pathlib import Path

from livesync.adapters.base import LocationAdapter
from livesync.adapters.filesystem import FilesystemAdapter
from livesync.adapters.ftp import FtpAdapter
from livesync.core.config import Location, LocationType
from livesync.core.errors import ConfigurationError


class AdapterFactory:
    """Builds the adapter variant for a location's declared type."""

    def __init__(
        self,
        ftp_timeout: float = 30.0,
        ftp_client_factory: Callable[[], ftplib.FTP] | None = None,
    ) -> None:
        self.ftp_timeout = ftp_timeout
        self.ftp_client_factory = ftp_client_factory or ftplib.FTP

    def create(
        self,
        cache_dir: Path,
        location: Location,
        extensions: Collection[str],
        max_backups: int,
    ) -> LocationAdapter:
        """Create an adapter bound to `location` and the cache directory."""
        if location.type in (LocationType.LOCAL, LocationType.FILE_SHARE):
            return FilesystemAdapter(cache_dir, location, extensions, max_backups)
        if location.type == LocationType.FTP:
            return FtpAdapter(
                cache_dir,
                location,
                extensions,
                max_backups,
                timeout=self.ftp_timeout,
                client_factory=self.ftp_client_factory,
            )
        raise ConfigurationError(f"unsupported location type: {location.type}")


_default_factory = AdapterFactory()


def create_adapter(
    cache_dir: Path,
    location: Location,
    extensions: Collection[str],
    max_backups: int,
) -> LocationAdapter:
    """Create an adapter using the default factory settings."""
    return _default_factory.create(cache_dir, location, extensions, max_backups)
