"""
Backup rotation.

Before a destination file is overwritten it is preserved as a sibling
`<name>.<yyyyMMddHHmmss>.bak` (UTC). Only the newest `max_backups` copies
of each file are kept. The fixed-width timestamp makes lexicographic
order equal chronological order.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from livesync.core.logging import get_logger

logger = get_logger(__name__)

BACKUP_SUFFIX = ".bak"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backup_name(file_name: str, now: datetime | None = None) -> str:
    """Name of the backup for `file_name` taken at `now` (UTC)."""
    now = now or _utcnow()
    return f"{file_name}.{now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"


def _backup_pattern(file_name: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(file_name)}\.\d{{14}}{re.escape(BACKUP_SUFFIX)}$")


def list_backups(file_name: str, names: Iterable[str]) -> list[str]:
    """Backups of exactly `file_name` among `names`, newest first."""
    pattern = _backup_pattern(file_name)
    return sorted((name for name in names if pattern.match(name)), reverse=True)


def expired_backups(file_name: str, names: Iterable[str], max_backups: int) -> list[str]:
    """Backups of `file_name` beyond the newest `max_backups`."""
    return list_backups(file_name, names)[max(0, max_backups):]


def backup_file(path: Path, max_backups: int, now: datetime | None = None) -> Path | None:
    """
    Copy `path` to a timestamped sibling and prune old backups.

    Returns the backup path, or None if `path` does not exist.
    """
    if not path.exists():
        return None

    backup_path = path.with_name(backup_name(path.name, now))
    if backup_path.exists():
        # the first backup taken within a second is kept
        logger.info("Backup already exists, keeping it", file=str(path), backup=str(backup_path))
    else:
        shutil.copy2(path, backup_path)
        logger.info("Created backup", file=str(path), backup=str(backup_path))

    siblings = [entry.name for entry in path.parent.iterdir() if entry.is_file()]
    for name in expired_backups(path.name, siblings, max_backups):
        (path.parent / name).unlink()
        logger.info("Deleted old backup", backup=str(path.parent / name))

    return backup_path
