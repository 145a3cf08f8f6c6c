"""
Local directory enumeration.
"""

from __future__ import annotations

import os
from collections.abc import Collection, Iterator
from datetime import datetime, timezone
from pathlib import Path

from livesync.core.models import FileRecord
from livesync.sync.hasher import digest_file


def matches_extension(name: str, extensions: Collection[str]) -> bool:
    """Whether the final suffix of `name` is one of `extensions`."""
    dot = name.rfind(".")
    if dot <= 0:
        return False
    return name[dot:] in extensions


def file_record(root: Path, relative_path: str) -> FileRecord | None:
    """Stat a single file below `root`; None when it does not exist."""
    path = root / relative_path
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    if not path.is_file():
        return None
    return FileRecord(
        relative_path=relative_path,
        modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        size=stat.st_size,
        hash_loader=lambda: digest_file(path),
    )


def iter_files(root: Path) -> Iterator[Path]:
    """
    Walk `root` recursively. Errors walking the top directory propagate;
    unreadable subdirectories are skipped.
    """
    root.stat()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        current = Path(dirpath)
        for filename in sorted(filenames):
            path = current / filename
            if path.is_symlink():
                continue
            yield path


def scan_directory(root: Path, extensions: Collection[str]) -> list[FileRecord]:
    """Extension-filtered records for every file below `root`."""
    records: list[FileRecord] = []
    for path in iter_files(root):
        if not matches_extension(path.name, extensions):
            continue
        relative_path = path.relative_to(root).as_posix()
        record = file_record(root, relative_path)
        if record is not None:
            records.append(record)
    return records
