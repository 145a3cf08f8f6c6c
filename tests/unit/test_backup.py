"""
Tests for livesync.sync.backup module.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from livesync.sync.backup import backup_file, backup_name, expired_backups, list_backups


class TestBackupNames:
    """Tests for backup naming and selection."""

    def test_backup_name_uses_utc(self) -> None:
        now = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)
        assert backup_name("x.txt", now) == "x.txt.20240305070809.bak"

    def test_list_backups_only_matches_exact_name(self) -> None:
        names = [
            "x.txt",
            "x.txt.20240101000000.bak",
            "x.txt.20240102000000.bak",
            "xx.txt.20240103000000.bak",
            "x.txt.2024.bak",
            "y.txt.20240104000000.bak",
        ]
        assert list_backups("x.txt", names) == [
            "x.txt.20240102000000.bak",
            "x.txt.20240101000000.bak",
        ]

    def test_expired_backups_keeps_newest(self) -> None:
        names = [f"x.txt.2024010{day}000000.bak" for day in range(1, 6)]
        assert expired_backups("x.txt", names, 2) == [
            "x.txt.20240103000000.bak",
            "x.txt.20240102000000.bak",
            "x.txt.20240101000000.bak",
        ]

    def test_expired_backups_zero_keeps_none(self) -> None:
        names = ["x.txt.20240101000000.bak"]
        assert expired_backups("x.txt", names, 0) == names


class TestBackupFile:
    """Tests for backup_file."""

    def test_missing_file(self, temp_dir: Path) -> None:
        assert backup_file(temp_dir / "missing.txt", 5) is None

    def test_creates_copy(self, temp_dir: Path) -> None:
        path = temp_dir / "x.txt"
        path.write_text("v1")
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        backup = backup_file(path, 5, now)

        assert backup == temp_dir / "x.txt.20240101000000.bak"
        assert backup.read_text() == "v1"
        assert path.read_text() == "v1"

    def test_retention(self, temp_dir: Path, backup_clock: Callable[[], datetime]) -> None:
        path = temp_dir / "x.txt"
        for version in range(5):
            path.write_text(f"v{version}")
            backup_file(path, 2)

        backups = sorted(p.name for p in temp_dir.glob("x.txt.*.bak"))
        assert len(backups) == 2
        assert [(temp_dir / name).read_text() for name in backups] == ["v3", "v4"]

    def test_other_files_untouched(self, temp_dir: Path, backup_clock: Callable[[], datetime]) -> None:
        other = temp_dir / "y.txt.20200101000000.bak"
        other.write_text("keep")
        path = temp_dir / "x.txt"
        path.write_text("v1")

        backup_file(path, 0)

        assert other.exists()
        assert list(temp_dir.glob("x.txt.*.bak")) == []

    def test_same_second_backup_is_kept(self, temp_dir: Path) -> None:
        path = temp_dir / "x.txt"
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        path.write_text("v1")
        backup_file(path, 5, now)
        path.write_text("v2")

        backup = backup_file(path, 5, now)

        assert backup == temp_dir / "x.txt.20240101000000.bak"
        assert backup.read_text() == "v1"
        assert len(list(temp_dir.glob("x.txt.*.bak"))) == 1
