"""
Pytest configuration and fixtures for LiveSync tests.
"""

import ftplib
import itertools
import os
import posixpath
import re
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import Mock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_file(path: Path, content: bytes | str, modified: datetime) -> Path:
    """Create `path` with `content` and set its modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode()
    path.write_bytes(content)
    timestamp = modified.timestamp()
    os.utime(path, (timestamp, timestamp))
    return path


def mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


@pytest.fixture
def backup_clock(monkeypatch: pytest.MonkeyPatch) -> Callable[[], datetime]:
    """Make every backup get a distinct, increasing timestamp."""
    from livesync.sync import backup

    counter = itertools.count()

    def fake_now() -> datetime:
        return BASE_TIME + timedelta(seconds=next(counter))

    monkeypatch.setattr(backup, "_utcnow", fake_now)
    return fake_now


class FakeFTPServer:
    """In-memory FTP server state shared by every FakeFTP client it creates."""

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, datetime]] = {}
        self.dirs: set[str] = {"/"}
        self.supports_mlsd = True
        self.supports_mfmt = True
        self.supports_mdtm_set = True
        self.refuse_connections = False
        self.fail_on: dict[str, BaseException] = {}
        self.commands: list[str] = []
        self.connections = 0
        self.quits = 0
        self.closes = 0
        self.upload_time = BASE_TIME + timedelta(days=30)

    def add_dir(self, path: str) -> None:
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def add_file(self, path: str, content: bytes | str, modified: datetime) -> None:
        if isinstance(content, str):
            content = content.encode()
        self.add_dir(posixpath.dirname(path))
        self.files[path] = (content, modified)

    def content(self, path: str) -> bytes:
        return self.files[path][0]

    def modified(self, path: str) -> datetime:
        return self.files[path][1]

    def client(self) -> "FakeFTP":
        return FakeFTP(self)


class FakeFTP:
    """Subset of ftplib.FTP used by the FTP adapter."""

    def __init__(self, server: FakeFTPServer) -> None:
        self.server = server
        self.sock: Mock | None = None
        self.timeout: float | None = None

    def _command(self, command: str) -> None:
        self.server.commands.append(command)
        for prefix, exc in self.server.fail_on.items():
            if command.startswith(prefix):
                raise exc

    def _children(self, path: str) -> tuple[list[str], list[str]]:
        dirs = sorted(d for d in self.server.dirs if d != path and posixpath.dirname(d) == path)
        files = sorted(f for f in self.server.files if posixpath.dirname(f) == path)
        return dirs, files

    def connect(self, host: str, port: int, timeout: float | None = None) -> str:
        if self.server.refuse_connections:
            raise ConnectionRefusedError(111, "Connection refused")
        self.server.connections += 1
        self.sock = Mock()
        self.timeout = timeout
        return "220 Fake FTP"

    def login(self, user: str = "", passwd: str = "") -> str:
        self._command(f"USER {user}")
        return "230 Logged in"

    def set_pasv(self, value: bool) -> None:
        pass

    def mlsd(self, path: str = "", facts: tuple[str, ...] = ()):
        self._command(f"MLSD {path}")
        if not self.server.supports_mlsd:
            raise ftplib.error_perm("500 Unknown command")
        if path not in self.server.dirs:
            raise ftplib.error_perm("550 No such directory")
        dirs, files = self._children(path)
        for directory in dirs:
            yield posixpath.basename(directory), {"type": "dir"}
        for file_path in files:
            content, modified = self.server.files[file_path]
            yield posixpath.basename(file_path), {
                "type": "file",
                "modify": modified.strftime("%Y%m%d%H%M%S"),
                "size": str(len(content)),
            }

    def nlst(self, path: str = "") -> list[str]:
        self._command(f"NLST {path}")
        if path not in self.server.dirs:
            raise ftplib.error_perm("550 No such directory")
        dirs, files = self._children(path)
        return dirs + files

    def sendcmd(self, command: str) -> str:
        self._command(command)
        verb, _, rest = command.partition(" ")
        set_time = re.match(r"^(\d{14}) (.+)$", rest)
        if verb == "MFMT" and self.server.supports_mfmt and set_time:
            return self._set_time(set_time.group(2), set_time.group(1))
        if verb == "MDTM" and set_time:
            if not self.server.supports_mdtm_set:
                raise ftplib.error_perm("550 Not a plain file")
            return self._set_time(set_time.group(2), set_time.group(1))
        if verb == "MDTM":
            if rest not in self.server.files:
                raise ftplib.error_perm("550 Not a plain file")
            return "213 " + self.server.modified(rest).strftime("%Y%m%d%H%M%S")
        raise ftplib.error_perm("500 Unknown command")

    def _set_time(self, path: str, stamp: str) -> str:
        if path not in self.server.files:
            raise ftplib.error_perm("550 No such file")
        modified = datetime.strptime(stamp, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
        self.server.files[path] = (self.server.content(path), modified)
        return "213 Modify=" + stamp

    def retrbinary(self, command: str, callback, blocksize: int = 8192, rest=None) -> str:
        self._command(command)
        path = command[5:]
        if path not in self.server.files:
            raise ftplib.error_perm("550 No such file")
        content = self.server.content(path)
        for start in range(0, len(content), blocksize):
            callback(content[start : start + blocksize])
        return "226 Transfer complete"

    def storbinary(self, command: str, fp, blocksize: int = 8192, callback=None, rest=None) -> str:
        self._command(command)
        path = command[5:]
        if posixpath.dirname(path) not in self.server.dirs:
            raise ftplib.error_perm("553 Could not create file")
        self.server.files[path] = (fp.read(), self.server.upload_time)
        return "226 Transfer complete"

    def rename(self, fromname: str, toname: str) -> str:
        self._command(f"RNFR {fromname}")
        if fromname not in self.server.files:
            raise ftplib.error_perm("550 No such file")
        self.server.files[toname] = self.server.files.pop(fromname)
        return "250 Renamed"

    def delete(self, filename: str) -> str:
        self._command(f"DELE {filename}")
        if filename not in self.server.files:
            raise ftplib.error_perm("550 No such file")
        del self.server.files[filename]
        return "250 Deleted"

    def mkd(self, dirname: str) -> str:
        self._command(f"MKD {dirname}")
        if dirname in self.server.dirs:
            raise ftplib.error_perm("550 Directory exists")
        if posixpath.dirname(dirname) not in self.server.dirs:
            raise ftplib.error_perm("550 Parent missing")
        self.server.dirs.add(dirname)
        return dirname

    def quit(self) -> str:
        self.server.quits += 1
        self.sock = None
        return "221 Bye"

    def close(self) -> None:
        self.server.closes += 1
        self.sock = None


@pytest.fixture
def ftp_server() -> FakeFTPServer:
    """An empty in-memory FTP server."""
    return FakeFTPServer()


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
