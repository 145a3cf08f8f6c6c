"""
Systemd user service management for the LiveSync worker.

The unit runs `livesync run` and restarts on failure. User-level
systemd (systemctl --user) is used so no root is needed.
"""

from __future__ import annotations

import shlex
import shutil
import subprocess
from pathlib import Path

from livesync.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "livesync.service"
SYSTEMD_USER_DIR = Path.home() / ".config" / "systemd" / "user"


def _systemctl(*args: str) -> subprocess.CompletedProcess[str]:
    """Run a systemctl --user command and capture its output."""
    return subprocess.run(
        ["systemctl", "--user", *args],
        capture_output=True,
        text=True,
        timeout=30,
        check=False,
    )


def systemd_available() -> bool:
    """Whether a systemd user session can be reached."""
    if shutil.which("systemctl") is None:
        return False
    return _systemctl("--version").returncode == 0


def render_unit(executable: str = "livesync", config_path: Path | None = None) -> str:
    """Build the unit file content."""
    command = [executable]
    if config_path is not None:
        command += ["--config", str(config_path)]
    command.append("run")

    return f"""[Unit]
Description=LiveSync multi-location file synchronization
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
ExecStart={shlex.join(command)}
Restart=on-failure
RestartSec=10
Environment=PYTHONUNBUFFERED=1

[Install]
WantedBy=default.target
"""


def install_service(
    unit_dir: Path | None = None,
    executable: str = "livesync",
    config_path: Path | None = None,
    enable: bool = True,
) -> dict[str, bool]:
    """
    Write the unit file, reload systemd and optionally enable + start it.

    Returns a dict with 'installed' and 'enabled' flags.
    """
    target = unit_dir or SYSTEMD_USER_DIR
    target.mkdir(parents=True, exist_ok=True)

    unit_path = target / SERVICE_NAME
    unit_path.write_text(render_unit(executable, config_path), encoding="utf-8")
    logger.info("Installed unit file", path=str(unit_path))

    result = {"installed": True, "enabled": False}
    if enable:
        _systemctl("daemon-reload")
        completed = _systemctl("enable", "--now", SERVICE_NAME)
        result["enabled"] = completed.returncode == 0
        if not result["enabled"]:
            logger.warning("Failed to enable service", stderr=completed.stderr.strip())

    return result


def uninstall_service(unit_dir: Path | None = None, disable: bool = True) -> dict[str, bool]:
    """Stop and disable the service and remove its unit file."""
    target = unit_dir or SYSTEMD_USER_DIR
    result = {"disabled": False, "removed": False}

    if disable:
        completed = _systemctl("disable", "--now", SERVICE_NAME)
        result["disabled"] = completed.returncode == 0

    unit_path = target / SERVICE_NAME
    if unit_path.exists():
        unit_path.unlink()
        result["removed"] = True
        logger.info("Removed unit file", path=str(unit_path))

    if disable:
        _systemctl("daemon-reload")
    return result
