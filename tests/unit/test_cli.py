"""
Tests for livesync.cli.main module.
"""

import json
from datetime import timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import BASE_TIME, write_file
from livesync.cli.main import cli
from livesync.service import systemd


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_config(temp_dir: Path, locations: list[dict], extensions: list[str] | None = None) -> Path:
    config_path = temp_dir / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "logging": {
                    "console_enabled": False,
                    "file_enabled": False,
                    "log_directory": str(temp_dir / "logs"),
                },
                "sync": {
                    "cache_directory": str(temp_dir / "cache"),
                    "status_file": str(temp_dir / "status.json"),
                    "sync_settings": {
                        "Docs": {
                            "file_extensions": extensions if extensions is not None else [".txt"],
                            "locations": locations,
                        }
                    },
                },
            }
        )
    )
    return config_path


class TestInit:
    """Tests for the init command."""

    def test_writes_sample(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"

        result = runner.invoke(cli, ["--config", str(config_path), "init"])

        assert result.exit_code == 0
        data = json.loads(config_path.read_text())
        assert data["sync"]["sync_settings"][0]["name"] == "Documents"

    def test_refuses_to_overwrite(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config_path.write_text("{}")

        result = runner.invoke(cli, ["--config", str(config_path), "init"])

        assert result.exit_code != 0
        assert "already exists" in result.output
        assert config_path.read_text() == "{}"


class TestCheck:
    """Tests for the check command."""

    def test_valid(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = write_config(temp_dir, [{"path": "/a"}, {"path": "/b"}])

        result = runner.invoke(cli, ["--config", str(config_path), "check"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_single_location_reported(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = write_config(temp_dir, [{"path": "/a"}])

        result = runner.invoke(cli, ["--config", str(config_path), "--json", "check"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert data["problems"][0].startswith("Docs: at least two locations")

    def test_invalid_config_file(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = temp_dir / "config.json"
        config_path.write_text("{broken")

        result = runner.invoke(cli, ["--config", str(config_path), "check"])

        assert result.exit_code == 1
        assert "invalid JSON" in result.output


class TestSyncAndStatus:
    """Tests for the sync and status commands."""

    def test_sync_json(self, runner: CliRunner, temp_dir: Path) -> None:
        write_file(temp_dir / "a" / "x.txt", "hello", BASE_TIME)
        (temp_dir / "b").mkdir()
        config_path = write_config(
            temp_dir, [{"path": str(temp_dir / "a")}, {"path": str(temp_dir / "b")}]
        )

        result = runner.invoke(cli, ["--config", str(config_path), "--json", "sync"])

        assert result.exit_code == 0
        reports = json.loads(result.output)
        assert reports[0]["setting"] == "Docs"
        assert reports[0]["summary"]["success"] is True
        assert (temp_dir / "b" / "x.txt").read_text() == "hello"

    def test_sync_table(self, runner: CliRunner, temp_dir: Path) -> None:
        write_file(temp_dir / "a" / "x.txt", "hello", BASE_TIME + timedelta(hours=1))
        (temp_dir / "b").mkdir()
        config_path = write_config(
            temp_dir, [{"path": str(temp_dir / "a")}, {"path": str(temp_dir / "b")}]
        )

        result = runner.invoke(cli, ["--config", str(config_path), "sync"])

        assert result.exit_code == 0
        assert "Sync: Docs" in result.output

    def test_sync_unknown_setting(self, runner: CliRunner, temp_dir: Path) -> None:
        config_path = write_config(temp_dir, [{"path": "/a"}, {"path": "/b"}])

        result = runner.invoke(cli, ["--config", str(config_path), "sync", "-s", "Nope"])

        assert result.exit_code == 1
        assert "Unknown sync setting" in result.output

    def test_status_before_and_after_sync(self, runner: CliRunner, temp_dir: Path) -> None:
        (temp_dir / "a").mkdir()
        (temp_dir / "b").mkdir()
        config_path = write_config(
            temp_dir, [{"path": str(temp_dir / "a")}, {"path": str(temp_dir / "b")}]
        )

        before = runner.invoke(cli, ["--config", str(config_path), "status"])
        runner.invoke(cli, ["--config", str(config_path), "sync"])
        after = runner.invoke(cli, ["--config", str(config_path), "--json", "status"])

        assert "No synchronization has run yet" in before.output
        assert json.loads(after.output)["reports"][0]["setting"] == "Docs"


class TestService:
    """Tests for the service commands."""

    def test_install_and_uninstall(
        self, runner: CliRunner, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(systemd, "systemd_available", lambda: False)
        unit_dir = temp_dir / "units"
        config_path = temp_dir / "config.json"

        install = runner.invoke(
            cli, ["--config", str(config_path), "service", "install", "--unit-dir", str(unit_dir)]
        )

        assert install.exit_code == 0
        unit = (unit_dir / systemd.SERVICE_NAME).read_text()
        assert f"--config {config_path}" in unit

        uninstall = runner.invoke(cli, ["service", "uninstall", "--unit-dir", str(unit_dir)])

        assert uninstall.exit_code == 0
        assert not (unit_dir / systemd.SERVICE_NAME).exists()
