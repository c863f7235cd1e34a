"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from blinkosync import __version__
from blinkosync.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch, restore_root_logger):
    monkeypatch.setenv("BLINKOSYNC_GENERAL__DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BLINKOSYNC_VAULT__ROOT", str(tmp_path / "vault"))
    monkeypatch.delenv("BLINKOSYNC_SERVER__URL", raising=False)
    monkeypatch.delenv("BLINKOSYNC_SERVER__ACCESS_TOKEN", raising=False)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sync_without_server_fails(tmp_path: Path):
    result = runner.invoke(app, ["--config", str(tmp_path / "none.toml"), "sync"])
    assert result.exit_code == 1
    assert "Sync failed" in result.output


def test_config_init_writes_file(tmp_path: Path):
    config_path = tmp_path / "blinko.toml"
    result = runner.invoke(app, ["--config", str(config_path), "config", "--init"])
    assert result.exit_code == 0
    assert config_path.exists()


def test_status_before_first_sync(tmp_path: Path):
    result = runner.invoke(app, ["--config", str(tmp_path / "none.toml"), "status"])
    assert result.exit_code == 0
    assert "never synced" in result.output


def test_reset_with_yes(tmp_path: Path):
    result = runner.invoke(app, ["--config", str(tmp_path / "none.toml"), "reset", "--yes"])
    assert result.exit_code == 0
    assert "reset successfully" in result.output


def test_version_read_from_pyproject():
    import tomllib

    from blinkosync.version import PYPROJECT_PATH, get_version

    with PYPROJECT_PATH.open("rb") as f:
        expected = tomllib.load(f)["project"]["version"]
    assert get_version() == expected == __version__
