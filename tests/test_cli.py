"""Smoke tests for the Typer commands that do not need a running engine."""

import logging

import pytest
from typer.testing import CliRunner

from tabtorrent import __version__
from tabtorrent.cli import app as cli_app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.ini"
    monkeypatch.setattr(cli_app, "CONFIG_FILE", path)
    return path


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    logger = logging.getLogger("tabtorrent")
    before = list(logger.handlers)
    yield tmp_path / "data"
    for handler in logger.handlers[:]:
        if handler not in before:
            logger.removeHandler(handler)
            handler.close()


def test_version():
    result = runner.invoke(cli_app.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_then_validate(config_file):
    result = runner.invoke(
        cli_app.app, ["init", "--engine-url", "http://10.0.0.5:6880", "--force"]
    )
    assert result.exit_code == 0
    assert config_file.exists()

    result = runner.invoke(cli_app.app, ["validate"])
    assert result.exit_code == 0
    assert "http://10.0.0.5:6880" in result.output


def test_validate_reports_invalid_config(config_file):
    config_file.write_text("[DEFAULT]\nlabel_length = 1\n", encoding="utf-8")

    result = runner.invoke(cli_app.app, ["validate"])

    assert result.exit_code == 1


def test_download_reports_tabs_that_never_started(config_file, data_dir, tmp_path):
    result = runner.invoke(cli_app.app, ["download", "   ", "-o", str(tmp_path)])

    assert result.exit_code == 1
    assert "not started" in result.output
    assert "cancelled" not in result.output
