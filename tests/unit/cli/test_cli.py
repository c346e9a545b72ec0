"""Tests for the storefront command-line interface."""

import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from storefront.cli import cli
from storefront.exceptions import ValidationError
from storefront.services.catalog_sync import SyncResult
from storefront.services.seed import SeedResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def logging_setup():
    """Keep the CLI from rebinding process-wide log handlers to the runner's streams."""
    with patch("storefront.cli.configure_logging") as configure:
        yield configure


def _returning(value):
    def fake_run(work):
        return value

    return fake_run


def _raising(exc):
    def fake_run(work):
        raise exc

    return fake_run


class TestCliBasics:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("serve", "seed", "sync", "deals", "db"):
            assert command in result.output

    def test_log_options(self, runner, logging_setup):
        result = runner.invoke(cli, ["--log-level", "debug", "--log-format", "json", "deals"])
        assert result.exit_code == 0
        kwargs = logging_setup.call_args.kwargs
        assert kwargs["level"] == "DEBUG"
        assert kwargs["json_output"] is True

    def test_deals_table(self, runner):
        result = runner.invoke(cli, ["deals"])
        assert result.exit_code == 0
        assert "Current Deals" in result.output


class TestSeedCommand:
    def test_reports_counts(self, runner):
        seeded = SeedResult(categories=4, products=12, admin_created=True, deals=6)
        with patch("storefront.cli._run_in_session", _returning(seeded)):
            result = runner.invoke(cli, ["seed"])

        assert result.exit_code == 0
        assert "4 categories, 12 products, 6 deals" in result.output
        assert "admin" in result.output

    def test_no_deals(self, runner):
        seeded = SeedResult(categories=0, products=0)
        with patch("storefront.cli._run_in_session", _returning(seeded)):
            result = runner.invoke(cli, ["seed", "--no-deals"])

        assert result.exit_code == 0
        assert "deals" not in result.output


class TestSyncCommands:
    def test_rakuten_success(self, runner):
        synced = SyncResult(source="rakuten", created=3, updated=2, duration=1.5)
        with patch("storefront.cli._run_in_session", _returning(synced)):
            result = runner.invoke(cli, ["sync", "rakuten", "--keyword", "lamp"])

        assert result.exit_code == 0
        assert "rakuten" in result.output

    def test_errors_exit_nonzero(self, runner):
        synced = SyncResult(source="wholesale2b", created=1, errors=2)
        with patch("storefront.cli._run_in_session", _returning(synced)):
            result = runner.invoke(cli, ["sync", "wholesale2b"])
        assert result.exit_code == 1

    def test_missing_credentials(self, runner):
        failure = ValidationError("WHOLESALE2B_API_KEY is not configured")
        with patch("storefront.cli._run_in_session", _raising(failure)):
            result = runner.invoke(cli, ["sync", "wholesale2b"])

        assert result.exit_code == 1
        assert "WHOLESALE2B_API_KEY" in result.output

    def test_hits_are_capped(self, runner):
        result = runner.invoke(cli, ["sync", "rakuten", "--hits", "31"])
        assert result.exit_code == 2


class TestServeCommand:
    @pytest.fixture
    def server_env(self, monkeypatch):
        # setenv first so the variables serve exports are removed afterwards
        for name in ("STOREFRONT_CONFIG", "LOG_LEVEL", "LOG_FORMAT"):
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
        return monkeypatch

    def test_passes_settings_to_reloaded_server(self, runner, server_env, tmp_path):
        path = tmp_path / "storefront.yaml"
        path.write_text("server:\n  port: 4200\n")

        with patch("uvicorn.run") as run:
            result = runner.invoke(
                cli, ["--config", str(path), "--log-level", "debug", "serve", "--reload"]
            )

        assert result.exit_code == 0, result.output
        run.assert_called_once_with("storefront.api.app:app", host="0.0.0.0", port=4200, reload=True)
        assert os.environ["STOREFRONT_CONFIG"] == os.path.abspath(path)
        assert os.environ["LOG_LEVEL"] == "DEBUG"
        assert os.environ["LOG_FORMAT"] == "human"

    def test_refuses_invalid_config(self, runner, server_env, tmp_path):
        path = tmp_path / "storefront.yaml"
        path.write_text("logging:\n  format: xml\n")

        with patch("uvicorn.run") as run:
            result = runner.invoke(cli, ["--config", str(path), "serve"])

        assert result.exit_code == 1
        assert "invalid configuration" in result.output
        run.assert_not_called()
