"""
Tests for the management CLI.
"""

import json
from unittest.mock import Mock

import pytest
from click.testing import CliRunner

from storefront import cli as cli_module
from storefront.auth.passwords import PasswordHasher
from storefront.db import Database

pytestmark = pytest.mark.unit


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def deps(monkeypatch, settings):
    bundle = cli_module.CLIDependencies(
        settings_factory=lambda: settings,
        database_factory=Database.from_settings,
        server_run=Mock(),
    )
    monkeypatch.setattr(cli_module, "_get_cli_dependencies", lambda: bundle)
    return bundle


def test_hash_password_prints_verifiable_hash(runner, deps):
    result = runner.invoke(cli_module.cli, ["hash-password", "s3cret-pass"])

    assert result.exit_code == 0
    hashed = result.output.strip()
    assert hashed.startswith("$2b$04$")
    assert PasswordHasher(rounds=4).verify("s3cret-pass", hashed)


def test_hash_password_rounds_option(runner, deps):
    result = runner.invoke(cli_module.cli, ["hash-password", "pw", "--rounds", "5"])

    assert result.exit_code == 0
    assert result.output.strip().startswith("$2b$05$")


def test_check_config_ready(runner, deps):
    result = runner.invoke(cli_module.cli, ["check-config"])

    assert result.exit_code == 0
    assert "Configuration ready" in result.output


def test_check_config_not_ready(runner, deps, settings):
    settings.jwt.secret_key = ""

    result = runner.invoke(cli_module.cli, ["check-config"])

    assert result.exit_code == 1
    assert "JWT secret not properly configured" in result.output


def test_check_config_output_is_json(runner, deps):
    result = runner.invoke(cli_module.cli, ["check-config"])

    report_text = result.output.rsplit("\n", 2)[0]
    report = json.loads(report_text)
    assert report["readiness"]["ready"] is True


def test_init_database(runner, deps):
    result = runner.invoke(cli_module.cli, ["init-database"])

    assert result.exit_code == 0, result.output
    assert "Database initialized successfully!" in result.output
    assert "Tables: products, users" in result.output


def test_serve_uses_configured_host_and_port(runner, deps):
    result = runner.invoke(cli_module.cli, ["serve"])

    assert result.exit_code == 0
    deps.server_run.assert_called_once()
    args, kwargs = deps.server_run.call_args
    assert args == ("storefront.main:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 3000


def test_serve_overrides(runner, deps):
    runner.invoke(cli_module.cli, ["serve", "--host", "127.0.0.1", "--port", "8080"])

    _, kwargs = deps.server_run.call_args
    assert (kwargs["host"], kwargs["port"]) == ("127.0.0.1", 8080)
