"""Tests for Redirector CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import yaml
from click.testing import CliRunner

from redirector.cli import main
from redirector.core.exceptions import ConfigError, format_error_for_user
from tests.conftest import CHROME_ROUTE_CONFIG


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestCLIBasics:
    """Basic CLI tests."""

    def test_main_without_arguments_shows_banner(self):
        """Test that running without arguments shows banner and usage."""
        runner = CliRunner()
        result = runner.invoke(main)

        assert result.exit_code == 0
        assert "Conditional redirects by header and time" in result.output
        assert "Usage:" in result.output
        assert "redirector serve --config config.yaml" in result.output

    def test_main_with_help(self):
        """Test --help shows help message."""
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Redirector - route requests" in result.output
        assert "serve" in result.output
        assert "check" in result.output

    def test_version_command(self):
        """Test version command."""
        runner = CliRunner()
        result = runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "Version:" in result.output
        assert "Python:" in result.output

    def test_serve_help(self):
        """Test serve --help lists its options."""
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "--help"])

        assert result.exit_code == 0
        assert "--config" in result.output
        assert "--address" in result.output
        assert "--control-address" in result.output
        assert "--demo" in result.output


class TestCheckCommand:
    """Tests for check command."""

    def test_check_valid_config(self, tmp_path):
        """Test a valid config compiles."""
        config_file = _write_config(tmp_path, {"routes": {"chrome": CHROME_ROUTE_CONFIG}})
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file])

        assert result.exit_code == 0
        assert "OK 1 route(s)" in result.output

    def test_check_json(self, tmp_path):
        """Test check --json prints the compiled routes."""
        config_file = _write_config(
            tmp_path,
            {
                "routes": {"chrome": CHROME_ROUTE_CONFIG},
                "not_found_redirect": "/bye",
                "not_found_redirect_status": 302,
            },
        )
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file, "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["address"] == ":8080"
        assert payload["not_found_redirect"] == "/bye"
        assert payload["routes"][0]["name"] == "chrome"
        assert payload["routes"][0]["allowed_methods"] == ["GET", "POST"]
        assert payload["routes"][0]["conditions"] == CHROME_ROUTE_CONFIG["conditions"]

    def test_check_unknown_subject(self, tmp_path):
        """Test an unknown subject fails with its error code."""
        route = dict(CHROME_ROUTE_CONFIG, conditions=["Referer has google"])
        config_file = _write_config(tmp_path, {"routes": {"chrome": route}})
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file])

        assert result.exit_code == 1
        assert "CONDITION_UNKNOWN_SUBJECT" in result.output

    def test_check_malformed_condition(self, tmp_path):
        """Test a condition with the wrong number of parts fails."""
        route = dict(CHROME_ROUTE_CONFIG, conditions=["User-Agent has"])
        config_file = _write_config(tmp_path, {"routes": {"chrome": route}})
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file])

        assert result.exit_code == 1
        assert "CONDITION_MALFORMED" in result.output

    def test_check_half_configured_not_found(self, tmp_path):
        """Test not_found_redirect without a status is rejected."""
        config_file = _write_config(
            tmp_path,
            {"routes": {"chrome": CHROME_ROUTE_CONFIG}, "not_found_redirect": "/bye"},
        )
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file])

        assert result.exit_code == 1
        assert "CONFIG_INVALID" in result.output

    def test_check_route_name_not_a_path(self, tmp_path):
        """Test a route without path whose name lacks a leading slash fails."""
        config_file = _write_config(
            tmp_path,
            {"routes": {"chrome": {"success_redirect": "/ok", "failure_redirect": "/no"}}},
        )
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", config_file])

        assert result.exit_code == 1
        assert "CONFIG_INVALID" in result.output

    def test_check_missing_file(self, tmp_path):
        """Test click rejects a missing config path."""
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code != 0


class TestServeCommand:
    """Tests for serve command."""

    def test_serve_applies_overrides(self, tmp_path):
        """Test CLI flags override the config file before the server runs."""
        config_file = _write_config(tmp_path, {"routes": {"chrome": CHROME_ROUTE_CONFIG}})
        captured = {}

        async def fake_run_server(server):
            captured["server"] = server

        runner = CliRunner()
        with patch("redirector.server.main.run_server", fake_run_server):
            result = runner.invoke(
                main,
                ["serve", "--config", config_file, "--address", ":9000", "--demo"],
            )

        assert result.exit_code == 0
        assert "Not found redirect is OFF" in result.output
        server = captured["server"]
        assert server.config.address == ":9000"
        assert server.config.demo_routes is True
        assert len(server.engine.table) == 1

    def test_serve_bind_error(self, tmp_path):
        """Test bind failures are reported without a traceback."""
        config_file = _write_config(tmp_path, {"routes": {"chrome": CHROME_ROUTE_CONFIG}})

        async def failing_run_server(server):
            raise OSError("address already in use")

        runner = CliRunner()
        with patch("redirector.server.main.run_server", failing_run_server):
            result = runner.invoke(main, ["serve", "--config", config_file])

        assert result.exit_code == 1
        assert "Server Error" in result.output
        assert "address already in use" in result.output

    def test_serve_invalid_config(self, tmp_path):
        """Test serve exits before binding when routes do not compile."""
        route = dict(CHROME_ROUTE_CONFIG, conditions=["Time before 2018-10-28T20:00:00+01:00"])
        config_file = _write_config(tmp_path, {"routes": {"chrome": route}})
        runner = CliRunner()
        result = runner.invoke(main, ["serve", "--config", config_file])

        assert result.exit_code == 1
        assert "CONDITION_UNKNOWN_OPERATOR" in result.output


class TestFormatErrorForUser:
    """Test console error rendering."""

    def test_redirector_error(self):
        """Test redirector errors include their code."""
        assert format_error_for_user(ConfigError("bad")) == "[CONFIG_INVALID] bad"

    def test_other_error(self):
        """Test other errors include their type."""
        assert format_error_for_user(OSError("in use")) == "OSError: in use"
