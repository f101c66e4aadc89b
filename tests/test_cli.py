"""Tests for the command-line interface."""

import json

import pytest
import structlog
from click.testing import CliRunner
from conftest import BLOG_HOST, DEFAULT_HOST

from gqlbind import cli

CONFIG_YAML = f"""
graphql-client:
  clients:
    default:
      host: {DEFAULT_HOST}
      schema: schemas/default.graphql
      token: server-secret
      headers:
        X-App: web
        serverOnly:
          X-Secret: hidden
    blog:
      host: {BLOG_HOST}
      schema: schemas/blog.graphql
"""


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep log lines out of command output."""
    monkeypatch.setattr(
        cli,
        "configure_logging",
        lambda *args, **kwargs: structlog.configure(logger_factory=structlog.ReturnLoggerFactory()),
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def config_file(project):
    path = project / "gqlbind.yaml"
    path.write_text(CONFIG_YAML)
    return path


class TestGenerateCommand:
    """Tests for `gqlbind generate`."""

    def test_generates_bindings(self, project, config_file):
        output = project / "out"
        result = CliRunner().invoke(
            cli.main,
            ["generate", "-c", str(config_file), "-r", str(project), "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert "Generated 2 operations for 2 clients" in result.output
        assert (output / "gql_sdk.py").exists()
        assert (output / "gql.py").exists()

    def test_verbose_lists_clients(self, project, config_file):
        result = CliRunner().invoke(
            cli.main,
            ["generate", "-c", str(config_file), "-r", str(project), "-o", str(project / "out"), "-v"],
        )
        assert result.exit_code == 0, result.output
        assert "Client blog:" in result.output
        assert "blog: 1 operations" in result.output

    def test_missing_host_is_reported(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GQL_HOST", raising=False)
        result = CliRunner().invoke(cli.main, ["generate", "-r", str(tmp_path)])
        assert result.exit_code == 1
        assert "GQL_HOST is not set" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "gqlbind.yaml"
        path.write_text("clients: [1, 2]\n")
        result = CliRunner().invoke(cli.main, ["generate", "-c", str(path), "-r", str(tmp_path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestConfigCommand:
    """Tests for `gqlbind config`."""

    def test_secrets_stripped(self, project, config_file):
        result = CliRunner().invoke(cli.main, ["config", "-c", str(config_file), "-r", str(project)])

        assert result.exit_code == 0, result.output
        public = json.loads(result.output)
        assert set(public["clients"]) == {"default", "blog"}
        default = public["clients"]["default"]
        assert default["headers"] == {"X-App": "web"}
        assert "value" not in default["token"]
        assert "server-secret" not in result.output
        assert "hidden" not in result.output
        assert public["codegen"] is True
        assert public["function_prefix"] == "Gql"


class TestVersion:
    def test_version_option(self):
        result = CliRunner().invoke(cli.main, ["--version"])
        assert result.exit_code == 0
        assert "version" in result.output
