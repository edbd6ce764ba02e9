"""Tests for the Postman MCP CLI."""

import json
import pytest
from click.testing import CliRunner
from postman_mcp.cli import main


class TestCLI:
    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_init(self, runner, tmp_home):
        result = runner.invoke(main, ["init"])
        assert result.exit_code == 0
        assert "Postman MCP initialized" in result.output
        config_env = tmp_home / "config.env"
        assert config_env.exists()
        assert "POSTMAN_API_KEY" in config_env.read_text()

    def test_init_preserves_existing_config(self, runner, tmp_home):
        tmp_home.mkdir(parents=True)
        config_env = tmp_home / "config.env"
        config_env.write_text("POSTMAN_API_KEY=PMAK-mine\n")

        result = runner.invoke(main, ["init"])
        assert result.exit_code == 0
        # Should NOT overwrite existing config
        assert config_env.read_text() == "POSTMAN_API_KEY=PMAK-mine\n"

    def test_mcp_config_stdio(self, runner):
        result = runner.invoke(main, ["mcp-config", "--full"])
        assert result.exit_code == 0
        snippet = json.loads(result.output[result.output.index("{"):])
        entry = snippet["mcpServers"]["postman"]
        assert entry["args"][-2:] == ["server", "--full"]
        assert "POSTMAN_API_KEY" in entry["env"]

    def test_mcp_config_http(self, runner):
        result = runner.invoke(main, ["mcp-config", "--http", "--url", "http://localhost:4000/sse"])
        assert result.exit_code == 0
        snippet = json.loads(result.output[result.output.index("{"):])
        entry = snippet["mcpServers"]["postman"]
        assert entry["url"] == "http://localhost:4000/sse"
        assert "x-postman-api-key" in entry["headers"]

    def test_tools_minimal(self, runner):
        result = runner.invoke(main, ["tools"])
        assert result.exit_code == 0
        assert "minimal tier" in result.output
        assert "getWorkspaces" in result.output
        assert "deleteCollection" not in result.output

    def test_tools_full_json(self, runner):
        result = runner.invoke(main, ["tools", "--full", "--json"])
        assert result.exit_code == 0
        names = [t["name"] for t in json.loads(result.output)]
        assert "deleteCollection" in names
        assert "createEnvironment" in names


class TestServerStartupErrors:
    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_invalid_region(self, runner, monkeypatch):
        monkeypatch.setenv("POSTMAN_API_KEY", "PMAK-test")
        result = runner.invoke(main, ["server", "--region", "xx"])
        assert result.exit_code == 1
        assert "Supported regions: us, eu" in result.output

    def test_invalid_region_from_env(self, runner, monkeypatch):
        monkeypatch.setenv("POSTMAN_API_KEY", "PMAK-test")
        monkeypatch.setenv("POSTMAN_API_REGION", "ap")
        result = runner.invoke(main, ["server"])
        assert result.exit_code == 1
        assert "Supported regions" in result.output

    def test_stdio_requires_api_key(self, runner):
        result = runner.invoke(main, ["server"])
        assert result.exit_code == 1
        assert "POSTMAN_API_KEY environment variable is required for STDIO mode" in result.output

    def test_blank_api_key_counts_as_missing(self, runner, monkeypatch):
        monkeypatch.setenv("POSTMAN_API_KEY", "   ")
        result = runner.invoke(main, ["server"])
        assert result.exit_code == 1

    def test_http_invalid_port(self, runner):
        result = runner.invoke(main, ["server", "--http", "--port", "abc"])
        assert result.exit_code == 1
        assert "Invalid port value: abc" in result.output

    def test_region_checked_before_missing_key(self, runner):
        result = runner.invoke(main, ["server", "--region", "xx"])
        assert result.exit_code == 1
        assert "Supported regions" in result.output
