"""Tests for ``hana-mcp tools`` CLI command."""

from __future__ import annotations

import json

from click.testing import CliRunner

from hana_mcp.cli import main


class TestToolsList:
    def test_table(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list"], env={"COLUMNS": "200"})

        assert result.exit_code == 0
        assert "Registered Tools" in result.output
        assert "hana_execute_query" in result.output
        assert "table_name" in result.output

    def test_json_matches_tools_list_payload(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        names = [tool["name"] for tool in payload["tools"]]
        assert len(names) == 9
        assert names[0] == "hana_show_config"
        assert set(payload["tools"][0]) == {"name", "description", "inputSchema"}


class TestGroup:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "hana-mcp" in result.output

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        for command in ("serve", "tools", "config", "connection"):
            assert command in result.output
