"""Tests for ``hana-mcp config`` CLI command."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from hana_mcp.cli import main


class TestConfigShow:
    def test_json_masks_password(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HANA_HOST", "db.local")
        monkeypatch.setenv("HANA_USER", "ADMIN")
        monkeypatch.setenv("HANA_PASSWORD", "hunter2")
        monkeypatch.setenv("HANA_SCHEMA", "SALES")

        result = CliRunner().invoke(main, ["config", "show", "--json"])

        assert result.exit_code == 0
        assert "hunter2" not in result.output
        payload = json.loads(result.output)
        assert payload["config"]["host"] == "db.local"
        assert payload["config"]["password"] == "SET (hidden)"
        assert payload["validationErrors"] == []

    def test_reports_problems(self) -> None:
        result = CliRunner().invoke(main, ["config", "show"], env={"COLUMNS": "200"})

        assert result.exit_code == 0
        assert "Configuration problems" in result.output
        assert "HANA_HOST is required" in result.output
