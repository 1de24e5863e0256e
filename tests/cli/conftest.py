"""CLI fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _keep_logging_config() -> Iterator[None]:
    """The group callback reconfigures root logging; keep pytest's handlers."""
    with patch("hana_mcp.cli.configure_logging"):
        yield
