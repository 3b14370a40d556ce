"""Shared test configuration for linepatch-mcp tests.

Provides:
- An isolated workspace directory with a few sample files
- AppContext wired to that workspace
- A mock MCP context for calling tool functions directly
- Environment cleanup for configuration tests
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from linepatch_mcp.context import AppContext
from linepatch_mcp.engine.config import EditorConfig

SAMPLE_TEXT = "a\nb\nc\nd\n"

CONFIG_ENV_VARS = (
    "LINEPATCH_CONFIG",
    "LINEPATCH_WORKSPACE_ROOT",
    "LINEPATCH_STRICT_LINE_COUNT",
    "LINEPATCH_INCLUDE_LINT_ERRORS",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's LINEPATCH_* settings out of every test."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    """Workspace root with a 4-line text file and a small Python module."""
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "sample.txt").write_text(SAMPLE_TEXT, encoding="utf-8")
    (root / "module.py").write_text(
        "def greet(name):\n    return f'Hello {name}'\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def editor_config(workspace_dir: Path) -> EditorConfig:
    return EditorConfig(workspace_root=workspace_dir)


@pytest.fixture
def app_context(editor_config: EditorConfig) -> AppContext:
    return AppContext.from_config(editor_config)


@pytest.fixture
def mock_context(app_context: AppContext) -> MagicMock:
    """Create mock MCP context with AppContext for unit testing MCP tools.

    Returns:
        Mock context object with request_context.lifespan_context structure
    """
    mock_ctx = MagicMock()
    mock_ctx.request_context.lifespan_context = app_context
    return mock_ctx
