"""Tests for editor configuration loading."""

from pathlib import Path

import pytest

from linepatch_mcp.engine.config import EditorConfig, EditorConfigLoader


@pytest.fixture
def home_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the standard config location at an empty directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    return home


def write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestEditorConfig:
    def test_defaults(self):
        config = EditorConfig()
        assert config.workspace_root == Path.cwd()
        assert config.allow_outside_workspace is False
        assert config.encoding == "utf-8"
        assert config.strict_line_count is False
        assert config.include_lint_errors is True
        assert config.max_lint_errors == 100

    def test_workspace_root_expands_user(self):
        config = EditorConfig(workspace_root="~/project")
        assert "~" not in str(config.workspace_root)

    def test_unknown_encoding(self):
        with pytest.raises(ValueError, match="Unknown text encoding"):
            EditorConfig(encoding="not-a-codec")

    def test_page_size_minimum(self):
        with pytest.raises(ValueError):
            EditorConfig(max_file_chars_page=10)


class TestEditorConfigLoader:
    def test_no_config_file_uses_defaults(self, home_dir: Path):
        config = EditorConfigLoader().load_config()
        assert config == EditorConfig(workspace_root=config.workspace_root)

    def test_standard_location(self, home_dir: Path):
        write_config(home_dir / ".linepatch" / "config.yml", "strict_line_count: true\n")
        assert EditorConfigLoader().load_config().strict_line_count is True

    def test_explicit_path(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "editor.yml", "include_lint_errors: false\n")
        assert EditorConfigLoader(path).load_config().include_lint_errors is False

    def test_missing_explicit_path_uses_defaults(self, tmp_path: Path, home_dir: Path):
        config = EditorConfigLoader(tmp_path / "missing.yml").load_config()
        assert config.include_lint_errors is True

    def test_env_path(self, tmp_path: Path, home_dir: Path, monkeypatch: pytest.MonkeyPatch):
        path = write_config(tmp_path / "env.yml", "max_lint_errors: 5\n")
        monkeypatch.setenv("LINEPATCH_CONFIG", str(path))
        assert EditorConfigLoader().load_config().max_lint_errors == 5

    def test_env_overrides(self, tmp_path: Path, home_dir: Path, monkeypatch: pytest.MonkeyPatch):
        path = write_config(tmp_path / "editor.yml", "strict_line_count: false\n")
        monkeypatch.setenv("LINEPATCH_STRICT_LINE_COUNT", "yes")
        monkeypatch.setenv("LINEPATCH_INCLUDE_LINT_ERRORS", "off")
        monkeypatch.setenv("LINEPATCH_WORKSPACE_ROOT", str(tmp_path))

        config = EditorConfigLoader(path).load_config()
        assert config.strict_line_count is True
        assert config.include_lint_errors is False
        assert config.workspace_root == tmp_path

    def test_invalid_bool_override(self, home_dir: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINEPATCH_STRICT_LINE_COUNT", "maybe")
        with pytest.raises(ValueError, match="Invalid boolean value"):
            EditorConfigLoader().load_config()

    def test_empty_file(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "empty.yml", "")
        assert EditorConfigLoader(path).load_config().strict_line_count is False

    def test_invalid_yaml(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "bad.yml", "strict_line_count: [true\n")
        with pytest.raises(ValueError, match="Failed to load editor config"):
            EditorConfigLoader(path).load_config()

    def test_non_mapping_file(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "list.yml", "- a\n- b\n")
        with pytest.raises(ValueError, match="YAML dictionary"):
            EditorConfigLoader(path).load_config()

    def test_invalid_value(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "editor.yml", "max_lint_errors: -1\n")
        with pytest.raises(ValueError, match="Invalid editor config"):
            EditorConfigLoader(path).load_config()

    def test_config_is_cached(self, tmp_path: Path, home_dir: Path):
        path = write_config(tmp_path / "editor.yml", "max_lint_errors: 5\n")
        loader = EditorConfigLoader(path)
        first = loader.load_config()
        path.write_text("max_lint_errors: 7\n")
        assert loader.load_config() is first
