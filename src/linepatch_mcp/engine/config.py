"""Editor configuration.

Configuration file location priority:
1. Explicit path passed to EditorConfigLoader
2. LINEPATCH_CONFIG environment variable
3. Standard location: ~/.linepatch/config.yml
4. Built-in defaults (if no config file found)

Environment overrides are applied on top of whatever was loaded:
- LINEPATCH_WORKSPACE_ROOT: workspace root directory
- LINEPATCH_STRICT_LINE_COUNT: reject batches whose result has an unexpected line count
- LINEPATCH_INCLUDE_LINT_ERRORS: run diagnostics after each edit

Example config file:
```yaml
version: "1.0"
workspace_root: ~/projects/app
allow_outside_workspace: false
encoding: utf-8
max_file_chars_page: 500000
strict_line_count: false
include_lint_errors: true
max_lint_errors: 100
```
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

ENV_OVERRIDES = {
    "LINEPATCH_WORKSPACE_ROOT": "workspace_root",
    "LINEPATCH_STRICT_LINE_COUNT": "strict_line_count",
    "LINEPATCH_INCLUDE_LINT_ERRORS": "include_lint_errors",
}


class EditorConfig(BaseModel):
    """Root editor configuration model."""

    version: str = Field(
        default="1.0",
        description="Configuration schema version",
    )
    workspace_root: Path = Field(
        default_factory=Path.cwd,
        description="Directory relative paths are resolved against",
    )
    allow_outside_workspace: bool = Field(
        default=False,
        description="Allow editing files outside the workspace root",
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding used to read and write files",
    )
    max_file_chars_page: int = Field(
        default=500_000,
        ge=1000,
        description="Maximum characters returned per read_file page",
    )
    strict_line_count: bool = Field(
        default=False,
        description=(
            "Reject a batch when the patched content has a different line count "
            "than the directives predict (otherwise a warning is returned)"
        ),
    )
    include_lint_errors: bool = Field(
        default=True,
        description="Run syntax diagnostics on edited files",
    )
    max_lint_errors: int = Field(
        default=100,
        ge=0,
        description="Maximum number of diagnostics reported per edit",
    )

    @field_validator("workspace_root")
    @classmethod
    def expand_workspace_root(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the encoding is known to Python."""
        try:
            "".encode(v)
        except LookupError:
            raise ValueError(f"Unknown text encoding: {v}")
        return v


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(
        f"Invalid boolean value for {name}: '{value}'. "
        f"Use one of: {', '.join(sorted(TRUE_VALUES | FALSE_VALUES))}"
    )


class EditorConfigLoader:
    """Loader for editor configuration from a YAML file.

    Usage:
        ```python
        loader = EditorConfigLoader()
        config = loader.load_config()
        ```

    The loaded config is cached; call ``load_config()`` once during startup.
    """

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config loader with optional explicit path.

        Args:
            config_path: Explicit path to config file (optional).
                If not provided, uses environment variable or standard location.
        """
        self._config: EditorConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Returns:
            Path to config file, or None if file doesn't exist
        """
        # Priority 1: Explicit path
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit editor config path does not exist: {self._explicit_path}")
            return None

        # Priority 2: Environment variable
        env_path_str = os.getenv("LINEPATCH_CONFIG")
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"LINEPATCH_CONFIG path does not exist: {env_path}")
            return None

        # Priority 3: Standard location
        standard_path = Path.home() / ".linepatch" / "config.yml"
        if standard_path.exists():
            return standard_path

        return None

    def _read_file(self, config_path: Path) -> dict[str, Any]:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Config file must contain a YAML dictionary")
        return raw_config

    def _env_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for env_name, field_name in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value is None or value == "":
                continue
            if field_name == "workspace_root":
                overrides[field_name] = value
            else:
                overrides[field_name] = _parse_bool(env_name, value)
            logger.debug(f"Config override from {env_name}: {field_name}={overrides[field_name]}")
        return overrides

    def load_config(self) -> EditorConfig:
        """Load and validate editor configuration.

        Returns:
            Validated EditorConfig (defaults if no config file found)

        Raises:
            ValueError: If the config file or an environment override is invalid
        """
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()
        raw_config: dict[str, Any] = {}

        if config_path is None:
            logger.info("No editor config file found. Using defaults.")
        else:
            logger.info(f"Loading editor config from: {config_path}")
            try:
                raw_config = self._read_file(config_path)
            except (yaml.YAMLError, OSError) as e:
                raise ValueError(f"Failed to load editor config from {config_path}: {e}")

        raw_config.update(self._env_overrides())

        try:
            config = EditorConfig(**raw_config)
        except ValidationError as e:
            source = config_path or "environment"
            raise ValueError(f"Invalid editor config ({source}): {e}")

        logger.info(
            f"Editor config: workspace_root={config.workspace_root}, "
            f"strict_line_count={config.strict_line_count}, "
            f"include_lint_errors={config.include_lint_errors}"
        )
        self._config = config
        return config
