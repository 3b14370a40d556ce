"""Syntax diagnostics reported after an edit.

The edit engine is language-agnostic; diagnostics are a separate collaborator
the host asks for signals once a patch has been written. Supported formats
are picked by file extension:

- Python (.py, .pyi): ast
- JSON (.json): json
- YAML (.yaml, .yml): PyYAML safe loader
- TOML (.toml): tomllib
- XML (.xml, .svg, .xsd): ElementTree

Each parser reports at most its first error, which is all most of them can
recover. Unknown file types produce no diagnostics.
"""

from __future__ import annotations

import ast
import json
import logging
import re
import tomllib
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

TOML_POSITION_PATTERN = re.compile(r"\(at line (\d+), column \d+\)")


class Diagnostic(BaseModel):
    """One problem found in a file."""

    severity: Literal["error", "warning"] = Field(default="error")
    message: str = Field(description="Problem description")
    start_line: int = Field(description="First affected line (1-based)")
    end_line: int = Field(description="Last affected line (inclusive)")
    code: str = Field(default="", description="Checker-specific error code")

    def format(self, number: int) -> str:
        return (
            f"Error {number}:\n"
            f"Lines Affected: {self.start_line}-{self.end_line}\n"
            f"Error message:({self.severity}) {self.message}"
        )


def format_diagnostics(diagnostics: list[Diagnostic]) -> str:
    """Render diagnostics as numbered, blank-line separated blocks."""
    return "\n\n".join(d.format(i) for i, d in enumerate(diagnostics, start=1))


def check_python(content: str) -> list[Diagnostic]:
    try:
        ast.parse(content)
    except SyntaxError as e:
        start = e.lineno or 1
        end = getattr(e, "end_lineno", None) or start
        return [
            Diagnostic(
                message=e.msg, start_line=start, end_line=max(end, start), code="syntax-error"
            )
        ]
    except ValueError as e:
        # Null bytes in source
        return [Diagnostic(message=str(e), start_line=1, end_line=1, code="syntax-error")]
    return []


def check_json(content: str) -> list[Diagnostic]:
    if not content.strip():
        return []
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        return [
            Diagnostic(message=e.msg, start_line=e.lineno, end_line=e.lineno, code="json-error")
        ]
    return []


def check_yaml(content: str) -> list[Diagnostic]:
    try:
        list(yaml.safe_load_all(content))
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        line = mark.line + 1 if mark is not None else 1
        message = " ".join(part for part in (e.context, e.problem) if part) or str(e)
        return [Diagnostic(message=message, start_line=line, end_line=line, code="yaml-error")]
    except yaml.YAMLError as e:
        return [Diagnostic(message=str(e), start_line=1, end_line=1, code="yaml-error")]
    return []


def check_toml(content: str) -> list[Diagnostic]:
    try:
        tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        message = str(e)
        match = TOML_POSITION_PATTERN.search(message)
        line = int(match.group(1)) if match else 1
        return [Diagnostic(message=message, start_line=line, end_line=line, code="toml-error")]
    return []


def check_xml(content: str) -> list[Diagnostic]:
    if not content.strip():
        return []
    try:
        ET.fromstring(content)
    except ET.ParseError as e:
        line = e.position[0] if e.position else 1
        return [Diagnostic(message=str(e), start_line=line, end_line=line, code="xml-error")]
    return []


CHECKERS: dict[str, Callable[[str], list[Diagnostic]]] = {
    ".py": check_python,
    ".pyi": check_python,
    ".json": check_json,
    ".yaml": check_yaml,
    ".yml": check_yaml,
    ".toml": check_toml,
    ".xml": check_xml,
    ".svg": check_xml,
    ".xsd": check_xml,
}


class SyntaxDiagnostics:
    """Runs the syntax checker matching a file's extension."""

    def __init__(self, max_errors: int = 100) -> None:
        self.max_errors = max_errors

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in CHECKERS

    def check(self, path: Path, content: str) -> list[Diagnostic]:
        """Check content as if it were the file at ``path``.

        Returns:
            At most ``max_errors`` diagnostics, empty for unsupported types
        """
        checker = CHECKERS.get(path.suffix.lower())
        if checker is None:
            return []
        diagnostics = checker(content)[: self.max_errors]
        if diagnostics:
            logger.debug(f"{len(diagnostics)} diagnostics for {path}")
        return diagnostics
