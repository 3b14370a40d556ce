"""Workspace file access for the edit tools.

Path resolution applies the same security checks to every tool:
- Relative paths are resolved against the workspace root
- Symlinks are rejected
- Paths escaping the root are rejected unless explicitly allowed

Files are read without newline translation so their line ending style can
be detected. The engine always sees LF-normalized content; writes restore
the style the file had when it was read. A file mixing CRLF and LF is
written back in its dominant style on every line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import WorkspaceError
from .line_index import normalize_line_endings

logger = logging.getLogger(__name__)


class LineEnding(str, Enum):
    LF = "\n"
    CRLF = "\r\n"

    @classmethod
    def detect(cls, text: str) -> LineEnding:
        """Dominant line ending style; LF on a tie or without line breaks."""
        crlf = text.count("\r\n")
        return cls.CRLF if crlf > text.count("\n") - crlf else cls.LF

    @staticmethod
    def is_mixed(text: str) -> bool:
        crlf = text.count("\r\n")
        return 0 < crlf < text.count("\n")


@dataclass
class TextFile:
    """A file read from the workspace.

    Attributes:
        path: Resolved absolute path
        content: LF-normalized content
        line_ending: Dominant line ending style of the file on disk
        mixed_line_endings: The file uses both styles; a write normalizes
            every line to ``line_ending``
    """

    path: Path
    content: str
    line_ending: LineEnding = LineEnding.LF
    mixed_line_endings: bool = False


class Workspace:
    """Resolves, reads and writes text files below a root directory."""

    def __init__(
        self,
        root: Path | None = None,
        allow_outside: bool = False,
        encoding: str = "utf-8",
    ) -> None:
        self.root = (root or Path.cwd()).expanduser().resolve()
        self.allow_outside = allow_outside
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        """Resolve a caller-supplied path with security checks.

        Raises:
            WorkspaceError: Empty path, symlink, or path outside the root
        """
        if not path or not path.strip():
            raise WorkspaceError(path, "Path must not be empty")

        file_path = Path(path).expanduser()
        absolute_path = file_path if file_path.is_absolute() else self.root / file_path

        # Parent directories may be symlinks, resolve() follows those
        if absolute_path.is_symlink():
            raise WorkspaceError(str(absolute_path), "Symlinks not allowed for security")

        try:
            resolved_path = absolute_path.resolve()
        except (OSError, RuntimeError) as e:
            raise WorkspaceError(path, f"Failed to resolve path ({e})")

        if not self.allow_outside and not resolved_path.is_relative_to(self.root):
            raise WorkspaceError(
                path, f"Path escapes workspace root {self.root} (resolved to {resolved_path})"
            )

        return resolved_path

    def read(self, path: Path) -> TextFile:
        """Read a resolved text file.

        Raises:
            WorkspaceError: Missing file, not a file, decode or OS error
        """
        if not path.exists():
            raise WorkspaceError(str(path), "File not found")
        if not path.is_file():
            raise WorkspaceError(str(path), "Path is not a file")

        try:
            raw = path.read_bytes().decode(self.encoding)
        except UnicodeDecodeError as e:
            raise WorkspaceError(str(path), f"Encoding error reading with {self.encoding} ({e})")
        except OSError as e:
            raise WorkspaceError(str(path), f"Failed to read file ({e})")

        text_file = TextFile(
            path=path,
            content=normalize_line_endings(raw),
            line_ending=LineEnding.detect(raw),
            mixed_line_endings=LineEnding.is_mixed(raw),
        )
        if text_file.mixed_line_endings:
            logger.warning(
                f"{path} mixes CRLF and LF line endings; "
                f"writes will use {text_file.line_ending.name} throughout"
            )
        return text_file

    def write(self, file: TextFile, content: str) -> int:
        """Write LF-normalized content back in the file's line ending style.

        Returns:
            Number of bytes written

        Raises:
            WorkspaceError: Encode or OS error
        """
        text = normalize_line_endings(content)
        if file.line_ending is LineEnding.CRLF:
            text = text.replace("\n", "\r\n")

        try:
            data = text.encode(self.encoding)
            file.path.write_bytes(data)
        except UnicodeEncodeError as e:
            raise WorkspaceError(
                str(file.path), f"Encoding error writing with {self.encoding} ({e})"
            )
        except OSError as e:
            raise WorkspaceError(str(file.path), f"Failed to write file ({e})")

        logger.debug(f"Wrote {len(data)} bytes to {file.path} ({file.line_ending.name})")
        return len(data)
