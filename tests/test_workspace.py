"""Tests for workspace path resolution and line-ending preserving I/O."""

from pathlib import Path

import pytest

from linepatch_mcp.engine.exceptions import WorkspaceError
from linepatch_mcp.engine.workspace import LineEnding, Workspace


@pytest.fixture
def workspace(workspace_dir: Path) -> Workspace:
    return Workspace(root=workspace_dir)


class TestResolve:
    def test_relative_path(self, workspace: Workspace, workspace_dir: Path) -> None:
        assert workspace.resolve("sample.txt") == (workspace_dir / "sample.txt").resolve()

    def test_absolute_path_inside_root(self, workspace: Workspace, workspace_dir: Path) -> None:
        path = str(workspace_dir / "sample.txt")
        assert workspace.resolve(path) == Path(path).resolve()

    def test_traversal_is_rejected(self, workspace: Workspace) -> None:
        with pytest.raises(WorkspaceError, match="escapes workspace root"):
            workspace.resolve("../outside.txt")

    def test_outside_allowed_when_configured(self, workspace_dir: Path) -> None:
        workspace = Workspace(root=workspace_dir, allow_outside=True)
        resolved = workspace.resolve("../outside.txt")
        assert resolved == (workspace_dir.parent / "outside.txt").resolve()

    def test_symlink_is_rejected(self, workspace: Workspace, workspace_dir: Path) -> None:
        link = workspace_dir / "link.txt"
        link.symlink_to(workspace_dir / "sample.txt")
        with pytest.raises(WorkspaceError, match="Symlinks not allowed"):
            workspace.resolve("link.txt")

    def test_empty_path(self, workspace: Workspace) -> None:
        with pytest.raises(WorkspaceError, match="must not be empty"):
            workspace.resolve("  ")


class TestReadWrite:
    def test_read_lf_file(self, workspace: Workspace) -> None:
        text_file = workspace.read(workspace.resolve("sample.txt"))
        assert text_file.content == "a\nb\nc\nd\n"
        assert text_file.line_ending is LineEnding.LF

    def test_crlf_round_trip(self, workspace: Workspace, workspace_dir: Path) -> None:
        path = workspace_dir / "windows.txt"
        path.write_bytes(b"a\r\nb\r\n")

        text_file = workspace.read(workspace.resolve("windows.txt"))
        assert text_file.content == "a\nb\n"
        assert text_file.line_ending is LineEnding.CRLF

        written = workspace.write(text_file, "a\nX\nb\n")
        assert path.read_bytes() == b"a\r\nX\r\nb\r\n"
        assert written == len(b"a\r\nX\r\nb\r\n")

    def test_mixed_endings_use_dominant_style(
        self, workspace: Workspace, workspace_dir: Path
    ) -> None:
        path = workspace_dir / "mixed.txt"
        path.write_bytes(b"a\r\nb\r\nc\n")

        text_file = workspace.read(workspace.resolve("mixed.txt"))
        assert text_file.line_ending is LineEnding.CRLF
        assert text_file.mixed_line_endings is True

        workspace.write(text_file, text_file.content)
        assert path.read_bytes() == b"a\r\nb\r\nc\r\n"

    @pytest.mark.parametrize(
        "raw, ending, mixed",
        [
            ("a\nb\n", LineEnding.LF, False),
            ("a\r\nb\r\n", LineEnding.CRLF, False),
            ("a\r\nb\nc\n", LineEnding.LF, True),
            ("a\r\nb\n", LineEnding.LF, True),
            ("a", LineEnding.LF, False),
        ],
    )
    def test_line_ending_detection(self, raw: str, ending: LineEnding, mixed: bool) -> None:
        assert LineEnding.detect(raw) is ending
        assert LineEnding.is_mixed(raw) is mixed

    def test_missing_file(self, workspace: Workspace) -> None:
        with pytest.raises(WorkspaceError, match="File not found"):
            workspace.read(workspace.resolve("missing.txt"))

    def test_directory_is_not_a_file(self, workspace: Workspace, workspace_dir: Path) -> None:
        (workspace_dir / "subdir").mkdir()
        with pytest.raises(WorkspaceError, match="not a file"):
            workspace.read(workspace.resolve("subdir"))

    def test_undecodable_file(self, workspace: Workspace, workspace_dir: Path) -> None:
        (workspace_dir / "binary.bin").write_bytes(b"\xff\xfe\x00")
        with pytest.raises(WorkspaceError, match="Encoding error"):
            workspace.read(workspace.resolve("binary.bin"))
