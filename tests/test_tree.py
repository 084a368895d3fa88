import io
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from toolboxer.cli import app
from toolboxer.config import SortBy, TreeOptions
from toolboxer.errors import PathAccessError, RenderFailure
from toolboxer.tree import build_tree, format_permissions, human_size, render_tree


def _make_project(root: Path) -> Path:
    (root / "src").mkdir()
    (root / "src" / "pkg").mkdir()
    (root / "src" / "pkg" / "core.py").write_text("x = 1\n", encoding="utf-8")
    (root / "docs").mkdir()
    (root / "README.md").write_text("hello world\n" * 100, encoding="utf-8")
    (root / "a.txt").write_text("a", encoding="utf-8")
    (root / ".git").mkdir()
    (root / ".env").write_text("SECRET=1", encoding="utf-8")
    return root


def _plain(options: TreeOptions) -> list:
    out = io.StringIO()
    render_tree(options, out, color=False)
    return out.getvalue().splitlines()


def test_tree_structure_sorted_by_name(tmp_path: Path):
    root = _make_project(tmp_path)

    lines = _plain(TreeOptions(root=root))

    assert lines == [
        str(root),
        "├── a.txt",
        "├── docs",
        "├── README.md",
        "└── src",
        "    └── pkg",
        "        └── core.py",
    ]


def test_tree_hidden_entries(tmp_path: Path):
    root = _make_project(tmp_path)

    lines = _plain(TreeOptions(root=root, show_hidden=True))

    assert "├── .env" in lines
    assert "├── .git" in lines


def test_tree_max_depth(tmp_path: Path):
    root = _make_project(tmp_path)

    assert _plain(TreeOptions(root=root, max_depth=0)) == [str(root)]
    lines = _plain(TreeOptions(root=root, max_depth=1))
    assert "└── src" in lines
    assert not any("pkg" in line for line in lines)


def test_tree_sort_by_type_puts_directories_first(tmp_path: Path):
    root = _make_project(tmp_path)

    lines = _plain(TreeOptions(root=root, sort_by=SortBy.TYPE, max_depth=1))

    assert lines[1:] == ["├── docs", "├── src", "├── a.txt", "└── README.md"]


def test_tree_sort_by_size(tmp_path: Path):
    root = _make_project(tmp_path)

    lines = _plain(TreeOptions(root=root, sort_by=SortBy.SIZE, directories_only=False, max_depth=1))
    names = [line[4:] for line in lines[1:]]

    assert names.index("a.txt") < names.index("README.md")


def test_tree_filter_and_dirs_only(tmp_path: Path):
    root = _make_project(tmp_path)

    filtered = _plain(TreeOptions(root=root, pattern=".py"))
    assert "        └── core.py" in filtered
    assert not any("a.txt" in line or "README" in line for line in filtered)

    dirs = _plain(TreeOptions(root=root, directories_only=True))
    assert dirs[1:] == ["├── docs", "└── src", "    └── pkg"]


def test_tree_decorations(tmp_path: Path):
    root = _make_project(tmp_path)
    os.chmod(root / "a.txt", 0o640)

    lines = _plain(TreeOptions(root=root, show_permissions=True, show_size=True, max_depth=1))

    a_line = next(line for line in lines if "a.txt" in line)
    assert a_line.startswith("rw-r----- ├── a.txt")
    assert a_line.endswith("1 B")
    readme = next(line for line in lines if "README.md" in line)
    assert readme.endswith("1.17 KiB")


def test_human_size_and_permissions():
    assert human_size(0) == "0 B"
    assert human_size(1023) == "1023 B"
    assert human_size(1024) == "1.00 KiB"
    assert human_size(5 * 1024 * 1024) == "5.00 MiB"
    assert format_permissions(0o100755) == "rwxr-xr-x"


def test_tree_colors_directories(tmp_path: Path):
    root = _make_project(tmp_path)

    lines = build_tree(TreeOptions(root=root, max_depth=1))

    # sorted by name, src comes last
    assert "\x1b[34m" in lines[-1]
    assert "src" in lines[-1]


def test_tree_missing_root_raises(tmp_path: Path):
    with pytest.raises(PathAccessError):
        build_tree(TreeOptions(root=tmp_path / "nope"))


def test_cli_tree(tmp_path: Path):
    root = _make_project(tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["tree", str(root), "--no-color", "-m", "1", "--sort-type"])

    assert result.exit_code == 0, result.output
    assert "├── docs" in result.output
    assert "\x1b" not in result.output


def test_cli_tree_missing_root_exits_nonzero(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(app, ["tree", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "Failed to access path" in result.output


def test_render_tree_to_closed_stream_raises_render_failure(tmp_path):
    _make_project(tmp_path)
    out = io.StringIO()
    out.close()

    with pytest.raises(RenderFailure):
        render_tree(TreeOptions(root=tmp_path), out, color=False)
