from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional

import typer

from .config import SortBy, TreeOptions
from .errors import PathAccessError, RenderFailure
from .utils.time import fmt_mtime

logger = logging.getLogger(__name__)

FILE_ATTRIBUTE_HIDDEN = 0x2
EXECUTABLE_SUFFIXES = {".exe", ".bat", ".cmd", ".ps1", ".sh"}
SOURCE_SUFFIXES = {".py", ".toml", ".yaml", ".yml", ".cfg", ".ini"}

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


@dataclass
class Entry:
    path: Path
    is_dir: bool
    st: Optional[os.stat_result]

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)


def is_hidden(path: Path, st: Optional[os.stat_result] = None) -> bool:
    """Dot-names are hidden everywhere; on Windows the hidden attribute counts too."""
    if path.name.startswith("."):
        return True
    attrs = getattr(st, "st_file_attributes", 0) if st is not None else 0
    return bool(attrs & FILE_ATTRIBUTE_HIDDEN)


def format_permissions(mode: int) -> str:
    """e.g. ``rwxr-xr-x``"""
    return stat.filemode(mode)[1:]


def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{size} B"


def colorize_name(entry: Entry, label: Optional[str] = None) -> str:
    label = label or entry.name
    if entry.is_dir:
        return typer.style(label, fg="blue", bold=True)
    suffix = entry.path.suffix.lower()
    executable = entry.st is not None and bool(entry.st.st_mode & stat.S_IXUSR) and os.name != "nt"
    if suffix in EXECUTABLE_SUFFIXES or executable:
        return typer.style(label, fg="green")
    if suffix in SOURCE_SUFFIXES:
        return typer.style(label, fg="yellow")
    return label


def _make_entry(path: Path) -> Entry:
    try:
        st = path.stat()
    except OSError:
        # dangling symlink or vanished entry
        st = None
    is_dir = st is not None and stat.S_ISDIR(st.st_mode) and not path.is_symlink()
    return Entry(path=path, is_dir=is_dir, st=st)


def _keep(entry: Entry, options: TreeOptions) -> bool:
    if not options.show_hidden and is_hidden(entry.path, entry.st):
        return False
    if entry.is_dir:
        return True
    if options.directories_only:
        return False
    if options.pattern and options.pattern not in entry.name:
        return False
    return True


def sort_entries(entries: List[Entry], sort_by: SortBy) -> List[Entry]:
    by_name = sorted(entries, key=lambda e: e.name.lower())
    if sort_by is SortBy.TYPE:
        return sorted(by_name, key=lambda e: not e.is_dir)
    if sort_by is SortBy.SIZE:
        return sorted(by_name, key=lambda e: e.st.st_size if e.st else 0)
    if sort_by is SortBy.DATE:
        return sorted(by_name, key=lambda e: e.st.st_mtime if e.st else 0.0)
    return by_name


def list_children(directory: Path, options: TreeOptions) -> List[Entry]:
    try:
        children = [_make_entry(p) for p in directory.iterdir()]
    except OSError as e:
        logger.warning(f"Cannot read directory {directory}: {e}")
        return []
    return sort_entries([c for c in children if _keep(c, options)], options.sort_by)


def describe(entry: Entry, connector: str, options: TreeOptions, label: Optional[str] = None) -> str:
    line = connector + colorize_name(entry, label)
    if entry.st is not None:
        if options.show_permissions:
            line = f"{format_permissions(entry.st.st_mode)} {line}"
        if options.show_size and not entry.is_dir:
            line = f"{line} {typer.style(human_size(entry.st.st_size), fg='green')}"
        if options.show_date:
            line = f"{line} {typer.style(fmt_mtime(entry.st.st_mtime), fg='yellow')}"
    return line


def build_tree(options: TreeOptions) -> List[str]:
    """Return the tree as styled lines: the root first, then its descendants."""
    root = options.root
    if not root.exists():
        raise PathAccessError(root)

    # the root is shown as given, and followed even when it is a symlink
    root_entry = Entry(path=root, is_dir=root.is_dir(), st=_make_entry(root).st)
    lines = [describe(root_entry, "", options, label=str(root))]
    if root_entry.is_dir:
        _walk(root, "", 1, options, lines)
    return lines


def _walk(directory: Path, prefix: str, depth: int, options: TreeOptions, lines: List[str]) -> None:
    if options.max_depth is not None and depth > options.max_depth:
        return
    children = list_children(directory, options)
    for idx, child in enumerate(children):
        last = idx == len(children) - 1
        lines.append(describe(child, prefix + (LAST_BRANCH if last else BRANCH), options))
        if child.is_dir:
            _walk(child.path, prefix + (SPACE if last else PIPE), depth + 1, options, lines)


def render_tree(options: TreeOptions, out: Optional[IO[str]] = None, *, color: bool = True) -> int:
    """Print the tree and return the number of lines written."""
    lines = build_tree(options)
    try:
        for line in lines:
            typer.echo(line, file=out, color=color)
    except (OSError, ValueError) as e:
        raise RenderFailure(f"Failed to write tree: {e}") from e
    return len(lines)
