from __future__ import annotations

from abc import ABC, abstractmethod
import csv
import ctypes
import io
import logging
import ntpath
import os
import platform
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..config import Settings
from ..errors import LookupDegraded
from ..models import ProcessIdentity, UNKNOWN
from .privilege import enable_debug_privilege

logger = logging.getLogger(__name__)

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
MAX_IMAGE_PATH = 32768


def _require_numeric(pid: str) -> int:
    if not pid.isdigit():
        raise LookupDegraded(pid, "not a numeric PID")
    return int(pid)


class ProcessLookup(ABC):
    """One way of turning a PID into a ProcessIdentity.

    ``lookup`` raises LookupDegraded when the process cannot be identified;
    that covers missing tools, permission errors and processes that exited
    since the snapshot was taken.
    """

    name = "base"

    @abstractmethod
    def lookup(self, pid: str) -> ProcessIdentity:
        ...


class QueryToolLookup(ProcessLookup):
    """Ask a system-management tool about one PID and read its CSV table.

    Columns are found by header name, so tools that order them differently
    (wmic, ``Get-CimInstance | ConvertTo-Csv``) work with the same parser.
    """

    name = "query"

    def __init__(self, command: Sequence[str]):
        self.command = list(command)

    def _build_command(self, pid: int) -> List[str]:
        return [part.replace("{pid}", str(pid)) for part in self.command]

    def lookup(self, pid: str) -> ProcessIdentity:
        num = _require_numeric(pid)
        cmd = self._build_command(num)
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise LookupDegraded(pid, f"{cmd[0]} could not be started: {e}") from e
        if proc.returncode != 0:
            raise LookupDegraded(pid, proc.stderr.strip() or f"{cmd[0]} exited with code {proc.returncode}")
        return parse_query_table(pid, proc.stdout)


def _find_column(header: List[str], wanted: str) -> Optional[int]:
    for idx, field in enumerate(header):
        if field.strip().lower() == wanted:
            return idx
    return None


def parse_query_table(pid: str, text: str) -> ProcessIdentity:
    """Extract Name and ExecutablePath from a CSV result with a header row."""
    # wmic pads its output with blank lines
    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]

    # PowerShell 5.1 ConvertTo-Csv puts a "#TYPE ..." line above the header
    for header_pos, header in enumerate(rows):
        name_idx = _find_column(header, "name")
        path_idx = _find_column(header, "executablepath")
        if name_idx is not None or path_idx is not None:
            break
    else:
        raise LookupDegraded(pid, "name/executablepath columns not found")

    if header_pos + 1 >= len(rows):
        raise LookupDegraded(pid, "no process row returned")
    row = rows[header_pos + 1]

    def cell(idx: Optional[int]) -> str:
        if idx is None or idx >= len(row):
            return ""
        return row[idx].strip()

    name = cell(name_idx)
    path = cell(path_idx)
    if not name and path:
        name = ntpath.basename(path)
    return ProcessIdentity(name=name or UNKNOWN, path=path or UNKNOWN)


class Win32Lookup(ProcessLookup):
    """Direct process introspection through the Win32 API.

    Opens the process with PROCESS_QUERY_LIMITED_INFORMATION only and reads
    its image path. Before the first open it tries to enable
    SeDebugPrivilege, which lets the limited open succeed for more system
    processes; the outcome of that attempt is not checked.
    """

    name = "win32"

    def __init__(self, elevate: Callable[[], bool] = enable_debug_privilege):
        self._elevate = elevate
        self._elevation_attempted = False
        self.privileged = False

    def _ensure_privilege(self) -> None:
        if self._elevation_attempted:
            return
        self._elevation_attempted = True
        self.privileged = self._elevate()

    def lookup(self, pid: str) -> ProcessIdentity:
        num = _require_numeric(pid)
        if platform.system() != "Windows":
            raise LookupDegraded(pid, "Win32 API not available on this platform")
        self._ensure_privilege()
        path = self._image_path(pid, num)
        return ProcessIdentity(name=ntpath.basename(path) or UNKNOWN, path=path)

    def _image_path(self, pid: str, num: int) -> str:
        import ctypes.wintypes as wt

        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        kernel32.OpenProcess.restype = wt.HANDLE
        kernel32.OpenProcess.argtypes = [wt.DWORD, wt.BOOL, wt.DWORD]
        kernel32.QueryFullProcessImageNameW.argtypes = [wt.HANDLE, wt.DWORD, wt.LPWSTR, ctypes.POINTER(wt.DWORD)]
        kernel32.CloseHandle.argtypes = [wt.HANDLE]

        handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, num)
        if not handle:
            raise LookupDegraded(pid, f"OpenProcess failed (error {ctypes.get_last_error()})")
        try:
            buf = ctypes.create_unicode_buffer(MAX_IMAGE_PATH)
            size = wt.DWORD(MAX_IMAGE_PATH)
            if not kernel32.QueryFullProcessImageNameW(handle, 0, buf, ctypes.byref(size)):
                raise LookupDegraded(pid, f"QueryFullProcessImageNameW failed (error {ctypes.get_last_error()})")
            return buf.value[: size.value]
        finally:
            kernel32.CloseHandle(handle)


class ProcfsLookup(ProcessLookup):
    """Linux process introspection through /proc/<pid>."""

    name = "procfs"

    def __init__(self, root: Path = Path("/proc")):
        self.root = root

    def lookup(self, pid: str) -> ProcessIdentity:
        num = _require_numeric(pid)
        base = self.root / str(num)
        try:
            path = os.readlink(base / "exe")
        except OSError as e:
            raise LookupDegraded(pid, f"cannot read executable link: {e}") from e
        try:
            name = (base / "comm").read_text(encoding="utf-8").strip()
        except OSError:
            name = ""
        return ProcessIdentity(name=name or os.path.basename(path) or UNKNOWN, path=path)


class FallbackLookup(ProcessLookup):
    """Try several strategies in order; degrade only if all of them fail."""

    name = "fallback"

    def __init__(self, lookups: Sequence[ProcessLookup]):
        self.lookups = list(lookups)

    def lookup(self, pid: str) -> ProcessIdentity:
        reasons: List[str] = []
        for strategy in self.lookups:
            try:
                return strategy.lookup(pid)
            except LookupDegraded as e:
                logger.debug(f"{strategy.name} lookup for PID {pid} failed: {e.reason}")
                reasons.append(f"{strategy.name}: {e.reason}")
        raise LookupDegraded(pid, "; ".join(reasons) or "no lookup strategy configured")


def default_lookup(settings: Settings) -> ProcessLookup:
    """Build the lookup strategy named in settings ("auto" picks by platform)."""
    choice = settings.lookup
    if choice == "win32":
        return Win32Lookup()
    if choice == "query":
        return QueryToolLookup(settings.query_command)
    if choice == "procfs":
        return ProcfsLookup()

    if platform.system() == "Windows":
        return FallbackLookup([Win32Lookup(), QueryToolLookup(settings.query_command)])
    return ProcfsLookup()
