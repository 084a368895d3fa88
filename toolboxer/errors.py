from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ToolboxerError(Exception):
    """Base class for errors that abort a toolboxer command."""


class CommandFailed(ToolboxerError):
    """The connection enumeration tool could not be started or exited non-zero."""

    def __init__(self, command: Sequence[str], stderr: Optional[str] = None, returncode: Optional[int] = None):
        self.command = list(command)
        self.stderr = (stderr or "").strip()
        self.returncode = returncode
        msg = f"{' '.join(self.command)} failed"
        if returncode is not None:
            msg += f" with exit code {returncode}"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)


class RenderFailure(ToolboxerError):
    """The report could not be written to the output stream."""


class PathAccessError(ToolboxerError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Failed to access path: {path}")


class LookupDegraded(Exception):
    """A single PID could not be identified.

    Raised by lookup strategies and absorbed by the resolver, which turns it
    into the Unknown identity. It never reaches the CLI.
    """

    def __init__(self, pid: str, reason: str):
        self.pid = pid
        self.reason = reason
        super().__init__(f"PID {pid}: {reason}")
