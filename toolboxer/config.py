from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
import yaml

from .models import Protocol


class StateFilter(str, Enum):
    ANY = "any"
    LISTENING = "listening"
    ESTABLISHED = "established"


class PortownOptions(BaseModel):
    """Filters applied while parsing the connection snapshot."""

    model_config = ConfigDict(frozen=True)

    # None keeps both protocols
    protocol: Optional[Protocol] = None
    state: StateFilter = StateFilter.ANY
    # Maximum number of rows kept after filtering
    depth: Optional[int] = Field(default=None, ge=0)


class SortBy(str, Enum):
    NAME = "name"
    TYPE = "type"
    SIZE = "size"
    DATE = "date"


class TreeOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    root: Path = Path(".")
    # Levels below the root; None is unlimited
    max_depth: Optional[int] = Field(default=None, ge=0)
    show_hidden: bool = False
    show_permissions: bool = False
    show_size: bool = False
    show_date: bool = False
    sort_by: SortBy = SortBy.NAME
    pattern: Optional[str] = None
    directories_only: bool = False


class Settings(BaseModel):
    """Tool settings, optionally loaded from a YAML file."""

    # Connection enumeration tool, run once per portown invocation. Rows must
    # follow the Windows "netstat -ano" layout (uppercase TCP/UDP, PID last).
    # Linux netstat prints lowercase protocols and uses -o for timers, so on
    # Linux this default yields no rows and must be replaced.
    netstat_command: List[str] = Field(default_factory=lambda: ["netstat", "-ano"])
    # Process identity strategy: auto picks one for the current platform
    lookup: Literal["auto", "win32", "query", "procfs"] = "auto"
    # Tabular query run once per PID; "{pid}" is substituted
    query_command: List[str] = Field(
        default_factory=lambda: [
            "wmic", "process", "where", "ProcessId={pid}",
            "get", "Name,ExecutablePath", "/format:csv",
        ]
    )
    color: bool = True
    # 256-color palette index used for every other table row
    stripe_color: int = Field(default=236, ge=0, le=255)


def load_settings(path: Optional[Path]) -> Settings:
    """Load settings from YAML path if provided, else return default Settings."""
    if not path:
        return Settings()
    p = Path(path)
    if not p.exists():
        return Settings()
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Settings(**data)
