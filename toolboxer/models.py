from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


UNKNOWN = "Unknown"
UDP_STATE = "-"  # UDP has no connection state column


class Protocol(str, Enum):
    TCP = "TCP"
    UDP = "UDP"


class ConnectionRecord(BaseModel):
    """One row of the connection snapshot, in the order the OS tool emitted it."""

    model_config = ConfigDict(frozen=True)

    protocol: Protocol
    local_address: str
    foreign_address: str
    state: str  # e.g. LISTENING, ESTABLISHED, or "-" for UDP
    owner_pid: str  # kept as text so malformed values never fail the snapshot


class ProcessIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = UNKNOWN
    path: str = UNKNOWN

    @property
    def is_unknown(self) -> bool:
        return self.name == UNKNOWN and self.path == UNKNOWN


UNKNOWN_IDENTITY = ProcessIdentity(name=UNKNOWN, path=UNKNOWN)
