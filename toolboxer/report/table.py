from __future__ import annotations

from typing import Dict, IO, List, Mapping, Optional, Sequence, Tuple

import typer

from ..errors import RenderFailure
from ..models import ConnectionRecord, ProcessIdentity, Protocol, UNKNOWN_IDENTITY


# (title, width); the last column is not padded
COLUMNS: List[Tuple[str, Optional[int]]] = [
    ("PROTOCOL", 10),
    ("LOCAL ADDRESS", 25),
    ("FOREIGN ADDRESS", 25),
    ("STATE", 15),
    ("PID", 8),
    ("PROCESS", 20),
    ("PATH", None),
]
RULE_WIDTH = 120
DEFAULT_COLOR = "white"

PROTOCOL_COLORS: Dict[Protocol, str] = {
    Protocol.TCP: "green",
    Protocol.UDP: "yellow",
}

STATE_COLORS: Dict[str, str] = {
    "LISTENING": "yellow",
    "ESTABLISHED": "green",
    # closing
    "CLOSE_WAIT": "red",
    "CLOSING": "red",
    "LAST_ACK": "red",
    "CLOSED": "red",
    # waiting
    "TIME_WAIT": "magenta",
    "FIN_WAIT_1": "magenta",
    "FIN_WAIT_2": "magenta",
    "SYN_SENT": "magenta",
    "SYN_RECEIVED": "magenta",
}


def protocol_color(protocol) -> str:
    return PROTOCOL_COLORS.get(protocol, DEFAULT_COLOR)


def state_color(state: str) -> str:
    return STATE_COLORS.get(state, DEFAULT_COLOR)


def _cell(value: str, width: Optional[int]) -> str:
    if width is None:
        return value
    return f"{value:<{width}} "


def format_header() -> str:
    titles = "".join(_cell(title, width) for title, width in COLUMNS)
    return typer.style(titles, fg=DEFAULT_COLOR, bold=True)


def format_row(
    record: ConnectionRecord,
    identity: ProcessIdentity,
    bg: Optional[int] = None,
) -> str:
    """Format one connection row; every field carries its own reset code."""
    fields = [
        (record.protocol.value, protocol_color(record.protocol), True),
        (record.local_address, "cyan", False),
        (record.foreign_address, "blue", False),
        (record.state, state_color(record.state), False),
        (record.owner_pid, DEFAULT_COLOR, False),
        (identity.name, "yellow", False),
        (identity.path, DEFAULT_COLOR, False),
    ]
    parts = []
    for (value, fg, bold), (_, width) in zip(fields, COLUMNS):
        parts.append(typer.style(_cell(value, width), fg=fg, bg=bg, bold=bold))
    return "".join(parts)


def render_table(
    records: Sequence[ConnectionRecord],
    identities: Mapping[str, ProcessIdentity],
    out: Optional[IO[str]] = None,
    *,
    color: bool = True,
    stripe_color: int = 236,
) -> None:
    """Write the connection table, one row per record in the given order.

    Odd rows get ``stripe_color`` as background. With ``color=False`` all
    ANSI styling is stripped. Write errors, including a closed stream, raise
    RenderFailure; rows already written stay written.
    """
    lines = ["", format_header(), "─" * RULE_WIDTH]
    for idx, record in enumerate(records):
        identity = identities.get(record.owner_pid, UNKNOWN_IDENTITY)
        bg = stripe_color if idx % 2 else None
        lines.append(format_row(record, identity, bg=bg))

    try:
        for line in lines:
            typer.echo(line, file=out, color=color)
    except (OSError, ValueError) as e:
        raise RenderFailure(f"Failed to write table: {e}") from e
