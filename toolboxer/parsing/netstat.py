from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence

from ..config import PortownOptions, StateFilter
from ..errors import CommandFailed
from ..models import ConnectionRecord, Protocol, UDP_STATE

logger = logging.getLogger(__name__)

LISTENING = "LISTENING"
ESTABLISHED = "ESTABLISHED"

# proto local foreign state pid
TCP_MIN_FIELDS = 5
# proto local foreign pid
UDP_MIN_FIELDS = 4


def run_netstat(command: Sequence[str]) -> str:
    """Run the connection enumeration tool once and return its stdout."""
    try:
        proc = subprocess.run(
            list(command),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise CommandFailed(command, stderr=str(e)) from e

    if proc.returncode != 0:
        raise CommandFailed(command, stderr=proc.stderr, returncode=proc.returncode)
    return proc.stdout


def _line_protocol(line: str) -> Optional[Protocol]:
    # Header and banner lines carry no protocol marker and drop out here
    if "TCP" in line:
        return Protocol.TCP
    if "UDP" in line:
        return Protocol.UDP
    return None


def parse_line(line: str) -> Optional[ConnectionRecord]:
    """Parse one netstat row.

    TCP rows look like ``TCP  0.0.0.0:135  0.0.0.0:0  LISTENING  672``;
    UDP rows have no state column: ``UDP  0.0.0.0:500  *:*  1288``.
    Returns None for anything that is not a complete row.
    """
    protocol = _line_protocol(line)
    if protocol is None:
        return None

    parts = line.split()
    if protocol is Protocol.TCP:
        if len(parts) < TCP_MIN_FIELDS:
            return None
        state, pid = parts[3], parts[4]
    else:
        if len(parts) < UDP_MIN_FIELDS:
            return None
        state, pid = UDP_STATE, parts[3]

    return ConnectionRecord(
        protocol=protocol,
        local_address=parts[1],
        foreign_address=parts[2],
        state=state,
        owner_pid=pid,
    )


def _keep(record: ConnectionRecord, options: PortownOptions) -> bool:
    if options.protocol is not None and record.protocol is not options.protocol:
        return False
    if options.state is StateFilter.LISTENING and record.state != LISTENING:
        return False
    if options.state is StateFilter.ESTABLISHED and record.state != ESTABLISHED:
        return False
    return True


def parse_netstat(text: str, options: PortownOptions) -> List[ConnectionRecord]:
    """Parse raw netstat output into filtered records, preserving input order.

    Filters apply in this order: protocol, state, then the ``depth`` row cap.
    """
    records: List[ConnectionRecord] = []
    skipped = 0
    for line in text.splitlines():
        if options.depth is not None and len(records) >= options.depth:
            break
        record = parse_line(line)
        if record is None:
            skipped += 1
            continue
        if not _keep(record, options):
            continue
        records.append(record)

    logger.debug(f"Parsed {len(records)} connection rows ({skipped} non-row lines skipped)")
    return records


def collect_connections(options: PortownOptions, command: Sequence[str]) -> List[ConnectionRecord]:
    return parse_netstat(run_netstat(command), options)
