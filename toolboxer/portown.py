from __future__ import annotations

import logging
import time
from typing import IO, List, Optional

from .config import PortownOptions, Settings
from .identity.lookups import default_lookup
from .identity.resolver import ProcessResolver
from .models import ConnectionRecord
from .parsing.netstat import collect_connections
from .report.table import render_table
from .utils.time import elapsed_ms

logger = logging.getLogger(__name__)


def execute(
    options: PortownOptions,
    settings: Optional[Settings] = None,
    *,
    resolver: Optional[ProcessResolver] = None,
    out: Optional[IO[str]] = None,
) -> List[ConnectionRecord]:
    """Take one connection snapshot, resolve owners and print the table.

    Pass an existing ``resolver`` to reuse its cache across snapshots.
    Returns the rendered records.
    """
    settings = settings or Settings()
    started = time.monotonic()
    status = "failed"
    records: List[ConnectionRecord] = []
    try:
        records = collect_connections(options, settings.netstat_command)

        if resolver is None:
            resolver = ProcessResolver(default_lookup(settings))
        identities = resolver.resolve_all(r.owner_pid for r in records)
        degraded = sum(1 for identity in identities.values() if identity.is_unknown)
        if degraded:
            logger.debug(f"{degraded} of {len(identities)} PIDs could not be identified")

        render_table(
            records,
            identities,
            out,
            color=settings.color,
            stripe_color=settings.stripe_color,
        )
        status = "success"
        return records
    finally:
        logger.debug(f"command=portown duration={elapsed_ms(started)}ms status={status} rows={len(records)}")
