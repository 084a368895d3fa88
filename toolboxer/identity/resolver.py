from __future__ import annotations

import logging
import time
from typing import Dict, Iterable

from ..errors import LookupDegraded
from ..models import ProcessIdentity, UNKNOWN_IDENTITY
from ..utils.time import elapsed_ms
from .lookups import ProcessLookup

logger = logging.getLogger(__name__)


class ProcessResolver:
    """Resolve PIDs to process identities, looking each PID up at most once.

    The cache lives as long as the resolver. Failed lookups are cached as
    the Unknown identity as well, so an unresolvable PID is not retried.
    Keep one instance around to reuse results across several snapshots.
    """

    def __init__(self, lookup: ProcessLookup):
        self.lookup = lookup
        self._cache: Dict[str, ProcessIdentity] = {}

    def __contains__(self, pid: str) -> bool:
        return pid in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def resolve(self, pid: str) -> ProcessIdentity:
        cached = self._cache.get(pid)
        if cached is not None:
            return cached

        started = time.monotonic()
        try:
            identity = self.lookup.lookup(pid)
        except (LookupDegraded, OSError) as e:
            logger.debug(f"PID {pid} degraded to Unknown: {e}")
            identity = UNKNOWN_IDENTITY
        logger.debug(f"lookup {self.lookup.name} pid={pid} duration={elapsed_ms(started)}ms")

        self._cache[pid] = identity
        return identity

    def resolve_all(self, pids: Iterable[str]) -> Dict[str, ProcessIdentity]:
        """Resolve distinct PIDs one after another, in first-seen order."""
        resolved: Dict[str, ProcessIdentity] = {}
        for pid in pids:
            if pid in resolved:
                continue
            resolved[pid] = self.resolve(pid)
        return resolved
