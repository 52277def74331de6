"""
RPC availability cache.

Remembers destinations whose linked server reported RPC out as disabled,
so later contexts can start in OPENQUERY-only mode. Advisory only: a
stale entry costs one extra retry, never a wrong result.
"""

from __future__ import annotations

import logging
import threading


logger = logging.getLogger(__name__)


class RpcAvailabilityCache:
    """Set of destinations (lower-cased host names) known to lack RPC out."""

    def __init__(self):
        self._unavailable: set[str] = set()
        self._lock = threading.Lock()

    def is_unavailable(self, destination: str | None) -> bool:
        if not destination:
            return False
        with self._lock:
            return destination.lower() in self._unavailable

    def mark_unavailable(self, destination: str | None) -> bool:
        """
        Record a destination.

        Returns:
            True the first time a destination is recorded, False afterwards
        """
        if not destination:
            return False
        key = destination.lower()
        with self._lock:
            if key in self._unavailable:
                return False
            self._unavailable.add(key)
        logger.debug("Cached RPC unavailability for %s", key)
        return True

    def clear(self) -> None:
        with self._lock:
            self._unavailable.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._unavailable)


_shared_cache = RpcAvailabilityCache()


def shared_rpc_cache() -> RpcAvailabilityCache:
    """Process-wide cache used when ``rpc_cache_scope`` is ``"process"``."""
    return _shared_cache
