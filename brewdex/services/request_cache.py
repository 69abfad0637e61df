"""Per-resource fetch bookkeeping that keeps at most one request in flight.

Each logical remote fetch is identified by a resource key (``"all"`` for the
whole catalog, ``"one:<id>"`` for a single beer). The cache is a tiny state
machine over those keys::

    absent --begin--> in-flight --complete--> done
      ^                  |                     |
      +------fail--------+                     |
    in-flight <----------------begin-----------+

A key that is already in flight is never fetched a second time; the caller is
told to reuse whatever the catalog currently holds instead. Entries are never
evicted for the lifetime of the process, only dropped by :meth:`RequestCache.clear`.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)

ALL_BEERS_KEY = "all"


def beer_key(beer_id: int) -> str:
    """Return the resource key of a single beer fetch."""

    return f"one:{beer_id}"


class FetchStatus(str, Enum):
    ABSENT = "absent"
    IN_FLIGHT = "in-flight"
    DONE = "done"


class RequestCache:
    """Track the fetch status of every resource key seen by the store."""

    def __init__(self) -> None:
        self._statuses: dict[str, FetchStatus] = {}

    def status(self, key: str) -> FetchStatus:
        return self._statuses.get(key, FetchStatus.ABSENT)

    def begin(self, key: str) -> bool:
        """Mark ``key`` as in flight.

        Returns ``False`` when a request for ``key`` is already outstanding, in
        which case the caller must not hit the network and should reuse the
        data it already has.
        """

        if self.status(key) is FetchStatus.IN_FLIGHT:
            logger.debug("Request for %s already in flight; reusing cached beers", key)
            return False
        self._statuses[key] = FetchStatus.IN_FLIGHT
        return True

    def complete(self, key: str) -> None:
        self._statuses[key] = FetchStatus.DONE

    def fail(self, key: str) -> None:
        """Forget ``key`` so the next fetch is attempted again."""

        self._statuses.pop(key, None)

    def clear(self) -> None:
        self._statuses.clear()

    def is_busy(self, uploading: bool = False) -> bool:
        """Return ``True`` while any key is in flight or an upload is running."""

        return uploading or any(
            status is FetchStatus.IN_FLIGHT for status in self._statuses.values()
        )

    @property
    def request_count(self) -> int:
        """Number of keys whose last fetch completed successfully.

        Despite the name this counts ``done`` entries, not outstanding ones;
        use :attr:`in_flight_count` for the latter.
        """

        return sum(1 for status in self._statuses.values() if status is FetchStatus.DONE)

    @property
    def in_flight_count(self) -> int:
        return sum(
            1 for status in self._statuses.values() if status is FetchStatus.IN_FLIGHT
        )

    def __len__(self) -> int:
        return len(self._statuses)


__all__ = [
    "ALL_BEERS_KEY",
    "FetchStatus",
    "RequestCache",
    "beer_key",
]
