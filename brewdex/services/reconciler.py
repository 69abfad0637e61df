"""Keep the liked beer ids and the in-memory catalog eventually consistent."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from brewdex.errors import BrewdexError
from brewdex.services.beers_store import BeersStore
from brewdex.services.profile_sync import ProfileSyncGateway

logger = logging.getLogger(__name__)

_WATCHED_FIELDS = frozenset({"beers", "liked_beer_ids"})


class LikedBeersReconciler:
    """Lazily fetch liked beers that are missing from the catalog.

    Once started the reconciler re-evaluates after every change to the catalog
    or to the liked ids. When fewer liked beers are present than ids are
    liked, it loads every liked id concurrently; ids already in the catalog
    short-circuit inside :meth:`BeersStore.load_beer` without network I/O.
    Individual failures are already recorded by the store and do not cancel
    sibling loads.
    """

    def __init__(self, store: BeersStore, gateway: ProfileSyncGateway) -> None:
        self._store = store
        self._gateway = gateway
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> asyncio.Task[Any] | None:
        """Subscribe to store changes and run a first reconciliation pass."""

        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)
        return self.reconcile()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, changed: frozenset[str]) -> None:
        if changed & _WATCHED_FIELDS:
            self.reconcile()

    def reconcile(self) -> asyncio.Task[Any] | None:
        """Schedule loads for liked beers unless every one is already present."""

        liked_ids = list(self._store.liked_beer_ids)
        if len(liked_ids) == len(self._store.liked_beers):
            return None

        logger.debug("Reconciling %d liked beer ids", len(liked_ids))
        return self._store.spawn(self._load_liked(liked_ids), name="load-liked-beers")

    async def _load_liked(self, beer_ids: Sequence[int]) -> None:
        results = await asyncio.gather(
            *(self._store.load_beer(beer_id) for beer_id in beer_ids),
            return_exceptions=True,
        )
        for beer_id, result in zip(beer_ids, results):
            if isinstance(result, BrewdexError):
                logger.debug("Liked beer %s could not be loaded: %s", beer_id, result)
            elif isinstance(result, BaseException):
                raise result

    def toggle_like(self, beer_id: int) -> asyncio.Task[Any]:
        """Like ``beer_id`` or, when it is already liked, remove every occurrence.

        The updated preferences are pushed to the user profile afterwards.
        """

        liked_ids = list(self._store.liked_beer_ids)
        if beer_id in liked_ids:
            liked_ids = [liked for liked in liked_ids if liked != beer_id]
        else:
            liked_ids.append(beer_id)
        self._store.apply(liked_beer_ids=liked_ids)

        return self._gateway.push_in_background()


__all__ = ["LikedBeersReconciler"]
