"""In-memory beer catalog with request de-duplication and observable mutations.

:class:`BeersStore` owns the authoritative catalog together with the
selection, error, preference, and comment state that the rendering layer
observes. Every mutation flows through :meth:`BeersStore.apply`, which assigns
the new values and then notifies subscribed listeners with the set of changed
field names. The persistence mirror and the liked-beers reconciler are such
listeners.

All state transitions happen synchronously between ``await`` points, so the
store needs no locking as long as it is only used from one event loop.
Fire-and-forget work (aggregate info refreshes, profile pushes, persistence
saves) is launched with :meth:`BeersStore.spawn` and can be awaited as a whole
through :meth:`BeersStore.drain`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from brewdex.errors import BrewdexError, NotFoundError, TransportError
from brewdex.schemas.beer import Beer, BeersInfo
from brewdex.services.merge import merge_beers
from brewdex.services.request_cache import ALL_BEERS_KEY, RequestCache, beer_key
from brewdex.settings import AppSettings
from brewdex.utils.parsing import parse_beer_id, parse_remaining_requests

logger = logging.getLogger(__name__)

BEER_NOT_FOUND_MESSAGE = "Beer not found or currently unavailable!"

StateListener = Callable[[frozenset[str]], None]
InfoRefresher = Callable[[], Awaitable[None]]

_BEER_LIST_ADAPTER: TypeAdapter[list[Beer]] = TypeAdapter(list[Beer])

STATE_FIELDS: frozenset[str] = frozenset(
    {
        "beers",
        "remaining_requests",
        "selected_beer",
        "error_text",
        "is_rehydrated",
        "liked_beer_ids",
        "comments_map",
        "is_uploading",
        "beers_info",
    }
)


class BeersStore:
    """Reactive container for the beer catalog and the user's beer preferences."""

    def __init__(self, client: httpx.AsyncClient, app_settings: AppSettings) -> None:
        self._client = client
        self._settings = app_settings
        self._requests = RequestCache()
        self._listeners: list[StateListener] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self.info_refresher: InfoRefresher | None = None

        self.beers: list[Beer] = []
        self.remaining_requests: int = 0
        self.selected_beer: Beer | None = None
        self.error_text: str | None = None
        self.is_rehydrated: bool = False
        self.liked_beer_ids: list[int] = []
        self.comments_map: dict[str, str] = {}
        self.is_uploading: bool = False
        self.beers_info: BeersInfo | None = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply(self, **changes: Any) -> None:
        """Assign state fields and notify every listener about the change."""

        unknown = set(changes) - STATE_FIELDS
        if unknown:
            raise AttributeError(f"Unknown beer state fields: {sorted(unknown)}")
        for name, value in changes.items():
            setattr(self, name, value)
        changed = frozenset(changes)
        for listener in list(self._listeners):
            listener(changed)

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------
    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        """Run ``coro`` in the background and keep track of it until it finishes."""

        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed", task.get_name(), exc_info=exc
            )

    async def drain(self) -> None:
        """Wait until no background task spawned through :meth:`spawn` remains."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def loading(self) -> bool:
        """``True`` while a catalog fetch is in flight or the profile uploads."""

        return self._requests.is_busy(self.is_uploading)

    @property
    def request_count(self) -> int:
        """Number of resource keys whose fetch completed (see :class:`RequestCache`)."""

        return self._requests.request_count

    @property
    def in_flight_count(self) -> int:
        return self._requests.in_flight_count

    @property
    def requests(self) -> RequestCache:
        return self._requests

    @property
    def liked_beers(self) -> list[Beer]:
        liked = set(self.liked_beer_ids)
        return [beer for beer in self.beers if beer.id in liked]

    def is_liked_beer(self, beer_id: int) -> bool:
        return any(beer.id == beer_id for beer in self.liked_beers)

    def find_beer(self, beer_id: int) -> Beer | None:
        return next((beer for beer in self.beers if beer.id == beer_id), None)

    def comment_for(self, beer_id: int) -> str | None:
        return self.comments_map.get(str(beer_id))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def load_beers(self) -> list[Beer]:
        """Fetch the whole collection and merge it into the catalog."""

        fetched = await self._fetch_beers()
        if fetched:
            self.apply(beers=merge_beers(self.beers, fetched))
        return self.beers

    async def load_beer(self, beer_id: int) -> Beer:
        """Return the beer with ``beer_id``, fetching it only when not yet known."""

        beer = self.find_beer(beer_id)
        if beer is not None:
            return beer

        fetched = await self._fetch_beers(beer_id)
        beer = next((candidate for candidate in fetched if candidate.id == beer_id), None)
        if beer is None:
            if fetched:
                logger.warning(
                    "Catalog answered beer %s with ids %s", beer_id, [b.id for b in fetched]
                )
            raise NotFoundError(BEER_NOT_FOUND_MESSAGE)

        self.apply(beers=merge_beers(self.beers, [beer]))
        return beer

    async def select_beer(self, raw_id: object) -> None:
        """Select a beer by a raw (usually URL supplied) id.

        Never raises: invalid ids, unknown beers, and transport failures end up
        in :attr:`error_text` while the previous selection stays in place.
        """

        self.refresh_info_in_background()
        self.dismiss_error()

        try:
            beer_id = parse_beer_id(raw_id)
            beer = await self.load_beer(beer_id)
        except BrewdexError as exc:
            logger.error("select_beer %s: %s", exc.error_type.value, exc.message)
            self.apply(error_text=exc.message)
            return

        self.apply(selected_beer=beer)

    def deselect_beer(self) -> None:
        self.apply(selected_beer=None)

    def dismiss_error(self) -> None:
        self.apply(error_text=None)

    def wipe(self) -> None:
        """Forget the catalog and its fetch bookkeeping.

        Liked beers and comments are user data and survive a wipe.
        """

        self._requests.clear()
        self.apply(beers=[], remaining_requests=0)

    def refresh_info_in_background(self) -> asyncio.Task[Any] | None:
        if self.info_refresher is None:
            return None
        return self.spawn(self.info_refresher(), name="refresh-beers-info")

    # ------------------------------------------------------------------
    # Fetch path
    # ------------------------------------------------------------------
    async def _fetch_beers(self, beer_id: int | None = None) -> list[Beer]:
        """Fetch the collection or one beer, recording failures as error state.

        Returns an empty list when the request failed; errors never propagate
        past this method.
        """

        self.dismiss_error()

        key = ALL_BEERS_KEY if beer_id is None else beer_key(beer_id)
        if not self._requests.begin(key):
            if beer_id is None:
                return list(self.beers)
            return [beer for beer in self.beers if beer.id == beer_id]

        url = self._settings.beers_url if beer_id is None else self._settings.beer_url(beer_id)
        try:
            response = await self._client.get(url)
            if response.status_code != httpx.codes.OK:
                raise TransportError(
                    f"API returned unexpected response code: {response.status_code}",
                    status_code=response.status_code,
                )
            beers = self._parse_beers(response.json())
        except (httpx.HTTPError, TransportError, ValueError) as exc:
            message = _error_message(exc)
            logger.error("Fetching beers from %s failed: %s", url, message)
            self._requests.fail(key)
            self.apply(error_text=message)
            return []

        remaining = parse_remaining_requests(response.headers.get(self._settings.quota_header))
        if remaining is None:
            logger.debug("Response from %s carried no usable quota header", url)
        else:
            self.apply(remaining_requests=remaining)

        self._requests.complete(key)
        return beers

    @staticmethod
    def _parse_beers(payload: Any) -> list[Beer]:
        if isinstance(payload, dict):
            payload = [payload]
        return _BEER_LIST_ADAPTER.validate_python(payload)


def _error_message(exc: Exception) -> str:
    """Return a human readable message for ``exc``."""

    if isinstance(exc, BrewdexError):
        return exc.message
    if isinstance(exc, ValidationError):
        return f"API returned malformed beers: {exc.error_count()} validation error(s)"
    if isinstance(exc, httpx.HTTPError):
        detail = str(exc) or type(exc).__name__
        return f"Network error while loading beers: {detail}"
    return str(exc) or type(exc).__name__


__all__ = [
    "BEER_NOT_FOUND_MESSAGE",
    "BeersStore",
    "STATE_FIELDS",
]
