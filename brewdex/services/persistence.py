"""Rehydrate and mirror the persisted part of the beer state.

The persisted document lives under a single storage key and holds one entry
per persisted field. Each field declares how it is encoded (list, map, object,
or scalar) through a :class:`PersistedField` so that loading and saving stay
symmetric and a single broken field cannot poison the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError

from brewdex.schemas.beer import Beer, BeersInfo
from brewdex.services.beers_store import BeersStore
from brewdex.storage import KeyValueStorage

logger = logging.getLogger(__name__)

FieldKind = Literal["list", "map", "object", "scalar"]


@dataclass(frozen=True)
class PersistedField:
    """Serialisation contract for one persisted store attribute."""

    attribute: str
    document_key: str
    kind: FieldKind
    serialize: Callable[[Any], Any]
    deserialize: Callable[[Any], Any]


def _require(payload: Any, expected: type, kind: str) -> Any:
    if not isinstance(payload, expected):
        raise TypeError(f"Expected persisted {kind}, got {type(payload).__name__}")
    return payload


def _serialize_beers(beers: list[Beer]) -> list[dict[str, Any]]:
    return [beer.model_dump(mode="json") for beer in beers]


def _deserialize_beers(payload: Any) -> list[Beer]:
    return [Beer.model_validate(item) for item in _require(payload, list, "list")]


def _deserialize_remaining_requests(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise TypeError(f"Expected persisted integer, got {type(payload).__name__}")
    return payload


def _deserialize_liked_ids(payload: Any) -> list[int]:
    ids: list[int] = []
    for item in _require(payload, list, "list"):
        if isinstance(item, bool) or not isinstance(item, int):
            raise TypeError(f"Expected integer beer id, got {item!r}")
        if item not in ids:
            ids.append(item)
    return ids


def _deserialize_comments(payload: Any) -> dict[str, str]:
    comments = _require(payload, dict, "map")
    return {str(key): str(value) for key, value in comments.items() if value}


def _serialize_beers_info(info: BeersInfo | None) -> dict[str, Any] | None:
    return info.model_dump(mode="json", by_alias=True) if info is not None else None


def _deserialize_beers_info(payload: Any) -> BeersInfo | None:
    if payload is None:
        return None
    return BeersInfo.model_validate(payload)


PERSISTED_FIELDS: tuple[PersistedField, ...] = (
    PersistedField("beers", "beers", "list", _serialize_beers, _deserialize_beers),
    PersistedField(
        "remaining_requests",
        "remainingRequests",
        "scalar",
        int,
        _deserialize_remaining_requests,
    ),
    PersistedField("liked_beer_ids", "likedBeerIds", "list", list, _deserialize_liked_ids),
    PersistedField("comments_map", "commentsMap", "map", dict, _deserialize_comments),
    PersistedField(
        "beers_info", "beersInfo", "object", _serialize_beers_info, _deserialize_beers_info
    ),
)

PERSISTED_ATTRIBUTES: frozenset[str] = frozenset(field.attribute for field in PERSISTED_FIELDS)


class StatePersistence:
    """Load the persisted fields at startup and save them after each mutation."""

    def __init__(self, store: BeersStore, storage: KeyValueStorage, *, key: str) -> None:
        self._store = store
        self._storage = storage
        self._key = key
        self._unsubscribe: Callable[[], None] | None = None
        self._save_task: asyncio.Task[Any] | None = None

    def snapshot(self) -> dict[str, Any]:
        """Return the JSON document describing the current persisted state."""

        return {
            field.document_key: field.serialize(getattr(self._store, field.attribute))
            for field in PERSISTED_FIELDS
        }

    async def rehydrate(self) -> None:
        """Restore persisted fields into the store and mark it rehydrated.

        The store is marked rehydrated even when loading fails so the UI never
        waits forever on a broken storage backend.
        """

        try:
            document = await self._storage.get_json(self._key)
        except Exception as exc:  # pragma: no cover - storage backend issues
            logger.warning("Failed to rehydrate beer state from %s: %s", self._key, exc)
            self._store.apply(is_rehydrated=True)
            return

        changes: dict[str, Any] = {}
        if isinstance(document, dict):
            for field in PERSISTED_FIELDS:
                if field.document_key not in document:
                    continue
                try:
                    changes[field.attribute] = field.deserialize(document[field.document_key])
                except (TypeError, ValueError, ValidationError) as exc:
                    logger.warning(
                        "Skipping persisted %s field %s: %s", field.kind, field.document_key, exc
                    )
        elif document is not None:
            logger.warning(
                "Persisted beer state under %s is a %s, expected a mapping",
                self._key,
                type(document).__name__,
            )

        changes["is_rehydrated"] = True
        self._store.apply(**changes)
        logger.info("Successfully rehydrated beer state (%d fields)", len(changes) - 1)

    def start(self) -> None:
        """Mirror every future mutation of a persisted field to storage."""

        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, changed: frozenset[str]) -> None:
        if not changed & PERSISTED_ATTRIBUTES:
            return
        # A save that has not started yet will pick up this change as well.
        if self._save_task is not None and not self._save_task.done():
            return
        self._save_task = self._store.spawn(self._save_soon(), name="persist-beer-state")

    async def _save_soon(self) -> None:
        await asyncio.sleep(0)
        self._save_task = None
        await self.flush()

    async def flush(self) -> None:
        """Write the current snapshot to storage immediately."""

        await self._storage.set_json(self._key, self.snapshot())


__all__ = [
    "PERSISTED_ATTRIBUTES",
    "PERSISTED_FIELDS",
    "PersistedField",
    "StatePersistence",
]
