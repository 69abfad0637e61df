"""Application lifecycle for the beer state store.

``beers_state`` wires the store, gateway, reconciler, and persistence mirror
together, rehydrates persisted state, and tears everything down again. The
store is an explicitly constructed instance owned by whoever enters the
context manager; nothing happens at import time.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from brewdex.services.beers_store import BeersStore
from brewdex.services.persistence import StatePersistence
from brewdex.services.profile_sync import AuthProvider, ProfileSyncGateway
from brewdex.services.reconciler import LikedBeersReconciler
from brewdex.settings import AppSettings, get_settings
from brewdex.storage import KeyValueStorage, close_redis, get_storage

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(app_settings: AppSettings | None = None) -> None:
    """Configure root logging using the level from the settings."""

    resolved = app_settings or get_settings()
    logging.basicConfig(level=resolved.log_level_numeric, format=LOG_FORMAT)


def validate_environment(app_settings: AppSettings | None = None) -> None:
    """Log warnings for optional configuration that was left unset."""

    resolved = app_settings or get_settings()
    warnings = resolved.optional_config_warnings()
    if not warnings:
        return

    logger.warning("=" * 60)
    logger.warning("Environment Configuration Warnings:")
    for warning in warnings:
        logger.warning("  • %s", warning)
    logger.warning("=" * 60)


@dataclass
class BeersApp:
    """Fully wired beer state components sharing one store."""

    store: BeersStore
    gateway: ProfileSyncGateway
    reconciler: LikedBeersReconciler
    persistence: StatePersistence

    async def settle(self) -> None:
        """Wait for every background fetch, push, and save to finish."""

        await self.store.drain()


def build_beers_app(
    *,
    client: httpx.AsyncClient,
    auth: AuthProvider,
    storage: KeyValueStorage,
    app_settings: AppSettings,
) -> BeersApp:
    """Construct the components without starting any of them."""

    store = BeersStore(client, app_settings)
    gateway = ProfileSyncGateway(store, client=client, auth=auth, app_settings=app_settings)
    store.info_refresher = gateway.refresh_beers_info
    reconciler = LikedBeersReconciler(store, gateway)
    persistence = StatePersistence(store, storage, key=app_settings.persistence_key)
    return BeersApp(
        store=store,
        gateway=gateway,
        reconciler=reconciler,
        persistence=persistence,
    )


@asynccontextmanager
async def beers_state(
    *,
    auth: AuthProvider,
    app_settings: AppSettings | None = None,
    storage: KeyValueStorage | None = None,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[BeersApp]:
    """Run the beer state for the duration of the ``async with`` block.

    Startup rehydrates persisted fields before the mirror and the reconciler
    begin watching the store. Shutdown stops both watchers, waits for pending
    background work, and writes a final snapshot. Clients and storage created
    here are closed here; injected ones are left to their owner.
    """

    resolved = app_settings or get_settings()
    owns_client = client is None
    owns_storage = storage is None
    http_client = client or httpx.AsyncClient(timeout=resolved.http_timeout_seconds)
    resolved_storage = storage or await get_storage(resolved)

    app = build_beers_app(
        client=http_client,
        auth=auth,
        storage=resolved_storage,
        app_settings=resolved,
    )
    try:
        await app.persistence.rehydrate()
        app.persistence.start()
        app.reconciler.start()
        yield app
    finally:
        app.reconciler.stop()
        app.persistence.stop()
        await app.store.drain()
        await app.persistence.flush()
        if owns_client:
            await http_client.aclose()
        if owns_storage:
            await close_redis()
        logger.info("Beer state shut down")


__all__ = [
    "BeersApp",
    "build_beers_app",
    "beers_state",
    "configure_logging",
    "validate_environment",
]
