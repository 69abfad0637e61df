"""Shared fixtures wiring the beer store against in-process fake backends."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from brewdex.main import BeersApp, build_beers_app
from brewdex.services.beers_store import BeersStore
from brewdex.settings import AppSettings
from brewdex.storage import MemoryStorage
from tests.brewdex.support.fakes import (
    APP_BASE_URL,
    CATALOG_BASE_URL,
    FakeAuth,
    FakeBeersBackend,
    beer_payload,
)


@pytest.fixture
def app_settings() -> AppSettings:
    """Settings pointing every endpoint at the fake backends."""

    return AppSettings(
        catalog_api_base_url=CATALOG_BASE_URL,
        catalog_resource="beers",
        app_api_base_url=APP_BASE_URL,
        persistence_key="beersState",
    )


@pytest.fixture
def backend() -> FakeBeersBackend:
    """Catalog with a handful of beers whose names are out of id order."""

    return FakeBeersBackend(
        [
            beer_payload(1, "Buzz", abv=4.5),
            beer_payload(2, "Trashy Blonde", abv=4.1),
            beer_payload(3, "Berliner Weisse", abv=4.2),
            beer_payload(5, "Avery Brown Dredge", abv=7.2),
        ]
    )


@pytest.fixture
def auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def client(backend: FakeBeersBackend) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(backend)) as http_client:
        yield http_client


@pytest.fixture
def store(client: httpx.AsyncClient, app_settings: AppSettings) -> BeersStore:
    """A bare store without gateway, reconciler, or persistence attached."""

    return BeersStore(client, app_settings)


@pytest.fixture
def app(
    client: httpx.AsyncClient,
    auth: FakeAuth,
    storage: MemoryStorage,
    app_settings: AppSettings,
) -> BeersApp:
    """Fully wired components that have not been started yet."""

    return build_beers_app(
        client=client,
        auth=auth,
        storage=storage,
        app_settings=app_settings,
    )
