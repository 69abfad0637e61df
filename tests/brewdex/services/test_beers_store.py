"""Behavioural tests for the beer catalog store and its fetch path."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from brewdex.errors import NotFoundError
from brewdex.main import BeersApp
from brewdex.schemas.beer import Beer
from brewdex.services.beers_store import BEER_NOT_FOUND_MESSAGE, BeersStore
from brewdex.services.request_cache import ALL_BEERS_KEY, FetchStatus, beer_key
from brewdex.utils.parsing import INVALID_BEER_ID_MESSAGE
from tests.brewdex.support.fakes import FakeBeersBackend, beer_payload


@pytest.mark.asyncio
async def test_load_beers_merges_sorted_catalog_and_records_quota(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    beers = await store.load_beers()

    assert [beer.name for beer in beers] == [
        "Avery Brown Dredge",
        "Berliner Weisse",
        "Buzz",
        "Trashy Blonde",
    ]
    assert store.remaining_requests == 3599
    assert store.request_count == 1
    assert store.loading is False
    assert store.error_text is None
    assert backend.catalog_paths() == ["/v2/beers"]


@pytest.mark.asyncio
async def test_concurrent_loads_for_same_key_hit_transport_once(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    """The second overlapping load observes the in-flight key and reuses data."""

    backend.delay = 0.01

    first, second = await asyncio.gather(store.load_beers(), store.load_beers())

    assert len(backend.catalog_requests()) == 1
    assert second == [] or second == first
    assert {beer.id for beer in store.beers} == {1, 2, 3, 5}


@pytest.mark.asyncio
async def test_distinct_keys_fetch_concurrently(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.delay = 0.01

    loaded = await asyncio.gather(store.load_beer(1), store.load_beer(3))

    assert [beer.id for beer in loaded] == [1, 3]
    assert sorted(backend.catalog_paths()) == ["/v2/beers/1", "/v2/beers/3"]
    assert [beer.name for beer in store.beers] == ["Berliner Weisse", "Buzz"]


@pytest.mark.asyncio
async def test_loading_flag_is_set_while_request_in_flight(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.delay = 0.05

    task = asyncio.create_task(store.load_beers())
    await asyncio.sleep(0.01)

    assert store.loading is True
    assert store.in_flight_count == 1
    assert store.requests.status(ALL_BEERS_KEY) is FetchStatus.IN_FLIGHT

    await task
    assert store.loading is False


@pytest.mark.asyncio
async def test_failed_fetch_records_error_and_stays_retryable(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.status_overrides["/v2/beers"] = 500

    assert await store.load_beers() == []
    assert store.error_text == "API returned unexpected response code: 500"
    assert store.requests.status(ALL_BEERS_KEY) is FetchStatus.ABSENT
    assert store.beers == []

    del backend.status_overrides["/v2/beers"]
    await store.load_beers()

    assert len(backend.catalog_requests()) == 2
    assert store.error_text is None
    assert len(store.beers) == 4


@pytest.mark.asyncio
async def test_network_failure_is_recorded_not_raised(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.network_failures.add("/v2/beers")

    assert await store.load_beers() == []
    assert store.error_text is not None
    assert store.error_text.startswith("Network error while loading beers")
    assert store.requests.status(ALL_BEERS_KEY) is FetchStatus.ABSENT


@pytest.mark.asyncio
async def test_malformed_body_is_treated_as_failure(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.raw_bodies["/v2/beers"] = b"not json at all"

    assert await store.load_beers() == []
    assert store.error_text
    assert store.requests.status(ALL_BEERS_KEY) is FetchStatus.ABSENT


@pytest.mark.asyncio
async def test_invalid_beer_documents_are_treated_as_failure(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.raw_bodies["/v2/beers"] = b'[{"id": "x"}]'

    assert await store.load_beers() == []
    assert store.error_text is not None
    assert store.error_text.startswith("API returned malformed beers")


@pytest.mark.asyncio
async def test_missing_quota_header_keeps_previous_quota(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    store.apply(remaining_requests=12)
    backend.remaining = None

    await store.load_beers()

    assert store.remaining_requests == 12


@pytest.mark.asyncio
async def test_load_beer_short_circuits_when_cached(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    cached = Beer(id=7, name="Punk IPA")
    store.apply(beers=[cached])

    beer = await store.load_beer(7)

    assert beer is cached
    assert backend.requests == []


@pytest.mark.asyncio
async def test_load_beer_fetches_and_merges_missing_beer(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    store.apply(beers=[Beer(id=2, name="Trashy Blonde")])

    beer = await store.load_beer(5)

    assert beer.name == "Avery Brown Dredge"
    assert [b.id for b in store.beers] == [5, 2]
    assert store.requests.status(beer_key(5)) is FetchStatus.DONE
    assert backend.catalog_paths() == ["/v2/beers/5"]


@pytest.mark.asyncio
async def test_load_beer_raises_not_found_for_unknown_id(store: BeersStore) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        await store.load_beer(404)

    assert excinfo.value.message == BEER_NOT_FOUND_MESSAGE
    assert store.requests.status(beer_key(404)) is FetchStatus.ABSENT


@pytest.mark.asyncio
async def test_load_beer_rejects_response_for_a_different_beer(
    store: BeersStore, backend: FakeBeersBackend
) -> None:
    backend.raw_bodies["/v2/beers/7"] = json.dumps([beer_payload(3, "Berliner Weisse")]).encode()

    with pytest.raises(NotFoundError) as excinfo:
        await store.load_beer(7)

    assert excinfo.value.message == BEER_NOT_FOUND_MESSAGE
    assert store.find_beer(7) is None
    assert store.beers == []


@pytest.mark.asyncio
async def test_select_beer_ignores_response_for_a_different_beer(
    app: BeersApp, backend: FakeBeersBackend
) -> None:
    backend.raw_bodies["/v2/beers/7"] = json.dumps([beer_payload(3, "Berliner Weisse")]).encode()
    store = app.store

    await store.select_beer(7)
    await app.settle()

    assert store.selected_beer is None
    assert store.error_text == BEER_NOT_FOUND_MESSAGE


@pytest.mark.asyncio
async def test_select_beer_sets_selection(app: BeersApp) -> None:
    store = app.store

    await store.select_beer("5")
    await app.settle()

    assert store.selected_beer is not None
    assert store.selected_beer.id == 5
    assert store.error_text is None


@pytest.mark.asyncio
async def test_select_beer_with_non_numeric_id_sets_error(
    app: BeersApp, backend: FakeBeersBackend
) -> None:
    store = app.store
    await store.select_beer(1)

    await store.select_beer("abc")
    await app.settle()

    assert store.error_text == INVALID_BEER_ID_MESSAGE
    assert store.selected_beer is not None
    assert store.selected_beer.id == 1
    assert backend.catalog_paths() == ["/v2/beers/1"]


@pytest.mark.asyncio
async def test_select_beer_logs_error_type(
    app: BeersApp, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR, logger="brewdex.services.beers_store"):
        await app.store.select_beer("abc")
        await app.store.select_beer(42)
        await app.settle()

    assert "select_beer invalid_argument" in caplog.text
    assert "select_beer not_found" in caplog.text


@pytest.mark.asyncio
async def test_select_beer_missing_remotely_sets_not_found_error(app: BeersApp) -> None:
    store = app.store

    await store.select_beer(42)
    await app.settle()

    assert store.error_text == BEER_NOT_FOUND_MESSAGE
    assert store.selected_beer is None


@pytest.mark.asyncio
async def test_select_beer_refreshes_beers_info(
    app: BeersApp, backend: FakeBeersBackend
) -> None:
    store = app.store

    await store.select_beer("abc")
    await app.settle()

    assert len(backend.info_requests()) == 1
    assert store.beers_info is not None
    assert store.beers_info.likes_for(1) == 4


@pytest.mark.asyncio
async def test_select_beer_survives_beers_info_failure(
    app: BeersApp, backend: FakeBeersBackend
) -> None:
    backend.status_overrides["/app/v1/beers-info"] = 503
    store = app.store

    await store.select_beer(3)
    await app.settle()

    assert store.selected_beer is not None
    assert store.selected_beer.id == 3
    assert store.error_text is not None
    assert store.error_text.startswith("refreshBeersInfo error:")


@pytest.mark.asyncio
async def test_deselect_beer_clears_selection(app: BeersApp) -> None:
    store = app.store
    await store.select_beer(2)

    store.deselect_beer()

    assert store.selected_beer is None


@pytest.mark.asyncio
async def test_wipe_keeps_user_preferences(store: BeersStore) -> None:
    await store.load_beers()
    store.apply(liked_beer_ids=[1, 3], comments_map={"1": "Great"})

    store.wipe()

    assert store.beers == []
    assert store.remaining_requests == 0
    assert store.request_count == 0
    assert len(store.requests) == 0
    assert store.liked_beer_ids == [1, 3]
    assert store.comments_map == {"1": "Great"}


@pytest.mark.asyncio
async def test_apply_notifies_listeners_until_unsubscribed(store: BeersStore) -> None:
    seen: list[frozenset[str]] = []
    unsubscribe = store.subscribe(seen.append)

    store.apply(error_text="boom", selected_beer=None)
    unsubscribe()
    store.apply(error_text=None)

    assert seen == [frozenset({"error_text", "selected_beer"})]


@pytest.mark.asyncio
async def test_apply_rejects_unknown_fields(store: BeersStore) -> None:
    with pytest.raises(AttributeError):
        store.apply(favourite_colour="amber")


@pytest.mark.asyncio
async def test_liked_beers_view_follows_catalog(store: BeersStore) -> None:
    store.apply(
        beers=[Beer(id=1, name="Buzz"), Beer(id=2, name="Trashy Blonde")],
        liked_beer_ids=[2, 9],
    )

    assert [beer.id for beer in store.liked_beers] == [2]
    assert store.is_liked_beer(2) is True
    assert store.is_liked_beer(9) is False
