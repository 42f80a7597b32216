from __future__ import annotations

import asyncio

import pytest

from tests.fakes import FakeSearchProvider
from trip_planner.core.exceptions import TransportError
from trip_planner.services.geocoding import SearchHit
from trip_planner.services.suggestions import (
    SEARCH_UNAVAILABLE_MESSAGE,
    SuggestionCache,
    SuggestionFetcher,
    SuggestionState,
)


def _fetcher(provider: FakeSearchProvider, **kwargs) -> tuple[SuggestionFetcher, list[SuggestionState]]:
    published: list[SuggestionState] = []
    fetcher = SuggestionFetcher(provider, debounce_ms=150, min_chars=2, limit=8, on_change=published.append, **kwargs)
    return fetcher, published


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", " ", "a", "  p  "])
async def test_short_query_publishes_empty_list_without_network(search_provider, text):
    fetcher, published = _fetcher(search_provider)

    fetcher.on_query_changed(text)
    await asyncio.sleep(0.2)

    assert search_provider.calls == []
    assert fetcher.suggestions == ()
    assert fetcher.error is None
    assert fetcher.is_loading is False
    assert published == [SuggestionState()]


@pytest.mark.asyncio
async def test_short_query_clears_previous_error(search_provider):
    search_provider.error = TransportError()
    fetcher, _ = _fetcher(search_provider)
    fetcher.on_query_changed("Tunis")
    await fetcher.drain()
    assert fetcher.error == SEARCH_UNAVAILABLE_MESSAGE

    fetcher.on_query_changed("T")

    assert fetcher.error is None
    assert fetcher.suggestions == ()


@pytest.mark.asyncio
async def test_successful_fetch_publishes_loading_then_results(search_provider):
    fetcher, published = _fetcher(search_provider)

    fetcher.on_query_changed("Sousse")
    await fetcher.drain()

    assert search_provider.calls == [("Sousse", 8)]
    assert [state.is_loading for state in published] == [True, False]
    suggestion = fetcher.suggestions[0]
    assert suggestion.primary_label == "Sousse"
    assert suggestion.display_label == "Sousse, Sousse Governorate, Tunisia"
    assert suggestion.coordinate.lat == pytest.approx(35.8256)
    assert suggestion.category == "boundary"
    assert fetcher.error is None


@pytest.mark.asyncio
async def test_request_is_capped_at_limit():
    provider = FakeSearchProvider()
    fetcher, _ = _fetcher(provider)
    fetcher.limit = 1

    fetcher.on_query_changed("Paris")
    await fetcher.drain()

    assert provider.calls == [("Paris", 1)]
    assert len(fetcher.suggestions) == 1


@pytest.mark.asyncio
async def test_repeated_normalized_query_is_served_from_cache(search_provider):
    fetcher, published = _fetcher(search_provider)
    fetcher.on_query_changed("Paris")
    await fetcher.drain()
    first = fetcher.suggestions
    published.clear()

    fetcher.on_query_changed("  PARIS ")
    await fetcher.drain()

    assert len(search_provider.calls) == 1
    assert fetcher.suggestions == first
    assert published == [SuggestionState(suggestions=first)]
    assert all(not state.is_loading for state in published)


@pytest.mark.asyncio
async def test_shared_cache_is_consulted_before_network(search_provider):
    cache = SuggestionCache(capacity=50)
    warm, _ = _fetcher(search_provider, cache=cache)
    warm.on_query_changed("Tunis")
    await warm.drain()

    cold, _ = _fetcher(search_provider, cache=cache)
    cold.on_query_changed("tunis")
    await cold.drain()

    assert len(search_provider.calls) == 1
    assert cold.suggestions == warm.suggestions


@pytest.mark.asyncio
async def test_typing_within_debounce_window_makes_one_call(search_provider):
    fetcher, _ = _fetcher(search_provider)

    fetcher.on_query_changed("par")
    await asyncio.sleep(0.05)
    fetcher.on_query_changed("pari")
    await fetcher.drain()

    assert search_provider.calls == [("pari", 8)]


@pytest.mark.asyncio
async def test_in_flight_request_is_cancelled_and_never_published():
    provider = FakeSearchProvider()
    provider.delays = {"par": 0.5, "pari": 0.01}
    fetcher, published = _fetcher(provider)

    fetcher.on_query_changed("par")
    await asyncio.sleep(0.2)
    assert fetcher.is_loading is True

    fetcher.on_query_changed("pari")
    await fetcher.drain()
    await asyncio.sleep(0.5)

    assert [query for query, _ in provider.calls] == ["par", "pari"]
    assert provider.cancelled == ["par"]
    assert fetcher.error is None
    assert all(state.error is None for state in published)
    final = published[-1]
    assert final.is_loading is False
    assert {item.id for item in final.suggestions} == {"201", "202"}
    assert "par" not in fetcher.cache
    assert "pari" in fetcher.cache


@pytest.mark.asyncio
async def test_cache_hit_supersedes_slower_in_flight_request():
    provider = FakeSearchProvider()
    fetcher, published = _fetcher(provider)
    fetcher.on_query_changed("Sousse")
    await fetcher.drain()
    sousse = fetcher.suggestions

    provider.delay = 0.5
    fetcher.on_query_changed("Tunis")
    await asyncio.sleep(0.2)
    fetcher.on_query_changed("sousse")
    await fetcher.drain()
    await asyncio.sleep(0.5)

    assert provider.cancelled == ["Tunis"]
    assert fetcher.suggestions == sousse
    assert published[-1] == SuggestionState(suggestions=sousse)


@pytest.mark.asyncio
async def test_transport_failure_publishes_empty_list_with_error(search_provider):
    search_provider.error = TransportError("Search provider returned an error status")
    fetcher, published = _fetcher(search_provider)

    fetcher.on_query_changed("Tunis")
    await fetcher.drain()

    assert fetcher.suggestions == ()
    assert fetcher.is_loading is False
    assert fetcher.error == SEARCH_UNAVAILABLE_MESSAGE
    assert published[-1] == SuggestionState(error=SEARCH_UNAVAILABLE_MESSAGE)


@pytest.mark.asyncio
async def test_failures_are_not_cached(search_provider):
    search_provider.error = TransportError()
    fetcher, _ = _fetcher(search_provider)
    fetcher.on_query_changed("Tunis")
    await fetcher.drain()

    search_provider.error = None
    fetcher.on_query_changed("Tunis ")
    await fetcher.drain()

    assert len(search_provider.calls) == 2
    assert fetcher.error is None
    assert fetcher.suggestions


@pytest.mark.asyncio
async def test_letter_by_letter_typing_fires_once_after_quiet_period(search_provider):
    fetcher, _ = _fetcher(search_provider)
    loop = asyncio.get_running_loop()
    text = "Sidi Bou Said"

    for end in range(1, len(text) + 1):
        fetcher.on_query_changed(text[:end])
        last_keystroke = loop.time()
        await asyncio.sleep(0.05)
    await fetcher.drain()

    assert search_provider.calls == [("Sidi Bou Said", 8)]
    assert search_provider.call_times[0] - last_keystroke >= 0.14
    assert fetcher.suggestions[0].primary_label == "Sidi Bou Said"


@pytest.mark.asyncio
async def test_close_before_timer_fires_skips_the_request(search_provider):
    fetcher, published = _fetcher(search_provider)

    fetcher.on_query_changed("Tunis")
    fetcher.close()
    await asyncio.sleep(0.2)

    assert search_provider.calls == []
    assert published == []


@pytest.mark.asyncio
async def test_close_cancels_outstanding_request_and_stops_publishing():
    provider = FakeSearchProvider(delay=0.3)
    fetcher, published = _fetcher(provider)

    fetcher.on_query_changed("Tunis")
    await asyncio.sleep(0.2)
    fetcher.close()
    await asyncio.sleep(0.3)
    fetcher.on_query_changed("Sousse")
    await asyncio.sleep(0.2)

    assert provider.cancelled == ["Tunis"]
    assert len(provider.calls) == 1
    assert [state.is_loading for state in published] == [True]
    assert fetcher.closed is True


@pytest.mark.asyncio
async def test_clear_drops_pending_query(search_provider):
    fetcher, _ = _fetcher(search_provider)
    fetcher.on_query_changed("Tunis")
    await fetcher.drain()

    fetcher.on_query_changed("Sousse")
    fetcher.clear()
    await asyncio.sleep(0.2)

    assert len(search_provider.calls) == 1
    assert fetcher.suggestions == ()
    assert fetcher.find("101") is None


@pytest.mark.asyncio
async def test_out_of_range_hit_is_reported_as_unavailable():
    provider = FakeSearchProvider(hits=[SearchHit("1", "Nowhere, Nowhere Land", 123.0, 10.0, "place")])
    fetcher, published = _fetcher(provider)

    fetcher.on_query_changed("Nowhere")
    await fetcher.drain()

    assert fetcher.state == SuggestionState(error=SEARCH_UNAVAILABLE_MESSAGE)
    assert published[-1].is_loading is False
    assert "nowhere" not in fetcher.cache
