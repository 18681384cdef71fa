from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from discovery.config import SearchConfig
from discovery.corpus.entity_store import EntityStore
from discovery.corpus.providers import CorpusProviderError
from discovery.listing.sorting import SortDirection
from discovery.reconciliation.controller import (
    FETCH_ERROR_MESSAGE,
    ReconciliationController,
    SearchState,
)
from discovery.search.filter_model import FilterModel
from discovery.search.filter_store import InMemoryFilterStore

from .doubles import ScriptedProvider, make_restaurant

FAST = SearchConfig(debounce_seconds=0.02, request_timeout=1.0, loading_indicator_delay=0.05)


def _ids(entities):
    return [e.id for e in entities]


def _echo(criteria):
    return [make_restaurant("srv-" + criteria.get("name", ""), "Server result")]


def _controller(provider, corpus, store=None, config=FAST):
    return ReconciliationController(
        provider,
        store if store is not None else InMemoryFilterStore(),
        EntityStore(corpus),
        config,
    )


async def _until(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


async def _settle(controller):
    await asyncio.wait_for(controller.wait_idle(), timeout=2.0)


# ── Debounce & dispatch ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_local_preview_is_shown_immediately(corpus):
    provider = ScriptedProvider(_echo)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))

    assert _ids(controller.result_set) == ["c"]
    assert controller.state is SearchState.DEBOUNCING
    assert provider.calls == []
    controller.close()


@pytest.mark.asyncio
async def test_burst_of_changes_issues_one_query(corpus):
    provider = ScriptedProvider(_echo)
    controller = _controller(provider, corpus)

    for name in ("t", "th", "tha"):
        controller.update(FilterModel(name_query=name))
    await _settle(controller)

    assert provider.calls == [{"name": "tha"}]


@pytest.mark.asyncio
async def test_unchanged_filters_do_nothing(corpus):
    provider = ScriptedProvider(_echo)
    controller = _controller(provider, corpus)

    controller.update(FilterModel())

    assert controller.state is SearchState.IDLE
    assert provider.calls == []


@pytest.mark.asyncio
async def test_canonical_result_replaces_preview(corpus):
    provider = ScriptedProvider(_echo)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))
    await _settle(controller)

    assert _ids(controller.result_set) == ["srv-thai"]
    assert _ids(controller.canonical_result) == ["srv-thai"]
    assert _ids(controller.local_preview) == ["c"]
    assert controller.state is SearchState.IDLE
    assert not controller.loading
    assert controller.error is None


@pytest.mark.asyncio
async def test_filter_store_is_written_when_query_is_issued(corpus):
    store = InMemoryFilterStore()
    controller = _controller(ScriptedProvider(_echo), corpus, store)

    controller.update(FilterModel(name_query="thai", min_rating=4))
    assert store.writes == 0
    await _settle(controller)

    assert store.read() == {"name": "thai", "rating": "4"}
    assert store.writes == 1


@pytest.mark.asyncio
async def test_initial_filters_come_from_the_store(corpus):
    store = InMemoryFilterStore({"cuisines": "Thai", "rating": "4"})
    controller = _controller(ScriptedProvider(_echo), corpus, store)

    assert controller.filters == FilterModel(cuisines={"Thai"}, min_rating=4)
    assert _ids(controller.result_set) == ["a"]


# ── Stale responses ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_stale_response_is_discarded_and_successor_dispatched(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="a"))
    await _until(lambda: len(provider.calls) == 1)
    controller.update(FilterModel(name_query="b"))
    await asyncio.sleep(0.06)

    # Second query waits behind the first one
    assert len(provider.calls) == 1
    assert controller.state is SearchState.IN_FLIGHT

    provider.release(0)
    await _until(lambda: len(provider.calls) == 2)
    assert _ids(controller.result_set) == ["b", "d"]

    provider.release(1)
    await _settle(controller)
    assert provider.calls == [{"name": "a"}, {"name": "b"}]
    assert _ids(controller.result_set) == ["srv-b"]


@pytest.mark.asyncio
async def test_later_change_replaces_pending_successor(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="a"))
    await _until(lambda: len(provider.calls) == 1)
    controller.update(FilterModel(name_query="b"))
    await asyncio.sleep(0.06)
    controller.update(FilterModel(name_query="c"))
    await asyncio.sleep(0.06)

    provider.release(0)
    await _until(lambda: len(provider.calls) == 2)
    provider.release(1)
    await _settle(controller)

    assert provider.calls == [{"name": "a"}, {"name": "c"}]
    assert _ids(controller.result_set) == ["srv-c"]


@pytest.mark.asyncio
async def test_new_change_drops_pending_successor_before_it_is_sent(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    config = SearchConfig(debounce_seconds=0.1, request_timeout=2.0, loading_indicator_delay=0.05)
    controller = _controller(provider, corpus, config=config)

    controller.update(FilterModel(name_query="a"))
    await _until(lambda: len(provider.calls) == 1)
    controller.update(FilterModel(name_query="b"))
    await asyncio.sleep(0.15)
    assert controller.state is SearchState.IN_FLIGHT

    # "b" is queued; "c" arrives before the first query answers
    controller.update(FilterModel(name_query="c"))
    provider.release(0)
    await _until(lambda: not controller.loading)

    assert provider.calls == [{"name": "a"}]
    assert controller.state is SearchState.DEBOUNCING

    await _until(lambda: len(provider.calls) == 2)
    provider.release(1)
    await _settle(controller)
    assert provider.calls == [{"name": "a"}, {"name": "c"}]
    assert _ids(controller.result_set) == ["srv-c"]


@pytest.mark.asyncio
async def test_response_for_superseded_filters_is_ignored_during_debounce(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    slow_debounce = SearchConfig(debounce_seconds=0.2, request_timeout=1.0, loading_indicator_delay=0.05)
    controller = _controller(provider, corpus, config=slow_debounce)

    controller.update(FilterModel(name_query="a"))
    await _until(lambda: len(provider.calls) == 1)
    controller.update(FilterModel(name_query="b"))
    provider.release(0)
    await _until(lambda: not controller.loading)

    assert controller.state is SearchState.DEBOUNCING
    assert _ids(controller.result_set) == ["b", "d"]

    await _until(lambda: len(provider.calls) == 2)
    provider.release(1)
    await _settle(controller)
    assert _ids(controller.result_set) == ["srv-b"]


# ── Failures ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_failure_keeps_results_and_surfaces_error(corpus):
    provider = ScriptedProvider(_echo)
    provider.error = CorpusProviderError("Search failed with status 500")
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))
    await _settle(controller)

    assert controller.error == "Search failed with status 500"
    assert _ids(controller.result_set) == ["c"]

    provider.error = None
    controller.update(FilterModel(name_query="sushi"))
    assert controller.error is None


@pytest.mark.asyncio
async def test_failure_without_message_uses_default(corpus):
    provider = ScriptedProvider(_echo)
    provider.error = RuntimeError()
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))
    await _settle(controller)

    assert controller.error == FETCH_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_timeout_is_a_failure(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    config = SearchConfig(debounce_seconds=0.01, request_timeout=0.05, loading_indicator_delay=1.0)
    controller = _controller(provider, corpus, config=config)

    controller.update(FilterModel(name_query="thai"))
    await _settle(controller)

    assert controller.error == FETCH_ERROR_MESSAGE
    assert _ids(controller.result_set) == ["c"]


@pytest.mark.asyncio
async def test_retry_reissues_the_current_query(corpus):
    provider = ScriptedProvider(_echo)
    provider.error = CorpusProviderError("boom")
    controller = _controller(provider, corpus)
    controller.update(FilterModel(name_query="thai"))
    await _settle(controller)

    provider.error = None
    controller.retry()
    await _settle(controller)

    assert controller.error is None
    assert provider.calls == [{"name": "thai"}, {"name": "thai"}]
    assert _ids(controller.result_set) == ["srv-thai"]


# ── Default filters ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_clearing_filters_bypasses_the_network(corpus):
    provider = ScriptedProvider(_echo)
    store = InMemoryFilterStore({"name": "thai"})
    controller = _controller(provider, corpus, store)
    assert _ids(controller.result_set) == ["c"]

    controller.clear_filters()

    assert _ids(controller.result_set) == ["a", "b", "c", "d", "e"]
    assert _ids(controller.canonical_result) == ["a", "b", "c", "d", "e"]
    assert controller.state is SearchState.IDLE
    assert store.read() == {}
    assert provider.calls == []


@pytest.mark.asyncio
async def test_clearing_filters_makes_in_flight_query_stale(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))
    await _until(lambda: len(provider.calls) == 1)
    controller.clear_filters()
    provider.release(0)
    await _settle(controller)

    assert _ids(controller.result_set) == ["a", "b", "c", "d", "e"]


# ── Entity Store refresh ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_refresh_loads_the_corpus(corpus):
    provider = ScriptedProvider(lambda criteria: list(corpus))
    entity_store = EntityStore()
    controller = ReconciliationController(provider, InMemoryFilterStore(), entity_store, FAST)

    await controller.refresh()

    assert entity_store.loaded
    assert len(entity_store) == 5
    assert _ids(controller.result_set) == ["a", "b", "c", "d", "e"]
    assert provider.calls == [{}]
    assert controller.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_refresh_with_active_filters_queries_them(corpus):
    provider = ScriptedProvider(lambda criteria: list(corpus) if not criteria else _echo(criteria))
    store = InMemoryFilterStore({"name": "thai"})
    controller = ReconciliationController(provider, store, EntityStore(), FAST)
    assert controller.result_set == []

    await controller.refresh()
    assert _ids(controller.result_set) == ["c"]
    await _settle(controller)

    assert provider.calls == [{}, {"name": "thai"}]
    assert _ids(controller.result_set) == ["srv-thai"]


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_corpus(corpus):
    provider = ScriptedProvider()
    provider.error = CorpusProviderError("Search request failed: connection refused")
    entity_store = EntityStore(corpus)
    controller = ReconciliationController(provider, InMemoryFilterStore(), entity_store, FAST)

    await controller.refresh()

    assert len(entity_store) == 5
    assert entity_store.version == 0
    assert controller.error == "Search request failed: connection refused"


# ── Presentation state ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_loading_indicator_appears_after_delay(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    controller = _controller(provider, corpus)

    controller.update(FilterModel(name_query="thai"))
    await _until(lambda: len(provider.calls) == 1)
    assert controller.loading
    assert not controller.loading_visible

    await _until(lambda: controller.loading_visible)
    provider.release(0)
    await _settle(controller)
    assert not controller.loading_visible


@pytest.mark.asyncio
async def test_loading_indicator_clears_when_response_lands_during_debounce(corpus):
    provider = ScriptedProvider(_echo, hold=True)
    config = SearchConfig(debounce_seconds=0.1, request_timeout=2.0, loading_indicator_delay=0.02)
    controller = _controller(provider, corpus, config=config)

    controller.update(FilterModel(name_query="a"))
    await _until(lambda: controller.loading_visible)
    controller.update(FilterModel(name_query="b"))
    provider.release(0)
    await _until(lambda: not controller.loading)

    assert controller.state is SearchState.DEBOUNCING
    assert not controller.loading_visible

    await _until(lambda: len(provider.calls) == 2)
    provider.release(1)
    await _settle(controller)
    assert not controller.loading_visible


@pytest.mark.asyncio
async def test_page_clamps_when_results_shrink():
    corpus = [make_restaurant(str(i), f"R{i}", (), 5.0 if i <= 15 else 1.0) for i in range(1, 24)]
    controller = _controller(ScriptedProvider(_echo), corpus)

    controller.go_to_page(3)
    assert controller.page_state.page_index == 3

    controller.update(FilterModel(min_rating=4))
    assert len(controller.result_set) == 15
    assert controller.page_state.page_index == 2
    controller.close()


@pytest.mark.asyncio
async def test_page_size_change_resets_page(corpus):
    controller = _controller(ScriptedProvider(_echo), corpus)
    controller.set_page_size(2)
    controller.go_to_page(3)
    assert _ids(controller.view().page.items) == ["e"]

    controller.set_page_size(5)
    assert controller.page_state.page_index == 1


@pytest.mark.asyncio
async def test_view_sorts_and_summarizes_results(corpus):
    controller = _controller(ScriptedProvider(_echo), corpus)

    controller.sort_by("rating")
    view = controller.view()
    assert _ids(view.results) == ["e", "c", "d", "a", "b"]
    assert view.sort.direction is SortDirection.ASC

    controller.sort_by("rating")
    view = controller.view()
    assert _ids(view.results) == ["b", "a", "d", "c", "e"]
    assert view.page.total_items == 5
    assert view.distribution.counts == {1: 0, 2: 0, 3: 1, 4: 3, 5: 0}
    assert view.distribution.total == 4
    assert view.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_provider_receives_criteria_for_current_filters(corpus):
    provider = AsyncMock()
    provider.query.return_value = [corpus[0]]
    controller = _controller(provider, corpus)

    controller.update(FilterModel(cuisines={"Thai", "Sushi"}, min_rating=4))
    await _settle(controller)

    provider.query.assert_awaited_once_with(
        {"cuisines": "Sushi,Thai", "cuisineLogic": "OR", "minRating": "4"}
    )
    assert _ids(controller.result_set) == ["a"]
