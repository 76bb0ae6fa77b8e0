"""Tests for the debounced search coordinator."""

import asyncio
from unittest.mock import MagicMock

import pytest

from pageflux.core.errors import FetchError
from pageflux.core.models import ContentItem
from pageflux.core.pagination import ItemSelectionSink, LoadingPhase, PaginationEngine
from pageflux.core.search import DEFAULT_DEBOUNCE_DELAY, SearchCoordinator

DELAY = 0.05


@pytest.fixture
def coordinator(engine):
    return SearchCoordinator(engine, debounce_delay=DELAY)


def test_default_debounce_delay_is_200ms(engine):
    assert DEFAULT_DEBOUNCE_DELAY == 0.2
    assert SearchCoordinator(engine).debounce_delay == 0.2


def test_initial_state(coordinator):
    assert coordinator.search_query == ""
    assert not coordinator.is_searching
    assert not coordinator.has_queried
    assert not coordinator.is_empty
    assert coordinator.sections == []
    assert coordinator.loading is LoadingPhase.IDLE


class TestImmediateSearch:

    @pytest.mark.asyncio
    async def test_trims_and_loads_first_page(self, coordinator, source, make_page):
        source.queue(make_page("Results", total_pages=None))

        await coordinator.immediate_search("  podcast  ")

        assert source.calls == [("podcast", 1)]
        assert coordinator.search_query == "podcast"
        assert coordinator.has_queried
        assert not coordinator.is_searching
        assert [s.name for s in coordinator.sections] == ["Results"]

    @pytest.mark.asyncio
    async def test_is_searching_while_in_flight(self, coordinator, source, make_page):
        gate = asyncio.Event()
        source.queue(make_page("Results"), gate)

        task = asyncio.create_task(coordinator.immediate_search("q"))
        await asyncio.sleep(0.01)
        assert coordinator.is_searching
        assert coordinator.loading is LoadingPhase.FULL_SCREEN

        gate.set()
        await task
        assert not coordinator.is_searching

    @pytest.mark.asyncio
    async def test_newer_search_wins_over_slower_older_one(self, coordinator, source, make_page):
        gate = asyncio.Event()
        source.queue(make_page("Old results"), gate)
        source.queue(make_page("New results"))

        older = asyncio.create_task(coordinator.immediate_search("old"))
        await asyncio.sleep(0.01)
        await coordinator.immediate_search("new")
        gate.set()
        await older

        assert coordinator.search_query == "new"
        assert [s.name for s in coordinator.sections] == ["New results"]
        assert not coordinator.is_searching

    @pytest.mark.asyncio
    async def test_empty_result_is_empty_state(self, coordinator, source, make_page):
        source.queue(make_page(total_pages=None))

        await coordinator.immediate_search("nothing matches")

        assert coordinator.is_empty

    @pytest.mark.asyncio
    async def test_blank_query_is_a_real_search(self, coordinator, source, make_page):
        source.queue(make_page("Everything"))

        await coordinator.immediate_search("   ")

        assert source.calls == [("", 1)]
        assert coordinator.search_query == ""
        assert coordinator.has_queried

    @pytest.mark.asyncio
    async def test_single_page_search_has_nothing_more(self, coordinator, source, make_page):
        source.queue(make_page("Results", total_pages=None))

        await coordinator.immediate_search("q")
        await coordinator.load_next()

        assert source.calls == [("q", 1)]
        assert not coordinator.engine.can_load_more


class TestDebouncedSearch:

    @pytest.mark.asyncio
    async def test_delays_the_search(self, coordinator, source):
        task = coordinator.debounced_search("test")

        await asyncio.sleep(0)
        assert source.calls == []
        assert coordinator.has_pending_debounce

        await task
        assert source.calls == [("test", 1)]
        assert not coordinator.has_pending_debounce

    @pytest.mark.asyncio
    async def test_rapid_typing_results_in_one_fetch_for_last_query(self, coordinator, source):
        first = coordinator.debounced_search("a")
        second = coordinator.debounced_search("ab")

        await second

        assert source.calls == [("ab", 1)]
        assert first.cancelled()

    @pytest.mark.asyncio
    async def test_three_calls_within_window(self, coordinator, source):
        coordinator.debounced_search("test1")
        coordinator.debounced_search("test2")
        last = coordinator.debounced_search("test3")

        await last
        await asyncio.sleep(DELAY * 2)

        assert source.calls == [("test3", 1)]

    @pytest.mark.asyncio
    async def test_immediate_search_cancels_pending_debounce(self, coordinator, source):
        pending = coordinator.debounced_search("typed")

        await coordinator.immediate_search("submitted")
        await asyncio.sleep(DELAY * 2)

        assert source.calls == [("submitted", 1)]
        assert pending.cancelled()

    @pytest.mark.asyncio
    async def test_superseded_timer_does_no_work_when_it_wakes(self, coordinator, source):
        stale_token = coordinator._debounce_token - 1

        await coordinator._run_debounced("stale", stale_token)

        assert source.calls == []
        assert not coordinator.has_queried

    @pytest.mark.asyncio
    async def test_separate_bursts_each_search(self, coordinator, source):
        await coordinator.debounced_search("first")
        await coordinator.debounced_search("second")

        assert source.calls == [("first", 1), ("second", 1)]


class TestClearSearch:

    @pytest.mark.asyncio
    async def test_resets_populated_state_without_network(self, coordinator, source, make_page):
        source.queue(make_page("Results"))
        await coordinator.immediate_search("test")
        assert coordinator.sections
        calls_before = len(source.calls)

        coordinator.clear_search()

        assert coordinator.sections == []
        assert coordinator.search_query == ""
        assert coordinator.engine.active_query == ""
        assert coordinator.loading is LoadingPhase.IDLE
        assert coordinator.engine.last_error is None
        assert not coordinator.is_searching
        assert not coordinator.has_queried
        assert len(source.calls) == calls_before

    @pytest.mark.asyncio
    async def test_cancels_pending_debounce(self, coordinator, source):
        pending = coordinator.debounced_search("half typed")

        coordinator.clear_search()
        await asyncio.sleep(DELAY * 2)

        assert source.calls == []
        assert pending.cancelled()

    @pytest.mark.asyncio
    async def test_bumps_generation_so_in_flight_result_is_dropped(self, coordinator, source, make_page):
        gate = asyncio.Event()
        source.queue(make_page("Late"), gate)

        task = asyncio.create_task(coordinator.immediate_search("q"))
        await asyncio.sleep(0.01)
        generation = coordinator.engine.generation
        coordinator.clear_search()
        gate.set()
        await task

        assert coordinator.engine.generation == generation + 1
        assert coordinator.sections == []
        assert not coordinator.is_searching

    @pytest.mark.asyncio
    async def test_clears_error(self, coordinator, source):
        source.queue(FetchError.network())
        await coordinator.immediate_search("q")
        assert coordinator.engine.last_error is not None

        coordinator.clear_search()

        assert coordinator.engine.last_error is None


class TestBrowseAll:
    """An empty listing is told apart from 'no query yet' by has_queried."""

    @pytest.mark.asyncio
    async def test_load_initial_data_is_not_a_query(self, coordinator, source, make_page):
        source.queue(make_page(total_pages=None))

        await coordinator.load_initial_data()

        assert source.calls == [("", 1)]
        assert not coordinator.has_queried
        assert not coordinator.is_empty

    @pytest.mark.asyncio
    async def test_empty_search_after_clear_is_a_query(self, coordinator, source, make_page):
        source.queue(make_page("A"))
        source.queue(make_page(total_pages=None))
        await coordinator.immediate_search("a")
        coordinator.clear_search()

        await coordinator.immediate_search("")

        assert coordinator.search_query == ""
        assert coordinator.has_queried
        assert coordinator.is_empty


class TestRetryAndRefresh:

    @pytest.mark.asyncio
    async def test_retry_before_any_query_does_nothing(self, coordinator, source):
        await coordinator.retry()
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_retry_after_failure_reruns_query(self, coordinator, source, make_page):
        source.queue(FetchError.server_status(500))
        source.queue(make_page("Recovered"))

        await coordinator.immediate_search("jazz")
        assert coordinator.engine.last_error is not None

        await coordinator.retry()

        assert source.calls == [("jazz", 1), ("jazz", 1)]
        assert [s.name for s in coordinator.sections] == ["Recovered"]
        assert coordinator.engine.last_error is None
        assert not coordinator.is_searching

    @pytest.mark.asyncio
    async def test_refresh_before_any_query_does_nothing(self, coordinator, source):
        await coordinator.refresh()
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_refresh_reruns_current_query(self, coordinator, source, make_page):
        source.queue(make_page("First"))
        source.queue(make_page("Second"))

        await coordinator.immediate_search("news")
        await coordinator.refresh()

        assert source.calls == [("news", 1), ("news", 1)]
        assert [s.name for s in coordinator.sections] == ["Second"]


@pytest.mark.asyncio
async def test_did_select_item_goes_to_sink(source):
    sink = MagicMock(spec=ItemSelectionSink)
    coordinator = SearchCoordinator(PaginationEngine(source, sink), debounce_delay=DELAY)
    item = ContentItem(title="Picked", episode_id="e1")

    coordinator.did_select_item(item)

    sink.on_item_selected.assert_called_once_with(item)
    assert source.calls == []


@pytest.mark.asyncio
async def test_close_cancels_pending_debounce(coordinator, source):
    pending = coordinator.debounced_search("bye")

    coordinator.close()
    await asyncio.sleep(DELAY * 2)

    assert pending.cancelled()
    assert source.calls == []
