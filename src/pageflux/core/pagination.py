# src/pageflux/core/pagination.py

import abc
import asyncio
from enum import Enum
from typing import List, Optional

from .errors import ErrorInfo, FetchError, FetchErrorKind
from .models import ContentItem, Page, Section
from .sources import FeedSource
from .logging import get_logger

logger = get_logger(__name__)


class LoadingPhase(Enum):
    IDLE = "idle"
    FULL_SCREEN = "full_screen"
    NEXT_PAGE = "next_page"


class EngineState(Enum):
    IDLE = "idle"
    FULL_SCREEN_LOADING = "full_screen_loading"
    NEXT_PAGE_LOADING = "next_page_loading"
    LOADED = "loaded"
    ERRORED = "errored"


class ItemSelectionSink(abc.ABC):
    """Receives items the user picked; navigation lives on the other side."""

    @abc.abstractmethod
    def on_item_selected(self, item: ContentItem) -> None:
        pass


class PaginationEngine:
    """
    Accumulates pages of sections from one FeedSource.

    `sections` is always the concatenation, in fetch order, of every page
    loaded since the last reset. A first-page failure leaves no data; a
    next-page failure keeps every page already loaded. The page cursor only
    advances together with a successful append.

    Each fetch remembers the generation it was issued in. `load_first`,
    `refresh` and `reset` start a new generation, and results from an older
    one are dropped, so a slow next-page response can never land on top of
    freshly reloaded data.

    Errors never escape the public methods; read `last_error` instead.
    """

    def __init__(self, source: FeedSource, selection_sink: Optional[ItemSelectionSink] = None):
        self.source = source
        self.selection_sink = selection_sink

        self.sections: List[Section] = []
        self.pages: List[Page] = []
        self.current_page = 0
        self.total_pages = 0
        self.loading = LoadingPhase.IDLE
        self.last_error: Optional[ErrorInfo] = None
        self.active_query = ""
        self.pending_page: Optional[int] = None
        self.generation = 0

        self._inflight: Optional[asyncio.Future] = None
        # The error shown before the current fetch started; a cancelled fetch restores it
        self._error_before_fetch: Optional[ErrorInfo] = None

    # --- Derived state ---

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def can_load_more(self) -> bool:
        return self.has_more_pages and self.loading is not LoadingPhase.NEXT_PAGE

    @property
    def is_loading(self) -> bool:
        return self.loading is not LoadingPhase.IDLE

    @property
    def is_empty(self) -> bool:
        return not self.sections

    @property
    def state(self) -> EngineState:
        if self.loading is LoadingPhase.FULL_SCREEN:
            return EngineState.FULL_SCREEN_LOADING
        if self.loading is LoadingPhase.NEXT_PAGE:
            return EngineState.NEXT_PAGE_LOADING
        if self.last_error is not None:
            return EngineState.ERRORED
        if self.pages:
            return EngineState.LOADED
        return EngineState.IDLE

    # --- Operations ---

    def reset(self) -> None:
        """Drops every loaded page and starts a new generation. No network call."""
        self.generation += 1
        self.sections = []
        self.pages = []
        self.current_page = 0
        self.total_pages = 0
        self.loading = LoadingPhase.IDLE
        self.last_error = None
        self.active_query = ""
        self.pending_page = None
        self._error_before_fetch = None

    async def load_first(self, query: str = "") -> None:
        """Clears everything and loads page 1 for `query`."""
        self.reset()
        self.active_query = query
        self.loading = LoadingPhase.FULL_SCREEN
        await self._load_page(1, self.generation)

    async def refresh(self, query: Optional[str] = None) -> None:
        """Pull-to-refresh: a full reload of page 1, never merged with old data."""
        await self.load_first(self.active_query if query is None else query)

    async def load_next(self) -> None:
        """Loads the page after the last one loaded; a no-op unless `can_load_more`."""
        if not self.can_load_more:
            return
        self.loading = LoadingPhase.NEXT_PAGE
        await self._load_page(self.current_page + 1, self.generation)

    async def retry(self) -> None:
        """
        Re-runs whatever failed last. With nothing loaded that is the first
        page; otherwise it is the next page, with the same number that failed.
        """
        if self.loading is not LoadingPhase.IDLE:
            return
        if not self.pages:
            await self.load_first(self.active_query)
        else:
            await self.load_next()

    def cancel(self) -> None:
        """Aborts the in-flight fetch, if any. Loaded data and errors are left alone."""
        if self._inflight is not None and not self._inflight.done():
            logger.debug(f"Cancelling fetch of page {self.pending_page} from {self.source.name}")
            self._inflight.cancel()

    def did_select_item(self, item: ContentItem) -> None:
        logger.debug(f"Item selected: '{item.title}' ({item.kind.value})")
        if self.selection_sink is not None:
            self.selection_sink.on_item_selected(item)

    # --- Internals ---

    async def _load_page(self, page_number: int, generation: int) -> None:
        self.pending_page = page_number
        self._error_before_fetch = self.last_error
        self.last_error = None
        logger.debug(f"Fetching page {page_number} of '{self.active_query}' from {self.source.name} (generation {generation})")

        fetch = asyncio.ensure_future(self.source.fetch_page(self.active_query, page_number))
        self._inflight = fetch
        try:
            page = await fetch
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # Our caller is being cancelled, not just the fetch
                fetch.cancel()
                self._finish_cancelled(generation)
                raise
            self._finish_cancelled(generation)
            return
        except FetchError as e:
            self._finish_failed(e, page_number, generation)
            return
        except Exception as e:
            logger.exception(f"Unexpected error from {self.source.name}")
            self._finish_failed(FetchError(FetchErrorKind.UNKNOWN, str(e) or None), page_number, generation)
            return
        finally:
            if self._inflight is fetch:
                self._inflight = None

        self._finish_loaded(page, page_number, generation)

    def _is_stale(self, generation: int, page_number: int, outcome: str) -> bool:
        if generation != self.generation:
            logger.debug(f"Discarding {outcome} for page {page_number}: generation {generation} is stale (now {self.generation})")
            return True
        return False

    def _finish_loaded(self, page: Page, page_number: int, generation: int) -> None:
        if self._is_stale(generation, page_number, "result"):
            return

        if page_number == 1:
            self.sections = list(page.sections)
            self.pages = [page]
        else:
            self.sections.extend(page.sections)
            self.pages.append(page)
        self.current_page = page_number

        # Later pages may revise the total; a page without pagination is the last one
        reported = page.pagination.total_pages if page.pagination else page_number
        self.total_pages = max(reported, page_number)

        self.pending_page = None
        self.last_error = None
        self.loading = LoadingPhase.IDLE
        logger.debug(f"Loaded page {page_number}/{self.total_pages}: {len(page.sections)} sections, {len(self.sections)} total")

    def _finish_failed(self, error: FetchError, page_number: int, generation: int) -> None:
        if self._is_stale(generation, page_number, "error"):
            return
        if error.kind is FetchErrorKind.CANCELLED:
            self._finish_cancelled(generation)
            return

        logger.warning(f"Loading page {page_number} from {self.source.name} failed ({error.kind.value}): {error.message}")
        self.last_error = ErrorInfo.from_error(error)
        self.pending_page = None
        self.loading = LoadingPhase.IDLE

    def _finish_cancelled(self, generation: int) -> None:
        if generation != self.generation:
            return
        logger.debug(f"Fetch of page {self.pending_page} was cancelled")
        self.last_error = self._error_before_fetch
        self.pending_page = None
        self.loading = LoadingPhase.IDLE
