# src/pageflux/core/search.py

import asyncio
from typing import List, Optional

from .models import ContentItem, Section
from .pagination import LoadingPhase, PaginationEngine
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_DELAY = 0.2


class SearchCoordinator:
    """
    Search-as-you-type on top of a PaginationEngine.

    Keystrokes go through `debounced_search`, which waits for a quiet period
    before searching; only the last query of a burst reaches the network.
    Must be driven from a single event loop.
    """

    def __init__(self, engine: PaginationEngine, debounce_delay: float = DEFAULT_DEBOUNCE_DELAY):
        self.engine = engine
        self.debounce_delay = debounce_delay

        self.search_query = ""
        self.is_searching = False
        self.has_queried = False

        self._debounce_task: Optional[asyncio.Task] = None
        self._debounce_token = 0

    # --- Read-only views of the engine ---

    @property
    def sections(self) -> List[Section]:
        return self.engine.sections

    @property
    def loading(self) -> LoadingPhase:
        return self.engine.loading

    @property
    def is_empty(self) -> bool:
        """True only when a search ran and came back with nothing."""
        return self.has_queried and not self.engine.sections

    @property
    def has_pending_debounce(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    # --- Operations ---

    async def immediate_search(self, query: str) -> None:
        """Searches right away, superseding any pending debounced search."""
        trimmed = query.strip()
        self._cancel_debounce()
        self.search_query = trimmed
        self.is_searching = True
        self.has_queried = True

        logger.debug(f"Searching for '{trimmed}'")
        await self.engine.load_first(trimmed)

        # A newer search may have started while this one was in flight
        if not self.engine.is_loading:
            self.is_searching = False

    def debounced_search(self, query: str) -> asyncio.Task:
        """
        Schedules `immediate_search(query)` after `debounce_delay` seconds.
        A later call to any search method before then cancels it.
        """
        self._cancel_debounce()
        token = self._debounce_token
        self._debounce_task = asyncio.create_task(self._run_debounced(query, token))
        return self._debounce_task

    async def _run_debounced(self, query: str, token: int) -> None:
        await asyncio.sleep(self.debounce_delay)
        if token != self._debounce_token:
            # Superseded while asleep; the newer call owns the search now
            return
        # Past the timer, this task is an ordinary search and no longer cancellable as a debounce
        self._debounce_task = None
        await self.immediate_search(query)

    def _cancel_debounce(self) -> None:
        self._debounce_token += 1
        task = self._debounce_task
        self._debounce_task = None
        if task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()

    def clear_search(self) -> None:
        """Back to the blank state: no query, no results, no error, nothing loading."""
        self._cancel_debounce()
        self.engine.reset()
        self.search_query = ""
        self.is_searching = False
        self.has_queried = False

    async def load_initial_data(self) -> None:
        """Loads the unfiltered listing shown before the user types anything."""
        self._cancel_debounce()
        await self.engine.load_first("")

    async def load_next(self) -> None:
        await self.engine.load_next()

    async def refresh(self) -> None:
        if not self.has_queried:
            return
        await self.immediate_search(self.search_query)

    async def retry(self) -> None:
        if not self.has_queried:
            return
        self.is_searching = not self.engine.pages
        await self.engine.retry()
        if not self.engine.is_loading:
            self.is_searching = False

    def did_select_item(self, item: ContentItem) -> None:
        self.engine.did_select_item(item)

    def close(self) -> None:
        self._cancel_debounce()
        self.engine.cancel()
