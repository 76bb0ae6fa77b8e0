"""Shared fixtures for pageflux tests."""

import asyncio
from collections import deque
from typing import List, Optional, Tuple

import pytest

from pageflux.core.models import ContentItem, Page, PaginationInfo, Section
from pageflux.core.pagination import PaginationEngine
from pageflux.core.sources import FeedSource


def build_page(*names: str, total_pages: Optional[int] = 1) -> Page:
    """One section per name, each holding a single podcast item."""
    sections = tuple(
        Section(name=name, items=(ContentItem(title=f"{name} item", podcast_id=f"{name}-id"),))
        for name in names
    )
    pagination = PaginationInfo(next_page=None, total_pages=total_pages) if total_pages is not None else None
    return Page(sections=sections, pagination=pagination)


class ScriptedSource(FeedSource):
    """
    A FeedSource that replays queued outcomes in call order. An outcome is a
    Page or an exception; a gate (asyncio.Event) holds the call until set.
    """

    def __init__(self):
        super().__init__("scripted")
        self.calls: List[Tuple[str, int]] = []
        self._outcomes = deque()

    def queue(self, outcome, gate: Optional[asyncio.Event] = None) -> None:
        self._outcomes.append((outcome, gate))

    async def fetch_page(self, query: str, page: int) -> Page:
        self.calls.append((query, page))
        outcome, gate = self._outcomes.popleft() if self._outcomes else (build_page("default"), None)
        if gate is not None:
            await gate.wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def source():
    return ScriptedSource()


@pytest.fixture
def engine(source):
    return PaginationEngine(source)
