# src/pageflux/core/models.py

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple

from .text import format_duration


class SectionType(Enum):
    """How a section lays out its items."""
    SQUARE = "square"
    BIG_SQUARE = "big square"
    TWO_LINES_GRID = "2 lines grid"
    QUEUE = "queue"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: Any) -> "SectionType":
        """Lenient coercion: unrecognized values become UNKNOWN, never an error."""
        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = " ".join(value.lower().replace("_", " ").replace("-", " ").split())
        for member in cls:
            if member is not cls.UNKNOWN and member.value == normalized:
                return member
        return cls.UNKNOWN


class ContentType(Enum):
    """What a section (or a single item) contains."""
    PODCAST = "podcast"
    EPISODE = "episode"
    AUDIO_BOOK = "audio_book"
    AUDIO_ARTICLE = "audio_article"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: Any) -> "ContentType":
        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = "".join(value.lower().replace("_", "").replace("-", "").split())
        for member in cls:
            if member is not cls.UNKNOWN and member.value.replace("_", "") == normalized:
                return member
        return cls.UNKNOWN


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ContentItem:
    """
    A single playable or readable unit, normalized from any content kind.

    When no `id` is given it is the most specific kind id present, or a fresh
    random one when the item carries none.
    """
    title: str
    id: Optional[str] = None
    podcast_id: Optional[str] = None
    episode_id: Optional[str] = None
    audiobook_id: Optional[str] = None
    article_id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    author_name: Optional[str] = None
    score: Optional[float] = None
    release_date: Optional[datetime] = None
    audio_url: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            item_id = self.article_id or self.audiobook_id or self.episode_id or self.podcast_id
            object.__setattr__(self, "id", item_id or _new_id())

    @property
    def kind(self) -> ContentType:
        # Episodes usually carry their podcast's id too, so check the most specific id first
        if self.article_id:
            return ContentType.AUDIO_ARTICLE
        if self.audiobook_id:
            return ContentType.AUDIO_BOOK
        if self.episode_id:
            return ContentType.EPISODE
        if self.podcast_id:
            return ContentType.PODCAST
        return ContentType.UNKNOWN

    @property
    def duration(self) -> Optional[str]:
        return format_duration(self.duration_seconds)


@dataclass(frozen=True)
class Section:
    """A named, typed group of items within one feed page."""
    name: str
    section_type: SectionType = SectionType.UNKNOWN
    content_type: ContentType = ContentType.UNKNOWN
    order: Optional[int] = None
    items: Tuple[ContentItem, ...] = ()
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class PaginationInfo:
    next_page: Optional[str]
    total_pages: int


@dataclass(frozen=True)
class Page:
    """One successful response: its sections plus pagination metadata, if any."""
    sections: Tuple[Section, ...] = ()
    pagination: Optional[PaginationInfo] = None
