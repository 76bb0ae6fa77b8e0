# src/pageflux/core/presentation.py

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .errors import ErrorInfo
from .models import ContentItem, ContentType, Section, SectionType
from .pagination import LoadingPhase, PaginationEngine
from .text import clean_text

# Every member is listed; a new enum member without an entry fails loudly on lookup.
SECTION_LAYOUTS = {
    SectionType.SQUARE: "square",
    SectionType.BIG_SQUARE: "big_square",
    SectionType.TWO_LINES_GRID: "two_lines_grid",
    SectionType.QUEUE: "queue",
    SectionType.UNKNOWN: "list",
}

CONTENT_ICONS = {
    ContentType.PODCAST: "🎙",
    ContentType.EPISODE: "▶",
    ContentType.AUDIO_BOOK: "📖",
    ContentType.AUDIO_ARTICLE: "📰",
    ContentType.UNKNOWN: "•",
}

CONTENT_LABELS = {
    ContentType.PODCAST: "Podcast",
    ContentType.EPISODE: "Episode",
    ContentType.AUDIO_BOOK: "Audiobook",
    ContentType.AUDIO_ARTICLE: "Article",
    ContentType.UNKNOWN: "Other",
}


@dataclass(frozen=True)
class ContentItemViewModel:
    item: ContentItem

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def title(self) -> str:
        return clean_text(self.item.title) or self.item.title

    @property
    def subtitle(self) -> Optional[str]:
        return clean_text(self.item.description)

    @property
    def author_name(self) -> Optional[str]:
        return self.item.author_name

    @property
    def image_url(self) -> Optional[str]:
        return self.item.image_url

    @property
    def duration(self) -> Optional[str]:
        return self.item.duration

    @property
    def formatted_score(self) -> Optional[str]:
        if self.item.score is None:
            return None
        return f"{self.item.score:.1f}"

    @property
    def formatted_release_date(self) -> Optional[str]:
        if self.item.release_date is None:
            return None
        date = self.item.release_date
        return f"{date:%b} {date.day}, {date.year}"

    @property
    def kind(self) -> ContentType:
        return self.item.kind

    @property
    def is_podcast(self) -> bool:
        return self.item.kind is ContentType.PODCAST

    @property
    def is_episode(self) -> bool:
        return self.item.kind is ContentType.EPISODE

    @property
    def is_audiobook(self) -> bool:
        return self.item.kind is ContentType.AUDIO_BOOK

    @property
    def is_audio_article(self) -> bool:
        return self.item.kind is ContentType.AUDIO_ARTICLE

    @property
    def shows_release_date(self) -> bool:
        """Episodes and articles show their release date where others show a menu."""
        return self.is_episode or self.is_audio_article

    @property
    def icon(self) -> str:
        return CONTENT_ICONS[self.item.kind]


@dataclass(frozen=True)
class SectionViewModel:
    section: Section

    @property
    def id(self) -> str:
        return self.section.id

    @property
    def title(self) -> str:
        return self.section.name

    @property
    def section_type(self) -> SectionType:
        return self.section.section_type

    @property
    def content_type(self) -> ContentType:
        return self.section.content_type

    @property
    def order(self) -> Optional[int]:
        return self.section.order

    @property
    def layout(self) -> str:
        return SECTION_LAYOUTS[self.section.section_type]

    @property
    def content_label(self) -> str:
        return CONTENT_LABELS[self.section.content_type]

    @property
    def items(self) -> List[ContentItemViewModel]:
        return [ContentItemViewModel(item) for item in self.section.items]

    @property
    def has_content(self) -> bool:
        return bool(self.section.items)


def _order_key(section: Section):
    # Missing order sorts after every real order; ties break on the exact name
    return (section.order is None, section.order if section.order is not None else 0, section.name)


def sort_sections(sections: Iterable[Section]) -> List[Section]:
    return sorted(sections, key=_order_key)


class FeedViewModel:
    """A read-only projection of an engine's state for rendering."""

    def __init__(self, engine: PaginationEngine, empty_title: str = "No Content Available", error_title: str = "Error"):
        self.engine = engine
        self.empty_title = empty_title
        self.error_title = error_title

    @property
    def sections(self) -> List[SectionViewModel]:
        return [SectionViewModel(s) for s in self.engine.sections]

    @property
    def sorted_sections(self) -> List[SectionViewModel]:
        return [SectionViewModel(s) for s in sort_sections(self.engine.sections)]

    @property
    def is_empty(self) -> bool:
        return self.engine.is_empty

    @property
    def can_load_more(self) -> bool:
        return self.engine.can_load_more

    @property
    def show_full_screen_loading(self) -> bool:
        return self.engine.loading is LoadingPhase.FULL_SCREEN

    @property
    def show_next_page_loading(self) -> bool:
        return self.engine.loading is LoadingPhase.NEXT_PAGE

    @property
    def show_full_screen_error(self) -> Optional[ErrorInfo]:
        """The error to show in place of the feed, when nothing could be loaded."""
        if self.engine.last_error is not None and self.engine.is_empty:
            return self.engine.last_error
        return None

    @property
    def load_more_error(self) -> Optional[ErrorInfo]:
        """The error to show at the foot of the feed, keeping earlier pages visible."""
        if self.engine.last_error is not None and not self.engine.is_empty:
            return self.engine.last_error
        return None
