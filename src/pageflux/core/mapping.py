# src/pageflux/core/mapping.py

import math
from typing import Any, Dict, List, Optional

from .errors import FetchError
from .models import ContentItem, ContentType, Page, PaginationInfo, Section, SectionType
from .text import (
    clean_text,
    parse_duration_seconds,
    parse_lenient_float,
    parse_lenient_int,
    parse_release_date,
)
from .logging import get_logger

logger = get_logger(__name__)


def _string(value: Any) -> Optional[str]:
    """Returns a non-empty string or None; ids sometimes arrive as numbers."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _first(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = _string(data.get(key))
        if value:
            return value
    return None


def item_from_wire(data: Dict[str, Any]) -> ContentItem:
    """Maps one raw content entry to a ContentItem."""
    podcast_id = _string(data.get("podcast_id"))
    episode_id = _string(data.get("episode_id"))
    audiobook_id = _string(data.get("audiobook_id"))
    article_id = _string(data.get("article_id"))

    title = (
        clean_text(data.get("name"))
        or clean_text(data.get("title"))
        or clean_text(data.get("podcast_name"))
        or ""
    )

    return ContentItem(
        title=title,
        podcast_id=podcast_id,
        episode_id=episode_id,
        audiobook_id=audiobook_id,
        article_id=article_id,
        description=clean_text(data.get("description")),
        image_url=_string(data.get("avatar_url")),
        duration_seconds=parse_duration_seconds(data.get("duration")),
        author_name=_string(data.get("author_name")),
        score=parse_lenient_float(data.get("score")),
        release_date=parse_release_date(data.get("release_date")),
        audio_url=_first(data, "audio_url", "separated_audio_url", "paid_early_access_audio_url"),
    )


def _order_from_wire(value: Any, lenient: bool) -> Optional[int]:
    if value is None:
        return None
    if lenient:
        # Search sends order as a numeric string; anything unparseable counts as 0
        return parse_lenient_int(value, default=0)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, str) and not value.strip().lstrip("+-").isdigit():
        return None
    return parse_lenient_int(value)


def section_from_wire(data: Dict[str, Any], *, lenient_order: bool = False) -> Section:
    """Maps one raw section. Bad enum values degrade to UNKNOWN instead of failing."""
    raw_items = data.get("content") or []
    if not isinstance(raw_items, list):
        logger.debug(f"Section '{data.get('name')}' has non-list content; ignoring it.")
        raw_items = []

    items = tuple(item_from_wire(entry) for entry in raw_items if isinstance(entry, dict))
    name = _string(data.get("name")) or _string(data.get("title")) or ""

    return Section(
        name=name,
        section_type=SectionType.from_wire(data.get("type")),
        content_type=ContentType.from_wire(data.get("content_type")),
        order=_order_from_wire(data.get("order"), lenient_order),
        items=items,
    )


def _sections_from_payload(payload: Any, lenient_order: bool) -> List[Section]:
    if not isinstance(payload, dict):
        raise FetchError.decoding(f"Expected a JSON object, got {type(payload).__name__}")

    raw_sections = payload.get("sections")
    if raw_sections is None:
        return []
    if not isinstance(raw_sections, list):
        raise FetchError.decoding("'sections' must be a list")

    return [
        section_from_wire(entry, lenient_order=lenient_order)
        for entry in raw_sections
        if isinstance(entry, dict)
    ]


def home_page_from_wire(payload: Any) -> Page:
    """Maps a home feed response: sections plus its pagination block."""
    sections = _sections_from_payload(payload, lenient_order=False)

    pagination = None
    raw_pagination = payload.get("pagination")
    if isinstance(raw_pagination, dict):
        pagination = PaginationInfo(
            next_page=_string(raw_pagination.get("next_page", raw_pagination.get("nextPage"))),
            total_pages=parse_lenient_int(raw_pagination.get("total_pages", raw_pagination.get("totalPages")), default=0),
        )
    elif raw_pagination is not None:
        raise FetchError.decoding("'pagination' must be an object")

    return Page(sections=tuple(sections), pagination=pagination)


def search_page_from_wire(payload: Any) -> Page:
    """Maps a search response. Search is single-page, so there is no pagination."""
    return Page(sections=tuple(_sections_from_payload(payload, lenient_order=True)), pagination=None)
