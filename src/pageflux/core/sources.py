import abc
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import Settings
from .errors import FetchError
from .mapping import home_page_from_wire, search_page_from_wire
from .models import Page
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_SEARCH_PATH = "search"


class FeedSource(abc.ABC):
    """
    The contract every feed backend implements: fetch one page of sections.

    A call performs at most one logical request and never retries. Failures
    are raised as FetchError, unchanged. asyncio cancellation is left to
    propagate; a source that aborts on its own may raise a CANCELLED
    FetchError instead, and the engine treats both alike.
    """
    def __init__(self, name: str):
        self.name = name

    @abc.abstractmethod
    async def fetch_page(self, query: str, page: int) -> Page:
        """
        Fetches the 1-based `page` for `query`. Sources that have no notion of a
        query ignore it; an empty query means the unfiltered listing.
        """
        pass

    async def close(self):
        """Releases any resources held by the source."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


class HttpFeedSource(FeedSource):
    """A FeedSource backed by a JSON HTTP API."""
    def __init__(self, name: str, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(name)
        self.base_url = base_url
        self._owns_client = client is None
        self.client = client if client else httpx.AsyncClient(
            headers={"Accept": "application/json"}, timeout=timeout
        )

    def _url(self, path: str) -> str:
        return str(httpx.URL(self.base_url.rstrip("/") + "/").join(path.lstrip("/")))

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        url = self._url(path)
        logger.debug(f"[{self.name}] GET {url} params={params}")

        try:
            response = await self.client.get(url, params=params, follow_redirects=True)
        except httpx.RequestError as e:
            logger.error(f"Request to {self.name} failed: {e}")
            raise FetchError.network(f"Could not reach {self.name}: {e}") from e

        if response.is_error:
            logger.error(f"{self.name} responded with {response.status_code} for {url}")
            raise FetchError.server_status(response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{self.name} returned a body that is not JSON: {e}")
            raise FetchError.decoding(f"Malformed response from {self.name}") from e

    def _map(self, mapper: Callable[[Any], Page], payload: Any) -> Page:
        try:
            return mapper(payload)
        except (TypeError, ValueError, OverflowError) as e:
            logger.error(f"{self.name} returned a payload that could not be mapped: {e}")
            raise FetchError.decoding(f"Malformed response from {self.name}") from e

    @staticmethod
    def _check_page(page: int) -> None:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise FetchError.invalid_query(f"Page numbers start at 1, got {page!r}")

    async def close(self):
        """Closes the underlying HTTP client if this source created it."""
        if self._owns_client:
            await self.client.aclose()


class HomeFeedSource(HttpFeedSource):
    """The paginated home feed: GET /home_sections?page={n}&limit={limit}."""
    PATH = "home_sections"

    def __init__(self, name: str, base_url: str, client: Optional[httpx.AsyncClient] = None,
                 page_limit: Optional[int] = None, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(name, base_url, client=client, timeout=timeout)
        self.page_limit = page_limit

    async def fetch_page(self, query: str, page: int) -> Page:
        # The home feed has no query; it is accepted only to honour the contract
        self._check_page(page)
        params: Dict[str, Any] = {"page": page}
        if self.page_limit:
            params["limit"] = self.page_limit
        payload = await self._get_json(self.PATH, params)
        return self._map(home_page_from_wire, payload)


class SearchSource(HttpFeedSource):
    """Single-page search: GET /{path}?word={query}, with `word` omitted when empty."""
    def __init__(self, name: str, base_url: str, path: str = DEFAULT_SEARCH_PATH,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(name, base_url, client=client, timeout=timeout)
        self.path = path

    async def fetch_page(self, query: str, page: int) -> Page:
        self._check_page(page)
        word = (query or "").strip()
        params: Dict[str, Any] = {"word": word} if word else {}
        payload = await self._get_json(self.path, params)
        return self._map(search_page_from_wire, payload)


def get_source(source_config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> Optional[FeedSource]:
    """
    Factory function that creates a FeedSource from a configuration dictionary.
    Returns None (and logs why) when the configuration is unusable.
    """
    if not isinstance(source_config, dict):
        logger.error(f"Source config is not a dict: {source_config}")
        return None
    source_type = source_config.get("type")
    name = source_config.get("name") or source_type
    base_url = source_config.get("base_url")
    timeout = float(source_config.get("timeout", DEFAULT_TIMEOUT))
    if not all([source_type, base_url]):
        logger.error(f"Source config missing required fields: {source_config}")
        return None
    if source_type == "home":
        return HomeFeedSource(str(name), str(base_url), client=client,
                              page_limit=source_config.get("page_limit"), timeout=timeout)
    elif source_type == "search":
        return SearchSource(str(name), str(base_url), path=source_config.get("path") or DEFAULT_SEARCH_PATH,
                            client=client, timeout=timeout)
    else:
        logger.warning(f"Unknown source type: '{source_type}'")
        return None


def get_all_sources(settings: Settings) -> Dict[str, FeedSource]:
    """Builds every source the settings describe, keyed by source type."""
    sources = {}
    for config in settings.source_configs():
        source = get_source(config)
        if source:
            sources[config["type"]] = source
    return sources


async def close_all_sources(sources: List[FeedSource]):
    """Gracefully closes all provided sources."""
    for source in sources:
        await source.close()
