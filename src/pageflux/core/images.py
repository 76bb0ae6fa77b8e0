# src/pageflux/core/images.py

import asyncio
import functools
import threading
from collections import OrderedDict
from typing import Dict, Optional

import httpx

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_COUNT_LIMIT = 100
DEFAULT_TOTAL_COST_LIMIT = 50 * 1024 * 1024  # 50 MB


class ImageDownloadError(Exception):
    INVALID_URL = "Invalid image URL"
    INVALID_RESPONSE = "Invalid server response"
    INVALID_IMAGE_DATA = "Invalid image data"


class ImageCache:
    """
    An in-memory, least-recently-used cache of image bytes keyed by URL.

    Bounded both by entry count and by total size in bytes. Safe to share
    with worker threads.
    """

    def __init__(self, count_limit: int = DEFAULT_COUNT_LIMIT, total_cost_limit: int = DEFAULT_TOTAL_COST_LIMIT):
        self.count_limit = count_limit
        self.total_cost_limit = total_cost_limit
        self._entries: "OrderedDict[str, bytes]" = OrderedDict()
        self._total_cost = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total_cost(self) -> int:
        return self._total_cost

    def cached_image(self, url: str) -> Optional[bytes]:
        with self._lock:
            data = self._entries.get(url)
            if data is not None:
                self._entries.move_to_end(url)
            return data

    def cache_image(self, url: str, data: bytes) -> None:
        cost = len(data)
        if cost > self.total_cost_limit:
            logger.debug(f"Not caching {url}: {cost} bytes exceeds the cache limit")
            return
        with self._lock:
            previous = self._entries.pop(url, None)
            if previous is not None:
                self._total_cost -= len(previous)
            self._entries[url] = data
            self._total_cost += cost
            self._evict_over_limits()

    def remove_cached_image(self, url: str) -> None:
        with self._lock:
            data = self._entries.pop(url, None)
            if data is not None:
                self._total_cost -= len(data)

    def evict_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_cost = 0

    def _evict_over_limits(self) -> None:
        while self._entries and (len(self._entries) > self.count_limit or self._total_cost > self.total_cost_limit):
            url, data = self._entries.popitem(last=False)
            self._total_cost -= len(data)
            logger.debug(f"Evicted {url} from the image cache")


class ImageDownloader:
    """Downloads raw image bytes over HTTP."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self._owns_client = client is None
        self.client = client if client else httpx.AsyncClient(timeout=timeout)

    async def download(self, url: str) -> bytes:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise ImageDownloadError(ImageDownloadError.INVALID_URL) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ImageDownloadError(ImageDownloadError.INVALID_URL)

        try:
            response = await self.client.get(parsed, follow_redirects=True)
        except httpx.RequestError as e:
            raise ImageDownloadError(f"{ImageDownloadError.INVALID_RESPONSE}: {e}") from e
        if response.status_code != 200:
            raise ImageDownloadError(f"{ImageDownloadError.INVALID_RESPONSE}: {response.status_code}")
        if not response.content:
            raise ImageDownloadError(ImageDownloadError.INVALID_IMAGE_DATA)
        return response.content

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


class ImageLoader:
    """
    Serves images from the cache, downloading on a miss. Concurrent loads of
    the same URL share one download.
    """

    def __init__(self, cache: ImageCache, downloader: ImageDownloader):
        self.cache = cache
        self.downloader = downloader
        self._inflight: Dict[str, asyncio.Task] = {}

    async def load(self, url: Optional[str]) -> Optional[bytes]:
        """Returns the image bytes, or None when there is no URL or the download fails."""
        if not url:
            return None
        cached = self.cache.cached_image(url)
        if cached is not None:
            return cached

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self.downloader.download(url))
            self._inflight[url] = task
            task.add_done_callback(lambda _: self._inflight.pop(url, None))

        try:
            data = await asyncio.shield(task)
        except ImageDownloadError as e:
            logger.warning(f"Error fetching image from {url}: {e}")
            return None

        self.cache.cache_image(url, data)
        return data


@functools.lru_cache(maxsize=None)
def default_image_cache() -> ImageCache:
    """A shared cache for callers that have nowhere better to get one from."""
    return ImageCache()
