"""Wallpaper source abstraction for Backdrop Station.

A WallpaperSource wraps one SourceConfig and knows how to probe a remote
provider, fetch pages of images and hand them out a few at a time. Only
the current page is kept in memory: every refresh replaces it. Bounded
providers wrap back to page 1 after the last page, so retrieval cycles
forever instead of running dry.

Subclasses implement _probe() and _fetch_page(); everything else
(single-flight refresh, draining, enable/disable bookkeeping, error
conversion) lives here.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from core.errors import SourceError, SourceErrorType
from core.http import HttpClient
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage

logger = logging.getLogger(__name__)


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Best-effort int() for provider fields that may be str, float or missing."""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def page_count(total: Any, per_page: Any) -> int:
    """ceil(total / per_page), or UNKNOWN when either side is unusable."""
    total, per_page = to_int(total, 0), to_int(per_page, 0)
    if total <= 0 or per_page <= 0:
        return UNKNOWN
    return -(-total // per_page)


class PageCache:
    """One page of images plus a read cursor."""

    def __init__(self):
        self._items: Tuple[WallpaperImage, ...] = ()
        self.cursor = 0

    def __len__(self):
        return len(self._items)

    @property
    def remaining(self) -> int:
        return len(self._items) - self.cursor

    def replace(self, items):
        self._items = tuple(items)
        self.cursor = 0

    def clear(self):
        self.replace(())

    def take(self, count: int) -> List[WallpaperImage]:
        """Return up to count unread items and advance the cursor past them."""
        chunk = self._items[self.cursor:self.cursor + max(count, 0)]
        self.cursor += len(chunk)
        return list(chunk)


class WallpaperSource(ABC):
    """Base class for all remote wallpaper providers.

    Class attributes carry the provider's static metadata; the registry
    reads them without instantiating anything.
    """

    source_type = ""
    default_base_url = ""
    default_endpoints: Dict[str, str] = {}
    default_description = ""
    doc_url = ""
    token_url = ""

    def __init__(self, config: SourceConfig, http: HttpClient):
        self.config = config
        self.http = http
        self.id = config.id
        self.name = config.name or self.__class__.__name__
        self.description = config.description or self.default_description
        self.base_url = (config.base_url or self.default_base_url).rstrip("/")
        self.endpoints = {**self.default_endpoints, **config.endpoints}
        self.params = {**self.default_params(), **config.params}
        self.headers = dict(config.headers)

        self.enabled = False
        self.initialized = False
        self.cache = PageCache()
        self.current_page = 1
        self.total_pages = UNKNOWN
        self.total_count = UNKNOWN
        self.last_error: Optional[SourceError] = None
        self._refreshing: Optional[asyncio.Future] = None

        self.save_config()

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id!r} enabled={self.enabled}>"

    # -- static metadata --------------------------------------------------

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {}

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        return []

    @classmethod
    def custom_setting_descriptors(cls) -> List[ParamDescriptor]:
        return []

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        """Check a config before an instance is created. Returns (valid, errors)."""
        return True, []

    # -- config helpers ---------------------------------------------------

    def save_config(self):
        """Write resolved defaults back into the persisted config."""
        self.config.name = self.name
        self.config.description = self.description
        self.config.base_url = self.base_url
        self.config.endpoints = dict(self.endpoints)
        self.config.params = dict(self.params)

    def build_endpoint_url(self, key: str, **path_params) -> str:
        endpoint = self.endpoints.get(key)
        if endpoint is None:
            raise SourceError(
                SourceErrorType.CONFIGURATION,
                f"Endpoint {key!r} is not configured",
                self.id,
            )
        for name, value in path_params.items():
            endpoint = endpoint.replace("{%s}" % name, str(value))
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return self.base_url + endpoint

    @staticmethod
    def build_query(params: Dict[str, Any]) -> str:
        """Encode params, skipping None/"" and joining lists with commas."""
        pairs = []
        for key, value in params.items():
            if value is None or value == "":
                continue
            if isinstance(value, (list, tuple)):
                value = ",".join(str(v) for v in value)
            elif isinstance(value, bool):
                value = "true" if value else "false"
            pairs.append((key, value))
        return urlencode(pairs)

    async def _get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        merged = {**self.headers, **(headers or {})}
        resp = await self.http.get(url, merged or None)
        if not resp.ok:
            raise SourceError.from_status(resp.status, self.id, url)
        return resp.json

    # -- provider hooks ---------------------------------------------------

    @abstractmethod
    async def _probe(self):
        """Check connectivity and fill in total_pages/total_count.

        Raise (preferably a SourceError) when the provider is unusable.
        """

    @abstractmethod
    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        """Fetch and transform one page. Random providers ignore page."""

    def _teardown(self):
        """Drop provider-specific state. Override if needed."""

    # -- lifecycle --------------------------------------------------------

    async def initialize(self) -> bool:
        """Probe the provider once. Never raises; see last_error on failure."""
        if self.initialized:
            return True
        self.last_error = None
        try:
            await self._probe()
        except Exception as exc:
            self.last_error = SourceError.wrap(exc, self.id)
            logger.warning("Source %s failed to initialize: %s", self.id, self.last_error)
            return False

        self.cache.clear()
        self.current_page = 1
        self.initialized = True
        logger.info("Source %s initialized (%s images, %s pages)",
                    self.id, self.total_count, self.total_pages)
        return True

    async def finalize(self) -> bool:
        if not self.initialized:
            return True
        self._teardown()
        self.cache.clear()
        self.current_page = 1
        self.total_pages = UNKNOWN
        self.total_count = UNKNOWN
        self.initialized = False
        logger.info("Source %s finalized", self.id)
        return True

    async def try_enable(self) -> bool:
        if self.enabled:
            return True
        try:
            ok = await self.initialize()
        except Exception as exc:
            self.last_error = SourceError.wrap(exc, self.id)
            logger.error("Source %s enable error: %s", self.id, exc)
            ok = False
        self.enabled = ok
        return ok

    async def try_disable(self) -> bool:
        if not self.enabled and not self.initialized:
            return True
        try:
            return await self.finalize()
        except Exception as exc:
            self.last_error = SourceError.wrap(exc, self.id)
            logger.error("Source %s disable error: %s", self.id, exc)
            return False
        finally:
            self.enabled = False

    # -- retrieval --------------------------------------------------------

    async def refresh_cache(self) -> bool:
        """Replace the cache with the next page.

        Only one refresh runs at a time; concurrent callers wait for the
        one already in flight and share its result.
        """
        if self._refreshing is None or self._refreshing.done():
            self._refreshing = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._refreshing)

    async def _refresh(self) -> bool:
        if self.total_pages > 0 and self.current_page > self.total_pages:
            logger.debug("Source %s: past last page %d, wrapping to 1", self.id, self.total_pages)
            self.current_page = 1
        try:
            images = await self._fetch_page(self.current_page)
        except Exception as exc:
            self.last_error = SourceError.wrap(exc, self.id)
            logger.warning("Source %s: fetching page %d failed: %s",
                           self.id, self.current_page, self.last_error)
            self.cache.clear()
            return False

        self.last_error = None
        for image in images:
            if image.source_id is None:
                image.source_id = self.id
        self.cache.replace(images)
        # An empty page means we ran off the end of an unbounded listing
        self.current_page = self.current_page + 1 if images else 1
        return bool(images)

    async def get_images(self, count: int = 1) -> Optional[List[WallpaperImage]]:
        """Return up to count images, refilling the cache as it drains.

        Returns None when the provider yields nothing.
        """
        images: List[WallpaperImage] = []
        while len(images) < count:
            images.extend(self.cache.take(count - len(images)))
            if len(images) >= count:
                break
            await self.refresh_cache()
            if not len(self.cache):
                break
        return images or None
