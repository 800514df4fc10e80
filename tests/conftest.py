"""
Pytest configuration and fixtures for Backdrop Station tests.

Provides common fixtures for testing:
- A fake HTTP client with canned responses per URL prefix
- An in-memory "list" source type whose pages come from its config
- A registry with the built-in types plus the list type
- Settings built from the default blob
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

import pytest

from core.errors import SourceError, SourceErrorType
from core.http import HttpClient, HttpResponse
from core.models import UNKNOWN, Settings, SourceConfig, WallpaperImage
from core.settings_store import MemorySettingsStore, merge_settings
from core.wallpaper_source import WallpaperSource
from sources import build_registry

Handler = Union[HttpResponse, Exception, Callable[[str], HttpResponse]]


# ============ HTTP ============


class FakeHttpClient(HttpClient):
    """Answers GETs from a table of URL prefix -> response.

    The longest matching prefix wins; unmatched URLs get a 404. A handler
    may be a response, an exception to raise, or a callable taking the URL.
    """

    def __init__(self, routes: Optional[Dict[str, Handler]] = None):
        self.routes: Dict[str, Handler] = dict(routes or {})
        self.calls: List[tuple] = []
        self.closed = False

    def add(self, prefix: str, payload=None, status: int = 200):
        self.routes[prefix] = HttpResponse(status, payload)

    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]

    async def get(self, url, headers=None):
        self.calls.append((url, headers))
        for prefix in sorted(self.routes, key=len, reverse=True):
            if url.startswith(prefix):
                handler = self.routes[prefix]
                if isinstance(handler, Exception):
                    raise handler
                if callable(handler):
                    return handler(url)
                return handler
        return HttpResponse(404, None)

    def close(self):
        self.closed = True


@pytest.fixture
def http():
    return FakeHttpClient()


# ============ In-memory source ============


def make_images(*ids) -> List[WallpaperImage]:
    return [WallpaperImage(id=str(i), url=f"https://img.example/{i}.jpg",
                           width=1920, height=1080) for i in ids]


class ListSource(WallpaperSource):
    """Source whose pages are listed in custom_settings.

    custom_settings:
        pages:       list of lists of image ids (bounded listing)
        endless:     page n always yields one image "p<n>" (no last page)
        fail_probe:  error kind the probe raises
        fail_fetch:  error kind every page fetch raises
    """

    source_type = "list"
    default_description = "Images listed in the config"

    def __init__(self, config, http):
        super().__init__(config, http)
        self.fetched_pages: List[int] = []
        self.probes = 0

    @classmethod
    def validate(cls, config: SourceConfig):
        if config.params.get("broken"):
            return False, ["broken is set"]
        return True, []

    async def _probe(self):
        self.probes += 1
        kind = self.config.custom_settings.get("fail_probe")
        if kind:
            raise SourceError(kind, "probe failed", self.id)
        pages = self.config.custom_settings.get("pages") or []
        if self.config.custom_settings.get("endless"):
            self.total_pages = UNKNOWN
        else:
            self.total_pages = len(pages) or UNKNOWN
            self.total_count = sum(len(p) for p in pages)

    async def _fetch_page(self, page):
        self.fetched_pages.append(page)
        kind = self.config.custom_settings.get("fail_fetch")
        if kind:
            raise SourceError(kind, "fetch failed", self.id)
        if self.config.custom_settings.get("endless"):
            return make_images(f"p{page}")
        pages = self.config.custom_settings.get("pages") or []
        if page - 1 < len(pages):
            return make_images(*pages[page - 1])
        return []


def list_config(source_id="list-1", enabled=False, **custom_settings) -> SourceConfig:
    return SourceConfig(type="list", id=source_id, name=source_id, enabled=enabled,
                        custom_settings=custom_settings)


@pytest.fixture
def registry():
    registry = build_registry()
    registry.register("list", ListSource)
    return registry


# ============ Settings ============


class FixedClock:
    """Callable clock the tests can move."""

    def __init__(self, hour=12, minute=0):
        self.now = datetime(2024, 5, 1, hour, minute)

    def set(self, hour, minute=0):
        self.now = self.now.replace(hour=hour, minute=minute)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def settings():
    return Settings.from_dict(merge_settings({}))


@pytest.fixture
def store():
    return MemorySettingsStore({"wallpaper_sources": []})
