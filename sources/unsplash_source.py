"""Unsplash wallpaper source.

With a search query the source pages through /search/photos; without one
every refresh pulls a fresh random batch from /photos/random, so there is
no last page.
API docs: https://unsplash.com/documentation

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "unsplash-mountains"
        type: "unsplash"
        enabled: true
        params:
          client_id: "YOUR_ACCESS_KEY"
          query: "mountains"
          orientation: "landscape"
          per_page: 20
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource, to_int

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 30
COLLECTION_RE = re.compile(r"^\d+$")

SEARCH_KEYS = ("order_by", "orientation", "color", "content_filter", "collections")
RANDOM_KEYS = ("query", "orientation", "content_filter", "collections")


class UnsplashSource(WallpaperSource):
    """Photos from unsplash.com, searched or random."""

    source_type = "unsplash"
    default_base_url = "https://api.unsplash.com"
    default_endpoints = {
        "search": "/search/photos",
        "detail": "/photos/{id}",
        "random": "/photos/random",
    }
    default_description = (
        "Unsplash API for fetching high-quality photos. "
        "Requires an access key for authentication."
    )
    doc_url = "https://unsplash.com/documentation"
    token_url = "https://unsplash.com/oauth/applications"

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {
            "query": "",
            "page": 1,
            "per_page": 10,
            "order_by": "relevant",
            "orientation": "",
            "color": "",
            "content_filter": "low",
        }

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        return [
            ParamDescriptor("client_id", "Access Key", "password", required=True,
                            placeholder="Your Unsplash access key",
                            description="Access key of your Unsplash application"),
            ParamDescriptor("query", "Search Query", placeholder="nature, city, abstract...",
                            description="Leave empty for random photos"),
            ParamDescriptor("order_by", "Order By", "select", default="relevant",
                            options=[{"value": "relevant", "label": "Relevance"},
                                     {"value": "latest", "label": "Latest"}]),
            ParamDescriptor("orientation", "Orientation", "select", default="",
                            options=[{"value": v, "label": l} for v, l in (
                                ("", "Any"), ("landscape", "Landscape"),
                                ("portrait", "Portrait"), ("squarish", "Squarish"))]),
            ParamDescriptor("color", "Color", "select", default="",
                            options=[{"value": v, "label": v.replace("_", " ").title() or "Any"}
                                     for v in ("", "black_and_white", "black", "white", "yellow",
                                               "orange", "red", "purple", "magenta", "green",
                                               "teal", "blue")]),
            ParamDescriptor("content_filter", "Content Filter", "select", default="low",
                            options=[{"value": "low", "label": "Low (Default)"},
                                     {"value": "high", "label": "High (More restrictive)"}]),
            ParamDescriptor("collections", "Collections", placeholder="123456,789012",
                            description="Comma-separated collection IDs"),
            ParamDescriptor("per_page", "Photos Per Page", "number", default=10,
                            description=f"Photos per request (1-{MAX_PER_PAGE})"),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        params = config.params
        errors = []
        if not params.get("client_id"):
            errors.append("Access key (client_id) is required for Unsplash API.")
        per_page = params.get("per_page")
        if per_page not in (None, "") and not 1 <= to_int(per_page, 0) <= MAX_PER_PAGE:
            errors.append(f"per_page must be between 1 and {MAX_PER_PAGE}.")
        if params.get("collections") and not all(
                COLLECTION_RE.match(c.strip()) for c in str(params["collections"]).split(",")):
            errors.append("Collections must be comma-separated numeric IDs.")
        return not errors, errors

    @property
    def per_page(self) -> int:
        return to_int(self.params.get("per_page"), 10) or 10

    def _pick(self, keys) -> Dict[str, Any]:
        return {k: self.params.get(k) for k in keys}

    async def _search(self, page: int) -> Dict[str, Any]:
        query = {
            "client_id": self.params.get("client_id", ""),
            "query": self.params.get("query", ""),
            "page": page,
            "per_page": self.per_page,
            **self._pick(SEARCH_KEYS),
        }
        data = await self._get_json(self.build_endpoint_url("search") + "?" + self.build_query(query))
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise SourceError(SourceErrorType.UNKNOWN, "Invalid search response from Unsplash", self.id)
        return data

    async def _random(self, count: int) -> List[Dict[str, Any]]:
        query = {
            "client_id": self.params.get("client_id", ""),
            "count": count,
            **self._pick(RANDOM_KEYS),
        }
        data = await self._get_json(self.build_endpoint_url("random") + "?" + self.build_query(query))
        if not isinstance(data, list):
            raise SourceError(SourceErrorType.UNKNOWN, "Invalid random response from Unsplash", self.id)
        return data

    async def _probe(self):
        photos = await self._random(1)
        if not photos:
            raise SourceError(SourceErrorType.UNKNOWN, "Unsplash returned no photos", self.id)
        if self.params.get("query"):
            data = await self._search(1)
            self.total_pages = to_int(data.get("total_pages"), UNKNOWN) or UNKNOWN
            self.total_count = to_int(data.get("total"), UNKNOWN) or UNKNOWN
        else:
            self.total_pages = UNKNOWN
            self.total_count = UNKNOWN

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        if self.params.get("query"):
            data = await self._search(page)
            self.total_pages = to_int(data.get("total_pages"), UNKNOWN) or UNKNOWN
            self.total_count = to_int(data.get("total"), UNKNOWN) or UNKNOWN
            records = data["results"]
        else:
            records = await self._random(min(self.per_page, MAX_PER_PAGE))
        return [self._transform(r) for r in records]

    @staticmethod
    def _transform(photo: Dict[str, Any]) -> WallpaperImage:
        user = photo.get("user") or {}
        urls = photo.get("urls") or {}
        tags = [t.get("title") for t in photo.get("tags") or [] if isinstance(t, dict) and t.get("title")]
        return WallpaperImage(
            id=str(photo.get("id", "")),
            url=urls.get("regular") or urls.get("full") or urls.get("raw") or "",
            width=to_int(photo.get("width")) or None,
            height=to_int(photo.get("height")) or None,
            author=user.get("name") or user.get("username") or None,
            description=photo.get("description") or photo.get("alt_description") or None,
            tags=tags,
            download_url=urls.get("full") or urls.get("raw") or None,
        )
