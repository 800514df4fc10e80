"""Pexels wallpaper source.

Searches when a query is set, otherwise pages through the curated feed.
The API key goes in the Authorization header, not the query string.
API docs: https://www.pexels.com/api/documentation/

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "pexels-ocean"
        type: "pexels"
        params:
          api_key: "YOUR_API_KEY"
          query: "ocean"
          orientation: "landscape"
"""

import logging
from typing import Any, Dict, List, Tuple

from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource, page_count, to_int

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 80
OPTIONAL_KEYS = ("orientation", "size", "color", "locale")


class PexelsSource(WallpaperSource):
    """Stock photos from pexels.com."""

    source_type = "pexels"
    default_base_url = "https://api.pexels.com/v1"
    default_endpoints = {
        "search": "/search",
        "detail": "/photos/{id}",
        "curated": "/curated",
    }
    default_description = (
        "Pexels API for fetching high-quality stock photos. "
        "Requires an API key for authentication."
    )
    doc_url = "https://www.pexels.com/api/documentation/"
    token_url = "https://www.pexels.com/api/"

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {
            "query": "",
            "page": 1,
            "per_page": 15,
            "orientation": "",
            "size": "",
            "color": "",
            "locale": "en-US",
        }

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        return [
            ParamDescriptor("api_key", "API Key", "password", required=True,
                            placeholder="Your Pexels API key"),
            ParamDescriptor("query", "Search Query", placeholder="nature, ocean, city...",
                            description="Leave empty for curated photos"),
            ParamDescriptor("orientation", "Orientation", "select", default="",
                            options=[{"value": v, "label": l} for v, l in (
                                ("", "Any"), ("landscape", "Landscape"),
                                ("portrait", "Portrait"), ("square", "Square"))]),
            ParamDescriptor("size", "Size", "select", default="",
                            options=[{"value": v, "label": l} for v, l in (
                                ("", "Any"), ("large", "Large (24MP+)"),
                                ("medium", "Medium (12-24MP)"), ("small", "Small (4-12MP)"))]),
            ParamDescriptor("color", "Color", "select", default="",
                            options=[{"value": v, "label": v.title() or "Any"} for v in (
                                "", "red", "orange", "yellow", "green", "turquoise", "blue",
                                "violet", "pink", "brown", "black", "gray", "white")]),
            ParamDescriptor("locale", "Locale", "select", default="en-US",
                            options=[{"value": v, "label": v} for v in (
                                "en-US", "pt-BR", "es-ES", "de-DE", "it-IT", "fr-FR",
                                "ja-JP", "zh-CN", "zh-TW", "ko-KR", "ru-RU")]),
            ParamDescriptor("per_page", "Photos Per Page", "number", default=15,
                            description=f"Photos per request (1-{MAX_PER_PAGE})"),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        params = config.params
        errors = []
        if not params.get("api_key"):
            errors.append("API key is required for Pexels API.")
        per_page = params.get("per_page")
        if per_page not in (None, "") and not 1 <= to_int(per_page, 0) <= MAX_PER_PAGE:
            errors.append(f"per_page must be between 1 and {MAX_PER_PAGE}.")
        return not errors, errors

    @property
    def per_page(self) -> int:
        return to_int(self.params.get("per_page"), 15) or 15

    async def _list(self, page: int) -> Dict[str, Any]:
        query = {"page": page, "per_page": self.per_page}
        if self.params.get("query"):
            endpoint = "search"
            query["query"] = self.params["query"]
            query.update({k: self.params.get(k) for k in OPTIONAL_KEYS})
        else:
            endpoint = "curated"
        url = self.build_endpoint_url(endpoint) + "?" + self.build_query(query)
        data = await self._get_json(url, {"Authorization": str(self.params.get("api_key", ""))})
        if not isinstance(data, dict) or not isinstance(data.get("photos"), list):
            raise SourceError(SourceErrorType.UNKNOWN, "Invalid response format from Pexels", self.id)
        self.total_count = to_int(data.get("total_results"), UNKNOWN) or UNKNOWN
        self.total_pages = page_count(data.get("total_results"), self.per_page)
        return data

    async def _probe(self):
        await self._list(1)

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        data = await self._list(page)
        return [self._transform(p) for p in data["photos"]]

    @staticmethod
    def _transform(photo: Dict[str, Any]) -> WallpaperImage:
        src = photo.get("src") or {}
        return WallpaperImage(
            id=str(photo.get("id", "")),
            url=src.get("large") or src.get("original") or src.get("large2x") or "",
            width=to_int(photo.get("width")) or None,
            height=to_int(photo.get("height")) or None,
            author=photo.get("photographer") or None,
            description=photo.get("alt") or None,
            download_url=src.get("original") or src.get("large2x") or src.get("large") or None,
        )
