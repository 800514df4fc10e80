"""Pixabay wallpaper source.

Pages through the image search. Pixabay reports two totals: ``total`` is
every match, ``totalHits`` is how many the API will actually serve, so
pagination is computed from totalHits.
API docs: https://pixabay.com/api/docs/

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "pixabay-backgrounds"
        type: "pixabay"
        params:
          key: "YOUR_API_KEY"
          category: "backgrounds"
          orientation: "horizontal"
          min_width: 1920
"""

import logging
from typing import Any, Dict, List, Tuple

from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource, page_count, to_int

logger = logging.getLogger(__name__)

MIN_PER_PAGE = 3
MAX_PER_PAGE = 200
MAX_QUERY_LENGTH = 100

PASS_THROUGH = ("q", "lang", "image_type", "orientation", "category", "colors", "order")
CATEGORIES = (
    "backgrounds", "fashion", "nature", "science", "education", "feelings", "health",
    "people", "religion", "places", "animals", "industry", "computer", "food", "sports",
    "transportation", "travel", "buildings", "business", "music",
)


class PixabaySource(WallpaperSource):
    """Royalty-free images from pixabay.com."""

    source_type = "pixabay"
    default_base_url = "https://pixabay.com/api"
    default_endpoints = {
        "search": "/",
        "videos": "/videos/",
    }
    default_description = (
        "Pixabay API for fetching royalty-free images and videos. "
        "Requires an API key for authentication."
    )
    doc_url = "https://pixabay.com/api/docs/"
    token_url = "https://pixabay.com/accounts/register/"

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {
            "q": "",
            "lang": "en",
            "image_type": "all",
            "orientation": "all",
            "category": "",
            "min_width": 0,
            "min_height": 0,
            "colors": "",
            "editors_choice": False,
            "safesearch": False,
            "order": "popular",
            "page": 1,
            "per_page": 20,
        }

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        return [
            ParamDescriptor("key", "API Key", "password", required=True,
                            placeholder="Your Pixabay API key"),
            ParamDescriptor("q", "Search Query", placeholder="yellow flowers",
                            description=f"Search term, at most {MAX_QUERY_LENGTH} characters"),
            ParamDescriptor("image_type", "Image Type", "select", default="all",
                            options=[{"value": v, "label": v.title()} for v in
                                     ("all", "photo", "illustration", "vector")]),
            ParamDescriptor("orientation", "Orientation", "select", default="all",
                            options=[{"value": v, "label": v.title()} for v in
                                     ("all", "horizontal", "vertical")]),
            ParamDescriptor("category", "Category", "select", default="",
                            options=[{"value": "", "label": "All Categories"}]
                            + [{"value": c, "label": c.title()} for c in CATEGORIES]),
            ParamDescriptor("colors", "Colors", "multiselect", default="",
                            options=[{"value": c, "label": c.title()} for c in (
                                "grayscale", "transparent", "red", "orange", "yellow", "green",
                                "turquoise", "blue", "lilac", "pink", "white", "gray",
                                "black", "brown")],
                            to_wire=lambda v: ",".join(v) if isinstance(v, (list, tuple)) else (v or ""),
                            from_wire=lambda v: [c for c in str(v or "").split(",") if c]),
            ParamDescriptor("min_width", "Minimum Width", "number", default=0),
            ParamDescriptor("min_height", "Minimum Height", "number", default=0),
            ParamDescriptor("editors_choice", "Editor's Choice", "boolean", default=False),
            ParamDescriptor("safesearch", "Safe Search", "boolean", default=False),
            ParamDescriptor("order", "Order By", "select", default="popular",
                            options=[{"value": "popular", "label": "Popular"},
                                     {"value": "latest", "label": "Latest"}]),
            ParamDescriptor("per_page", "Photos Per Page", "number", default=20,
                            description=f"Images per request ({MIN_PER_PAGE}-{MAX_PER_PAGE})"),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        params = config.params
        errors = []
        if not params.get("key"):
            errors.append("API key is required for Pixabay API.")
        per_page = params.get("per_page")
        if per_page not in (None, "") and not MIN_PER_PAGE <= to_int(per_page, 0) <= MAX_PER_PAGE:
            errors.append(f"per_page must be between {MIN_PER_PAGE} and {MAX_PER_PAGE}.")
        if len(str(params.get("q") or "")) > MAX_QUERY_LENGTH:
            errors.append(f"Search query cannot exceed {MAX_QUERY_LENGTH} characters.")
        for key in ("min_width", "min_height"):
            if params.get(key) and to_int(params[key], -1) < 0:
                errors.append(f"{key} must be 0 or greater.")
        return not errors, errors

    @property
    def per_page(self) -> int:
        return to_int(self.params.get("per_page"), 20) or 20

    def _query(self, page: int) -> Dict[str, Any]:
        query = {
            "key": self.params.get("key", ""),
            "page": page,
            "per_page": self.per_page,
        }
        query.update({k: self.params.get(k) for k in PASS_THROUGH})
        for key in ("min_width", "min_height"):
            if to_int(self.params.get(key), 0) > 0:
                query[key] = self.params[key]
        for key in ("editors_choice", "safesearch"):
            if self.params.get(key):
                query[key] = True
        return query

    async def _search(self, page: int) -> Dict[str, Any]:
        url = self.build_endpoint_url("search") + "?" + self.build_query(self._query(page))
        data = await self._get_json(url)
        if not isinstance(data, dict) or not isinstance(data.get("hits"), list):
            raise SourceError(SourceErrorType.UNKNOWN, "Invalid response format from Pixabay", self.id)
        self.total_pages = page_count(data.get("totalHits"), self.per_page)
        self.total_count = to_int(data.get("total"), UNKNOWN) or UNKNOWN
        return data

    async def _probe(self):
        await self._search(1)

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        data = await self._search(page)
        return [self._transform(h) for h in data["hits"]]

    @staticmethod
    def _transform(hit: Dict[str, Any]) -> WallpaperImage:
        tags = [t.strip() for t in str(hit.get("tags") or "").split(",") if t.strip()]
        return WallpaperImage(
            id=str(hit.get("id", "")),
            url=hit.get("largeImageURL") or hit.get("fullHDURL") or hit.get("webformatURL") or "",
            width=to_int(hit.get("imageWidth")) or to_int(hit.get("webformatWidth")) or None,
            height=to_int(hit.get("imageHeight")) or to_int(hit.get("webformatHeight")) or None,
            author=hit.get("user") or None,
            description=hit.get("tags") or None,
            tags=tags,
            download_url=hit.get("imageURL") or hit.get("largeImageURL") or hit.get("fullHDURL") or None,
        )
