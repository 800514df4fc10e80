"""360 Wallpaper (wallpaper.apc.360.cn) source.

Three ways to browse: one category, the newest uploads, or a keyword
search. The API pages with start/count offsets and reports its total as
a string; image links are rewritten to https.

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "qihoo-landscape"
        type: "qihoo360"
        params:
          searchMode: "category"
          cid: "9"                # landscapes
          count: 24
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource, page_count, to_int

logger = logging.getLogger(__name__)

MAX_COUNT = 100

CATEGORIES = {
    "36": "4K", "6": "Models", "30": "Love", "9": "Landscapes", "15": "Fresh",
    "26": "Anime", "11": "Celebrities", "14": "Pets", "5": "Games", "12": "Cars",
    "10": "Fashion", "29": "Calendars", "7": "Film stills", "13": "Festivals",
    "22": "Military", "16": "Sports", "18": "Babies", "35": "Typography",
}

# Best first
RESOLUTION_FIELDS = (
    "img_1920_1080", "img_1600_900", "img_1440_900", "img_1366_768",
    "img_1280_1024", "img_1280_800", "img_1024_768", "img_800_600", "url_mobile",
)

CATEGORY_TAG_RE = re.compile(r"_category_([^_]+)_")


class Qihoo360Source(WallpaperSource):
    """Wallpapers from the 360 wallpaper service."""

    source_type = "qihoo360"
    default_base_url = "http://wallpaper.apc.360.cn"
    default_endpoints = {
        "categories": "/index.php?c=WallPaperAndroid&a=getAllCategories",
        "search": "/index.php?c=WallPaper&a=search",
        "category": "/index.php?c=WallPaperAndroid&a=getAppsByCategory",
        "newest": "/index.php?c=WallPaper&a=getAppsByOrder&order=create_time",
    }
    default_description = (
        "360 Wallpaper API with a large collection of landscape, anime, game "
        "and other categorized wallpapers."
    )

    def __init__(self, config, http):
        super().__init__(config, http)
        self.categories: Dict[str, str] = {}

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {
            "searchMode": "category",
            "cid": "9",
            "start": 0,
            "count": 24,
            "kw": "",
            "from": "360chrome",
        }

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        return [
            ParamDescriptor("searchMode", "Browse Mode", "select", default="category",
                            options=[{"value": "category", "label": "By category"},
                                     {"value": "search", "label": "Keyword search"},
                                     {"value": "newest", "label": "Newest"}]),
            ParamDescriptor("cid", "Category", "select", default="9",
                            options=[{"value": k, "label": v} for k, v in CATEGORIES.items()]),
            ParamDescriptor("kw", "Keyword", description="Only used in keyword search mode"),
            ParamDescriptor("count", "Images Per Page", "number", default=24,
                            description=f"Images per request (1-{MAX_COUNT})"),
            ParamDescriptor("preferredResolution", "Preferred Resolution", "select", default="auto",
                            options=[{"value": "auto", "label": "Best available"}]
                            + [{"value": f.replace("img_", "").replace("_", "x"),
                                "label": f.replace("img_", "").replace("_", "x")}
                               for f in RESOLUTION_FIELDS if f.startswith("img_")]),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        params = {**cls.default_params(), **config.params}
        errors = []
        count = params.get("count")
        if count not in (None, "") and not 1 <= to_int(count, 0) <= MAX_COUNT:
            errors.append(f"count must be between 1 and {MAX_COUNT}.")
        mode = params.get("searchMode")
        if mode not in ("category", "search", "newest"):
            errors.append(f"Unknown browse mode {mode!r}.")
        if mode == "search" and not params.get("kw"):
            errors.append("A keyword is required in search mode.")
        if mode == "category" and str(params.get("cid")) not in CATEGORIES:
            errors.append("Invalid category id.")
        return not errors, errors

    @property
    def count(self) -> int:
        return to_int(self.params.get("count"), 24) or 24

    def _teardown(self):
        self.categories = {}

    async def _call(self, endpoint: str, **query) -> Dict[str, Any]:
        url = self.build_endpoint_url(endpoint)
        extra = self.build_query(query)
        if extra:
            url += ("&" if "?" in url else "?") + extra
        data = await self._get_json(url)
        if not isinstance(data, dict) or str(data.get("errno", "0")) != "0":
            message = data.get("errmsg") if isinstance(data, dict) else "unexpected response"
            raise SourceError(SourceErrorType.UNKNOWN, f"360 API error: {message}", self.id)
        return data

    async def _probe(self):
        data = await self._call("categories")
        self.categories = {
            str(c.get("id")): c.get("name", "") for c in data.get("data") or [] if isinstance(c, dict)
        }
        logger.debug("Source %s: %d categories", self.id, len(self.categories))

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        mode = self.params.get("searchMode") or "category"
        start = to_int(self.params.get("start"), 0) + (page - 1) * self.count
        query = {"start": start, "count": self.count, "from": self.params.get("from")}
        if mode == "search":
            data = await self._call("search", kw=self.params.get("kw"), **query)
        elif mode == "newest":
            data = await self._call("newest", **query)
        else:
            data = await self._call("category", cid=self.params.get("cid"), **query)

        self.total_count = to_int(data.get("total"), UNKNOWN) or UNKNOWN
        self.total_pages = page_count(data.get("total"), self.count)
        return [self._transform(item, i) for i, item in enumerate(data.get("data") or [])]

    def _pick_url(self, item: Dict[str, Any]) -> str:
        preferred = self.params.get("preferredResolution") or "auto"
        url = item.get("url", "")
        if preferred != "auto":
            url = item.get("img_" + str(preferred).replace("x", "_")) or url
        else:
            for field in RESOLUTION_FIELDS:
                if item.get(field) and item[field] != "no_data":
                    url = item[field]
                    break
        return str(url).replace("http://", "https://")

    def _transform(self, item: Dict[str, Any], index: int) -> WallpaperImage:
        width = height = None
        if item.get("resolution") and "x" in str(item["resolution"]):
            width, height = (to_int(v) for v in str(item["resolution"]).split("x", 1))

        if item.get("utag"):
            tags = [t for t in str(item["utag"]).split() if t]
        elif item.get("tag"):
            tags = CATEGORY_TAG_RE.findall(str(item["tag"])) or str(item["tag"]).split()
        else:
            tags = []
        category = self.categories.get(str(item.get("cid"))) or CATEGORIES.get(str(item.get("cid")), "")

        url = self._pick_url(item)
        return WallpaperImage(
            id=str(item.get("pid") or item.get("id") or f"360-{index}"),
            url=url,
            author="360 Wallpaper",
            description=", ".join(tags) if tags else category or None,
            tags=tags or ([category] if category else []),
            width=width,
            height=height,
            download_url=url,
        )
