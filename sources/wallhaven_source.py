"""Wallhaven wallpaper source.

Pages through /search results (24 per page, fixed by the API). Random
sorting with a seed gives a stable shuffled order across pages.
API docs: https://wallhaven.cc/help/api

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "wallhaven-landscapes"
        type: "wallhaven"
        enabled: true
        params:
          q: "landscape"
          categories: "100"      # general, anime, people
          purity: "100"          # sfw, sketchy, nsfw
          atleast: "1920x1080"
          apikey: ""             # needed for nsfw and higher limits
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from core.errors import SourceError, SourceErrorType
from core.models import UNKNOWN, ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource, to_int

logger = logging.getLogger(__name__)

SIZE_RE = re.compile(r"^\d+x\d+$")
COLOR_RE = re.compile(r"^[0-9a-fA-F]{6}$")
SEED_RE = re.compile(r"^[a-zA-Z0-9]{6}$")

CATEGORY_FLAGS = ("general", "anime", "people")
PURITY_FLAGS = ("sfw", "sketchy", "nsfw")


def flags_to_wire(names, default: str):
    """['general', 'people'] -> '101' for the given flag order."""
    def convert(value):
        if not isinstance(value, (list, tuple)):
            return default
        return "".join("1" if name in value else "0" for name in names)
    return convert


def flags_from_wire(names, default: str):
    def convert(value):
        text = str(value or default)
        return [name for name, bit in zip(names, text) if bit == "1"]
    return convert


class WallhavenSource(WallpaperSource):
    """Wallpapers from wallhaven.cc search."""

    source_type = "wallhaven"
    default_base_url = "https://wallhaven.cc/api/v1"
    default_endpoints = {
        "search": "/search",
        "detail": "/w/{id}",
        "tag": "/search/tags",
    }
    default_description = (
        "Wallhaven API for fetching wallpapers. Supports SFW, sketchy and NSFW "
        "content in the general, anime and people categories."
    )
    doc_url = "https://wallhaven.cc/help/api"
    token_url = "https://wallhaven.cc/settings/account"

    per_page = 24

    @classmethod
    def default_params(cls) -> Dict[str, Any]:
        return {
            "categories": "111",
            "purity": "100",
            "sorting": "random",
            "order": "desc",
            "topRange": "1M",
            "page": 1,
        }

    @classmethod
    def param_descriptors(cls) -> List[ParamDescriptor]:
        defaults = cls.default_params()
        return [
            ParamDescriptor("apikey", "API Key", "password",
                            placeholder="Your Wallhaven API key (optional)",
                            description="Required for NSFW content and higher rate limits"),
            ParamDescriptor("q", "Search Query", placeholder="nature, landscape, abstract...",
                            description="Search keywords for wallpapers"),
            ParamDescriptor("categories", "Categories", "multiselect", default=defaults["categories"],
                            description="Select which categories to include",
                            options=[{"value": n, "label": n.title()} for n in CATEGORY_FLAGS],
                            to_wire=flags_to_wire(CATEGORY_FLAGS, defaults["categories"]),
                            from_wire=flags_from_wire(CATEGORY_FLAGS, defaults["categories"])),
            ParamDescriptor("purity", "Content Purity", "multiselect", default=defaults["purity"],
                            description="Select content purity levels",
                            options=[{"value": "sfw", "label": "SFW"},
                                     {"value": "sketchy", "label": "Sketchy"},
                                     {"value": "nsfw", "label": "NSFW (18+)"}],
                            to_wire=flags_to_wire(PURITY_FLAGS, defaults["purity"]),
                            from_wire=flags_from_wire(PURITY_FLAGS, defaults["purity"])),
            ParamDescriptor("sorting", "Sort By", "select", default=defaults["sorting"],
                            options=[{"value": v, "label": l} for v, l in (
                                ("date_added", "Date Added"), ("relevance", "Relevance"),
                                ("random", "Random"), ("views", "Views"),
                                ("favorites", "Favorites"), ("toplist", "Top List"))]),
            ParamDescriptor("order", "Order", "select", default=defaults["order"],
                            options=[{"value": "desc", "label": "Descending"},
                                     {"value": "asc", "label": "Ascending"}]),
            ParamDescriptor("topRange", "Top Range", "select", default=defaults["topRange"],
                            description="Time range for top wallpapers",
                            options=[{"value": v, "label": v} for v in
                                     ("1d", "3d", "1w", "1M", "3M", "6M", "1y")]),
            ParamDescriptor("atleast", "Minimum Resolution", placeholder="1920x1080",
                            description="Minimum resolution in WIDTHxHEIGHT format"),
            ParamDescriptor("resolutions", "Resolutions", placeholder="1920x1080,2560x1440",
                            description="Comma-separated exact resolutions"),
            ParamDescriptor("ratios", "Aspect Ratios", placeholder="16x9,16x10",
                            description="Comma-separated aspect ratios"),
            ParamDescriptor("colors", "Colors", placeholder="660000,990000",
                            description="Comma-separated hex colors without #"),
            ParamDescriptor("seed", "Seed", placeholder="[a-zA-Z0-9]{6}",
                            description="Optional seed for random results"),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        params = config.params
        errors = []
        if params.get("atleast") and not SIZE_RE.match(str(params["atleast"])):
            errors.append("Invalid resolution format for 'atleast'. Use WIDTHxHEIGHT.")
        if params.get("resolutions") and not all(
                SIZE_RE.match(r) for r in str(params["resolutions"]).split(",")):
            errors.append("Invalid resolution format in 'resolutions'. Use WIDTHxHEIGHT.")
        if params.get("ratios") and not all(
                SIZE_RE.match(r) for r in str(params["ratios"]).split(",")):
            errors.append("Invalid aspect ratio format in 'ratios'. Use WIDTHxHEIGHT.")
        if params.get("colors") and not all(
                COLOR_RE.match(c) for c in str(params["colors"]).split(",")):
            errors.append("Invalid color format in 'colors'. Use 6-digit hex without #.")
        if params.get("seed") and not SEED_RE.match(str(params["seed"])):
            errors.append("Invalid seed format. Use exactly 6 alphanumeric characters.")
        return not errors, errors

    async def _search(self, page: int) -> Dict[str, Any]:
        url = self.build_endpoint_url("search") + "?" + self.build_query({**self.params, "page": page})
        data = await self._get_json(url)
        if not isinstance(data, dict):
            raise SourceError(SourceErrorType.UNKNOWN, "Unexpected Wallhaven response", self.id)
        return data

    def _read_meta(self, meta: Dict[str, Any]):
        self.total_pages = to_int(meta.get("last_page"), UNKNOWN) or UNKNOWN
        self.total_count = to_int(meta.get("total"), UNKNOWN) or UNKNOWN
        self.per_page = to_int(meta.get("per_page"), 0) or self.per_page

    async def _probe(self):
        data = await self._search(1)
        meta = data.get("meta")
        if not isinstance(meta, dict):
            raise SourceError(SourceErrorType.UNKNOWN, "Wallhaven response has no meta block", self.id)
        if (to_int(meta.get("last_page"), 0) <= 0 or to_int(meta.get("total"), -1) < 0
                or to_int(meta.get("per_page"), 0) <= 0):
            raise SourceError(SourceErrorType.UNKNOWN, "Wallhaven response has invalid pagination data",
                              self.id, {"meta": meta})
        self._read_meta(meta)

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        data = await self._search(page)
        records = data.get("data")
        if not isinstance(records, list):
            raise SourceError(SourceErrorType.UNKNOWN, "Invalid response format from Wallhaven", self.id)
        if isinstance(data.get("meta"), dict):
            self._read_meta(data["meta"])
        return [self._transform(r) for r in records]

    @staticmethod
    def _transform(record: Dict[str, Any]) -> WallpaperImage:
        tags = [t.get("name") for t in record.get("tags") or [] if isinstance(t, dict) and t.get("name")]
        return WallpaperImage(
            id=str(record.get("id", "")),
            url=str(record.get("path", "")),
            width=to_int(record.get("dimension_x")) or None,
            height=to_int(record.get("dimension_y")) or None,
            tags=tags,
            download_url=record.get("path") or None,
        )
