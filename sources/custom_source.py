"""Generic JSON wallpaper source.

Points at any URL that answers with JSON and pulls image URLs out of the
response with a JSONPath expression. There is no pagination: every
refresh re-requests the same URL, which suits "random image" endpoints.

Config example (in backdrop.yaml):
    wallpaper_sources:
      - id: "my-image-api"
        type: "custom"
        base_url: "https://example.com/api/random?count=5"
        headers:                          # optional
          Authorization: "Bearer xxx"
        custom_settings:
          image_url_json_path: "$.data[*].url"
"""

import logging
import time
from typing import Any, List, Tuple

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from core.errors import SourceError, SourceErrorType
from core.models import ParamDescriptor, SourceConfig, WallpaperImage
from core.wallpaper_source import WallpaperSource

logger = logging.getLogger(__name__)

JSON_PATH_KEY = "image_url_json_path"


def extract_urls(expression, data: Any) -> List[str]:
    """All string matches of expression in data; list matches are flattened once."""
    urls = []
    for match in expression.find(data):
        values = match.value if isinstance(match.value, list) else [match.value]
        urls.extend(v for v in values if isinstance(v, str) and v)
    return urls


class CustomSource(WallpaperSource):
    """Image URLs extracted from an arbitrary JSON endpoint."""

    source_type = "custom"
    default_description = (
        "Custom source for fetching images from JSON responses. "
        "Configure a JSONPath expression to extract image URLs."
    )

    def __init__(self, config, http):
        super().__init__(config, http)
        self._expression = parse_jsonpath(config.custom_settings[JSON_PATH_KEY])

    @classmethod
    def custom_setting_descriptors(cls) -> List[ParamDescriptor]:
        return [
            ParamDescriptor(JSON_PATH_KEY, "Image URL JSON Path", required=True,
                            placeholder="$.data.images[*].url or $.url or $[*].imageUrl",
                            description="JSONPath expression selecting the image URL(s) in the response"),
        ]

    @classmethod
    def validate(cls, config: SourceConfig) -> Tuple[bool, List[str]]:
        errors = []
        if not config.base_url:
            errors.append("A URL (base_url) is required for a custom source.")
        path = (config.custom_settings or {}).get(JSON_PATH_KEY)
        if not path:
            errors.append(f"custom_settings.{JSON_PATH_KEY} is required for a custom source.")
        else:
            try:
                parse_jsonpath(path)
            except JSONPathError as exc:
                errors.append(f"Invalid JSONPath expression {path!r}: {exc}")
        return not errors, errors

    async def _fetch(self) -> List[WallpaperImage]:
        data = await self._get_json(self.base_url)
        urls = extract_urls(self._expression, data)
        if not urls:
            logger.warning("Source %s: no URLs at %s", self.id, self.config.custom_settings[JSON_PATH_KEY])
        stamp = int(time.time() * 1000)
        return [WallpaperImage(id=f"custom_{stamp}_{i}", url=url) for i, url in enumerate(urls)]

    async def _probe(self):
        images = await self._fetch()
        if not images:
            raise SourceError(SourceErrorType.CONFIGURATION,
                              "The JSON path matched no image URLs", self.id)
        self.total_pages = 1
        self.total_count = len(images)

    async def _fetch_page(self, page: int) -> List[WallpaperImage]:
        images = await self._fetch()
        self.total_count = len(images) or self.total_count
        return images
