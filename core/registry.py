"""Wallpaper source registry for Backdrop Station.

Maps a provider type tag (the ``type`` field of a SourceConfig) to the
WallpaperSource subclass that implements it, plus that class's static
metadata. The table is an ordinary object built once at startup and
passed to whoever needs it:

Usage:
    registry = SourceRegistry()
    register_builtin_sources(registry)      # from sources/
    source = registry.create(config, http)

Lookups for an unknown tag return None or an empty value instead of
raising, so callers can skip unsupported entries found in old settings.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from core.http import HttpClient
from core.models import ParamDescriptor, SourceConfig
from core.wallpaper_source import WallpaperSource

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Type tag -> WallpaperSource subclass."""

    def __init__(self):
        self._types: Dict[str, Type[WallpaperSource]] = {}

    def __contains__(self, source_type: str) -> bool:
        return source_type in self._types

    def register(self, source_type: str, cls: Type[WallpaperSource]):
        """Register cls under source_type, replacing any previous entry."""
        if source_type in self._types and self._types[source_type] is not cls:
            logger.info("Replacing source type %s: %s -> %s",
                        source_type, self._types[source_type].__name__, cls.__name__)
        self._types[source_type] = cls
        logger.debug("Registered source type: %s -> %s", source_type, cls.__name__)

    def get(self, source_type: str) -> Optional[Type[WallpaperSource]]:
        return self._types.get(source_type)

    def types(self) -> List[str]:
        return sorted(self._types)

    def create(self, config: SourceConfig, http: HttpClient) -> Optional[WallpaperSource]:
        cls = self.get(config.type)
        if cls is None:
            logger.warning("Unknown source type '%s' for source '%s'", config.type, config.id)
            return None
        return cls(config, http)

    # -- metadata queries ---------------------------------------------------

    def default_base_url(self, source_type: str) -> Optional[str]:
        cls = self.get(source_type)
        return cls.default_base_url if cls else None

    def default_endpoints(self, source_type: str) -> Dict[str, str]:
        cls = self.get(source_type)
        return dict(cls.default_endpoints) if cls else {}

    def default_params(self, source_type: str) -> Dict[str, Any]:
        cls = self.get(source_type)
        return cls.default_params() if cls else {}

    def default_description(self, source_type: str) -> Optional[str]:
        cls = self.get(source_type)
        return cls.default_description if cls else None

    def doc_url(self, source_type: str) -> Optional[str]:
        cls = self.get(source_type)
        return cls.doc_url if cls else None

    def token_url(self, source_type: str) -> Optional[str]:
        cls = self.get(source_type)
        return cls.token_url if cls else None

    def param_descriptors(self, source_type: str) -> List[ParamDescriptor]:
        cls = self.get(source_type)
        return cls.param_descriptors() if cls else []

    def custom_setting_descriptors(self, source_type: str) -> List[ParamDescriptor]:
        cls = self.get(source_type)
        return cls.custom_setting_descriptors() if cls else []

    def validate(self, config: SourceConfig) -> Tuple[bool, List[str]]:
        cls = self.get(config.type)
        if cls is None:
            return False, [f"Source type '{config.type}' is not registered"]
        return cls.validate(config)

    def describe(self, source_type: str) -> Optional[Dict[str, Any]]:
        """JSON-friendly summary of one type, for configuration UIs."""
        cls = self.get(source_type)
        if cls is None:
            return None
        return {
            "type": source_type,
            "description": cls.default_description,
            "base_url": cls.default_base_url,
            "endpoints": dict(cls.default_endpoints),
            "params": cls.default_params(),
            "doc_url": cls.doc_url,
            "token_url": cls.token_url,
            "param_descriptors": [d.to_dict() for d in cls.param_descriptors()],
            "custom_setting_descriptors": [d.to_dict() for d in cls.custom_setting_descriptors()],
        }
