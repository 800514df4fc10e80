"""Wallpaper source implementations for Backdrop Station.

Each provider lives in its own module. Nothing registers itself on
import: build_registry() (or register_builtin_sources() on an existing
registry) puts the built-in types into a SourceRegistry explicitly.
"""

import logging

from core.registry import SourceRegistry
from sources.custom_source import CustomSource
from sources.pexels_source import PexelsSource
from sources.pixabay_source import PixabaySource
from sources.qihoo360_source import Qihoo360Source
from sources.unsplash_source import UnsplashSource
from sources.wallhaven_source import WallhavenSource

logger = logging.getLogger(__name__)

BUILTIN_SOURCES = (
    WallhavenSource,
    UnsplashSource,
    PexelsSource,
    PixabaySource,
    Qihoo360Source,
    CustomSource,
)


def register_builtin_sources(registry: SourceRegistry) -> SourceRegistry:
    for cls in BUILTIN_SOURCES:
        registry.register(cls.source_type, cls)
    return registry


def build_registry() -> SourceRegistry:
    """A fresh registry holding every built-in source type."""
    return register_builtin_sources(SourceRegistry())


__all__ = [cls.__name__ for cls in BUILTIN_SOURCES] + [
    "BUILTIN_SOURCES",
    "build_registry",
    "register_builtin_sources",
]
