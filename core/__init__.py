"""Core framework for Backdrop Station.

Sources fetch wallpapers from remote providers; the rotator decides what
is on screen right now.

Architecture:
    WallpaperSource   -- fetches and caches one provider's images, a page at a time
    SourceRegistry    -- type tag -> source class + static metadata, built at startup
    StateBus          -- queued per-source delivery of lifecycle state to observers
    SourceManager     -- owns live sources, runs enable/disable transactions
    BackgroundRotator -- time-based / interval / manual selection and rendering
    BackdropRuntime   -- wires all of the above from a settings store
"""

from core.errors import SourceError, SourceErrorType
from core.event_bus import StateBus, StateSubscriber
from core.manager import SourceManager
from core.models import (
    BackgroundItem,
    ParamDescriptor,
    Settings,
    SourceConfig,
    SourceState,
    TimeRule,
    WallpaperImage,
)
from core.registry import SourceRegistry
from core.rotation import BackgroundRotator, RotationMode
from core.runtime import BackdropRuntime
from core.schedule import resolve_rule
from core.wallpaper_source import WallpaperSource

__all__ = [
    "BackdropRuntime",
    "BackgroundItem",
    "BackgroundRotator",
    "ParamDescriptor",
    "RotationMode",
    "Settings",
    "SourceConfig",
    "SourceError",
    "SourceErrorType",
    "SourceManager",
    "SourceRegistry",
    "SourceState",
    "StateBus",
    "StateSubscriber",
    "TimeRule",
    "WallpaperImage",
    "WallpaperSource",
    "resolve_rule",
]
