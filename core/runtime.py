"""Composition root for Backdrop Station.

BackdropRuntime builds the whole object graph from one settings store:
registry -> HTTP client -> state bus -> source manager -> rotator. The
CLI and the web app each own exactly one of these; nothing in the core
reaches for a global instance.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from core.event_bus import StateBus
from core.http import HttpClient, RequestsHttpClient
from core.manager import SourceManager
from core.models import SourceConfig
from core.registry import SourceRegistry
from core.rotation import BackgroundRotator, Renderer
from core.settings_store import SettingsStore, load_settings, save_settings
from core.wallpaper_source import WallpaperSource

logger = logging.getLogger(__name__)


class BackdropRuntime:
    """Owns settings, sources and the rotator for one process."""

    def __init__(self, store: SettingsStore, registry: SourceRegistry,
                 http: Optional[HttpClient] = None, render: Optional[Renderer] = None,
                 clock: Callable[[], datetime] = datetime.now, **rotator_options):
        self.store = store
        self.settings = load_settings(store)
        self.registry = registry
        self.http = http or RequestsHttpClient()
        self.bus = StateBus()
        self.manager = SourceManager(self.registry, self.http, self.bus)
        self.rotator = BackgroundRotator(
            self.settings, self.manager, render,
            on_settings_changed=lambda _settings: self.save(),
            clock=clock, **rotator_options,
        )

    async def start(self, rotate: bool = True):
        """Create the configured sources, then start rotating if enabled."""
        await self.manager.load_sources(self.settings.wallpaper_sources)
        logger.info("Loaded %d of %d wallpaper sources",
                    len(self.manager), len(self.settings.wallpaper_sources))
        if rotate and self.settings.enabled:
            await self.rotator.start()

    async def stop(self):
        await self.rotator.stop()
        await self.manager.shutdown()
        self.http.close()
        self.save()

    def save(self):
        save_settings(self.store, self.settings)

    # -- source edits that also touch the persisted list --------------------

    async def add_source(self, config: SourceConfig) -> Optional[WallpaperSource]:
        source = await self.manager.create_source(config)
        if source is not None:
            self.settings.wallpaper_sources.append(config)
            self.save()
        return source

    async def remove_source(self, source_id: str) -> bool:
        removed = await self.manager.delete_source(source_id)
        before = len(self.settings.wallpaper_sources)
        self.settings.wallpaper_sources = [
            c for c in self.settings.wallpaper_sources if c.id != source_id
        ]
        if removed or len(self.settings.wallpaper_sources) != before:
            self.save()
            return True
        return False

    async def enable_source(self, source_id: str) -> bool:
        ok = await self.manager.enable_source(source_id)
        self.save()
        return ok

    async def disable_source(self, source_id: str) -> bool:
        ok = await self.manager.disable_source(source_id)
        self.save()
        return ok
