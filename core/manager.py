"""Source manager for Backdrop Station.

Owns the live set of WallpaperSource instances (keyed by id) and runs the
enable/disable transactions, publishing each lifecycle step on the state
bus. Nothing raised by a provider escapes this module: operations return
a bool or None and the reason travels as a logged message, a bus state
and last_error.

Usage:
    manager = SourceManager(registry, RequestsHttpClient(), StateBus())
    await manager.load_sources(settings.wallpaper_sources)
    images = await manager.get_random_images(count=3)
"""

import logging
import random
from typing import Dict, Iterable, List, Optional

from core.errors import SourceError, SourceErrorType
from core.event_bus import StateBus
from core.http import HttpClient
from core.models import SourceConfig, SourceState, WallpaperImage, new_source_id
from core.registry import SourceRegistry
from core.wallpaper_source import WallpaperSource

logger = logging.getLogger(__name__)


class SourceManager:
    """Creates, enables, disables and queries wallpaper sources."""

    def __init__(self, registry: SourceRegistry, http: HttpClient,
                 bus: Optional[StateBus] = None, rng: Optional[random.Random] = None):
        self.registry = registry
        self.http = http
        self.bus = bus or StateBus()
        self._rng = rng or random.Random()
        self._sources: Dict[str, WallpaperSource] = {}
        self.last_error: Optional[SourceError] = None

    def __len__(self):
        return len(self._sources)

    # -- creation / deletion ------------------------------------------------

    async def create_source(self, config: SourceConfig) -> Optional[WallpaperSource]:
        """Validate config and build its source; enable it when config.enabled is set."""
        label = config.id or config.name or "<new>"
        try:
            valid, errors = self.registry.validate(config)
        except Exception as exc:
            return self._create_failed(SourceError.wrap(exc, config.id or None), label, config.type)
        if not valid:
            error = SourceError(SourceErrorType.PARAMETER,
                                "; ".join(errors) or "invalid parameters",
                                config.id or None, {"errors": errors})
            return self._create_failed(error, label, config.type)

        if not config.id:
            config.id = new_source_id()
        if config.id in self._sources:
            error = SourceError(SourceErrorType.CONFIGURATION,
                                f"Source id {config.id} already exists", config.id)
            return self._create_failed(error, label, config.type)

        try:
            source = self.registry.create(config, self.http)
        except Exception as exc:
            return self._create_failed(SourceError.wrap(exc, config.id), label, config.type)
        if source is None:
            error = SourceError(SourceErrorType.CONFIGURATION,
                                f"Source type {config.type} is not registered", config.id)
            return self._create_failed(error, label, config.type)
        self._sources[config.id] = source
        logger.info("Created source %s (%s)", config.id, config.type)

        if config.enabled:
            await self.enable_source(config.id)
        return source

    def _create_failed(self, error: SourceError, label: str, source_type: str) -> None:
        logger.warning("Source %s (%s) rejected: %s", label, source_type, error.message)
        self.last_error = error
        return None

    async def load_sources(self, configs: Iterable[SourceConfig]) -> List[WallpaperSource]:
        """Create every config in order, skipping the ones that are rejected."""
        created = []
        for source_config in configs:
            source = await self.create_source(source_config)
            if source is not None:
                created.append(source)
        return created

    async def delete_source(self, source_id: str) -> bool:
        source = self._sources.pop(source_id, None)
        if source is None:
            return False
        await source.try_disable()
        self.bus.cleanup_by_source(source_id)
        logger.info("Deleted source %s", source_id)
        return True

    async def delete_all_sources(self):
        for source_id in list(self._sources):
            await self.delete_source(source_id)

    # -- queries ------------------------------------------------------------

    def get_source(self, source_id: str) -> Optional[WallpaperSource]:
        return self._sources.get(source_id)

    def all_sources(self) -> List[WallpaperSource]:
        return list(self._sources.values())

    def enabled_sources(self) -> List[WallpaperSource]:
        return [s for s in self._sources.values() if s.enabled]

    def source_names(self) -> List[str]:
        return [s.name for s in self._sources.values()]

    def state_of(self, source_id: str) -> Optional[SourceState]:
        source = self._sources.get(source_id)
        if source is None:
            return None
        error = source.last_error.user_message() if source.last_error else None
        return SourceState(source.config.enabled, source.enabled, False, error)

    # -- transactions -------------------------------------------------------

    async def enable_source(self, source_id: str) -> bool:
        """Enable a source, publishing loading -> enabled | error.

        config.enabled ends up True only if the probe succeeded.
        """
        source = self._sources.get(source_id)
        if source is None:
            error = SourceError(SourceErrorType.CONFIGURATION,
                                f"Source {source_id} does not exist", source_id)
            logger.warning("enable_source: %s", error.message)
            self.last_error = error
            self.bus.notify(source_id, SourceState(False, False, False, error.user_message()))
            return False

        self.bus.notify(source_id, SourceState(True, False, True))
        try:
            ok = await source.try_enable()
        except Exception as exc:
            error = SourceError.wrap(exc, source_id)
            logger.error("Source %s enable raised: %s", source_id, exc)
            return self._enable_failed(source, error.user_message(), error)

        if not ok:
            error = source.last_error
            message = error.user_message() if error else f'Failed to enable source "{source.name}"'
            return self._enable_failed(source, message, error)

        source.config.enabled = True
        self.bus.notify(source_id, SourceState(True, True, False))
        logger.info("Source %s enabled", source_id)
        return True

    def _enable_failed(self, source: WallpaperSource, message: str,
                       error: Optional[SourceError]) -> bool:
        source.config.enabled = False
        self.last_error = error
        self.bus.notify(source.id, SourceState(False, False, False, message))
        logger.warning("Source %s could not be enabled: %s", source.id, message)
        return False

    async def disable_source(self, source_id: str) -> bool:
        source = self._sources.get(source_id)
        if source is None:
            logger.warning("disable_source: source %s does not exist", source_id)
            return False
        await source.try_disable()
        source.config.enabled = False
        self.bus.notify(source_id, SourceState(False, False, False))
        logger.info("Source %s disabled", source_id)
        return True

    # -- retrieval ----------------------------------------------------------

    async def get_random_images(self, source_id: Optional[str] = None,
                                count: int = 1) -> Optional[List[WallpaperImage]]:
        """Fetch count images from source_id, or from a random enabled source."""
        if source_id is not None:
            source = self._sources.get(source_id)
            if source is None:
                return self._retrieval_failed(SourceErrorType.CONFIGURATION,
                                              f"Source {source_id} does not exist", source_id)
        else:
            candidates = self.enabled_sources()
            if not candidates:
                return self._retrieval_failed(SourceErrorType.CONFIGURATION,
                                              "No source available")
            source = self._rng.choice(candidates)

        try:
            images = await source.get_images(count)
        except Exception as exc:
            error = SourceError.wrap(exc, source.id)
            return self._retrieval_failed(error.kind, error.message, source.id)

        if not images:
            cause = source.last_error
            if cause is not None:
                return self._retrieval_failed(cause.kind, f"No image returned ({cause.message})",
                                              source.id)
            return self._retrieval_failed(SourceErrorType.UNKNOWN, "No image returned", source.id)
        self.last_error = None
        return images

    def _retrieval_failed(self, kind: SourceErrorType, message: str,
                          source_id: Optional[str] = None) -> None:
        self.last_error = SourceError(kind, message, source_id)
        logger.warning("Image retrieval failed%s: %s",
                       f" [{source_id}]" if source_id else "", message)
        return None

    async def shutdown(self):
        """Disable every source and stop the bus dispatchers."""
        for source in list(self._sources.values()):
            await source.try_disable()
        await self.bus.close()
