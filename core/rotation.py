"""Background rotation for Backdrop Station.

Decides which background is on screen. Three modes:

    time-based  every minute, show the background of the first matching
                time rule; only re-render when that changes
    interval    every interval_minutes, show a fresh remote wallpaper when
                random wallpapers are enabled, else (or when fetching fails)
                step through the local background list
    manual      never changes on its own; only commands move it

The renderer is any callable taking (background, style); it may be a
coroutine function. background is None when nothing should be shown.
"""

import asyncio
import inspect
import logging
import random
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import config
from core.manager import SourceManager
from core.models import BackgroundItem, Settings, TimeRule, WallpaperImage
from core.schedule import resolve_rule, seconds_until_next_change
from core.style import BackgroundStyle, resolve_style

logger = logging.getLogger(__name__)

Renderer = Callable[[Optional[BackgroundItem], Optional[BackgroundStyle]], Any]


class RotationMode(str, Enum):
    TIME_BASED = "time-based"
    INTERVAL = "interval"
    MANUAL = "manual"


def background_from_image(image: WallpaperImage, source_name: str = "") -> BackgroundItem:
    prefix = image.source_id or "remote"
    return BackgroundItem(
        id=f"{prefix}-{image.id}",
        name=f"{source_name or prefix} {image.id}".strip(),
        type="image",
        value=image.url,
        width=image.width,
        height=image.height,
    )


async def _maybe_await(result):
    if inspect.isawaitable(result):
        return await result
    return result


class BackgroundRotator:
    """Runs the rotation timer and renders the chosen background."""

    def __init__(self, settings: Settings, manager: Optional[SourceManager] = None,
                 render: Optional[Renderer] = None,
                 on_settings_changed: Optional[Callable[[Settings], Any]] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 tick_seconds: float = config.TIME_BASED_TICK_SECONDS,
                 rng: Optional[random.Random] = None):
        self.settings = settings
        self.manager = manager
        self._render = render
        self._on_settings_changed = on_settings_changed
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._rng = rng or random.Random()
        self.background: Optional[BackgroundItem] = None
        self._timer: Optional[asyncio.Task] = None
        self._active = False

    @property
    def mode(self) -> RotationMode:
        try:
            return RotationMode(self.settings.mode)
        except ValueError:
            logger.warning("Unknown rotation mode %r, using time-based", self.settings.mode)
            return RotationMode.TIME_BASED

    @property
    def running(self) -> bool:
        return self._active

    # -- timer ------------------------------------------------------------

    async def start(self):
        """Start ticking in the current mode and render once right away."""
        self._active = True
        self._restart_timer()
        await self.update_background(force=True)

    async def stop(self):
        self._active = False
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        logger.info("Rotation stopped")

    def _tick_delay(self, mode: RotationMode) -> Optional[float]:
        if mode is RotationMode.TIME_BASED:
            return self._tick_seconds
        if mode is RotationMode.INTERVAL:
            minutes = max(float(self.settings.interval_minutes), config.MIN_INTERVAL_MINUTES)
            return minutes * 60
        return None

    def _restart_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        mode = self.mode
        delay = self._tick_delay(mode)
        if delay is None:
            logger.info("Rotation in %s mode, no timer", mode.value)
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._run(delay), name="rotation-timer"
        )
        logger.info("Rotation in %s mode, tick every %.0fs", mode.value, delay)
        if mode is RotationMode.TIME_BASED:
            wait = seconds_until_next_change(self.settings.time_rules, self._clock())
            if wait is not None:
                logger.debug("Next time rule boundary in %.0fs", wait)

    async def _run(self, delay: float):
        while True:
            await asyncio.sleep(delay)
            try:
                await self.update_background()
            except Exception as exc:
                logger.error("Rotation tick failed: %s", exc)

    # -- mode / settings changes --------------------------------------------

    async def set_mode(self, mode):
        mode = RotationMode(mode)
        self.settings.mode = mode.value
        await self._settings_changed()
        if self.running:
            self._restart_timer()
        await self.update_background(force=True)

    async def set_interval(self, minutes: float):
        if minutes < config.MIN_INTERVAL_MINUTES:
            raise ValueError(f"Interval must be at least {config.MIN_INTERVAL_MINUTES} minute(s)")
        self.settings.interval_minutes = minutes
        await self._settings_changed()
        if self.running and self.mode is RotationMode.INTERVAL:
            self._restart_timer()

    async def set_enabled(self, enabled: bool):
        self.settings.enabled = bool(enabled)
        await self._settings_changed()
        if enabled:
            await self.start()
        else:
            await self.stop()
            await self._apply(None, force_render=True)

    async def toggle(self) -> bool:
        await self.set_enabled(not self.settings.enabled)
        return self.settings.enabled

    # -- resolution ---------------------------------------------------------

    def current_rule(self) -> Optional[TimeRule]:
        return resolve_rule(self.settings.time_rules, self._clock())

    def rule_background(self) -> Optional[BackgroundItem]:
        rule = self.current_rule()
        if rule is None:
            return None
        background = self.settings.find_background(rule.background_id)
        if background is None:
            logger.warning("Time rule %s points at unknown background %s",
                           rule.id, rule.background_id)
        return background

    async def update_background(self, force: bool = False) -> bool:
        """One resolution pass. Returns True when the renderer was called."""
        if not self.settings.enabled:
            return False

        mode = self.mode
        if mode is RotationMode.TIME_BASED:
            target = self.rule_background()
            if not force and _id(target) == _id(self.background):
                return False
            return await self._apply(target)

        if mode is RotationMode.INTERVAL:
            target = None
            if self.settings.enable_random_wallpaper:
                target = await self.fetch_remote_background()
            if target is None:
                target = await self._advance_local()
            return await self._apply(target if target is not None else self.background)

        target = self._local_at(self.settings.current_index)
        if not force and _id(target) == _id(self.background):
            return False
        return await self._apply(target)

    async def fetch_remote_background(self) -> Optional[BackgroundItem]:
        if self.manager is None:
            return None
        images = await self.manager.get_random_images(count=1)
        if not images:
            return None
        image = self._rng.choice(images)
        if not image.url:
            logger.warning("Source %s returned an image without a URL", image.source_id)
            return None
        source = self.manager.get_source(image.source_id) if image.source_id else None
        return background_from_image(image, source.name if source else "")

    def _local_at(self, index: int) -> Optional[BackgroundItem]:
        backgrounds = self.settings.backgrounds
        if not backgrounds:
            return None
        return backgrounds[index % len(backgrounds)]

    async def _advance_local(self) -> Optional[BackgroundItem]:
        backgrounds = self.settings.backgrounds
        if not backgrounds:
            return None
        self.settings.current_index = (self.settings.current_index + 1) % len(backgrounds)
        await self._settings_changed()
        return backgrounds[self.settings.current_index]

    # -- commands -----------------------------------------------------------

    async def next_background(self) -> Optional[BackgroundItem]:
        """Step to the next local background, whatever the mode."""
        target = await self._advance_local()
        if target is not None:
            await self._apply(target)
        return target

    async def apply_random_wallpaper(self) -> Optional[BackgroundItem]:
        """Show a remote wallpaper now, falling back to the next local one."""
        target = await self.fetch_remote_background()
        if target is None:
            target = await self._advance_local()
        if target is not None:
            await self._apply(target)
        return target

    async def apply_current_rule(self) -> Tuple[Optional[TimeRule], Optional[BackgroundItem]]:
        """Show the current time rule's background immediately (time-based mode only)."""
        if self.mode is not RotationMode.TIME_BASED:
            logger.info("Current-rule check only applies in time-based mode")
            return None, None
        rule = self.current_rule()
        if rule is None:
            logger.info("No time rule matches %s", self._clock().strftime("%H:%M"))
            return None, None
        background = self.settings.find_background(rule.background_id)
        if background is not None:
            await self._apply(background)
        return rule, background

    # -- output -------------------------------------------------------------

    async def _apply(self, background: Optional[BackgroundItem], force_render: bool = False) -> bool:
        self.background = background
        if not self.settings.enabled and not force_render:
            return False
        style = resolve_style(background, self.settings) if background is not None else None
        logger.info("Background -> %s", background.id if background else "none")
        if self._render is None:
            return True
        try:
            await _maybe_await(self._render(background, style))
        except Exception as exc:
            logger.error("Render failed: %s", exc)
        return True

    async def _settings_changed(self):
        if self._on_settings_changed is None:
            return
        try:
            await _maybe_await(self._on_settings_changed(self.settings))
        except Exception as exc:
            logger.error("Saving settings failed: %s", exc)


def _id(background: Optional[BackgroundItem]) -> Optional[str]:
    return background.id if background is not None else None
