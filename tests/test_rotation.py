"""Tests for the background rotator."""

import asyncio
import logging
import random

import pytest

from conftest import list_config, make_images
from core.event_bus import StateBus
from core.manager import SourceManager
from core.models import TimeRule
from core.rotation import BackgroundRotator, RotationMode, background_from_image
from core.wallpaper_source import WallpaperSource


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, background, style):
        self.calls.append((background, style))

    @property
    def ids(self):
        return [b.id if b else None for b, _ in self.calls]


def make_rotator(settings, clock, manager=None, **kwargs):
    render = Recorder()
    saved = []
    rotator = BackgroundRotator(settings, manager, render,
                                on_settings_changed=lambda s: saved.append(s.current_index),
                                clock=clock, tick_seconds=3600, rng=random.Random(3), **kwargs)
    return rotator, render, saved


# ============ Time-based ============


@pytest.mark.asyncio
async def test_time_based_renders_rule_background(settings, clock):
    clock.set(7)
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.start()
    assert render.ids == ["blue-purple-gradient"]
    assert render.calls[0][1].bg_size == "auto"
    await rotator.stop()


@pytest.mark.asyncio
async def test_time_based_only_rerenders_on_change(settings, clock):
    clock.set(7)
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.start()
    assert not await rotator.update_background()
    clock.set(8, 59)
    assert not await rotator.update_background()
    clock.set(9, 0)
    assert await rotator.update_background()
    assert render.ids == ["blue-purple-gradient", "pink-gradient"]
    await rotator.stop()


@pytest.mark.asyncio
async def test_night_rule_across_midnight(settings, clock):
    rotator, render, _ = make_rotator(settings, clock)
    for hour in (23, 0, 5):
        clock.set(hour, 59)
        await rotator.update_background()
    clock.set(6, 0)
    await rotator.update_background()
    assert render.ids == ["dark-blue-gray-gradient", "blue-purple-gradient"]


@pytest.mark.asyncio
async def test_no_matching_rule_clears_background(settings, clock):
    settings.time_rules = [TimeRule("day", "Day", "08:00", "20:00", "pink-gradient")]
    clock.set(12)
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.update_background()
    clock.set(21)
    assert await rotator.update_background()
    assert not await rotator.update_background()
    assert render.ids == ["pink-gradient", None]
    assert render.calls[-1][1] is None


@pytest.mark.asyncio
async def test_disabled_rule_is_skipped(settings, clock):
    settings.time_rules = [
        TimeRule("a", "A", "06:00", "12:00", "pink-gradient", enabled=False),
        TimeRule("b", "B", "09:00", "18:00", "blue-cyan-gradient"),
    ]
    clock.set(10)
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.update_background()
    assert render.ids == ["blue-cyan-gradient"]


def test_rule_pointing_at_missing_background(settings, clock, caplog):
    settings.time_rules = [TimeRule("x", "X", "00:00", "23:59", "deleted")]
    rotator, render, _ = make_rotator(settings, clock)
    with caplog.at_level(logging.WARNING, logger="core.rotation"):
        assert rotator.rule_background() is None
    assert "unknown background deleted" in caplog.text


@pytest.mark.asyncio
async def test_apply_current_rule(settings, clock):
    clock.set(12)
    rotator, render, _ = make_rotator(settings, clock)
    rule, background = await rotator.apply_current_rule()
    assert rule.id == "noon"
    assert background.id == "blue-cyan-gradient"
    assert render.ids == ["blue-cyan-gradient"]

    settings.mode = "manual"
    assert await rotator.apply_current_rule() == (None, None)


# ============ Interval / manual ============


@pytest.mark.asyncio
async def test_interval_round_robin_visits_every_background(settings, clock):
    settings.mode = "interval"
    rotator, render, saved = make_rotator(settings, clock)
    count = len(settings.backgrounds)
    for _ in range(count):
        assert await rotator.update_background()
    assert sorted(render.ids) == sorted(b.id for b in settings.backgrounds)
    assert settings.current_index == 0
    assert saved[-1] == 0
    assert len(saved) == count


@pytest.mark.asyncio
async def test_interval_prefers_remote_wallpaper(settings, clock, registry, http):
    settings.mode = "interval"
    settings.enable_random_wallpaper = True
    manager = SourceManager(registry, http, StateBus(), rng=random.Random(1))
    await manager.create_source(list_config(enabled=True, pages=[["a"]]))
    rotator, render, _ = make_rotator(settings, clock, manager)

    await rotator.update_background()
    background = render.calls[0][0]
    assert background.id == "list-1-a"
    assert background.type == "image"
    assert background.value == "https://img.example/a.jpg"
    assert render.calls[0][1].bg_size == "cover"
    assert settings.current_index == 0
    await manager.shutdown()


@pytest.mark.asyncio
async def test_interval_falls_back_to_local_when_remote_fails(settings, clock, registry, http):
    settings.mode = "interval"
    settings.enable_random_wallpaper = True
    manager = SourceManager(registry, http, StateBus())
    source = await manager.create_source(list_config(enabled=True, pages=[["a"]]))
    source.config.custom_settings["fail_fetch"] = "network"
    rotator, render, _ = make_rotator(settings, clock, manager)

    await rotator.update_background()
    assert render.ids == [settings.backgrounds[1].id]
    await manager.shutdown()


@pytest.mark.asyncio
async def test_manual_mode_only_moves_on_command(settings, clock):
    settings.mode = "manual"
    settings.current_index = 2
    rotator, render, saved = make_rotator(settings, clock)
    await rotator.start()
    assert render.ids == [settings.backgrounds[2].id]
    assert rotator._timer is None
    assert not await rotator.update_background()

    await rotator.next_background()
    assert render.ids[-1] == settings.backgrounds[3].id
    assert saved == [3]
    await rotator.stop()


@pytest.mark.asyncio
async def test_next_background_wraps(settings, clock):
    settings.current_index = len(settings.backgrounds) - 1
    rotator, render, _ = make_rotator(settings, clock)
    background = await rotator.next_background()
    assert background is settings.backgrounds[0]


@pytest.mark.asyncio
async def test_next_background_without_backgrounds(settings, clock):
    settings.backgrounds = []
    rotator, render, _ = make_rotator(settings, clock)
    assert await rotator.next_background() is None
    assert render.calls == []


@pytest.mark.asyncio
async def test_apply_random_wallpaper_ignores_toggle(settings, clock, registry, http):
    settings.enable_random_wallpaper = False
    manager = SourceManager(registry, http, StateBus())
    await manager.create_source(list_config(enabled=True, pages=[["a"]]))
    rotator, render, _ = make_rotator(settings, clock, manager)
    background = await rotator.apply_random_wallpaper()
    assert background.id == "list-1-a"
    await manager.shutdown()


def test_background_from_image():
    image = make_images("abc")[0]
    image.source_id = "src"
    background = background_from_image(image, "Wallhaven")
    assert background.id == "src-abc"
    assert background.name == "Wallhaven abc"
    assert (background.width, background.height) == (1920, 1080)


# ============ Enable / mode changes ============


@pytest.mark.asyncio
async def test_disable_renders_nothing_and_stops(settings, clock):
    clock.set(7)
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.start()
    await rotator.set_enabled(False)
    assert not rotator.running
    assert render.ids == ["blue-purple-gradient", None]
    assert not await rotator.update_background()
    assert await rotator.next_background() is not None
    assert len(render.calls) == 2

    assert await rotator.toggle()
    assert rotator.running
    assert render.ids[-1] == "blue-purple-gradient"
    await rotator.stop()


@pytest.mark.asyncio
async def test_set_mode_restarts_timer_only_when_running(settings, clock):
    rotator, render, _ = make_rotator(settings, clock)
    await rotator.set_mode("interval")
    assert settings.mode == "interval"
    assert rotator._timer is None

    await rotator.start()
    assert rotator._timer is not None
    await rotator.set_mode(RotationMode.MANUAL)
    assert rotator._timer is None
    await rotator.stop()


@pytest.mark.asyncio
async def test_set_mode_rejects_unknown(settings, clock):
    rotator, _, _ = make_rotator(settings, clock)
    with pytest.raises(ValueError):
        await rotator.set_mode("hourly")


@pytest.mark.asyncio
async def test_set_interval(settings, clock):
    rotator, _, _ = make_rotator(settings, clock)
    await rotator.set_interval(5)
    assert settings.interval_minutes == 5
    with pytest.raises(ValueError):
        await rotator.set_interval(0.5)


def test_unknown_stored_mode_reads_as_time_based(settings, clock):
    settings.mode = "sometimes"
    rotator, _, _ = make_rotator(settings, clock)
    assert rotator.mode is RotationMode.TIME_BASED


@pytest.mark.asyncio
async def test_timer_ticks(settings, clock):
    clock.set(7)
    render = Recorder()
    rotator = BackgroundRotator(settings, render=render, clock=clock, tick_seconds=0.01)
    await rotator.start()
    clock.set(10)
    for _ in range(50):
        if len(render.calls) > 1:
            break
        await asyncio.sleep(0.01)
    await rotator.stop()
    assert render.ids == ["blue-purple-gradient", "pink-gradient"]


@pytest.mark.asyncio
async def test_render_errors_are_contained(settings, clock, caplog):
    async def broken(background, style):
        raise RuntimeError("display gone")

    rotator = BackgroundRotator(settings, render=broken, clock=clock)
    with caplog.at_level(logging.ERROR, logger="core.rotation"):
        assert await rotator.next_background() is not None
    assert "display gone" in caplog.text


def test_wallpaper_source_is_abstract():
    with pytest.raises(TypeError):
        WallpaperSource(list_config(), None)
