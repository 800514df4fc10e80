"""Tests for effective background style resolution."""

import pytest

from core.models import BackgroundItem
from core.style import hex_to_rgba, optimal_size, resolve_style


def test_hex_to_rgba():
    assert hex_to_rgba("#1f1e1e", 0.5) == "rgba(31, 30, 30, 0.5)"
    assert hex_to_rgba("#fff", 1) == "rgba(255, 255, 255, 1)"
    assert hex_to_rgba("000000", 0.2) == "rgba(0, 0, 0, 0.2)"


@pytest.mark.parametrize("value", ["", "#12", "#zzzzzz", None])
def test_hex_to_rgba_falls_back(value):
    assert hex_to_rgba(value, 0.5) == "rgba(31, 30, 30, 0.5)"


@pytest.mark.parametrize("width, height, expected", [
    (1920, 1080, "cover"),       # same shape
    (2560, 1440, "cover"),
    (3840, 1080, "contain"),     # much wider
    (1080, 1920, "contain"),     # portrait, far off
    (1600, 1200, "cover"),       # a bit taller
    (None, 1080, "contain"),
    (0, 0, "contain"),
])
def test_optimal_size(width, height, expected):
    assert optimal_size(width, height, 1920, 1080) == expected


def gradient(**overrides):
    return BackgroundItem(id="g", name="G", type="gradient",
                          value="linear-gradient(#000, #fff)", **overrides)


def test_global_settings_apply_by_default(settings):
    style = resolve_style(gradient(), settings)
    assert style.blur_depth == settings.blur_depth
    assert style.brightness == settings.brightness
    assert style.saturate == settings.saturate
    assert style.mask_color == "rgba(31, 30, 30, 0.5)"
    assert style.bg_size == "auto"  # intelligent sizing only applies to images


def test_item_overrides_win(settings):
    style = resolve_style(gradient(blur_depth=4, brightness=0, bg_color="#ffffff",
                                   bg_color_opacity=1, bg_size="cover"), settings)
    assert style.blur_depth == 4
    assert style.brightness == 0
    assert style.mask_color == "rgba(255, 255, 255, 1)"
    assert style.bg_size == "cover"


def test_intelligent_size_for_images(settings):
    image = BackgroundItem(id="i", name="I", type="image", value="https://x/y.jpg",
                           width=1080, height=1920)
    assert resolve_style(image, settings, 1920, 1080).bg_size == "contain"
    image.width, image.height = 1920, 1080
    assert resolve_style(image, settings, 1920, 1080).bg_size == "cover"
