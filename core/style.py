"""Effective display style of a background.

Each style value comes from the background item when it sets one and
from the global settings otherwise. The renderer gets plain numbers and
strings; turning them into CSS, a desktop call or anything else is its
business.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import config
from core.models import BackgroundItem, Settings

logger = logging.getLogger(__name__)

FALLBACK_RGB = (31, 30, 30)

# Image/screen aspect ratios closer than this count as "the same shape"
SIMILAR_RATIO = 0.1
# A taller image this far off the screen ratio is shown whole instead of cropped
TALL_RATIO_LIMIT = 0.5


@dataclass
class BackgroundStyle:
    blur_depth: float
    brightness: float
    saturate: float
    mask_color: str
    bg_size: str

    def to_dict(self) -> Dict:
        return asdict(self)


def hex_to_rgba(hex_color: str, opacity: float) -> str:
    """'#rgb' or '#rrggbb' plus opacity -> 'rgba(r, g, b, a)'."""
    value = (hex_color or "").replace("#", "")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        if len(value) != 6:
            raise ValueError(value)
        rgb = tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        logger.warning("Invalid hex color: %r", hex_color)
        rgb = FALLBACK_RGB
    return "rgba(%d, %d, %d, %s)" % (rgb + (opacity,))


def optimal_size(width: Optional[int], height: Optional[int],
                 screen_width: int = config.SCREEN_WIDTH,
                 screen_height: int = config.SCREEN_HEIGHT) -> str:
    """Pick cover/contain from known image dimensions; contain when unknown."""
    if not width or not height or not screen_width or not screen_height:
        return "contain"
    image_ratio = width / height
    screen_ratio = screen_width / screen_height
    difference = abs(image_ratio - screen_ratio) / screen_ratio
    if difference < SIMILAR_RATIO:
        return "cover"
    if image_ratio > screen_ratio:
        return "contain"
    return "contain" if difference > TALL_RATIO_LIMIT else "cover"


def resolve_style(background: BackgroundItem, settings: Settings,
                  screen_width: int = config.SCREEN_WIDTH,
                  screen_height: int = config.SCREEN_HEIGHT) -> BackgroundStyle:
    def pick(name):
        value = getattr(background, name)
        return getattr(settings, name) if value is None else value

    bg_size = pick("bg_size") or "intelligent"
    if bg_size == "intelligent":
        if background.type == "image":
            bg_size = optimal_size(background.width, background.height, screen_width, screen_height)
        else:
            bg_size = "auto"

    return BackgroundStyle(
        blur_depth=pick("blur_depth"),
        brightness=pick("brightness"),
        saturate=pick("saturate"),
        mask_color=hex_to_rgba(pick("bg_color"), pick("bg_color_opacity")),
        bg_size=bg_size,
    )
