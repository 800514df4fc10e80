"""Backdrop Station - Configuration

Built-in defaults. Anything saved in the settings file (backdrop.yaml by
default) is merged over DEFAULT_SETTINGS field by field, so a fresh install
starts with the day-cycle gradients below and one disabled Wallhaven source.

Times are "HH:MM" local time. Rules are checked top to bottom and the
first enabled rule containing the current minute wins; the night rule
wraps past midnight.
"""

# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS_PATH = "backdrop.yaml"

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------
TIME_BASED_TICK_SECONDS = 60        # rules have minute resolution
MIN_INTERVAL_MINUTES = 1

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
HTTP_TIMEOUT = 15                   # seconds per request
HTTP_USER_AGENT = "BackdropStation/1.0"

# ---------------------------------------------------------------------------
# State bus
# ---------------------------------------------------------------------------
BUS_QUEUE_SIZE = 100                # pending states per source before dropping the oldest

# ---------------------------------------------------------------------------
# Display (used by the "intelligent" size policy)
# ---------------------------------------------------------------------------
SCREEN_WIDTH = 1920
SCREEN_HEIGHT = 1080

# ---------------------------------------------------------------------------
# Default settings blob
# ---------------------------------------------------------------------------
DEFAULT_TIME_RULES = [
    {"id": "morning", "name": "Morning", "start_time": "06:00", "end_time": "09:00",
     "background_id": "blue-purple-gradient", "enabled": True},
    {"id": "later-morning", "name": "Later morning", "start_time": "09:00", "end_time": "11:00",
     "background_id": "pink-gradient", "enabled": True},
    {"id": "noon", "name": "Noon", "start_time": "11:00", "end_time": "13:00",
     "background_id": "blue-cyan-gradient", "enabled": True},
    {"id": "afternoon", "name": "Afternoon", "start_time": "13:00", "end_time": "17:00",
     "background_id": "green-cyan-gradient", "enabled": True},
    {"id": "dusk", "name": "Dusk", "start_time": "17:00", "end_time": "18:00",
     "background_id": "pink-yellow-gradient", "enabled": True},
    {"id": "evening", "name": "Evening", "start_time": "18:00", "end_time": "22:00",
     "background_id": "cyan-pink-gradient", "enabled": True},
    {"id": "night", "name": "Night", "start_time": "22:00", "end_time": "06:00",
     "background_id": "dark-blue-gray-gradient", "enabled": True},
]

DEFAULT_BACKGROUNDS = [
    {"id": "blue-purple-gradient", "name": "Blue purple", "type": "gradient",
     "value": "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"},
    {"id": "pink-gradient", "name": "Pink", "type": "gradient",
     "value": "linear-gradient(135deg, #f093fb 0%, #f5576c 100%)"},
    {"id": "blue-cyan-gradient", "name": "Blue cyan", "type": "gradient",
     "value": "linear-gradient(135deg, #4facfe 0%, #00f2fe 100%)"},
    {"id": "green-cyan-gradient", "name": "Green cyan", "type": "gradient",
     "value": "linear-gradient(135deg, #43e97b 0%, #38f9d7 100%)"},
    {"id": "pink-yellow-gradient", "name": "Pink yellow", "type": "gradient",
     "value": "linear-gradient(135deg, #fa709a 0%, #fee140 100%)"},
    {"id": "cyan-pink-gradient", "name": "Cyan pink", "type": "gradient",
     "value": "linear-gradient(135deg, #a8edea 0%, #fed6e3 100%)"},
    {"id": "dark-blue-gray-gradient", "name": "Dark blue gray", "type": "gradient",
     "value": "linear-gradient(135deg, #2c3e50 0%, #34495e 100%)"},
]

DEFAULT_WALLPAPER_SOURCES = [
    {
        "id": "source-wallhaven-default",
        "name": "Wallhaven (default)",
        "type": "wallhaven",
        "enabled": False,
        "base_url": "https://wallhaven.cc/api/v1",
        "params": {
            "categories": "111",
            "purity": "100",
            "sorting": "random",
            "order": "desc",
            "topRange": "1M",
            "page": 1,
        },
    },
]

DEFAULT_SETTINGS = {
    "enabled": True,
    "blur_depth": 0,
    "brightness": 0.9,
    "saturate": 1,
    "bg_color": "#1f1e1e",
    "bg_color_opacity": 0.5,
    "bg_size": "intelligent",
    "mode": "time-based",
    "time_rules": DEFAULT_TIME_RULES,
    "interval_minutes": 60,
    "backgrounds": DEFAULT_BACKGROUNDS,
    "current_index": 0,
    "enable_random_wallpaper": False,
    "wallpaper_sources": DEFAULT_WALLPAPER_SOURCES,
}
