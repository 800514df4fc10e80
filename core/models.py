"""Plain records shared by the sources, the manager and the rotator.

All of these round-trip through the settings blob with from_dict/to_dict
except SourceState, which only ever travels over the state bus.
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Pagination counters use this when the provider does not report a bound
UNKNOWN = -1


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the keys that are fields of the dataclass."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


def new_source_id() -> str:
    return f"source-{uuid.uuid4()}"


def _load_entries(cls, entries, what: str) -> list:
    """from_dict each entry, skipping the ones missing required keys."""
    loaded = []
    for entry in entries or []:
        try:
            loaded.append(cls.from_dict(entry))
        except (TypeError, AttributeError) as exc:
            logger.warning("Skipping malformed %s %r: %s", what, entry, exc)
    return loaded


@dataclass
class SourceConfig:
    """Persisted configuration of one remote wallpaper source."""

    type: str
    id: str = ""
    name: str = ""
    description: str = ""
    enabled: bool = False
    base_url: str = ""
    endpoints: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    custom_settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceConfig":
        values = _known(cls, data)
        for key in ("endpoints", "headers", "params", "custom_settings"):
            if values.get(key) is None:
                values[key] = {}
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WallpaperImage:
    """Canonical record of one fetched image, whatever the provider."""

    id: str
    url: str
    author: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    width: Optional[int] = None
    height: Optional[int] = None
    download_url: Optional[str] = None
    source_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TimeRule:
    id: str
    name: str
    start_time: str
    end_time: str
    background_id: str
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeRule":
        return cls(**_known(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BackgroundItem:
    """A displayable background: an image URL, a solid color or a gradient.

    The optional style fields override the global defaults from Settings
    for this item only.
    """

    id: str
    name: str
    type: str
    value: str
    blur_depth: Optional[float] = None
    brightness: Optional[float] = None
    saturate: Optional[float] = None
    bg_color: Optional[str] = None
    bg_color_opacity: Optional[float] = None
    bg_size: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackgroundItem":
        return cls(**_known(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SourceState:
    """Lifecycle state of a source as seen by bus subscribers."""

    config_enabled: bool
    instance_enabled: bool
    is_loading: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ParamDescriptor:
    """Describes one provider parameter for an external configuration UI.

    to_wire/from_wire convert between the value a form holds and the
    value sent to the provider (e.g. a list of checkboxes vs "110").
    """

    key: str
    label: str
    kind: str = "string"
    required: bool = False
    default: Any = None
    description: str = ""
    placeholder: str = ""
    options: List[Dict[str, str]] = field(default_factory=list)
    to_wire: Optional[Callable[[Any], Any]] = None
    from_wire: Optional[Callable[[Any], Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "kind": self.kind,
            "required": self.required,
            "default": self.default,
            "description": self.description,
            "placeholder": self.placeholder,
            "options": list(self.options),
        }


@dataclass
class Settings:
    """Everything the rotator and the manager read from the settings blob."""

    enabled: bool = True
    blur_depth: float = 0
    brightness: float = 0.9
    saturate: float = 1
    bg_color: str = "#1f1e1e"
    bg_color_opacity: float = 0.5
    bg_size: str = "intelligent"
    mode: str = "time-based"
    time_rules: List[TimeRule] = field(default_factory=list)
    interval_minutes: float = 60
    backgrounds: List[BackgroundItem] = field(default_factory=list)
    current_index: int = 0
    enable_random_wallpaper: bool = False
    wallpaper_sources: List[SourceConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        values = _known(cls, data)
        values["time_rules"] = _load_entries(TimeRule, values.get("time_rules"), "time rule")
        values["backgrounds"] = _load_entries(BackgroundItem, values.get("backgrounds"), "background")
        values["wallpaper_sources"] = _load_entries(
            SourceConfig, values.get("wallpaper_sources"), "wallpaper source")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["backgrounds"] = [b.to_dict() for b in self.backgrounds]
        return data

    def find_background(self, background_id: str) -> Optional[BackgroundItem]:
        for background in self.backgrounds:
            if background.id == background_id:
                return background
        return None
