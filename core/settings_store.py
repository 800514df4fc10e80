"""Settings persistence for Backdrop Station.

The core treats settings as an opaque blob: a store only has to
implement load() and save(blob). YamlSettingsStore keeps it in a YAML
file next to the app.

Saved fields are merged over config.DEFAULT_SETTINGS one level deep, so a
file that only sets ``mode: interval`` still gets the default rules,
backgrounds and sources.
"""

import copy
import logging
import os
from typing import Any, Dict

import yaml

import config
from core.models import Settings

logger = logging.getLogger(__name__)


class SettingsStore:
    def load(self) -> Dict[str, Any]:
        raise NotImplementedError

    def save(self, blob: Dict[str, Any]):
        raise NotImplementedError


class MemorySettingsStore(SettingsStore):
    """Keeps the blob in memory. Handy for tests and one-shot commands."""

    def __init__(self, blob: Dict[str, Any] = None):
        self.blob = copy.deepcopy(blob) if blob else {}
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self.blob)

    def save(self, blob: Dict[str, Any]):
        self.blob = copy.deepcopy(blob)
        self.saves += 1


class YamlSettingsStore(SettingsStore):
    """Reads and writes the settings blob as a YAML file."""

    def __init__(self, path: str = config.DEFAULT_SETTINGS_PATH):
        self.path = path

    def load(self) -> Dict[str, Any]:
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning("Settings file not found: %s (using defaults)", self.path)
            return {}
        except yaml.YAMLError as exc:
            logger.error("Settings file %s is not valid YAML: %s", self.path, exc)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error("Settings file %s must contain a mapping", self.path)
            return {}
        return data

    def save(self, blob: Dict[str, Any]):
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w") as f:
            yaml.safe_dump(blob, f, sort_keys=False, allow_unicode=True)
        os.replace(tmp_path, self.path)
        logger.debug("Settings saved to %s", self.path)


def merge_settings(saved: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(config.DEFAULT_SETTINGS)
    for key, value in (saved or {}).items():
        if key not in merged:
            logger.debug("Ignoring unknown settings key: %s", key)
            continue
        merged[key] = value
    return merged


def load_settings(store: SettingsStore) -> Settings:
    return Settings.from_dict(merge_settings(store.load()))


def save_settings(store: SettingsStore, settings: Settings):
    store.save(settings.to_dict())
