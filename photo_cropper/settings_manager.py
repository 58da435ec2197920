from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from PySide6.QtGui import QColor

from .logger import get_logger

_logger = get_logger("settings")


class SettingsManager:
    """JSON-backed key/value settings with built-in defaults.

    Only explicitly set keys are written to disk; reads fall back to DEFAULTS.
    """

    DEFAULTS: dict[str, Any] = {
        "max_dimension": 2000,
        "working_quality": 0.8,
        "output_quality": 0.95,
        "drag_damping": 5.0,
        "zoom_step": 0.1,
        "zoom_min": 0.1,
        "zoom_max": 3.0,
        "background_color": "#ffffff",
        "default_preset": "square",
    }

    def __init__(self, settings_path: str):
        self.settings_path = settings_path
        self._settings: dict[str, Any] = {}
        self.load()

    def _read(self) -> dict[str, Any]:
        if not os.path.exists(self.settings_path):
            return {}
        with open(self.settings_path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return data

    def load(self) -> None:
        try:
            self._settings = self._read()
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed, using defaults: %s", e)
            self._settings = {}
            return
        _logger.debug("settings loaded: %s (%d keys)", self.settings_path, len(self._settings))

    def save(self) -> None:
        parent = os.path.dirname(self.settings_path)
        tmp_path = f"{self.settings_path}.tmp"
        try:
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)
            return
        _logger.debug("settings saved: %s", self.settings_path)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        return default if default is not None else self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        """Set several keys with a single write."""
        self._settings.update(values)
        self.save()

    def reset(self, key: str) -> None:
        """Drop an explicit value so the default applies again."""
        if key in self._settings:
            del self._settings[key]
            self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings


@dataclass(frozen=True, slots=True)
class CropConfig:
    """Runtime knobs for intake and the crop engine."""

    max_dimension: int = 2000
    working_quality: float = 0.8
    output_quality: float = 0.95
    drag_damping: float = 5.0
    zoom_step: float = 0.1
    zoom_min: float = 0.1
    zoom_max: float = 3.0
    background_color: str = "#ffffff"
    default_preset: str = "square"

    @classmethod
    def from_settings(cls, settings: SettingsManager) -> CropConfig:
        defaults = cls()
        values: dict[str, Any] = {}

        for key, cast in (
            ("max_dimension", int),
            ("working_quality", float),
            ("output_quality", float),
            ("drag_damping", float),
            ("zoom_step", float),
            ("zoom_min", float),
            ("zoom_max", float),
        ):
            raw = settings.get(key)
            try:
                v = cast(raw)
            except (TypeError, ValueError):
                _logger.warning("invalid %s=%r, using default", key, raw)
                continue
            if v <= 0:
                _logger.warning("non-positive %s=%r, using default", key, raw)
                continue
            values[key] = v

        for key in ("working_quality", "output_quality"):
            if key in values and values[key] > 1.0:
                _logger.warning("%s=%r out of range (0, 1], using default", key, values[key])
                values.pop(key)

        lo = values.get("zoom_min", defaults.zoom_min)
        hi = values.get("zoom_max", defaults.zoom_max)
        if lo > hi:
            _logger.warning("zoom_min %.3f > zoom_max %.3f, using default zoom range", lo, hi)
            values.pop("zoom_min", None)
            values.pop("zoom_max", None)

        color = settings.get("background_color")
        if isinstance(color, str) and QColor(color).isValid():
            values["background_color"] = color
        else:
            _logger.warning("saved background_color invalid: %s", color)

        from photo_cropper.crop.presets import PRESETS

        preset = settings.get("default_preset")
        if isinstance(preset, str) and preset.strip().lower() in PRESETS:
            values["default_preset"] = preset.strip().lower()
        else:
            _logger.warning("unknown default_preset: %s", preset)

        return cls(**values)
