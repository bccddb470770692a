"""
PingScope - Settings Manager
Persists user defaults to a JSON file in the user's config folder.

Handles:
  - Analysis thresholds (jitter, timeout, stability)
  - Default ping options (interval, timeout, payload size)
  - How many entries to echo in the report
  - Where exports are written
"""

import json
import logging
import math
import os
import platform
from typing import Any, Dict, Optional

from pingscope.core.ping_analyzer import AnalysisOptions
from pingscope.core.ping_engine import PingOptions

logger = logging.getLogger(__name__)

# Default settings
_DEFAULTS: Dict[str, Any] = {
    "jitter_threshold_ms": 50.0,
    "timeout_threshold_ms": 1000.0,
    "stability_threshold_pct": 95.0,
    "display_count": 8,                # Entries shown at the end of a report
    "interval": 1.0,                   # Seconds between probes
    "timeout": 5.0,                    # Seconds to wait for each reply
    "size": 56,                        # Payload bytes
    "export_dir": "",                  # "" = current directory
}


def _settings_dir() -> str:
    """Get the platform-appropriate settings directory."""
    if platform.system() == "Windows":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return os.path.join(base, "PingScope")
    elif platform.system() == "Darwin":
        return os.path.expanduser("~/Library/Application Support/PingScope")
    else:
        return os.path.expanduser("~/.config/pingscope")


def _settings_path() -> str:
    return os.path.join(_settings_dir(), "settings.json")


def _coerce(key: str, value: Any) -> Any:
    """Convert a stored value to the type of its default, or return the default."""
    default = _DEFAULTS[key]
    if isinstance(default, str):
        if isinstance(value, str):
            return value
    elif not isinstance(value, bool) and isinstance(value, (int, float, str)):
        try:
            number = type(default)(value)
        except (TypeError, ValueError, OverflowError):
            number = None
        # Only the report length may be 0
        if number is not None and math.isfinite(number) and (
                number > 0 or (number == 0 and key == "display_count")):
            return number

    logger.warning(f"Ignoring invalid setting {key}={value!r}, using {default!r}")
    return default


class SettingsManager:
    """Settings with JSON persistence. Unknown or broken files fall back to defaults."""

    def __init__(self, path: Optional[str] = None):
        self._data: Dict[str, Any] = dict(_DEFAULTS)
        self._path = path or _settings_path()
        self._load()

    @property
    def path(self) -> str:
        return self._path

    # ── Core I/O ──────────────────────────────────────────────────────────

    def _load(self):
        """Load settings from disk, falling back to defaults."""
        try:
            if os.path.exists(self._path):
                with open(self._path, "r", encoding="utf-8") as f:
                    stored = json.load(f)
                if not isinstance(stored, dict):
                    raise ValueError("settings file does not hold a JSON object")
                # Merge with defaults (so new keys get default values)
                for key in _DEFAULTS:
                    if key in stored:
                        self._data[key] = _coerce(key, stored[key])
                logger.info(f"Settings loaded from {self._path}")
            else:
                logger.info("No settings file found, using defaults")
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load settings: {e}")
            self._data = dict(_DEFAULTS)

    def save(self) -> bool:
        """Persist current settings to disk."""
        try:
            os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            logger.info(f"Settings saved to {self._path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save settings: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value

    # ── Typed Views ───────────────────────────────────────────────────────

    @property
    def display_count(self) -> int:
        return int(self._data.get("display_count", 8))

    @property
    def export_dir(self) -> str:
        return self._data.get("export_dir", "")

    def analysis_options(self) -> AnalysisOptions:
        return AnalysisOptions(
            timeout_threshold_ms=float(self._data["timeout_threshold_ms"]),
            jitter_threshold_ms=float(self._data["jitter_threshold_ms"]),
            stability_threshold_pct=float(self._data["stability_threshold_pct"]),
        )

    def ping_options(self) -> PingOptions:
        return PingOptions(
            interval=float(self._data["interval"]),
            timeout=float(self._data["timeout"]),
            size=int(self._data["size"]),
        )


# Module-level singleton
_instance: Optional[SettingsManager] = None


def get_settings() -> SettingsManager:
    """Get the global settings manager instance."""
    global _instance
    if _instance is None:
        _instance = SettingsManager()
    return _instance
