"""
Configuration service for ImageMarkup.

This module handles loading, saving, and managing application settings.
Configuration is stored as JSON in ~/.config/imagemarkup/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from imagemarkup.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "imagemarkup"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    # Drawing defaults for new shapes
    "stroke_color": "#FF0000",
    "stroke_width": 3,
    "font_size": 24,
    # Toolbar choices
    "color_presets": [
        "#FFFFFF",
        "#000000",
        "#FF0000",
        "#FF6B00",
        "#FFEB3B",
        "#4CAF50",
        "#2196F3",
        "#9C27B0",
    ],
    "stroke_width_options": [1, 2, 3, 5, 8, 10, 15, 20],
    "font_size_options": [12, 16, 20, 24, 32, 40, 48, 64, 72],
    # Largest area the background image may occupy when not filling its container
    "viewport": {
        "max_width": 600,
        "max_height": 500,
        "fill_container": True,
    },
    # Output density multiplier for flattened exports
    "export_pixel_ratio": 2.0,
    # Text overlay timing, in milliseconds
    "text_entry": {
        "focus_delay_ms": 10,
        "commit_guard_ms": 200,
    },
    "default_export_folder": str(Path.home() / "Pictures" / "ImageMarkup"),
    # Log level name, and whether to keep a daily log file (log_dir null means the default)
    "logging": {
        "level": "INFO",
        "to_file": True,
        "log_dir": None,
    },
}


class ConfigService:
    """
    Service for managing application configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/imagemarkup/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = self._deep_copy_defaults()

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any new default keys
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = self._deep_copy_defaults()
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_copy_defaults(self) -> Dict[str, Any]:
        """Create a deep copy of default config."""
        return copy.deepcopy(DEFAULT_CONFIG)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Drawing Defaults ─────────────────────────────────────────────────

    @property
    def stroke_color(self) -> str:
        return self.get("stroke_color", DEFAULT_CONFIG["stroke_color"])

    @property
    def stroke_width(self) -> int:
        return int(self.get("stroke_width", DEFAULT_CONFIG["stroke_width"]))

    @property
    def font_size(self) -> int:
        return int(self.get("font_size", DEFAULT_CONFIG["font_size"]))

    # ─── Toolbar Choices ──────────────────────────────────────────────────

    @property
    def color_presets(self) -> List[str]:
        return list(self.get("color_presets", DEFAULT_CONFIG["color_presets"]))

    @property
    def stroke_width_options(self) -> List[int]:
        return list(self.get("stroke_width_options", DEFAULT_CONFIG["stroke_width_options"]))

    @property
    def font_size_options(self) -> List[int]:
        return list(self.get("font_size_options", DEFAULT_CONFIG["font_size_options"]))

    # ─── Viewport Settings ────────────────────────────────────────────────

    @property
    def viewport(self) -> Dict[str, Any]:
        """Get the viewport settings, with defaults filled in."""
        merged = dict(DEFAULT_CONFIG["viewport"])
        merged.update(self.get("viewport", {}) or {})
        return merged

    @property
    def max_viewport_size(self) -> tuple:
        """Get (max_width, max_height) for a canvas that doesn't fill its container."""
        viewport = self.viewport
        return (viewport["max_width"], viewport["max_height"])

    @property
    def fill_container(self) -> bool:
        return bool(self.viewport["fill_container"])

    # ─── Export Settings ──────────────────────────────────────────────────

    @property
    def export_pixel_ratio(self) -> float:
        return float(self.get("export_pixel_ratio", DEFAULT_CONFIG["export_pixel_ratio"]))

    @property
    def default_export_folder(self) -> str:
        return self.get("default_export_folder", DEFAULT_CONFIG["default_export_folder"])

    # ─── Text Entry Timing ────────────────────────────────────────────────

    @property
    def text_entry(self) -> Dict[str, int]:
        merged = dict(DEFAULT_CONFIG["text_entry"])
        merged.update(self.get("text_entry", {}) or {})
        return merged

    @property
    def text_focus_delay_ms(self) -> int:
        return int(self.text_entry["focus_delay_ms"])

    @property
    def text_commit_guard_ms(self) -> int:
        return int(self.text_entry["commit_guard_ms"])

    # ─── Logging ──────────────────────────────────────────────────────────

    @property
    def logging(self) -> Dict[str, Any]:
        merged = dict(DEFAULT_CONFIG["logging"])
        merged.update(self.get("logging", {}) or {})
        return merged

    @property
    def log_level(self) -> str:
        return str(self.logging["level"])

    @property
    def log_to_file(self) -> bool:
        return bool(self.logging["to_file"])

    @property
    def log_dir(self) -> Optional[Path]:
        log_dir = self.logging["log_dir"]
        return Path(log_dir).expanduser() if log_dir else None
