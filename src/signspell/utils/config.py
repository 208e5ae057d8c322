"""
Centralized configuration manager.
Loads a YAML config over built-in defaults and provides typed access.

    - Deep merge of the file over DEFAULTS, so partial files are fine
    - Schema validation that warns on wrong types instead of failing
    - Reset support for testing
"""

import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(
    os.path.abspath(__file__)))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 1280,
        "height": 720,
        "fps": 30,
        "flip_horizontal": True,
        "threaded": True,
    },
    "mediapipe": {
        "model_path": "",
        "delegate": "CPU",
        "max_num_hands": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "min_presence_confidence": 0.5,
    },
    "classifier": {
        "endpoint": "https://brianmabunda00-alphabet-classifier.hf.space/predict",
        "timeout_s": 5.0,
        "dispatch_cooldown_ms": 200,
        "max_workers": 2,
    },
    "stability": {
        "stability_threshold": 5,
        "append_cooldown_ms": 1500,
    },
    "visualization": {
        "show_landmarks": True,
        "show_hud": True,
        "window_name": "SignSpell",
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}

# Schema: sections and the expected type of their critical fields
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
    },
    "mediapipe": {
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
        "max_num_hands": int,
    },
    "classifier": {
        "endpoint": str,
        "timeout_s": float,
        "dispatch_cooldown_ms": float,
    },
    "stability": {
        "stability_threshold": int,
        "append_cooldown_ms": float,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file on top of the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                file_data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            file_data = {}

        if not isinstance(file_data, dict):
            logger.warning("Config file %s is not a mapping, using defaults", config_path)
            file_data = {}

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), file_data)
        self._validate()
        return self

    def update(self, overrides: dict):
        """Merge overrides (e.g. from the command line) into the loaded config."""
        self._data = _deep_merge(self._data, overrides)
        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        for w in warnings:
            logger.warning("Config validation: %s", w)
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        value = self._data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {}) or {}

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def mediapipe(self) -> dict:
        return self.get_section("mediapipe")

    @property
    def classifier(self) -> dict:
        return self.get_section("classifier")

    @property
    def stability(self) -> dict:
        return self.get_section("stability")

    @property
    def visualization(self) -> dict:
        return self.get_section("visualization")

    @property
    def log_settings(self) -> dict:
        return self.get_section("logging")

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
