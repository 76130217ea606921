"""
Configuration management for the vocal pitch detection engine.

Loads configuration from YAML files with environment variable
interpolation and fills in defaults for every missing key.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from vocalpitch.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME})
    - Nested key access with dot notation
    - Schema validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or not valid YAML
        """
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {file_path}",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._config = manager._interpolate(manager._config)
        return manager

    def _interpolate(self, value: Any) -> Any:
        """Recursively replace ${ENV_VAR} patterns in string values."""
        if isinstance(value, dict):
            return {key: self._interpolate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> Any:
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        result = self._env_pattern.sub(replace, s)
        if result != s:
            # ${VAR} used for numeric thresholds should stay numeric
            try:
                return yaml.safe_load(result)
            except yaml.YAMLError:
                return result
        return result

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("detection.noise_floor_db", default=-120.0)

        Raises:
            ConfigurationError: If required key is not found
        """
        value: Any = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Return a configuration section (empty dict if missing)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def merge_defaults(self, defaults: Dict[str, Any]) -> None:
        """Fill in any key missing from the loaded configuration."""
        self._config = _deep_merge(defaults, self._config)

    def to_dict(self) -> Dict[str, Any]:
        """Return a deep copy of the configuration."""
        return copy.deepcopy(self._config)

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "detection.noise_floor_db": {"type": (int, float), "required": True},
                "source.window_size": {"type": int, "min": 64},
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            # bool is an int subclass; a flag is never a valid number here
            if expected_type and (
                not isinstance(value, expected_type)
                or (isinstance(value, bool) and bool not in _as_tuple(expected_type))
            ):
                names = ", ".join(t.__name__ for t in _as_tuple(expected_type))
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {names}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )

            if "min" in rules and value < rules["min"]:
                raise ConfigurationError(
                    f"Value for {key} must be >= {rules['min']}, got {value}",
                    config_key=key
                )
            if "max" in rules and value > rules["max"]:
                raise ConfigurationError(
                    f"Value for {key} must be <= {rules['max']}, got {value}",
                    config_key=key
                )


CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
    "detection.min_frequency_hz": {"type": (int, float), "min": 1},
    "detection.max_frequency_hz": {"type": (int, float), "min": 1},
    "detection.noise_floor_db": {"type": (int, float)},
    "detection.vocal_min_hz": {"type": (int, float), "min": 1},
    "detection.vocal_max_hz": {"type": (int, float), "min": 1},
    "detection.harmonic_tolerance": {"type": (int, float), "min": 0, "max": 0.5},
    "detection.max_harmonic": {"type": int, "min": 2},
    "detection.stability_window_ms": {"type": int, "min": 0},
    "autocorrelation.rms_threshold": {"type": (int, float), "min": 0},
    "autocorrelation.coarse_stride_lag": {"type": int, "min": 1},
    "autocorrelation.accept_min_hz": {"type": (int, float), "min": 1},
    "autocorrelation.accept_max_hz": {"type": (int, float), "min": 1},
    "pitch.a4_hz": {"type": (int, float), "min": 1},
    "source.window_size": {"type": int, "min": 64},
    "source.hop_size": {"type": int, "min": 1},
    "source.gain": {"type": (int, float)},
    "source.max_file_size": {"type": int, "min": 1},
    "smoothing.enabled": {"type": bool},
    "smoothing.history_size": {"type": int, "min": 1},
    "logging.level": {"type": str},
    "logging.format": {"type": str},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults.

    Args:
        config_path: Optional path to a YAML file. If None, tries
            "config/config.yaml", "config.yaml" and the config directory
            next to the package.

    Returns:
        Dict[str, Any]: Configuration with every default key present

    Raises:
        ConfigurationError: If an explicit path is missing, or values are invalid
    """
    if config_path is not None and not Path(config_path).exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            config_key=str(config_path)
        )

    if config_path is None:
        default_paths = [
            Path("config/config.yaml"),
            Path("config.yaml"),
            Path(__file__).parent.parent.parent / "config" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path:
        manager = ConfigManager.from_file(Path(config_path))
    else:
        manager = ConfigManager({})

    manager.merge_defaults(get_default_config())
    manager.validate(CONFIG_SCHEMA)
    return manager.to_dict()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "detection": {
            "min_frequency_hz": 50.0,
            "max_frequency_hz": 2000.0,
            "noise_floor_db": -120.0,
            "vocal_min_hz": 80.0,
            "vocal_max_hz": 800.0,
            "harmonic_tolerance": 0.05,
            "max_harmonic": 5,
            "stability_window_ms": 500,
        },
        "autocorrelation": {
            "rms_threshold": 0.003,
            "coarse_stride_lag": 50,
            "accept_min_hz": 50.0,
            "accept_max_hz": 2000.0,
        },
        "pitch": {
            "a4_hz": 440.0,
        },
        "source": {
            "window_size": 4096,
            "hop_size": 1024,
            "gain": 1.0,
            "target_sample_rate": None,
            "max_file_size": 524288000,  # 500 MB
        },
        "smoothing": {
            "enabled": False,
            "history_size": 3,
        },
        "logging": {
            "level": "INFO",
            "format": "text",
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _as_tuple(expected_type: Any) -> tuple:
    return expected_type if isinstance(expected_type, tuple) else (expected_type,)
