"""Configuration management for whale watch."""

import os
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


class ConfigLoader:
    """Load and manage configuration from YAML files with environment variable substitution."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config loader.

        Load environment variables from a ``.env`` file (if present) and
        then read YAML configuration from the given directory.

        Args:
            config_dir: Directory containing config files. Defaults to src/whale_watch/config.

        """
        load_dotenv()
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)
        self._config: dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML files."""
        settings_file = self.config_dir / "settings.yaml"
        if settings_file.exists():
            with settings_file.open() as f:
                self._config = yaml.safe_load(f) or {}

        # Override with local settings if exists
        local_settings = self.config_dir / "settings.local.yaml"
        if local_settings.exists():
            with local_settings.open() as f:
                local_config = cast("dict[str, Any]", yaml.safe_load(f) or {})
                self._deep_merge(self._config, local_config)

        self._config = self._substitute_env_vars(self._config)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override dict into base dict.

        Args:
            base: Base dictionary to merge into (modified in place).
            override: Dictionary with values to override.

        """
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], cast("dict[str, Any]", value))
            else:
                base[key] = value

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute environment variables in config.

        Supports format: ${VAR_NAME:default_value} or ${VAR_NAME}

        Args:
            config: Configuration value (dict, list, or str).

        Returns:
            Configuration with environment variables substituted.

        """
        if isinstance(config, dict):
            return {
                k: self._substitute_env_vars(v)
                for k, v in config.items()  # pyright: ignore[reportUnknownVariableType]
            }
        if isinstance(config, list):
            return [
                self._substitute_env_vars(item)
                for item in config  # pyright: ignore[reportUnknownVariableType]
            ]
        if isinstance(config, str) and config.startswith("${") and config.endswith("}"):
            var_expr = config[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
            else:
                var_name, default = var_expr, None

            value = os.getenv(var_name, default)
            if value is None:
                msg = f"Required environment variable ${{{var_name}}} is not set and has no default"
                raise ConfigError(msg)
            return value

        if isinstance(config, str) and re.search(r"\$\{[^}]+\}", config):
            msg = f"Unresolved environment variable reference in: {config}"
            raise ConfigError(msg)

        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key in dot notation (e.g., 'detector.whale_threshold').
            default: Default value if key not found.

        Returns:
            Configuration value.

        """
        keys = key.split(".")
        current: Any = self._config
        for k in keys:
            if isinstance(current, dict):
                current = cast("dict[str, Any]", current).get(k)
                if current is None:
                    return default
            else:
                return default
        return current  # pyright: ignore[reportReturnType]

    def get_section(self, key: str) -> dict[str, Any]:
        """Get a configuration section as a dictionary.

        Returns:
            The section, or an empty dictionary if it is absent.

        Raises:
            ConfigError: If the value under ``key`` is not a dictionary.

        """
        result: Any = self.get(key, {})
        if isinstance(result, dict):
            return cast("dict[str, Any]", result)
        msg = f"{key} config must be a dict, got {type(result).__name__}"
        raise ConfigError(msg)

    def get_int(self, key: str, default: int) -> int:
        """Get an integer value, accepting numeric strings from env substitution.

        Raises:
            ConfigError: If the value is not an integer.

        """
        raw: Any = self.get(key, default)
        try:
            return int(str(raw))
        except ValueError:
            msg = f"{key} must be an integer, got {raw!r}"
            raise ConfigError(msg) from None

    def get_float(self, key: str, default: float) -> float:
        """Get a float value, accepting numeric strings from env substitution.

        Raises:
            ConfigError: If the value is not a number.

        """
        raw: Any = self.get(key, default)
        try:
            return float(str(raw))
        except ValueError:
            msg = f"{key} must be a number, got {raw!r}"
            raise ConfigError(msg) from None

    def get_decimal(self, key: str, default: Decimal) -> Decimal:
        """Get a ``Decimal`` value; YAML numbers are converted through ``str``.

        Raises:
            ConfigError: If the value is not a finite number.

        """
        raw: Any = self.get(key, default)
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            msg = f"{key} must be a decimal number, got {raw!r}"
            raise ConfigError(msg) from None
        if not value.is_finite():
            msg = f"{key} must be finite, got {raw!r}"
            raise ConfigError(msg)
        return value


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the global ``ConfigLoader`` singleton, creating it on first use.

    Lazy initialisation avoids side effects (file I/O, ``load_dotenv``)
    at import time and makes testing easier.

    Returns:
        The shared ``ConfigLoader`` instance.

    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
