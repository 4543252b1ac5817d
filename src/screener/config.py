"""
Configuration Management Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module handles loading and validation of application configuration
from config.json. It provides centralized access to all settings used
throughout Screener. Settings are read only; nothing is written back.

NOTICE: This software is proprietary and confidential. Unauthorized copying,
modification, distribution, or use is strictly prohibited.
See LICENSE.txt for full terms and conditions.

Version: 1.0.0
Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import copy
import json
import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from jsonschema import validate, ValidationError

from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = Path.home() / ".screener" / "config.json"

DEFAULTS: Dict[str, Any] = {
    "watched_folder": None,
    "image_extensions": ["png", "jpg", "jpeg", "tiff", "bmp", "gif"],
    "timings": {
        "debounce_delay": 0.5,
        "poll_interval": 0.25,
        "max_poll_attempts": 12,
        "ledger_ttl": 5.0
    },
    "max_name_length": 100,
    "max_concurrent_classifications": 2,
    "classifier": {
        "provider": "openai",
        "model": None,
        "base_url": None,
        "api_key": None,
        "api_key_env": "OPENAI_API_KEY",
        "timeout": 30,
        "max_image_dimension": 512,
        "jpeg_quality": 70,
        "max_tokens": 30,
        "prompt": None
    },
    "log_dir": None,
    "log_level": "INFO"
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "watched_folder": {"type": ["string", "null"]},
        "image_extensions": {
            "type": "array",
            "items": {"type": "string", "minLength": 1}
        },
        "timings": {
            "type": "object",
            "properties": {
                "debounce_delay": {"type": "number", "exclusiveMinimum": 0},
                "poll_interval": {"type": "number", "exclusiveMinimum": 0},
                "max_poll_attempts": {"type": "integer", "minimum": 1},
                "ledger_ttl": {"type": "number", "exclusiveMinimum": 0}
            }
        },
        "max_name_length": {"type": "integer", "minimum": 1},
        "max_concurrent_classifications": {"type": "integer", "minimum": 1},
        "classifier": {
            "type": "object",
            "properties": {
                "provider": {"enum": ["openai", "ollama"]},
                "model": {"type": ["string", "null"]},
                "base_url": {"type": ["string", "null"]},
                "api_key": {"type": ["string", "null"]},
                "api_key_env": {"type": "string"},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "max_image_dimension": {"type": "integer", "minimum": 16},
                "jpeg_quality": {"type": "integer", "minimum": 1, "maximum": 95},
                "max_tokens": {"type": "integer", "minimum": 1},
                "prompt": {"type": ["string", "null"]}
            }
        },
        "log_dir": {"type": ["string", "null"]},
        "log_level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]}
    }
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """
    Configuration manager that loads and provides access to application settings.

    Attributes:
        config_path (Path): Path to the config.json file
        _config (Dict[str, Any]): Loaded configuration merged over defaults
    """

    def __init__(self, config_path: str = None):
        """
        Initialize configuration manager.

        Args:
            config_path (str, optional): Path to config file. Defaults to
                $SCREENER_CONFIG, then ~/.screener/config.json
        """
        self.explicit = config_path is not None or 'SCREENER_CONFIG' in os.environ
        if config_path is None:
            config_path = os.environ.get('SCREENER_CONFIG', str(DEFAULT_CONFIG_PATH))
        self.config_path = Path(config_path).expanduser()

        self._config: Dict[str, Any] = copy.deepcopy(DEFAULTS)
        self.load()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Build a configuration from an in-memory document instead of a file.

        Raises:
            ConfigurationError: If the document fails schema validation
        """
        config = cls.__new__(cls)
        config.explicit = False
        config.config_path = None
        config._config = config._validated(data)
        return config

    def load(self) -> None:
        """
        Load configuration from JSON file with validation.

        Raises:
            FileNotFoundError: If an explicitly named config file doesn't exist
            ConfigurationError: If the file is malformed or fails schema validation
        """
        if not self.config_path.exists():
            if self.explicit:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            # No user config yet; built-in defaults apply
            self._config = copy.deepcopy(DEFAULTS)
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed configuration file {self.config_path}: {e}") from e

        self._config = self._validated(data)

    def _validated(self, data: Any) -> Dict[str, Any]:
        try:
            validate(instance=data, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            location = '.'.join(str(p) for p in e.absolute_path) or '<root>'
            raise ConfigurationError(f"Invalid configuration at {location}: {e.message}") from e

        config = _merge(DEFAULTS, data)
        # Expand home directory paths
        for key in ("watched_folder", "log_dir"):
            if config.get(key):
                config[key] = os.path.expanduser(config[key])
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key (str): Configuration key (supports nested keys with dot notation)
            default (Any, optional): Default value if key not found

        Returns:
            Any: Configuration value or default

        Example:
            >>> config.get("classifier.provider")
            'openai'
            >>> config.get("timings.debounce_delay")
            0.5
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def update(self, key: str, value: Any) -> None:
        """
        Override a value in memory (command-line flags). Never saved.

        Args:
            key (str): Configuration key (supports nested keys with dot notation)
            value (Any): New value to set
        """
        keys = key.split('.')
        target = self._config

        for k in keys[:-1]:
            if k not in target:
                target[k] = {}
            target = target[k]

        target[keys[-1]] = value

    @property
    def watched_folder(self) -> Optional[str]:
        """Get the folder to watch for new screenshots."""
        return self.get("watched_folder")

    @property
    def image_extensions(self) -> List[str]:
        """Get accepted image extensions, lower-cased and without dots."""
        return [ext.lower().lstrip('.') for ext in self.get("image_extensions", [])]

    @property
    def debounce_delay(self) -> float:
        return float(self.get("timings.debounce_delay", 0.5))

    @property
    def poll_interval(self) -> float:
        return float(self.get("timings.poll_interval", 0.25))

    @property
    def max_poll_attempts(self) -> int:
        return int(self.get("timings.max_poll_attempts", 12))

    @property
    def ledger_ttl(self) -> float:
        return float(self.get("timings.ledger_ttl", 5.0))

    @property
    def max_name_length(self) -> int:
        return int(self.get("max_name_length", 100))

    @property
    def max_concurrent_classifications(self) -> int:
        return int(self.get("max_concurrent_classifications", 2))

    @property
    def classifier_provider(self) -> str:
        """Get classifier backend name ('openai' or 'ollama')."""
        return self.get("classifier.provider", "openai")

    @property
    def classifier_model(self) -> Optional[str]:
        return self.get("classifier.model")

    @property
    def classifier_base_url(self) -> Optional[str]:
        return self.get("classifier.base_url")

    @property
    def classifier_timeout(self) -> float:
        return self.get("classifier.timeout", 30)

    @property
    def max_image_dimension(self) -> int:
        return self.get("classifier.max_image_dimension", 512)

    @property
    def jpeg_quality(self) -> int:
        return self.get("classifier.jpeg_quality", 70)

    @property
    def max_tokens(self) -> int:
        return self.get("classifier.max_tokens", 30)

    @property
    def classifier_prompt(self) -> str:
        """Get the description prompt, falling back to the built-in one."""
        from .ai.vision_client import DEFAULT_PROMPT
        return self.get("classifier.prompt") or DEFAULT_PROMPT

    @property
    def api_key(self) -> Optional[str]:
        """
        Get the classifier API key.

        The configured key wins; otherwise the environment variable named by
        ``classifier.api_key_env`` is consulted.
        """
        key = self.get("classifier.api_key")
        if key:
            return key
        env_name = self.get("classifier.api_key_env", "OPENAI_API_KEY")
        return os.environ.get(env_name) or None

    @property
    def log_dir(self) -> Optional[str]:
        return self.get("log_dir")

    @property
    def log_level(self) -> str:
        return self.get("log_level", "INFO")

    def pipeline_options(self) -> Dict[str, Any]:
        """Keyword arguments for WatchPipeline built from the timing settings."""
        return {
            "debounce_delay": self.debounce_delay,
            "poll_interval": self.poll_interval,
            "max_poll_attempts": self.max_poll_attempts,
            "ledger_ttl": self.ledger_ttl,
            "max_name_length": self.max_name_length,
            "extensions": self.image_extensions,
            "max_workers": self.max_concurrent_classifications,
        }
