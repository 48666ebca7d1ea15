"""Simple YAML configuration loader for StreamScribe."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any
import logging

from ..errors import ConfigurationError
from .settings import RecognizerSettings, DEFAULT_URL, DEFAULT_MODEL, SUPPORTED_SAMPLE_RATES

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "DASHSCOPE_API_KEY"

__all__ = [
    "StreamScribeConfig",
    "RecognizerSettings",
    "API_KEY_ENV_VAR",
    "DEFAULT_URL",
    "DEFAULT_MODEL",
    "SUPPORTED_SAMPLE_RATES",
]


class StreamScribeConfig:
    """StreamScribe configuration loader."""

    def __init__(self, config_path: str):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file
        """
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        if 'logging' in config and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recognition.sample_rate').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'dashscope.model')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_api_key(self) -> str:
        """Get the DashScope API key from config, falling back to the environment."""
        api_key = self.get('dashscope.api_key') or os.environ.get(API_KEY_ENV_VAR)
        if not api_key:
            raise ConfigurationError(
                f"DashScope API key not configured (set dashscope.api_key or {API_KEY_ENV_VAR})")
        return api_key

    def get_chunk_duration_ms(self) -> int:
        """Duration of each streamed audio chunk in milliseconds."""
        duration = int(self.get('audio.chunk_duration_ms', 100))
        if duration <= 0:
            raise ConfigurationError("audio.chunk_duration_ms must be positive")
        return duration

    def get_recognizer_settings(self) -> RecognizerSettings:
        """Build validated recognizer settings from the loaded configuration."""
        language_hints = self.get('recognition.language_hints', ['zh'])
        if isinstance(language_hints, str):
            language_hints = [language_hints]

        heartbeat = self.get('connection.heartbeat_seconds', 30.0)

        return RecognizerSettings(
            api_key=self.get_api_key(),
            url=self.get('dashscope.url', DEFAULT_URL),
            model=self.get('dashscope.model', DEFAULT_MODEL),
            sample_rate=int(self.get('recognition.sample_rate', 8000)),
            audio_format=self.get('recognition.format', 'pcm'),
            language_hints=list(language_hints),
            data_inspection=bool(self.get('dashscope.data_inspection', True)),
            workspace=self.get('dashscope.workspace'),
            connect_timeout=float(self.get('connection.connect_timeout_seconds', 10.0)),
            heartbeat=float(heartbeat) if heartbeat else None,
            auto_reconnect=bool(self.get('connection.auto_reconnect', True)),
            max_reconnect_attempts=int(self.get('connection.max_reconnect_attempts', 3)),
            reconnect_delay=float(self.get('connection.reconnect_delay_seconds', 1.0)),
        )
