#!/usr/bin/env python3
"""Configuration loader that reads from config files."""
import copy
import os
from pathlib import Path
from typing import Any

import tomllib

DEFAULT_CONFIG: dict[str, Any] = {
    "stt": {"provider": "vosk", "language": "en"},
    "vosk": {
        "model": "vosk-model-small-en-us-0.15",
        "models_url": "https://alphacephei.com/vosk/models/model-list.json",
        "cache_dir": "",
        "sample_rate": 16000,
        "chunk_size": 8000,
    },
    "whisper": {
        "base_url": "https://api.openai.com/v1",
        "model": "whisper-1",
        "api_key": "",
        "connect_timeout": 30.0,
        "receive_timeout": 60.0,
    },
    "logging": {
        "level": "INFO",
        "console": False,
        "dir": "",
        "file": "voicenote-stt.log",
        "max_bytes": 5 * 1024 * 1024,
        "backup_count": 3,
    },
}


class ConfigLoader:
    """Load configuration from the voicenote config file."""

    def __init__(self, config_path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> None:
        if config_path is None:
            config_path = self._default_config_path()

        self.config_file = str(config_path)
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            file_config = full_config.get("stt_service", full_config)
        else:
            file_config = {}

        self._config = self._merge_dicts(DEFAULT_CONFIG, file_config)
        if overrides:
            self._config = self._merge_dicts(self._config, overrides)

    def _default_config_path(self) -> Path:
        env_path = os.environ.get("VOICENOTE_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".voicenote" / "config.toml"

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = base.copy()
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot notation (e.g., 'whisper.base_url')"""
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def with_overrides(self, overrides: dict[str, Any]) -> "ConfigLoader":
        """Return a copy of this configuration with ``overrides`` merged on top."""
        clone = copy.copy(self)
        clone._config = self._merge_dicts(self._config, overrides)
        return clone

    @property
    def provider(self) -> str:
        """Default provider name.

        Prioritizes the VOICENOTE_PROVIDER environment variable if set.
        """
        env_provider = os.environ.get("VOICENOTE_PROVIDER")
        if env_provider:
            return env_provider
        return str(self.get("stt.provider", "vosk"))

    @property
    def language(self) -> str:
        return str(self.get("stt.language", "en"))

    @property
    def vosk_model(self) -> str:
        env_model = os.environ.get("VOICENOTE_VOSK_MODEL")
        if env_model:
            return env_model
        return str(self.get("vosk.model", "vosk-model-small-en-us-0.15"))

    @property
    def vosk_models_url(self) -> str:
        return str(self.get("vosk.models_url", DEFAULT_CONFIG["vosk"]["models_url"]))

    @property
    def vosk_cache_dir(self) -> str | None:
        value = self.get("vosk.cache_dir", "")
        return str(value) if value else None

    @property
    def vosk_sample_rate(self) -> int:
        return int(self.get("vosk.sample_rate", 16000))

    @property
    def vosk_chunk_size(self) -> int:
        return int(self.get("vosk.chunk_size", 8000))

    @property
    def whisper_base_url(self) -> str:
        return str(self.get("whisper.base_url", "https://api.openai.com/v1")).rstrip("/")

    @property
    def whisper_model(self) -> str:
        return str(self.get("whisper.model", "whisper-1"))

    @property
    def whisper_connect_timeout(self) -> float:
        return float(self.get("whisper.connect_timeout", 30.0))

    @property
    def whisper_receive_timeout(self) -> float:
        return float(self.get("whisper.receive_timeout", 60.0))

    @property
    def openai_api_key(self) -> str:
        """Cloud credential.

        Priority order:
        1. Environment variable OPENAI_API_KEY
        2. Config file value whisper.api_key
        """
        env_key = os.environ.get("OPENAI_API_KEY")
        if env_key:
            return env_key.strip()
        return str(self.get("whisper.api_key", "") or "").strip()

    @property
    def log_level(self) -> str:
        return str(os.environ.get("VOICENOTE_LOG_LEVEL") or self.get("logging.level", "INFO"))

    @property
    def console_logs(self) -> bool:
        env_console = os.environ.get("VOICENOTE_CONSOLE_LOGS")
        if env_console:
            return env_console.strip().lower() in {"1", "true", "yes"}
        return bool(self.get("logging.console", False))

    @property
    def log_dir(self) -> Path:
        """Directory for the rotating log file.

        Priority order:
        1. Environment variable VOICENOTE_LOG_DIR
        2. Config file value logging.dir
        3. ~/.voicenote/logs
        """
        configured = os.environ.get("VOICENOTE_LOG_DIR") or self.get("logging.dir", "")
        if configured:
            return Path(configured).expanduser()
        return Path.home() / ".voicenote" / "logs"

    @property
    def log_file(self) -> Path:
        return self.log_dir / str(self.get("logging.file", "voicenote-stt.log"))

    @property
    def log_max_bytes(self) -> int:
        return int(self.get("logging.max_bytes", 5 * 1024 * 1024))

    @property
    def log_backup_count(self) -> int:
        return int(self.get("logging.backup_count", 3))


# Global singleton instance, used by the CLI entry points only
_config_loader: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader

