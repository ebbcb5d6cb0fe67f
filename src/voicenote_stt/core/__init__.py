"""Core configuration and logging for voicenote-stt."""

from .config import ConfigLoader, get_config
from .logging import configure_logging, setup_logging

__all__ = ["ConfigLoader", "configure_logging", "get_config", "setup_logging"]
