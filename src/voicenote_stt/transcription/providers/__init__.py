"""
Speech recognition providers.

Supported providers:
- vosk: On-device streaming recognition (default)
- whisper: Cloud transcription through the Whisper API
"""
import logging
from typing import TYPE_CHECKING

from ..types import ProviderIdentity
from .base import EventSink, SpeechProvider
from .whisper_cloud import WhisperCloudProvider

if TYPE_CHECKING:
    from ...core.config import ConfigLoader
    from .vosk import VoskModelStore

logger = logging.getLogger(__name__)

VOSK_AVAILABLE: bool | None = None

DISPLAY_NAMES = {
    ProviderIdentity.VOSK: "On-Device (Vosk)",
    ProviderIdentity.WHISPER: "Cloud (Whisper)",
}

DESCRIPTIONS = {
    ProviderIdentity.VOSK: "Private, offline, works anywhere. Lower accuracy.",
    ProviderIdentity.WHISPER: "High accuracy, handles noise well. Requires internet.",
}


def _check_vosk_available() -> bool:
    """Return whether the vosk package can be imported."""
    global VOSK_AVAILABLE
    if VOSK_AVAILABLE is not None:
        return VOSK_AVAILABLE
    try:
        import vosk as _vosk  # noqa: F401
        VOSK_AVAILABLE = True
    except Exception as exc:
        logger.debug(f"Vosk provider unavailable: {exc}")
        VOSK_AVAILABLE = False
    return VOSK_AVAILABLE


def provider_display_name(identity: ProviderIdentity) -> str:
    return DISPLAY_NAMES[ProviderIdentity.parse(identity)]


def provider_description(identity: ProviderIdentity) -> str:
    return DESCRIPTIONS[ProviderIdentity.parse(identity)]


def get_available_providers() -> list[ProviderIdentity]:
    """
    Return the providers that can currently be initialized.

    The cloud provider is always listed; a missing credential is reported
    when it is initialized.
    """
    providers = []
    if _check_vosk_available():
        providers.append(ProviderIdentity.VOSK)
    providers.append(ProviderIdentity.WHISPER)
    return providers


def get_provider_info() -> dict[str, dict]:
    """
    Return detailed info about all providers.

    Returns:
        Dict mapping provider name to info dict with 'available', 'name', 'description', 'install'.
    """
    return {
        ProviderIdentity.VOSK.value: {
            "available": _check_vosk_available(),
            "name": DISPLAY_NAMES[ProviderIdentity.VOSK],
            "description": DESCRIPTIONS[ProviderIdentity.VOSK],
            "install": "pip install vosk",
        },
        ProviderIdentity.WHISPER.value: {
            "available": True,
            "name": DISPLAY_NAMES[ProviderIdentity.WHISPER],
            "description": DESCRIPTIONS[ProviderIdentity.WHISPER],
            "install": "Included by default (requires OPENAI_API_KEY)",
        },
    }


def get_provider_class(identity: ProviderIdentity) -> type[SpeechProvider]:
    """
    Factory function to get the provider class for an identity.

    Raises:
        ValueError: If the provider is unknown.
    """
    identity = ProviderIdentity.parse(identity)
    if identity is ProviderIdentity.WHISPER:
        return WhisperCloudProvider
    from .vosk import VoskProvider
    return VoskProvider


def create_provider(
    identity: ProviderIdentity,
    config: "ConfigLoader",
    model_store: "VoskModelStore",
) -> SpeechProvider:
    """Build an uninitialized provider from configuration."""
    identity = ProviderIdentity.parse(identity)
    if identity is ProviderIdentity.WHISPER:
        return WhisperCloudProvider.from_config(config)

    from .vosk import VoskProvider
    return VoskProvider(
        model_store,
        sample_rate=config.vosk_sample_rate,
        chunk_size=config.vosk_chunk_size,
    )


__all__ = [
    "DESCRIPTIONS",
    "DISPLAY_NAMES",
    "EventSink",
    "SpeechProvider",
    "WhisperCloudProvider",
    "create_provider",
    "get_available_providers",
    "get_provider_class",
    "get_provider_info",
    "provider_description",
    "provider_display_name",
]
