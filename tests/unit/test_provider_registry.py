"""Unit tests for the provider registry."""

from unittest.mock import patch

import pytest

from voicenote_stt.transcription import providers
from voicenote_stt.transcription.providers import (
    create_provider,
    get_available_providers,
    get_provider_class,
    get_provider_info,
    provider_description,
    provider_display_name,
)
from voicenote_stt.transcription.providers.vosk import VoskModelStore, VoskProvider
from voicenote_stt.transcription.providers.whisper_cloud import WhisperCloudProvider
from voicenote_stt.transcription.types import ProviderIdentity


def test_display_names_and_descriptions():
    assert provider_display_name(ProviderIdentity.VOSK) == "On-Device (Vosk)"
    assert provider_display_name(ProviderIdentity.WHISPER) == "Cloud (Whisper)"
    assert provider_description(ProviderIdentity.VOSK) == "Private, offline, works anywhere. Lower accuracy."
    assert provider_description(ProviderIdentity.WHISPER) == "High accuracy, handles noise well. Requires internet."


def test_provider_classes():
    assert get_provider_class(ProviderIdentity.VOSK) is VoskProvider
    assert get_provider_class("cloud") is WhisperCloudProvider
    with pytest.raises(ValueError):
        get_provider_class("google")


def test_available_providers_without_vosk():
    with patch.object(providers, "VOSK_AVAILABLE", False):
        assert get_available_providers() == [ProviderIdentity.WHISPER]
        assert get_provider_info()["vosk"]["available"] is False


def test_available_providers_with_vosk():
    with patch.object(providers, "VOSK_AVAILABLE", True):
        assert get_available_providers() == [ProviderIdentity.VOSK, ProviderIdentity.WHISPER]


def test_create_provider_uses_config(make_config, tmp_path):
    config = make_config(vosk={"chunk_size": 4000}, whisper={"api_key": "sk-x"})
    store = VoskModelStore(model_path=tmp_path)

    vosk = create_provider(ProviderIdentity.VOSK, config, store)
    whisper = create_provider(ProviderIdentity.WHISPER, config, store)

    assert isinstance(vosk, VoskProvider)
    assert vosk.chunk_size == 4000
    assert vosk.model_store is store
    assert isinstance(whisper, WhisperCloudProvider)
    assert whisper.api_key == "sk-x"
