#!/usr/bin/env python3
"""Integration tests for the STT service.

These tests verify that provider switching, result ordering and disposal
work together through the public service API.
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpServer

from voicenote_stt.transcription.providers.vosk import VoskModelStore
from voicenote_stt.transcription.service import STTService
from voicenote_stt.transcription.types import (
    CredentialMissingError,
    FailureReason,
    ModelUnavailableError,
    ProviderError,
    ProviderIdentity,
)
from voicenote_stt.utils.model_downloader import COMPLETE_MARKER


class TestProviderSwitching:
    """Real providers with the fake vosk module and a local cloud endpoint."""

    @pytest.mark.asyncio
    async def test_vosk_whisper_vosk_loads_model_once(self, fake_vosk, make_config, tmp_path):
        config = make_config(whisper={"api_key": "sk-test"})
        store = VoskModelStore(model_path=tmp_path)
        stt = STTService(config=config, model_store=store)

        assert await stt.initialize(ProviderIdentity.VOSK)
        vosk_provider = stt._active
        assert await stt.switch_provider(ProviderIdentity.WHISPER)
        assert stt.current_provider is ProviderIdentity.WHISPER
        assert not vosk_provider.attached
        assert await stt.switch_provider(ProviderIdentity.VOSK)

        assert stt._active is vosk_provider
        assert store.acquisitions == 1
        assert fake_vosk.Model.call_count == 1
        assert len(fake_vosk.recognizers) == 1

        await stt.dispose()
        # A store passed in stays loaded for its owner
        assert store.is_loaded

    @pytest.mark.asyncio
    async def test_process_wav_through_stream(self, fake_vosk, make_config, make_wav, tmp_path):
        stt = STTService(config=make_config(), model_store=VoskModelStore(model_path=tmp_path))
        subscription = stt.transcription_stream.subscribe()

        assert await stt.initialize()
        outcome = await stt.process_file(make_wav(20000))

        assert outcome.ok
        assert outcome.text == "hello world"
        assert outcome.provider is ProviderIdentity.VOSK
        results = subscription.drain()
        assert [(r.text, r.is_final) for r in results] == [("hello world", True)]

        await stt.dispose()
        assert await subscription.get(timeout=1) is None

    @pytest.mark.asyncio
    async def test_live_audio_partials_then_final(self, fake_vosk, make_config, tmp_path):
        stt = STTService(config=make_config(), model_store=VoskModelStore(model_path=tmp_path))
        subscription = stt.transcription_stream.subscribe()
        await stt.initialize()

        partial = await stt.process_audio(b"\x00" * 3200)
        text = await stt.finish_audio()

        assert partial.text == "hello"
        assert text == "hello world"
        assert [(r.text, r.is_final) for r in subscription.drain()] == [("hello", False), ("hello world", True)]
        assert await stt.finish_audio() == ""
        await stt.dispose()

    @pytest.mark.asyncio
    async def test_header_only_wav_is_no_audio(self, fake_vosk, make_config, make_wav, tmp_path):
        stt = STTService(config=make_config(), model_store=VoskModelStore(model_path=tmp_path))
        await stt.initialize()

        outcome = await stt.process_file(make_wav(0))

        assert outcome.reason is FailureReason.NO_AUDIO
        assert await stt.process_wav_file(make_wav(0)) == ""
        assert fake_vosk.recognizers[0].fed == []
        await stt.dispose()

    @pytest.mark.asyncio
    async def test_cloud_failure_surfaces_status(self, make_config, make_wav):
        async def reject(request):
            await request.read()
            return web.Response(status=429, text="rate limited")

        app = web.Application()
        app.router.add_post("/v1/audio/transcriptions", reject)
        server = AiohttpServer(app)
        await server.start_server()

        config = make_config(stt={"provider": "whisper"}, whisper={"api_key": "sk-test", "base_url": str(server.make_url("/v1"))})
        stt = STTService(config=config)
        subscription = stt.transcription_stream.subscribe()
        try:
            assert await stt.initialize()
            outcome = await stt.process_file(make_wav(100))
        finally:
            await stt.dispose()
            await server.close()

        assert outcome.reason is FailureReason.HTTP_STATUS
        assert outcome.status_code == 429
        assert outcome.text == ""
        assert subscription.drain() == []

    @pytest.mark.asyncio
    async def test_missing_credential_keeps_prior_provider(self, fake_vosk, make_config, tmp_path):
        stt = STTService(config=make_config(), model_store=VoskModelStore(model_path=tmp_path))
        assert await stt.initialize(ProviderIdentity.VOSK)

        assert not await stt.switch_provider(ProviderIdentity.WHISPER)

        assert stt.current_provider is ProviderIdentity.VOSK
        assert stt.is_initialized
        await stt.dispose()

    @pytest.mark.asyncio
    async def test_credential_set_after_failed_initialize(self, make_config, monkeypatch):
        stt = STTService(config=make_config(), model_store=VoskModelStore())

        assert not await stt.initialize(ProviderIdentity.WHISPER)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-now-set")

        assert await stt.initialize(ProviderIdentity.WHISPER)
        assert stt.current_provider is ProviderIdentity.WHISPER
        await stt.dispose()

    @pytest.mark.asyncio
    async def test_m4a_requires_cloud(self, fake_vosk, make_config, tmp_path):
        stt = STTService(config=make_config(), model_store=VoskModelStore(model_path=tmp_path))
        await stt.initialize()

        outcome = await stt.process_m4a_file(tmp_path / "note.m4a")

        assert outcome.reason is FailureReason.UNSUPPORTED_FORMAT
        await stt.dispose()

    @pytest.mark.asyncio
    async def test_owned_model_store_is_released(self, fake_vosk, make_config, tmp_path):
        model_dir = tmp_path / "vosk-cache" / "vosk-model-small-en-us-0.15"
        model_dir.mkdir(parents=True)
        (model_dir / COMPLETE_MARKER).touch()
        stt = STTService(config=make_config())
        store = stt.model_store

        assert await stt.initialize()
        assert store.is_loaded
        await stt.dispose()

        assert not store.is_loaded
        assert stt.model_store is None


class TestServiceContract:
    """Service behaviour with scripted providers."""

    def _service(self, make_config, providers):
        return STTService(config=make_config(), model_store=VoskModelStore(), providers=providers)

    @pytest.mark.asyncio
    async def test_process_before_initialize(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        outcome = await stt.process_file("note.wav")
        assert outcome.reason is FailureReason.NOT_INITIALIZED

    @pytest.mark.asyncio
    async def test_initialize_failures_return_false(self, make_config, provider_factory):
        providers = {
            ProviderIdentity.VOSK: provider_factory(ProviderIdentity.VOSK, fail_with=ModelUnavailableError("no model")),
            ProviderIdentity.WHISPER: provider_factory(ProviderIdentity.WHISPER, fail_with=CredentialMissingError()),
        }
        stt = self._service(make_config, providers)

        assert not await stt.initialize(ProviderIdentity.VOSK)
        assert not await stt.initialize(ProviderIdentity.WHISPER)
        assert not await stt.initialize("nonsense")
        assert not stt.is_initialized

    @pytest.mark.asyncio
    async def test_switch_to_same_provider_is_noop(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        await stt.initialize(ProviderIdentity.VOSK)

        assert await stt.switch_provider(ProviderIdentity.VOSK)
        assert fake_providers[ProviderIdentity.VOSK].init_calls == 1

    @pytest.mark.asyncio
    async def test_inactive_provider_results_are_dropped(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        subscription = stt.transcription_stream.subscribe()
        vosk = fake_providers[ProviderIdentity.VOSK]

        await stt.initialize(ProviderIdentity.VOSK)
        await stt.switch_provider(ProviderIdentity.WHISPER)
        vosk.emit(1, "late partial")
        outcome = await stt.process_file("note.wav")

        assert outcome.text == "cloud text"
        assert [r.text for r in subscription.drain()] == ["cloud text"]

    @pytest.mark.asyncio
    async def test_no_partial_after_final(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        subscription = stt.transcription_stream.subscribe()
        vosk = fake_providers[ProviderIdentity.VOSK]
        await stt.initialize(ProviderIdentity.VOSK)

        vosk.emit(1, "hel")
        vosk.emit(1, "hello", is_final=True)
        vosk.emit(1, "hello ag")
        vosk.emit(2, "next")
        vosk.emit(1, "stale")

        assert [(r.text, r.is_final) for r in subscription.drain()] == [
            ("hel", False),
            ("hello", True),
            ("next", False),
        ]

    @pytest.mark.asyncio
    async def test_provider_errors_become_outcomes(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        await stt.initialize(ProviderIdentity.VOSK)
        fake_providers[ProviderIdentity.VOSK].process_error = ProviderError(FailureReason.PROCESSING, "decoder crashed")

        outcome = await stt.process_file("note.wav")

        assert outcome.reason is FailureReason.PROCESSING
        assert "decoder crashed" in outcome.detail

    @pytest.mark.asyncio
    async def test_reset_only_touches_on_device_provider(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        await stt.initialize(ProviderIdentity.VOSK)
        await stt.reset()
        await stt.switch_provider(ProviderIdentity.WHISPER)
        await stt.reset()

        assert fake_providers[ProviderIdentity.VOSK].resets == 1
        assert fake_providers[ProviderIdentity.WHISPER].resets == 0

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, make_config, fake_providers):
        stt = self._service(make_config, fake_providers)
        await stt.initialize(ProviderIdentity.VOSK)

        await stt.dispose()
        await stt.dispose()

        assert stt.is_disposed
        assert stt.transcription_stream.is_closed
        assert fake_providers[ProviderIdentity.VOSK].disposed == 1
        assert (await stt.process_file("note.wav")).reason is FailureReason.DISPOSED
        assert not await stt.initialize()

    @pytest.mark.asyncio
    async def test_context_manager_disposes(self, make_config, fake_providers):
        async with self._service(make_config, fake_providers) as stt:
            await stt.initialize()
        assert stt.is_disposed
