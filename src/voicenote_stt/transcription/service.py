"""STT service: one façade over the on-device and cloud providers.

The service owns a single TranscriptionStream that outlives provider
switches. Whichever provider is active is attached to it; the previous one
is detached first, so results from an inactive provider never reach
subscribers. Every public coroutine reports failure through its return value
instead of raising.

Example:
    async with STTService() as stt:
        if await stt.initialize(ProviderIdentity.VOSK):
            outcome = await stt.process_file("note.wav")

"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from ..core.config import ConfigLoader, get_config
from ..utils.model_downloader import ModelDownloader
from .providers import (
    SpeechProvider,
    create_provider,
    provider_description,
    provider_display_name,
)
from .providers.vosk import VoskModelStore, VoskProvider
from .providers.whisper_cloud import WhisperCloudProvider
from .stream import TranscriptionStream
from .types import (
    FailureReason,
    ProviderError,
    ProviderEvent,
    ProviderIdentity,
    TranscriptionOutcome,
    TranscriptionResult,
)

logger = logging.getLogger(__name__)

COMPRESSED_SUFFIXES = (".m4a", ".mp4", ".aac", ".mp3", ".webm")


class STTService:
    """Switches between speech providers behind one result stream."""

    def __init__(
        self,
        config: ConfigLoader | None = None,
        model_store: VoskModelStore | None = None,
        stream: TranscriptionStream | None = None,
        providers: dict[ProviderIdentity, SpeechProvider] | None = None,
    ):
        self.config = config or get_config()

        # A store passed in belongs to the caller and outlives this service
        self._owns_model_store = model_store is None
        if model_store is None:
            downloader = ModelDownloader(
                models_url=self.config.vosk_models_url,
                cache_dir=self.config.vosk_cache_dir,
            )
            model_store = VoskModelStore(self.config.vosk_model, downloader=downloader)
        self.model_store: VoskModelStore | None = model_store

        self._stream = stream or TranscriptionStream()
        self._providers: dict[ProviderIdentity, SpeechProvider] = dict(providers or {})
        self._active: SpeechProvider | None = None
        try:
            self._current = ProviderIdentity.parse(self.config.provider)
        except ValueError as e:
            logger.warning(f"{e}; falling back to vosk")
            self._current = ProviderIdentity.VOSK
        self._lock = asyncio.Lock()
        self._disposed = False

        # Ordering state for the attached provider
        self._last_utterance = 0
        self._finalized: set[int] = set()

    @property
    def current_provider(self) -> ProviderIdentity:
        return self._current

    @property
    def is_initialized(self) -> bool:
        return self._active is not None and self._active.is_ready

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def transcription_stream(self) -> TranscriptionStream:
        return self._stream

    @staticmethod
    def provider_display_name(provider: ProviderIdentity) -> str:
        return provider_display_name(provider)

    @staticmethod
    def provider_description(provider: ProviderIdentity) -> str:
        return provider_description(provider)

    def _provider_for(self, identity: ProviderIdentity) -> SpeechProvider:
        provider = self._providers.get(identity)
        if provider is None:
            provider = create_provider(identity, self.config, self.model_store)
            self._providers[identity] = provider
        return provider

    def _make_sink(self, provider: SpeechProvider):
        def sink(event: ProviderEvent) -> None:
            if provider is not self._active:
                logger.debug(f"Dropping result from inactive provider {provider.identity.value}")
                return
            self._forward(event)

        return sink

    def _forward(self, event: ProviderEvent) -> None:
        utterance_id = event.utterance_id
        if utterance_id < self._last_utterance:
            logger.debug(f"Dropping result from superseded utterance {utterance_id}")
            return
        if utterance_id in self._finalized:
            logger.debug(f"Dropping result after final for utterance {utterance_id}")
            return

        if utterance_id > self._last_utterance:
            self._finalized = {u for u in self._finalized if u >= utterance_id}
            self._last_utterance = utterance_id
        if event.result.is_final:
            self._finalized.add(utterance_id)
        self._stream.publish(event.result)

    def _attach(self, provider: SpeechProvider) -> None:
        if self._active is not None and self._active is not provider:
            self._active.detach()
        self._last_utterance = 0
        self._finalized = set()
        self._active = provider
        provider.attach(self._make_sink(provider))

    async def initialize(self, provider: ProviderIdentity | str | None = None) -> bool:
        """Initialize ``provider`` (default: the current one) and make it active.

        Returns False, leaving the previously active provider in place, if the
        provider cannot be initialized.
        """
        if self._disposed:
            logger.warning("initialize() called on a disposed STT service")
            return False

        try:
            identity = ProviderIdentity.parse(provider) if provider is not None else self._current
        except ValueError as e:
            logger.error(str(e))
            return False

        async with self._lock:
            candidate = self._provider_for(identity)
            try:
                await candidate.initialize()
            except ProviderError as e:
                if e.reason is FailureReason.CREDENTIAL_MISSING:
                    logger.error(f"Cannot initialize {provider_display_name(identity)}: {e}")
                elif e.reason is FailureReason.MODEL_UNAVAILABLE:
                    logger.error(f"Speech model unavailable for {provider_display_name(identity)}: {e}")
                else:
                    logger.error(f"Failed to initialize {provider_display_name(identity)}: {e}")
                return False
            except Exception:
                logger.exception(f"Unexpected error initializing {provider_display_name(identity)}")
                return False

            self._attach(candidate)
            self._current = identity
            logger.info(f"STT provider active: {provider_display_name(identity)}")
            return True

    async def switch_provider(self, new_provider: ProviderIdentity | str) -> bool:
        """Make ``new_provider`` the active provider."""
        try:
            identity = ProviderIdentity.parse(new_provider)
        except ValueError as e:
            logger.error(str(e))
            return False

        if identity is self._current and self.is_initialized:
            return True

        logger.info(f"Switching STT provider: {self._current.value} -> {identity.value}")
        return await self.initialize(identity)

    def _ready_provider(self) -> SpeechProvider | TranscriptionOutcome:
        if self._disposed:
            return TranscriptionOutcome.failure(FailureReason.DISPOSED, self._current, "STT service disposed")
        if not self.is_initialized:
            logger.error(f"{provider_display_name(self._current)} not initialized")
            return TranscriptionOutcome.failure(
                FailureReason.NOT_INITIALIZED,
                self._current,
                f"{provider_display_name(self._current)} not initialized",
            )
        return self._active

    async def process_file(self, path: str | Path) -> TranscriptionOutcome:
        """Transcribe a finished recording with the active provider."""
        async with self._lock:
            provider = self._ready_provider()
            if isinstance(provider, TranscriptionOutcome):
                return provider

            identity = provider.identity
            try:
                text = await provider.process_file(str(path))
            except ProviderError as e:
                logger.error(f"{provider_display_name(identity)} failed on {path}: {e}")
                return TranscriptionOutcome.failure(e.reason, identity, str(e), e.status_code)
            except Exception as e:
                logger.exception(f"Unexpected error transcribing {path}")
                return TranscriptionOutcome.failure(FailureReason.PROCESSING, identity, str(e))

            return TranscriptionOutcome.success(text, identity)

    async def process_wav_file(self, path: str | Path) -> str:
        """Transcribe a WAV recording; empty string on any failure."""
        outcome = await self.process_file(path)
        return outcome.text

    async def process_m4a_file(self, path: str | Path) -> TranscriptionOutcome:
        """Transcribe a compressed recording.

        Only the cloud provider accepts compressed containers; the on-device
        recognizer needs raw 16 kHz PCM.
        """
        if not self._disposed and self._current is not ProviderIdentity.WHISPER:
            logger.warning(f"{provider_display_name(self._current)} cannot transcribe {Path(path).suffix} audio")
            return TranscriptionOutcome.failure(
                FailureReason.UNSUPPORTED_FORMAT,
                self._current,
                "Compressed audio requires the cloud provider",
            )
        return await self.process_file(path)

    async def transcribe_detailed(self, path: str | Path, language: str | None = None) -> dict[str, Any] | None:
        """Segment-level transcript from the cloud provider, or None."""
        async with self._lock:
            provider = self._ready_provider()
            if not isinstance(provider, WhisperCloudProvider):
                logger.warning("Detailed transcription requires the cloud provider")
                return None
            try:
                return await provider.transcribe_file_detailed(str(path), language)
            except ProviderError as e:
                logger.error(f"Detailed transcription failed on {path}: {e}")
                return None

    async def process_audio(self, chunk: bytes) -> TranscriptionResult | None:
        """Feed live PCM audio to the on-device recognizer."""
        async with self._lock:
            provider = self._ready_provider()
            if not isinstance(provider, VoskProvider):
                return None
            try:
                return await provider.process_audio(chunk)
            except ProviderError as e:
                logger.error(f"Streaming recognition failed: {e}")
                return None

    async def finish_audio(self) -> str:
        """Flush live audio fed through process_audio() and return the final text."""
        async with self._lock:
            provider = self._ready_provider()
            if not isinstance(provider, VoskProvider):
                return ""
            try:
                return await provider.final_result()
            except ProviderError as e:
                logger.error(f"Streaming recognition failed: {e}")
                return ""

    async def reset(self) -> None:
        """Discard the in-progress utterance of the on-device recognizer."""
        if self._disposed or self._current is not ProviderIdentity.VOSK:
            return
        async with self._lock:
            provider = self._providers.get(ProviderIdentity.VOSK)
            if provider is not None:
                await provider.reset()

    async def dispose(self) -> None:
        """Release every provider and close the stream. Safe to call twice."""
        if self._disposed:
            return
        self._disposed = True

        async with self._lock:
            self._stream.close()
            self._active = None
            for identity, provider in list(self._providers.items()):
                provider.detach()
                try:
                    await provider.dispose()
                except Exception:
                    logger.exception(f"Error disposing {provider_display_name(identity)}")
            self._providers.clear()

            if self._owns_model_store and self.model_store is not None:
                self.model_store.release()
            self.model_store = None
        logger.info("STT service disposed")

    async def __aenter__(self) -> "STTService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
