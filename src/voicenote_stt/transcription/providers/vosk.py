"""On-device speech recognition with Vosk.

The acoustic model is large and slow to acquire, so it lives in a
VoskModelStore owned by whoever builds the STT service and is shared by
every recognizer created from it. Each provider holds one recognizer,
wrapped in a RecognizerSession that refuses audio from an utterance that is
no longer current; starting an utterance resets a recognizer that has
already heard audio.
"""

import asyncio
import itertools
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ...audio.wav import CHUNK_SIZE_BYTES, SAMPLE_RATE_HZ, describe_pcm, iter_pcm_chunks, read_pcm_payload
from ...utils.model_downloader import DEFAULT_MODEL, ModelDownloader
from ..types import (
    FailureReason,
    ModelUnavailableError,
    ProviderError,
    ProviderIdentity,
    StaleUtteranceError,
    TranscriptionResult,
)
from .base import SpeechProvider

logger = logging.getLogger(__name__)

FINAL_CONFIDENCE = 1.0
PARTIAL_CONFIDENCE = 0.8

_TEXT_RE = re.compile(r'"text"\s*:\s*"([^"]*)"')
_PARTIAL_RE = re.compile(r'"partial"\s*:\s*"([^"]*)"')


def _extract(payload: str | bytes | None, key: str, pattern: re.Pattern) -> str:
    if not payload:
        return ""
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        match = pattern.search(payload)
        return match.group(1).strip() if match else ""
    if not isinstance(data, dict):
        return ""
    value = data.get(key, "")
    return value.strip() if isinstance(value, str) else ""


def parse_result(payload: str | bytes | None) -> str:
    """Text of a final result such as ``{"text" : "hello world"}``."""
    return _extract(payload, "text", _TEXT_RE)


def parse_partial(payload: str | bytes | None) -> str:
    """Text of a partial result such as ``{"partial" : "hello"}``."""
    return _extract(payload, "partial", _PARTIAL_RE)


class VoskModelStore:
    """Shared owner of the Vosk acoustic model.

    The model is acquired once, on first demand, and handed to every
    recognizer built from this store. It is only ever read after loading.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        downloader: ModelDownloader | None = None,
        model_path: str | Path | None = None,
    ):
        self.model_name = model_name
        self.downloader = downloader or ModelDownloader()
        self.model_path = Path(model_path) if model_path else None
        self._model: Any = None
        self._lock = asyncio.Lock()
        self.acquisitions = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    async def acquire(self) -> Any:
        """Return the model, downloading and loading it on first call.

        Raises:
            ModelUnavailableError: If vosk is missing or the model cannot be loaded.

        """
        if self._model is not None:
            return self._model

        async with self._lock:
            if self._model is not None:
                return self._model

            try:
                from vosk import Model, SetLogLevel
            except ImportError as e:
                raise ModelUnavailableError("vosk is not installed. Install it with: pip install vosk", e) from e

            SetLogLevel(-1)
            model_dir = self.model_path or await self.downloader.download_model(self.model_name)

            logger.info(f"Creating Vosk model from path: {model_dir}")
            loop = asyncio.get_running_loop()
            try:
                self._model = await loop.run_in_executor(None, Model, str(model_dir))
            except Exception as e:
                logger.exception(f"Failed to load Vosk model from {model_dir}")
                raise ModelUnavailableError(f"Failed to load Vosk model from {model_dir}: {e}", e) from e

            self.acquisitions += 1
            return self._model

    def release(self) -> None:
        """Drop the model handle; the next acquire() loads it again."""
        self._model = None


@dataclass(frozen=True)
class Utterance:
    """Token proving the holder may feed audio to the current utterance."""

    id: int


class RecognizerSession:
    """One Vosk recognizer plus the bookkeeping that keeps utterances apart."""

    def __init__(self, recognizer: Any):
        self._recognizer = recognizer
        self._ids = itertools.count(1)
        self._current: Utterance | None = None
        self._dirty = False

    @property
    def current(self) -> Utterance | None:
        return self._current

    async def start_utterance(self) -> Utterance:
        """Begin a new utterance, resetting the recognizer if it has heard audio."""
        if self._dirty:
            await self.reset()
        self._current = Utterance(next(self._ids))
        return self._current

    def end_utterance(self, token: Utterance) -> None:
        if self._current == token:
            self._current = None

    def _check(self, token: Utterance) -> None:
        if self._current is None or token != self._current:
            raise StaleUtteranceError(token.id, self._current.id if self._current else 0)

    async def feed(self, token: Utterance, chunk: bytes) -> bool:
        """Feed PCM audio; True when the recognizer completed a segment."""
        self._check(token)
        self._dirty = True
        return bool(await asyncio.to_thread(self._recognizer.AcceptWaveform, chunk))

    async def result(self, token: Utterance) -> str:
        self._check(token)
        return await asyncio.to_thread(self._recognizer.Result)

    async def partial_result(self, token: Utterance) -> str:
        self._check(token)
        return await asyncio.to_thread(self._recognizer.PartialResult)

    async def final_result(self, token: Utterance) -> str:
        """Flush the utterance and end it."""
        self._check(token)
        try:
            return await asyncio.to_thread(self._recognizer.FinalResult)
        finally:
            self.end_utterance(token)

    async def reset(self) -> None:
        """Reset the recognizer. A reset with no audio since the last one does nothing."""
        self._current = None
        if not self._dirty:
            return
        await asyncio.to_thread(self._recognizer.Reset)
        self._dirty = False


class VoskProvider(SpeechProvider):
    """Streaming on-device recognizer.

    process_file() feeds a whole recording in fixed-size chunks and emits one
    final result; process_audio() accepts live audio and emits partial
    results until the recognizer closes a segment.
    """

    identity = ProviderIdentity.VOSK

    def __init__(
        self,
        model_store: VoskModelStore,
        sample_rate: int = SAMPLE_RATE_HZ,
        chunk_size: int = CHUNK_SIZE_BYTES,
    ):
        super().__init__()
        self.model_store = model_store
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self._session: RecognizerSession | None = None

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> RecognizerSession | None:
        return self._session

    async def initialize(self) -> None:
        if self._session is not None:
            return

        model = await self.model_store.acquire()
        try:
            from vosk import KaldiRecognizer
        except ImportError as e:
            raise ModelUnavailableError("vosk is not installed. Install it with: pip install vosk", e) from e

        try:
            recognizer = await asyncio.to_thread(KaldiRecognizer, model, self.sample_rate)
        except Exception as e:
            raise ModelUnavailableError(f"Could not create Vosk recognizer: {e}", e) from e

        self._session = RecognizerSession(recognizer)
        logger.info(f"Vosk STT initialized successfully ({self.sample_rate} Hz)")

    def _require_session(self) -> RecognizerSession:
        if self._session is None:
            raise ProviderError(FailureReason.NOT_INITIALIZED, "Vosk not initialized")
        return self._session

    async def process_file(self, path: str) -> str:
        session = self._require_session()

        pcm = await asyncio.to_thread(read_pcm_payload, path)
        if not pcm:
            raise ProviderError(FailureReason.NO_AUDIO, f"WAV file has no audio after the header: {path}")

        logger.debug(f"PCM data size: {len(pcm)} bytes ({describe_pcm(pcm, self.sample_rate):.2f}s of audio)")

        token = await session.start_utterance()
        try:
            for chunk in iter_pcm_chunks(pcm, self.chunk_size):
                await session.feed(token, chunk)
            payload = await session.final_result(token)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(FailureReason.PROCESSING, f"Vosk recognition failed: {e}") from e

        text = parse_result(payload)
        self._publish(token.id, TranscriptionResult(text=text, is_final=True, confidence=FINAL_CONFIDENCE))
        return text

    async def process_audio(self, chunk: bytes) -> TranscriptionResult | None:
        """Feed live 16-bit PCM audio.

        Returns the emitted result, or None when the recognizer has nothing
        new to report.
        """
        session = self._require_session()
        token = session.current or await session.start_utterance()

        try:
            completed = await session.feed(token, chunk)
            if completed:
                text = parse_result(await session.result(token))
                session.end_utterance(token)
                result = TranscriptionResult(text=text, is_final=True, confidence=FINAL_CONFIDENCE)
            else:
                text = parse_partial(await session.partial_result(token))
                if not text:
                    return None
                result = TranscriptionResult(text=text, is_final=False, confidence=PARTIAL_CONFIDENCE)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(FailureReason.PROCESSING, f"Vosk recognition failed: {e}") from e

        self._publish(token.id, result)
        return result

    async def final_result(self) -> str:
        """Flush the utterance fed through process_audio()."""
        session = self._require_session()
        token = session.current
        if token is None:
            return ""
        text = parse_result(await session.final_result(token))
        self._publish(token.id, TranscriptionResult(text=text, is_final=True, confidence=FINAL_CONFIDENCE))
        return text

    async def reset(self) -> None:
        if self._session is not None:
            await self._session.reset()

    async def dispose(self) -> None:
        self.detach()
        # The recognizer is freed with its last reference; the model stays
        # with the store for other recognizers.
        self._session = None
