"""Cloud speech recognition through the Whisper transcription API.

Each recording is uploaded once as multipart form data and comes back as a
single final transcript. There is no retry: a failed request surfaces to the
caller as a ProviderError carrying the failure class.
"""

import asyncio
import json
import logging
from pathlib import Path
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import aiohttp

from ..types import (
    CredentialMissingError,
    FailureReason,
    ProviderError,
    ProviderIdentity,
    TranscriptionResult,
)
from .base import SpeechProvider

if TYPE_CHECKING:
    from ...core.config import ConfigLoader

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "whisper-1"
TRANSCRIPTIONS_PATH = "/audio/transcriptions"

# The API reports no confidence; cloud transcripts are treated as high quality
CONFIDENCE = 0.95

_CONTENT_TYPES = {
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".webm": "audio/webm",
}


class WhisperCloudProvider(SpeechProvider):
    """Uploads finished recordings to the Whisper API."""

    identity = ProviderIdentity.WHISPER

    def __init__(
        self,
        api_key: str | Callable[[], str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        language: str = "en",
        connect_timeout: float = 30.0,
        receive_timeout: float = 60.0,
    ):
        super().__init__()
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.language = language
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: "ConfigLoader") -> "WhisperCloudProvider":
        return cls(
            api_key=lambda: config.openai_api_key,
            base_url=config.whisper_base_url,
            model=config.whisper_model,
            language=config.language,
            connect_timeout=config.whisper_connect_timeout,
            receive_timeout=config.whisper_receive_timeout,
        )

    @property
    def api_key(self) -> str:
        """The credential, resolved again on every read when given as a callable."""
        key = self._api_key() if callable(self._api_key) else self._api_key
        return (key or "").strip()

    @property
    def is_ready(self) -> bool:
        return self._session is not None and not self._session.closed

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{TRANSCRIPTIONS_PATH}"

    async def initialize(self) -> None:
        """Create the HTTP session.

        Raises:
            CredentialMissingError: If no API key is configured.

        """
        if self.is_ready:
            return
        api_key = self.api_key
        if not api_key:
            raise CredentialMissingError("OpenAI API key not set. Export OPENAI_API_KEY or set whisper.api_key")

        timeout = aiohttp.ClientTimeout(
            total=None,
            connect=self.connect_timeout,
            sock_read=self.receive_timeout,
        )
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        logger.info(f"Whisper API client ready ({self.endpoint}, model={self.model})")

    def _require_session(self) -> aiohttp.ClientSession:
        if not self.is_ready:
            raise ProviderError(FailureReason.NOT_INITIALIZED, "Whisper client not initialized")
        return self._session

    async def process_file(self, path: str) -> str:
        return await self.transcribe_file(path)

    async def transcribe_file(self, path: str, language: str | None = None) -> str:
        """Upload ``path`` and return the transcript text."""
        body = await self._post_transcription(path, language, response_format="text")
        text = body.strip()

        utterance_id = self._next_utterance_id()
        self._publish(utterance_id, TranscriptionResult(text=text, is_final=True, confidence=CONFIDENCE))
        logger.info(f"Whisper transcription: {len(text)} chars")
        return text

    async def transcribe_file_detailed(self, path: str, language: str | None = None) -> dict[str, Any]:
        """Upload ``path`` asking for segment timings.

        Returns the decoded verbose_json document.
        """
        body = await self._post_transcription(path, language, response_format="verbose_json")
        try:
            document = json.loads(body)
        except ValueError as e:
            raise ProviderError(FailureReason.PROCESSING, f"Whisper returned malformed JSON: {e}") from e
        if not isinstance(document, dict):
            raise ProviderError(FailureReason.PROCESSING, "Whisper returned an unexpected JSON document")

        text = str(document.get("text", "")).strip()
        if text:
            utterance_id = self._next_utterance_id()
            self._publish(utterance_id, TranscriptionResult(text=text, is_final=True, confidence=CONFIDENCE))
        return document

    async def _post_transcription(self, path: str, language: str | None, response_format: str) -> str:
        session = self._require_session()

        audio_path = Path(path)
        if not audio_path.is_file():
            raise ProviderError(FailureReason.FILE_NOT_FOUND, f"Audio file not found: {path}")

        audio = await asyncio.to_thread(audio_path.read_bytes)
        form = aiohttp.FormData()
        form.add_field(
            "file",
            audio,
            filename=audio_path.name,
            content_type=_CONTENT_TYPES.get(audio_path.suffix.lower(), "application/octet-stream"),
        )
        form.add_field("model", self.model)
        form.add_field("language", language or self.language)
        form.add_field("response_format", response_format)

        logger.debug(f"Uploading {audio_path.name} ({len(audio)} bytes) to {self.endpoint}")
        try:
            async with session.post(self.endpoint, data=form) as response:
                body = await response.text()
                if response.status != 200:
                    logger.error(f"Whisper API error: {response.status} - {body[:200]}")
                    raise ProviderError(
                        FailureReason.HTTP_STATUS,
                        f"Whisper API returned HTTP {response.status}",
                        status_code=response.status,
                    )
                return body
        except asyncio.TimeoutError as e:
            logger.error(f"Whisper API timed out after {self.receive_timeout}s")
            raise ProviderError(FailureReason.TIMEOUT, "Whisper API request timed out") from e
        except aiohttp.ClientError as e:
            logger.error(f"Whisper API network error: {e}")
            raise ProviderError(FailureReason.NETWORK, f"Whisper API network error: {e}") from e

    async def dispose(self) -> None:
        self.detach()
        if self._session is not None:
            await self._session.close()
            self._session = None
