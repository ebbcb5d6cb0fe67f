"""Type definitions shared by the providers and the STT service.

Provides:
- TranscriptionResult: Partial or final hypothesis from a provider
- ProviderIdentity: Which recognizer back end is active
- TranscriptionOutcome: Ok(text) / Err(reason) returned by the service
- ProviderEvent: Result tagged with the utterance that produced it
- ProviderError: Base exception raised by providers
"""

from dataclasses import dataclass
from enum import Enum


class ProviderIdentity(Enum):
    """Speech recognition back ends."""

    VOSK = "vosk"  # On-device, private, offline
    WHISPER = "whisper"  # Cloud, high accuracy, requires internet

    @classmethod
    def parse(cls, name: "str | ProviderIdentity") -> "ProviderIdentity":
        """Resolve a provider name or alias.

        Raises:
            ValueError: If the name is not a known provider.

        """
        if isinstance(name, ProviderIdentity):
            return name
        key = str(name).strip().lower().replace("_", "-")
        identity = _PROVIDER_ALIASES.get(key)
        if identity is None:
            known = ", ".join(sorted(_PROVIDER_ALIASES))
            raise ValueError(f"Unknown STT provider: '{name}'. Known names: {known}")
        return identity


_PROVIDER_ALIASES = {
    "vosk": ProviderIdentity.VOSK,
    "on-device": ProviderIdentity.VOSK,
    "local": ProviderIdentity.VOSK,
    "offline": ProviderIdentity.VOSK,
    "whisper": ProviderIdentity.WHISPER,
    "cloud": ProviderIdentity.WHISPER,
    "openai": ProviderIdentity.WHISPER,
}


class FailureReason(Enum):
    """Why a provider operation produced no transcript."""

    NOT_INITIALIZED = "not_initialized"
    CREDENTIAL_MISSING = "credential_missing"
    MODEL_UNAVAILABLE = "model_unavailable"
    FILE_NOT_FOUND = "file_not_found"
    NO_AUDIO = "no_audio"
    UNSUPPORTED_FORMAT = "unsupported_format"
    HTTP_STATUS = "http_status"
    NETWORK = "network"
    TIMEOUT = "timeout"
    PROCESSING = "processing"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class TranscriptionResult:
    """Result from speech recognition.

    ``is_final`` is False for a provisional hypothesis that may still be
    revised, True for the terminal transcript of an utterance.
    ``confidence`` is a provider-assigned heuristic in [0, 1].
    """

    text: str
    is_final: bool
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"text": self.text, "is_final": self.is_final, "confidence": self.confidence}


@dataclass(frozen=True)
class ProviderEvent:
    """A result tagged with the utterance that produced it."""

    utterance_id: int
    result: TranscriptionResult


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Outcome of processing one recording.

    Either ``Ok(text)`` (``reason`` is None) or ``Err(reason)``. ``text`` is
    always an empty string on failure.
    """

    text: str = ""
    provider: ProviderIdentity | None = None
    reason: FailureReason | None = None
    detail: str = ""
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, text: str, provider: ProviderIdentity) -> "TranscriptionOutcome":
        return cls(text=text, provider=provider)

    @classmethod
    def failure(
        cls,
        reason: FailureReason,
        provider: ProviderIdentity | None = None,
        detail: str = "",
        status_code: int | None = None,
    ) -> "TranscriptionOutcome":
        return cls(text="", provider=provider, reason=reason, detail=detail, status_code=status_code)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.ok,
            "text": self.text,
            "provider": self.provider.value if self.provider else None,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
            "status_code": self.status_code,
        }


class ProviderError(Exception):
    """Base exception for provider failures."""

    def __init__(self, reason: FailureReason, message: str, status_code: int | None = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(message)


class CredentialMissingError(ProviderError):
    """Raised when the cloud provider has no API credential configured."""

    def __init__(self, message: str = "No API credential configured"):
        super().__init__(FailureReason.CREDENTIAL_MISSING, message)


class ModelUnavailableError(ProviderError):
    """Raised when the on-device acoustic model cannot be acquired."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(FailureReason.MODEL_UNAVAILABLE, message)


class StaleUtteranceError(ProviderError):
    """Raised when audio is fed with a token from a finished utterance."""

    def __init__(self, utterance_id: int, current_id: int):
        self.utterance_id = utterance_id
        self.current_id = current_id
        super().__init__(
            FailureReason.PROCESSING,
            f"Utterance {utterance_id} is no longer active (current: {current_id})",
        )
