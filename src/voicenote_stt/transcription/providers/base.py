"""Common capability set for speech recognition providers."""

import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..types import ProviderEvent, ProviderIdentity, TranscriptionResult

EventSink = Callable[[ProviderEvent], None]


class SpeechProvider(ABC):
    """Base class for on-device and cloud recognizers.

    Providers raise ProviderError subclasses from their coroutines; the STT
    service turns those into booleans and TranscriptionOutcome values.
    Results are emitted only through the sink attached by the service.
    """

    identity: ProviderIdentity

    def __init__(self) -> None:
        self._sink: EventSink | None = None
        self._utterance_ids = itertools.count(1)

    def attach(self, sink: EventSink) -> None:
        self._sink = sink

    def detach(self) -> None:
        self._sink = None

    @property
    def attached(self) -> bool:
        return self._sink is not None

    def _next_utterance_id(self) -> int:
        return next(self._utterance_ids)

    def _publish(self, utterance_id: int, result: TranscriptionResult) -> None:
        if self._sink is not None:
            self._sink(ProviderEvent(utterance_id=utterance_id, result=result))

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether process_file can be called."""

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire whatever the provider needs. Idempotent."""

    @abstractmethod
    async def process_file(self, path: str) -> str:
        """Transcribe a finished recording and return the final text."""

    async def reset(self) -> None:
        """Discard any in-progress utterance."""
        return None

    @abstractmethod
    async def dispose(self) -> None:
        """Release provider resources."""
