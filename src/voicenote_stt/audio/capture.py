"""Interfaces for the platform audio recorder and the note store.

Recording and persistence are supplied by the host application; this
package only consumes them.
"""

from collections.abc import Callable
from datetime import timedelta
from enum import Enum
from typing import Protocol

from ..transcription.types import ProviderIdentity


class RecordingState(Enum):
    """State of the audio recorder."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"
    PERMISSION_DENIED = "permission_denied"
    ERROR = "error"


StateListener = Callable[[RecordingState], None]
DurationListener = Callable[[timedelta], None]


class AudioRecorder(Protocol):
    """Recorder producing 16 kHz mono PCM WAV files.

    Reports state changes and periodic duration ticks through listeners.
    """

    async def initialize(self) -> bool:
        """Request microphone access and open the recorder."""
        ...

    async def start_recording(self) -> str | None:
        """Start recording; returns the path being written or None on failure."""
        ...

    async def stop_recording(self) -> str | None:
        """Stop recording; returns the finished file path or None."""
        ...

    async def pause_recording(self) -> None: ...

    async def resume_recording(self) -> None: ...

    async def dispose(self) -> None: ...

    def add_state_listener(self, listener: StateListener) -> None: ...

    def add_duration_listener(self, listener: DurationListener) -> None: ...


class NoteSink(Protocol):
    """Receives finished transcripts for storage."""

    async def save_transcript(self, text: str, provider: ProviderIdentity) -> None: ...
