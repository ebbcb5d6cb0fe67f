"""VoiceNoteCapture - Record a note, transcribe it, hand it to storage.

Drives one capture surface: the recorder supplies WAV files and state
changes, the STT service turns finished recordings into text, and the
optional NoteSink stores the transcript with the provider that produced it.
User-facing problems are reported through the ``notify`` callback as short
messages.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from ..audio.capture import AudioRecorder, NoteSink, RecordingState
from ..transcription.service import STTService
from ..transcription.types import ProviderIdentity, TranscriptionOutcome, TranscriptionResult

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Microphone permission denied"
RECORDING_ERROR_MESSAGE = "Recording error occurred"
SWITCH_FAILED_MESSAGE = "Failed to switch provider"
INIT_FAILED_MESSAGE = "Failed to initialize speech recognition"

Notifier = Callable[[str], None]

_ACTIVE_STATES = (
    RecordingState.READY,
    RecordingState.STOPPED,
    RecordingState.RECORDING,
    RecordingState.PAUSED,
)


def format_duration(duration: timedelta) -> str:
    """Format a recording duration as MM:SS."""
    total = int(duration.total_seconds())
    minutes = (total // 60) % 60
    seconds = total % 60
    return f"{minutes:02d}:{seconds:02d}"


class VoiceNoteCapture:
    """Capture surface state and actions."""

    def __init__(
        self,
        recorder: AudioRecorder,
        service: STTService,
        sink: NoteSink | None = None,
        notify: Notifier | None = None,
    ):
        self.recorder = recorder
        self.service = service
        self.sink = sink
        self._notify = notify or (lambda message: logger.info(message))

        self.recording_state = RecordingState.UNINITIALIZED
        self.duration = timedelta()
        self.last_recording_path: str | None = None
        self.transcription = ""
        self.partial_transcription = ""
        self.provider = service.current_provider
        self.last_outcome: TranscriptionOutcome | None = None

        self._remove_listener: Callable[[], None] | None = None

    @property
    def display_text(self) -> str:
        """Final transcript followed by the provisional hypothesis."""
        if self.partial_transcription:
            return f"{self.transcription.strip()} {self.partial_transcription}".strip()
        return self.transcription.strip()

    @property
    def can_toggle(self) -> bool:
        return self.recording_state in _ACTIVE_STATES

    @property
    def provider_name(self) -> str:
        return self.service.provider_display_name(self.provider)

    def _on_state(self, state: RecordingState) -> None:
        self.recording_state = state
        if state is RecordingState.PERMISSION_DENIED:
            self._notify(PERMISSION_DENIED_MESSAGE)
        elif state is RecordingState.ERROR:
            self._notify(RECORDING_ERROR_MESSAGE)

    def _on_duration(self, duration: timedelta) -> None:
        self.duration = duration

    def _on_result(self, result: TranscriptionResult) -> None:
        if result.is_final:
            # A final result replaces the transcript instead of appending
            self.transcription = result.text
            self.partial_transcription = ""
        else:
            self.partial_transcription = result.text

    async def start(self) -> bool:
        """Wire listeners and initialize the recorder and speech service."""
        self.recorder.add_state_listener(self._on_state)
        self.recorder.add_duration_listener(self._on_duration)
        self._remove_listener = self.service.transcription_stream.add_listener(self._on_result)

        if not await self.recorder.initialize():
            logger.warning(f"Recorder not ready ({self.recording_state.value})")
            return False

        if not await self.service.initialize(self.provider):
            self._notify(INIT_FAILED_MESSAGE)
            return False
        return True

    async def switch_provider(self) -> bool:
        """Toggle between the on-device and cloud providers.

        The selection changes immediately and is reverted if the service
        cannot initialize the new provider.
        """
        previous = self.provider
        self.provider = ProviderIdentity.WHISPER if previous is ProviderIdentity.VOSK else ProviderIdentity.VOSK

        if not await self.service.switch_provider(self.provider):
            self.provider = previous
            self._notify(SWITCH_FAILED_MESSAGE)
            return False
        return True

    async def toggle_recording(self) -> TranscriptionOutcome | None:
        """Start a recording, or stop the current one and transcribe it."""
        if self.recording_state is not RecordingState.RECORDING:
            self.transcription = ""
            self.partial_transcription = ""
            await self.recorder.start_recording()
            return None

        path = await self.recorder.stop_recording()
        if path is None:
            logger.warning("Recorder returned no file")
            return None
        self.last_recording_path = path

        outcome = await self.service.process_file(path)
        self.last_outcome = outcome
        if not outcome.ok:
            logger.warning(f"Transcription failed ({outcome.reason.value}): {outcome.detail}")
            return outcome

        if outcome.text:
            self.transcription = outcome.text
            self.partial_transcription = ""
            if self.sink is not None:
                await self.sink.save_transcript(outcome.text, outcome.provider)
        return outcome

    async def close(self) -> None:
        """Release the recorder and the speech service."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        await self.recorder.dispose()
        await self.service.dispose()
