"""voicenote-stt - Speech-to-text provider switching for voice notes."""

from importlib import metadata
from importlib import import_module
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING


def _get_version() -> str:
    try:
        return metadata.version("voicenote-stt")
    except metadata.PackageNotFoundError:
        pass

    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return str(data["project"]["version"])
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = _get_version()

if TYPE_CHECKING:
    from .core.config import ConfigLoader, get_config
    from .modes.voice_note import VoiceNoteCapture
    from .transcription.service import STTService
    from .transcription.stream import TranscriptionStream
    from .transcription.types import (
        FailureReason,
        ProviderIdentity,
        TranscriptionOutcome,
        TranscriptionResult,
    )

_LAZY_EXPORTS = {
    "STTService": (".transcription.service", "STTService"),
    "TranscriptionStream": (".transcription.stream", "TranscriptionStream"),
    "FailureReason": (".transcription.types", "FailureReason"),
    "ProviderIdentity": (".transcription.types", "ProviderIdentity"),
    "TranscriptionOutcome": (".transcription.types", "TranscriptionOutcome"),
    "TranscriptionResult": (".transcription.types", "TranscriptionResult"),
    "VoiceNoteCapture": (".modes.voice_note", "VoiceNoteCapture"),
    "ConfigLoader": (".core.config", "ConfigLoader"),
    "get_config": (".core.config", "get_config"),
}


def __getattr__(name):
    if name in {"audio", "core", "modes", "transcription", "utils"}:
        module = import_module(f".{name}", __name__)
        globals()[name] = module
        return module

    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = list(_LAZY_EXPORTS)
