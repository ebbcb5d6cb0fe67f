"""Transcription APIs for voicenote-stt.

Exports are resolved lazily so that importing a submodule (for example
``voicenote_stt.transcription.types`` from the audio helpers) does not pull
in the providers and their HTTP stack.
"""

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .service import STTService
    from .stream import TranscriptionStream, TranscriptionSubscription
    from .types import (
        FailureReason,
        ProviderError,
        ProviderEvent,
        ProviderIdentity,
        TranscriptionOutcome,
        TranscriptionResult,
    )

_LAZY_EXPORTS = {
    "STTService": (".service", "STTService"),
    "TranscriptionStream": (".stream", "TranscriptionStream"),
    "TranscriptionSubscription": (".stream", "TranscriptionSubscription"),
    "FailureReason": (".types", "FailureReason"),
    "ProviderError": (".types", "ProviderError"),
    "ProviderEvent": (".types", "ProviderEvent"),
    "ProviderIdentity": (".types", "ProviderIdentity"),
    "TranscriptionOutcome": (".types", "TranscriptionOutcome"),
    "TranscriptionResult": (".types", "TranscriptionResult"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = list(_LAZY_EXPORTS)
