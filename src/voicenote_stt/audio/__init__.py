#!/usr/bin/env python3
"""Audio APIs for voicenote-stt.

Public surface is kept explicit to reduce accidental coupling to internals.
"""

from .capture import AudioRecorder, NoteSink, RecordingState
from .wav import (
    CHUNK_SIZE_BYTES,
    WAV_HEADER_BYTES,
    describe_pcm,
    iter_pcm_chunks,
    read_pcm_payload,
    strip_wav_header,
)

__all__ = [
    "AudioRecorder",
    "CHUNK_SIZE_BYTES",
    "NoteSink",
    "RecordingState",
    "WAV_HEADER_BYTES",
    "describe_pcm",
    "iter_pcm_chunks",
    "read_pcm_payload",
    "strip_wav_header",
]
