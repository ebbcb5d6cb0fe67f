#!/usr/bin/env python3
"""voicenote-stt operation modes

- voice_note: Record, transcribe and store a single voice note
"""

from .voice_note import VoiceNoteCapture, format_duration

__all__ = ["VoiceNoteCapture", "format_duration"]
