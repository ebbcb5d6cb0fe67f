"""Shared fixtures for voicenote-stt tests.

The vosk package is replaced by an in-process fake so that the on-device
provider can be exercised without a native library or acoustic model.
"""

import sys
import types
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from voicenote_stt.core.config import ConfigLoader
from voicenote_stt.transcription.providers.base import SpeechProvider
from voicenote_stt.transcription.types import ProviderIdentity, TranscriptionResult

WAV_HEADER = b"RIFF" + b"\x00" * 40


class FakeRecognizer:
    """Stand-in for vosk.KaldiRecognizer."""

    final_text = "hello world"
    partial_text = "hello"

    def __init__(self, model=None, sample_rate=16000):
        self.model = model
        self.sample_rate = sample_rate
        self.fed: list[int] = []
        self.resets = 0
        self.complete_after: int | None = None

    def AcceptWaveform(self, data):
        self.fed.append(len(data))
        return self.complete_after is not None and len(self.fed) >= self.complete_after

    def Result(self):
        return '{\n  "text" : "%s"\n}' % self.final_text

    def PartialResult(self):
        return '{\n  "partial" : "%s"\n}' % self.partial_text

    def FinalResult(self):
        return '{\n  "text" : "%s"\n}' % self.final_text

    def Reset(self):
        self.resets += 1


@pytest.fixture
def fake_vosk():
    """Install a fake ``vosk`` module; exposes the recognizers it creates."""
    module = types.ModuleType("vosk")
    module.recognizers = []

    def make_recognizer(model, sample_rate):
        recognizer = FakeRecognizer(model, sample_rate)
        module.recognizers.append(recognizer)
        return recognizer

    module.Model = MagicMock(name="Model")
    module.KaldiRecognizer = make_recognizer
    module.SetLogLevel = MagicMock(name="SetLogLevel")

    with patch.dict(sys.modules, {"vosk": module}):
        yield module


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep user config, credentials and log files out of tests."""
    for name in (
        "OPENAI_API_KEY",
        "VOICENOTE_PROVIDER",
        "VOICENOTE_VOSK_MODEL",
        "VOICENOTE_LOG_LEVEL",
        "VOICENOTE_CONSOLE_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("VOICENOTE_CONFIG", str(tmp_path / "missing-config.toml"))
    monkeypatch.setenv("VOICENOTE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("VOICENOTE_VOSK_CACHE", str(tmp_path / "vosk-cache"))


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides) -> ConfigLoader:
        return ConfigLoader(tmp_path / "no-such-config.toml", overrides=overrides or None)

    return _make


@pytest.fixture
def make_wav(tmp_path):
    """Write a WAV file with ``pcm_bytes`` of silence after the header."""

    def _make(pcm_bytes: int, name: str = "note.wav") -> Path:
        path = tmp_path / name
        path.write_bytes(WAV_HEADER + b"\x00" * pcm_bytes)
        return path

    return _make


class FakeProvider(SpeechProvider):
    """Scriptable provider for service-level tests."""

    def __init__(self, identity: ProviderIdentity, text: str = "fake transcript", fail_with: Exception | None = None):
        super().__init__()
        self.identity = identity
        self.text = text
        self.fail_with = fail_with
        self.process_error: Exception | None = None
        self.ready = False
        self.init_calls = 0
        self.resets = 0
        self.disposed = 0

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def initialize(self) -> None:
        self.init_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.ready = True

    async def process_file(self, path: str) -> str:
        if self.process_error is not None:
            raise self.process_error
        self.emit(self._next_utterance_id(), self.text, is_final=True)
        return self.text

    def emit(self, utterance_id: int, text: str, is_final: bool = False) -> None:
        self._publish(utterance_id, TranscriptionResult(text=text, is_final=is_final, confidence=0.9))

    async def reset(self) -> None:
        self.resets += 1

    async def dispose(self) -> None:
        self.disposed += 1
        self.ready = False


@pytest.fixture
def fake_providers():
    return {
        ProviderIdentity.VOSK: FakeProvider(ProviderIdentity.VOSK, text="on device text"),
        ProviderIdentity.WHISPER: FakeProvider(ProviderIdentity.WHISPER, text="cloud text"),
    }


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def fake_recognizer_class():
    return FakeRecognizer
