"""Unit tests for transcription types."""

import pytest

from voicenote_stt.transcription.types import (
    CredentialMissingError,
    FailureReason,
    ModelUnavailableError,
    ProviderIdentity,
    StaleUtteranceError,
    TranscriptionOutcome,
    TranscriptionResult,
)


class TestTranscriptionResult:
    def test_creation(self):
        result = TranscriptionResult(text="hello", is_final=True, confidence=1.0)
        assert result.to_dict() == {"text": "hello", "is_final": True, "confidence": 1.0}

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_out_of_range(self, confidence):
        with pytest.raises(ValueError):
            TranscriptionResult(text="x", is_final=False, confidence=confidence)

    def test_is_immutable(self):
        result = TranscriptionResult(text="x", is_final=False, confidence=0.8)
        with pytest.raises(AttributeError):
            result.text = "y"


class TestProviderIdentity:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("vosk", ProviderIdentity.VOSK),
            ("On-Device", ProviderIdentity.VOSK),
            ("on_device", ProviderIdentity.VOSK),
            ("whisper", ProviderIdentity.WHISPER),
            ("cloud", ProviderIdentity.WHISPER),
            (ProviderIdentity.WHISPER, ProviderIdentity.WHISPER),
        ],
    )
    def test_parse(self, name, expected):
        assert ProviderIdentity.parse(name) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown STT provider"):
            ProviderIdentity.parse("google")


class TestTranscriptionOutcome:
    def test_success(self):
        outcome = TranscriptionOutcome.success("text", ProviderIdentity.VOSK)
        assert outcome.ok
        assert outcome.to_dict()["provider"] == "vosk"

    def test_failure_has_empty_text(self):
        outcome = TranscriptionOutcome.failure(FailureReason.HTTP_STATUS, ProviderIdentity.WHISPER, status_code=401)
        assert not outcome.ok
        assert outcome.text == ""
        assert outcome.to_dict()["reason"] == "http_status"
        assert outcome.status_code == 401


def test_errors_carry_reasons():
    assert CredentialMissingError().reason is FailureReason.CREDENTIAL_MISSING
    assert ModelUnavailableError("gone").reason is FailureReason.MODEL_UNAVAILABLE
    stale = StaleUtteranceError(1, 2)
    assert stale.utterance_id == 1
    assert stale.current_id == 2
