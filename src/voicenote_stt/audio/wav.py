"""PCM payload helpers for recorded WAV files.

Recordings arrive as 16 kHz, 16-bit mono PCM in a canonical WAV container.
The recognizer wants the raw samples only, fed in fixed-size pieces.
"""

from collections.abc import Iterator
from pathlib import Path

from ..transcription.types import FailureReason, ProviderError

WAV_HEADER_BYTES = 44
# 0.5s of 16kHz, 16-bit mono audio
CHUNK_SIZE_BYTES = 8000
SAMPLE_RATE_HZ = 16000
BYTES_PER_SAMPLE = 2


def strip_wav_header(data: bytes) -> bytes:
    """Return the PCM section of a canonical WAV file.

    Files of 44 bytes or less carry no audio and yield ``b""``.
    """
    if len(data) <= WAV_HEADER_BYTES:
        return b""
    return data[WAV_HEADER_BYTES:]


def read_pcm_payload(path: str | Path) -> bytes:
    """Read a WAV file and return its raw PCM payload.

    Raises:
        ProviderError: FILE_NOT_FOUND if the path does not exist.

    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ProviderError(FailureReason.FILE_NOT_FOUND, f"WAV file not found: {file_path}")
    return strip_wav_header(file_path.read_bytes())


def iter_pcm_chunks(pcm: bytes, chunk_size: int = CHUNK_SIZE_BYTES) -> Iterator[bytes]:
    """Yield consecutive ``chunk_size`` slices of ``pcm``.

    The final slice holds the remainder when the payload is not an exact
    multiple of ``chunk_size``.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    for start in range(0, len(pcm), chunk_size):
        yield pcm[start : start + chunk_size]


def describe_pcm(pcm: bytes, sample_rate: int = SAMPLE_RATE_HZ) -> float:
    """Duration of a 16-bit mono PCM payload in seconds."""
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    return len(pcm) / (sample_rate * BYTES_PER_SAMPLE)
