"""Hook implementations for voicenote-stt.

This file contains the business logic for the CLI commands in ``cli.py``.

IMPORTANT: Hook names must use snake_case with 'on_' prefix
Example:
- Command 'transcribe' -> Hook function 'on_transcribe'
"""

import logging
from pathlib import Path
from typing import Any

from .core.config import ConfigLoader, get_config
from .transcription.providers import get_provider_info
from .transcription.service import COMPRESSED_SUFFIXES, STTService
from .transcription.types import ProviderIdentity, TranscriptionOutcome
from .utils.model_downloader import ModelDownloader, ProgressCallback

logger = logging.getLogger(__name__)


async def on_transcribe(
    audio_file: str,
    provider: str | None = None,
    language: str | None = None,
    detailed: bool = False,
    config: ConfigLoader | None = None,
    **kwargs,
) -> dict[str, Any]:
    """Handle transcribe command.

    Returns:
        Dictionary with status, provider and text or failure reason
    """
    config = config or get_config()
    if language:
        config = config.with_overrides({"stt": {"language": language}})
    async with STTService(config=config) as stt:
        if not await stt.initialize(provider):
            return {
                "status": "error",
                "provider": provider or config.provider,
                "message": "Failed to initialize speech recognition",
            }

        provider_name = stt.current_provider.value
        if detailed:
            document = await stt.transcribe_detailed(audio_file, language)
            if document is None:
                return {"status": "error", "provider": provider_name, "message": "Detailed transcription failed"}
            return {"status": "success", "provider": provider_name, "text": document.get("text", ""), "result": document}

        if Path(audio_file).suffix.lower() in COMPRESSED_SUFFIXES:
            outcome = await stt.process_m4a_file(audio_file)
        else:
            outcome = await stt.process_file(audio_file)

    return _outcome_to_response(outcome)


def _outcome_to_response(outcome: TranscriptionOutcome) -> dict[str, Any]:
    response = outcome.to_dict()
    response["status"] = "success" if outcome.ok else "error"
    if not outcome.ok:
        response["message"] = outcome.detail or outcome.reason.value
    return response


async def on_models(
    language: str | None = None,
    config: ConfigLoader | None = None,
    **kwargs,
) -> dict[str, Any]:
    """Handle models command.

    Returns:
        Dictionary with status and the published Vosk models
    """
    config = config or get_config()
    downloader = ModelDownloader(models_url=config.vosk_models_url, cache_dir=config.vosk_cache_dir)
    models = await downloader.list_available_models(language)
    return {"status": "success", "models": models, "configured": config.vosk_model}


async def on_download(
    model: str | None = None,
    force: bool = False,
    progress_callback: ProgressCallback | None = None,
    config: ConfigLoader | None = None,
    **kwargs,
) -> dict[str, Any]:
    """Handle download command.

    Returns:
        Dictionary with status and the local model directory
    """
    config = config or get_config()
    model_name = model or config.vosk_model
    downloader = ModelDownloader(models_url=config.vosk_models_url, cache_dir=config.vosk_cache_dir)
    path = await downloader.download_model(model_name, progress_callback=progress_callback, force=force)
    logger.info(f"Model {model_name} ready at {path}")
    return {"status": "success", "model": model_name, "path": str(path)}


def on_status(config: ConfigLoader | None = None, **kwargs) -> dict[str, Any]:
    """Handle status command.

    Returns:
        Dictionary with configured provider, provider availability and model cache state
    """
    config = config or get_config()
    downloader = ModelDownloader(models_url=config.vosk_models_url, cache_dir=config.vosk_cache_dir)
    try:
        current = ProviderIdentity.parse(config.provider).value
    except ValueError:
        current = config.provider

    return {
        "status": "success",
        "provider": current,
        "language": config.language,
        "providers": get_provider_info(),
        "vosk_model": config.vosk_model,
        "vosk_model_cached": downloader.is_cached(config.vosk_model),
        "vosk_cache_dir": str(downloader.cache_dir),
        "openai_api_key_set": bool(config.openai_api_key),
        "config_file": config.config_file,
    }


__all__ = ["on_download", "on_models", "on_status", "on_transcribe"]
