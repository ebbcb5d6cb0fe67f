"""Vosk model downloader with progress tracking.

Resolves a model by name from the published Vosk model list, downloads the
archive on first use and extracts it into the local cache. Later calls find
the extracted directory and skip the network entirely.
"""

import asyncio
import json
import logging
import os
import shutil
import time
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import aiohttp

from ..transcription.types import ModelUnavailableError

logger = logging.getLogger(__name__)

MODEL_LIST_URL = "https://alphacephei.com/vosk/models/model-list.json"

# The 40MB small model is the default; the larger English models exhaust
# memory on phone-class hardware.
DEFAULT_MODEL = "vosk-model-small-en-us-0.15"

# Approximate model sizes in MB for progress estimation when the server
# omits a content length
MODEL_SIZES_MB = {
    "vosk-model-small-en-us-0.15": 40,
    "vosk-model-en-us-0.22-lgraph": 128,
    "vosk-model-en-us-0.22": 1800,
}

ProgressCallback = Callable[[dict], None]

# Written into a model directory once it has been fully extracted
COMPLETE_MARKER = ".voicenote-complete"


@dataclass(frozen=True)
class ModelDescription:
    """Entry of the published model list."""

    name: str
    url: str
    lang: str = ""
    size_bytes: int = 0
    model_type: str = ""
    obsolete: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ModelDescription":
        try:
            size = int(data.get("size", 0) or 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            name=str(data["name"]),
            url=str(data["url"]),
            lang=str(data.get("lang", "")),
            size_bytes=size,
            model_type=str(data.get("type", "")),
            obsolete=str(data.get("obsolete", "false")).lower() == "true",
        )


def get_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Directory holding extracted models."""
    if cache_dir:
        return Path(cache_dir)
    env_dir = os.environ.get("VOICENOTE_VOSK_CACHE")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".cache" / "vosk"


def is_model_cached(model_name: str, cache_dir: str | Path | None = None) -> bool:
    """Check if a model has been downloaded and completely extracted."""
    return (get_cache_dir(cache_dir) / model_name / COMPLETE_MARKER).is_file()


def _extract_archive(archive: Path, cache_dir: Path, model_name: str) -> Path:
    """Extract into a staging directory and move the model into place when complete."""
    staging = cache_dir / f".{model_name}.extracting"
    shutil.rmtree(staging, ignore_errors=True)
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(staging)
        extracted = staging / model_name
        if not extracted.is_dir():
            raise ModelUnavailableError(f"Archive for {model_name} did not contain {model_name}/")
        (extracted / COMPLETE_MARKER).touch()

        target = cache_dir / model_name
        shutil.rmtree(target, ignore_errors=True)
        extracted.rename(target)
    finally:
        shutil.rmtree(staging, ignore_errors=True)
    return target


class ModelDownloader:
    """Fetches Vosk models into the local cache.

    Example:
        downloader = ModelDownloader()
        model_dir = await downloader.download_model("vosk-model-small-en-us-0.15")

    """

    def __init__(
        self,
        models_url: str = MODEL_LIST_URL,
        cache_dir: str | Path | None = None,
        progress_interval: float = 2.0,
    ):
        self.models_url = models_url
        self.cache_dir = get_cache_dir(cache_dir)
        self.progress_interval = progress_interval

    def model_path(self, model_name: str) -> Path:
        return self.cache_dir / model_name

    def is_cached(self, model_name: str) -> bool:
        return is_model_cached(model_name, self.cache_dir)

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=None, connect=30, sock_read=60)

    async def load_models_list(self) -> list[ModelDescription]:
        """Fetch the published model list.

        Raises:
            ModelUnavailableError: If the list cannot be fetched or parsed.

        """
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(self.models_url) as response:
                    if response.status != 200:
                        raise ModelUnavailableError(f"Model list request failed with HTTP {response.status}")
                    payload = json.loads(await response.text())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ModelUnavailableError(f"Could not fetch model list: {e}", e) from e
        except ValueError as e:
            raise ModelUnavailableError(f"Model list is not valid JSON: {e}", e) from e

        if not isinstance(payload, list):
            raise ModelUnavailableError("Model list has an unexpected shape")

        models = []
        for entry in payload:
            if isinstance(entry, dict) and "name" in entry and "url" in entry:
                models.append(ModelDescription.from_dict(entry))
        logger.info(f"Available models: {len(models)}")
        return models

    async def find_model(self, model_name: str) -> ModelDescription:
        models = await self.load_models_list()
        for description in models:
            if description.name == model_name:
                return description
        raise ModelUnavailableError(f"Model not found in list: {model_name}")

    async def download_model(
        self,
        model_name: str = DEFAULT_MODEL,
        progress_callback: ProgressCallback | None = None,
        force: bool = False,
    ) -> Path:
        """Ensure ``model_name`` is available locally and return its directory.

        Args:
            model_name: Name from the Vosk model list
            progress_callback: Receives progress dicts such as
                {"status": "downloading", "progress": 0.5, "downloaded_mb": 20, "total_mb": 40}
            force: Download again even if cached

        Raises:
            ModelUnavailableError: On any lookup, download or extraction failure.

        """
        target = self.model_path(model_name)
        if not force and self.is_cached(model_name):
            logger.info(f"Model {model_name} already cached at {target}")
            if progress_callback:
                progress_callback({"status": "cached", "model": model_name, "path": str(target)})
            return target
        if not force and target.exists():
            logger.warning(f"Model directory {target} is incomplete, downloading again")

        try:
            description = await self.find_model(model_name)
            logger.info(f"Found model: {description.name}")
            logger.info(f"Downloading from: {description.url} (this may take a minute on first run)")

            self.cache_dir.mkdir(parents=True, exist_ok=True)
            archive = self.cache_dir / f"{model_name}.zip.part"
            await self._fetch_archive(description, archive, progress_callback)

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _extract_archive, archive, self.cache_dir, model_name)
            archive.unlink(missing_ok=True)
        except ModelUnavailableError as e:
            if progress_callback:
                progress_callback({"status": "error", "model": model_name, "error": str(e)})
            raise
        except (OSError, zipfile.BadZipFile) as e:
            if progress_callback:
                progress_callback({"status": "error", "model": model_name, "error": str(e)})
            raise ModelUnavailableError(f"Failed to store model {model_name}: {e}", e) from e

        logger.info(f"Model cached to: {target}")
        if progress_callback:
            progress_callback({"status": "complete", "model": model_name, "progress": 1.0, "path": str(target)})
        return target

    async def _fetch_archive(
        self,
        description: ModelDescription,
        archive: Path,
        progress_callback: ProgressCallback | None,
    ) -> None:
        estimated_mb = MODEL_SIZES_MB.get(description.name, 100)
        total_bytes = description.size_bytes or estimated_mb * 1024 * 1024
        if progress_callback:
            progress_callback(
                {
                    "status": "starting",
                    "model": description.name,
                    "url": description.url,
                    "estimated_size_mb": round(total_bytes / (1024 * 1024), 1),
                }
            )

        start_time = time.monotonic()
        last_log = start_time
        last_progress = -1
        downloaded = 0
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(description.url) as response:
                    if response.status != 200:
                        raise ModelUnavailableError(f"Model download failed with HTTP {response.status}")
                    if response.content_length:
                        total_bytes = response.content_length
                    with open(archive, "wb") as handle:
                        async for block in response.content.iter_chunked(64 * 1024):
                            handle.write(block)
                            downloaded += len(block)

                            now = time.monotonic()
                            if now - last_log >= self.progress_interval:
                                last_log = now
                                logger.info(f"Downloading {description.name} ({int(now - start_time)}s elapsed)")

                            # Cap at 99% until extraction is done; report every 1%
                            progress = min(downloaded / total_bytes, 0.99)
                            progress_int = int(progress * 100)
                            if progress_callback and progress_int > last_progress:
                                last_progress = progress_int
                                progress_callback(
                                    {
                                        "status": "downloading",
                                        "model": description.name,
                                        "progress": progress,
                                        "downloaded_mb": round(downloaded / (1024 * 1024), 1),
                                        "total_mb": round(total_bytes / (1024 * 1024), 1),
                                    }
                                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            archive.unlink(missing_ok=True)
            raise ModelUnavailableError(f"Model download failed: {e}", e) from e

        logger.info(f"Download complete! Took {int(time.monotonic() - start_time)}s")

    async def list_available_models(self, language: str | None = None) -> list[dict]:
        """List published models with their cache status."""
        models = []
        for description in await self.load_models_list():
            if description.obsolete:
                continue
            if language and not description.lang.startswith(language):
                continue
            models.append(
                {
                    "name": description.name,
                    "lang": description.lang,
                    "type": description.model_type,
                    "size_mb": round(description.size_bytes / (1024 * 1024), 1),
                    "cached": self.is_cached(description.name),
                }
            )
        return models

