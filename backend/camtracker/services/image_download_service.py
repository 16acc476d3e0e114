# backend/camtracker/services/image_download_service.py
"""
Image Download & Transcode Service

Fetches a remote image, validates it, and stores a web-optimised JPEG under
the default-images upload directory.

Pipeline:
1. Stream the remote file into ``<uuid>_temp`` (30s timeout, 5MB cap,
   ``image/*`` content type only)
2. Decode with Pillow, convert to RGB, fit inside 800x600 (never upscaled)
3. Encode JPEG at quality 85, stepping down by 15 to a floor of 30 until
   the result fits in 500KB
4. Write ``<uuid>.jpg``; the temp file is always removed
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx
from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..constants import (
    DEFAULT_IMAGES_URL_PREFIX,
    DOWNLOAD_TIMEOUT_SECONDS,
    JPEG_INITIAL_QUALITY,
    JPEG_MIN_QUALITY,
    JPEG_QUALITY_STEP,
    MAX_DOWNLOAD_BYTES,
    TARGET_MAX_FILE_BYTES,
    TARGET_MAX_HEIGHT,
    TARGET_MAX_WIDTH,
    TEMP_FILE_MAX_AGE_SECONDS,
    TEMP_FILE_SUFFIX,
    WIKIMEDIA_ALLOWED_HOSTS,
    WIKIMEDIA_USER_AGENT,
)
from ..exceptions import CompressionError, DownloadError, ValidationError
from ..models.download_model import DownloadResult
from ..utils.image_fetch import stream_image_to_file


@dataclass
class TranscodeResult:
    data: bytes
    width: int
    height: int
    quality: int
    attempts: int


def transcode_image(
    source_path: Path,
    max_size: Tuple[int, int] = (TARGET_MAX_WIDTH, TARGET_MAX_HEIGHT),
    initial_quality: int = JPEG_INITIAL_QUALITY,
    quality_step: int = JPEG_QUALITY_STEP,
    min_quality: int = JPEG_MIN_QUALITY,
    max_bytes: int = TARGET_MAX_FILE_BYTES,
) -> TranscodeResult:
    """
    Resize and re-encode an image file as JPEG within a byte budget.

    Blocking; call through asyncio.to_thread from async code.

    Raises:
        CompressionError: undecodable input, or still over budget at min_quality
    """
    try:
        with Image.open(source_path) as img:
            img.load()
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise CompressionError(f"Unable to decode image: {e}") from e

    if rgb.width > max_size[0] or rgb.height > max_size[1]:
        rgb.thumbnail(max_size, Image.Resampling.LANCZOS)

    quality = initial_quality
    attempts = 0
    while True:
        attempts += 1
        buffer = BytesIO()
        rgb.save(buffer, "JPEG", quality=quality, optimize=True, progressive=True)
        data = buffer.getvalue()

        if len(data) <= max_bytes:
            return TranscodeResult(
                data=data,
                width=rgb.width,
                height=rgb.height,
                quality=quality,
                attempts=attempts,
            )

        if quality <= min_quality:
            raise CompressionError(
                f"Image is {len(data)} bytes at quality {quality}, "
                f"over the {max_bytes} byte budget"
            )
        quality = max(min_quality, quality - quality_step)


def format_file_size(size: int) -> str:
    """Human readable byte count, e.g. 1.5 MB."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def is_valid_image_url(url: str) -> bool:
    """True for http(s) URLs on the Wikimedia hosts we download from."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    return parsed.hostname in WIKIMEDIA_ALLOWED_HOSTS


class ImageDownloadService:
    """Downloads and transcodes images into the default-images directory."""

    def __init__(
        self,
        output_dir: Path,
        http_client: Optional[httpx.AsyncClient] = None,
        url_prefix: str = DEFAULT_IMAGES_URL_PREFIX,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        max_bytes: int = MAX_DOWNLOAD_BYTES,
        user_agent: str = WIKIMEDIA_USER_AGENT,
    ):
        self.output_dir = Path(output_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": user_agent}
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def download_and_process_image(self, url: str) -> DownloadResult:
        """
        Download ``url`` and store it as an optimised JPEG.

        Returns:
            DownloadResult with the public local path and size statistics

        Raises:
            ValidationError: url is not an http(s) URL
            DownloadError: network, status, content-type or size-cap failure
            CompressionError: undecodable or cannot meet the size budget
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"Invalid image URL: {url!r}")

        image_id = uuid.uuid4().hex
        temp_path = self.output_dir / f"{image_id}{TEMP_FILE_SUFFIX}"
        filename = f"{image_id}.jpg"
        final_path = self.output_dir / filename

        logger.info(f"📥 Downloading image: {url}")
        try:
            fetched = await stream_image_to_file(
                self._client,
                url,
                temp_path,
                max_bytes=self.max_bytes,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
            if fetched.size == 0:
                raise DownloadError(f"Empty response body from {url}")

            result = await asyncio.to_thread(transcode_image, temp_path)
            await asyncio.to_thread(final_path.write_bytes, result.data)
        finally:
            temp_path.unlink(missing_ok=True)

        original_size = fetched.size
        final_size = len(result.data)
        compression_ratio = (
            round((1 - final_size / original_size) * 100) if original_size else 0
        )

        logger.info(
            f"✅ Processed image {filename}: {format_file_size(original_size)} -> "
            f"{format_file_size(final_size)} ({result.width}x{result.height}, q={result.quality})"
        )

        return DownloadResult(
            local_path=f"{self.url_prefix}/{filename}",
            filename=filename,
            original_size=original_size,
            final_size=final_size,
            width=result.width,
            height=result.height,
            compression_ratio=compression_ratio,
            quality=result.quality,
            attempts=result.attempts,
        )

    def cleanup_temp_files(self, max_age_seconds: float = TEMP_FILE_MAX_AGE_SECONDS) -> int:
        """Remove abandoned ``*_temp`` files older than ``max_age_seconds``."""
        now = time.time()
        removed = 0
        for path in self.output_dir.glob(f"*{TEMP_FILE_SUFFIX}"):
            try:
                if now - path.stat().st_mtime > max_age_seconds:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove temp file {path.name}: {e}")
        if removed:
            logger.info(f"🧹 Removed {removed} stale temp download(s)")
        return removed
