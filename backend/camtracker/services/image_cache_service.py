# backend/camtracker/services/image_cache_service.py
"""
Content-Addressed Image Cache

Disposable, URL-keyed disk cache for external images. A URL maps to
``sha256(url) + extension`` inside a flat directory served at
``/cached-images``. File mtime is the cached-at clock; entries older than
the max age are logically expired even while the file still exists.

Writes go to a unique ``.part`` file in the same directory and are moved
into place with ``os.replace`` so readers never observe a partial file.
"""

import asyncio
import hashlib
import os
import re
import time
import uuid
from pathlib import Path
from typing import Iterator, List, Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from ..constants import (
    CACHE_BATCH_CONCURRENCY,
    CACHE_BATCH_DELAY_SECONDS,
    CACHE_DEFAULT_EXTENSION,
    CACHE_MAX_AGE_DAYS,
    CACHE_TEMP_SUFFIX,
    CACHE_URL_PREFIX,
    DOWNLOAD_TIMEOUT_SECONDS,
    JPEG_MAGIC,
    MAX_DOWNLOAD_BYTES,
    PNG_MAGIC,
    WEBP_FORMAT_MAGIC,
    WEBP_RIFF_MAGIC,
    WIKIMEDIA_USER_AGENT,
)
from ..exceptions import CamTrackerError, DownloadError, NotFoundError, ValidationError
from ..models.cache_model import (
    BatchFetchResult,
    CacheCleanupResult,
    CacheEntry,
    CacheStats,
    CacheUsageByAge,
    CacheValidationResult,
)
from ..utils.image_fetch import stream_image_to_file
from ..utils.time_utils import from_timestamp

EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,5}$")
CACHE_KEY_RE = re.compile(r"^[0-9a-f]{64}\.[a-z0-9]{1,5}$")

DAY_SECONDS = 24 * 60 * 60


def validate_url(url: str) -> str:
    """Return the URL unchanged if it is an absolute http(s) URL."""
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url!r}")
    return url


def get_cache_key(url: str) -> str:
    """
    Deterministic cache key: sha256 hex of the URL plus its path extension.

    URLs without a usable extension get ``.jpg``.
    """
    validate_url(url)
    extension = Path(urlparse(url).path).suffix.lower()
    if not EXTENSION_RE.match(extension):
        extension = CACHE_DEFAULT_EXTENSION
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return f"{digest}{extension}"


def has_image_signature(header: bytes) -> bool:
    """JPEG, PNG or WebP magic bytes."""
    if header.startswith(JPEG_MAGIC) or header.startswith(PNG_MAGIC):
        return True
    return header[:4] == WEBP_RIFF_MAGIC and header[8:12] == WEBP_FORMAT_MAGIC


class ImageCacheService:
    """Flat-directory image cache with TTL, batch prefetch and integrity checks."""

    def __init__(
        self,
        cache_dir: Path,
        http_client: Optional[httpx.AsyncClient] = None,
        max_age_days: int = CACHE_MAX_AGE_DAYS,
        max_file_size: int = MAX_DOWNLOAD_BYTES,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        url_prefix: str = CACHE_URL_PREFIX,
        batch_delay_seconds: float = CACHE_BATCH_DELAY_SECONDS,
        user_agent: str = WIKIMEDIA_USER_AGENT,
    ):
        self.cache_dir = Path(cache_dir)
        self.max_age_seconds = int(max_age_days * DAY_SECONDS)
        self.max_file_size = max_file_size
        self.timeout = timeout
        self.url_prefix = url_prefix.rstrip("/")
        self.batch_delay_seconds = batch_delay_seconds
        self.user_agent = user_agent
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"User-Agent": user_agent}
        )
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Key / path helpers
    # ------------------------------------------------------------------

    def get_cache_key(self, url: str) -> str:
        return get_cache_key(url)

    def _path_for_key(self, cache_key: str) -> Path:
        if not CACHE_KEY_RE.match(cache_key or ""):
            raise ValidationError(f"Invalid cache key: {cache_key!r}")
        return self.cache_dir / cache_key

    def _iter_cache_files(self) -> Iterator[Path]:
        """Committed cache files; in-progress ``.part`` writes are skipped."""
        for path in self.cache_dir.iterdir():
            if path.is_file() and not path.name.endswith(CACHE_TEMP_SUFFIX):
                yield path

    def _is_expired(self, mtime: float, now: Optional[float] = None) -> bool:
        current = time.time() if now is None else now
        return current - mtime >= self.max_age_seconds

    def _entry_from_path(
        self, path: Path, original_url: Optional[str] = None
    ) -> CacheEntry:
        stat = path.stat()
        return CacheEntry(
            cache_key=path.name,
            cache_path=str(path),
            size=stat.st_size,
            cached_at=from_timestamp(stat.st_mtime),
            age_seconds=max(0.0, time.time() - stat.st_mtime),
            url=f"{self.url_prefix}/{path.name}",
            original_url=original_url,
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def is_cached(self, url: str) -> bool:
        """True only if the file exists and is younger than the max age."""
        path = self.cache_dir / get_cache_key(url)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return False
        return not self._is_expired(mtime)

    def get_cached_image_info(self, url: str) -> Optional[CacheEntry]:
        """Entry for a URL, or None when missing or expired."""
        path = self.cache_dir / get_cache_key(url)
        try:
            entry = self._entry_from_path(path, original_url=url)
        except FileNotFoundError:
            return None
        if entry.age_seconds >= self.max_age_seconds:
            return None
        return entry

    async def get_or_fetch(self, url: str) -> CacheEntry:
        """
        Return a valid cached entry or download and persist the image.

        Raises:
            ValidationError: url is not an http(s) URL
            DownloadError: fetch failed (status, content type, size, timeout)
        """
        cache_key = get_cache_key(url)
        existing = self.get_cached_image_info(url)
        if existing is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return existing

        final_path = self.cache_dir / cache_key
        temp_path = self.cache_dir / f"{cache_key}.{uuid.uuid4().hex}{CACHE_TEMP_SUFFIX}"

        logger.info(f"📥 Caching image: {url}")
        try:
            fetched = await stream_image_to_file(
                self._client,
                url,
                temp_path,
                max_bytes=self.max_file_size,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
            if fetched.size == 0:
                raise DownloadError(f"Empty response body from {url}")
            try:
                os.replace(temp_path, final_path)
            except FileNotFoundError as e:
                raise DownloadError(
                    f"Temp file for {url} vanished before it was stored"
                ) from e
        finally:
            temp_path.unlink(missing_ok=True)

        logger.info(f"✅ Cached {cache_key} ({fetched.size} bytes)")
        return self._entry_from_path(final_path, original_url=url)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> CacheCleanupResult:
        """Delete every expired file; individual failures are counted, not raised."""
        result = CacheCleanupResult()
        now = time.time()
        for path in list(self._iter_cache_files()):
            result.total_files += 1
            try:
                if self._is_expired(path.stat().st_mtime, now):
                    path.unlink()
                    result.deleted_count += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                result.error_count += 1
                logger.warning(f"Failed to delete cached file {path.name}: {e}")

        logger.info(
            f"🧹 Cache cleanup: deleted {result.deleted_count}/{result.total_files} "
            f"files ({result.error_count} errors)"
        )
        return result

    def get_stats(self) -> CacheStats:
        stats = CacheStats(
            cache_dir=str(self.cache_dir),
            max_age_seconds=self.max_age_seconds,
            max_age_hours=self.max_age_seconds // 3600,
        )
        now = time.time()
        for path in self._iter_cache_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            stats.total_files += 1
            stats.total_size += stat.st_size
            if self._is_expired(stat.st_mtime, now):
                stats.expired_files += 1
            else:
                stats.valid_files += 1
        stats.total_size_mb = round(stats.total_size / (1024 * 1024), 2)
        return stats

    def get_usage_by_age(self) -> CacheUsageByAge:
        """Bucket cache files by age: last 24h, 7 days, 30 days, older."""
        usage = CacheUsageByAge()
        now = time.time()
        for path in self._iter_cache_files():
            try:
                age = now - path.stat().st_mtime
            except FileNotFoundError:
                continue
            if age < DAY_SECONDS:
                usage.last_24h += 1
            elif age < 7 * DAY_SECONDS:
                usage.last_7_days += 1
            elif age < 30 * DAY_SECONDS:
                usage.last_30_days += 1
            else:
                usage.older += 1
        return usage

    def clear_cache(self) -> int:
        """
        Delete every cache file plus stale temp files. Returns count.

        Temp files younger than the download timeout belong to fetches still
        in flight and are left alone.
        """
        removed = 0
        now = time.time()
        for path in list(self.cache_dir.iterdir()):
            if not path.is_file():
                continue
            try:
                if path.name.endswith(CACHE_TEMP_SUFFIX) and (
                    now - path.stat().st_mtime < self.timeout
                ):
                    continue
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to delete cached file {path.name}: {e}")
        logger.info(f"🗑️ Cleared {removed} cached files")
        return removed

    def list_entries(self) -> List[CacheEntry]:
        entries = []
        for path in self._iter_cache_files():
            try:
                entries.append(self._entry_from_path(path))
            except FileNotFoundError:
                continue
        return entries

    # ------------------------------------------------------------------
    # Batch & validation
    # ------------------------------------------------------------------

    async def batch_fetch(
        self, urls: List[str], concurrency: int = CACHE_BATCH_CONCURRENCY
    ) -> BatchFetchResult:
        """
        Cache many URLs in fixed-size concurrent batches.

        Batches run one after another with a pause in between; individual
        failures are reported in ``errors`` and never raised.
        """
        concurrency = max(1, concurrency)
        result = BatchFetchResult(total=len(urls))

        for start in range(0, len(urls), concurrency):
            batch = urls[start : start + concurrency]
            outcomes = await asyncio.gather(
                *(self.get_or_fetch(url) for url in batch), return_exceptions=True
            )
            for url, outcome in zip(batch, outcomes):
                if isinstance(outcome, CacheEntry):
                    result.successful += 1
                    result.results.append(outcome)
                elif isinstance(outcome, Exception):
                    if not isinstance(outcome, (CamTrackerError, OSError)):
                        logger.error(f"Unexpected error caching {url}: {outcome}")
                    result.failed += 1
                    result.errors.append({"url": url, "error": str(outcome)})
                else:
                    # CancelledError and friends propagate
                    raise outcome

            if start + concurrency < len(urls):
                await asyncio.sleep(self.batch_delay_seconds)

        logger.info(
            f"📦 Batch cache: {result.successful}/{result.total} succeeded, "
            f"{result.failed} failed"
        )
        return result

    def validate_cached_file(self, cache_key: str) -> CacheValidationResult:
        """Check that a cached file has a sane size and an image signature."""
        path = self._path_for_key(cache_key)
        try:
            stat = path.stat()
        except FileNotFoundError:
            return CacheValidationResult(valid=False, reason="File not found")

        modified = from_timestamp(stat.st_mtime)
        if stat.st_size <= 0:
            return CacheValidationResult(
                valid=False, reason="Empty file", size=0, modified=modified
            )
        if stat.st_size > self.max_file_size:
            return CacheValidationResult(
                valid=False,
                reason="File exceeds maximum size",
                size=stat.st_size,
                modified=modified,
            )

        with open(path, "rb") as fh:
            header = fh.read(12)

        if not has_image_signature(header):
            return CacheValidationResult(
                valid=False,
                reason="Invalid image signature",
                size=stat.st_size,
                modified=modified,
            )
        return CacheValidationResult(valid=True, size=stat.st_size, modified=modified)

    def get_entry_by_key(self, cache_key: str) -> CacheEntry:
        path = self._path_for_key(cache_key)
        try:
            return self._entry_from_path(path)
        except FileNotFoundError:
            raise NotFoundError(f"Cache entry {cache_key} not found")
