# backend/camtracker/utils/image_fetch.py
"""
Streaming image fetch shared by the download service and the image cache.

Enforces the common acquisition rules: non-2xx rejected, content type must
be ``image/*``, hard byte cap checked against Content-Length up front and
again while streaming, and a total wall-clock timeout.
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from loguru import logger

from ..constants import DOWNLOAD_CHUNK_SIZE
from ..exceptions import DownloadError


@dataclass
class FetchedImage:
    """Outcome of a successful streamed fetch."""

    path: Path
    size: int
    content_type: str


def parse_content_type(raw: Optional[str]) -> str:
    """Lower-cased media type without parameters."""
    if not raw:
        return ""
    return raw.split(";")[0].strip().lower()


async def _stream_to_file(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    max_bytes: int,
    headers: Optional[dict],
) -> FetchedImage:
    async with client.stream(
        "GET", url, headers=headers, follow_redirects=True
    ) as response:
        if not 200 <= response.status_code < 300:
            raise DownloadError(
                f"HTTP {response.status_code} while downloading {url}"
            )

        content_type = parse_content_type(response.headers.get("content-type"))
        if not content_type.startswith("image/"):
            raise DownloadError(
                f"Invalid content type '{content_type or 'missing'}' for {url}"
            )

        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise DownloadError(
                f"Image too large: {int(declared)} bytes exceeds {max_bytes} byte limit"
            )

        buffer = bytearray()
        async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
            buffer.extend(chunk)
            if len(buffer) > max_bytes:
                raise DownloadError(
                    f"Image too large: exceeded {max_bytes} byte limit while streaming"
                )

    await asyncio.to_thread(dest.write_bytes, bytes(buffer))
    return FetchedImage(path=dest, size=len(buffer), content_type=content_type)


async def stream_image_to_file(
    client: httpx.AsyncClient,
    url: str,
    dest: Path,
    *,
    max_bytes: int,
    timeout: float,
    headers: Optional[dict] = None,
) -> FetchedImage:
    """
    Download ``url`` into ``dest`` enforcing type, size and time limits.

    The caller owns ``dest`` and is responsible for deleting it on failure.

    Raises:
        DownloadError: on network failure, timeout, non-2xx status, wrong
            content type or when the byte cap is exceeded
    """
    try:
        return await asyncio.wait_for(
            _stream_to_file(client, url, dest, max_bytes, headers), timeout=timeout
        )
    except asyncio.TimeoutError:
        raise DownloadError(f"Download timed out after {timeout:.0f}s: {url}")
    except httpx.HTTPError as e:
        logger.debug(f"HTTP error fetching {url}: {e}")
        raise DownloadError(f"Failed to download {url}: {e}") from e
