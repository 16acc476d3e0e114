# backend/camtracker/services/wikimedia_client.py
"""
Wikimedia Commons Image Client

Searches Commons for reference photos of a camera model and ranks the
results by relevance and technical quality.

Features:
- Progressive search terms ("brand model camera", "brand model", ...)
- Heuristic 1-10 quality score from dimensions, aspect ratio and file size
- Title relevance scoring against brand/model
- Optional hand-off to ImageDownloadService for local storage
- License/author extraction from extmetadata for attribution
"""

import html
import re
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..constants import (
    BEST_IMAGE_MIN_DIMENSION,
    BEST_IMAGE_MIN_QUALITY,
    BEST_IMAGE_SEARCH_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    MAX_SEARCH_SUGGESTIONS,
    QUALITY_ASPECT_MAX,
    QUALITY_ASPECT_MIN,
    QUALITY_BASE_SCORE,
    QUALITY_LARGE_SIDE_PX,
    QUALITY_MAX_SCORE,
    QUALITY_MEDIUM_SIDE_PX,
    QUALITY_MIN_SCORE,
    QUALITY_SMALL_FILE_BYTES,
    QUALITY_SMALL_SIDE_PX,
    RELEVANCE_BRAND_MATCH,
    RELEVANCE_CAMERA_TERM,
    RELEVANCE_MODEL_MATCH,
    RELEVANCE_NEGATIVE_TERM,
    RELEVANCE_NEGATIVE_TERMS,
    RELEVANCE_PHOTO_TERM,
    RELEVANCE_PHOTO_TERMS,
    SUGGESTION_MIN_QUALITY,
    URL_VALIDATION_TIMEOUT_SECONDS,
    WIKIMEDIA_API_URL,
    WIKIMEDIA_FILE_NAMESPACE,
    WIKIMEDIA_IMAGEINFO_PROPS,
    WIKIMEDIA_SOURCE_NAME,
    WIKIMEDIA_TIMEOUT_SECONDS,
    WIKIMEDIA_USER_AGENT,
)
from ..exceptions import CamTrackerError, ExternalServiceError
from ..models.image_search_model import BestImageResult, FileInfo, ImageCandidate

TAG_RE = re.compile(r"<[^>]+>")


def clean_metadata_value(value: Any) -> Optional[str]:
    """Strip HTML tags and decode the common entities. Empty results become None."""
    if value is None:
        return None
    text = TAG_RE.sub("", str(value))
    text = (
        text.replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&amp;", "&")
    )
    text = text.strip()
    return text or None


def calculate_image_quality(
    width: Optional[int], height: Optional[int], size: Optional[int] = None
) -> int:
    """
    Heuristic 1-10 quality score.

    Starts at 5; minimum side >= 800 adds 2, >= 400 adds 1, < 300 subtracts 2;
    aspect ratio inside [0.75, 2.0] adds 1, otherwise subtracts 1; a known
    file size under 50KB subtracts 1. Always clamped into [1, 10].
    """
    w = width if isinstance(width, (int, float)) and width > 0 else 0
    h = height if isinstance(height, (int, float)) and height > 0 else 0

    score = QUALITY_BASE_SCORE

    min_side = min(w, h)
    if min_side >= QUALITY_LARGE_SIDE_PX:
        score += 2
    elif min_side >= QUALITY_MEDIUM_SIDE_PX:
        score += 1
    elif min_side < QUALITY_SMALL_SIDE_PX:
        score -= 2

    aspect = w / h if h else 0
    if QUALITY_ASPECT_MIN <= aspect <= QUALITY_ASPECT_MAX:
        score += 1
    else:
        score -= 1

    if size is not None and size < QUALITY_SMALL_FILE_BYTES:
        score -= 1

    return max(QUALITY_MIN_SCORE, min(QUALITY_MAX_SCORE, int(score)))


def calculate_relevance(title: str, brand: str, model: str) -> int:
    """Score how well a file title matches the camera."""
    title_lower = (title or "").lower()
    score = 0

    if model and model.lower() in title_lower:
        score += RELEVANCE_MODEL_MATCH
    if brand and brand.lower() in title_lower:
        score += RELEVANCE_BRAND_MATCH
    if "camera" in title_lower:
        score += RELEVANCE_CAMERA_TERM
    if any(term in title_lower for term in RELEVANCE_PHOTO_TERMS):
        score += RELEVANCE_PHOTO_TERM
    if any(term in title_lower for term in RELEVANCE_NEGATIVE_TERMS):
        score += RELEVANCE_NEGATIVE_TERM

    return score


def build_search_terms(brand: str, model: str) -> List[str]:
    """Search terms in the order they are tried."""
    brand = (brand or "").strip()
    model = (model or "").strip()
    return [
        f"{brand} {model} camera",
        f"{brand} {model}",
        f"{brand} camera {model}",
    ]


def rank_candidates(candidates: List[ImageCandidate]) -> List[ImageCandidate]:
    """Order by relevance + quality, highest first. Ties keep search order."""
    return sorted(candidates, key=lambda c: c.combined_score, reverse=True)


def _meta(extmetadata: Dict[str, Any], key: str) -> Optional[str]:
    entry = extmetadata.get(key)
    if isinstance(entry, dict):
        return entry.get("value")
    return entry


class WikimediaImageClient:
    """
    Async client for the Wikimedia Commons search API.

    The httpx client may be injected (tests use httpx.MockTransport); when
    omitted the client creates and owns one.
    """

    BASE_URL = WIKIMEDIA_API_URL

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        download_service=None,
        api_url: str = WIKIMEDIA_API_URL,
        user_agent: str = WIKIMEDIA_USER_AGENT,
        timeout: float = WIKIMEDIA_TIMEOUT_SECONDS,
    ):
        self.api_url = api_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.download_service = download_service
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout, headers={"User-Agent": user_agent}
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _api_get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._client.get(
            self.api_url,
            params=params,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            info = error.get("info") if isinstance(error, dict) else str(error)
            raise ExternalServiceError(f"Wikimedia API error: {info}")
        return data

    async def _search_pages(self, term: str, limit: int) -> List[Dict[str, Any]]:
        params = {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": term,
            "gsrlimit": limit,
            "gsrnamespace": WIKIMEDIA_FILE_NAMESPACE,
            "prop": "imageinfo",
            "iiprop": WIKIMEDIA_IMAGEINFO_PROPS,
        }
        data = await self._api_get(params)
        pages = (data.get("query") or {}).get("pages") or {}
        page_list = list(pages.values()) if isinstance(pages, dict) else list(pages)
        # generator=search returns pages keyed by id; "index" carries search rank
        return sorted(page_list, key=lambda p: p.get("index", 0))

    def _page_to_candidate(
        self, page: Dict[str, Any], brand: str, model: str
    ) -> Optional[ImageCandidate]:
        infos = page.get("imageinfo") or []
        if not infos:
            return None
        info = infos[0]
        mime = info.get("mime") or ""
        url = info.get("url")
        if not mime.startswith("image/") or not url:
            return None

        title = page.get("title") or ""
        width = int(info.get("width") or 0)
        height = int(info.get("height") or 0)
        size = info.get("size")

        extmetadata = info.get("extmetadata") or {}
        license_name = clean_metadata_value(_meta(extmetadata, "LicenseShortName"))
        author = clean_metadata_value(_meta(extmetadata, "Artist"))
        attribution = clean_metadata_value(_meta(extmetadata, "Attribution"))
        if not attribution and _meta(extmetadata, "LicenseUrl") and author:
            attribution = f"By {author}, {license_name or 'see license'}"

        quality = calculate_image_quality(width, height, size)
        relevance = calculate_relevance(title, brand, model)

        return ImageCandidate(
            title=title,
            filename=title.replace("File:", "", 1),
            url=url,
            width=width,
            height=height,
            mime=mime,
            size=size,
            quality=quality,
            license=license_name,
            author=author,
            attribution=attribution,
            source=WIKIMEDIA_SOURCE_NAME,
            relevance_score=relevance,
            combined_score=relevance + quality,
        )

    async def search_camera_images(
        self, brand: str, model: str, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> List[ImageCandidate]:
        """
        Search Commons for a camera, trying progressively looser terms.

        Stops at the first term that yields at least one image result. A
        failing term is logged and the next one is tried.

        Returns:
            Ranked candidates, or [] when nothing was found
        """
        for term in build_search_terms(brand, model):
            try:
                pages = await self._search_pages(term, limit)
            except (httpx.HTTPError, ExternalServiceError, ValueError) as e:
                logger.warning(f"Wikimedia search failed for '{term}': {e}")
                continue

            candidates = [
                candidate
                for candidate in (
                    self._page_to_candidate(page, brand, model) for page in pages
                )
                if candidate is not None
            ]
            if candidates:
                logger.debug(
                    f"🔍 Found {len(candidates)} images for '{term}'"
                )
                return rank_candidates(candidates)

        logger.info(f"No Wikimedia images found for {brand} {model}")
        return []

    async def find_best_image_for_camera(
        self, brand: str, model: str, enable_download: bool = True
    ) -> Optional[BestImageResult]:
        """
        Pick, and optionally download, the best image for a camera model.

        Returns None when nothing acceptable exists. Download failures keep
        the remote URL instead of failing the lookup.
        """
        try:
            candidates = await self.search_camera_images(
                brand, model, limit=BEST_IMAGE_SEARCH_LIMIT
            )
            if not candidates:
                return None

            best = candidates[0]
            if (
                best.quality < BEST_IMAGE_MIN_QUALITY
                or best.width < BEST_IMAGE_MIN_DIMENSION
                or best.height < BEST_IMAGE_MIN_DIMENSION
            ):
                logger.info(
                    f"Best image for {brand} {model} rejected "
                    f"(quality={best.quality}, {best.width}x{best.height})"
                )
                return None

            image_url = best.url
            download_info = None
            if enable_download and self.download_service is not None:
                try:
                    download_info = await self.download_service.download_and_process_image(
                        best.url
                    )
                    image_url = download_info.local_path
                except CamTrackerError as e:
                    logger.warning(
                        f"Download failed for {best.url}, keeping remote URL: {e}"
                    )

            source_attribution = best.attribution or (
                f"{best.author or 'Unknown'}, {best.license or WIKIMEDIA_SOURCE_NAME}"
            )

            return BestImageResult(
                image_url=image_url,
                original_url=best.url,
                source=WIKIMEDIA_SOURCE_NAME,
                source_attribution=source_attribution,
                image_quality=best.quality,
                width=best.width,
                height=best.height,
                license=best.license,
                author=best.author,
                downloaded=download_info is not None,
                download_info=download_info,
            )
        except Exception as e:
            logger.error(f"Error finding best image for {brand} {model}: {e}")
            return None

    async def get_file_info(self, filename: str) -> Optional[FileInfo]:
        """Fetch imageinfo + metadata for a single Commons file."""
        title = filename if filename.startswith("File:") else f"File:{filename}"
        params = {
            "action": "query",
            "format": "json",
            "titles": title,
            "prop": "imageinfo",
            "iiprop": WIKIMEDIA_IMAGEINFO_PROPS,
        }
        try:
            data = await self._api_get(params)
        except (httpx.HTTPError, ExternalServiceError, ValueError) as e:
            logger.warning(f"Failed to fetch file info for {title}: {e}")
            return None

        pages = (data.get("query") or {}).get("pages") or {}
        for page in pages.values():
            infos = page.get("imageinfo") or []
            if not infos:
                continue
            info = infos[0]
            extmetadata = info.get("extmetadata") or {}
            return FileInfo(
                title=page.get("title") or title,
                url=info.get("url"),
                width=int(info.get("width") or 0),
                height=int(info.get("height") or 0),
                size=info.get("size"),
                mime=info.get("mime"),
                license=clean_metadata_value(_meta(extmetadata, "LicenseShortName")),
                author=clean_metadata_value(_meta(extmetadata, "Artist")),
                attribution=clean_metadata_value(_meta(extmetadata, "Attribution")),
                description=clean_metadata_value(
                    _meta(extmetadata, "ImageDescription")
                ),
            )
        return None

    async def get_search_suggestions(
        self, brand: str, partial_model: str = ""
    ) -> List[str]:
        """Model names seen in titles of decent-quality images for a brand."""
        term = f"{brand} {partial_model} camera".replace("  ", " ").strip()
        try:
            pages = await self._search_pages(term, 20)
        except (httpx.HTTPError, ExternalServiceError, ValueError) as e:
            logger.warning(f"Suggestion search failed for '{term}': {e}")
            return []

        pattern = re.compile(rf"{re.escape(brand)}\s+([\w\d-]+)", re.IGNORECASE)
        suggestions: List[str] = []
        for page in pages:
            candidate = self._page_to_candidate(page, brand, partial_model)
            if candidate is None or candidate.quality < SUGGESTION_MIN_QUALITY:
                continue
            match = pattern.search(html.unescape(candidate.title))
            if match and match.group(1) not in suggestions:
                suggestions.append(match.group(1))
            if len(suggestions) >= MAX_SEARCH_SUGGESTIONS:
                break
        return suggestions

    async def validate_image_url(self, url: str) -> bool:
        """True when the URL answers 200 with an image content type."""
        try:
            response = await self._client.head(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=URL_VALIDATION_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.debug(f"Image URL validation failed for {url}: {e}")
            return False

        content_type = response.headers.get("content-type", "")
        return response.status_code == 200 and content_type.startswith("image/")
