"""Client for the TMDB REST API."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config.settings import TMDBConfig
from ..core.errors import ConfigError

logger = logging.getLogger(__name__)

# Preferred Chinese translations, most preferred first
CHINESE_REGIONS = ("CN", "TW", "HK")


@dataclass
class APIResponse:
    """Response from the TMDB API."""
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    status_code: int | None = None


class TmdbClient:
    """Thin async client for the TMDB endpoints the scraper needs."""

    IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

    def __init__(self, config: TMDBConfig):
        """Initialize API client with configuration."""
        if not config.api_key:
            raise ConfigError("TMDB API key is not configured")

        self.api_key = config.api_key
        self.language = config.language
        self.base_url = config.base_url.rstrip('/')
        self.timeout = config.timeout
        self.max_retries = config.retries
        self.retry_delay = config.retry_delay

        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @classmethod
    def image_url(cls, path: str | None, size: str = "w500") -> str | None:
        """Build a full image URL from a TMDB image path."""
        if not path:
            return None
        return f"{cls.IMAGE_BASE_URL}/{size}{path}"

    async def search_movies(self, query: str, page: int = 1) -> APIResponse:
        return await self._get("/search/movie", {"query": query, "page": page})

    async def search_tv_shows(self, query: str, page: int = 1) -> APIResponse:
        return await self._get("/search/tv", {"query": query, "page": page})

    async def get_movie(self, movie_id: int) -> APIResponse:
        return await self._get(f"/movie/{movie_id}", {
            "append_to_response": "images,credits",
            "include_image_language": "cn,zh,en,null",
        })

    async def get_tv_show(self, tv_id: int) -> APIResponse:
        return await self._get(f"/tv/{tv_id}", {
            "append_to_response": "images",
            "include_image_language": "cn,zh,en,null",
        })

    async def get_movie_translations(self, movie_id: int) -> list[dict]:
        response = await self._get(f"/movie/{movie_id}/translations")
        return (response.data or {}).get("translations", []) if response.success else []

    async def get_tv_translations(self, tv_id: int) -> list[dict]:
        response = await self._get(f"/tv/{tv_id}/translations")
        return (response.data or {}).get("translations", []) if response.success else []

    async def validate_api_key(self) -> bool:
        """Check the configured API key against the configuration endpoint."""
        response = await self._get("/configuration")
        return response.success

    async def _get(self, endpoint: str, params: dict | None = None) -> APIResponse:
        """GET an endpoint with the API key and language filled in."""
        all_params = {"api_key": self.api_key, "language": self.language}
        all_params.update({k: v for k, v in (params or {}).items() if v is not None})
        return await self._make_request("GET", f"{self.base_url}{endpoint}", params=all_params)

    async def _make_request(self, method: str, url: str,
                            params: dict | None = None) -> APIResponse:
        """Make HTTP request with retry logic."""
        last_exception = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=url,
                    params=params,
                )

                if response.status_code == 200:
                    try:
                        return APIResponse(
                            success=True,
                            data=response.json(),
                            status_code=response.status_code
                        )
                    except ValueError as e:
                        return APIResponse(
                            success=False,
                            error=f"Invalid JSON response: {e}",
                            status_code=response.status_code
                        )

                elif response.status_code == 404:
                    return APIResponse(
                        success=False,
                        error="Not found",
                        status_code=404
                    )

                elif response.status_code == 429:
                    # Rate limited - wait longer before retry
                    if attempt < self.max_retries:
                        wait_time = self.retry_delay * (2 ** attempt)
                        logger.warning(f"Rate limited, waiting {wait_time}s before retry")
                        await asyncio.sleep(wait_time)
                        continue
                    return APIResponse(
                        success=False,
                        error="Rate limited",
                        status_code=429
                    )

                else:
                    return APIResponse(
                        success=False,
                        error=f"HTTP {response.status_code}: {response.text}",
                        status_code=response.status_code
                    )

            except httpx.TimeoutException as e:
                last_exception = e
                if attempt < self.max_retries:
                    logger.warning(f"Request timeout, retrying... (attempt {attempt + 1}/{self.max_retries + 1})")
                    await asyncio.sleep(self.retry_delay)
                    continue

            except httpx.ConnectError as e:
                last_exception = e
                if attempt < self.max_retries:
                    logger.warning(f"Connection error, retrying... (attempt {attempt + 1}/{self.max_retries + 1})")
                    await asyncio.sleep(self.retry_delay)
                    continue

            except httpx.HTTPError as e:
                last_exception = e
                logger.error(f"Unexpected error during API request: {e}")
                break

        return APIResponse(
            success=False,
            error=f"Request failed after {self.max_retries + 1} attempts: {last_exception}"
        )


def extract_chinese_translation(translations: list[dict]) -> dict | None:
    """Pick the best Chinese translation's data block (zh-CN, then zh-TW, then zh-HK)."""
    for region in CHINESE_REGIONS:
        for translation in translations:
            if translation.get("iso_639_1") == "zh" and translation.get("iso_3166_1") == region:
                return translation.get("data") or {}
    return None
