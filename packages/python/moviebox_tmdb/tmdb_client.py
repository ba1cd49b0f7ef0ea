import asyncio
import logging
import math
from typing import Any, List, Optional

import httpx

from moviebox_core.config import TMDB_BASE_URL, TMDB_DEFAULT_LANGUAGE
from moviebox_core.types import MovieDict

from .errors import TMDBAuthError, TMDBError, TMDBNotFound, TMDBRateLimited

log = logging.getLogger(__name__)

QueryParams = dict[str, str | int | float | bool | None]


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def _normalize_details(movie: MovieDict) -> MovieDict:
    # /movie/{id} returns `genres` objects; list endpoints return `genre_ids`
    if "genre_ids" not in movie:
        movie["genre_ids"] = [
            g["id"] for g in movie.get("genres") or [] if isinstance(g, dict) and "id" in g
        ]
    return movie


class TMDBClient:
    BASE_URL = TMDB_BASE_URL

    def __init__(
        self,
        api_key: str,
        max_connections: int = 15,
        timeout: float = 10.0,
        *,
        language: str = TMDB_DEFAULT_LANGUAGE,
        retries: int = 2,
        backoff_base: float = 0.2,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.language = language
        self.retries = retries
        self.backoff_base = backoff_base
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        limits = httpx.Limits(
            max_connections=max_connections, max_keepalive_connections=max_connections
        )
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self.semaphore = asyncio.Semaphore(max_connections)

    def _params(self, query: QueryParams | None) -> dict[str, Any]:
        params: dict[str, Any] = {"api_key": self.api_key, "language": self.language}
        for k, v in (query or {}).items():
            if v is None:
                continue
            params[k] = str(v).lower() if isinstance(v, bool) else v
        return params

    async def get(self, path: str, query: QueryParams | None = None) -> Any:
        url = f"{self.base_url}{path}"
        async with self.semaphore:
            try:
                response = await self.client.get(url, params=self._params(query))
            except httpx.RequestError as e:
                raise TMDBError(f"TMDB request failed: {e}", path=path) from e
        if response.is_success:
            return response.json()
        raise self._error_for(response, path)

    async def get_with_retry(
        self, path: str, query: QueryParams | None = None, retries: int | None = None
    ) -> Any:
        """GET with exponential backoff (base 200ms, doubling) on 429/5xx."""
        retries = self.retries if retries is None else retries
        attempt = 0
        while True:
            try:
                return await self.get(path, query)
            except TMDBError as e:
                if (
                    e.status_code is not None
                    and _is_retryable(e.status_code)
                    and attempt < retries
                ):
                    await asyncio.sleep(self.backoff_base * (2**attempt))
                    attempt += 1
                    continue
                raise

    def _error_for(self, response: httpx.Response, path: str) -> TMDBError:
        status = response.status_code
        if status == 401:
            return TMDBAuthError(
                "TMDB Authentication failed. Please check your API key.",
                status_code=status,
                path=path,
            )
        if status == 404:
            return TMDBNotFound(
                f"TMDB endpoint not found: {path}.", status_code=status, path=path
            )
        if status == 429:
            return TMDBRateLimited(
                "TMDB rate limit exceeded. Please try again later.",
                status_code=status,
                path=path,
            )
        return TMDBError(f"TMDB {status}: {response.text[:300]}", status_code=status, path=path)

    # ---------- Movie details ----------
    async def get_movie_details(self, movie_id: int) -> MovieDict:
        data = await self.get_with_retry(f"/movie/{movie_id}")
        return _normalize_details(data)

    async def get_movie_keywords(self, movie_id: int) -> List[dict]:
        data = await self.get_with_retry(f"/movie/{movie_id}/keywords")
        return list((data or {}).get("keywords", []))

    async def get_movie_videos(self, movie_id: int) -> dict:
        return await self.get_with_retry(f"/movie/{movie_id}/videos")

    async def get_movie_credits(self, movie_id: int) -> dict:
        return await self.get_with_retry(f"/movie/{movie_id}/credits")

    async def get_movie_recommendations(self, movie_id: int, page: int = 1) -> dict:
        return await self.get_with_retry(
            f"/movie/{movie_id}/recommendations", {"page": page}
        )

    # ---------- Lists / feeds ----------
    async def get_popular_movies(self, page: int = 1) -> dict:
        return await self.get_with_retry(
            "/movie/popular", {"page": page, "include_adult": False}
        )

    async def get_top_rated_movies(self, page: int = 1) -> dict:
        return await self.get_with_retry(
            "/movie/top_rated", {"page": page, "include_adult": False}
        )

    async def get_trending_movies(self, page: int = 1, window: str = "day") -> dict:
        return await self.get_with_retry(
            f"/trending/movie/{window}", {"page": page, "include_adult": False}
        )

    async def search_movies(self, query: str, page: int = 1) -> dict:
        return await self.get_with_retry(
            "/search/movie", {"query": query, "page": page, "include_adult": False}
        )

    async def discover_movies(self, **query: Any) -> dict:
        return await self.get_with_retry(
            "/discover/movie", {**query, "include_adult": False}
        )

    async def discover_by_genre(self, genre_id: int, page: int = 1) -> dict:
        return await self.discover_movies(
            with_genres=str(genre_id), sort_by="popularity.desc", page=page
        )

    async def discover_by_year(self, year: int, page: int = 1) -> dict:
        return await self.discover_movies(
            primary_release_year=str(year), sort_by="popularity.desc", page=page
        )

    async def get_genres(self) -> dict:
        return await self.get_with_retry("/genre/movie/list")

    async def get_regions(self, page: int = 1, limit: int = 50) -> dict:
        """TMDB countries, paged locally (the endpoint returns the whole list)."""
        regions = await self.get_with_retry("/configuration/countries") or []
        start = (page - 1) * limit
        return {
            "results": regions[start : start + limit],
            "page": page,
            "total_pages": math.ceil(len(regions) / limit),
            "total_results": len(regions),
        }

    async def fetch_all_movie_details(self, movie_ids: List[int]) -> List[Optional[MovieDict]]:
        """Details for each id, in order; None where the lookup failed."""
        results = await asyncio.gather(
            *(self.get_movie_details(mid) for mid in movie_ids),
            return_exceptions=True,
        )
        out: List[Optional[MovieDict]] = []
        for mid, res in zip(movie_ids, results):
            if isinstance(res, BaseException):
                log.debug("TMDB details failed for %s: %s", mid, res)
                out.append(None)
            else:
                out.append(res)
        return out

    async def aclose(self):
        await self.client.aclose()
