from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any

from moviebox_core.types import MovieDict

from .types import MovieProvider, RecommendationCandidate, UserActivityProfile

log = logging.getLogger(__name__)

PERSONALIZED_REASON = "Personalized recommendations"
NEW_USER_REASON = "Popular movies for new users"
TOTAL_STRATEGIES = 4

# reason substring -> stats key; display-only approximation
_STATS_KEYWORDS = {
    "genreBased": "favorite",
    "ratingBased": "rated",
    "popularityBased": "Popular",
    "recencyBased": "Recent",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def user_activity(profile: UserActivityProfile | None) -> dict[str, int]:
    if profile is None:
        return {"likedMovies": 0, "ratedMovies": 0, "totalLists": 0}
    return {
        "likedMovies": len(profile.liked_movie_ids),
        "ratedMovies": len(profile.rated_movie_ids),
        # distinct liked genres, published under the historical key
        "totalLists": len(profile.liked_genres),
    }


def recommendation_stats(candidates: list[RecommendationCandidate]) -> dict[str, int]:
    stats = {"totalStrategies": TOTAL_STRATEGIES}
    for key, needle in _STATS_KEYWORDS.items():
        stats[key] = sum(1 for c in candidates if needle in c.reason)
    return stats


class ResponseAssembler:
    def __init__(self, provider: MovieProvider):
        self.provider = provider

    async def hydrate(self, candidates: list[RecommendationCandidate]) -> list[MovieDict]:
        results = await asyncio.gather(
            *(self.provider.get_movie_details(c.tmdb_id) for c in candidates),
            return_exceptions=True,
        )
        movies: list[MovieDict] = []
        for cand, res in zip(candidates, results):
            if isinstance(res, BaseException):
                log.debug("Dropping tmdb_id=%s: details failed: %s", cand.tmdb_id, res)
                continue
            movies.append(
                {
                    **res,
                    "recommendationScore": cand.score,
                    "recommendationReason": cand.reason,
                }
            )
        return movies

    async def assemble(
        self,
        candidates: list[RecommendationCandidate],
        page: int,
        limit: int,
        profile: UserActivityProfile,
    ) -> dict[str, Any]:
        movies = await self.hydrate(candidates)
        return {
            "results": movies,
            "page": page,
            # counters describe this page only
            "total_pages": math.ceil(len(movies) / limit) if limit else 0,
            "total_results": len(movies),
            "reason": PERSONALIZED_REASON,
            "generatedAt": _now_iso(),
            "userActivity": user_activity(profile),
            "recommendationStats": recommendation_stats(candidates),
        }

    async def assemble_new_user(self, page: int, limit: int) -> dict[str, Any]:
        data = await self.provider.get_popular_movies(page=page)
        data = data or {}
        return {
            "results": list(data.get("results") or [])[:limit],
            "page": page,
            "total_pages": data.get("total_pages", 0),
            "total_results": data.get("total_results", 0),
            "reason": NEW_USER_REASON,
            "generatedAt": _now_iso(),
            "userActivity": user_activity(None),
        }
