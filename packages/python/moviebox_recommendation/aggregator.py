from __future__ import annotations

import asyncio
import logging

from .strategies import (
    run_genre_affinity,
    run_genre_popularity,
    run_genre_recency,
    run_rating_similarity,
)
from .types import (
    ActivityReader,
    MovieProvider,
    RecommendationCandidate,
    StrategyResult,
    UserActivityProfile,
)

log = logging.getLogger(__name__)

FALLBACK_REASON = "Popular movies based on your activity"


def merge_max_score(
    results: list[StrategyResult],
) -> dict[int, RecommendationCandidate]:
    """
    Merge strategy nominations keyed by TMDB id.

    A later nomination replaces the stored one only when its score is strictly
    higher, so equal scores keep the earlier strategy's reason.
    """
    merged: dict[int, RecommendationCandidate] = {}
    for result in results:
        for cand in result.candidates:
            existing = merged.get(cand.tmdb_id)
            if existing is None or existing.score < cand.score:
                merged[cand.tmdb_id] = cand
    return merged


class RecommendationAggregator:
    def __init__(self, provider: MovieProvider, repo: ActivityReader):
        self.provider = provider
        self.repo = repo

    async def run_strategies(
        self,
        profile: UserActivityProfile,
        page: int,
        *,
        current_year: int | None = None,
    ) -> list[StrategyResult]:
        # fetches overlap; results come back in STRATEGY_ORDER
        results = await asyncio.gather(
            run_genre_affinity(self.provider, profile, page),
            run_rating_similarity(self.provider, profile, page),
            run_genre_popularity(self.provider, profile, page),
            run_genre_recency(self.provider, profile, page, current_year),
        )
        for r in results:
            log.debug(
                "Strategy %s: %d candidates, %d failed calls",
                r.name,
                len(r.candidates),
                r.failures,
            )
        return list(results)

    async def fallback_popular(
        self, limit: int, page: int
    ) -> dict[int, RecommendationCandidate]:
        try:
            data = await self.provider.get_popular_movies(page=page)
        except Exception as e:
            log.warning("Fallback popular movies failed: %s", e)
            return {}
        merged: dict[int, RecommendationCandidate] = {}
        for movie in (data or {}).get("results", [])[:limit]:
            popularity = movie.get("popularity") or 0
            merged[movie["id"]] = RecommendationCandidate(
                tmdb_id=movie["id"],
                score=float(popularity) / 100,
                reason=FALLBACK_REASON,
            )
        return merged

    async def exclude_seen(
        self,
        candidates: list[RecommendationCandidate],
        profile: UserActivityProfile,
    ) -> list[RecommendationCandidate]:
        if not candidates:
            return []
        local_ids = await self.repo.resolve_local_ids([c.tmdb_id for c in candidates])
        kept: list[RecommendationCandidate] = []
        for c in candidates:
            local_id = local_ids.get(c.tmdb_id)
            # never stored locally -> the user cannot have interacted with it
            if local_id is None or not profile.is_excluded(local_id):
                kept.append(c)
        return kept

    async def aggregate(
        self,
        profile: UserActivityProfile,
        limit: int,
        page: int,
        *,
        current_year: int | None = None,
    ) -> list[RecommendationCandidate]:
        results = await self.run_strategies(profile, page, current_year=current_year)
        merged = merge_max_score(results)

        if not merged:
            merged = await self.fallback_popular(limit, page)

        filtered = await self.exclude_seen(list(merged.values()), profile)
        ranked = sorted(filtered, key=lambda c: c.score, reverse=True)
        return ranked[:limit]
