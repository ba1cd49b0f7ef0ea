from __future__ import annotations

import logging
from typing import Any

from .aggregator import RecommendationAggregator
from .assembler import ResponseAssembler
from .profile_builder import ActivityProfileBuilder
from .types import ActivityReader, MovieProvider

log = logging.getLogger(__name__)


class RecommendationService:
    """
    Per-request recommendation pipeline:

      profile -> (no activity? popular page) -> strategies -> merge/filter/sort -> hydrate

    Holds no state between calls; every intermediate structure lives for one
    `recommend()` call only.
    """

    def __init__(self, repo: ActivityReader, provider: MovieProvider):
        self.profiles = ActivityProfileBuilder(repo, provider)
        self.aggregator = RecommendationAggregator(provider, repo)
        self.assembler = ResponseAssembler(provider)

    async def recommend(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 20,
        current_year: int | None = None,
    ) -> dict[str, Any]:
        profile = await self.profiles.build_profile(user_id)

        if not profile.has_activity:
            return await self.assembler.assemble_new_user(page, limit)

        candidates = await self.aggregator.aggregate(
            profile, limit, page, current_year=current_year
        )
        log.debug(
            "Recommendations for %s: %d candidates (genres=%d, ratings=%d)",
            user_id,
            len(candidates),
            len(profile.liked_genres),
            profile.total_ratings,
        )
        return await self.assembler.assemble(candidates, page, limit, profile)
