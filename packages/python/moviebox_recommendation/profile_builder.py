"""
Builds the per-request activity profile the recommendation strategies score against.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter

from moviebox_core.config import DEFAULT_AVERAGE_RATING, MIN_PREFERRED_YEAR
from moviebox_core.types import InteractedMovie, MovieDict

from .types import ActivityReader, MovieProvider, UserActivityProfile

log = logging.getLogger(__name__)


def _dedupe_by_movie_id(*groups: list[InteractedMovie]) -> list[InteractedMovie]:
    seen: set[str] = set()
    out: list[InteractedMovie] = []
    for group in groups:
        for m in group:
            if m.movie_id not in seen:
                seen.add(m.movie_id)
                out.append(m)
    return out


def average_rating(scores: list[int]) -> float:
    if not scores:
        return DEFAULT_AVERAGE_RATING
    return sum(scores) / len(scores)


def preferred_years(*groups: list[InteractedMovie]) -> tuple[int, ...]:
    years = []
    for group in groups:
        for m in group:
            y = m.release_year()
            if y is not None and y > MIN_PREFERRED_YEAR:
                years.append(y)
    return tuple(years)


async def _harvest_keywords(
    provider: MovieProvider, movies: list[MovieDict]
) -> Counter:
    """Best-effort keyword tally; failed lookups are ignored."""
    results = await asyncio.gather(
        *(provider.get_movie_keywords(m["id"]) for m in movies),
        return_exceptions=True,
    )
    keywords: Counter = Counter()
    for res in results:
        if isinstance(res, BaseException):
            continue
        for kw in res or []:
            name = kw.get("name") if isinstance(kw, dict) else None
            if name:
                keywords[name] += 1
    return keywords


class ActivityProfileBuilder:
    def __init__(self, repo: ActivityReader, provider: MovieProvider):
        self.repo = repo
        self.provider = provider

    async def build_profile(self, user_id: str) -> UserActivityProfile:
        liked, rated, listed, dismissed = await asyncio.gather(
            self.repo.get_liked_movies(user_id),
            self.repo.get_rated_movies(user_id),
            self.repo.get_list_movies(user_id),
            self.repo.get_dismissed_movies(user_id),
        )

        user_movies = _dedupe_by_movie_id(liked, rated, listed)
        details = await asyncio.gather(
            *(self.provider.get_movie_details(m.tmdb_id) for m in user_movies),
            return_exceptions=True,
        )

        fetched: list[MovieDict] = []
        liked_genres: Counter = Counter()
        for movie, res in zip(user_movies, details):
            if isinstance(res, BaseException):
                log.warning(
                    "Profile: details lookup failed for tmdb_id=%s: %s", movie.tmdb_id, res
                )
                continue
            fetched.append(res)
            for genre_id in res.get("genre_ids") or []:
                liked_genres[genre_id] += 1

        liked_keywords = await _harvest_keywords(self.provider, fetched)

        # a ratings row without a score is not a rating
        scored = [m for m in rated if m.score is not None]
        rated_scores = {m.movie_id: int(m.score) for m in scored}

        return UserActivityProfile(
            liked_genres=dict(liked_genres),
            liked_keywords=dict(liked_keywords),
            average_rating=average_rating(list(rated_scores.values())),
            total_ratings=len(rated_scores),
            preferred_years=preferred_years(liked, rated),
            liked_movie_ids=frozenset(m.movie_id for m in liked),
            rated_movie_ids=rated_scores,
            dismissed_movie_ids=frozenset(dismissed),
            rated_movies=tuple(scored),
        )
