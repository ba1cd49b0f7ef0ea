"""
Heuristic scoring strategies.

Each strategy pairs a pure score function with a fetch step that pulls a
candidate pool from TMDB. Sub-call failures are logged and skipped so one
bad genre/year/seed never blocks the rest.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Sequence

from moviebox_core.config import (
    HIGH_RATED_SEED_COUNT,
    HIGH_RATING_THRESHOLD,
    RECENT_YEARS_SPAN,
    TOP_GENRES_COUNT,
    genre_name,
)
from moviebox_core.types import MovieDict

from .types import MovieProvider, StrategyResult, UserActivityProfile

log = logging.getLogger(__name__)

GENRE_AFFINITY = "genre_affinity"
RATING_SIMILARITY = "rating_similarity"
GENRE_POPULARITY = "genre_popularity"
GENRE_RECENCY = "genre_recency"

# evaluation order doubles as tie-break order when merging
STRATEGY_ORDER = (GENRE_AFFINITY, RATING_SIMILARITY, GENRE_POPULARITY, GENRE_RECENCY)


def _num(movie: MovieDict, key: str) -> float:
    v = movie.get(key)
    return float(v) if isinstance(v, (int, float)) else 0.0


# ---- score functions ----
def genre_affinity_score(
    movie: MovieDict, profile: UserActivityProfile, target_genre: int
) -> float:
    score = 0.0
    genre_ids = movie.get("genre_ids") or []
    if target_genre in genre_ids:
        score += 10
    # target genre already counted above
    others = sum(1 for g in genre_ids if g != target_genre and g in profile.liked_genres)
    score += others * 5
    score += min(_num(movie, "popularity") / 100, 5)
    if _num(movie, "vote_average") > profile.average_rating:
        score += 3
    return score


def rating_similarity_score(
    movie: MovieDict, profile: UserActivityProfile, reference_rating: float
) -> float:
    score = profile.matching_genres(movie) * 8.0
    score += max(0.0, 10 - abs(_num(movie, "vote_average") - reference_rating))
    score += min(_num(movie, "popularity") / 100, 3)
    return score


def genre_popularity_score(movie: MovieDict, profile: UserActivityProfile) -> float:
    score = profile.matching_genres(movie) * 6.0
    score += min(_num(movie, "popularity") / 50, 8)
    if _num(movie, "vote_average") >= 7.0:
        score += 5
    return score


def genre_recency_score(
    movie: MovieDict,
    profile: UserActivityProfile,
    year: int,
    current_year: int | None = None,
) -> float:
    current_year = current_year or date.today().year
    score = profile.matching_genres(movie) * 7.0
    score += max(0, 5 - (current_year - year))
    score += min(_num(movie, "popularity") / 100, 4)
    return score


# ---- fetch helpers ----
async def _gather_pages(
    name: str,
    params: Sequence[Any],
    fetch: Callable[[Any], Awaitable[dict]],
) -> list[tuple[Any, list[MovieDict] | None]]:
    """Run one provider call per param concurrently; None marks a failed call."""
    results = await asyncio.gather(*(fetch(p) for p in params), return_exceptions=True)
    out: list[tuple[Any, list[MovieDict] | None]] = []
    for p, res in zip(params, results):
        if isinstance(res, BaseException):
            log.warning("Strategy %s: provider call failed for %r: %s", name, p, res)
            out.append((p, None))
        else:
            out.append((p, list((res or {}).get("results") or [])))
    return out


# ---- strategies ----
async def run_genre_affinity(
    provider: MovieProvider, profile: UserActivityProfile, page: int
) -> StrategyResult:
    result = StrategyResult(GENRE_AFFINITY)
    if not profile.liked_genres:
        return result

    top = profile.top_genres(TOP_GENRES_COUNT)
    pages = await _gather_pages(
        GENRE_AFFINITY, top, lambda g: provider.discover_by_genre(g, page=page)
    )
    for genre_id, movies in pages:
        if movies is None:
            result.failures += 1
            continue
        reason = f"Similar to your favorite {genre_name(genre_id)} movies"
        for movie in movies:
            score = genre_affinity_score(movie, profile, genre_id)
            if score > 0:
                result.add(movie["id"], score, reason)
    return result


async def run_rating_similarity(
    provider: MovieProvider, profile: UserActivityProfile, page: int
) -> StrategyResult:
    result = StrategyResult(RATING_SIMILARITY)
    seeds = [
        m
        for m in profile.rated_movies
        if m.score is not None and m.score >= HIGH_RATING_THRESHOLD
    ][:HIGH_RATED_SEED_COUNT]
    if not seeds:
        return result

    pages = await _gather_pages(
        RATING_SIMILARITY, seeds, lambda m: provider.get_movie_recommendations(m.tmdb_id)
    )
    for seed, movies in pages:
        if movies is None:
            result.failures += 1
            continue
        reason = f"Similar to movies you rated {seed.score}/10"
        for movie in movies:
            score = rating_similarity_score(movie, profile, seed.score)
            if score > 0:
                result.add(movie["id"], score, reason)
    return result


async def run_genre_popularity(
    provider: MovieProvider, profile: UserActivityProfile, page: int
) -> StrategyResult:
    result = StrategyResult(GENRE_POPULARITY)
    if not profile.liked_genres:
        return result

    [(_, movies)] = await _gather_pages(
        GENRE_POPULARITY, [page], lambda p: provider.get_popular_movies(page=p)
    )
    if movies is None:
        result.failures += 1
        return result
    for movie in movies:
        score = genre_popularity_score(movie, profile)
        if score > 0:
            result.add(movie["id"], score, "Popular in your favorite genres")
    return result


async def run_genre_recency(
    provider: MovieProvider,
    profile: UserActivityProfile,
    page: int,
    current_year: int | None = None,
) -> StrategyResult:
    result = StrategyResult(GENRE_RECENCY)
    if not (profile.liked_genres and profile.preferred_years):
        return result

    current_year = current_year or date.today().year
    years = [current_year - i for i in range(RECENT_YEARS_SPAN)]
    pages = await _gather_pages(
        GENRE_RECENCY, years, lambda y: provider.discover_by_year(y, page=page)
    )
    for year, movies in pages:
        if movies is None:
            result.failures += 1
            continue
        reason = f"Recent {year} movie in your favorite genres"
        for movie in movies:
            score = genre_recency_score(movie, profile, year, current_year)
            if score > 0:
                result.add(movie["id"], score, reason)
    return result
