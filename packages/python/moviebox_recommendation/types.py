from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Protocol, Sequence, runtime_checkable

from moviebox_core.types import InteractedMovie, LocalMovieId, MovieDict, TmdbId


@runtime_checkable
class ActivityReader(Protocol):
    async def get_liked_movies(self, user_id: str) -> list[InteractedMovie]: ...

    async def get_rated_movies(self, user_id: str) -> list[InteractedMovie]: ...

    async def get_list_movies(self, user_id: str) -> list[InteractedMovie]: ...

    async def get_dismissed_movies(self, user_id: str) -> list[LocalMovieId]: ...

    async def resolve_local_ids(
        self, tmdb_ids: Sequence[TmdbId]
    ) -> dict[TmdbId, LocalMovieId]: ...


@runtime_checkable
class MovieProvider(Protocol):
    async def get_movie_details(self, movie_id: int) -> MovieDict: ...

    async def get_movie_keywords(self, movie_id: int) -> List[dict]: ...

    async def discover_by_genre(self, genre_id: int, page: int = 1) -> dict: ...

    async def discover_by_year(self, year: int, page: int = 1) -> dict: ...

    async def get_popular_movies(self, page: int = 1) -> dict: ...

    async def get_movie_recommendations(self, movie_id: int, page: int = 1) -> dict: ...


@dataclass(frozen=True)
class UserActivityProfile:
    liked_genres: Mapping[int, int]
    liked_keywords: Mapping[str, int]
    average_rating: float
    total_ratings: int
    preferred_years: tuple[int, ...]
    liked_movie_ids: frozenset[LocalMovieId]
    rated_movie_ids: Mapping[LocalMovieId, int]
    dismissed_movie_ids: frozenset[LocalMovieId]
    rated_movies: tuple[InteractedMovie, ...] = ()

    @property
    def has_activity(self) -> bool:
        return bool(self.liked_movie_ids or self.rated_movie_ids)

    def top_genres(self, n: int) -> list[int]:
        # sorted() is stable: equal counts keep first-seen order
        ranked = sorted(self.liked_genres.items(), key=lambda kv: kv[1], reverse=True)
        return [genre_id for genre_id, _ in ranked[:n]]

    def matching_genres(self, movie: MovieDict) -> int:
        return sum(1 for g in movie.get("genre_ids") or [] if g in self.liked_genres)

    def is_excluded(self, local_id: LocalMovieId) -> bool:
        return (
            local_id in self.liked_movie_ids
            or local_id in self.rated_movie_ids
            or local_id in self.dismissed_movie_ids
        )


@dataclass
class RecommendationCandidate:
    tmdb_id: TmdbId
    score: float
    reason: str


@dataclass
class StrategyResult:
    """Candidates one strategy nominated, in nomination order."""

    name: str
    candidates: list[RecommendationCandidate] = field(default_factory=list)
    failures: int = 0

    def add(self, tmdb_id: TmdbId, score: float, reason: str) -> None:
        self.candidates.append(RecommendationCandidate(tmdb_id, score, reason))


JsonObj = dict[str, Any]
