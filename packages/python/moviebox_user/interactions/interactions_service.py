from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from moviebox_catalog.movie_service import MovieService
from moviebox_core.config import BATCH_STATUS_ITEM_TIMEOUT_SEC
from moviebox_core.errors import NotFound, RuleViolation
from moviebox_core.types import StoredMovie

from .interactions_repo import SupabaseInteractionsRepo
from .schemas import (
    BatchStatusOut,
    DismissOut,
    LikeStatusOut,
    LikeToggleOut,
    MovieStatus,
    RatingStatusOut,
    RatingUpsertOut,
)

log = logging.getLogger(__name__)


def parse_tmdb_ids(raw_ids: Iterable) -> list[int]:
    """Positive integer ids, in input order; anything else is skipped."""
    out: list[int] = []
    for raw in raw_ids:
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            log.warning("Invalid movie ID: %r", raw)
            continue
        if value <= 0:
            log.warning("Invalid movie ID: %r", raw)
            continue
        out.append(value)
    return out


class InteractionsService:
    def __init__(self, repo: SupabaseInteractionsRepo, movies: MovieService):
        self.repo = repo
        self.movies = movies

    # ---- likes ----
    async def like_status(self, user_id: str, tmdb_id: int) -> LikeStatusOut:
        movie = await self.movies.get_or_create(tmdb_id)
        return LikeStatusOut(liked=await self.repo.is_liked(user_id, movie.id))

    async def toggle_like(self, user_id: str, tmdb_id: int) -> LikeToggleOut:
        movie = await self.movies.get_or_create(tmdb_id)
        if await self.repo.is_liked(user_id, movie.id):
            await self.repo.remove_like(user_id, movie.id)
            return LikeToggleOut(action="unliked", liked=False, message="Movie unliked")
        await self.repo.add_like(user_id, movie.id)
        return LikeToggleOut(action="liked", liked=True, message="Movie liked!")

    async def unlike(self, user_id: str, tmdb_id: int) -> LikeToggleOut:
        movie = await self.movies.get_or_create(tmdb_id)
        if not await self.repo.remove_like(user_id, movie.id):
            raise NotFound("Like not found")
        return LikeToggleOut(action="unliked", liked=False, message="Movie unliked")

    # ---- ratings ----
    async def rating_status(self, user_id: str, tmdb_id: int) -> RatingStatusOut:
        movie = await self.movies.get_or_create(tmdb_id)
        return RatingStatusOut(rating=await self.repo.get_rating(user_id, movie.id))

    async def rate(self, user_id: str, tmdb_id: int, score: int) -> RatingUpsertOut:
        if not 1 <= score <= 10:
            raise RuleViolation("Score must be a number between 1 and 10")
        movie = await self.movies.get_or_create(tmdb_id)
        record = await self.repo.upsert_rating(user_id, movie.id, score)
        return RatingUpsertOut(rating=record)

    async def remove_rating(self, user_id: str, tmdb_id: int) -> None:
        movie = await self.movies.get_or_create(tmdb_id)
        if not await self.repo.remove_rating(user_id, movie.id):
            raise NotFound("Rating not found")

    # ---- dismissals ----
    async def dismiss(self, user_id: str, tmdb_id: int) -> DismissOut:
        movie = await self.movies.get_or_create(tmdb_id)
        if not await self.repo.is_dismissed(user_id, movie.id):
            await self.repo.add_dismissal(user_id, movie.id)
        return DismissOut(dismissed=True)

    async def undismiss(self, user_id: str, tmdb_id: int) -> DismissOut:
        movie = await self.movies.get(tmdb_id)
        if movie is None:
            raise NotFound("Movie not found")
        await self.repo.remove_dismissal(user_id, movie.id)
        return DismissOut(dismissed=False)

    # ---- batch ----
    async def _get_or_create_bounded(self, tmdb_id: int) -> StoredMovie | None:
        try:
            return await asyncio.wait_for(
                self.movies.get_or_create(tmdb_id), timeout=BATCH_STATUS_ITEM_TIMEOUT_SEC
            )
        except Exception as e:
            log.warning("Failed to get/create movie %s: %s", tmdb_id, e)
            return None

    async def batch_status(self, user_id: str, tmdb_ids: list[int]) -> BatchStatusOut:
        stored = await asyncio.gather(*(self._get_or_create_bounded(t) for t in tmdb_ids))
        movies = [m for m in stored if m is not None]
        if not movies:
            return BatchStatusOut()

        liked, ratings = await self.repo.batch_status(user_id, [m.id for m in movies])
        return BatchStatusOut(
            movies={
                str(m.tmdb_id): MovieStatus(liked=m.id in liked, rating=ratings.get(m.id))
                for m in movies
            }
        )
