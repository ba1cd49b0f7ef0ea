from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from moviebox_core.errors import Conflict, is_unique_violation, map_pgrest

from .schemas import RatingRecord

TABLE_LIKES = "likes"
TABLE_RATINGS = "ratings"
TABLE_DISMISSED = "dismissed_movies"
MAX_IN = 200


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseInteractionsRepo:
    """Likes, ratings and dismissals, keyed by (user_id, local movie_id)."""

    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def is_liked(self, user_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._exists_sync, TABLE_LIKES, user_id, movie_id)

    async def add_like(self, user_id: str, movie_id: str) -> None:
        await to_thread.run_sync(self._insert_sync, TABLE_LIKES, user_id, movie_id)

    async def remove_like(self, user_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._delete_sync, TABLE_LIKES, user_id, movie_id)

    async def get_rating(self, user_id: str, movie_id: str) -> int | None:
        return await to_thread.run_sync(self._get_rating_sync, user_id, movie_id)

    async def upsert_rating(self, user_id: str, movie_id: str, score: int) -> RatingRecord:
        return await to_thread.run_sync(self._upsert_rating_sync, user_id, movie_id, score)

    async def remove_rating(self, user_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._delete_sync, TABLE_RATINGS, user_id, movie_id)

    async def is_dismissed(self, user_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._exists_sync, TABLE_DISMISSED, user_id, movie_id)

    async def add_dismissal(self, user_id: str, movie_id: str) -> None:
        await to_thread.run_sync(self._insert_sync, TABLE_DISMISSED, user_id, movie_id)

    async def remove_dismissal(self, user_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._delete_sync, TABLE_DISMISSED, user_id, movie_id)

    async def batch_status(
        self, user_id: str, movie_ids: Sequence[str]
    ) -> tuple[set[str], dict[str, int]]:
        return await to_thread.run_sync(self._batch_status_sync, user_id, movie_ids)

    # ---------- Private sync impls ----------
    def _exists_sync(self, table: str, user_id: str, movie_id: str) -> bool:
        res = (
            self.client.table(table)
            .select("movie_id")
            .eq("user_id", user_id)
            .eq("movie_id", movie_id)
            .limit(1)
            .execute()
        )
        return bool(res.data)

    def _insert_sync(self, table: str, user_id: str, movie_id: str) -> None:
        try:
            (
                self.client.table(table)
                .insert({"user_id": user_id, "movie_id": movie_id})
                .execute()
            )
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                return  # already present
            raise map_pgrest(e)

    def _delete_sync(self, table: str, user_id: str, movie_id: str) -> bool:
        try:
            res = (
                self.client.table(table)
                .delete(returning="representation")
                .eq("user_id", user_id)
                .eq("movie_id", movie_id)
                .execute()
            )
        except PostgrestAPIError as e:
            raise map_pgrest(e)
        return bool(res.data)

    def _get_rating_sync(self, user_id: str, movie_id: str) -> int | None:
        res = (
            self.client.table(TABLE_RATINGS)
            .select("score")
            .eq("user_id", user_id)
            .eq("movie_id", movie_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return int(rows[0]["score"]) if rows else None

    def _upsert_rating_sync(self, user_id: str, movie_id: str, score: int) -> RatingRecord:
        exists = self._exists_sync(TABLE_RATINGS, user_id, movie_id)
        try:
            if exists:
                res = (
                    self.client.table(TABLE_RATINGS)
                    .update({"score": score, "updated_at": _now()}, returning="representation")
                    .eq("user_id", user_id)
                    .eq("movie_id", movie_id)
                    .execute()
                )
            else:
                res = (
                    self.client.table(TABLE_RATINGS)
                    .insert(
                        {"user_id": user_id, "movie_id": movie_id, "score": score},
                        returning="representation",
                    )
                    .execute()
                )
        except PostgrestAPIError as e:
            raise map_pgrest(e)

        rows = res.data or []
        if not rows:
            raise Conflict("rating not saved")
        return RatingRecord(**rows[0])

    def _batch_status_sync(
        self, user_id: str, movie_ids: Sequence[str]
    ) -> tuple[set[str], dict[str, int]]:
        liked: set[str] = set()
        ratings: dict[str, int] = {}
        ids = list(movie_ids)
        for i in range(0, len(ids), MAX_IN):
            chunk = ids[i : i + MAX_IN]
            likes_res = (
                self.client.table(TABLE_LIKES)
                .select("movie_id")
                .eq("user_id", user_id)
                .in_("movie_id", chunk)
                .execute()
            )
            liked.update(r["movie_id"] for r in likes_res.data or [])
            ratings_res = (
                self.client.table(TABLE_RATINGS)
                .select("movie_id,score")
                .eq("user_id", user_id)
                .in_("movie_id", chunk)
                .execute()
            )
            for r in ratings_res.data or []:
                ratings[r["movie_id"]] = int(r["score"])
        return liked, ratings
