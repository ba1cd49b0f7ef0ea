from __future__ import annotations

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from moviebox_core.errors import is_unique_violation, map_pgrest
from moviebox_core.types import StoredMovie

TABLE = "movies"


def _row_to_movie(row: dict) -> StoredMovie:
    return StoredMovie(
        id=row["id"],
        tmdb_id=int(row["tmdb_id"]),
        title=row.get("title") or "",
        year=row.get("year"),
        metadata=row.get("metadata") or {},
    )


class SupabaseMovieRepo:
    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def get_by_tmdb_id(self, tmdb_id: int) -> StoredMovie | None:
        return await to_thread.run_sync(self._get_by_tmdb_id_sync, tmdb_id)

    async def insert(self, payload: dict) -> StoredMovie | None:
        """Insert a movie row; returns None when another writer won the race."""
        return await to_thread.run_sync(self._insert_sync, payload)

    # ---------- Private sync impls ----------
    def _get_by_tmdb_id_sync(self, tmdb_id: int) -> StoredMovie | None:
        res = (
            self.client.table(TABLE)
            .select("*")
            .eq("tmdb_id", tmdb_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return _row_to_movie(rows[0]) if rows else None

    def _insert_sync(self, payload: dict) -> StoredMovie | None:
        try:
            res = (
                self.client.table(TABLE)
                .insert(payload, returning="representation")
                .execute()
            )
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                return None
            raise map_pgrest(e)
        rows = res.data or []
        return _row_to_movie(rows[0]) if rows else None
