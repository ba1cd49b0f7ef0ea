from __future__ import annotations

from typing import Iterable, Sequence

from anyio import to_thread

from moviebox_core.types import InteractedMovie, LocalMovieId, TmdbId

TABLE_MOVIES = "movies"
TABLE_LIKES = "likes"
TABLE_RATINGS = "ratings"
TABLE_LISTS = "lists"
TABLE_LIST_ITEMS = "list_items"
TABLE_DISMISSED = "dismissed_movies"
MAX_IN = 200  # keep matches PostgREST URL/param safety


def _chunks(ids: Sequence, size: int = MAX_IN) -> Iterable[list]:
    for i in range(0, len(ids), size):
        yield list(ids[i : i + size])


def _unique(values: Iterable) -> list:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class SupabaseUserActivityRepo:
    """Read-only access to a user's likes, ratings, list items and dismissals."""

    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def get_liked_movies(self, user_id: str) -> list[InteractedMovie]:
        return await to_thread.run_sync(self._get_liked_sync, user_id)

    async def get_rated_movies(self, user_id: str) -> list[InteractedMovie]:
        return await to_thread.run_sync(self._get_rated_sync, user_id)

    async def get_list_movies(self, user_id: str) -> list[InteractedMovie]:
        return await to_thread.run_sync(self._get_list_movies_sync, user_id)

    async def get_dismissed_movies(self, user_id: str) -> list[LocalMovieId]:
        return await to_thread.run_sync(self._get_dismissed_sync, user_id)

    async def resolve_local_ids(
        self, tmdb_ids: Sequence[TmdbId]
    ) -> dict[TmdbId, LocalMovieId]:
        return await to_thread.run_sync(self._resolve_local_ids_sync, tmdb_ids)

    # ---------- Private sync impls ----------
    def _movies_by_id(self, movie_ids: Sequence[LocalMovieId]) -> dict[LocalMovieId, dict]:
        rows: dict[LocalMovieId, dict] = {}
        for chunk in _chunks(_unique(movie_ids)):
            res = (
                self.client.table(TABLE_MOVIES)
                .select("id,tmdb_id,metadata")
                .in_("id", chunk)
                .execute()
            )
            for r in res.data or []:
                rows[r["id"]] = r
        return rows

    def _join_movies(
        self, rows: list[dict], *, with_score: bool = False
    ) -> list[InteractedMovie]:
        movies = self._movies_by_id([r["movie_id"] for r in rows])
        out: list[InteractedMovie] = []
        for r in rows:
            # inner join: interactions whose movie row is gone are skipped
            m = movies.get(r["movie_id"])
            if not m:
                continue
            out.append(
                InteractedMovie(
                    movie_id=r["movie_id"],
                    tmdb_id=int(m["tmdb_id"]),
                    metadata=m.get("metadata") or {},
                    score=int(r["score"]) if with_score and r.get("score") is not None else None,
                )
            )
        return out

    def _get_liked_sync(self, user_id: str) -> list[InteractedMovie]:
        res = (
            self.client.table(TABLE_LIKES)
            .select("movie_id")
            .eq("user_id", user_id)
            .execute()
        )
        return self._join_movies(list(res.data or []))

    def _get_rated_sync(self, user_id: str) -> list[InteractedMovie]:
        res = (
            self.client.table(TABLE_RATINGS)
            .select("movie_id,score")
            .eq("user_id", user_id)
            .execute()
        )
        return self._join_movies(list(res.data or []), with_score=True)

    def _get_list_movies_sync(self, user_id: str) -> list[InteractedMovie]:
        lists_res = (
            self.client.table(TABLE_LISTS)
            .select("id")
            .eq("user_id", user_id)
            .execute()
        )
        list_ids = [r["id"] for r in lists_res.data or []]
        if not list_ids:
            return []

        rows: list[dict] = []
        for chunk in _chunks(list_ids):
            res = (
                self.client.table(TABLE_LIST_ITEMS)
                .select("list_id,movie_id")
                .in_("list_id", chunk)
                .execute()
            )
            rows.extend(res.data or [])
        return self._join_movies(rows)

    def _get_dismissed_sync(self, user_id: str) -> list[LocalMovieId]:
        res = (
            self.client.table(TABLE_DISMISSED)
            .select("movie_id")
            .eq("user_id", user_id)
            .execute()
        )
        return [r["movie_id"] for r in res.data or []]

    def _resolve_local_ids_sync(
        self, tmdb_ids: Sequence[TmdbId]
    ) -> dict[TmdbId, LocalMovieId]:
        mapping: dict[TmdbId, LocalMovieId] = {}
        for chunk in _chunks(_unique(int(t) for t in tmdb_ids)):
            res = (
                self.client.table(TABLE_MOVIES)
                .select("id,tmdb_id")
                .in_("tmdb_id", chunk)
                .execute()
            )
            for r in res.data or []:
                mapping[int(r["tmdb_id"])] = r["id"]
        return mapping
