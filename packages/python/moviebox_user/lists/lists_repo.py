from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from anyio import to_thread
from postgrest.exceptions import APIError as PostgrestAPIError

from moviebox_core.errors import is_unique_violation, map_pgrest

from .schemas import BuiltinType, ListItemMovie, ListItemOut, ListRecord

TABLE_LISTS = "lists"
TABLE_LIST_ITEMS = "list_items"
TABLE_MOVIES = "movies"
MAX_IN = 200


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseListsRepo:
    """A user's lists (built-in and custom) and the movies saved in them."""

    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def get_lists(self, user_id: str, *, builtin_only: bool = False) -> list[ListRecord]:
        return await to_thread.run_sync(self._get_lists_sync, user_id, builtin_only)

    async def find_list(self, user_id: str, column: str, value: str) -> ListRecord | None:
        return await to_thread.run_sync(self._find_list_sync, user_id, column, value)

    async def create_list(
        self,
        user_id: str,
        *,
        title: str,
        slug: str,
        builtin_type: BuiltinType | None = None,
    ) -> ListRecord | None:
        """Insert a list; returns None when the (user, slug) pair is already taken."""
        return await to_thread.run_sync(
            self._create_list_sync, user_id, title, slug, builtin_type
        )

    async def delete_list(self, user_id: str, list_id: str) -> bool:
        return await to_thread.run_sync(self._delete_list_sync, user_id, list_id)

    async def get_items(self, list_id: str) -> list[ListItemOut]:
        return await to_thread.run_sync(self._get_items_sync, list_id)

    async def add_item(self, list_id: str, movie_id: str) -> None:
        await to_thread.run_sync(self._add_item_sync, list_id, movie_id)

    async def remove_item(self, list_id: str, movie_id: str) -> bool:
        return await to_thread.run_sync(self._remove_item_sync, list_id, movie_id)

    # ---------- Private sync impls ----------
    def _get_lists_sync(self, user_id: str, builtin_only: bool) -> list[ListRecord]:
        q = self.client.table(TABLE_LISTS).select("*").eq("user_id", user_id)
        if builtin_only:
            q = q.eq("is_builtin", True)
        res = q.execute()
        return [ListRecord(**r) for r in res.data or []]

    def _find_list_sync(self, user_id: str, column: str, value: str) -> ListRecord | None:
        res = (
            self.client.table(TABLE_LISTS)
            .select("*")
            .eq(column, value)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return ListRecord(**rows[0]) if rows else None

    def _create_list_sync(
        self, user_id: str, title: str, slug: str, builtin_type: BuiltinType | None
    ) -> ListRecord | None:
        payload = {
            "user_id": user_id,
            "title": title,
            "slug": slug,
            "is_builtin": builtin_type is not None,
            "builtin_type": builtin_type,
        }
        try:
            res = (
                self.client.table(TABLE_LISTS)
                .insert(payload, returning="representation")
                .execute()
            )
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                return None
            raise map_pgrest(e)
        rows = res.data or []
        return ListRecord(**rows[0]) if rows else None

    def _delete_list_sync(self, user_id: str, list_id: str) -> bool:
        try:
            res = (
                self.client.table(TABLE_LISTS)
                .delete(returning="representation")
                .eq("id", list_id)
                .eq("user_id", user_id)
                .execute()
            )
        except PostgrestAPIError as e:
            raise map_pgrest(e)
        return bool(res.data)

    def _movies_by_id(self, movie_ids: Sequence[str]) -> dict[str, dict]:
        ids = list(dict.fromkeys(movie_ids))
        rows: dict[str, dict] = {}
        for i in range(0, len(ids), MAX_IN):
            res = (
                self.client.table(TABLE_MOVIES)
                .select("id,tmdb_id,title,year,metadata")
                .in_("id", ids[i : i + MAX_IN])
                .execute()
            )
            for r in res.data or []:
                rows[r["id"]] = r
        return rows

    def _get_items_sync(self, list_id: str) -> list[ListItemOut]:
        res = (
            self.client.table(TABLE_LIST_ITEMS)
            .select("list_id,movie_id,created_at")
            .eq("list_id", list_id)
            .execute()
        )
        rows = list(res.data or [])
        movies = self._movies_by_id([r["movie_id"] for r in rows])
        items: list[ListItemOut] = []
        for r in rows:
            m = movies.get(r["movie_id"])
            if not m:
                continue
            items.append(
                ListItemOut(
                    id=r["list_id"],
                    movieId=r["movie_id"],
                    addedAt=r.get("created_at"),
                    movie=ListItemMovie(
                        tmdbId=int(m["tmdb_id"]),
                        title=m.get("title") or "",
                        year=m.get("year"),
                        metadata=m.get("metadata") or {},
                    ),
                )
            )
        # newest first
        items.sort(key=lambda it: it.addedAt or "", reverse=True)
        return items

    def _add_item_sync(self, list_id: str, movie_id: str) -> None:
        try:
            (
                self.client.table(TABLE_LIST_ITEMS)
                .insert({"list_id": list_id, "movie_id": movie_id, "created_at": _now()})
                .execute()
            )
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                return  # already in the list
            raise map_pgrest(e)

    def _remove_item_sync(self, list_id: str, movie_id: str) -> bool:
        try:
            res = (
                self.client.table(TABLE_LIST_ITEMS)
                .delete(returning="representation")
                .eq("list_id", list_id)
                .eq("movie_id", movie_id)
                .execute()
            )
        except PostgrestAPIError as e:
            raise map_pgrest(e)
        return bool(res.data)
