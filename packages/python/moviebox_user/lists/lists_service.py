from __future__ import annotations

import logging
import math
import re

from moviebox_catalog.movie_service import MovieService
from moviebox_core.errors import Conflict, InvalidInput, NotFound

from .lists_repo import SupabaseListsRepo
from .schemas import (
    BuiltinListsOut,
    BuiltinType,
    ListChangeOut,
    ListItemsPage,
    ListRecord,
    Pagination,
)

log = logging.getLogger(__name__)

LIST_NOT_FOUND = "List not found"
MAX_ITEMS_PAGE_SIZE = 100

# (title, builtin_type, slug source)
BUILTIN_LISTS: tuple[tuple[str, BuiltinType, str], ...] = (
    ("Favorites", "favorites", "favorites"),
    ("Watch later", "watch_later", "watch-later"),
)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def slugify(text: str) -> str:
    """Lowercase, drop punctuation, one dash per whitespace char ("A & B" -> "a--b")."""
    cleaned = re.sub(r"[^a-z0-9_\s-]", "", text.strip().lower())
    return re.sub(r"\s", "-", cleaned.strip())


def is_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value or ""))


class ListsService:
    def __init__(self, repo: SupabaseListsRepo, movies: MovieService):
        self.repo = repo
        self.movies = movies

    async def _resolve(self, user_id: str, identifier: str) -> ListRecord:
        """A list addressed by id (uuid) or by slug."""
        column = "id" if is_uuid(identifier) else "slug"
        found = await self.repo.find_list(user_id, column, identifier)
        if found is None:
            raise NotFound(LIST_NOT_FOUND)
        return found

    # ---- lists ----
    async def get_lists(self, user_id: str) -> list[ListRecord]:
        return await self.repo.get_lists(user_id)

    async def create_list(self, user_id: str, title: str | None) -> ListRecord:
        title = (title or "").strip()
        slug = slugify(title)
        if not slug:
            raise InvalidInput("Title is required")
        if await self.repo.find_list(user_id, "slug", slug):
            raise Conflict("List with this name already exists")
        created = await self.repo.create_list(user_id, title=title, slug=slug)
        if created is None:
            raise Conflict("List with this name already exists")
        return created

    async def delete_list(self, user_id: str, list_id: str) -> None:
        found = await self.repo.find_list(user_id, "id", list_id)
        if found is None:
            raise NotFound(LIST_NOT_FOUND)
        if found.is_builtin:
            raise InvalidInput("Cannot delete built-in lists")
        await self.repo.delete_list(user_id, list_id)

    # ---- built-in lists ----
    async def _ensure_builtin(
        self, user_id: str, title: str, builtin_type: BuiltinType, slug_source: str
    ) -> ListRecord:
        slug = slugify(slug_source)
        existing = await self.repo.find_list(user_id, "slug", slug)
        if existing:
            return existing
        created = await self.repo.create_list(
            user_id, title=title, slug=slug, builtin_type=builtin_type
        )
        if created:
            return created
        # created concurrently by another request
        existing = await self.repo.find_list(user_id, "slug", slug)
        if existing is None:
            raise Conflict(f"Could not create built-in list {slug!r}")
        return existing

    async def ensure_builtin_lists(self, user_id: str) -> BuiltinListsOut:
        favorites, watch_later = [
            await self._ensure_builtin(user_id, *builtin) for builtin in BUILTIN_LISTS
        ]
        return BuiltinListsOut(favorites=favorites, watchLater=watch_later)

    async def get_builtin_lists(self, user_id: str) -> list[ListRecord]:
        return await self.repo.get_lists(user_id, builtin_only=True)

    # ---- items ----
    async def get_items(
        self,
        user_id: str,
        identifier: str,
        *,
        page: int = 1,
        limit: int = 20,
        search: str = "",
    ) -> ListItemsPage:
        page = max(page, 1)
        limit = max(1, min(limit, MAX_ITEMS_PAGE_SIZE))
        found = await self._resolve(user_id, identifier)

        items = await self.repo.get_items(found.id)
        if search:
            items = [it for it in items if search in it.movie.title]

        total = len(items)
        total_pages = math.ceil(total / limit)
        offset = (page - 1) * limit
        return ListItemsPage(
            items=items[offset : offset + limit],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                totalPages=total_pages,
                hasNext=page < total_pages,
                hasPrev=page > 1,
            ),
        )

    async def add_item(self, user_id: str, identifier: str, tmdb_id: int) -> ListChangeOut:
        found = await self._resolve(user_id, identifier)
        movie = await self.movies.get_or_create(tmdb_id)
        await self.repo.add_item(found.id, movie.id)
        log.debug("Added movie %s to list %s", movie.id, found.id)
        return ListChangeOut(message="Item added to list")

    async def remove_item(self, user_id: str, identifier: str, movie_id: str) -> ListChangeOut:
        found = await self._resolve(user_id, identifier)
        if not await self.repo.remove_item(found.id, movie_id):
            raise NotFound("Item not found in list")
        return ListChangeOut(message="Item successfully removed from list")
