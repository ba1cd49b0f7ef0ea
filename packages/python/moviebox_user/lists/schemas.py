from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

BuiltinType = Literal["favorites", "watch_later"]


class ListRecord(BaseModel):
    id: str
    user_id: str
    title: str
    slug: str
    is_builtin: bool = False
    builtin_type: BuiltinType | None = None
    created_at: str | None = None
    updated_at: str | None = None


class BuiltinListsOut(BaseModel):
    ok: bool = True
    favorites: ListRecord
    watchLater: ListRecord


class ListItemMovie(BaseModel):
    tmdbId: int
    title: str
    year: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ListItemOut(BaseModel):
    id: str  # list id
    movieId: str
    addedAt: str | None = None
    movie: ListItemMovie


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNext: bool
    hasPrev: bool


class ListItemsPage(BaseModel):
    items: list[ListItemOut] = Field(default_factory=list)
    pagination: Pagination


class ListChangeOut(BaseModel):
    success: bool = True
    message: str | None = None
