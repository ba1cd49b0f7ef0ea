from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    # range is checked by the service so the error carries its own message
    score: int


class BatchStatusRequest(BaseModel):
    movieIds: list[Any] = Field(default_factory=list)


class MoviePage(BaseModel):
    page: int = 1
    results: list[dict[str, Any]] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class GenreListOut(BaseModel):
    genres: list[dict[str, Any]] = Field(default_factory=list)


class CreateListRequest(BaseModel):
    title: str | None = None


class AddListItemRequest(BaseModel):
    # provider id; validated like the `{id}` path segments
    movieId: Any = None
