from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LikeStatusOut(BaseModel):
    liked: bool


class LikeToggleOut(BaseModel):
    success: bool = True
    action: Literal["liked", "unliked"]
    liked: bool
    message: str


class RatingRecord(BaseModel):
    user_id: str
    movie_id: str
    score: int = Field(ge=1, le=10)
    created_at: str | None = None
    updated_at: str | None = None


class RatingStatusOut(BaseModel):
    rating: int | None = None


class RatingUpsertOut(BaseModel):
    success: bool = True
    rating: RatingRecord


class DismissOut(BaseModel):
    dismissed: bool


class MovieStatus(BaseModel):
    liked: bool
    rating: int | None = None


class BatchStatusOut(BaseModel):
    movies: dict[str, MovieStatus] = Field(default_factory=dict)
