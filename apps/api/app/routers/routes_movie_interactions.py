from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from moviebox_core.config import BATCH_STATUS_MAX_IDS
from moviebox_user.interactions.interactions_service import (
    InteractionsService,
    parse_tmdb_ids,
)
from moviebox_user.interactions.schemas import (
    BatchStatusOut,
    DismissOut,
    LikeStatusOut,
    LikeToggleOut,
    RatingStatusOut,
    RatingUpsertOut,
)

from app.deps.deps import get_like_rate_limiter
from app.deps.supabase_client import get_current_user_id, get_interactions_service
from app.infrastructure.rate_limit.rate_limiter import RateLimiter
from app.routers._helpers import enforce_rate_limit, parse_movie_id
from app.schemas import BatchStatusRequest, RatingRequest

router = APIRouter(prefix="/movies", tags=["interactions"])


# ---- Batch status (declare BEFORE `/{id}` routes) ----
@router.post("/batch-status", response_model=BatchStatusOut)
async def batch_status(
    req: BatchStatusRequest,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    if not req.movieIds:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Movie IDs array is required")
    if len(req.movieIds) > BATCH_STATUS_MAX_IDS:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Maximum {BATCH_STATUS_MAX_IDS} movies allowed per request",
        )
    return await service.batch_status(user_id, parse_tmdb_ids(req.movieIds))


# ---- Likes ----
@router.get("/{id}/likes", response_model=LikeStatusOut)
async def like_status(
    id: str,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    return await service.like_status(user_id, parse_movie_id(id))


@router.post("/{id}/likes", response_model=LikeToggleOut)
async def toggle_like(
    id: str,
    request: Request,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    limiter: RateLimiter = Depends(get_like_rate_limiter),
    service: InteractionsService = Depends(get_interactions_service),
):
    await enforce_rate_limit(request, response, limiter, user_id)
    return await service.toggle_like(user_id, parse_movie_id(id))


@router.delete("/{id}/likes", response_model=LikeToggleOut)
async def unlike(
    id: str,
    request: Request,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    limiter: RateLimiter = Depends(get_like_rate_limiter),
    service: InteractionsService = Depends(get_interactions_service),
):
    await enforce_rate_limit(request, response, limiter, user_id)
    return await service.unlike(user_id, parse_movie_id(id))


# ---- Ratings ----
@router.get("/{id}/ratings", response_model=RatingStatusOut)
async def rating_status(
    id: str,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    return await service.rating_status(user_id, parse_movie_id(id))


@router.post("/{id}/ratings", response_model=RatingUpsertOut)
async def rate_movie(
    id: str,
    req: RatingRequest,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    return await service.rate(user_id, parse_movie_id(id), req.score)


@router.delete("/{id}/ratings")
async def remove_rating(
    id: str,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    await service.remove_rating(user_id, parse_movie_id(id))
    return {"success": True}


# ---- Dismissals ----
@router.post("/{id}/dismiss", response_model=DismissOut)
async def dismiss(
    id: str,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    return await service.dismiss(user_id, parse_movie_id(id))


@router.delete("/{id}/dismiss", response_model=DismissOut)
async def undismiss(
    id: str,
    user_id: str = Depends(get_current_user_id),
    service: InteractionsService = Depends(get_interactions_service),
):
    return await service.undismiss(user_id, parse_movie_id(id))
