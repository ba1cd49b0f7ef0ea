import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from moviebox_core.config import (
    CACHE_CONTROL_NO_STORE,
    CACHE_CONTROL_PRIVATE,
    DEFAULT_RECOMMENDATION_LIMIT,
    MAX_RECOMMENDATION_LIMIT,
)
from moviebox_recommendation.recommend import RecommendationService

from app.deps.supabase_client import get_current_user_id, get_recommendation_service
from app.routers._helpers import run_until_disconnected

log = logging.getLogger(__name__)

router = APIRouter(prefix="/movies", tags=["recommendations"])


# declared before any `/movies/{id}` route
@router.get("/recommendations")
async def get_recommendations(
    request: Request,
    response: Response,
    page: int = 1,
    limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    refresh: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    page = max(page, 1)
    limit = max(1, min(limit, MAX_RECOMMENDATION_LIMIT))

    try:
        payload = await run_until_disconnected(
            request, service.recommend(user_id, page=page, limit=limit)
        )
    except HTTPException:
        raise
    except Exception:
        log.exception("Recommendation pipeline failed for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error",
        )

    response.headers["Cache-Control"] = (
        CACHE_CONTROL_NO_STORE if refresh else CACHE_CONTROL_PRIVATE
    )
    return payload
