from typing import Any, cast
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from moviebox_tmdb.tmdb_client import TMDBClient
from app.infrastructure.rate_limit.rate_limiter import RateLimiter


def _get_state_attr(request: Request, name: str, error_detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail,
        )
    return value


def get_settings(request: Request) -> Any:
    return _get_state_attr(request, "settings", "Settings not initialized")


def get_tmdb_client(request: Request) -> TMDBClient:
    return cast(
        TMDBClient,
        _get_state_attr(request, "tmdb_client", "TMDB client not initialized"),
    )


def get_like_rate_limiter(request: Request) -> RateLimiter:
    return cast(
        RateLimiter,
        _get_state_attr(request, "like_rate_limiter", "Rate limiter not initialized"),
    )


@dataclass(frozen=True)
class SupabaseCreds:
    url: str
    api_key: str


def get_supabase_creds(request: Request) -> SupabaseCreds:
    return SupabaseCreds(
        url=getattr(request.app.state, "supabase_url", ""),
        api_key=getattr(request.app.state, "supabase_api_key", ""),
    )
