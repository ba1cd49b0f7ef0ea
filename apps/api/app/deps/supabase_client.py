from typing import Optional

from app.deps.deps import SupabaseCreds, get_supabase_creds, get_tmdb_client
from fastapi import Depends, Header, HTTPException, status
from moviebox_catalog.movie_repo import SupabaseMovieRepo
from moviebox_catalog.movie_service import MovieService
from moviebox_recommendation.recommend import RecommendationService
from moviebox_tmdb.tmdb_client import TMDBClient
from moviebox_user.activity.activity_repo import SupabaseUserActivityRepo
from moviebox_user.interactions.interactions_repo import SupabaseInteractionsRepo
from moviebox_user.interactions.interactions_service import InteractionsService
from moviebox_user.lists.lists_repo import SupabaseListsRepo
from moviebox_user.lists.lists_service import ListsService
from moviebox_user.settings.preferences_repo import SupabasePreferencesRepo
from moviebox_user.settings.preferences_service import PreferencesService


def require_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format",
        )
    return token.strip()


def get_supabase_client(
    user_token: str = Depends(require_bearer_token),
    creds: SupabaseCreds = Depends(get_supabase_creds),
):
    """Supabase client acting as the end user, so row-level security applies."""
    try:
        from supabase import Client, create_client  # type: ignore

        client: Client = create_client(creds.url, creds.api_key)
        client.postgrest.auth(user_token)
        return client
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Supabase init failed: {exc}",
        )


def get_current_user_id(
    client=Depends(get_supabase_client), user_token: str = Depends(require_bearer_token)
) -> str:
    """Resolve the user id (UUID) from GoTrue using the caller's token."""
    try:
        resp = client.auth.get_user(user_token)
        user = getattr(resp, "user", None) or getattr(resp, "data", None)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        user_id = getattr(user, "id", None) or user.get("id")
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user in token"
            )
        return user_id
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Failed to resolve user: {exc}",
        )


def get_activity_repo(sb=Depends(get_supabase_client)) -> SupabaseUserActivityRepo:
    return SupabaseUserActivityRepo(client=sb)


def get_recommendation_service(
    repo: SupabaseUserActivityRepo = Depends(get_activity_repo),
    tmdb: TMDBClient = Depends(get_tmdb_client),
) -> RecommendationService:
    return RecommendationService(repo=repo, provider=tmdb)


def get_movie_service(
    sb=Depends(get_supabase_client),
    tmdb: TMDBClient = Depends(get_tmdb_client),
) -> MovieService:
    return MovieService(SupabaseMovieRepo(sb), tmdb)


def get_interactions_service(
    sb=Depends(get_supabase_client),
    movies: MovieService = Depends(get_movie_service),
) -> InteractionsService:
    return InteractionsService(SupabaseInteractionsRepo(sb), movies)


def get_lists_service(
    sb=Depends(get_supabase_client),
    movies: MovieService = Depends(get_movie_service),
) -> ListsService:
    return ListsService(SupabaseListsRepo(sb), movies)


def get_preferences_service(sb=Depends(get_supabase_client)) -> PreferencesService:
    return PreferencesService(SupabasePreferencesRepo(sb))
