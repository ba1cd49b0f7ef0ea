import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from moviebox_tmdb.errors import TMDBNotFound
from moviebox_tmdb.tmdb_client import TMDBClient

from app.deps.deps import get_tmdb_client
from app.routers._helpers import empty_page, parse_movie_id, set_no_store
from app.schemas import GenreListOut, MoviePage

log = logging.getLogger(__name__)

router = APIRouter(tags=["movies"])

# never forwarded to the provider from a client query string
_RESERVED_PARAMS = {"api_key"}
MAX_REGIONS_PAGE_SIZE = 250


def _page_or_empty(data) -> dict:
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return data
    return empty_page()


@router.get("/movies/popular", response_model=MoviePage)
async def popular(page: int = 1, tmdb: TMDBClient = Depends(get_tmdb_client)):
    try:
        return _page_or_empty(await tmdb.get_popular_movies(page=page))
    except Exception as e:
        log.warning("Popular movies unavailable: %s", e)
        return empty_page()


@router.get("/movies/trending", response_model=MoviePage)
async def trending(page: int = 1, tmdb: TMDBClient = Depends(get_tmdb_client)):
    try:
        return _page_or_empty(await tmdb.get_trending_movies(page=page))
    except Exception as e:
        log.warning("Trending movies unavailable: %s", e)
        return empty_page()


@router.get("/movies/top_rated", response_model=MoviePage)
async def top_rated(page: int = 1, tmdb: TMDBClient = Depends(get_tmdb_client)):
    try:
        return _page_or_empty(await tmdb.get_top_rated_movies(page=page))
    except Exception as e:
        log.warning("Top rated movies unavailable: %s", e)
        return empty_page()


@router.get("/movies/search", response_model=MoviePage)
async def search(
    response: Response,
    query: str = "",
    page: int = 1,
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    set_no_store(response)
    if not query.strip():
        return empty_page()
    try:
        return _page_or_empty(await tmdb.search_movies(query.strip(), page=page))
    except Exception as e:
        log.warning("Search failed for %r: %s", query, e)
        return empty_page()


@router.get("/movies/discover", response_model=MoviePage)
async def discover(
    request: Request,
    response: Response,
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    set_no_store(response)
    params = {
        k: v
        for k, v in request.query_params.items()
        if v and k not in _RESERVED_PARAMS
    }
    try:
        return _page_or_empty(await tmdb.discover_movies(**params))
    except Exception as e:
        log.warning("Discover failed for %s: %s", params, e)
        return empty_page()


@router.get("/genres", response_model=GenreListOut)
async def genres(tmdb: TMDBClient = Depends(get_tmdb_client)):
    try:
        data = await tmdb.get_genres()
    except Exception as e:
        log.warning("Genres unavailable: %s", e)
        return {"genres": []}
    return {"genres": (data or {}).get("genres") or []}


@router.get("/regions", response_model=MoviePage)
async def regions(
    page: int = 1,
    limit: int = 50,
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    page = max(page, 1)
    limit = max(1, min(limit, MAX_REGIONS_PAGE_SIZE))
    try:
        data = await tmdb.get_regions(page=page, limit=limit)
    except Exception as e:
        log.warning("Regions unavailable: %s", e)
        data = None
    if not isinstance(data, dict) or not data.get("results"):
        return {**empty_page(), "total_pages": 1}
    return data


@router.get("/movies/{id}/videos")
async def movie_videos(
    id: str,
    response: Response,
    tmdb: TMDBClient = Depends(get_tmdb_client),
):
    movie_id = parse_movie_id(id)
    set_no_store(response)
    try:
        data = await tmdb.get_movie_videos(movie_id)
    except Exception as e:
        log.warning("Videos unavailable for %s: %s", movie_id, e)
        return {"id": movie_id, "results": []}
    return {"id": movie_id, "results": (data or {}).get("results") or []}


# ---- Details (declare LAST so fixed `/movies/...` paths win) ----
@router.get("/movies/{id}")
async def movie_details(id: str, tmdb: TMDBClient = Depends(get_tmdb_client)):
    movie_id = parse_movie_id(id)
    try:
        movie, credits = await asyncio.gather(
            tmdb.get_movie_details(movie_id), tmdb.get_movie_credits(movie_id)
        )
    except TMDBNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Movie not found")
    except Exception:
        log.exception("Movie details failed for %s", movie_id)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )
    if not movie:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Movie not found")
    return {**movie, "credits": credits}
