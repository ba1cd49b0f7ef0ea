from __future__ import annotations

from moviebox_core.errors import NotFound
from moviebox_core.types import StoredMovie, release_year
from moviebox_tmdb.errors import TMDBNotFound

from .movie_repo import SupabaseMovieRepo

MOVIE_NOT_FOUND = "Movie not found"


class MovieService:
    """Keeps a local `movies` row for every TMDB movie a user interacts with."""

    def __init__(self, repo: SupabaseMovieRepo, tmdb):
        self.repo = repo
        self.tmdb = tmdb

    async def get(self, tmdb_id: int) -> StoredMovie | None:
        return await self.repo.get_by_tmdb_id(tmdb_id)

    async def get_or_create(self, tmdb_id: int) -> StoredMovie:
        movie = await self.repo.get_by_tmdb_id(tmdb_id)
        if movie:
            return movie

        try:
            details = await self.tmdb.get_movie_details(tmdb_id)
        except TMDBNotFound:
            raise NotFound(MOVIE_NOT_FOUND)
        if not details:
            raise NotFound(MOVIE_NOT_FOUND)

        created = await self.repo.insert(
            {
                "tmdb_id": tmdb_id,
                "title": details.get("title") or "",
                "year": release_year(details.get("release_date")),
                "metadata": {
                    "poster_path": details.get("poster_path"),
                    "backdrop_path": details.get("backdrop_path"),
                    "vote_average": details.get("vote_average"),
                    "release_date": details.get("release_date"),
                },
            }
        )
        if created:
            return created

        # lost an insert race: read the winner's row
        existing = await self.repo.get_by_tmdb_id(tmdb_id)
        if existing is None:
            raise NotFound(MOVIE_NOT_FOUND)
        return existing
