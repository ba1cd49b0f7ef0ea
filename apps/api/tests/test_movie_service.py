import pytest

from moviebox_catalog.movie_repo import SupabaseMovieRepo
from moviebox_catalog.movie_service import MovieService
from moviebox_core.errors import NotFound
from moviebox_core.types import StoredMovie

from fakes import FakeSupabaseClient, FakeTMDB, movie


class _RacingRepo:
    """First lookup misses, insert loses the race, second lookup finds the winner."""

    def __init__(self):
        self.lookups = 0

    async def get_by_tmdb_id(self, tmdb_id):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return StoredMovie(id="winner", tmdb_id=tmdb_id, title="Winner")

    async def insert(self, payload):
        return None


@pytest.mark.anyio
async def test_get_or_create_reuses_existing_row():
    db = FakeSupabaseClient({"movies": [{"id": "m1", "tmdb_id": 603, "title": "The Matrix"}]})
    tmdb = FakeTMDB()

    stored = await MovieService(SupabaseMovieRepo(db), tmdb).get_or_create(603)

    assert stored.id == "m1"
    assert tmdb.calls == []


@pytest.mark.anyio
async def test_get_or_create_inserts_from_provider_details():
    db = FakeSupabaseClient()
    tmdb = FakeTMDB()
    tmdb.add_movies({**movie(603, title="The Matrix", release_date="1999-03-31"), "poster_path": "/p.jpg"})

    stored = await MovieService(SupabaseMovieRepo(db), tmdb).get_or_create(603)

    assert stored.tmdb_id == 603 and stored.title == "The Matrix" and stored.year == 1999
    assert stored.metadata["poster_path"] == "/p.jpg"
    assert len(db.rows("movies")) == 1


@pytest.mark.anyio
async def test_get_or_create_rereads_after_losing_insert_race():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(603))
    repo = _RacingRepo()

    stored = await MovieService(repo, tmdb).get_or_create(603)

    assert stored.id == "winner"
    assert repo.lookups == 2


@pytest.mark.anyio
async def test_get_or_create_unknown_movie_is_not_found():
    with pytest.raises(NotFound):
        await MovieService(SupabaseMovieRepo(FakeSupabaseClient()), FakeTMDB()).get_or_create(1)


@pytest.mark.anyio
async def test_repo_insert_duplicate_returns_none():
    db = FakeSupabaseClient({"movies": [{"id": "m1", "tmdb_id": 603, "title": "A"}]})

    created = await SupabaseMovieRepo(db).insert({"tmdb_id": 603, "title": "A"})

    assert created is None
