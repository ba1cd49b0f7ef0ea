import httpx
import pytest

from moviebox_tmdb.errors import TMDBAuthError, TMDBError, TMDBNotFound, TMDBRateLimited
from moviebox_tmdb.tmdb_client import TMDBClient


def _client(handler, **kwargs) -> TMDBClient:
    return TMDBClient(
        "test-key",
        backoff_base=0,
        base_url="https://tmdb.test/3",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.anyio
async def test_details_are_normalized_with_genre_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/movie/603"
        assert request.url.params["api_key"] == "test-key"
        assert request.url.params["language"] == "en-US"
        return httpx.Response(
            200,
            json={"id": 603, "title": "The Matrix", "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}]},
        )

    client = _client(handler)
    movie = await client.get_movie_details(603)
    await client.aclose()

    assert movie["genre_ids"] == [28, 878]


@pytest.mark.anyio
async def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, json={"page": 1, "results": []})

    client = _client(handler, retries=2)
    data = await client.get_popular_movies()
    await client.aclose()

    assert data["results"] == []
    assert len(calls) == 3


@pytest.mark.anyio
async def test_gives_up_after_retries_exhausted():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429)

    client = _client(handler, retries=2)
    with pytest.raises(TMDBRateLimited):
        await client.get_popular_movies()
    await client.aclose()

    assert len(calls) == 3


@pytest.mark.anyio
async def test_not_found_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"status_message": "not found"})

    client = _client(handler)
    with pytest.raises(TMDBNotFound):
        await client.get_movie_details(1)
    await client.aclose()

    assert len(calls) == 1


@pytest.mark.anyio
async def test_auth_error_is_typed():
    client = _client(lambda request: httpx.Response(401))
    with pytest.raises(TMDBAuthError) as exc:
        await client.get_genres()
    await client.aclose()

    assert exc.value.status_code == 401


@pytest.mark.anyio
async def test_transport_error_becomes_tmdb_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    client = _client(handler)
    with pytest.raises(TMDBError):
        await client.get_trending_movies()
    await client.aclose()


@pytest.mark.anyio
async def test_discover_by_genre_query_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(200, json={"page": 2, "results": []})

    client = _client(handler)
    await client.discover_by_genre(28, page=2)
    await client.aclose()

    assert seen["path"] == "/3/discover/movie"
    assert seen["with_genres"] == "28"
    assert seen["sort_by"] == "popularity.desc"
    assert seen["page"] == "2"
    assert seen["include_adult"] == "false"


@pytest.mark.anyio
async def test_keywords_returns_list():
    client = _client(
        lambda request: httpx.Response(
            200, json={"id": 5, "keywords": [{"id": 1, "name": "heist"}]}
        )
    )
    keywords = await client.get_movie_keywords(5)
    await client.aclose()

    assert keywords == [{"id": 1, "name": "heist"}]


@pytest.mark.anyio
async def test_fetch_all_movie_details_marks_failures_as_none():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/2"):
            return httpx.Response(404)
        return httpx.Response(200, json={"id": 1, "genres": []})

    client = _client(handler)
    out = await client.fetch_all_movie_details([1, 2])
    await client.aclose()

    assert out[0]["id"] == 1
    assert out[1] is None


@pytest.mark.anyio
async def test_regions_are_paged_locally():
    countries = [{"iso_3166_1": f"C{i}", "english_name": f"Country {i}"} for i in range(5)]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/configuration/countries"
        return httpx.Response(200, json=countries)

    client = _client(handler)
    page = await client.get_regions(page=2, limit=2)
    await client.aclose()

    assert [r["iso_3166_1"] for r in page["results"]] == ["C2", "C3"]
    assert page["page"] == 2
    assert page["total_pages"] == 3
    assert page["total_results"] == 5
