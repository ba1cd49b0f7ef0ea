import pytest

from moviebox_recommendation.profile_builder import (
    ActivityProfileBuilder,
    average_rating,
    preferred_years,
)

from fakes import FakeActivityRepo, FakeTMDB, interacted, movie


def test_average_rating_defaults_to_seven_without_ratings():
    assert average_rating([]) == 7.0


def test_average_rating_is_exact_mean():
    assert average_rating([6, 8, 10]) == 8.0


def test_preferred_years_keeps_only_years_after_1990():
    liked = [interacted("a", 1, release_date="1985-05-01"), interacted("b", 2, release_date="2015-01-01")]
    rated = [interacted("c", 3, score=8, release_date="1990-12-31"), interacted("d", 4, score=9, release_date="2021-07-04")]
    assert preferred_years(liked, rated) == (2015, 2021)


@pytest.mark.anyio
async def test_two_liked_action_movies_count_genre_twice():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100, genres=[28]), movie(101, genres=[28, 12]))
    repo = FakeActivityRepo(liked=[interacted("a", 100), interacted("b", 101)])

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.liked_genres[28] == 2
    assert profile.liked_genres[12] == 1
    assert profile.average_rating == 7.0
    assert profile.total_ratings == 0
    assert profile.has_activity


@pytest.mark.anyio
async def test_duplicate_movies_across_sets_are_counted_once():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100, genres=[18]))
    same = interacted("a", 100)
    repo = FakeActivityRepo(
        liked=[same],
        rated=[interacted("a", 100, score=9)],
        listed=[same],
    )

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.liked_genres == {18: 1}
    assert tmdb.calls_for("get_movie_details") == [100]


@pytest.mark.anyio
async def test_failed_detail_lookup_drops_only_that_movie():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100, genres=[28]))  # 101 is unknown -> 404
    repo = FakeActivityRepo(liked=[interacted("a", 100), interacted("b", 101)])

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.liked_genres == {28: 1}
    assert profile.liked_movie_ids == frozenset({"a", "b"})


@pytest.mark.anyio
async def test_keywords_are_tallied_and_failures_ignored():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100, genres=[28]), movie(101, genres=[28]))
    tmdb.keywords[100] = [{"id": 1, "name": "heist"}, {"id": 2, "name": "robot"}]
    tmdb.keywords[101] = [{"id": 1, "name": "heist"}]
    tmdb.fail.add("get_movie_keywords:101")
    repo = FakeActivityRepo(liked=[interacted("a", 100), interacted("b", 101)])

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.liked_keywords == {"heist": 1, "robot": 1}


@pytest.mark.anyio
async def test_ratings_dismissals_and_years_flow_into_profile():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100, genres=[35]), movie(200, genres=[35]))
    repo = FakeActivityRepo(
        liked=[interacted("a", 100, release_date="2019-03-01")],
        rated=[
            interacted("b", 200, score=6, release_date="1980-01-01"),
            interacted("c", 300, score=10, release_date="2022-01-01"),
        ],
        dismissed=["z"],
    )

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.average_rating == 8.0
    assert profile.total_ratings == 2
    assert profile.rated_movie_ids == {"b": 6, "c": 10}
    assert profile.dismissed_movie_ids == frozenset({"z"})
    assert profile.preferred_years == (2019, 2022)
    assert profile.is_excluded("z") and profile.is_excluded("b")
    assert not profile.is_excluded("unknown")


@pytest.mark.anyio
async def test_no_activity_profile():
    profile = await ActivityProfileBuilder(FakeActivityRepo(), FakeTMDB()).build_profile("u1")
    assert not profile.has_activity
    assert profile.liked_genres == {}


@pytest.mark.parametrize(
    "release_date, year",
    [("2021-07-04", 2021), ("2021", 2021), ("2021-07", 2021), ("", None), (None, None), ("soon", None)],
)
def test_release_year_accepts_partial_dates(release_date, year):
    from moviebox_core.types import release_year

    assert release_year(release_date) == year


def test_preferred_years_include_year_only_release_dates():
    liked = [interacted("a", 1, release_date="2019")]
    assert preferred_years(liked, []) == (2019,)


@pytest.mark.anyio
async def test_rating_rows_without_score_are_ignored():
    tmdb = FakeTMDB()
    tmdb.add_movies(movie(100), movie(101))
    repo = FakeActivityRepo(
        rated=[interacted("a", 100, score=9), interacted("b", 101, score=None)]
    )

    profile = await ActivityProfileBuilder(repo, tmdb).build_profile("u1")

    assert profile.total_ratings == 1
    assert profile.average_rating == 9.0
    assert dict(profile.rated_movie_ids) == {"a": 9}
    assert [m.movie_id for m in profile.rated_movies] == ["a"]
