import pytest

from moviebox_recommendation.aggregator import (
    FALLBACK_REASON,
    RecommendationAggregator,
    merge_max_score,
)
from moviebox_recommendation.types import StrategyResult

from fakes import FakeActivityRepo, FakeTMDB, interacted, make_profile, movie


def _result(name, *entries):
    r = StrategyResult(name)
    for tmdb_id, score, reason in entries:
        r.add(tmdb_id, score, reason)
    return r


def test_merge_keeps_max_score_not_sum():
    merged = merge_max_score(
        [
            _result("a", (1, 12.0, "first")),
            _result("b", (1, 15.0, "second")),
            _result("c", (1, 4.0, "third")),
        ]
    )
    assert merged[1].score == 15.0
    assert merged[1].reason == "second"


def test_merge_tie_keeps_earlier_reason():
    merged = merge_max_score(
        [_result("a", (1, 10.0, "earlier")), _result("b", (1, 10.0, "later"))]
    )
    assert merged[1].reason == "earlier"


def test_merge_within_one_strategy_is_max_wins():
    merged = merge_max_score([_result("a", (1, 14.0, "Action"), (1, 11.0, "Drama"))])
    assert merged[1].score == 14.0
    assert merged[1].reason == "Action"


@pytest.mark.anyio
async def test_aggregate_sorts_descending_and_truncates():
    tmdb = FakeTMDB()
    tmdb.genre_pages[28] = [
        movie(i, genres=[28], popularity=i * 10) for i in range(1, 31)
    ]
    profile = make_profile(liked_genres={28: 1}, liked=["x"])
    agg = RecommendationAggregator(tmdb, FakeActivityRepo())

    ranked = await agg.aggregate(profile, limit=5, page=1, current_year=2026)

    assert len(ranked) == 5
    scores = [c.score for c in ranked]
    assert scores == sorted(scores, reverse=True)
    assert ranked[0].tmdb_id == 30


@pytest.mark.anyio
async def test_aggregate_excludes_liked_rated_and_dismissed():
    tmdb = FakeTMDB()
    tmdb.genre_pages[28] = [movie(i, genres=[28], popularity=10) for i in (1, 2, 3, 4, 5)]
    repo = FakeActivityRepo(local_ids={1: "L1", 2: "L2", 3: "L3", 4: "L4"})
    profile = make_profile(
        liked_genres={28: 1},
        liked=["L1"],
        rated={"L2": 8},
        dismissed=["L3"],
    )

    ranked = await RecommendationAggregator(tmdb, repo).aggregate(
        profile, limit=20, page=1, current_year=2026
    )

    ids = {c.tmdb_id for c in ranked}
    # 4 is stored locally but not interacted with; 5 was never stored
    assert ids == {4, 5}
    for c in ranked:
        local = repo.local_ids.get(c.tmdb_id)
        assert local is None or not profile.is_excluded(local)


@pytest.mark.anyio
async def test_genre_failure_still_returns_other_genre_candidates():
    tmdb = FakeTMDB()
    tmdb.fail.add("discover_by_genre:28")
    tmdb.genre_pages[12] = [movie(50, genres=[12], popularity=20)]
    profile = make_profile(liked_genres={28: 2, 12: 1}, liked=["x"])

    ranked = await RecommendationAggregator(tmdb, FakeActivityRepo()).aggregate(
        profile, limit=20, page=1, current_year=2026
    )

    assert 50 in {c.tmdb_id for c in ranked}


@pytest.mark.anyio
async def test_fallback_to_popular_when_no_strategy_nominates():
    tmdb = FakeTMDB()
    tmdb.popular = [movie(i, popularity=100 * i) for i in (1, 2, 3, 4)]
    # rated low, no genres known: no strategy produces anything
    rated = [interacted("r1", 900, score=3)]
    profile = make_profile(rated={"r1": 3}, rated_movies=rated)

    ranked = await RecommendationAggregator(tmdb, FakeActivityRepo()).aggregate(
        profile, limit=3, page=1, current_year=2026
    )

    assert [c.tmdb_id for c in ranked] == [3, 2, 1]
    assert all(c.reason == FALLBACK_REASON for c in ranked)
    assert ranked[0].score == pytest.approx(3.0)


@pytest.mark.anyio
async def test_fallback_failure_yields_empty_list():
    tmdb = FakeTMDB()
    tmdb.fail.add("get_popular_movies")
    profile = make_profile(rated={"r1": 3}, rated_movies=[interacted("r1", 900, score=3)])

    ranked = await RecommendationAggregator(tmdb, FakeActivityRepo()).aggregate(
        profile, limit=3, page=1, current_year=2026
    )

    assert ranked == []


@pytest.mark.anyio
async def test_earlier_strategy_wins_ties_across_strategies():
    tmdb = FakeTMDB()
    # genre-affinity: 10 (target) + 0 + 2 (popularity 200) = 12
    tmdb.genre_pages[28] = [movie(7, genres=[28], popularity=200, vote_average=0)]
    # genre-popularity: 6 (one match) + 4 (popularity 200/50) + 0 = 10 -> lower, ignored
    tmdb.popular = [movie(7, genres=[28], popularity=200, vote_average=0)]
    profile = make_profile(liked_genres={28: 1}, liked=["x"])

    ranked = await RecommendationAggregator(tmdb, FakeActivityRepo()).aggregate(
        profile, limit=10, page=1, current_year=2026
    )

    assert len(ranked) == 1
    assert ranked[0].reason == "Similar to your favorite Action movies"
    assert ranked[0].score == pytest.approx(12.0)


@pytest.mark.anyio
async def test_strategies_report_in_fixed_order():
    from moviebox_recommendation.strategies import STRATEGY_ORDER

    profile = make_profile(liked_genres={28: 1}, preferred_years=[2020], liked=["x"])
    agg = RecommendationAggregator(FakeTMDB(), FakeActivityRepo())

    results = await agg.run_strategies(profile, page=1, current_year=2026)

    assert tuple(r.name for r in results) == STRATEGY_ORDER
