import pytest
from fastapi.testclient import TestClient

from fakes import FakeSupabaseClient, FakeTMDB

TEST_USER_ID = "00000000-0000-0000-0000-000000000000"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def fake_tmdb() -> FakeTMDB:
    return FakeTMDB()


@pytest.fixture()
def fake_db() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture()
def test_client(monkeypatch, fake_db, fake_tmdb):
    # No real TMDB/Supabase/Redis during tests
    monkeypatch.setenv("MOVIEBOX_SKIP_CLIENT_INIT", "1")
    monkeypatch.setenv("USE_REDIS_RATE_LIMIT", "false")

    from app.main import app  # type: ignore
    from app.deps.deps import get_tmdb_client  # type: ignore
    from app.deps.supabase_client import (  # type: ignore
        get_current_user_id,
        get_supabase_client,
    )

    app.dependency_overrides[get_supabase_client] = lambda: fake_db
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    app.dependency_overrides[get_tmdb_client] = lambda: fake_tmdb

    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
