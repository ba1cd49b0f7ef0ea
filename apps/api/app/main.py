import logging
import os
from contextlib import asynccontextmanager

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from pydantic_settings import BaseSettings, SettingsConfigDict

from moviebox_core.config import TMDB_BASE_URL, TMDB_DEFAULT_LANGUAGE
from moviebox_core.errors import DomainError
from moviebox_tmdb.tmdb_client import TMDBClient
from app.infrastructure.rate_limit.rate_limiter import make_rate_limiter
from .routers import all_routers

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "MovieBox Recommendations API"
    # credentials
    tmdb_api_key: str | None = None
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    # tmdb client
    tmdb_base_url: str = TMDB_BASE_URL
    tmdb_language: str = TMDB_DEFAULT_LANGUAGE
    tmdb_max_connections: int = 15
    tmdb_timeout: float = 10.0
    tmdb_retries: int = 2
    # like/unlike rate limit
    use_redis_rate_limit: bool = False
    redis_url: str | None = None
    like_rate_limit_window_sec: int = 60
    like_rate_limit_max: int = 10
    # env config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def _should_init_clients() -> bool:
    flag = os.getenv("MOVIEBOX_SKIP_CLIENT_INIT", "")
    return flag.strip().lower() not in {"1", "true", "yes"}


def _init_clients(app: FastAPI) -> None:
    settings = app.state.settings
    required = {
        "TMDB_API_KEY": settings.tmdb_api_key,
        "SUPABASE_URL": settings.supabase_url,
        "SUPABASE_API_KEY": settings.supabase_api_key,
    }
    missing = [
        name for name, value in required.items() if not (value and value.strip())
    ]
    if missing:
        raise RuntimeError(
            "Missing API keys in environment: " + ", ".join(sorted(missing))
        )

    app.state.tmdb_client = TMDBClient(
        api_key=settings.tmdb_api_key,
        max_connections=settings.tmdb_max_connections,
        timeout=settings.tmdb_timeout,
        language=settings.tmdb_language,
        retries=settings.tmdb_retries,
        base_url=settings.tmdb_base_url,
    )
    app.state.supabase_url = settings.supabase_url
    app.state.supabase_api_key = settings.supabase_api_key
    log.info("TMDB and Supabase clients initialized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv(find_dotenv(), override=False)

    settings = Settings()
    app.state.settings = settings

    if _should_init_clients():
        _init_clients(app)
    else:
        log.warning("Client initialization skipped by MOVIEBOX_SKIP_CLIENT_INIT")

    app.state.like_rate_limiter = make_rate_limiter(
        use_redis=settings.use_redis_rate_limit,
        redis_url=settings.redis_url,
        limit=settings.like_rate_limit_max,
        window_sec=settings.like_rate_limit_window_sec,
    )

    try:
        yield
    finally:
        tmdb = getattr(app.state, "tmdb_client", None)
        if tmdb is not None:
            await tmdb.aclose()
        limiter_close = getattr(app.state.like_rate_limiter, "aclose", None)
        if limiter_close is not None:
            await limiter_close()


app = FastAPI(title="MovieBox Recommendations API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def _domain_error_handler(_request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status, content=exc.to_body())


def _custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="0.1.0",
        description="MovieBox Recommendations API",
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    for path_item in schema.get("paths", {}).values():
        for operation in path_item.values():
            operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = _custom_openapi


@app.get("/health")
def health():
    s = app.state.settings
    return {"status": "ok", "service": s.app_name}


@app.get("/")
def read_root():
    return {"status": "ok"}


for r in all_routers:
    app.include_router(r)
