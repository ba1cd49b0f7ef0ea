"""Shared helpers for movie endpoints."""

import asyncio
from typing import Any, Awaitable, TypeVar

from fastapi import HTTPException, Request, Response, status

from moviebox_core.config import CACHE_CONTROL_NO_STORE
from app.infrastructure.rate_limit.rate_limiter import RateLimiter, rate_limit_key

T = TypeVar("T")

DISCONNECT_POLL_SEC = 0.5
# nginx's "client closed request"
CLIENT_CLOSED_REQUEST = 499


def empty_page() -> dict[str, Any]:
    return {"page": 1, "results": [], "total_pages": 0, "total_results": 0}


def parse_movie_id(raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid movie ID")


def set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = CACHE_CONTROL_NO_STORE
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"


async def enforce_rate_limit(
    request: Request, response: Response, limiter: RateLimiter, user_id: str | None
) -> None:
    """Count one hit; 429 with Retry-After once the window is spent."""
    key = rate_limit_key(user_id, request.headers.get("x-forwarded-for"))
    result = await limiter.hit(key)
    headers = result.headers()
    if not result.success:
        headers["Retry-After"] = str(result.retry_after())
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers=headers,
        )
    response.headers.update(headers)


async def run_until_disconnected(
    request: Request, work: Awaitable[T], poll_sec: float = DISCONNECT_POLL_SEC
) -> T:
    """
    Await `work` as a task while watching the client connection.
    A disconnect cancels the task, and with it every in-flight provider call.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _pending = await asyncio.wait({task}, timeout=poll_sec)
            if task in done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                raise HTTPException(CLIENT_CLOSED_REQUEST, "Client closed request")
    except asyncio.CancelledError:
        task.cancel()
        raise
