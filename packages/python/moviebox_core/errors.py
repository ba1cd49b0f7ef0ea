"""Errors raised by repos and services; the API renders them as `{"detail": message}`."""

from __future__ import annotations

from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError


class DomainError(Exception):
    code: str = "domain_error"
    status: int = 400

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        if status:
            self.status = status

    def to_body(self) -> dict[str, Any]:
        return {"detail": str(self)}


class InvalidInput(DomainError):
    code = "invalid_input"
    status = 400


class NotFound(DomainError):
    code = "not_found"
    status = 404


class Conflict(DomainError):
    code = "conflict"
    status = 409


class Forbidden(DomainError):
    code = "forbidden"
    status = 403


class RuleViolation(DomainError):
    code = "rule_violation"
    status = 422


# 23505 unique_violation, 23503 foreign_key_violation, 42501 insufficient_privilege (RLS)
_PGREST_CODES: dict[str, tuple[type[DomainError], str]] = {
    "23505": (Conflict, "duplicate"),
    "23503": (Conflict, "foreign key violation"),
    "42501": (Forbidden, "permission denied"),
}


def is_unique_violation(e: PostgrestAPIError) -> bool:
    return getattr(e, "code", None) == "23505"


def map_pgrest(e: PostgrestAPIError) -> Exception:
    """Domain error for a known PostgREST code; anything else is returned as-is (500)."""
    known = _PGREST_CODES.get(getattr(e, "code", None) or "")
    if known is None:
        return e
    cls, message = known
    return cls(message)
