import pytest
from postgrest.exceptions import APIError

from moviebox_core.errors import (
    Conflict,
    Forbidden,
    InvalidInput,
    NotFound,
    is_unique_violation,
    map_pgrest,
)


@pytest.mark.parametrize(
    "code, expected",
    [("23505", Conflict), ("23503", Conflict), ("42501", Forbidden)],
)
def test_known_postgrest_codes_map_to_domain_errors(code, expected):
    mapped = map_pgrest(APIError({"code": code, "message": "boom"}))
    assert isinstance(mapped, expected)


def test_unknown_postgrest_code_is_returned_unchanged():
    err = APIError({"code": "XX000", "message": "internal"})
    assert map_pgrest(err) is err
    assert not is_unique_violation(err)


def test_unique_violation_detection():
    assert is_unique_violation(APIError({"code": "23505", "message": "dup"}))


def test_domain_errors_render_detail_with_their_status():
    err = NotFound("List not found")
    assert err.status == 404
    assert err.to_body() == {"detail": "List not found"}
    assert InvalidInput("Title is required").status == 400
    # no message falls back to the class name
    assert Conflict().to_body() == {"detail": "Conflict"}
