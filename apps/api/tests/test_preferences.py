import pytest


def test_preferences_default_to_empty_object(test_client):
    res = test_client.get("/account/preferences")
    assert res.status_code == 200
    assert res.json() == {}


def test_preferences_are_saved_and_replaced(test_client, fake_db):
    res = test_client.patch(
        "/account/preferences",
        json={"language": "en-US", "region": "US", "genres": [28, 12]},
    )
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert test_client.get("/account/preferences").json() == {
        "language": "en-US",
        "region": "US",
        "genres": [28, 12],
    }

    test_client.patch("/account/preferences", json={"language": "fr"})
    assert test_client.get("/account/preferences").json() == {
        "language": "fr",
        "region": None,
        "genres": [],
    }
    assert len(fake_db.rows("user_preferences")) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"language": "e"},
        {"language": "english"},
        {"language": "en", "region": "USA"},
        {"language": "en", "genres": [-1]},
        {"language": "en", "genres": list(range(51))},
    ],
)
def test_invalid_preferences_are_rejected(test_client, fake_db, payload):
    res = test_client.patch("/account/preferences", json=payload)
    assert res.status_code == 422
    assert fake_db.rows("user_preferences") == []
