from unittest.mock import patch

from moviemonday.utils.rate_limiter import RateLimiter


def test_allows_up_to_limit_then_blocks():
    limiter = RateLimiter()

    assert all(limiter.is_allowed("auth", "ip:1.2.3.4", 3, 60) for _ in range(3))
    assert limiter.is_allowed("auth", "ip:1.2.3.4", 3, 60) is False


def test_buckets_and_keys_are_independent():
    limiter = RateLimiter()
    limiter.is_allowed("comment", "user:1", 1, 60)

    assert limiter.is_allowed("comment", "user:1", 1, 60) is False
    assert limiter.is_allowed("comment", "user:2", 1, 60) is True
    assert limiter.is_allowed("vote", "user:1", 1, 60) is True


def test_window_slides():
    limiter = RateLimiter()

    with patch("moviemonday.utils.rate_limiter.time.monotonic", return_value=100.0):
        assert limiter.is_allowed("vote", "user:1", 1, 10)
        assert not limiter.is_allowed("vote", "user:1", 1, 10)

    with patch("moviemonday.utils.rate_limiter.time.monotonic", return_value=110.5):
        assert limiter.is_allowed("vote", "user:1", 1, 10)


def test_reset_clears_every_window():
    limiter = RateLimiter()
    limiter.is_allowed("auth", "ip:x", 1, 60)
    limiter.reset()

    assert limiter.is_allowed("auth", "ip:x", 1, 60)


def test_auth_endpoints_return_429(client, app, db_session):
    app.state.settings.AUTH_RATE_LIMIT = 2
    payload = {"username": "nobody", "password": "whatever"}

    assert client.post("/auth/login", json=payload).status_code == 401
    assert client.post("/auth/login", json=payload).status_code == 401

    response = client.post("/auth/login", json=payload)
    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests, please try again later"

    # Other buckets are untouched
    assert client.get("/api/statistics").status_code == 200


def test_comment_limit_is_per_user(client, app, user_factory, auth_headers):
    app.state.settings.COMMENT_RATE_LIMIT = 1
    alice = user_factory("alice")
    bob = user_factory("bob")
    url = "/api/comments/content/movie/550"
    payload = {"content": "First thoughts on this one"}

    assert client.post(url, json=payload, headers=auth_headers(alice)).status_code == 201
    response = client.post(url, json=payload, headers=auth_headers(alice))
    assert response.status_code == 429
    assert response.json()["detail"] == "Please wait a moment before posting another comment"

    assert client.post(url, json=payload, headers=auth_headers(bob)).status_code == 201
