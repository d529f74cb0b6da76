from tixport import config, rate_limit
from tixport.rate_limit import RateLimiter

EVENTS = {"events": [], "total_entries": 0}


async def test_rate_limiter_hit_and_miss():
    """First request allowed, second blocked for same IP."""
    limiter = RateLimiter(1, 60)

    allowed, remaining, _ = await limiter.is_allowed("1.1.1.1")
    assert allowed
    assert remaining == 0

    allowed, _, retry_after = await limiter.is_allowed("1.1.1.1")
    assert not allowed
    assert 0 < retry_after <= 60

    allowed, _, _ = await limiter.is_allowed("2.2.2.2")
    assert allowed


async def test_rate_limiter_window_expires():
    limiter = RateLimiter(1, 60)

    assert (await limiter.is_allowed("1.1.1.1"))[0]
    assert not (await limiter.is_allowed("1.1.1.1"))[0]

    limiter.history["1.1.1.1"][0] -= 61
    assert (await limiter.is_allowed("1.1.1.1"))[0]


def test_search_limit_respects_forwarded_for_header(client, upstream, monkeypatch):
    """The search limiter keys clients by X-Forwarded-For."""
    monkeypatch.setattr(config, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limit, "search_limiter", RateLimiter(1, 60))
    upstream.add("/v9/events", EVENTS)

    resp1 = client.get("/api/events", headers={"X-Forwarded-For": "1.1.1.1"})
    assert resp1.status_code == 200

    resp2 = client.get("/api/events", headers={"X-Forwarded-For": "1.1.1.1"})
    assert resp2.status_code == 429
    assert resp2.headers["X-RateLimit-Remaining"] == "0"
    assert int(resp2.headers["Retry-After"]) >= 1

    resp3 = client.get("/api/events", headers={"X-Forwarded-For": "2.2.2.2"})
    assert resp3.status_code == 200


def test_general_limit_applies_to_other_api_routes(client, upstream, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limit, "general_limiter", RateLimiter(1, 60))
    monkeypatch.setattr(rate_limit, "search_limiter", RateLimiter(100, 60))
    upstream.add("/v9/events", EVENTS)
    headers = {"X-Forwarded-For": "3.3.3.3"}

    assert client.get("/api/health", headers=headers).status_code == 200
    assert client.get("/api/health", headers=headers).status_code == 429
    assert client.get("/api/events", headers=headers).status_code == 200
    assert client.get("/health", headers=headers).status_code in {200, 503}


def test_rate_limit_disabled_by_configuration(client, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(rate_limit, "general_limiter", RateLimiter(1, 60))

    for _ in range(3):
        assert client.get("/api/health").status_code == 200
