import pytest
from fastapi.testclient import TestClient

from brandpulse.core.aggregator import MentionAggregator
from brandpulse.main import app

from helpers import FakeAdapter, make_mention


@pytest.fixture
def adapters():
    return [
        FakeAdapter("Reddit", [make_mention(source="Reddit", content_hash="r1", upvotes=150, high=True)]),
        FakeAdapter("TikTok", "TikTok not configured (missing API key or Search Engine ID)"),
        FakeAdapter("Allure", [make_mention(source="Allure", content_hash="a1")], source_type="blog"),
    ]


@pytest.fixture
def client(adapters, cache):
    app.state.aggregator = MentionAggregator(adapters, cache, batch_delay=0)
    with TestClient(app) as test_client:
        yield test_client
    app.state.aggregator = None


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "brand-mention-api"


def test_list_sources(client):
    response = client.get("/sources")
    assert response.status_code == 200
    assert [s["name"] for s in response.json()] == ["Reddit", "TikTok", "Allure"]


def test_mentions_with_partial_failure(client):
    response = client.get("/mentions", params={"brand": "Revlon", "terms": "lipstick,mascara"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["brand"] == "Revlon"
    assert body["total_mentions"] == 2
    assert body["by_source"] == {"Reddit": 1, "TikTok": 0, "Allure": 1}
    assert body["source_status"] == {"Reddit": "live", "TikTok": "empty", "Allure": "live"}
    assert body["errors"] == ["TikTok: TikTok not configured (missing API key or Search Engine ID)"]
    assert body["mentions"][0]["source"] == "Reddit"
    assert body["mentions"][0]["engagement"]["upvotes"] == 150
    assert body["mentions"][0]["sentiment"] is None


def test_mentions_passes_terms_and_brand(client, adapters):
    client.get("/mentions", params={"brand": "Revlon", "terms": "lipstick, mascara"})
    assert adapters[0].last_terms == ["lipstick", "mascara", "Revlon"]


def test_mentions_default_terms(client, adapters):
    client.get("/mentions", params={"brand": "Revlon"})
    assert adapters[0].last_terms[-1] == "Revlon"
    assert len(adapters[0].last_terms) > 1


def test_mentions_source_filter(client, adapters):
    response = client.get("/mentions", params={"brand": "Revlon", "sources": "allure"})
    assert response.json()["by_source"] == {"Allure": 1}
    assert adapters[0].calls == 0


def test_mentions_unknown_source_is_bad_request(client):
    response = client.get("/mentions", params={"brand": "Revlon", "sources": "Myspace"})
    assert response.status_code == 400


def test_mentions_requires_brand(client):
    assert client.get("/mentions").status_code == 422


def test_mentions_limit(client):
    body = client.get("/mentions", params={"brand": "Revlon", "limit": 1}).json()
    assert body["total_mentions"] == 2
    assert len(body["mentions"]) == 1


def test_refresh_source(client, adapters):
    client.get("/mentions", params={"brand": "Revlon"})
    response = client.post("/sources/reddit/refresh", json={"brand": "Revlon"})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "Reddit"
    assert body["outcome"] == "live"
    assert adapters[0].calls == 2


def test_refresh_unknown_source(client):
    response = client.post("/sources/Myspace/refresh", json={"brand": "Revlon"})
    assert response.status_code == 404


def test_cache_stats(client):
    client.get("/mentions", params={"brand": "Revlon"})
    body = client.get("/cache").json()

    assert body["entries"] == 2
    assert sorted(body["keys"]) == ["allure_revlon", "reddit_revlon"]
    assert body["ages"]["reddit_revlon"] == "0m ago"
