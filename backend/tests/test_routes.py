import pytest
from fastapi.testclient import TestClient

from cartplanner.api import routes_checklist
from cartplanner.api.deps import offer_fetcher
from cartplanner.core.config import settings
from cartplanner.core.gemini import GeminiRateLimitError
from cartplanner.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def use_fetcher(fake_fetcher):
    def _install(offers, **kw):
        fetch = fake_fetcher(offers, **kw)
        app.dependency_overrides[offer_fetcher] = lambda: fetch
        return fetch

    return _install


def test_health_and_version(client):
    assert client.get("/health").json() == {"ok": True}
    body = client.get("/version").json()
    assert body["version"] == settings.APP_VERSION


def test_search_products_happy_path(client, use_fetcher):
    use_fetcher(
        {
            "Paint": [
                {"title": "paint a", "price": "$5.00", "source": "A"},
                {"title": "paint b", "price": "$8.00", "source": "B"},
            ],
            "Brush": [{"title": "brush b", "price": "$3.00", "source": "B"}],
        }
    )
    r = client.post(
        "/v1/search-products",
        json={"items": [{"name": "Paint", "priority": "Essential"}, {"name": "Brush"}], "notes": "exterior"},
    )
    assert r.status_code == 200
    body = r.json()

    assert body["success"] is True
    assert body["timestamp"]
    assert [res["itemName"] for res in body["results"]] == ["Paint", "Brush"]
    assert body["results"][0]["itemDetails"]["priority"] == "essential"
    assert [o["price"] for o in body["results"][0]["allOffers"]] == [5.0, 8.0]

    bundles = body["bundles"]
    assert [(b["retailer"], b["itemCount"], b["totalPrice"], b["completeness"]) for b in bundles] == [
        ("B", 2, 11.0, 100),
        ("A", 1, 5.0, 50),
    ]
    assert bundles[0]["items"][0]["itemName"] == "Paint"
    assert bundles[0]["items"][0]["offer"]["source"] == "B"


def test_search_products_partial_failure_still_succeeds(client, use_fetcher):
    use_fetcher({"Drill": RuntimeError("Serper API error: 500"), "Saw": [{"title": "s", "price": "$9", "source": "A"}]})
    r = client.post("/v1/search-products", json={"items": [{"name": "Drill"}, {"name": "Saw"}]})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["results"][0]["error"] == "Serper API error: 500"
    assert body["results"][0]["allOffers"] == []
    assert body["bundles"][0]["completeness"] == 100


def test_search_products_no_offers_anywhere(client, use_fetcher):
    use_fetcher({})
    r = client.post("/v1/search-products", json={"items": [{"name": "Unobtainium"}]})
    assert r.status_code == 200
    assert r.json()["bundles"] == []


@pytest.mark.parametrize("payload", [{}, {"items": []}, {"items": None}])
def test_search_products_requires_items(client, use_fetcher, payload):
    fetch = use_fetcher({})
    r = client.post("/v1/search-products", json=payload)
    assert r.status_code == 400
    assert r.json()["detail"] == "Items array is required"
    assert fetch.queries == []


def test_search_products_without_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "SERPAPI_API_KEY", "")
    monkeypatch.delenv("SERPAPI_API_KEY", raising=False)
    r = client.post("/v1/search-products", json={"items": [{"name": "Saw"}]})
    assert r.status_code == 500
    assert "not configured" in r.json()["detail"]


def test_generate_checklist(client, monkeypatch):
    async def fake_generate(project_query):
        assert project_query == "backyard bar"
        return [
            {"name": "Bar stools", "category": "furniture", "priority": "essential", "quantity": 4, "notes": ""},
            {"name": "   ", "category": "junk"},
            {"name": "String lights", "category": "lighting", "priority": "optional", "quantity": "1 set"},
        ]

    monkeypatch.setattr(routes_checklist, "generate_checklist", fake_generate)
    r = client.post("/v1/generate-checklist", json={"projectQuery": "  backyard bar "})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["projectQuery"] == "backyard bar"
    assert [i["name"] for i in body["checklist"]] == ["Bar stools", "String lights"]
    assert body["checklist"][0]["quantity"] == "4"


def test_generate_checklist_requires_query(client):
    r = client.post("/v1/generate-checklist", json={"projectQuery": ""})
    assert r.status_code == 400


def test_generate_checklist_rate_limited(client, monkeypatch):
    async def fake_generate(project_query):
        raise GeminiRateLimitError("Gemini request: rate limited", retry_after_seconds=7)

    monkeypatch.setattr(routes_checklist, "generate_checklist", fake_generate)
    r = client.post("/v1/generate-checklist", json={"projectQuery": "treehouse"})

    assert r.status_code == 429
    assert r.headers["retry-after"] == "7"
    assert r.json()["detail"]["error"] == "rate_limited"


def test_generate_checklist_unparseable_output(client, monkeypatch):
    async def fake_generate(project_query):
        raise ValueError("Could not parse checklist from AI response")

    monkeypatch.setattr(routes_checklist, "generate_checklist", fake_generate)
    r = client.post("/v1/generate-checklist", json={"projectQuery": "treehouse"})
    assert r.status_code == 422
