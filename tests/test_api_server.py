"""
HTTP relay contract tests.

The relay runs against an in-memory automation double, so no browser is
started; what is checked is the wire contract the panel and client rely on.
"""

import pytest
from fastapi.testclient import TestClient

from perplexity_web.api_server import create_api_server
from perplexity_web.automation import SearchOptions, SearchResult, Source
from perplexity_web.config import AutomationConfig


class FakeAutomation:
    def __init__(self, config, search_error=None, init_error=None):
        self.config = config
        self.search_error = search_error
        self.init_error = init_error
        self.searches = []
        self.reinitialized = 0
        self.closed = 0

    async def search(self, query, options=None):
        self.searches.append((query, options))
        if self.search_error is not None:
            raise self.search_error
        return SearchResult.ok("42", [Source(title="Guide", url="https://example.com/guide")])

    async def reinitialize(self):
        self.reinitialized += 1
        if self.init_error is not None:
            raise self.init_error

    async def close(self):
        self.closed += 1


@pytest.fixture
def fake(tmp_path):
    return FakeAutomation(AutomationConfig(screenshots_dir=str(tmp_path / "shots")))


@pytest.fixture
def client(fake):
    return TestClient(create_api_server(fake))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "perplexity-mcp-server"}


def test_search(client, fake):
    response = client.post("/search", json={"query": "meaning of life", "mode": "deep"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "answer": "42",
        "sources": [{"title": "Guide", "url": "https://example.com/guide"}],
    }
    assert fake.searches == [("meaning of life", SearchOptions(mode="deep"))]


def test_search_defaults_to_concise(client, fake):
    client.post("/search", json={"query": "hi"})
    assert fake.searches[0][1].mode == "concise"


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "  "}, {"query": None}])
def test_search_requires_query(client, fake, body):
    response = client.post("/search", json=body)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Query is required"}
    assert fake.searches == []


def test_search_rejects_unknown_mode(client, fake):
    response = client.post("/search", json={"query": "hi", "mode": "turbo"})
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert fake.searches == []


def test_search_failure_result_passes_through(tmp_path):
    class Failing(FakeAutomation):
        async def search(self, query, options=None):
            return SearchResult.failure("Search input not found")

    client = TestClient(create_api_server(Failing(AutomationConfig())))
    response = client.post("/search", json={"query": "hi"})
    assert response.status_code == 200
    assert response.json() == {"success": False, "sources": [], "error": "Search input not found"}


def test_search_exception_is_500(tmp_path):
    fake = FakeAutomation(AutomationConfig(), search_error=RuntimeError("boom"))
    response = TestClient(create_api_server(fake)).post("/search", json={"query": "hi"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "boom"}


def test_init(client, fake):
    response = client.post("/init", json={})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Session initialized"}
    assert fake.reinitialized == 1


def test_init_failure_is_500():
    fake = FakeAutomation(AutomationConfig(), init_error=RuntimeError("Executable doesn't exist"))
    response = TestClient(create_api_server(fake)).post("/init", json={})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Executable doesn't exist"}


def test_debug_screenshots(client, fake, tmp_path):
    assert client.get("/debug/screenshots").json() == {"screenshots": []}
    shots = tmp_path / "shots"
    shots.mkdir()
    (shots / "20240101-000000-000000-error.png").write_bytes(b"")
    assert client.get("/debug/screenshots").json() == {
        "screenshots": ["20240101-000000-000000-error.png"]
    }


def test_shutdown_closes_session(fake):
    with TestClient(create_api_server(fake)) as client:
        client.get("/health")
    assert fake.closed == 1


def test_shutdown_can_leave_session_open(fake):
    with TestClient(create_api_server(fake, close_on_shutdown=False)):
        pass
    assert fake.closed == 0


def test_empty_query_never_navigates(automation, browser):
    client = TestClient(create_api_server(automation, close_on_shutdown=False))
    response = client.post("/search", json={"query": ""})
    assert response.status_code == 400
    assert browser.page.gotos == []
