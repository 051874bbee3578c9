"""
Test suite for the web server.

Drives the FastAPI app through TestClient with the local session provider,
a recording in-memory store and a mocked AI service.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from break_it_down.backends.local_auth import LocalSessionProvider
from break_it_down.backends.memory_store import InMemoryDatabase
from break_it_down.config import AppConfig
from break_it_down.utils.activity_logger import ActivityLogger
from ui.server import SESSION_COOKIE, create_app
from ui.views import EMPTY_MESSAGE

from .fakes import FakeDataStore

EMAIL = "me@example.com"
PASSWORD = "secret"


class StoreFactory:
    """One FakeDataStore per user over a shared database."""

    def __init__(self):
        self.database = InMemoryDatabase()
        self.stores = {}

    def __call__(self, user, access_token):
        if user.id not in self.stores:
            self.stores[user.id] = FakeDataStore(self.database, user.id)
        return self.stores[user.id]

    @property
    def only(self) -> FakeDataStore:
        (store,) = self.stores.values()
        return store


def build_client(ai_service_url=None, ai_handler=None):
    factory = StoreFactory()
    app = create_app(
        config=AppConfig(ai_service_url=ai_service_url, activity_log_file=None),
        session_provider=LocalSessionProvider({EMAIL: PASSWORD}),
        store_factory=factory,
        activity=ActivityLogger(log_file=None),
        ai_transport=httpx.MockTransport(ai_handler) if ai_handler else None,
    )
    return TestClient(app), factory


def sign_in(client: TestClient):
    response = client.post("/login", data={"email": EMAIL, "password": PASSWORD}, follow_redirects=False)
    assert response.status_code == 303
    return response


@pytest.fixture()
def client_and_factory():
    client, factory = build_client()
    with client:
        yield client, factory


@pytest.fixture()
def client(client_and_factory):
    client, _ = client_and_factory
    sign_in(client)
    return client


class TestPages:
    """Test login, task page and logout."""

    def test_root_redirects_to_app(self, client_and_factory):
        client, _ = client_and_factory
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/app"

    def test_signed_out_app_redirects_to_login(self, client_and_factory):
        client, _ = client_and_factory
        response = client.get("/app", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_bad_credentials(self, client_and_factory):
        client, _ = client_and_factory
        response = client.post("/login", data={"email": EMAIL, "password": "wrong"})
        assert response.status_code == 401
        assert "Invalid login credentials" in response.text
        assert SESSION_COOKIE not in client.cookies

    def test_sign_in_sets_cookie_and_shows_empty_list(self, client_and_factory):
        client, _ = client_and_factory
        response = sign_in(client)
        assert response.headers["location"] == "/app"
        assert client.cookies.get(SESSION_COOKIE)

        page = client.get("/app")
        assert page.status_code == 200
        assert EMPTY_MESSAGE in page.text
        assert "0 total" in page.text
        assert EMAIL in page.text

    def test_login_page_redirects_when_signed_in(self, client):
        response = client.get("/login", follow_redirects=False)
        assert response.headers["location"] == "/app"

    def test_form_actions(self, client):
        client.post("/app/tasks", data={"title": "  Plan trip "})
        task_id = client.get("/api/tasks").json()["tasks"][0]["id"]

        client.post(f"/app/tasks/{task_id}/toggle")
        assert client.get("/api/tasks").json()["tasks"][0]["status"] == "completed"
        assert "Mark active" in client.get("/app").text

        client.post(f"/app/tasks/{task_id}/edit")
        assert f"/app/tasks/{task_id}/edit/save" in client.get("/app").text
        client.post(f"/app/tasks/{task_id}/edit/save", data={"title": "Plan holiday"})
        page = client.get("/app").text
        assert "Plan holiday" in page
        assert "/edit/save" not in page

        client.post(f"/app/tasks/{task_id}/archive")
        assert 'class="title title-archived"' in client.get("/app").text

        client.post(f"/app/tasks/{task_id}/delete")
        assert EMPTY_MESSAGE in client.get("/app").text

    def test_blank_add_keeps_page_unchanged(self, client):
        response = client.post("/app/tasks", data={"title": "   "}, follow_redirects=False)
        assert response.status_code == 303
        assert client.get("/api/tasks").json()["total"] == 0

    def test_edit_cancel(self, client):
        client.post("/app/tasks", data={"title": "Keep"})
        task_id = client.get("/api/tasks").json()["tasks"][0]["id"]
        client.post(f"/app/tasks/{task_id}/edit")
        client.post(f"/app/tasks/{task_id}/edit/cancel")
        assert client.get("/api/tasks").json()["editing"] is None

    def test_failed_add_shows_error_and_keeps_input(self, client_and_factory):
        client, factory = client_and_factory
        sign_in(client)
        client.get("/app")
        factory.only.fail("insert", "row-level security violation")
        client.post("/app/tasks", data={"title": "Buy milk"})
        page = client.get("/app").text
        assert "row-level security violation" in page
        assert 'value="Buy milk"' in page

    def test_logout(self, client_and_factory):
        client, _ = client_and_factory
        sign_in(client)
        client.get("/app")
        response = client.post("/logout", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert not client.cookies.get(SESSION_COOKIE)
        assert len(client.app.state.registry) == 0
        assert client.get("/app", follow_redirects=False).headers["location"] == "/login"


class TestTaskApi:
    """Test the JSON task API."""

    def test_requires_sign_in(self, client_and_factory):
        client, _ = client_and_factory
        assert client.get("/api/tasks").status_code == 401
        assert client.post("/api/tasks", json={"title": "x"}).status_code == 401

    def test_create_and_list(self, client):
        response = client.post("/api/tasks", json={"title": "Buy milk"})
        assert response.status_code == 200
        body = response.json()
        assert body["outcome"] == "applied"
        assert body["tasks"][0]["title"] == "Buy milk"
        assert body["tasks"][0]["status"] == "active"

        listing = client.get("/api/tasks").json()
        assert listing["user"]["email"] == EMAIL
        assert listing["total"] == 1

    def test_blank_title_conflict(self, client):
        response = client.post("/api/tasks", json={"title": "  "})
        assert response.status_code == 409
        assert response.json()["outcome"] == "rejected"

    def test_unknown_task(self, client):
        assert client.patch("/api/tasks/missing", json={"title": "x"}).status_code == 404
        assert client.post("/api/tasks/missing/toggle").status_code == 404
        assert client.delete("/api/tasks/missing").status_code == 404

    def test_status_lifecycle(self, client):
        task_id = client.post("/api/tasks", json={"title": "Lifecycle"}).json()["tasks"][0]["id"]

        toggled = client.post(f"/api/tasks/{task_id}/toggle").json()
        assert toggled["tasks"][0]["status"] == "completed"

        archived = client.post(f"/api/tasks/{task_id}/archive").json()
        assert archived["tasks"][0]["status"] == "archived"

        assert client.post(f"/api/tasks/{task_id}/toggle").status_code == 409
        assert client.patch(f"/api/tasks/{task_id}", json={"status": "active"}).status_code == 409

        deleted = client.delete(f"/api/tasks/{task_id}")
        assert deleted.status_code == 200
        assert deleted.json()["total"] == 0

    def test_patch_title(self, client):
        task_id = client.post("/api/tasks", json={"title": "Old"}).json()["tasks"][0]["id"]
        response = client.patch(f"/api/tasks/{task_id}", json={"title": "New"})
        assert response.status_code == 200
        assert response.json()["tasks"][0]["title"] == "New"

    def test_invalid_status_value(self, client):
        task_id = client.post("/api/tasks", json={"title": "x"}).json()["tasks"][0]["id"]
        assert client.patch(f"/api/tasks/{task_id}", json={"status": "paused"}).status_code == 422

    def test_store_failure_is_bad_gateway(self, client_and_factory):
        client, factory = client_and_factory
        sign_in(client)
        task_id = client.post("/api/tasks", json={"title": "x"}).json()["tasks"][0]["id"]
        factory.only.fail("delete", "backend offline")
        response = client.delete(f"/api/tasks/{task_id}")
        assert response.status_code == 502
        assert response.json()["error"] == "backend offline"
        assert response.json()["total"] == 1

    def test_reload(self, client_and_factory):
        client, factory = client_and_factory
        sign_in(client)
        client.get("/api/tasks")
        factory.only.inner.database.tables["tasks"].clear()
        assert client.get("/api/tasks").json()["total"] == 0
        client.post("/api/tasks", json={"title": "fresh"})
        factory.only.inner.database.tables["tasks"].clear()
        assert client.get("/api/tasks").json()["total"] == 1
        assert client.get("/api/tasks", params={"reload": "true"}).json()["total"] == 0


class TestDiagnostics:
    """Test the AI health probe route and the activity log route."""

    def test_ai_unconfigured(self):
        client, _ = build_client()
        with client:
            response = client.get("/api/debug/ai")
        assert response.status_code == 500
        assert response.json() == {"error": "AI service URL is not configured."}

    def test_ai_upstream_ok(self):
        client, _ = build_client(
            ai_service_url="https://ai.example.com/",
            ai_handler=lambda request: httpx.Response(200, text="steps"),
        )
        with client:
            response = client.get("/api/debug/ai")
        assert response.status_code == 200
        assert response.json() == {"status": 200, "ok": True, "body": "steps"}

    def test_ai_upstream_down(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused")

        client, _ = build_client(ai_service_url="https://ai.example.com", ai_handler=refuse)
        with client:
            response = client.get("/api/debug/ai")
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to reach AI service."

    def test_recent_logs(self, client):
        client.post("/api/tasks", json={"title": "logged"})
        body = client.get("/api/logs/recent", params={"category": "task"}).json()
        assert body["total"] >= 1
        assert body["logs"][0]["metadata"]["title"] == "logged"

    def test_log_health(self, client_and_factory):
        client, _ = client_and_factory
        summary = client.get("/api/logs/health").json()
        assert summary["health_status"] == "healthy"
        assert summary["error_count"] == 0
