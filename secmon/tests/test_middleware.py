"""
Tests for the request guard over HTTP: 429 / 423 short-circuits, recorder
hooks, admin endpoints.  TestClient connects from the address "testclient".
"""
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from secmon.app import create_app
from secmon.events import BLOCKED_IP_ACCESS, LOCKED_USER_ACCESS, RequestContext
from secmon.middleware import ACCOUNT_LOCKED, ADDRESS_BLOCKED, Principal, RequestGuard

CLIENT_IP = "testclient"


def _identify(request: Request):
    user_id = request.headers.get("x-user-id")
    if user_id is None:
        return None
    return Principal(user_id, request.headers.get("x-user-role"))


@pytest.fixture
def app(monitor):
    app = create_app(monitor, identify=_identify)

    @app.post("/api/auth/login")
    def login(request: Request, payload: dict):
        request.state.security.record_failed_auth("invalid_password",
                                                  payload.get("email"))
        return {"success": False}

    @app.delete("/api/admin/users/{user_id}")
    def delete_user(user_id: str, request: Request):
        request.state.security.record_unauthorized_access("admin", "delete_user")
        return {"success": False}

    @app.post("/api/orders")
    def create_order(request: Request, payload: dict):
        request.state.security.record_suspicious_order("excessive_order_frequency", payload)
        return {"success": True}

    @app.get("/api/menu")
    def menu(request: Request):
        request.state.security.record_event("menu_view", {"page": 1})
        return {"items": []}

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _fail_login(client, times, email="victim@example.com"):
    for _ in range(times):
        client.post("/api/auth/login", json={"email": email})


# ---------------------------------------------------------------------------
# Blocking
# ---------------------------------------------------------------------------

class TestAddressBlocking:
    def test_fifth_failure_then_429(self, client, monitor):
        _fail_login(client, 5)
        assert monitor.is_ip_blocked(CLIENT_IP)

        r = client.get("/api/menu")
        assert r.status_code == 429
        assert r.json() == {
            "success": False,
            "error": "Access temporarily blocked",
            "message": "Too many failed attempts. Please try again later.",
        }

    def test_blocked_request_is_recorded_and_handler_skipped(self, client, monitor):
        _fail_login(client, 5)
        client.get("/api/menu")
        types = [e.event_type for e in monitor.events.since(0)]
        assert types.count(BLOCKED_IP_ACCESS) == 1
        assert "menu_view" not in types

    def test_unblocks_after_cooling_period(self, client, monitor, clock):
        _fail_login(client, 5)
        clock.advance(300)
        assert client.get("/api/menu").status_code == 200


class TestAccountLocking:
    def test_locked_account_gets_423(self, client, monitor):
        _fail_login(client, 5, email="42")
        monitor.reset_address_attempts(CLIENT_IP)

        r = client.get("/api/menu", headers={"x-user-id": "42"})
        assert r.status_code == 423
        assert r.json()["error"] == "Account temporarily locked"
        assert monitor.events.since(0)[-1].event_type == LOCKED_USER_ACCESS

    def test_other_accounts_unaffected(self, client, monitor):
        _fail_login(client, 5, email="42")
        monitor.reset_address_attempts(CLIENT_IP)
        assert client.get("/api/menu", headers={"x-user-id": "43"}).status_code == 200

    def test_anonymous_request_skips_account_check(self, client, monitor):
        _fail_login(client, 5, email="42")
        monitor.reset_address_attempts(CLIENT_IP)
        assert client.get("/api/menu").status_code == 200


# ---------------------------------------------------------------------------
# Recorder hooks
# ---------------------------------------------------------------------------

class TestRecorderHooks:
    def test_generic_event_carries_request_context(self, client, monitor):
        client.get("/api/menu", headers={"user-agent": "pytest-agent"})
        event = monitor.events.since(0)[-1]
        assert event.event_type == "menu_view"
        assert event.source_address == CLIENT_IP
        assert event.endpoint == "/api/menu"
        assert event.http_method == "GET"
        assert event.user_agent == "pytest-agent"
        assert event.details == {"page": 1}

    def test_unauthorized_access_from_authenticated_user_is_escalation(self, client, monitor):
        client.delete("/api/admin/users/1", headers={"x-user-id": "7", "x-user-role": "customer"})
        activity = monitor.activities.since(0)[0]
        assert activity.activity_type == "privilege_escalation_attempt"
        assert activity.account_id == "7"

    def test_suspicious_order(self, client, monitor):
        client.post("/api/orders", json={"recent_order_count": 25},
                    headers={"x-user-id": "8"})
        activity = monitor.activities.since(0)[0]
        assert activity.activity_type == "order_frequency_abuse"
        assert activity.severity == "high"


# ---------------------------------------------------------------------------
# Framework-neutral guard
# ---------------------------------------------------------------------------

class TestRequestGuard:
    def test_check_returns_none_when_clear(self, monitor):
        guard = RequestGuard(monitor)
        assert guard.check(RequestContext("10.1.1.1", "/", "GET")) is None

    def test_check_returns_block_responses(self, monitor):
        guard = RequestGuard(monitor)
        ctx = RequestContext("10.1.1.2", "/login", "POST")
        for _ in range(5):
            monitor.record_failed_auth(ctx, "invalid_password", identifier="77")
        assert guard.check(ctx) is ADDRESS_BLOCKED
        monitor.reset_address_attempts("10.1.1.2")
        locked = RequestContext("10.1.1.2", "/orders", "GET", account_id="77")
        assert guard.check(locked) is ACCOUNT_LOCKED
        assert ACCOUNT_LOCKED.status_code == 423


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------

class TestAdminEndpoints:
    def test_report(self, client):
        _fail_login(client, 2)
        r = client.get("/security/report", params={"time_range": "day"})
        assert r.status_code == 200
        body = r.json()
        assert body["timeRange"] == "day"
        assert body["summary"]["totalEvents"] == 2
        assert set(body) == {"timeRange", "period", "summary", "breakdown", "recentAlerts"}

    def test_reset_ip_endpoint_unblocks(self, client, monitor):
        _fail_login(client, 5)
        monitor.reset_address_attempts(CLIENT_IP)  # let the admin call through
        _fail_login(client, 4)
        r = client.post(f"/security/reset/ip/{CLIENT_IP}")
        assert r.status_code == 200
        assert r.json() == {"success": True, "ip": CLIENT_IP}
        _fail_login(client, 1)
        assert not monitor.is_ip_blocked(CLIENT_IP)

    def test_reset_user_endpoint_is_idempotent(self, client):
        for _ in range(2):
            r = client.post("/security/reset/user/nobody")
            assert r.status_code == 200
            assert r.json() == {"success": True, "user_id": "nobody"}

    def test_health_and_metrics(self, app):
        with TestClient(app) as client:
            assert client.get("/health").json() == {"status": "ok", "service": "secmon"}
            r = client.get("/metrics/")
            assert r.status_code == 200
            assert "secmon_events_total" in r.text
