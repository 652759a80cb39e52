"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status, version, timestamp and components fields
  - components.directory reports the store's reachability
  - no authentication required
  - unknown routes use the shared error envelope
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200_with_components(api):
    """Health endpoint returns 200 with status, version, and components."""
    resp = api.client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["timestamp"]
    assert data["components"] == {"app": "ok", "directory": "ok"}


def test_health_no_auth_required(api):
    """Health endpoint is accessible without any authentication headers."""
    resp = api.client.get("/health", headers={})
    assert resp.status_code == 200


def test_health_degraded_when_directory_unreachable(api, monkeypatch):
    monkeypatch.setattr(api.store, "ping", lambda: False)
    data = api.client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["components"]["directory"] == "error"


def test_unknown_route_uses_error_envelope(api):
    resp = api.client.get("/no-such-route")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"
