"""Rate limiting: client key, limit strings and the 429 response."""
import uuid

from fastapi.testclient import TestClient
from starlette.requests import Request

from conftest import unique_email
from oralscan.core.config import settings
from oralscan.core.rate_limit import client_address, per_minute


def _request(headers: dict | None = None, client=("10.0.0.5", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/auth/login",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_client_address_prefers_first_forwarded_hop():
    r = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert client_address(r) == "203.0.113.7"


def test_client_address_falls_back_to_peer():
    assert client_address(_request()) == "10.0.0.5"
    assert client_address(_request(client=None)) == "unknown"


def test_per_minute():
    assert per_minute(5) == "5/minute"
    assert per_minute(0) == "1/minute"


def test_login_limit_returns_429_body(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_login_per_minute", 2)
    # A fresh forwarded address gets its own counter
    headers = {"X-Forwarded-For": f"198.51.100.{uuid.uuid4().int % 250 + 1}, 10.0.0.1"}
    body = {"email": unique_email("limited"), "password": "whatever1"}
    for _ in range(2):
        assert client.post("/auth/login", json=body, headers=headers).status_code == 401
    r = client.post("/auth/login", json=body, headers=headers)
    assert r.status_code == 429
    j = r.json()
    assert j["error"] == "Too many requests. Please wait a minute."
    assert j["status_code"] == 429
    assert j.get("request_id")


def test_upload_limit_returns_429(client: TestClient, capture_headers, jpeg_bytes, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_per_minute", 1)
    headers = {**capture_headers, "X-Forwarded-For": f"203.0.113.{uuid.uuid4().int % 250 + 1}"}

    def upload():
        return client.post(
            "/scans",
            headers=headers,
            data={"patient_name": "Jane Doe", "patient_id": "P-RL", "region": "Frontal"},
            files={"file": ("scan.jpg", jpeg_bytes, "image/jpeg")},
        )

    assert upload().status_code == 201
    r = upload()
    assert r.status_code == 429
    assert r.json()["status_code"] == 429
