"""Tests for request logging middleware."""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.middleware.rate_limit import get_limiter
from app.middleware.request_id import incoming_request_id
from app.services.paper_store import PaperStore, get_paper_store


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    get_limiter().reset()


@pytest.fixture
def client() -> TestClient:
    fresh = PaperStore()
    app.dependency_overrides[get_paper_store] = lambda: fresh
    yield TestClient(app)
    app.dependency_overrides.pop(get_paper_store, None)


def request_logs(caplog):
    return [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "app.middleware.logging"
    ]


def test_request_logged_as_json(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.middleware.logging"):
        response = client.get("/version", headers={"X-Request-ID": "req-abc"})

    (entry,) = request_logs(caplog)
    assert entry["request_id"] == "req-abc"
    assert entry["method"] == "GET"
    assert entry["path"] == "/version"
    assert entry["status_code"] == 200
    assert "processing_time_ms" in entry
    assert response.headers["X-Request-ID"] == "req-abc"


def test_paper_id_and_total_marks_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.middleware.logging"):
        response = client.post("/api/papers")

    (entry,) = request_logs(caplog)
    assert entry["paper_id"] == response.json()["id"]
    assert entry["total_marks"] == 0


def test_paper_contents_not_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.middleware.logging"):
        response = client.post("/api/papers")
        paper_id = response.json()["id"]
        client.patch(f"/api/papers/{paper_id}", json={"schoolName": "Top Secret Academy"})

    assert "Top Secret Academy" not in caplog.text


@pytest.mark.parametrize("header", ["has spaces", "x" * 200, "semi;colon"])
def test_unsafe_request_id_replaced(client, header):
    response = client.get("/version", headers={"X-Request-ID": header})

    assert response.headers["X-Request-ID"] != header
    assert len(response.headers["X-Request-ID"]) == 36


def test_incoming_request_id():
    assert incoming_request_id("req-123") == "req-123"
    assert incoming_request_id("") is None
    assert incoming_request_id(None) is None
    assert incoming_request_id('{"injected": true}') is None


def test_client_errors_logged_as_warning(client, caplog):
    with caplog.at_level(logging.INFO, logger="app.middleware.logging"):
        client.get("/api/papers/missing")

    (record,) = [r for r in caplog.records if r.name == "app.middleware.logging"]
    assert record.levelno == logging.WARNING
    assert json.loads(record.getMessage())["status_code"] == 404


def test_route_template_logged(client, caplog):
    paper_id = client.post("/api/papers").json()["id"]

    with caplog.at_level(logging.INFO, logger="app.middleware.logging"):
        client.get(f"/api/papers/{paper_id}")

    (entry,) = request_logs(caplog)
    assert entry["path"] == f"/api/papers/{paper_id}"
    assert entry["route"] == "/api/papers/{paper_id}"
