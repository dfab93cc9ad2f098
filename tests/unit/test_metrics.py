"""Unit tests for Prometheus metrics endpoint."""

from fastapi.testclient import TestClient


def test_metrics_endpoint_returns_text() -> None:
    from meetauction.main import create_app

    client = TestClient(create_app())
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "auction_scan_duration_seconds" in response.text
    assert "access_gate_decisions_total" in response.text
