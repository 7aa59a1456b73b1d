# tests/test_health.py


def test_health_check(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["environment"] == "test"
    assert body["schedule_engine_active"] is False
    assert "timestamp_utc" in body
