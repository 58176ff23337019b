"""Health endpoints."""


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_db_status(client):
    resp = client.get("/api/health/db")
    assert resp.status_code == 200
    data = resp.json()
    assert data["connected"] is True
    assert data["dialect"] == "sqlite"
    assert data["table_count"] >= 3


def test_migration_status_on_unstamped_database(client):
    # Test tables come from create_all, so no revision is recorded
    resp = client.get("/api/health/migrations")
    assert resp.status_code == 200
    data = resp.json()
    assert data["current"] is None
    assert data["applied"] == []
    assert data["pending"] == data["available"]
    assert data["total"] == len(data["available"]) >= 1
    assert data["pending_count"] == data["total"]
    assert data["up_to_date"] is False
