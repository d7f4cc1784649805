from unittest.mock import patch


class TestHealth:

    def test_health_reports_database_and_system(self, client):
        response = client.get("/health/")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == {"status": "healthy", "connection": "ok"}
        assert set(body["system"]) == {"cpu_percent", "memory_percent", "disk_percent", "load_average"}
        assert body["uptime"] >= 0

    def test_liveness(self, client):
        assert client.get("/health/live").json()["status"] == "alive"

    def test_readiness(self, client):
        assert client.get("/health/ready").json()["status"] == "ready"

    def test_not_ready_without_database(self, client):
        with patch("vadash.api.routers.health.DatabaseManager.health_check", return_value=False):
            response = client.get("/health/ready")
            assert response.status_code == 503
            assert response.json()["reason"] == "database_unhealthy"

            body = client.get("/health/").json()
            assert body["status"] == "unhealthy"
            assert body["database"]["connection"] == "failed"


class TestRoot:

    def test_root_and_info(self, client):
        assert client.get("/").status_code == 200
        assert client.get("/info").status_code == 200

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/no-such-page")
        assert response.status_code == 404
        assert set(response.json()) == {"error", "status_code", "timestamp"}

    def test_request_id_is_echoed(self, client):
        response = client.get("/health/live", headers={"X-Request-ID": "req-42"})
        assert response.headers["x-request-id"] == "req-42"
        assert client.get("/health/live").headers["x-request-id"]

    def test_unhandled_error_keeps_request_headers(self, client):
        with patch("vadash.api.routers.health.get_system_info", side_effect=RuntimeError("boom")):
            response = client.get("/health/", headers={"X-Request-ID": "req-500"})
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert response.headers["x-request-id"] == "req-500"
        assert "x-process-time" in response.headers
