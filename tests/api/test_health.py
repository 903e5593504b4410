"""
Tests for health check endpoint
"""
from unittest.mock import patch
from sqlalchemy.exc import OperationalError


class TestHealthCheck:
    """Test health check endpoint"""

    def test_health_check_success(self, client):
        """Scheduler is skipped in tests, so it reports stopped"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["scheduler"] == "stopped"
        assert data["active_jobs"] == 0

    def test_health_check_accessible_without_auth(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_reports_scheduler_running(self, client):
        with patch.object(type(client.app.state.monitoring_service), "running", True):
            data = client.get("/health").json()
        assert data["scheduler"] == "running"

    def test_health_check_database_down(self, client):
        with patch("sqlalchemy.orm.Session.execute", side_effect=OperationalError("SELECT 1", {}, Exception("gone"))):
            response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["database"] == "disconnected"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
