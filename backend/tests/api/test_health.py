"""Tests for health check endpoints."""

from fastapi.testclient import TestClient

from api import app


client = TestClient(app)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self):
        """Health endpoint should return 200 with status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"

    def test_health_response_structure(self):
        response = client.get("/api/health")
        assert set(response.json().keys()) == {"status", "version"}

    def test_readiness_in_memory(self, monkeypatch):
        """The in-memory backend is always ready."""
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("GEMINI_API_KEY", "")
        response = client.get("/api/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["storage"] == "memory"
        assert data["ai_service"] == "unconfigured"

    def test_readiness_unconfigured_supabase(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "supabase")
        monkeypatch.setenv("SUPABASE_URL", "")
        response = client.get("/api/ready")
        data = response.json()
        assert data["status"] == "degraded"
        assert data["storage"] == "unconfigured"

    def test_readiness_configured_services(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "key")
        monkeypatch.setenv("APPLE_SHARED_SECRET", "secret")
        data = client.get("/api/ready").json()
        assert data["ai_service"] == "configured"
        assert data["payments"] == "configured"

    def test_readiness_response_structure(self):
        response = client.get("/api/ready")
        assert set(response.json().keys()) == {"status", "storage", "ai_service", "payments"}
