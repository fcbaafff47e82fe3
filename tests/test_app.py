"""Tests for app-level wiring: health check, CORS and error rendering."""

from errly.core.config import settings


class TestApp:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "environment": settings.ENVIRONMENT}

    def test_cors_preflight_for_dashboard(self, client):
        origin = settings.ALLOWED_ORIGINS[0]

        response = client.options(
            "/logs/volume",
            headers={
                "Origin": origin,
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "Authorization",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin

    def test_unauthorized_carries_bearer_challenge(self, client):
        response = client.get("/logs/volume")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
