"""Tests for the bearer access-token guard on the file routes."""
from datetime import timedelta

import pytest

from filekeeper.auth.guard import extract_bearer_token
from filekeeper.auth.tokens import TokenService


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("Bearer", None),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestGuardedRoutes:
    def test_missing_header_is_unauthenticated(self, api_client):
        response = api_client.get("/file/list")
        assert response.status_code == 401
        assert response.content == b""

    def test_header_without_token_is_unauthenticated(self, api_client):
        response = api_client.get("/file/list", headers={"Authorization": "Bearer"})
        assert response.status_code == 401

    def test_invalid_token_is_forbidden(self, api_client):
        response = api_client.get("/file/list", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 403
        assert response.content == b""

    def test_expired_token_is_forbidden(self, api_client, app_config):
        expired = TokenService(
            app_config.secrets.jwt.access_secret,
            app_config.secrets.jwt.refresh_secret,
            access_ttl=timedelta(seconds=-5),
        ).issue_access(1)
        response = api_client.get("/file/list", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == 403

    def test_refresh_token_is_not_accepted(self, api_client, token_service):
        refresh = token_service.issue_refresh(1)
        response = api_client.get("/file/list", headers={"Authorization": f"Bearer {refresh}"})
        assert response.status_code == 403

    def test_valid_token_passes(self, api_client, auth_headers):
        response = api_client.get("/file/list", headers=auth_headers)
        assert response.status_code == 200

    def test_guard_checks_before_lookup(self, api_client):
        """An unauthenticated request for a missing file is 401, not 404."""
        response = api_client.get("/file/999")
        assert response.status_code == 401

    def test_routes_are_public_when_auth_disabled(self, api_client, app_config):
        app_config.files.require_auth = False
        response = api_client.get("/file/list")
        assert response.status_code == 200

    def test_health_is_public(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
