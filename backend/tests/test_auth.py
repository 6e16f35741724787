"""Tests for the signup / signin / refresh / logout endpoints."""
import asyncio
from unittest.mock import MagicMock, patch

import duckdb
import pytest

from filekeeper.auth import service
from filekeeper.auth.passwords import verify_password
from filekeeper.auth.schemas import SignupRequest
from filekeeper.auth.service import UserStore
from filekeeper.errors import ValidationError


VALID_USER = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "phoneNumber": "+12025550123",
    "password": "analytical",
}


def _signup(client, **overrides):
    body = dict(VALID_USER, **overrides)
    return client.post("/users/signup", json=body)


def _signin(client, identifier="ada@example.com", password="analytical"):
    return client.post("/users/signin", json={"identifier": identifier, "password": password})


def _is_registered(registry, token) -> bool:
    return asyncio.run(registry.is_valid(token))


class TestSignup:
    """Tests for POST /users/signup."""

    def test_signup_creates_user_with_hashed_password(self, api_client):
        response = _signup(api_client)

        assert response.status_code == 200
        assert response.json() == {"message": "User registered successfully"}

        user = UserStore.get_instance().find_by_identifier("ada@example.com")
        assert user is not None
        assert user.first_name == "Ada"
        assert user.phone_number == "+12025550123"
        assert user.password_hash != "analytical"
        assert verify_password("analytical", user.password_hash)

    @pytest.mark.parametrize("missing", ["firstName", "lastName", "email", "phoneNumber", "password"])
    def test_missing_field_is_rejected(self, api_client, missing):
        body = {k: v for k, v in VALID_USER.items() if k != missing}
        response = api_client.post("/users/signup", json=body)

        assert response.status_code == 400
        assert missing in response.json()["error"]
        assert UserStore.get_instance().count() == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"phoneNumber": "12345"},
            {"phoneNumber": "+1202555012345"},
            {"password": "abcd"},
            {"email": "not-an-email"},
            {"firstName": ""},
        ],
    )
    def test_constraint_violation_is_rejected(self, api_client, overrides):
        response = _signup(api_client, **overrides)

        assert response.status_code == 400
        assert "error" in response.json()
        assert UserStore.get_instance().count() == 0

    def test_duplicate_email_is_rejected(self, api_client):
        assert _signup(api_client).status_code == 200
        response = _signup(api_client, phoneNumber="+12025550999")

        assert response.status_code == 400
        assert response.json() == {"error": "Email is already registered"}
        assert UserStore.get_instance().count() == 1

    def test_duplicate_email_keeps_the_constraint_error_as_cause(self):
        users = MagicMock(spec=UserStore)
        users.create.side_effect = duckdb.ConstraintException("duplicate key")

        with pytest.raises(ValidationError) as excinfo:
            asyncio.run(service.signup(SignupRequest(**VALID_USER), users))

        assert isinstance(excinfo.value.__cause__, duckdb.ConstraintException)

    def test_storage_failure_is_surfaced(self, api_client):
        with patch.object(UserStore, "create", side_effect=duckdb.Error("disk full")):
            response = _signup(api_client)

        assert response.status_code == 500
        assert response.json() == {"error": "Error during user registration"}


class TestSignin:
    """Tests for POST /users/signin."""

    def test_signin_with_email_returns_token_pair(self, api_client, token_service, registry):
        _signup(api_client)
        response = _signin(api_client)

        assert response.status_code == 200
        body = response.json()
        user = UserStore.get_instance().find_by_identifier("ada@example.com")
        assert token_service.verify_access(body["accessToken"])["userId"] == user.id
        assert token_service.verify_refresh(body["refreshToken"])["userId"] == user.id
        assert _is_registered(registry, body["refreshToken"])

    def test_signin_with_phone_number(self, api_client):
        _signup(api_client)
        response = _signin(api_client, identifier="+12025550123")
        assert response.status_code == 200

    def test_wrong_password_and_unknown_identifier_look_the_same(self, api_client):
        _signup(api_client)
        wrong_password = _signin(api_client, password="wrong-password")
        unknown_user = _signin(api_client, identifier="nobody@example.com")

        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json() == {"error": "Invalid credentials"}

    def test_failed_signin_registers_nothing(self, api_client, registry):
        _signup(api_client)
        _signin(api_client, password="wrong-password")
        assert len(registry) == 0

    def test_lookup_failure_is_internal_error(self, api_client):
        with patch.object(UserStore, "find_by_identifier", side_effect=duckdb.Error("boom")):
            response = _signin(api_client)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestRefresh:
    """Tests for POST /signin/new_token."""

    def _tokens(self, api_client):
        _signup(api_client)
        return _signin(api_client).json()

    def test_registered_token_yields_new_access_token(self, api_client, token_service):
        pair = self._tokens(api_client)
        response = api_client.post("/signin/new_token", json={"token": pair["refreshToken"]})

        assert response.status_code == 200
        new_claims = token_service.verify_access(response.json()["accessToken"])
        old_claims = token_service.verify_access(pair["accessToken"])
        assert new_claims["userId"] == old_claims["userId"]

    def test_missing_token_is_unauthenticated(self, api_client):
        response = api_client.post("/signin/new_token", json={})
        assert response.status_code == 401
        assert response.content == b""

    def test_missing_body_is_unauthenticated(self, api_client):
        response = api_client.post("/signin/new_token")
        assert response.status_code == 401

    def test_unregistered_token_is_forbidden(self, api_client, token_service):
        token = token_service.issue_refresh(1)
        response = api_client.post("/signin/new_token", json={"token": token})
        assert response.status_code == 403
        assert response.content == b""

    def test_non_string_token_is_forbidden(self, api_client):
        response = api_client.post("/signin/new_token", json={"token": 123})
        assert response.status_code == 403

    def test_registered_but_invalid_token_is_forbidden(self, api_client, registry):
        asyncio.run(registry.register("forged.token.value"))
        response = api_client.post("/signin/new_token", json={"token": "forged.token.value"})
        assert response.status_code == 403

    def test_logged_out_token_is_forbidden(self, api_client):
        pair = self._tokens(api_client)
        api_client.request("DELETE", "/logout", json={"token": pair["refreshToken"]})

        response = api_client.post("/signin/new_token", json={"token": pair["refreshToken"]})
        assert response.status_code == 403

    def test_registry_reset_invalidates_outstanding_tokens(self, api_client, registry):
        pair = self._tokens(api_client)
        asyncio.run(registry.clear())

        response = api_client.post("/signin/new_token", json={"token": pair["refreshToken"]})
        assert response.status_code == 403


class TestLogout:
    """Tests for DELETE /logout."""

    def test_logout_revokes_token(self, api_client, registry):
        _signup(api_client)
        refresh_token = _signin(api_client).json()["refreshToken"]

        response = api_client.request("DELETE", "/logout", json={"token": refresh_token})

        assert response.status_code == 204
        assert response.content == b""
        assert not _is_registered(registry, refresh_token)

    def test_logout_of_unknown_token_still_succeeds(self, api_client):
        response = api_client.request("DELETE", "/logout", json={"token": "never-issued"})
        assert response.status_code == 204

    def test_logout_without_token_still_succeeds(self, api_client):
        response = api_client.request("DELETE", "/logout")
        assert response.status_code == 204

    @pytest.mark.parametrize("token", [123, ["a", "b"], {"nested": True}])
    def test_logout_with_non_string_token_still_succeeds(self, api_client, token):
        response = api_client.request("DELETE", "/logout", json={"token": token})
        assert response.status_code == 204

    def test_logout_leaves_other_sessions_alone(self, api_client, registry):
        _signup(api_client)
        first = _signin(api_client).json()["refreshToken"]
        second = _signin(api_client).json()["refreshToken"]

        api_client.request("DELETE", "/logout", json={"token": first})

        assert not _is_registered(registry, first)
        assert _is_registered(registry, second)
