"""
Tests for the /oauth/token HTTP endpoint.
"""
import logging

import pytest

from conftest import (
    CLIENT_SECRET,
    CONFIDENTIAL_CLIENT_ID,
    PUBLIC_CLIENT_ID,
    REDIRECT_URI,
    s256,
)
from oauth_service.core.config import settings
from oauth_service.core.dependencies import get_unit_of_work
from oauth_service.main import app
from oauth_service.repositories import InMemoryUnitOfWork
from oauth_service.repositories.memory import InMemoryAuthorizationCodeRepository

TOKEN_URL = "/oauth/token"


class BrokenCodeRepository(InMemoryAuthorizationCodeRepository):
    async def find_by_code(self, code):
        raise RuntimeError("connection refused by db-primary:5432")


class BrokenUnitOfWork(InMemoryUnitOfWork):
    async def __aenter__(self):
        await super().__aenter__()
        self.codes = BrokenCodeRepository(self.storage)
        return self


def assert_cors(response):
    assert response.headers["access-control-allow-origin"] == settings.cors_allow_origin
    assert response.headers["access-control-allow-headers"] == settings.cors_allow_headers


def code_form(code, /, **overrides):
    data = {
        "grant_type": "authorization_code",
        "code": code.code,
        "redirect_uri": REDIRECT_URI,
        "client_id": code.client_id,
    }
    data.update(overrides)
    return data


class TestTokenEndpointMethods:
    """Tests for non-POST methods"""

    def test_options_preflight(self, client):
        response = client.options(TOKEN_URL)

        assert response.status_code == 204
        assert response.content == b""
        assert_cors(response)

    def test_get_not_allowed(self, client):
        response = client.get(TOKEN_URL)

        assert response.status_code == 405
        assert response.json() == {"error": "method_not_allowed"}
        assert response.headers["allow"] == "POST, OPTIONS"
        assert_cors(response)

    def test_put_not_allowed(self, client):
        response = client.put(TOKEN_URL, data={"grant_type": "refresh_token"})

        assert response.status_code == 405
        assert response.json()["error"] == "method_not_allowed"

    @pytest.mark.parametrize("method", ["TRACE", "PROPFIND", "DELETE", "PATCH"])
    def test_other_methods_not_allowed(self, client, method):
        response = client.request(method, TOKEN_URL)

        assert response.status_code == 405
        assert response.json() == {"error": "method_not_allowed"}
        assert response.headers["allow"] == "POST, OPTIONS"
        assert_cors(response)

    def test_head_not_allowed(self, client):
        response = client.head(TOKEN_URL)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST, OPTIONS"
        assert_cors(response)

    def test_unknown_path_keeps_default_404(self, client):
        response = client.get("/oauth/authorize")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}


class TestAuthorizationCodeExchange:
    """Tests for grant_type=authorization_code over HTTP"""

    def test_pkce_exchange(self, client, make_code):
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")

        response = client.post(TOKEN_URL, data=code_form(code, code_verifier="abc123"))

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"access_token", "token_type", "expires_in", "refresh_token", "scope"}
        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == settings.access_token_lifetime
        assert body["scope"] == "profile:read friends:read"
        assert body["access_token"]
        assert body["refresh_token"]
        assert response.headers["cache-control"] == "no-store"
        assert_cors(response)

    def test_replayed_code_rejected(self, client, make_code):
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")
        data = code_form(code, code_verifier="abc123")

        first = client.post(TOKEN_URL, data=data)
        second = client.post(TOKEN_URL, data=data)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["error"] == "invalid_grant"
        assert_cors(second)

    def test_json_body(self, client, make_code):
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")

        response = client.post(TOKEN_URL, json=code_form(code, code_verifier="abc123"))

        assert response.status_code == 200
        assert response.json()["token_type"] == "Bearer"

    def test_json_non_string_values_count_as_absent(self, client, make_code):
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")
        body = code_form(code, code_verifier="abc123", client_secret=False, state=None)

        response = client.post(TOKEN_URL, json=body)

        assert response.status_code == 200

    def test_json_non_string_code_is_missing(self, client, make_code):
        code = make_code()

        response = client.post(TOKEN_URL, json=code_form(code, code=12345))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_empty_scopes(self, client, make_code):
        code = make_code(scopes=[], code_challenge="abc123", code_challenge_method="plain")

        response = client.post(TOKEN_URL, data=code_form(code, code_verifier="abc123"))

        assert response.status_code == 200
        assert response.json()["scope"] == ""

    def test_missing_parameters(self, client):
        response = client.post(
            TOKEN_URL,
            data={"grant_type": "authorization_code", "client_id": PUBLIC_CLIENT_ID},
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "invalid_request",
            "error_description": "Missing required parameters",
        }

    def test_wrong_verifier(self, client, make_code):
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")

        response = client.post(TOKEN_URL, data=code_form(code, code_verifier="abc124"))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_grant"

    def test_confidential_client_secret_in_body(self, client, make_code):
        code = make_code(client_id=CONFIDENTIAL_CLIENT_ID)

        response = client.post(TOKEN_URL, data=code_form(code, client_secret=CLIENT_SECRET))

        assert response.status_code == 200

    def test_confidential_client_wrong_secret(self, client, make_code):
        code = make_code(client_id=CONFIDENTIAL_CLIENT_ID)

        response = client.post(TOKEN_URL, data=code_form(code, client_secret="nope"))

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"
        assert_cors(response)

    def test_basic_auth_credentials(self, client, make_code):
        code = make_code(client_id=CONFIDENTIAL_CLIENT_ID)
        data = code_form(code)
        del data["client_id"]

        response = client.post(
            TOKEN_URL,
            data=data,
            auth=(CONFIDENTIAL_CLIENT_ID, CLIENT_SECRET),
        )

        assert response.status_code == 200

    def test_basic_auth_wrong_secret(self, client, make_code):
        code = make_code(client_id=CONFIDENTIAL_CLIENT_ID)

        response = client.post(
            TOKEN_URL,
            data=code_form(code),
            auth=(CONFIDENTIAL_CLIENT_ID, "nope"),
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"

    def test_malformed_basic_header(self, client, make_code):
        code = make_code(client_id=CONFIDENTIAL_CLIENT_ID)

        response = client.post(
            TOKEN_URL,
            data=code_form(code),
            headers={"Authorization": "Basic not-base64!!"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"


class TestRefreshTokenExchange:
    """Tests for grant_type=refresh_token over HTTP"""

    def test_rotation(self, client, make_token):
        token = make_token(scopes=["profile:read", "feed:read"])
        data = {
            "grant_type": "refresh_token",
            "refresh_token": token.refresh_token,
            "client_id": token.client_id,
        }

        response = client.post(TOKEN_URL, data=data)

        assert response.status_code == 200
        body = response.json()
        assert body["refresh_token"] != token.refresh_token
        assert body["scope"] == "profile:read feed:read"

        replay = client.post(TOKEN_URL, data=data)
        assert replay.status_code == 400
        assert replay.json()["error"] == "invalid_grant"

    def test_rotated_token_can_be_refreshed(self, client, make_token):
        token = make_token()

        first = client.post(
            TOKEN_URL,
            json={
                "grant_type": "refresh_token",
                "refresh_token": token.refresh_token,
                "client_id": token.client_id,
            },
        )
        second = client.post(
            TOKEN_URL,
            json={
                "grant_type": "refresh_token",
                "refresh_token": first.json()["refresh_token"],
                "client_id": token.client_id,
            },
        )

        assert first.status_code == 200
        assert second.status_code == 200


class TestRequestErrors:
    """Tests for malformed requests and internal failures"""

    def test_unsupported_grant_type(self, client):
        response = client.post(TOKEN_URL, data={"grant_type": "password"})

        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_grant_type"
        assert_cors(response)

    def test_missing_grant_type(self, client):
        response = client.post(TOKEN_URL, data={"client_id": PUBLIC_CLIENT_ID})

        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_grant_type"

    def test_malformed_json(self, client):
        response = client.post(
            TOKEN_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_json_array_body(self, client):
        response = client.post(TOKEN_URL, json=["authorization_code"])

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_store_failure_is_server_error(self, client, storage, make_code):
        app.dependency_overrides[get_unit_of_work] = lambda: BrokenUnitOfWork(storage)
        code = make_code(code_challenge=s256("abc123"), code_challenge_method="S256")

        response = client.post(TOKEN_URL, data=code_form(code, code_verifier="abc123"))

        assert response.status_code == 500
        assert response.json() == {
            "error": "server_error",
            "error_description": "An internal error occurred",
        }
        assert "db-primary" not in response.text
        assert_cors(response)

    def test_missing_client_row_is_server_error(self, client, storage, make_code):
        code = make_code()
        del storage.clients[PUBLIC_CLIENT_ID]

        response = client.post(TOKEN_URL, data=code_form(code))

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_correlation_id_is_echoed(self, client):
        response = client.options(TOKEN_URL, headers={"X-Correlation-ID": "req-42"})

        assert response.headers["x-correlation-id"] == "req-42"

    def test_correlation_id_is_generated(self, client):
        response = client.options(TOKEN_URL)

        assert response.headers["x-correlation-id"]

    def test_access_log_records_grant_type(self, client, make_token, caplog):
        token = make_token()
        caplog.set_level(logging.INFO, logger="oauth-service")

        client.post(
            TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": token.refresh_token,
                "client_id": token.client_id,
            },
            headers={"X-Correlation-ID": "req-43"},
        )

        records = [r for r in caplog.records if getattr(r, "correlation_id", None) == "req-43"]
        assert len(records) == 1
        assert records[0].grant_type == "refresh_token"
        assert records[0].client_id == token.client_id
        assert records[0].status_code == 200
        assert token.refresh_token not in caplog.text
