"""
Test API authentication contract.

Verifies:
1. Talk endpoints require HTTP Basic credentials (401 + WWW-Authenticate)
2. USER may read; only ADMIN may import (403 otherwise)
3. Health, root and docs endpoints need no auth
4. Credentials come from settings
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tedtalk_api.core.config import reset_settings
from tedtalk_api.core.security import ROLE_ADMIN, ROLE_USER, authenticate
from tests.helpers import VALID_ROWS, make_csv

pytestmark = pytest.mark.security


class TestPublicEndpoints:
    """Probes and docs need no credentials."""

    @pytest.mark.parametrize(
        "path", ["/", "/health", "/api/health", "/api/version", "/docs", "/openapi.json"]
    )
    def test_public_path_does_not_require_auth(self, client: TestClient, path: str) -> None:
        response = client.get(path)

        assert response.status_code == 200

    def test_ready_is_public_but_reports_missing_database(self, client: TestClient) -> None:
        response = client.get("/api/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["ready"] is False
        assert body["pool_initialized"] is False


class TestAuthFailure:
    """Missing or wrong credentials."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/v1/talks",
            "/api/v1/talks/1",
            "/api/v1/talks/stats",
            "/api/v1/talks/year/2012",
            "/api/v1/talks/influence/speakers",
        ],
    )
    def test_missing_auth_returns_401_with_challenge(self, client: TestClient, path: str) -> None:
        response = client.get(path)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"].startswith("Basic")
        assert response.json()["error"] == "unauthorized"

    def test_wrong_password_returns_401(self, client: TestClient) -> None:
        response = client.get("/api/v1/talks/stats", auth=("admin", "wrong"))

        assert response.status_code == 401

    def test_unknown_user_returns_401(self, client: TestClient) -> None:
        response = client.get("/api/v1/talks/stats", auth=("mallory", "admin123"))

        assert response.status_code == 401

    def test_import_without_auth_returns_401(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/talks/import",
            files={"file": ("talks.csv", make_csv(*VALID_ROWS), "text/csv")},
        )

        assert response.status_code == 401


class TestRoles:
    """USER reads, ADMIN imports."""

    def test_user_can_read(self, client: TestClient, user_auth: tuple[str, str]) -> None:
        response = client.get("/api/v1/talks/stats", auth=user_auth)

        assert response.status_code == 200

    def test_admin_can_read(self, client: TestClient, admin_auth: tuple[str, str]) -> None:
        response = client.get("/api/v1/talks/stats", auth=admin_auth)

        assert response.status_code == 200

    def test_user_cannot_import(self, client: TestClient, user_auth: tuple[str, str]) -> None:
        response = client.post(
            "/api/v1/talks/import",
            files={"file": ("talks.csv", make_csv(*VALID_ROWS), "text/csv")},
            auth=user_auth,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_admin_can_import(self, client: TestClient, admin_auth: tuple[str, str]) -> None:
        response = client.post(
            "/api/v1/talks/import",
            files={"file": ("talks.csv", make_csv(*VALID_ROWS), "text/csv")},
            auth=admin_auth,
        )

        assert response.status_code == 202


class TestConfiguredCredentials:
    """Accounts are read from settings."""

    def test_default_accounts(self) -> None:
        admin = authenticate("admin", "admin123")
        user = authenticate("user", "user123")

        assert admin is not None and admin.roles == {ROLE_ADMIN, ROLE_USER}
        assert user is not None and user.roles == {ROLE_USER}
        assert authenticate("user", "admin123") is None

    def test_overridden_password(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ADMIN_PASSWORD", "s3cret-value")
        reset_settings()

        assert authenticate("admin", "admin123") is None
        admin = authenticate("admin", "s3cret-value")
        assert admin is not None
        assert admin.has_role(ROLE_ADMIN)

    def test_non_ascii_credentials_do_not_crash(self) -> None:
        assert authenticate("ädmin", "pässword") is None
