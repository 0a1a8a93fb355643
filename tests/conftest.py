"""
tests/conftest.py

Pytest configuration and shared fixtures for the TED Talk API test suite.

No test here needs a live database: routers get an InMemoryTalkStore through
FastAPI dependency overrides, and the app is never started with its lifespan.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.helpers import InMemoryTalkStore

ADMIN_AUTH = ("admin", "admin123")
USER_AUTH = ("user", "user123")


def pytest_configure(config: pytest.Config) -> None:
    """
    Global pytest configuration.

    Pins a dev environment with no database before anything imports the app.
    """
    os.environ["ENVIRONMENT"] = "dev"
    os.environ.pop("DATABASE_URL", None)
    os.environ.setdefault("ENV_FILE", ".env.test-does-not-exist")


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from tedtalk_api.core.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store() -> InMemoryTalkStore:
    return InMemoryTalkStore()


@pytest.fixture
def app(store: InMemoryTalkStore) -> FastAPI:
    """App with the talk store swapped for the in-memory double."""
    from tedtalk_api.main import create_app
    from tedtalk_api.routers.talks import get_talk_store

    application = create_app()
    application.dependency_overrides[get_talk_store] = lambda: store
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin_auth() -> tuple[str, str]:
    return ADMIN_AUTH


@pytest.fixture
def user_auth() -> tuple[str, str]:
    return USER_AUTH
