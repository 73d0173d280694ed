"""Shared fixtures for scoreboard tests."""
import pytest
from fastapi.testclient import TestClient

from scoreboard.database import InMemoryTree
from scoreboard.main import create_app
from scoreboard.settings import Settings

TEST_API_KEY = "test-secret"
ALLOWED_ORIGIN = "https://game.example.com"


@pytest.fixture
def config():
    return Settings(
        SCOREBOARD_API_KEY=TEST_API_KEY,
        SCOREBOARD_API_KEY_HASH=None,
        STORE_BACKEND="memory",
        CORS_ORIGINS=ALLOWED_ORIGIN,
    )


@pytest.fixture
def tree():
    return InMemoryTree()


@pytest.fixture
def client(config, tree):
    app = create_app(config, tree=tree)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def allowed_origin():
    return ALLOWED_ORIGIN
