import os
import sys
from typing import AsyncGenerator, Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings
from core.database import Database
from core.schemas import PromptCreate, UserCreate
from main import create_app


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway database and upload directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        environment="test",
        log_level="WARNING",
    )


@pytest.fixture
def test_app(test_settings):
    return create_app(test_settings)


@pytest.fixture
def test_client(test_app) -> Generator[TestClient, None, None]:
    """Create a test client; entering it runs the app lifespan."""
    with TestClient(test_app) as client:
        yield client


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """A fresh database with all tables, for service-level tests."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def sample_prompt_data():
    """Sample prompt payload in the API's camelCase shape."""
    return {
        "title": "Summarize a research paper",
        "description": "Turns a dense paper into a short briefing",
        "content": "Summarize the following paper in five bullet points: {paper}",
        "category": "Research",
        "resultType": "text",
        "tags": ["summary", "Research"],
        "worksBestWith": ["GPT-4", "Claude-3"],
        "sampleOutput": "- Finding one\n- Finding two",
    }


@pytest.fixture
def sample_user_data():
    """Sample user registration payload."""
    return {
        "name": "Ada Lovelace",
        "username": "ada_l",
        "email": "Ada@Example.com",
        "password": "engine42",
        "bio": "First programmer",
        "avatar": "https://example.com/ada.png",
    }


@pytest.fixture
def create_prompt(test_client, sample_prompt_data):
    """Factory that publishes a prompt through the API and returns its data."""

    def _create(**overrides):
        payload = {**sample_prompt_data, **overrides}
        response = test_client.post("/api/prompts", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_user(test_client, sample_user_data):
    """Factory that registers a user through the API and returns its data."""

    def _create(**overrides):
        payload = {**sample_user_data, **overrides}
        response = test_client.post("/api/users", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def prompt_input(sample_prompt_data) -> PromptCreate:
    return PromptCreate.model_validate(sample_prompt_data)


@pytest.fixture
def user_input(sample_user_data) -> UserCreate:
    return UserCreate.model_validate(sample_user_data)


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    logger = Mock()
    logger.info = Mock()
    logger.error = Mock()
    logger.warning = Mock()
    logger.debug = Mock()
    return logger
