"""
Pytest configuration and fixtures for backend API tests.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from tab_grouper.config import Settings

VOCABULARY = ["news", "shopping", "python", "recipe", "weather", "sports"]


def keyword_embedding(text: str) -> list[float]:
    lowered = text.lower()
    return [1.0 if word in lowered else 0.0 for word in VOCABULARY]


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset the global cache store and provider between tests."""
    import tab_grouper.server.app as app_module

    app_module._cache_store = None
    app_module._provider = None
    yield
    app_module._cache_store = None
    app_module._provider = None


@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings to avoid requiring .env file in tests."""
    settings = Settings(
        _env_file=None,
        openai_api_key="test-api-key",
        openai_llm_model="gpt-4.1-mini",
        openai_embedding_model="text-embedding-3-small",
        categories=[],
        cache_db_path=None,
    )
    with patch("tab_grouper.server.app.get_settings") as mock_app_settings, \
         patch("tab_grouper.config.get_settings") as mock_config_settings:
        mock_app_settings.return_value = settings
        mock_config_settings.return_value = settings
        yield settings


@pytest.fixture(autouse=True)
def mock_openai():
    """Mock AsyncOpenAI client to avoid real API calls in tests."""
    with patch("tab_grouper.agents.providers.AsyncOpenAI") as mock:
        mock_client = Mock()

        async def mock_embeddings_create(model, input):
            """Keyword vectors: texts sharing a topic word are identical."""
            mock_response = Mock()
            mock_response.data = [Mock(embedding=keyword_embedding(text)) for text in input]
            return mock_response

        async def mock_chat_create(model, messages, max_tokens):
            """Answer "None" to categorization and a topic label to clustering."""
            if messages[0]["content"].startswith("Categorize"):
                content = "None"
            elif "python" in messages[-1]["content"].split("\n")[0].lower():
                content = "Python"
            else:
                content = "Misc"
            return Mock(choices=[Mock(message=Mock(content=content))])

        mock_client.embeddings.create = AsyncMock(side_effect=mock_embeddings_create)
        mock_client.chat.completions.create = AsyncMock(side_effect=mock_chat_create)
        mock_client.close = AsyncMock()

        mock.return_value = mock_client
        yield mock_client


@pytest.fixture
def sample_organize_data():
    """Sample window snapshot for the organize endpoint."""
    return {
        "tabs": [
            {"id": 1, "url": "https://daily.example.com/world", "title": "World news today", "window_id": 1},
            {"id": 2, "url": "https://docs.example.org/tutorial", "title": "Python tutorial", "window_id": 1},
            {"id": 3, "url": "https://packaging.example.org/guide", "title": "Python packaging guide", "window_id": 1},
            {"id": 4, "url": "https://cooking.example.com/bread", "title": "Banana bread recipe", "window_id": 1},
            {"id": 5, "url": "https://forecast.example.com", "title": "Weather forecast", "window_id": 1},
        ],
        "groups": [
            {"id": 10, "title": "News", "color": "blue", "window_id": 1},
            {"id": 11, "title": "Shopping", "color": "green", "window_id": 1},
        ],
        "categories": ["news", "shopping"],
    }
