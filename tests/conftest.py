"""
Shared fixtures: settings, cache and a deterministic keyword-vector provider.
"""

import pytest

from tab_grouper.config import Settings
from tab_grouper.agents.providers import EmbeddingCache
from tab_grouper.storage.cache import InMemoryCacheStore

from fakes import FakeProvider


@pytest.fixture
def settings():
    """Settings for tests, isolated from any .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="test-api-key",
        openai_llm_model="gpt-4.1-mini",
        categories=[],
        domain_descriptions={},
        cache_db_path=None,
    )


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def embedding_cache(provider, cache):
    return EmbeddingCache(provider, cache)
