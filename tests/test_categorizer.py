"""
Tests for single-tab categorization.
"""

import pytest

from tab_grouper.agents.categorizer import TabCategorizer, normalize_meta_tags
from tab_grouper.storage.cache import CATEGORY_NAMESPACE

from fakes import FakeProvider


CATEGORIES = ["news", "shopping"]


@pytest.fixture
def categorizer(provider, cache, settings):
    return TabCategorizer(provider, cache, settings=settings)


class TestNormalizeMetaTags:
    """Tests for meta tag normalization."""

    def test_comma_separated_string(self):
        assert normalize_meta_tags("Breaking News, World ") == ["breaking news", "world"]

    def test_list(self):
        assert normalize_meta_tags(["Deals ", "SALE"]) == ["deals", "sale"]

    def test_empty(self):
        assert normalize_meta_tags("") == []
        assert normalize_meta_tags(None) == []


class TestEmbeddingPhase:
    """Categorization resolved by embeddings alone."""

    @pytest.mark.asyncio
    async def test_confident_match_skips_completion(self, categorizer, provider):
        """A match above the threshold never calls the chat model."""
        category = await categorizer.categorize(
            "https://news.example.com/world", "World News Today", "", CATEGORIES
        )

        assert category == "news"
        assert len(provider.embedding_calls) == 1
        assert provider.completion_calls == []

    @pytest.mark.asyncio
    async def test_embeds_blob_and_categories_in_one_call(self, categorizer, provider):
        await categorizer.categorize(
            "https://news.example.com/world", "World News Today", "Daily, Headlines", CATEGORIES
        )

        texts = provider.embedding_calls[0]
        assert texts[0] == "world news today\nhttps://news.example.com/world\ndaily, headlines"
        assert texts[1:] == CATEGORIES

    @pytest.mark.asyncio
    async def test_categories_are_lower_cased(self, categorizer):
        category = await categorizer.categorize(
            "https://news.example.com", "World News", "", ["News", "Shopping"]
        )
        assert category == "news"


class TestLLMFallback:
    """Categorization falling back to the chat model."""

    @pytest.mark.asyncio
    async def test_embedding_failure_calls_completion_once(self, cache, settings):
        provider = FakeProvider(completion=lambda messages: "News", embeddings_fail=True)
        categorizer = TabCategorizer(provider, cache, settings=settings)

        category = await categorizer.categorize(
            "https://example.com/a", "Some Page", "", CATEGORIES
        )

        assert category == "news"
        assert len(provider.completion_calls) == 1

    @pytest.mark.asyncio
    async def test_low_confidence_match_falls_through(self, cache, settings):
        """A sub-threshold embedding match still asks the chat model."""
        provider = FakeProvider(completion=lambda messages: "Shopping")
        categorizer = TabCategorizer(provider, cache, settings=settings)

        category = await categorizer.categorize(
            "https://example.com/python", "Python tips", "", CATEGORIES
        )

        assert category == "shopping"
        assert len(provider.embedding_calls) == 1
        assert len(provider.completion_calls) == 1

    @pytest.mark.asyncio
    async def test_prompt_lists_categories(self, cache, settings):
        provider = FakeProvider(completion=lambda messages: "None", embeddings_fail=True)
        categorizer = TabCategorizer(provider, cache, settings=settings)

        await categorizer.categorize("https://example.com", "Page", "", CATEGORIES)

        system, user = provider.completion_calls[0]
        assert "news, shopping" in system["content"]
        assert user["content"].endswith("Category:")
        assert "URL: https://example.com" in user["content"]

    @pytest.mark.asyncio
    async def test_none_answer_returns_none(self, cache, settings):
        provider = FakeProvider(completion=lambda messages: "None")
        categorizer = TabCategorizer(provider, cache, settings=settings)

        category = await categorizer.categorize(
            "https://example.com/python", "Python tips", "", CATEGORIES
        )

        assert category is None

    @pytest.mark.asyncio
    async def test_none_answer_is_cached(self, cache, settings):
        """A cached "none" short-circuits the next identical request."""
        provider = FakeProvider(completion=lambda messages: "None")
        categorizer = TabCategorizer(provider, cache, settings=settings)

        await categorizer.categorize("https://example.com/python", "Python tips", "", CATEGORIES)
        await categorizer.categorize("https://example.com/python", "Python tips", "", CATEGORIES)

        assert len(provider.completion_calls) == 1
        assert "none" in cache.get_cache(CATEGORY_NAMESPACE).values()

    @pytest.mark.asyncio
    async def test_provider_failure_is_not_cached(self, cache, settings):
        provider = FakeProvider(completion=lambda messages: None, embeddings_fail=True)
        categorizer = TabCategorizer(provider, cache, settings=settings)

        first = await categorizer.categorize("https://example.com", "Page", "", CATEGORIES)
        second = await categorizer.categorize("https://example.com", "Page", "", CATEGORIES)

        assert first is None
        assert second is None
        assert len(provider.completion_calls) == 2
        assert cache.get_cache(CATEGORY_NAMESPACE) == {}


class TestCaching:
    """Cache behavior of categorize()."""

    @pytest.mark.asyncio
    async def test_repeated_request_hits_cache(self, categorizer, provider):
        """Identical inputs give identical results with no further provider calls."""
        first = await categorizer.categorize(
            "https://news.example.com", "World News", "", CATEGORIES
        )
        calls_after_first = len(provider.embedding_calls)

        second = await categorizer.categorize(
            "https://news.example.com", "World News", "", CATEGORIES
        )

        assert first == second == "news"
        assert len(provider.embedding_calls) == calls_after_first
        assert provider.completion_calls == []

    @pytest.mark.asyncio
    async def test_key_is_case_insensitive(self, categorizer, provider):
        await categorizer.categorize("https://news.example.com", "World News", "", CATEGORIES)
        await categorizer.categorize("HTTPS://NEWS.EXAMPLE.COM", "WORLD NEWS", "", CATEGORIES)

        assert len(provider.embedding_calls) == 1


class TestPreconditions:
    """Configuration and input checks."""

    @pytest.mark.asyncio
    async def test_empty_categories(self, categorizer, provider):
        assert await categorizer.categorize("https://a.com", "A", "", []) is None
        assert provider.embedding_calls == []

    @pytest.mark.asyncio
    async def test_missing_api_key(self, provider, cache, settings):
        settings.openai_api_key = None
        categorizer = TabCategorizer(provider, cache, settings=settings)

        assert await categorizer.categorize("https://a.com", "A", "", CATEGORIES) is None
        assert provider.embedding_calls == []
        assert provider.completion_calls == []

    @pytest.mark.asyncio
    async def test_missing_model(self, provider, cache, settings):
        settings.openai_llm_model = None
        categorizer = TabCategorizer(provider, cache, settings=settings)

        assert await categorizer.categorize("https://a.com", "A", "", CATEGORIES) is None
        assert provider.embedding_calls == []

    @pytest.mark.asyncio
    async def test_non_string_input_raises(self, categorizer):
        with pytest.raises(ValueError):
            await categorizer.categorize(None, "Title", "", CATEGORIES)
