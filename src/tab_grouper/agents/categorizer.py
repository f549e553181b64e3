"""
Single-tab categorization against a known category list.

Embeddings are tried first (cheap once cached); the chat model is only asked
when the embedding phase fails or is not confident. Every decision is memoized
by a canonical key built from the normalized inputs.
"""

from typing import Optional, Union

from tab_grouper.config import Settings, get_logger, get_settings
from tab_grouper.agents.parsing import normalize_label
from tab_grouper.agents.providers import LLMProvider
from tab_grouper.similarity import cosine_similarity
from tab_grouper.storage.cache import CacheStore, CATEGORY_NAMESPACE, make_cache_key

logger = get_logger(__name__)

NO_CATEGORY = "none"

CATEGORY_MAX_TOKENS = 10


def normalize_meta_tags(aux_text: Union[str, list[str], None]) -> list[str]:
    """
    Normalize auxiliary text into lower-cased, trimmed fragments.

    Strings are split on commas; lists are lower-cased item by item.
    """
    if not aux_text:
        return []
    if isinstance(aux_text, str):
        return [tag.strip() for tag in aux_text.lower().split(",")]
    return [str(tag).lower().strip() for tag in aux_text]


class TabCategorizer:
    """
    Decides which configured category a tab belongs to.

    Attributes:
        provider: Embedding/completion backend
        cache: Cache store for category decisions
        similarity_threshold: Minimum cosine similarity to accept an embedding match
    """

    def __init__(
        self,
        provider: LLMProvider,
        cache: CacheStore,
        settings: Optional[Settings] = None,
        similarity_threshold: Optional[float] = None,
    ):
        self.provider = provider
        self.cache = cache
        self.settings = settings or get_settings()
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else self.settings.category_threshold
        )

    async def categorize(
        self,
        url: str,
        title: str,
        aux_text: Union[str, list[str], None],
        categories: list[str],
    ) -> Optional[str]:
        """
        Categorize a tab.

        Args:
            url: Tab URL
            title: Tab title
            aux_text: Optional meta text (comma-separated string or list)
            categories: Candidate category names

        Returns:
            Lower-cased category name, or None if nothing fits or the
            provider is not configured

        Raises:
            ValueError: If url or title is not a string
        """
        if not isinstance(url, str) or not isinstance(title, str):
            raise ValueError("url and title must be strings")

        api_key = self.settings.openai_api_key
        if not api_key:
            logger.debug("No API key configured, skipping categorization")
            return None

        model = self.settings.openai_llm_model
        if not model:
            logger.debug("No model configured, skipping categorization")
            return None

        if not categories:
            logger.debug("No categories configured, skipping categorization")
            return None

        logger.debug(f"Starting categorization for url={url}, title={title}")

        category = await self._get_cached_category(
            api_key,
            model,
            url.lower(),
            title.lower(),
            normalize_meta_tags(aux_text),
            [c.lower().strip() for c in categories],
        )

        if not category or category.lower() == NO_CATEGORY:
            logger.info(f"Categorized {url} => None")
            return None

        logger.info(f"Categorized {url} => {category}")
        return category.strip()

    async def _get_cached_category(
        self,
        api_key: str,
        model: str,
        url: str,
        title: str,
        meta_tags: list[str],
        categories: list[str],
    ) -> Optional[str]:
        cache_key = make_cache_key(
            url=url, title=title, metaTags=meta_tags, categories=categories
        )
        cached = self.cache.lookup(CATEGORY_NAMESPACE, cache_key)
        if cached is not None:
            return cached

        category = await self._get_vector_category(
            api_key, url, title, meta_tags, categories
        )

        if not category:
            logger.info("Vector-based categorization failed. Falling back to LLM.")
            category = await self._get_llm_category(
                api_key, model, url, title, meta_tags, categories
            )

        # Provider failures are not cached
        if category:
            self.cache.store(CATEGORY_NAMESPACE, cache_key, category)
        return category

    async def _get_vector_category(
        self,
        api_key: str,
        url: str,
        title: str,
        meta_tags: list[str],
        categories: list[str],
    ) -> Optional[str]:
        """
        Compare the tab's combined text against each category by embedding.

        Returns:
            Best category if its similarity exceeds the threshold, else None
        """
        text_to_embed = f"{title}\n{url}\n{', '.join(meta_tags)}".lower()

        embeddings = await self.provider.fetch_embeddings(
            api_key, [text_to_embed, *categories]
        )
        if not embeddings:
            logger.info("Vector categorization: no embeddings returned")
            return None

        combined_embedding, *category_embeddings = embeddings

        best_category = None
        max_similarity = -1.0
        for category, embedding in zip(categories, category_embeddings):
            similarity = cosine_similarity(combined_embedding, embedding)
            if similarity > max_similarity:
                max_similarity = similarity
                best_category = category

        if max_similarity > self.similarity_threshold:
            logger.info(
                f"Vector categorization: url={url}, best match={best_category}, similarity={max_similarity:.3f}"
            )
            return best_category

        logger.info(
            f"Vector categorization: no confident match (url={url}, best match={best_category}, similarity={max_similarity:.3f})"
        )
        return None

    async def _get_llm_category(
        self,
        api_key: str,
        model: str,
        url: str,
        title: str,
        meta_tags: list[str],
        categories: list[str],
    ) -> Optional[str]:
        messages = [
            {
                "role": "system",
                "content": (
                    "Categorize the following URL, title, and meta tags into one of "
                    f"these categories: {', '.join(categories)}. "
                    'If it cannot be categorized, return "None".'
                ),
            },
            {
                "role": "user",
                "content": f"URL: {url}\nTitle: {title}\nMetaTags: {', '.join(meta_tags)}\nCategory:",
            },
        ]

        answer = await self.provider.fetch_completion(
            api_key, model, messages, CATEGORY_MAX_TOKENS
        )
        if answer is None:
            logger.warning(f"LLM categorization failed for {url}")
            return None

        return normalize_label(answer) or NO_CATEGORY
