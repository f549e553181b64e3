"""
Embedding and completion providers.

The categorization pipeline only depends on the LLMProvider interface: one
batch embedding call and one chat completion call, both returning None on
failure instead of raising.
"""

from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tab_grouper.config import get_logger
from tab_grouper.storage.cache import CacheStore, EMBEDDING_NAMESPACE, make_cache_key

logger = get_logger(__name__)

# Errors worth a second attempt; auth and bad-request errors are not
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
)


class LLMProvider(ABC):
    """Abstract interface for embedding and chat completion backends."""

    @abstractmethod
    async def fetch_embeddings(
        self, api_key: str, texts: list[str]
    ) -> Optional[list[list[float]]]:
        """
        Embed an ordered batch of texts in a single request.

        Args:
            api_key: Provider API key
            texts: Texts to embed

        Returns:
            One vector per input text (same order), or None on failure
        """
        pass

    @abstractmethod
    async def fetch_completion(
        self,
        api_key: str,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int = 10,
    ) -> Optional[str]:
        """
        Run a chat completion.

        Args:
            api_key: Provider API key
            model: Chat model name
            messages: Chat messages ({"role": ..., "content": ...})
            max_tokens: Completion token budget

        Returns:
            Trimmed response text, or None on failure
        """
        pass


class OpenAIProvider(LLMProvider):
    """LLMProvider backed by the OpenAI async client."""

    def __init__(
        self,
        embedding_model: str = "text-embedding-3-small",
        timeout: float = 20.0,
        max_attempts: int = 2,
        base_url: Optional[str] = None,
    ):
        """
        Initialize the provider.

        Args:
            embedding_model: Embedding model name
            timeout: Per-request timeout in seconds; expiry counts as failure
            max_attempts: Attempts for transient errors (connection, timeout, rate limit)
            base_url: Optional OpenAI-compatible endpoint
        """
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_url = base_url
        self._clients: dict[str, AsyncOpenAI] = {}

    def _get_client(self, api_key: str) -> AsyncOpenAI:
        """Get or create the client for an API key (retries are handled here, not by the SDK)."""
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
            self._clients[api_key] = client
        return client

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=5),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )

    async def fetch_embeddings(
        self, api_key: str, texts: list[str]
    ) -> Optional[list[list[float]]]:
        if not texts:
            return []

        client = self._get_client(api_key)
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await client.embeddings.create(
                        model=self.embedding_model, input=texts
                    )
        except (openai.OpenAIError, RetryError) as e:
            logger.warning(f"Error fetching embeddings: {e}")
            return None

        embeddings = [data.embedding for data in response.data]
        if len(embeddings) != len(texts):
            logger.warning(
                f"Error fetching embeddings: expected {len(texts)} vectors, got {len(embeddings)}"
            )
            return None
        return embeddings

    async def fetch_completion(
        self,
        api_key: str,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int = 10,
    ) -> Optional[str]:
        client = self._get_client(api_key)
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await client.chat.completions.create(
                        model=model,
                        messages=messages,
                        max_tokens=max_tokens,
                    )
        except (openai.OpenAIError, RetryError) as e:
            logger.warning(f"Error fetching completion: {e}")
            return None

        if not response.choices or response.choices[0].message is None:
            logger.warning(f"Invalid completion response format: {response}")
            return None

        content = response.choices[0].message.content
        if content is None:
            return None
        return content.strip()

    async def close(self) -> None:
        """Close every underlying HTTP client."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


class EmbeddingCache:
    """Memoizes batch embedding calls by the exact ordered text array."""

    def __init__(self, provider: LLMProvider, cache: CacheStore):
        self.provider = provider
        self.cache = cache

    async def get_embeddings(
        self, api_key: str, texts: list[str]
    ) -> Optional[list[list[float]]]:
        """
        Return embeddings for texts, calling the provider only on a cache miss.

        Failed calls are not cached, so the next pass tries again.
        """
        cache_key = make_cache_key(textArray=texts)
        cached = self.cache.lookup(EMBEDDING_NAMESPACE, cache_key)
        if cached is not None:
            return cached

        fetched = await self.provider.fetch_embeddings(api_key, texts)
        if fetched:
            self.cache.store(EMBEDDING_NAMESPACE, cache_key, fetched)
        return fetched
