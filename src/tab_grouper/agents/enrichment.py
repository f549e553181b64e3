"""
Optional meta text enrichment for tabs.

Meta text is best-effort: a slow or failing lookup must never hold up
categorization, so every lookup is bounded and degrades to an empty string.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Optional, TypeVar

import httpx
from bs4 import BeautifulSoup

from tab_grouper.config import get_logger
from tab_grouper.browser.models import TabDescriptor

logger = get_logger(__name__)

T = TypeVar("T")

OPEN_GRAPH_PROPERTIES = ("og:title", "og:description")


async def bounded(coro: Awaitable[T], timeout: float, default: T) -> T:
    """
    Await an optional enrichment step, giving up after `timeout` seconds.

    Args:
        coro: Awaitable producing the enrichment value
        timeout: Seconds to wait
        default: Value returned on timeout or error

    Returns:
        The awaited value, or `default` if it failed or did not finish in time
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug(f"Enrichment step timed out after {timeout}s")
        return default
    except Exception as e:
        logger.debug(f"Enrichment step failed: {e}")
        return default


def extract_open_graph(page: str) -> list[str]:
    """
    Extract og:title / og:description contents from an HTML page.

    Returns:
        Non-empty contents in document order
    """
    soup = BeautifulSoup(page, "html.parser")
    contents = []
    for tag in soup.find_all("meta", attrs={"property": list(OPEN_GRAPH_PROPERTIES)}):
        content = (tag.get("content") or "").strip()
        if content:
            contents.append(content)
    return contents


class MetaTextSource(ABC):
    """Abstract source of page-level meta text for a tab."""

    @abstractmethod
    async def fetch_meta_text(self, tab: TabDescriptor) -> str:
        """
        Fetch meta text for a tab.

        Returns:
            Meta text, or "" when nothing is available
        """
        pass


class HttpMetaTextSource(MetaTextSource):
    """Reads Open Graph title/description by fetching the tab's page."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 5.0):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": "tab-grouper/0.1"},
        )

    async def fetch_meta_text(self, tab: TabDescriptor) -> str:
        if not tab.url.startswith(("http://", "https://")):
            return ""

        try:
            response = await self.client.get(tab.url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Could not fetch meta tags for {tab.url}: {e}")
            return ""

        meta_text = " ".join(extract_open_graph(response.text))
        logger.debug(f"Fetched meta tags for tab ID={tab.id}: {meta_text}")
        return meta_text

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


async def build_meta_text(
    tab: TabDescriptor,
    source: Optional[MetaTextSource] = None,
    domain_descriptions: Optional[dict[str, str]] = None,
    timeout: float = 0.1,
) -> str:
    """
    Assemble the auxiliary text used to categorize a tab.

    Combines the configured description for the tab's domain, the meta text
    the tab already carries and, when a source is given, page meta text fetched
    within `timeout` seconds. Parts are comma-separated so they become
    separate meta tag fragments.

    Args:
        tab: Tab to enrich
        source: Optional page meta text source
        domain_descriptions: Default description per hostname
        timeout: Seconds to wait for the source

    Returns:
        Combined meta text ("" if nothing is known)
    """
    parts = []

    domain = tab.domain
    if domain and domain_descriptions:
        description = domain_descriptions.get(domain) or domain_descriptions.get(
            domain.removeprefix("www.")
        )
        if description:
            parts.append(description)

    if tab.meta_text:
        parts.append(tab.meta_text)

    if source is not None:
        fetched = await bounded(source.fetch_meta_text(tab), timeout, "")
        if fetched:
            parts.append(fetched)

    return ", ".join(part.strip() for part in parts if part.strip())
