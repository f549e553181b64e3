"""
Tests for meta text enrichment.
"""

import asyncio

import httpx
import pytest

from tab_grouper.agents.enrichment import (
    HttpMetaTextSource,
    MetaTextSource,
    bounded,
    build_meta_text,
    extract_open_graph,
)
from tab_grouper.browser import TabDescriptor


PAGE = """
<html><head>
  <meta property="og:title" content="Breaking &amp; Live">
  <meta name="description" content="ignored">
  <meta content='Top stories' property='og:description' />
  <meta property="og:image" content="https://img.example.com/a.png">
</head><body></body></html>
"""


class StaticSource(MetaTextSource):
    def __init__(self, text="", delay=0.0):
        self.text = text
        self.delay = delay

    async def fetch_meta_text(self, tab):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.text


def make_tab(url="https://www.news.example.com/world", meta_text=""):
    return TabDescriptor(id=1, title="World", url=url, meta_text=meta_text, window_id=1)


class TestBounded:
    """Tests for bounded()."""

    @pytest.mark.asyncio
    async def test_returns_value_in_time(self):
        async def quick():
            return "value"

        assert await bounded(quick(), 1.0, "") == "value"

    @pytest.mark.asyncio
    async def test_returns_default_on_timeout(self):
        async def slow():
            await asyncio.sleep(1.0)
            return "late"

        assert await bounded(slow(), 0.01, "") == ""

    @pytest.mark.asyncio
    async def test_returns_default_on_error(self):
        async def broken():
            raise RuntimeError("script injection failed")

        assert await bounded(broken(), 1.0, "") == ""


class TestExtractOpenGraph:
    def test_extracts_title_and_description(self):
        assert extract_open_graph(PAGE) == ["Breaking & Live", "Top stories"]

    def test_unquoted_and_reordered_attributes(self):
        page = '<meta content="Desc" property=og:description><meta property=og:title content=Title>'
        assert extract_open_graph(page) == ["Desc", "Title"]

    def test_empty_content_is_ignored(self):
        assert extract_open_graph('<meta property="og:title" content="  ">') == []

    def test_no_tags(self):
        assert extract_open_graph("<html></html>") == []


class TestBuildMetaText:
    """Tests for build_meta_text."""

    @pytest.mark.asyncio
    async def test_combines_domain_description_and_meta(self):
        tab = make_tab(meta_text="world headlines")
        descriptions = {"news.example.com": "Daily News"}

        meta_text = await build_meta_text(tab, None, descriptions)

        assert meta_text == "Daily News, world headlines"

    @pytest.mark.asyncio
    async def test_includes_source_text(self):
        meta_text = await build_meta_text(make_tab(), StaticSource("Top stories"), {}, timeout=1.0)
        assert meta_text == "Top stories"

    @pytest.mark.asyncio
    async def test_slow_source_is_dropped(self):
        tab = make_tab(meta_text="kept")

        meta_text = await build_meta_text(tab, StaticSource("late", delay=1.0), {}, timeout=0.01)

        assert meta_text == "kept"

    @pytest.mark.asyncio
    async def test_nothing_known(self):
        assert await build_meta_text(make_tab()) == ""


class TestHttpMetaTextSource:
    """Tests for HttpMetaTextSource with a mocked transport."""

    @pytest.mark.asyncio
    async def test_fetches_open_graph_tags(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=PAGE))
        async with httpx.AsyncClient(transport=transport) as client:
            source = HttpMetaTextSource(client=client)
            assert await source.fetch_meta_text(make_tab()) == "Breaking & Live Top stories"

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            source = HttpMetaTextSource(client=client)
            assert await source.fetch_meta_text(make_tab()) == ""

    @pytest.mark.asyncio
    async def test_non_http_urls_are_not_fetched(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=PAGE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            source = HttpMetaTextSource(client=client)
            assert await source.fetch_meta_text(make_tab(url="file:///tmp/a.html")) == ""

        assert requests == []

    @pytest.mark.asyncio
    async def test_invalid_url_returns_empty(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=PAGE))
        async with httpx.AsyncClient(transport=transport) as client:
            source = HttpMetaTextSource(client=client)
            assert await source.fetch_meta_text(make_tab(url="http://[::1/tutorial")) == ""
