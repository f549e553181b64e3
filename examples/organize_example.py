"""
Example organizing a window of tabs into native tab groups.

This example shows:
1. Seeding an in-memory browser with tabs and existing groups
2. Categorizing tabs against the existing group titles
3. Placing matching tabs into existing groups
4. Clustering and labeling the leftover tabs
"""

import asyncio

from tab_grouper.agents import OpenAIProvider, TabOrganizer
from tab_grouper.agents.enrichment import HttpMetaTextSource
from tab_grouper.browser import GroupColor, InMemoryBrowser, TabDescriptor, TabGroup
from tab_grouper.config import get_settings, setup_logging
from tab_grouper.storage.cache import create_cache_store


async def run():
    """Run one organize pass and print the resulting operations."""

    settings = get_settings()
    setup_logging(settings.log_level)

    browser = InMemoryBrowser(
        tabs=[
            TabDescriptor(id=1, url="https://www.bbc.com/news/world", title="World news - BBC", window_id=1),
            TabDescriptor(id=2, url="https://docs.python.org/3/tutorial/", title="The Python Tutorial", window_id=1),
            TabDescriptor(id=3, url="https://packaging.python.org/en/latest/", title="Python Packaging User Guide", window_id=1),
            TabDescriptor(id=4, url="https://www.allrecipes.com/recipe/6865/", title="Banana Bread Recipe", window_id=1),
            TabDescriptor(id=5, url="https://weather.com/", title="Local Weather Forecast", window_id=1),
        ],
        groups=[
            TabGroup(id=100, title="News", color=GroupColor.BLUE, window_id=1),
            TabGroup(id=101, title="Shopping", color=GroupColor.GREEN, window_id=1),
        ],
    )

    provider = OpenAIProvider(
        embedding_model=settings.openai_embedding_model,
        timeout=settings.request_timeout,
        base_url=settings.openai_base_url,
    )
    meta_source = HttpMetaTextSource()
    organizer = TabOrganizer(
        browser,
        provider,
        create_cache_store(settings.cache_db_path),
        settings=settings,
        meta_source=meta_source,
    )
    organizer.initialize()

    try:
        result = await organizer.organize_tabs(await browser.list_tabs())
    finally:
        await meta_source.close()
        await provider.close()

    print("=" * 80)
    print("Group operations")
    print("=" * 80)
    for operation in browser.operations:
        print(f"  {operation.action:<6} group={operation.group_id} title={operation.title!r} tabs={operation.tab_ids}")
    print()
    print(f"Placed into existing groups: {result.placed_tab_ids}")
    print(f"Leftover tabs: {result.leftover_tab_ids}")
    for cluster in result.clusters:
        print(f"  Cluster '{cluster.title}': {cluster.get_tab_titles()}")


def main():
    settings = get_settings()
    if not settings.openai_api_key:
        print("ERROR: OPENAI_API_KEY not set in .env file")
        return
    asyncio.run(run())


if __name__ == "__main__":
    main()
