"""
Organize pass over a set of tabs.

Each tab is categorized and either placed into a matching existing group or
given a new group named after its category. Tabs that fit no category are
collected and handed to the hierarchical clusterer once every tab has been
processed.
"""

import asyncio
from collections import Counter
from typing import Optional

from tab_grouper.config import Settings, get_logger, get_settings
from tab_grouper.agents.categorizer import TabCategorizer
from tab_grouper.agents.enrichment import MetaTextSource, build_meta_text
from tab_grouper.agents.group_placer import GroupPlacer
from tab_grouper.agents.hierarchical import HierarchicalClusterer
from tab_grouper.agents.models import OrganizeResult
from tab_grouper.agents.providers import EmbeddingCache, LLMProvider
from tab_grouper.browser.base import BrowserError, TabBrowser
from tab_grouper.browser.models import ColorCycle, GroupOperation, TabDescriptor
from tab_grouper.storage.cache import CacheStore, LEFTOVER_NAMESPACE

logger = get_logger(__name__)

INTERNAL_URL_PREFIXES = ("chrome://", "chrome-extension://", "about:", "edge://")

LEFTOVER_SNAPSHOT_KEY = "snapshot"

PLACED = "placed"
CREATED = "created"
UNGROUPED = "ungrouped"
LEFTOVER = "leftover"


def should_skip_tab(tab: TabDescriptor, window_tab_count: Optional[int] = None) -> bool:
    """
    Decide whether a tab is excluded from organizing.

    Skipped: tabs without url or title, internal browser pages, pinned tabs
    and the only tab of its window.

    Args:
        tab: Candidate tab
        window_tab_count: Number of tabs in the tab's window, if known
    """
    if not tab.url or not tab.title:
        logger.debug(f"Skipping tab ID={tab.id}: missing url or title")
        return True
    if tab.url.startswith(INTERNAL_URL_PREFIXES):
        logger.debug(f"Skipping internal tab ID={tab.id}, URL={tab.url}")
        return True
    if tab.pinned:
        logger.debug(f"Skipping pinned tab ID={tab.id}")
        return True
    if window_tab_count == 1:
        logger.info(f"Skipping tab ID={tab.id} in single tabbed window.")
        return True
    return False


def leftover_snapshot(tabs: list[TabDescriptor]) -> str:
    """Order-independent summary of a leftover tab set."""
    return ",".join(sorted(f"{tab.id}|{tab.url}" for tab in tabs))


class TabOrganizer:
    """
    Runs categorize, place and cluster passes against a browser.

    Attributes:
        browser: Browser collaborator
        cache: Shared cache store (categories, embeddings, leftover snapshot)
        categorizer: Per-tab categorizer
        placer: Existing-group placement
        clusterer: Leftover clustering and labeling
    """

    def __init__(
        self,
        browser: TabBrowser,
        provider: LLMProvider,
        cache: CacheStore,
        settings: Optional[Settings] = None,
        meta_source: Optional[MetaTextSource] = None,
    ):
        self.browser = browser
        self.provider = provider
        self.cache = cache
        self.settings = settings or get_settings()
        self.meta_source = meta_source

        self.colors = ColorCycle()
        self.embeddings = EmbeddingCache(provider, cache)
        self.categorizer = TabCategorizer(provider, cache, settings=self.settings)
        self.placer = GroupPlacer(
            browser,
            self.embeddings,
            settings=self.settings,
            groups_supported=self.settings.tab_groups_enabled and browser.supports_groups,
        )
        self.clusterer = HierarchicalClusterer(
            provider,
            self.embeddings,
            browser,
            settings=self.settings,
            colors=self.colors,
        )

        self._clustering_in_progress = False

    def initialize(self) -> None:
        """Reset all cached decisions, embeddings and the leftover snapshot."""
        self.cache.clear()
        logger.info("Cache cleared")

    async def regroup_all(self, window_id: Optional[int] = None) -> OrganizeResult:
        """
        Organize every ungrouped tab of a window (all windows when None).
        """
        tabs = await self.browser.list_tabs(window_id)
        ungrouped = [tab for tab in tabs if tab.group_id is None]
        logger.info(f"Regrouping {len(ungrouped)} ungrouped tabs (window={window_id})")
        return await self.organize_tabs(ungrouped)

    async def organize_tabs(self, tabs: list[TabDescriptor]) -> OrganizeResult:
        """
        Categorize, place and cluster a batch of tabs.

        Args:
            tabs: Tabs to organize (typically the ungrouped tabs)

        Returns:
            OrganizeResult describing what happened to each tab
        """
        result = OrganizeResult()

        if not tabs:
            logger.info("No ungrouped tabs to process.")
            return result

        if not self.settings.openai_api_key:
            logger.info("No API key found. Aborting.")
            return result
        if not self.settings.openai_llm_model:
            logger.info("No model found. Aborting.")
            return result

        categories = await self._get_categories()
        logger.info(f"Known categories: {categories}")

        window_counts = await self._get_window_tab_counts(tabs)
        candidates = []
        for tab in tabs:
            if should_skip_tab(tab, window_counts.get(tab.window_id)):
                result.skipped_tab_ids.append(tab.id)
            else:
                candidates.append(tab)

        outcomes = await asyncio.gather(
            *(self._process_tab(tab, categories) for tab in candidates),
            return_exceptions=True,
        )

        leftover_tabs = []
        for tab, outcome in zip(candidates, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error organizing tab ID={tab.id}: {outcome}", exc_info=outcome)
                continue

            status, operation = outcome
            if status == PLACED:
                result.placed_tab_ids.append(tab.id)
            elif status == CREATED:
                result.created_groups.append(operation)
            elif status == UNGROUPED:
                result.ungrouped_tab_ids.append(tab.id)
            else:
                leftover_tabs.append(tab)

        result.leftover_tab_ids = [tab.id for tab in leftover_tabs]

        clusters = await self._cluster_leftovers(leftover_tabs)
        if clusters is None:
            result.clustering_skipped = True
        else:
            result.clusters = clusters
            result.created_groups.extend(self.clusterer.last_operations)

        logger.info(
            f"Organized {len(tabs)} tabs: {len(result.placed_tab_ids)} placed, "
            f"{len(result.created_groups)} groups created, "
            f"{len(result.ungrouped_tab_ids)} ungrouped, "
            f"{len(result.leftover_tab_ids)} leftover, {len(result.skipped_tab_ids)} skipped"
        )
        return result

    async def _get_categories(self) -> list[str]:
        if self.settings.categories:
            return list(self.settings.categories)

        try:
            groups = await self.browser.get_groups()
        except BrowserError as e:
            logger.warning(f"Could not query tab groups for categories: {e}")
            return []

        return list(dict.fromkeys(group.title for group in groups if group.title))

    async def _get_window_tab_counts(self, tabs: list[TabDescriptor]) -> Counter:
        try:
            all_tabs = await self.browser.list_tabs()
        except BrowserError as e:
            logger.warning(f"Could not list tabs, counting the given batch instead: {e}")
            all_tabs = tabs
        return Counter(tab.window_id for tab in all_tabs if tab.window_id is not None)

    async def _process_tab(
        self, tab: TabDescriptor, categories: list[str]
    ) -> tuple[str, Optional[GroupOperation]]:
        logger.debug(f"Fetching meta tags for tab ID={tab.id}, URL={tab.url}")
        meta_text = await build_meta_text(
            tab,
            self.meta_source,
            self.settings.domain_descriptions,
            self.settings.meta_text_timeout,
        )

        category = await self.categorizer.categorize(tab.url, tab.title, meta_text, categories)
        if not category:
            return LEFTOVER, None

        if await self.placer.place_in_existing_group(tab.id, category):
            return PLACED, None

        if not self.placer.groups_supported:
            logger.info(f"Tab groups unavailable, leaving tab ID={tab.id} ({category}) ungrouped")
            return UNGROUPED, None

        color = self.colors.next_color()
        try:
            group_id = await self.browser.create_group([tab.id], title=category, color=color)
        except BrowserError as e:
            logger.warning(f"Error grouping tab '{tab.title}': {e}")
            return UNGROUPED, None

        logger.info(f"Created group '{category}' for tab ID={tab.id} (ID: {group_id})")
        return CREATED, GroupOperation(
            action="create",
            group_id=group_id,
            tab_ids=[tab.id],
            title=category,
            color=color,
        )

    async def _cluster_leftovers(self, leftover_tabs: list[TabDescriptor]):
        """
        Cluster leftovers unless a run is in flight or the set is unchanged.

        Returns:
            Labeled clusters, or None when clustering was skipped
        """
        if self._clustering_in_progress:
            logger.info("Clustering already in progress. Skipping.")
            return None

        snapshot = leftover_snapshot(leftover_tabs)
        previous = self.cache.lookup(LEFTOVER_NAMESPACE, LEFTOVER_SNAPSHOT_KEY) or ""
        if snapshot == previous:
            logger.info("No changes in leftover tabs. Skipping clustering.")
            return None
        self.cache.store(LEFTOVER_NAMESPACE, LEFTOVER_SNAPSHOT_KEY, snapshot)

        if len(leftover_tabs) < 2:
            logger.info("No need to cluster. 0 or 1 leftover tab found.")
            return []

        self._clustering_in_progress = True
        try:
            return await self.clusterer.cluster_and_label(
                leftover_tabs, self.settings.cluster_distance_threshold
            )
        finally:
            self._clustering_in_progress = False
