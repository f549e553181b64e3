"""
Placement of a categorized tab into an existing native tab group.
"""

from typing import Optional

from tab_grouper.config import Settings, get_logger, get_settings
from tab_grouper.agents.providers import EmbeddingCache
from tab_grouper.browser.base import BrowserError, TabBrowser
from tab_grouper.similarity import cosine_similarity

logger = get_logger(__name__)


class GroupPlacer:
    """
    Matches a category name against existing group titles by embedding.

    The acceptance threshold (group_threshold, 0.7) is stricter than the
    categorization threshold.

    Attributes:
        browser: Browser collaborator
        embeddings: Cached embedding lookups
        similarity_threshold: Minimum cosine similarity to accept a group
        groups_supported: Capability flag; False disables placement entirely
    """

    def __init__(
        self,
        browser: TabBrowser,
        embeddings: EmbeddingCache,
        settings: Optional[Settings] = None,
        similarity_threshold: Optional[float] = None,
        groups_supported: bool = True,
    ):
        self.browser = browser
        self.embeddings = embeddings
        self.settings = settings or get_settings()
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else self.settings.group_threshold
        )
        self.groups_supported = groups_supported

    async def place_in_existing_group(self, tab_id: int, category: str) -> bool:
        """
        Try to add a tab to the existing group whose title best matches its category.

        Args:
            tab_id: Tab to place
            category: The tab's category name

        Returns:
            True if the tab is now in an existing group, False if the caller
            should create a new group instead
        """
        if not self.groups_supported:
            logger.info("Tab grouping not supported in this environment")
            return False

        api_key = self.settings.openai_api_key
        if not api_key:
            return False

        try:
            groups = await self.browser.get_groups()
        except BrowserError as e:
            logger.warning(f"Could not query tab groups: {e}")
            return False

        # If no groups exist, we can't place it in an existing group
        if not groups:
            return False

        group_titles = [(group.title or "").lower() for group in groups]
        embeddings = await self.embeddings.get_embeddings(
            api_key, [category.lower(), *group_titles]
        )
        if not embeddings:
            return False

        category_embedding, *group_embeddings = embeddings

        best_group = None
        max_similarity = -1.0
        for group, embedding in zip(groups, group_embeddings):
            similarity = cosine_similarity(category_embedding, embedding)
            logger.debug(f"Candidate group='{group.title}', similarity={similarity:.3f}")
            if similarity > max_similarity:
                max_similarity = similarity
                best_group = group

        if best_group is None or max_similarity <= self.similarity_threshold:
            logger.info(f"No good group match for tab {tab_id} (category={category})")
            return False

        logger.info(
            f"Best match group='{best_group.title}' for tab {tab_id} (similarity={max_similarity:.3f})"
        )

        try:
            tab = await self.browser.get_tab(tab_id)
            if tab.group_id == best_group.id:
                logger.info(f"Tab {tab_id} is already in group '{best_group.title}'")
                return True

            await self.browser.add_tabs_to_group([tab_id], group_id=best_group.id)
        except BrowserError as e:
            logger.warning(f"Error grouping tab {tab_id} into '{best_group.title}': {e}")
            return False

        logger.info(f"Placed tab {tab_id} into existing group '{best_group.title}'")
        return True
