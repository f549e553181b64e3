"""
Hierarchical clustering of leftover tabs.

Tabs that matched no known category are embedded, merged bottom-up with
average linkage, labeled by the chat model and turned into new tab groups
(clusters with a single member stay ungrouped).

The merge loop is O(n^3) in the number of leftover tabs: each pass scans every
cluster pair, and there are at most n - 1 merges. That is fine for the tabs of
a browser session but not for thousands of items.
"""

from typing import Optional

import numpy as np

from tab_grouper.config import Settings, get_logger, get_settings
from tab_grouper.agents.models import TabCluster
from tab_grouper.agents.parsing import normalize_label
from tab_grouper.agents.providers import EmbeddingCache, LLMProvider
from tab_grouper.browser.base import BrowserError, TabBrowser
from tab_grouper.browser.models import ColorCycle, GroupOperation, TabDescriptor
from tab_grouper.similarity import cosine_distance_matrix

logger = get_logger(__name__)

DEFAULT_LABEL = "new group"
LABEL_MAX_TOKENS = 10

LABEL_SYSTEM_PROMPT = (
    "Generate a short, distinctive tab group title with a maximum of two, "
    'but ideally a single word. Examples: "News", "Sports", "Tech", "Insurance".'
)


def average_linkage_clusters(
    distances: np.ndarray, distance_threshold: float
) -> list[list[int]]:
    """
    Bottom-up clustering over a precomputed distance matrix.

    Starts with one cluster per item and repeatedly merges the closest pair
    (mean distance over all cross pairs) while that distance is strictly
    below the threshold. Ties go to the first pair in (i, j) order.

    Args:
        distances: (n, n) symmetric distance matrix
        distance_threshold: Merge only below this average distance

    Returns:
        Member indices of each resulting cluster
    """
    clusters: list[list[int]] = [[i] for i in range(len(distances))]

    while len(clusters) > 1:
        best_distance = np.inf
        best_pair: Optional[tuple[int, int]] = None

        for i in range(len(clusters)):
            for j in range(i + 1, len(clusters)):
                distance = float(np.mean(distances[np.ix_(clusters[i], clusters[j])]))
                logger.debug(f"Distance between cluster {i} and {j}: {distance:.3f}")
                if distance < best_distance:
                    best_distance = distance
                    best_pair = (i, j)

        if best_pair is None or best_distance >= distance_threshold:
            break

        i, j = best_pair
        clusters[i] = clusters[i] + clusters[j]
        del clusters[j]

    return clusters


class HierarchicalClusterer:
    """
    Clusters leftover tabs and materializes multi-tab clusters as groups.

    Attributes:
        provider: Completion backend for labeling
        embeddings: Cached embedding lookups
        browser: Browser collaborator
        label_max_attempts: Label requests per cluster before suffixing
    """

    def __init__(
        self,
        provider: LLMProvider,
        embeddings: EmbeddingCache,
        browser: TabBrowser,
        settings: Optional[Settings] = None,
        colors: Optional[ColorCycle] = None,
        label_max_attempts: Optional[int] = None,
    ):
        self.provider = provider
        self.embeddings = embeddings
        self.browser = browser
        self.settings = settings or get_settings()
        self.colors = colors or ColorCycle()
        self.label_max_attempts = max(
            1,
            label_max_attempts
            if label_max_attempts is not None
            else self.settings.label_max_attempts,
        )
        self.last_operations: list[GroupOperation] = []

    async def cluster_and_label(
        self,
        leftover_tabs: list[TabDescriptor],
        distance_threshold: Optional[float] = None,
    ) -> list[TabCluster]:
        """
        Cluster leftover tabs, label every cluster and group multi-tab clusters.

        Args:
            leftover_tabs: Tabs that matched no known category
            distance_threshold: Average cosine distance below which clusters
                merge. Defaults to the configured cluster_distance_threshold.

        Returns:
            Labeled clusters (empty if fewer than 2 tabs or embedding failed)
        """
        self.last_operations = []

        if len(leftover_tabs) < 2:
            logger.info("Skipping hierarchical grouping: fewer than 2 tabs")
            return []

        if distance_threshold is None:
            distance_threshold = self.settings.cluster_distance_threshold

        api_key = self.settings.openai_api_key
        model = self.settings.openai_llm_model
        if not api_key or not model:
            logger.info("No API key or model configured, skipping clustering")
            return []

        logger.info(
            f"Clustering {len(leftover_tabs)} leftover tabs with threshold = {distance_threshold}"
        )

        texts = [f"{tab.title}\n{tab.url}" for tab in leftover_tabs]
        embeddings = await self.embeddings.get_embeddings(api_key, texts)
        if not embeddings:
            logger.warning("Error fetching embeddings for leftover tabs. Aborting clustering.")
            return []

        clusters = self.cluster(leftover_tabs, embeddings, distance_threshold)
        logger.info(f"Formed {len(clusters)} clusters from leftover tabs")

        await self.label_clusters(clusters, api_key, model)
        self.last_operations = await self.create_groups(clusters)
        return clusters

    def cluster(
        self,
        tabs: list[TabDescriptor],
        embeddings: list[list[float]],
        distance_threshold: float,
    ) -> list[TabCluster]:
        """
        Group tabs with average-linkage clustering.

        Args:
            tabs: Tabs to cluster
            embeddings: One embedding per tab (same order)
            distance_threshold: Merge threshold on average cosine distance

        Returns:
            Unlabeled clusters
        """
        if len(tabs) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(tabs)} tabs"
            )
        if not tabs:
            return []

        distances = cosine_distance_matrix(embeddings)
        member_lists = average_linkage_clusters(distances, distance_threshold)

        singletons = [
            TabCluster(index=i, tabs=[tab], embeddings=[list(embedding)])
            for i, (tab, embedding) in enumerate(zip(tabs, embeddings))
        ]

        clusters = []
        for index, members in enumerate(member_lists):
            cluster = singletons[members[0]]
            for member in members[1:]:
                cluster.merge(singletons[member])
            cluster.index = index
            clusters.append(cluster)
        return clusters

    async def label_clusters(
        self, clusters: list[TabCluster], api_key: str, model: str
    ) -> list[TabCluster]:
        """
        Ask the chat model for a short, unique label for each cluster.

        Labels already used in this run are passed to the model to push it
        toward distinct names. A label that still collides is requested again,
        up to label_max_attempts in total; after that a numeric suffix makes it
        unique ("news 2", "news 3", ...).
        """
        existing_labels: set[str] = set()

        for cluster in clusters:
            label = None
            for attempt in range(self.label_max_attempts):
                label = await self._request_label(cluster, existing_labels, api_key, model)
                if label not in existing_labels:
                    break
                logger.debug(
                    f"Label '{label}' already used (attempt {attempt + 1}/{self.label_max_attempts})"
                )

            if label in existing_labels:
                label = self._suffix_label(label, existing_labels)
                logger.info(f"Falling back to suffixed label '{label}'")

            existing_labels.add(label)
            cluster.title = label

        return clusters

    async def _request_label(
        self,
        cluster: TabCluster,
        existing_labels: set[str],
        api_key: str,
        model: str,
    ) -> str:
        titles = ", ".join(cluster.get_tab_titles())
        hostnames = ", ".join(cluster.get_hostnames())
        messages = [
            {"role": "system", "content": LABEL_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    f"Titles: {titles}\nURLs: {hostnames}\n"
                    f"Existing Labels: {', '.join(sorted(existing_labels))}\nGroup Title:"
                ),
            },
        ]
        answer = await self.provider.fetch_completion(
            api_key, model, messages, LABEL_MAX_TOKENS
        )
        return normalize_label(answer or "") or DEFAULT_LABEL

    @staticmethod
    def _suffix_label(label: str, existing_labels: set[str]) -> str:
        suffix = 2
        while f"{label} {suffix}" in existing_labels:
            suffix += 1
        return f"{label} {suffix}"

    async def create_groups(self, clusters: list[TabCluster]) -> list[GroupOperation]:
        """
        Create one native group per multi-tab cluster.

        Failures are logged per cluster and do not stop the remaining clusters.

        Returns:
            Operations for the groups that were created
        """
        operations = []
        for cluster in clusters:
            if cluster.tab_count <= 1:
                logger.debug("Skipping group creation for a single-tab cluster")
                continue

            tab_ids = cluster.get_tab_ids()
            color = self.colors.next_color()
            try:
                group_id = await self.browser.create_group(
                    tab_ids, title=cluster.title or DEFAULT_LABEL, color=color
                )
            except BrowserError as e:
                logger.warning(f"Error grouping tabs: {e}")
                logger.warning(f"Affected tabs: {', '.join(cluster.get_tab_titles())}")
                continue

            logger.info(
                f"Created group '{cluster.title}' with {len(tab_ids)} tabs (ID: {group_id})"
            )
            operations.append(
                GroupOperation(
                    action="create",
                    group_id=group_id,
                    tab_ids=tab_ids,
                    title=cluster.title,
                    color=color,
                )
            )
        return operations
