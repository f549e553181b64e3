"""
Data models for leftover-tab clustering and organize passes.
"""

from datetime import datetime, UTC
from typing import Optional

from pydantic import BaseModel, Field

from tab_grouper.browser.models import GroupOperation, TabDescriptor


class TabCluster(BaseModel):
    """A set of leftover tabs merged by hierarchical clustering.

    Tabs and embeddings are parallel lists: embeddings[i] belongs to tabs[i].

    Attributes:
        index: Transient position of the cluster during one clustering run
        tabs: Member tabs
        embeddings: Member embeddings
        title: Generated label (set after labeling)
    """

    index: int
    tabs: list[TabDescriptor] = Field(default_factory=list)
    embeddings: list[list[float]] = Field(default_factory=list)
    title: Optional[str] = None

    @property
    def tab_count(self) -> int:
        return len(self.tabs)

    def merge(self, other: "TabCluster") -> None:
        """Absorb the members of another cluster (list concatenation)."""
        self.tabs = self.tabs + other.tabs
        self.embeddings = self.embeddings + other.embeddings

    def get_tab_ids(self) -> list[int]:
        return [tab.id for tab in self.tabs]

    def get_tab_titles(self) -> list[str]:
        """Get list of all tab titles in this cluster.

        Returns:
            List of tab titles
        """
        return [tab.title for tab in self.tabs]

    def get_hostnames(self) -> list[str]:
        """Get the hostname of every member, falling back to the raw URL."""
        return [tab.domain or tab.url for tab in self.tabs]


class OrganizeResult(BaseModel):
    """Result of one organize pass.

    Attributes:
        placed_tab_ids: Tabs placed into pre-existing groups
        created_groups: Groups created for categorized tabs or clusters
        ungrouped_tab_ids: Categorized tabs left ungrouped (no group support or
            group creation failed)
        leftover_tab_ids: Tabs that matched no category
        skipped_tab_ids: Tabs excluded from categorization
        clusters: Labeled clusters from the leftover pass
        clustering_skipped: True when the leftover set was unchanged or busy
        timestamp: When the pass finished
    """

    placed_tab_ids: list[int] = Field(default_factory=list)
    created_groups: list[GroupOperation] = Field(default_factory=list)
    ungrouped_tab_ids: list[int] = Field(default_factory=list)
    leftover_tab_ids: list[int] = Field(default_factory=list)
    skipped_tab_ids: list[int] = Field(default_factory=list)
    clusters: list[TabCluster] = Field(default_factory=list)
    clustering_skipped: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
