"""
Agents that organize browser tabs into native tab groups.

This package provides:
- Tab categorization against known categories (TabCategorizer)
- Placement into existing groups (GroupPlacer)
- Clustering and labeling of leftover tabs (HierarchicalClusterer)
- The full organize pass (TabOrganizer)
"""

from tab_grouper.agents.models import (
    TabCluster,
    OrganizeResult,
)
from tab_grouper.agents.providers import EmbeddingCache, LLMProvider, OpenAIProvider
from tab_grouper.agents.categorizer import TabCategorizer
from tab_grouper.agents.group_placer import GroupPlacer
from tab_grouper.agents.hierarchical import HierarchicalClusterer
from tab_grouper.agents.organizer import TabOrganizer

__all__ = [
    "TabCluster",
    "OrganizeResult",
    "EmbeddingCache",
    "LLMProvider",
    "OpenAIProvider",
    "TabCategorizer",
    "GroupPlacer",
    "HierarchicalClusterer",
    "TabOrganizer",
]
