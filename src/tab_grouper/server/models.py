"""
Pydantic models for API request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, Field

from tab_grouper.browser.models import GroupColor, GroupOperation


# ============================================================================
# Request Models
# ============================================================================


class TabInput(BaseModel):
    """Input model for a browser tab from the extension."""

    id: int
    url: str
    title: str
    meta_text: Optional[str] = None  # og:title / og:description read by the extension
    window_id: Optional[int] = None
    group_id: Optional[int] = None
    pinned: bool = False


class GroupInput(BaseModel):
    """Input model for an existing native tab group."""

    id: int
    title: str = ""
    color: GroupColor = GroupColor.GREY
    window_id: Optional[int] = None


class TabsOrganizeRequest(BaseModel):
    """Request model for /api/tabs/organize endpoint."""

    tabs: list[TabInput]
    groups: list[GroupInput] = Field(default_factory=list)
    categories: Optional[list[str]] = None  # Overrides configured categories
    window_types: dict[int, str] = Field(default_factory=dict)
    ungrouped_only: bool = True


# ============================================================================
# Response Models
# ============================================================================


class ClusterResponse(BaseModel):
    """Response model for a labeled leftover cluster."""

    title: Optional[str] = None
    tab_ids: list[int]
    grouped: bool


class TabsOrganizeResponse(BaseModel):
    """Response model for /api/tabs/organize endpoint."""

    status: str
    operations: list[GroupOperation] = Field(default_factory=list)
    placed_tab_ids: list[int] = Field(default_factory=list)
    ungrouped_tab_ids: list[int] = Field(default_factory=list)
    leftover_tab_ids: list[int] = Field(default_factory=list)
    skipped_tab_ids: list[int] = Field(default_factory=list)
    clusters: list[ClusterResponse] = Field(default_factory=list)
    clustering_skipped: bool = False
    timestamp: str


class CacheClearResponse(BaseModel):
    """Response model for /api/cache/clear endpoint."""

    status: str
    timestamp: str


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str
    version: str = "0.1.0"
    timestamp: str
    api_key_configured: bool = False
