"""
Data models exchanged with the browser.

Tabs and groups are produced by the browser collaborator; group operations
record the mutations applied back to it.
"""

from enum import Enum
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, field_validator


class TabDescriptor(BaseModel):
    """Represents a browser tab as seen during one categorization pass.

    Attributes:
        id: Browser tab ID
        title: The title of the tab
        url: The URL of the tab
        meta_text: Optional auxiliary text (e.g. Open Graph meta tags)
        window_id: Browser window ID containing this tab
        group_id: Native tab group ID (if assigned)
        pinned: Whether the tab is pinned
    """

    id: int
    title: str
    url: str
    meta_text: str = ""
    window_id: Optional[int] = None
    group_id: Optional[int] = None
    pinned: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator('meta_text', mode='before')
    @classmethod
    def convert_none_to_empty_string(cls, v):
        """Convert None to empty string for meta_text field."""
        return v if v is not None else ""

    @property
    def domain(self) -> str:
        """Lower-cased hostname of the tab URL (empty if unparsable)."""
        try:
            return (urlparse(self.url).hostname or "").lower()
        except ValueError:
            return ""


class GroupColor(str, Enum):
    """Available colors for native tab groups (Chrome Tab Group colors)."""
    GREY = "grey"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    CYAN = "cyan"
    ORANGE = "orange"


class TabGroup(BaseModel):
    """A native tab group owned by the browser."""

    id: int
    title: str = ""
    color: GroupColor = GroupColor.GREY
    window_id: Optional[int] = None


class GroupOperation(BaseModel):
    """A single mutation applied to native tab groups.

    Attributes:
        action: "add" (tabs joined an existing group) or "create" (new group)
        group_id: Target group ID
        tab_ids: Tabs moved into the group
        title: Group title after the operation
        color: Group color after the operation
    """

    action: Literal["add", "create"]
    group_id: int
    tab_ids: list[int]
    title: Optional[str] = None
    color: Optional[GroupColor] = None


class ColorCycle:
    """Hands out group colors round-robin."""

    def __init__(self, colors: Optional[list[GroupColor]] = None):
        self.colors: list[GroupColor] = colors or list(GroupColor)
        self._next_color_index = 0

    def next_color(self) -> GroupColor:
        """Get the next color for a new group."""
        color = self.colors[self._next_color_index]
        self._next_color_index = (self._next_color_index + 1) % len(self.colors)
        return color
