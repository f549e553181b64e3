"""
Abstract base class for browser tab/group backends.
"""

from abc import ABC, abstractmethod
from typing import Optional

from tab_grouper.browser.models import GroupColor, TabDescriptor, TabGroup


class BrowserError(Exception):
    """Raised by browser adapters when a query or mutation fails."""


class TabBrowser(ABC):
    """Abstract interface for the host browser's tab and tab-group APIs.

    Attributes:
        supports_groups: Whether the host can create native tab groups at all
    """

    supports_groups: bool = True

    @abstractmethod
    async def list_tabs(self, window_id: Optional[int] = None) -> list[TabDescriptor]:
        """
        List open tabs.

        Args:
            window_id: Restrict to one window, or None for every window

        Returns:
            Tabs in browser order
        """
        pass

    @abstractmethod
    async def get_tab(self, tab_id: int) -> TabDescriptor:
        """
        Get a single tab.

        Raises:
            BrowserError: If the tab does not exist
        """
        pass

    @abstractmethod
    async def get_groups(self, window_id: Optional[int] = None) -> list[TabGroup]:
        """
        List native tab groups.

        Args:
            window_id: Restrict to one window, or None for every window
        """
        pass

    @abstractmethod
    async def add_tabs_to_group(
        self, tab_ids: list[int], group_id: Optional[int] = None
    ) -> int:
        """
        Move tabs into a group, creating a new group when group_id is None.

        Returns:
            ID of the group the tabs now belong to

        Raises:
            BrowserError: If the tabs cannot be grouped
        """
        pass

    @abstractmethod
    async def update_group(
        self,
        group_id: int,
        title: Optional[str] = None,
        color: Optional[GroupColor] = None,
    ) -> TabGroup:
        """
        Update a group's title and/or color.

        Raises:
            BrowserError: If the group does not exist
        """
        pass

    async def create_group(
        self,
        tab_ids: list[int],
        title: str,
        color: Optional[GroupColor] = None,
    ) -> int:
        """
        Create a new titled group containing the given tabs.

        Returns:
            ID of the created group

        Raises:
            ValueError: If no tab IDs are given
            BrowserError: If grouping or titling fails
        """
        if not tab_ids:
            raise ValueError("No tab IDs provided for group creation")

        group_id = await self.add_tabs_to_group(tab_ids)
        await self.update_group(group_id, title=title, color=color)
        return group_id
