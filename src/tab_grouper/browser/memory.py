"""
In-process browser backend.

Holds a snapshot of tabs, windows and groups and applies group mutations to
it, recording every mutation as a GroupOperation. The HTTP server seeds one per
request from the extension's snapshot and returns the recorded operations.
"""

from typing import Optional

from tab_grouper.config import get_logger
from tab_grouper.browser.base import BrowserError, TabBrowser
from tab_grouper.browser.models import GroupColor, GroupOperation, TabDescriptor, TabGroup

logger = get_logger(__name__)

NORMAL_WINDOW = "normal"


class InMemoryBrowser(TabBrowser):
    """TabBrowser over an in-memory snapshot.

    Attributes:
        tabs: Tabs by ID
        groups: Groups by ID
        window_types: Window type by window ID ("normal", "popup", "app", ...)
        operations: Mutations applied so far, in order
    """

    def __init__(
        self,
        tabs: Optional[list[TabDescriptor]] = None,
        groups: Optional[list[TabGroup]] = None,
        window_types: Optional[dict[int, str]] = None,
        supports_groups: bool = True,
    ):
        self.tabs: dict[int, TabDescriptor] = {tab.id: tab for tab in tabs or []}
        self.groups: dict[int, TabGroup] = {group.id: group for group in groups or []}
        self.window_types: dict[int, str] = dict(window_types or {})
        self.supports_groups = supports_groups
        self.operations: list[GroupOperation] = []
        self._next_group_id = max(self.groups, default=0) + 1

    async def list_tabs(self, window_id: Optional[int] = None) -> list[TabDescriptor]:
        return [
            tab for tab in self.tabs.values()
            if window_id is None or tab.window_id == window_id
        ]

    async def get_tab(self, tab_id: int) -> TabDescriptor:
        tab = self.tabs.get(tab_id)
        if tab is None:
            raise BrowserError(f"No tab with id: {tab_id}")
        return tab

    async def get_groups(self, window_id: Optional[int] = None) -> list[TabGroup]:
        return [
            group for group in self.groups.values()
            if window_id is None or group.window_id == window_id
        ]

    async def add_tabs_to_group(
        self, tab_ids: list[int], group_id: Optional[int] = None
    ) -> int:
        if not self.supports_groups:
            raise BrowserError("Tab groups are not supported in this browser")
        if not tab_ids:
            raise BrowserError("No tab IDs provided")

        tabs = [await self.get_tab(tab_id) for tab_id in tab_ids]
        for tab in tabs:
            window_type = self.window_types.get(tab.window_id, NORMAL_WINDOW)
            if window_type != NORMAL_WINDOW:
                raise BrowserError(
                    "Tabs can only be moved to and from normal windows."
                )

        if group_id is None:
            group_id = self._next_group_id
            self._next_group_id += 1
            self.groups[group_id] = TabGroup(id=group_id, window_id=tabs[0].window_id)
            operation = GroupOperation(action="create", group_id=group_id, tab_ids=list(tab_ids))
        elif group_id not in self.groups:
            raise BrowserError(f"No group with id: {group_id}")
        else:
            group = self.groups[group_id]
            operation = GroupOperation(
                action="add",
                group_id=group_id,
                tab_ids=list(tab_ids),
                title=group.title,
                color=group.color,
            )

        previous_groups = {tab.group_id for tab in tabs if tab.group_id is not None}
        for tab in tabs:
            self.tabs[tab.id] = tab.model_copy(update={"group_id": group_id})
        self._remove_empty_groups(previous_groups - {group_id})

        self.operations.append(operation)
        logger.debug(f"Grouped tabs {tab_ids} into group {group_id}")
        return group_id

    async def update_group(
        self,
        group_id: int,
        title: Optional[str] = None,
        color: Optional[GroupColor] = None,
    ) -> TabGroup:
        group = self.groups.get(group_id)
        if group is None:
            raise BrowserError(f"No group with id: {group_id}")

        updates = {}
        if title is not None:
            updates["title"] = title
        if color is not None:
            updates["color"] = color
        group = group.model_copy(update=updates)
        self.groups[group_id] = group

        # Fold the title/color into the operation that created the group
        for operation in reversed(self.operations):
            if operation.group_id == group_id and operation.action == "create":
                operation.title = group.title
                operation.color = group.color
                break

        return group

    def _remove_empty_groups(self, group_ids: set[int]) -> None:
        """Browsers drop a group once its last tab leaves it."""
        for group_id in group_ids:
            if not any(tab.group_id == group_id for tab in self.tabs.values()):
                self.groups.pop(group_id, None)
