"""
Browser collaborators: tab enumeration and native tab-group mutation.
"""

from tab_grouper.browser.base import BrowserError, TabBrowser
from tab_grouper.browser.memory import InMemoryBrowser
from tab_grouper.browser.models import (
    ColorCycle,
    GroupColor,
    GroupOperation,
    TabDescriptor,
    TabGroup,
)

__all__ = [
    "BrowserError",
    "ColorCycle",
    "TabBrowser",
    "InMemoryBrowser",
    "GroupColor",
    "GroupOperation",
    "TabDescriptor",
    "TabGroup",
]
