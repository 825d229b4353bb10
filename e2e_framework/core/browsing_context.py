"""
Browsing Context

Tracks which frame of a Playwright page queries run against. Playwright
itself has no "current frame", but page objects written against it still
need one: entering an iframe during element lookup must affect every later
query on the same page, exactly like a WebDriver frame switch.

All page objects on one Playwright page share a single BrowsingContext,
obtained via BrowsingContext.of(page).
"""

import logging
import weakref
from typing import Any, List, Optional

from playwright.async_api import ElementHandle, Frame, Locator, Page

logger = logging.getLogger(__name__)


async def element_exists(element: Any) -> bool:
    """
    Check whether an element is present. Errors count as "not found".
    """
    if element is None:
        return False
    try:
        if isinstance(element, ElementHandle):
            return bool(await element.evaluate("el => el.isConnected"))
        return await element.count() > 0
    except Exception as e:
        logger.debug(f"Existence check failed: {e}")
        return False


class BrowsingContext:
    """Current-frame tracking for one page"""

    _registry: "weakref.WeakKeyDictionary[Page, BrowsingContext]" = weakref.WeakKeyDictionary()

    def __init__(self, page: Page):
        self.page = page
        self._frames: List[Frame] = []

    @classmethod
    def of(cls, page: Page) -> "BrowsingContext":
        """Shared context for `page`, created on first use."""
        context = cls._registry.get(page)
        if context is None:
            context = cls(page)
            cls._registry[page] = context
        return context

    # ==================== State ====================

    @property
    def current_frame(self) -> Frame:
        if self._frames:
            return self._frames[-1]
        return self.page.main_frame

    @property
    def is_top_level(self) -> bool:
        return not self._frames

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def frame_path(self) -> List[int]:
        """
        Child-frame indices from the main frame down to the current frame.

        Computed from the live frame tree, so it is correct however the
        current frame was entered. Empty at the top level or when the
        current frame is no longer attached to the tree.
        """
        if not self._frames:
            return []
        path = _path_to(self.page.main_frame, self.current_frame)
        return path if path is not None else []

    # ==================== Queries ====================

    def query(self, selector: str) -> Locator:
        """First element matching `selector` in the current frame."""
        return self.current_frame.locator(selector).first

    def query_all(self, selector: str) -> Locator:
        return self.current_frame.locator(selector)

    def child_frames(self, top_level: bool = False) -> List[Frame]:
        frame = self.page.main_frame if top_level else self.current_frame
        return list(frame.child_frames)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self.current_frame.evaluate(expression, arg)

    async def evaluate_handle(self, expression: str, arg: Any = None):
        return await self.current_frame.evaluate_handle(expression, arg)

    # ==================== Switching ====================

    async def switch_to_frame(self, frame: Frame):
        """Make `frame` the current frame."""
        if frame.is_detached():
            raise ValueError(f"Frame is detached: {frame.name or frame.url}")
        self._frames.append(frame)

    async def switch_to_parent_frame(self):
        if self._frames:
            self._frames.pop()

    async def switch_to_default_content(self):
        self._frames.clear()

    def __repr__(self):
        return f"<BrowsingContext depth={self.depth}>"


def _path_to(root: Frame, target: Frame) -> Optional[List[int]]:
    for index, child in enumerate(root.child_frames):
        if child is target:
            return [index]
        nested = _path_to(child, target)
        if nested is not None:
            return [index] + nested
    return None
