"""
Base Component

Reusable page fragment (header, footer, modal) scoped to a root element.
Child selectors are resolved inside the root.
"""

from typing import Any, Optional

from playwright.async_api import ElementHandle, Page

from ..config import Settings
from ..errors import ElementInteractionError
from ..log import LoggingManager
from .base_page import BasePage


class BaseComponent(BasePage):
    """A page object whose lookups start from `root_selector`"""

    root_selector: str = "body"

    def __init__(
        self,
        page: Page,
        root_selector: Optional[str] = None,
        logging_manager: Optional[LoggingManager] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(page, logging_manager, settings)
        if root_selector:
            self.root_selector = root_selector

    async def root(self) -> Any:
        return await self.resolver.resolve(self.root_selector)

    async def child(self, selector: str) -> Any:
        """
        First match for `selector` inside the component root.

        A root found behind a shadow boundary is an ElementHandle, which only
        supports one-shot queries; the result is then an ElementHandle or
        None. Otherwise a Locator is returned.
        """
        root = await self.root()
        if isinstance(root, ElementHandle):
            return await root.query_selector(selector)
        return root.locator(selector).first

    async def is_visible(self) -> bool:
        return await self.is_displayed(self.root_selector)

    async def wait_for_visible(self, timeout: Optional[int] = None):
        return await self.wait_for_displayed(self.root_selector, timeout)

    async def click_child(self, selector: str):
        await self.click(await self._require_child(selector))

    async def get_child_text(self, selector: str) -> str:
        return await self.get_text(await self._require_child(selector))

    async def _require_child(self, selector: str) -> Any:
        element = await self.child(selector)
        if element is None:
            raise ElementInteractionError(f"{self.root_selector} {selector}", self.timeout, "found")
        return element
