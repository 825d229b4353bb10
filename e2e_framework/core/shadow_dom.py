"""
Shadow DOM Resolver

Traverses open shadow roots so tests never pierce them by hand.

Supports:
- Deep selectors with the `>>>` combinator, e.g. "my-app >>> .inner-button".
  Each segment locates a host whose shadow root the next segment searches.
- Exhaustive search through every shadow root for a plain CSS selector.

Lookups run in the current frame of the BrowsingContext and poll until
their timeout; a miss returns None rather than raising.
"""

import asyncio
from typing import Any, List, Optional

from ..config.timeouts import Timeouts
from .browsing_context import BrowsingContext
from .reference import DEEP_SELECTOR_MARKER

# Walk segments, entering the shadow root of each intermediate host
_SEGMENT_WALK_JS = """
(segs) => {
    let context = document;
    for (let i = 0; i < segs.length; i++) {
        const el = context.querySelector(segs[i]);
        if (!el) return null;
        if (i === segs.length - 1) return el;
        if (!el.shadowRoot) return null;
        context = el.shadowRoot;
    }
    return null;
}
"""

_SEGMENT_WALK_ALL_JS = """
(segs) => {
    let context = document;
    for (let i = 0; i < segs.length; i++) {
        if (i === segs.length - 1) return Array.from(context.querySelectorAll(segs[i]));
        const el = context.querySelector(segs[i]);
        if (!el || !el.shadowRoot) return [];
        context = el.shadowRoot;
    }
    return [];
}
"""

_DEEP_FIND_JS = """
(selector) => {
    function searchShadowRoots(root) {
        const el = root.querySelector(selector);
        if (el) return el;
        for (const node of root.querySelectorAll('*')) {
            if (node.shadowRoot) {
                const found = searchShadowRoots(node.shadowRoot);
                if (found) return found;
            }
        }
        return null;
    }
    return searchShadowRoots(document);
}
"""

_DEEP_FIND_ALL_JS = """
(selector) => {
    const results = [];
    function searchShadowRoots(root) {
        for (const el of root.querySelectorAll(selector)) results.push(el);
        for (const node of root.querySelectorAll('*')) {
            if (node.shadowRoot) searchShadowRoots(node.shadowRoot);
        }
    }
    searchShadowRoots(document);
    return results;
}
"""

_HAS_SHADOW_JS = """
() => {
    for (const node of document.querySelectorAll('*')) {
        if (node.shadowRoot) return true;
    }
    return false;
}
"""

_COUNT_SHADOW_JS = """
() => {
    let count = 0;
    function walk(root) {
        for (const node of root.querySelectorAll('*')) {
            if (node.shadowRoot) {
                count++;
                walk(node.shadowRoot);
            }
        }
    }
    walk(document);
    return count;
}
"""


class ShadowDomResolver:
    """Finds elements behind open shadow roots"""

    def __init__(
        self,
        context: BrowsingContext,
        logger=None,
        poll_interval: int = Timeouts.POLL_INTERVAL
    ):
        """
        Initialize the resolver.

        Args:
            context: Browsing context queries run in
            logger: Logger handle (defaults to the process logging manager)
            poll_interval: Delay between lookup attempts in ms
        """
        if logger is None:
            from ..log import get_logging_manager
            logger = get_logging_manager().get_logger("ShadowDomResolver")
        self.context = context
        self.logger = logger
        self.poll_interval = poll_interval

    # ==================== Deep Selectors ====================

    @staticmethod
    def is_deep_selector(selector: Any) -> bool:
        return isinstance(selector, str) and DEEP_SELECTOR_MARKER in selector

    @staticmethod
    def split_deep_selector(selector: str) -> List[str]:
        return [segment.strip() for segment in selector.split(DEEP_SELECTOR_MARKER)]

    async def find_in_shadow_dom(self, selector: str, timeout: int = Timeouts.ELEMENT_WAIT):
        """
        Resolve "host-a >>> host-b >>> .target".

        Returns:
            ElementHandle, or None if nothing matched within `timeout` ms
        """
        segments = self.split_deep_selector(selector)
        self.logger.debug(f"Deep shadow selector parsed into {len(segments)} segment(s): {segments}")
        return await self._poll(lambda: self._element_from(_SEGMENT_WALK_JS, segments), timeout)

    async def find_all_in_shadow_dom(self, selector: str) -> List[Any]:
        """All matches of the last segment; earlier segments must each hit one host."""
        return await self._elements_from(_SEGMENT_WALK_ALL_JS, self.split_deep_selector(selector))

    # ==================== Exhaustive Search ====================

    async def deep_find_element(self, css_selector: str, timeout: int = Timeouts.ELEMENT_WAIT):
        """
        Depth-first search through every shadow root on the page.

        Returns:
            ElementHandle, or None if nothing matched within `timeout` ms
        """
        self.logger.debug(f"Deep searching all shadow roots for: {css_selector}")
        element = await self._poll(lambda: self._element_from(_DEEP_FIND_JS, css_selector), timeout)
        if element is None:
            self.logger.debug(f"\"{css_selector}\" not found in any shadow root after {timeout}ms")
        return element

    async def deep_find_all_elements(self, css_selector: str) -> List[Any]:
        return await self._elements_from(_DEEP_FIND_ALL_JS, css_selector)

    async def has_shadow_dom(self) -> bool:
        """Whether the current document contains any open shadow root."""
        try:
            return bool(await self.context.evaluate(_HAS_SHADOW_JS))
        except Exception as e:
            self.logger.debug(f"Shadow root check failed: {e}")
            return False

    async def count_shadow_roots(self) -> int:
        try:
            return int(await self.context.evaluate(_COUNT_SHADOW_JS))
        except Exception as e:
            self.logger.debug(f"Shadow root count failed: {e}")
            return 0

    # ==================== Helpers ====================

    async def _element_from(self, script: str, arg: Any):
        try:
            handle = await self.context.evaluate_handle(script, arg)
        except Exception as e:
            self.logger.debug(f"Shadow lookup failed: {e}")
            return None

        element = handle.as_element()
        if element is None:
            await handle.dispose()
        return element

    async def _elements_from(self, script: str, arg: Any) -> List[Any]:
        try:
            handle = await self.context.evaluate_handle(script, arg)
        except Exception as e:
            self.logger.debug(f"Shadow lookup failed: {e}")
            return []

        elements = []
        for item in (await handle.get_properties()).values():
            element = item.as_element()
            if element is not None:
                elements.append(element)
        await handle.dispose()
        return elements

    async def _poll(self, attempt, timeout: int):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout / 1000
        while True:
            element = await attempt()
            if element is not None:
                return element
            if loop.time() >= deadline:
                return None
            await asyncio.sleep(self.poll_interval / 1000)
