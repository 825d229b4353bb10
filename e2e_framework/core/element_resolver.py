"""
Element Resolver

Turns whatever a page-object method was given into an element to act on.

Resolution order:
1. Element or locator: returned unchanged.
2. Deep selector (contains `>>>`): shadow-piercing lookup only, no fallback.
3. Standard query in the current frame, queried once and reused.
4. Not found and shadow fallback enabled: search every shadow root, but
   only when the page has any.
5. Still not found and frame fallback enabled: search every iframe. A hit
   leaves the browsing context inside that frame; a miss restores the
   top-level document.
6. Nothing found: the locator from step 3 is returned so the interaction
   itself fails with a normal timeout naming the selector.
"""

from typing import Any, Optional

from ..config.timeouts import Timeouts
from ..errors import ElementInteractionError
from .browsing_context import BrowsingContext, element_exists
from .frame_manager import FrameManager, FrameSearchResult
from .reference import Reference, ReferenceKind, Resolution, ResolutionStage
from .shadow_dom import ShadowDomResolver


class ElementResolver:
    """Fallback chain across the document, shadow roots and iframes"""

    def __init__(
        self,
        context: BrowsingContext,
        shadow_dom_resolver: ShadowDomResolver,
        frame_manager: FrameManager,
        logger,
        timeout: int = Timeouts.ELEMENT_WAIT,
        auto_resolve_shadow_dom: bool = True,
        auto_resolve_frames: bool = True
    ):
        """
        Initialize the resolver.

        Args:
            context: Browsing context the standard query runs in
            shadow_dom_resolver: Shadow-root lookups
            frame_manager: Frame traversal
            logger: Logger handle
            timeout: Per-stage wait for shadow and frame searches in ms
            auto_resolve_shadow_dom: Search shadow roots when the DOM misses
            auto_resolve_frames: Search iframes when the DOM misses
        """
        self.context = context
        self.shadow_dom_resolver = shadow_dom_resolver
        self.frame_manager = frame_manager
        self.logger = logger
        self.timeout = timeout
        self.auto_resolve_shadow_dom = auto_resolve_shadow_dom
        self.auto_resolve_frames = auto_resolve_frames

    async def resolve(self, reference: Any) -> Any:
        """Resolve `reference` to an element; see module docstring."""
        return (await self.resolve_with_details(reference)).element

    async def resolve_with_details(self, reference: Any) -> Resolution:
        """
        Resolve `reference` and report which stage produced the element.

        Raises:
            ElementInteractionError: deep selector matched nothing in time
        """
        ref = Reference.parse(reference)

        if ref.kind is ReferenceKind.DIRECT:
            return Resolution(ref.value, ResolutionStage.DIRECT)

        if ref.kind is ReferenceKind.DEEP_SELECTOR:
            self.logger.debug(f"Resolving deep shadow selector: {ref.value}")
            element = await self.shadow_dom_resolver.find_in_shadow_dom(ref.value, self.timeout)
            if element is None:
                raise ElementInteractionError(ref.value, self.timeout, "found in shadow DOM")
            return Resolution(element, ResolutionStage.DEEP_SHADOW)

        selector = ref.value
        located = self.context.query(selector)
        if await element_exists(located):
            return Resolution(located, ResolutionStage.DOM)

        if self.auto_resolve_shadow_dom:
            element = await self._search_shadow_roots(selector)
            if element is not None:
                return Resolution(element, ResolutionStage.SHADOW)

        if self.auto_resolve_frames:
            result = await self._search_frames(selector)
            if result is not None:
                return Resolution(result.element, ResolutionStage.FRAME, result.frame_path)

        return Resolution(located, ResolutionStage.NOT_FOUND)

    # ==================== Fallback Stages ====================

    async def _search_shadow_roots(self, selector: str) -> Optional[Any]:
        if not await self.shadow_dom_resolver.has_shadow_dom():
            return None

        self.logger.debug(f"Element \"{selector}\" not in DOM - trying shadow roots")
        try:
            return await self.shadow_dom_resolver.deep_find_element(selector, self.timeout)
        except Exception as e:
            self.logger.debug(f"Shadow search failed: {e}")
            return None

    async def _search_frames(self, selector: str) -> Optional[FrameSearchResult]:
        frame_count = await self.frame_manager.get_frame_count()
        if frame_count == 0:
            return None

        self.logger.debug(f"Element \"{selector}\" not in DOM - trying {frame_count} frame(s)")
        try:
            result = await self.frame_manager.find_element_across_frames(selector, self.timeout)
        except Exception as e:
            self.logger.debug(f"Frame search failed: {e}")
            result = None

        if result is not None:
            return result

        # Never leave the caller stranded inside an arbitrary frame
        await self.frame_manager.switch_to_default_content()
        return None
