"""
Frame Manager

Searches every iframe on a page (including nested ones) for an element so
tests never switch frames by hand.

When the element is found inside a frame, the BrowsingContext is left
switched INTO that frame: the returned locator belongs there, and so do
the caller's follow-up queries. When nothing is found the context is
restored to the top-level document.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from playwright.async_api import ElementHandle, Frame

from ..config.timeouts import Timeouts
from ..errors import FrameSwitchError
from .browsing_context import BrowsingContext, element_exists


@dataclass
class FrameSearchResult:
    """Element found by a frame search and the frame indices leading to it"""
    element: Any
    frame_path: List[int] = field(default_factory=list)
    frame: Optional[Frame] = None


@dataclass
class FrameInfo:
    frame: Frame
    path: List[int]


class FrameManager:
    """Automatic frame traversal plus manual switching helpers"""

    DEFAULT_MAX_DEPTH = 5

    def __init__(
        self,
        context: BrowsingContext,
        logger=None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        poll_interval: int = Timeouts.POLL_INTERVAL
    ):
        """
        Initialize the frame manager.

        Args:
            context: Browsing context to switch
            logger: Logger handle (defaults to the process logging manager)
            max_depth: Deepest frame nesting searched
            poll_interval: Delay between search passes in ms
        """
        if logger is None:
            from ..log import get_logging_manager
            logger = get_logging_manager().get_logger("FrameManager")
        self.context = context
        self.logger = logger
        self.max_depth = max_depth
        self.poll_interval = poll_interval

    # ==================== Search ====================

    async def find_element_across_frames(
        self,
        selector: str,
        timeout: int = Timeouts.ELEMENT_WAIT
    ) -> Optional[FrameSearchResult]:
        """
        Search the top-level document and every nested frame for `selector`.

        Args:
            selector: CSS selector to locate
            timeout: Max time to keep searching in ms

        Returns:
            FrameSearchResult (empty frame_path means top-level document),
            or None with the context back at the top level
        """
        self.logger.debug(f"Searching all frames for: {selector}")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout / 1000

        while True:
            result = await self._search_once(selector)
            if result is not None:
                if result.frame_path:
                    path = " -> ".join(str(i) for i in result.frame_path)
                    self.logger.debug(f"Found \"{selector}\" in frame path: [{path}]")
                return result

            if loop.time() >= deadline:
                break
            await asyncio.sleep(self.poll_interval / 1000)

        self.logger.debug(f"\"{selector}\" not found in any frame after {timeout}ms")
        await self.switch_to_default_content()
        return None

    async def _search_once(self, selector: str) -> Optional[FrameSearchResult]:
        await self.switch_to_default_content()

        locator = self.context.query(selector)
        if await element_exists(locator):
            return FrameSearchResult(element=locator, frame_path=[])

        return await self._search_frames_recursive(selector, [], 0)

    async def _search_frames_recursive(
        self,
        selector: str,
        path_so_far: List[int],
        depth: int
    ) -> Optional[FrameSearchResult]:
        """Depth-first search. On success the context stays in the matching frame."""
        if depth > self.max_depth:
            self.logger.warning(f"Frame nesting depth exceeded {self.max_depth} - stopping recursion")
            return None

        try:
            frames = self.context.child_frames()
        except Exception as e:
            self.logger.debug(f"Cannot enumerate frames: {e}")
            return None

        for index, frame in enumerate(frames):
            current_path = path_so_far + [index]

            try:
                await self.context.switch_to_frame(frame)
            except Exception as e:
                self.logger.debug(f"Cannot switch to frame {index}: {e}")
                continue

            locator = self.context.query(selector)
            if await element_exists(locator):
                return FrameSearchResult(element=locator, frame_path=current_path, frame=frame)

            nested = await self._search_frames_recursive(selector, current_path, depth + 1)
            if nested is not None:
                return nested

            await self.context.switch_to_parent_frame()

        return None

    # ==================== Enumeration ====================

    async def get_frame_count(self) -> int:
        """Number of frames directly inside the top-level document."""
        try:
            return len(self.context.child_frames(top_level=True))
        except Exception as e:
            self.logger.debug(f"Frame count failed: {e}")
            return 0

    async def get_all_frames(self) -> List[FrameInfo]:
        """Every frame on the page, all levels deep, with its index path."""
        results: List[FrameInfo] = []

        def collect(frame: Frame, path: List[int]):
            for index, child in enumerate(frame.child_frames):
                child_path = path + [index]
                results.append(FrameInfo(frame=child, path=child_path))
                collect(child, child_path)

        collect(self.context.page.main_frame, [])
        return results

    # ==================== Switching ====================

    async def switch_to_frame(self, frame_ref: Union[int, str, Frame, ElementHandle]):
        """
        Switch into a child frame of the current frame.

        Args:
            frame_ref: Index, name/id, CSS selector, frame element or Frame

        Raises:
            FrameSwitchError: if the reference matches no frame
        """
        frame = await self._find_frame(frame_ref)
        if frame is None:
            raise FrameSwitchError(f"No frame matches {frame_ref!r}")
        await self.context.switch_to_frame(frame)
        self.logger.debug(f"Switched to frame: {frame_ref}")

    async def _find_frame(self, frame_ref) -> Optional[Frame]:
        if isinstance(frame_ref, int):
            frames = self.context.child_frames()
            if frame_ref >= len(frames):
                raise FrameSwitchError(
                    f"Frame index {frame_ref} out of range ({len(frames)} frames found)"
                )
            return frames[frame_ref]

        if isinstance(frame_ref, str):
            for frame in self.context.child_frames():
                if frame.name == frame_ref:
                    return frame
            selector = (
                f'iframe[name="{frame_ref}"], iframe[id="{frame_ref}"], '
                f'frame[name="{frame_ref}"], frame[id="{frame_ref}"]'
            )
            element = await self.context.current_frame.query_selector(selector)
            if element is None:
                # Fall back to treating the reference as a CSS selector
                element = await self.context.current_frame.query_selector(frame_ref)
            if element is None:
                return None
            return await element.content_frame()

        if isinstance(frame_ref, ElementHandle):
            return await frame_ref.content_frame()

        return frame_ref

    async def switch_to_default_content(self):
        await self.context.switch_to_default_content()

    async def switch_to_parent_frame(self):
        await self.context.switch_to_parent_frame()

    async def switch_to_frame_path(self, frame_path: List[int]):
        """Switch from the top-level document down a list of frame indices."""
        await self.switch_to_default_content()
        for depth, index in enumerate(frame_path):
            frames = self.context.child_frames()
            if index >= len(frames):
                raise FrameSwitchError(f"Frame index {index} out of range at depth {depth}")
            await self.context.switch_to_frame(frames[index])

    def get_current_frame_path(self) -> List[int]:
        """Index path of the current frame, shared by all page objects on the page."""
        return self.context.frame_path

    @asynccontextmanager
    async def within_frame(self, frame_ref):
        """Run a block inside a frame, then return to the top-level document."""
        await self.switch_to_frame(frame_ref)
        try:
            yield self.context.current_frame
        finally:
            await self.switch_to_default_content()

    @asynccontextmanager
    async def within_frame_path(self, frame_path: List[int]):
        await self.switch_to_frame_path(frame_path)
        try:
            yield self.context.current_frame
        finally:
            await self.switch_to_default_content()
