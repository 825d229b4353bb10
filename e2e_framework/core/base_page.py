"""
Base Page

Foundation class for every page object. Methods accept either a selector
string or an element/locator; selectors go through the ElementResolver
fallback chain (DOM, shadow roots, iframes) before any interaction.

Usage:
    class LoginPage(BasePage):
        url = "/login"
        username = '[data-testid="username"]'

        async def login(self, user, password):
            await self.set_value(self.username, user)
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import urljoin

from playwright.async_api import ElementHandle, Page

from ..config import Settings
from ..errors import ElementInteractionError, WaitTimeoutError, WindowSwitchError
from ..log import LoggingManager, get_logging_manager
from .browsing_context import BrowsingContext, element_exists
from .dialogs import DialogTracker
from .element_resolver import ElementResolver
from .frame_manager import FrameManager
from .reference import Reference
from .shadow_dom import ShadowDomResolver


class BasePage:
    """Page object base with waits, frames and shadow DOM handled for you"""

    url: str = "/"

    def __init__(
        self,
        page: Page,
        logging_manager: Optional[LoggingManager] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the page object.

        Args:
            page: Playwright page
            logging_manager: Manager handing out loggers (defaults to process manager)
            settings: Resolved settings (defaults to built-in defaults)
        """
        self.settings = settings or Settings()
        self.logging_manager = logging_manager or get_logging_manager()
        self.logger = self.logging_manager.get_logger(f"Page:{type(self).__name__}")
        self.timeout = self.settings.element_timeout_ms
        self.poll_interval = 500
        self._bind(page)

    def _bind(self, page: Page):
        """Point this page object, and its resolvers, at `page`."""
        previous = getattr(self, "resolver", None)
        self.page = page
        self.context = BrowsingContext.of(page)
        self.shadow_dom_resolver = ShadowDomResolver(
            self.context,
            self.logging_manager.get_logger("ShadowDomResolver")
        )
        self.frame_manager = FrameManager(
            self.context,
            self.logging_manager.get_logger("FrameManager"),
            max_depth=self.settings.max_frame_depth
        )
        self.resolver = ElementResolver(
            self.context,
            self.shadow_dom_resolver,
            self.frame_manager,
            self.logger,
            timeout=self.timeout,
            auto_resolve_shadow_dom=self.settings.auto_resolve_shadow_dom,
            auto_resolve_frames=self.settings.auto_resolve_frames
        )
        if previous is not None:
            self.resolver.auto_resolve_shadow_dom = previous.auto_resolve_shadow_dom
            self.resolver.auto_resolve_frames = previous.auto_resolve_frames

    # Per-page toggles, e.g. to skip fallback overhead on simple pages
    @property
    def auto_resolve_shadow_dom(self) -> bool:
        return self.resolver.auto_resolve_shadow_dom

    @auto_resolve_shadow_dom.setter
    def auto_resolve_shadow_dom(self, value: bool):
        self.resolver.auto_resolve_shadow_dom = value

    @property
    def auto_resolve_frames(self) -> bool:
        return self.resolver.auto_resolve_frames

    @auto_resolve_frames.setter
    def auto_resolve_frames(self, value: bool):
        self.resolver.auto_resolve_frames = value

    # ==================== Navigation ====================

    async def open(self, path: str = "") -> "BasePage":
        """Open a path relative to the configured base URL and wait for load."""
        target = path or self.url or "/"
        if self.settings.base_url:
            target = urljoin(self.settings.base_url, target)
        self.logger.info(f"Navigating to: {target}")
        await self.context.switch_to_default_content()
        await self.page.goto(target)
        await self.wait_for_page_load()
        return self

    async def open_absolute_url(self, absolute_url: str) -> "BasePage":
        self.logger.info(f"Navigating to absolute URL: {absolute_url}")
        await self.context.switch_to_default_content()
        await self.page.goto(absolute_url)
        await self.wait_for_page_load()
        return self

    async def refresh(self) -> "BasePage":
        self.logger.info("Refreshing page")
        await self.context.switch_to_default_content()
        await self.page.reload()
        await self.wait_for_page_load()
        return self

    async def go_back(self) -> "BasePage":
        self.logger.info("Navigating back")
        await self.context.switch_to_default_content()
        await self.page.go_back()
        await self.wait_for_page_load()
        return self

    async def go_forward(self) -> "BasePage":
        self.logger.info("Navigating forward")
        await self.context.switch_to_default_content()
        await self.page.go_forward()
        await self.wait_for_page_load()
        return self

    # ==================== Page State ====================

    async def get_page_title(self) -> str:
        return await self.page.title()

    async def get_current_url(self) -> str:
        return self.page.url

    async def get_page_source(self) -> str:
        return await self.page.content()

    async def is_loaded(self) -> bool:
        """
        Whether the page is ready for interaction.

        Subclasses override this with a page-specific check, e.g.
        `return await self.is_displayed(self.header_logo)`.
        """
        return True

    # ==================== Element Interaction ====================

    async def click(self, element: Any):
        el = await self.wait_for_clickable(element)
        self.logger.debug(f"Clicking element: {self._describe(element)}")
        await el.click()

    async def double_click(self, element: Any):
        el = await self.wait_for_clickable(element)
        self.logger.debug(f"Double-clicking element: {self._describe(element)}")
        await el.dblclick()

    async def right_click(self, element: Any):
        el = await self.wait_for_displayed(element)
        await el.click(button="right")

    async def set_value(self, element: Any, value: str):
        """Replace the current value of an input."""
        el = await self.wait_for_displayed(element)
        self.logger.debug(f"Setting value on element: {self._describe(element)}")
        await el.fill(value)

    async def add_value(self, element: Any, value: str):
        """Type after the current value without clearing it."""
        el = await self.wait_for_displayed(element)
        await el.type(value)

    async def clear_value(self, element: Any):
        el = await self.wait_for_displayed(element)
        await el.fill("")

    async def get_text(self, element: Any) -> str:
        el = await self.wait_for_displayed(element)
        return await el.inner_text()

    async def get_value(self, element: Any) -> str:
        el = await self.wait_for_exist(element)
        return await el.input_value()

    async def get_attribute(self, element: Any, attribute_name: str) -> Optional[str]:
        el = await self.wait_for_exist(element)
        return await el.get_attribute(attribute_name)

    async def hover(self, element: Any):
        el = await self.wait_for_displayed(element)
        self.logger.debug(f"Hovering element: {self._describe(element)}")
        await el.hover()

    async def scroll_into_view(self, element: Any):
        el = await self.wait_for_exist(element)
        await el.scroll_into_view_if_needed()

    async def js_click(self, element: Any):
        """Click via JavaScript, for clicks intercepted by overlays."""
        el = await self.wait_for_exist(element)
        self.logger.debug("Performing JS click")
        await el.evaluate("el => el.click()")

    async def get_css_property(self, element: Any, property_name: str) -> str:
        """Computed value of a CSS property, e.g. "display" or "color"."""
        el = await self.wait_for_exist(element)
        return await el.evaluate(
            "(el, name) => getComputedStyle(el).getPropertyValue(name)",
            property_name
        )

    async def drag_and_drop(self, source: Any, target: Any):
        source_el = await self.wait_for_displayed(source)
        target_el = await self.wait_for_displayed(target)
        self.logger.debug(f"Dragging {self._describe(source)} onto {self._describe(target)}")
        if not isinstance(source_el, ElementHandle):
            await source_el.drag_to(target_el)
            return
        # Element handles from shadow lookups have no drag_to
        await source_el.hover()
        await self.page.mouse.down()
        await target_el.hover()
        await self.page.mouse.up()

    async def upload_file(self, element: Any, file_path: Union[str, Path, Sequence[Union[str, Path]]]):
        """Set the files of an <input type="file">."""
        el = await self.wait_for_exist(element)
        self.logger.debug(f"Uploading {file_path} via {self._describe(element)}")
        await el.set_input_files(file_path)

    async def highlight_element(self, element: Any, duration: int = 2000):
        """Outline an element for `duration` ms, for debugging and recordings."""
        el = await self.wait_for_exist(element)
        await el.evaluate(
            """(el, duration) => {
                const original = el.getAttribute('style');
                el.setAttribute('style', 'border: 3px solid red; background: lightyellow;');
                setTimeout(() => el.setAttribute('style', original || ''), duration);
            }""",
            duration
        )

    # ==================== Keyboard ====================

    async def press_key(self, key: str):
        """Press a single key, e.g. "Enter" or "Escape", on the focused element."""
        await self.page.keyboard.press(key)

    async def press_keys(self, keys: Sequence[str]):
        """Press keys together as a chord: ["Control", "a"] selects all."""
        await self.page.keyboard.press("+".join(keys))

    # ==================== Dropdown / Select ====================

    async def select_by_visible_text(self, element: Any, text: str):
        el = await self.wait_for_displayed(element)
        self.logger.debug(f"Selecting \"{text}\" by text")
        await el.select_option(label=text)

    async def select_by_value(self, element: Any, value: str):
        el = await self.wait_for_displayed(element)
        await el.select_option(value=value)

    async def select_by_index(self, element: Any, index: int):
        el = await self.wait_for_displayed(element)
        await el.select_option(index=index)

    # ==================== State Checks ====================

    async def is_displayed(self, element: Any) -> bool:
        try:
            el = await self.resolver.resolve(element)
            return await el.is_visible()
        except Exception:
            return False

    async def is_existing(self, element: Any) -> bool:
        try:
            el = await self.resolver.resolve(element)
        except Exception:
            return False
        return await element_exists(el)

    async def is_enabled(self, element: Any) -> bool:
        try:
            el = await self.resolver.resolve(element)
            return await el.is_enabled()
        except Exception:
            return False

    async def is_selected(self, element: Any) -> bool:
        try:
            el = await self.resolver.resolve(element)
            return await el.is_checked()
        except Exception:
            return False

    # ==================== Waits ====================

    async def wait_for_displayed(self, element: Any, timeout: Optional[int] = None):
        """Wait until visible; returns the resolved element."""
        return await self._wait_for_element(element, "displayed", _is_visible, timeout)

    async def wait_for_exist(self, element: Any, timeout: Optional[int] = None):
        return await self._wait_for_element(element, "existing", element_exists, timeout)

    async def wait_for_clickable(self, element: Any, timeout: Optional[int] = None):
        """Wait until visible and enabled."""
        return await self._wait_for_element(element, "clickable", _is_clickable, timeout)

    async def wait_for_enabled(self, element: Any, timeout: Optional[int] = None):
        return await self._wait_for_element(element, "enabled", _is_enabled, timeout)

    async def wait_for_not_displayed(self, element: Any, timeout: Optional[int] = None):
        return await self._wait_for_element(element, "hidden", _negate(_is_visible), timeout)

    async def wait_for_not_exist(self, element: Any, timeout: Optional[int] = None):
        return await self._wait_for_element(element, "removed", _negate(element_exists), timeout)

    async def wait_until(
        self,
        condition: Callable[[], Awaitable[bool]],
        timeout: Optional[int] = None,
        message: str = "Condition not met"
    ):
        """Poll an async condition until it returns truthy."""
        timeout = self.timeout if timeout is None else timeout
        if not await self._poll(condition, timeout):
            raise WaitTimeoutError(f"{message} after {timeout}ms", timeout)

    async def wait_for_page_load(self, timeout: Optional[int] = None):
        timeout = self.settings.page_load_timeout_ms if timeout is None else timeout
        await self.page.wait_for_load_state("load", timeout=timeout)

    async def wait_for_url_contains(self, partial_url: str, timeout: Optional[int] = None):
        async def url_matches():
            return partial_url in self.page.url
        await self.wait_until(url_matches, timeout, f"URL did not contain \"{partial_url}\"")

    async def wait_for_title_contains(self, partial_title: str, timeout: Optional[int] = None):
        async def title_matches():
            return partial_title in await self.page.title()
        await self.wait_until(title_matches, timeout, f"Title did not contain \"{partial_title}\"")

    async def pause(self, milliseconds: int):
        self.logger.warning(f"Hard pause: {milliseconds}ms - consider an explicit wait instead")
        await asyncio.sleep(milliseconds / 1000)

    async def _wait_for_element(self, element: Any, condition: str, check, timeout: Optional[int]):
        timeout = self.timeout if timeout is None else timeout
        el = await self.resolver.resolve(element)

        async def satisfied():
            return await check(el)

        if not await self._poll(satisfied, timeout):
            raise ElementInteractionError(self._describe(element), timeout, condition)
        return el

    async def _poll(self, condition, timeout: int) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout / 1000
        while True:
            try:
                if await condition():
                    return True
            except Exception as e:
                self.logger.debug(f"Wait condition raised: {e}")
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval / 1000)

    # ==================== Frames ====================

    async def switch_to_frame(self, frame_ref):
        """Switch into a frame by index, name/id, selector or element."""
        self.logger.debug("Switching to frame")
        await self.frame_manager.switch_to_frame(frame_ref)

    async def switch_to_parent_frame(self):
        self.logger.debug("Switching to parent frame")
        await self.frame_manager.switch_to_parent_frame()

    async def switch_to_default_content(self):
        await self.frame_manager.switch_to_default_content()

    # ==================== Windows ====================

    async def switch_to_window(self, window: Union[int, Page]):
        """
        Retarget this page object at another tab or popup of the same browser context.

        Args:
            window: Index into the context's open pages, or the Page itself
        """
        pages = self.page.context.pages
        if isinstance(window, int):
            if not 0 <= window < len(pages):
                raise WindowSwitchError(f"Window index {window} out of range ({len(pages)} windows open)")
            window = pages[window]
        elif window not in pages:
            raise WindowSwitchError(f"Window is not open in this browser context: {window}")

        self.logger.debug(f"Switching to window: {window.url}")
        self._bind(window)
        await window.bring_to_front()

    async def switch_to_new_window(self):
        """Switch to the most recently opened window."""
        pages = self.page.context.pages
        if not pages:
            raise WindowSwitchError("No windows open")
        await self.switch_to_window(pages[-1])

    async def close_current_window(self):
        """Close this window and continue in the first one still open."""
        context = self.page.context
        self.logger.debug(f"Closing window: {self.page.url}")
        await self.page.close()
        remaining = context.pages
        if remaining:
            await self.switch_to_window(remaining[0])

    async def get_window_count(self) -> int:
        return len(self.page.context.pages)

    # ==================== Alerts ====================

    @property
    def dialogs(self) -> DialogTracker:
        """Dialog handling for this page; attached on first use."""
        return DialogTracker.of(self.page)

    async def accept_alert(self):
        """Accept the next alert, confirm or prompt this page opens."""
        await self.dialogs.accept_alert()

    async def dismiss_alert(self):
        await self.dialogs.dismiss_alert()

    async def get_alert_text(self, timeout: Optional[int] = None) -> str:
        """Message of the last dialog, waiting up to `timeout` ms for one to open."""
        timeout = self.timeout if timeout is None else timeout
        return await self.dialogs.get_alert_text(timeout)

    async def send_alert_text(self, text: str):
        """Answer the next prompt with `text`."""
        await self.dialogs.send_alert_text(text)

    # ==================== JavaScript ====================

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        """Evaluate JavaScript in the current frame."""
        return await self.context.evaluate(script, arg)

    async def execute_async_script(self, script: str, arg: Any = None) -> Any:
        """
        Evaluate JavaScript that returns a Promise and wait for it to settle.

        Raises:
            WaitTimeoutError: if the Promise is still pending after the
                configured script timeout
        """
        timeout = self.settings.script_timeout_ms
        try:
            return await asyncio.wait_for(self.context.evaluate(script, arg), timeout / 1000)
        except asyncio.TimeoutError:
            raise WaitTimeoutError(f"Async script did not complete after {timeout}ms", timeout)

    async def scroll_to_top(self):
        await self.context.evaluate("() => window.scrollTo(0, 0)")

    async def scroll_to_bottom(self):
        await self.context.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")

    async def scroll_by_pixels(self, x: int, y: int):
        await self.context.evaluate("([x, y]) => window.scrollBy(x, y)", [x, y])

    # ==================== Storage ====================

    async def set_local_storage(self, key: str, value: Any):
        if not isinstance(value, str):
            value = json.dumps(value)
        await self.page.evaluate("([k, v]) => localStorage.setItem(k, v)", [key, value])

    async def get_local_storage(self, key: str) -> Optional[str]:
        return await self.page.evaluate("(k) => localStorage.getItem(k)", key)

    async def clear_local_storage(self):
        await self.page.evaluate("() => localStorage.clear()")

    async def set_session_storage(self, key: str, value: Any):
        if not isinstance(value, str):
            value = json.dumps(value)
        await self.page.evaluate("([k, v]) => sessionStorage.setItem(k, v)", [key, value])

    async def get_session_storage(self, key: str) -> Optional[str]:
        return await self.page.evaluate("(k) => sessionStorage.getItem(k)", key)

    async def clear_session_storage(self):
        await self.page.evaluate("() => sessionStorage.clear()")

    # ==================== Cookies ====================

    async def get_cookie(self, name: str) -> Optional[Dict[str, Any]]:
        """Cookie `name` visible to the current URL, or None."""
        for cookie in await self.page.context.cookies(self.page.url):
            if cookie["name"] == name:
                return cookie
        return None

    async def get_all_cookies(self) -> List[Dict[str, Any]]:
        return await self.page.context.cookies()

    async def set_cookie(self, cookie: Dict[str, Any]):
        """
        Add a cookie. Without "url" or "domain" it is scoped to the current page.

        Args:
            cookie: Playwright cookie fields ("name" and "value" required)
        """
        cookie = dict(cookie)
        if "url" not in cookie and "domain" not in cookie:
            cookie["url"] = self.page.url
        await self.page.context.add_cookies([cookie])

    async def delete_cookie(self, name: str):
        await self.page.context.clear_cookies(name=name)

    async def delete_all_cookies(self):
        await self.page.context.clear_cookies()

    # ==================== Screenshots ====================

    async def take_screenshot(self, file_name: str) -> str:
        path = self._screenshot_path(file_name)
        await self.page.screenshot(path=str(path))
        self.logger.info(f"Screenshot saved: {path}")
        return str(path)

    async def take_element_screenshot(self, element: Any, file_name: str) -> str:
        """Screenshot cropped to one element."""
        el = await self.wait_for_displayed(element)
        path = self._screenshot_path(file_name)
        await el.screenshot(path=str(path))
        self.logger.info(f"Element screenshot saved: {path}")
        return str(path)

    def _screenshot_path(self, file_name: str) -> Path:
        path = Path(self.settings.screenshots_dir) / f"{file_name}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    # ==================== Helpers ====================

    @staticmethod
    def _describe(element: Any) -> str:
        return Reference.parse(element).description


async def _is_visible(el) -> bool:
    return await el.is_visible()


async def _is_enabled(el) -> bool:
    return await el.is_enabled()


async def _is_clickable(el) -> bool:
    return await el.is_visible() and await el.is_enabled()


def _negate(check):
    async def negated(el) -> bool:
        return not await check(el)
    return negated
