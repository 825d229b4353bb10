"""
Pytest configuration and shared fixtures for e2e-framework tests.
"""

import pytest
from unittest.mock import Mock, AsyncMock
from typing import Iterable

from e2e_framework.config import Settings
from e2e_framework.log import LoggingManager


# ==================== Fake Playwright Objects ====================

def build_locator(exists: bool = True):
    """Mock Playwright locator; `.first` returns itself."""
    locator = AsyncMock()
    locator.first = locator
    locator.count = AsyncMock(return_value=1 if exists else 0)
    locator.is_visible = AsyncMock(return_value=exists)
    locator.is_enabled = AsyncMock(return_value=exists)
    locator.is_checked = AsyncMock(return_value=False)
    locator.inner_text = AsyncMock(return_value="Test Content")
    locator.input_value = AsyncMock(return_value="test value")
    locator.get_attribute = AsyncMock(return_value="attr-value")
    locator.click = AsyncMock()
    locator.dblclick = AsyncMock()
    locator.fill = AsyncMock()
    locator.type = AsyncMock()
    locator.hover = AsyncMock()
    locator.select_option = AsyncMock()
    locator.evaluate = AsyncMock()
    locator.scroll_into_view_if_needed = AsyncMock()
    # Chained lookups are synchronous in Playwright
    locator.locator = Mock()
    return locator


def build_frame(name: str = "", elements: Iterable[str] = (), children: Iterable = ()):
    """
    Mock Playwright frame.

    `elements` lists selectors that exist in this frame's document; each
    selector maps to one cached locator so identity checks work.
    """
    frame = Mock()
    frame.name = name
    frame.url = f"https://example.com/{name or 'main'}"
    frame.child_frames = list(children)
    frame.is_detached = Mock(return_value=False)
    frame.elements = set(elements)
    frame.locators = {}

    def locator(selector):
        if selector not in frame.locators:
            frame.locators[selector] = build_locator(selector in frame.elements)
        return frame.locators[selector]

    frame.locator = Mock(side_effect=locator)
    frame.evaluate = AsyncMock(return_value=False)
    frame.evaluate_handle = AsyncMock()
    frame.query_selector = AsyncMock(return_value=None)
    return frame


def build_page(main_frame=None):
    """Mock Playwright page whose main frame is `main_frame`."""
    page = AsyncMock()
    page.main_frame = main_frame or build_frame()
    page.url = "https://example.com/test"
    page.goto = AsyncMock(return_value=None)
    page.reload = AsyncMock(return_value=None)
    page.go_back = AsyncMock(return_value=None)
    page.go_forward = AsyncMock(return_value=None)
    page.title = AsyncMock(return_value="Test Page")
    page.content = AsyncMock(return_value="<html><body><div id='test'>Test</div></body></html>")
    page.evaluate = AsyncMock(return_value=None)
    page.wait_for_load_state = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"fake_screenshot_data")
    page.on = Mock()
    page.keyboard = Mock()
    page.keyboard.press = AsyncMock()
    page.mouse = Mock()
    page.mouse.down = AsyncMock()
    page.mouse.up = AsyncMock()
    page.mouse.move = AsyncMock()
    page.context = Mock()
    page.context.pages = [page]
    page.context.clear_cookies = AsyncMock()
    page.context.cookies = AsyncMock(return_value=[])
    page.context.add_cookies = AsyncMock()
    return page


def build_js_handle(element=None):
    """Mock JSHandle as returned by evaluate_handle."""
    handle = Mock()
    handle.as_element = Mock(return_value=element)
    handle.dispose = AsyncMock()
    return handle


# ==================== Fixtures ====================

@pytest.fixture
def frame_factory():
    return build_frame


@pytest.fixture
def page_factory():
    return build_page


@pytest.fixture
def js_handle_factory():
    return build_js_handle


@pytest.fixture
def mock_page():
    """Page with an empty main document."""
    return build_page()


@pytest.fixture
def mock_logger():
    """Stand-in for a LoggerHandle."""
    return Mock()


@pytest.fixture
def fast_settings(tmp_path):
    """Settings with zero waits so fallback stages run a single pass."""
    return Settings(
        element_timeout_ms=0,
        page_load_timeout_ms=0,
        screenshots_dir=str(tmp_path / "screenshots"),
        reports_dir=str(tmp_path / "reports")
    )


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def logging_manager(log_dir):
    """Isolated manager writing under tmp_path, no console output."""
    manager = LoggingManager(log_dir=log_dir, level="DEBUG", console=False)
    yield manager
    manager.reset()
