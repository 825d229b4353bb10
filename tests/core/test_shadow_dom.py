"""
Unit tests for ShadowDomResolver.

Shadow lookups run as page scripts, so the frame's evaluate_handle is faked
to return JS handles that do or do not wrap an element.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from e2e_framework.core import BrowsingContext, ShadowDomResolver


@pytest.fixture
def page(page_factory):
    return page_factory()


@pytest.fixture
def resolver(page, mock_logger):
    return ShadowDomResolver(BrowsingContext.of(page), logger=mock_logger, poll_interval=0)


class TestDeepSelectorParsing:
    """Test >>> splitting."""

    def test_is_deep_selector(self):
        """Test detection of the combinator."""
        assert ShadowDomResolver.is_deep_selector("a >>> b")
        assert not ShadowDomResolver.is_deep_selector("a > b")
        assert not ShadowDomResolver.is_deep_selector(None)

    def test_split_trims_segments(self):
        """Test segments are stripped of surrounding whitespace."""
        segments = ShadowDomResolver.split_deep_selector("my-app >>>  settings-panel>>> #save ")

        assert segments == ["my-app", "settings-panel", "#save"]


class TestFindInShadowDom:
    """Test deep selector lookup."""

    @pytest.mark.asyncio
    async def test_found(self, resolver, page, js_handle_factory):
        """Test the element wrapped by the script result is returned."""
        element = Mock()
        page.main_frame.evaluate_handle = AsyncMock(return_value=js_handle_factory(element))

        result = await resolver.find_in_shadow_dom("my-app >>> .inner-button", timeout=0)

        assert result is element
        script, segments = page.main_frame.evaluate_handle.call_args.args
        assert segments == ["my-app", ".inner-button"]

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self, resolver, page, js_handle_factory):
        """Test a null script result gives None and disposes the handle."""
        handle = js_handle_factory(None)
        page.main_frame.evaluate_handle = AsyncMock(return_value=handle)

        result = await resolver.find_in_shadow_dom("my-app >>> .missing", timeout=0)

        assert result is None
        handle.dispose.assert_awaited()

    @pytest.mark.asyncio
    async def test_polls_until_found(self, resolver, page, js_handle_factory):
        """Test the lookup retries while within the timeout."""
        element = Mock()
        page.main_frame.evaluate_handle = AsyncMock(side_effect=[
            js_handle_factory(None),
            js_handle_factory(None),
            js_handle_factory(element)
        ])

        result = await resolver.find_in_shadow_dom("a >>> b", timeout=5000)

        assert result is element
        assert page.main_frame.evaluate_handle.await_count == 3

    @pytest.mark.asyncio
    async def test_script_error_is_a_miss(self, resolver, page):
        """Test evaluation failures are treated as not found."""
        page.main_frame.evaluate_handle = AsyncMock(side_effect=Exception("context destroyed"))

        assert await resolver.find_in_shadow_dom("a >>> b", timeout=0) is None

    @pytest.mark.asyncio
    async def test_runs_in_current_frame(self, page_factory, frame_factory, js_handle_factory, mock_logger):
        """Test the lookup targets the context's current frame."""
        child = frame_factory("child")
        page = page_factory(frame_factory(children=[child]))
        context = BrowsingContext.of(page)
        await context.switch_to_frame(child)
        element = Mock()
        child.evaluate_handle = AsyncMock(return_value=js_handle_factory(element))

        resolver = ShadowDomResolver(context, logger=mock_logger, poll_interval=0)

        assert await resolver.find_in_shadow_dom("a >>> b", timeout=0) is element
        page.main_frame.evaluate_handle.assert_not_awaited()


class TestFindAll:
    """Test multi-element lookups."""

    @pytest.mark.asyncio
    async def test_collects_elements(self, resolver, page, js_handle_factory):
        """Test array results are unpacked into element handles."""
        first, second = Mock(), Mock()
        array_handle = Mock()
        array_handle.get_properties = AsyncMock(return_value={
            "0": js_handle_factory(first),
            "1": js_handle_factory(second),
            "length": js_handle_factory(None)
        })
        array_handle.dispose = AsyncMock()
        page.main_frame.evaluate_handle = AsyncMock(return_value=array_handle)

        elements = await resolver.deep_find_all_elements(".row")

        assert elements == [first, second]
        array_handle.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_gives_empty_list(self, resolver, page):
        """Test failures return an empty list."""
        page.main_frame.evaluate_handle = AsyncMock(side_effect=Exception("boom"))

        assert await resolver.find_all_in_shadow_dom("a >>> .row") == []


class TestDeepFind:
    """Test exhaustive shadow root search."""

    @pytest.mark.asyncio
    async def test_found(self, resolver, page, js_handle_factory):
        """Test a plain selector found behind shadow roots."""
        element = Mock()
        page.main_frame.evaluate_handle = AsyncMock(return_value=js_handle_factory(element))

        assert await resolver.deep_find_element(".inner", timeout=0) is element

    @pytest.mark.asyncio
    async def test_miss(self, resolver, page, js_handle_factory):
        """Test a miss returns None after the timeout."""
        page.main_frame.evaluate_handle = AsyncMock(return_value=js_handle_factory(None))

        assert await resolver.deep_find_element(".inner", timeout=0) is None


class TestShadowPresence:
    """Test presence and count checks."""

    @pytest.mark.asyncio
    async def test_has_shadow_dom(self, resolver, page):
        """Test presence check result."""
        page.main_frame.evaluate = AsyncMock(return_value=True)

        assert await resolver.has_shadow_dom() is True

    @pytest.mark.asyncio
    async def test_has_shadow_dom_error(self, resolver, page):
        """Test check failures count as no shadow DOM."""
        page.main_frame.evaluate = AsyncMock(side_effect=Exception("navigating"))

        assert await resolver.has_shadow_dom() is False

    @pytest.mark.asyncio
    async def test_count(self, resolver, page):
        """Test shadow root counting."""
        page.main_frame.evaluate = AsyncMock(return_value=3)

        assert await resolver.count_shadow_roots() == 3

    @pytest.mark.asyncio
    async def test_count_error(self, resolver, page):
        """Test count failures give zero."""
        page.main_frame.evaluate = AsyncMock(side_effect=Exception("navigating"))

        assert await resolver.count_shadow_roots() == 0
