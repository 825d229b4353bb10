"""
Unit tests for ElementResolver.

The first group injects mocked shadow/frame collaborators to check which
stages run; the second drives the real resolvers over fake nested frames.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from e2e_framework.core import (
    BrowsingContext,
    ElementResolver,
    FrameManager,
    ShadowDomResolver,
)
from e2e_framework.core.frame_manager import FrameSearchResult
from e2e_framework.core.reference import ResolutionStage
from e2e_framework.errors import ElementInteractionError


@pytest.fixture
def shadow():
    resolver = Mock()
    resolver.has_shadow_dom = AsyncMock(return_value=False)
    resolver.deep_find_element = AsyncMock(return_value=None)
    resolver.find_in_shadow_dom = AsyncMock(return_value=None)
    return resolver


@pytest.fixture
def frame_manager():
    manager = Mock()
    manager.get_frame_count = AsyncMock(return_value=0)
    manager.find_element_across_frames = AsyncMock(return_value=None)
    manager.switch_to_default_content = AsyncMock()
    return manager


def build_resolver(page, shadow, frame_manager, logger, **kwargs):
    return ElementResolver(
        BrowsingContext.of(page),
        shadow,
        frame_manager,
        logger,
        timeout=0,
        **kwargs
    )


class TestResolutionOrder:
    """Test which stages run for a given page."""

    @pytest.mark.asyncio
    async def test_direct_element_unchanged(self, mock_page, shadow, frame_manager, mock_logger):
        """Test an element is returned as-is without any lookup."""
        element = Mock()
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details(element)

        assert resolution.element is element
        assert resolution.stage is ResolutionStage.DIRECT
        mock_page.main_frame.locator.assert_not_called()

    @pytest.mark.asyncio
    async def test_dom_hit_skips_fallbacks(self, page_factory, frame_factory, shadow, frame_manager, mock_logger):
        """Test a DOM hit never searches shadow roots or frames."""
        page = page_factory(frame_factory(elements=["#login"]))
        resolver = build_resolver(page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details("#login")

        assert resolution.stage is ResolutionStage.DOM
        assert resolution.element is page.main_frame.locators["#login"]
        shadow.has_shadow_dom.assert_not_awaited()
        frame_manager.get_frame_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dom_query_runs_once(self, page_factory, frame_factory, shadow, frame_manager, mock_logger):
        """Test the standard query is built once and reused."""
        page = page_factory(frame_factory(elements=["#login"]))
        resolver = build_resolver(page, shadow, frame_manager, mock_logger)

        await resolver.resolve("#login")

        page.main_frame.locator.assert_called_once_with("#login")

    @pytest.mark.asyncio
    async def test_shadow_hit_skips_frames(self, mock_page, shadow, frame_manager, mock_logger):
        """Test a shadow root hit never searches frames."""
        element = Mock()
        shadow.has_shadow_dom.return_value = True
        shadow.deep_find_element.return_value = element
        frame_manager.get_frame_count.return_value = 2
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details(".inner")

        assert resolution.element is element
        assert resolution.stage is ResolutionStage.SHADOW
        frame_manager.find_element_across_frames.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_shadow_roots_skips_search(self, mock_page, shadow, frame_manager, mock_logger):
        """Test the shadow search is skipped when the page has no shadow roots."""
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        await resolver.resolve(".inner")

        shadow.has_shadow_dom.assert_awaited_once()
        shadow.deep_find_element.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_frames_skips_search(self, mock_page, shadow, frame_manager, mock_logger):
        """Test the frame search is skipped on a frameless page."""
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        await resolver.resolve(".inner")

        frame_manager.find_element_across_frames.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_frame_hit(self, mock_page, shadow, frame_manager, mock_logger):
        """Test a frame hit reports its path."""
        element = Mock()
        frame_manager.get_frame_count.return_value = 1
        frame_manager.find_element_across_frames.return_value = FrameSearchResult(element, [0])
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details("#in-frame")

        assert resolution.element is element
        assert resolution.stage is ResolutionStage.FRAME
        assert resolution.frame_path == [0]
        frame_manager.switch_to_default_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_found_returns_dom_locator(self, mock_page, shadow, frame_manager, mock_logger):
        """Test a full miss returns the original locator and restores the top level."""
        frame_manager.get_frame_count.return_value = 1
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details("#nowhere")

        assert resolution.stage is ResolutionStage.NOT_FOUND
        assert not resolution.found
        assert resolution.element is mock_page.main_frame.locators["#nowhere"]
        frame_manager.switch_to_default_content.assert_awaited()

    @pytest.mark.asyncio
    async def test_frame_search_error_is_a_miss(self, mock_page, shadow, frame_manager, mock_logger):
        """Test frame search failures fall through to not found."""
        frame_manager.get_frame_count.return_value = 1
        frame_manager.find_element_across_frames.side_effect = Exception("frame detached")
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details("#nowhere")

        assert resolution.stage is ResolutionStage.NOT_FOUND
        frame_manager.switch_to_default_content.assert_awaited()

    @pytest.mark.asyncio
    async def test_shadow_search_error_is_a_miss(self, mock_page, shadow, frame_manager, mock_logger):
        """Test shadow search failures fall through to the frame stage."""
        shadow.has_shadow_dom.return_value = True
        shadow.deep_find_element.side_effect = Exception("context destroyed")
        frame_manager.get_frame_count.return_value = 1
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        await resolver.resolve("#nowhere")

        frame_manager.find_element_across_frames.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_flags_disable_stages(self, mock_page, shadow, frame_manager, mock_logger):
        """Test disabled fallbacks are never attempted."""
        shadow.has_shadow_dom.return_value = True
        frame_manager.get_frame_count.return_value = 3
        resolver = build_resolver(
            mock_page, shadow, frame_manager, mock_logger,
            auto_resolve_shadow_dom=False,
            auto_resolve_frames=False
        )

        resolution = await resolver.resolve_with_details(".inner")

        assert resolution.stage is ResolutionStage.NOT_FOUND
        shadow.has_shadow_dom.assert_not_awaited()
        frame_manager.get_frame_count.assert_not_awaited()


class TestDeepSelector:
    """Test explicit shadow-piercing selectors."""

    @pytest.mark.asyncio
    async def test_found(self, mock_page, shadow, frame_manager, mock_logger):
        """Test a deep selector uses only the shadow lookup."""
        element = Mock()
        shadow.find_in_shadow_dom.return_value = element
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        resolution = await resolver.resolve_with_details("my-app >>> #save")

        assert resolution.element is element
        assert resolution.stage is ResolutionStage.DEEP_SHADOW
        shadow.find_in_shadow_dom.assert_awaited_once_with("my-app >>> #save", 0)
        mock_page.main_frame.locator.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_raises(self, mock_page, shadow, frame_manager, mock_logger):
        """Test a deep selector miss raises without trying other stages."""
        frame_manager.get_frame_count.return_value = 2
        resolver = build_resolver(mock_page, shadow, frame_manager, mock_logger)

        with pytest.raises(ElementInteractionError) as exc_info:
            await resolver.resolve("my-app >>> #save")

        assert "my-app >>> #save" in str(exc_info.value)
        frame_manager.find_element_across_frames.assert_not_awaited()


class TestResolverIntegration:
    """Real shadow and frame resolvers over fake nested frames."""

    @pytest.fixture
    def frames(self, frame_factory):
        grandchild = frame_factory("grandchild", elements=["#card-number", "#cvv"])
        child = frame_factory("child", children=[grandchild])
        main = frame_factory(children=[child])
        return main, child, grandchild

    @pytest.fixture
    def resolver(self, page_factory, frames, mock_logger):
        context = BrowsingContext.of(page_factory(frames[0]))
        return ElementResolver(
            context,
            ShadowDomResolver(context, logger=mock_logger, poll_interval=0),
            FrameManager(context, logger=mock_logger, poll_interval=0),
            mock_logger,
            timeout=0
        )

    @pytest.mark.asyncio
    async def test_nested_frame_hit(self, resolver, frames):
        """Test a second-level iframe element is found and the context stays there."""
        main, child, grandchild = frames

        resolution = await resolver.resolve_with_details("#card-number")

        assert resolution.stage is ResolutionStage.FRAME
        assert resolution.frame_path == [0, 0]
        assert resolution.element is grandchild.locators["#card-number"]
        assert resolver.context.current_frame is grandchild

    @pytest.mark.asyncio
    async def test_follow_up_query_uses_frame(self, resolver, frames):
        """Test a later lookup hits directly in the frame entered before."""
        main, child, grandchild = frames
        await resolver.resolve("#card-number")

        resolution = await resolver.resolve_with_details("#cvv")

        assert resolution.stage is ResolutionStage.DOM
        assert resolution.element is grandchild.locators["#cvv"]

    @pytest.mark.asyncio
    async def test_miss_restores_top_level(self, resolver, frames):
        """Test a miss returns the main document locator at the top level."""
        main, child, grandchild = frames

        resolution = await resolver.resolve_with_details("#nowhere")

        assert resolution.stage is ResolutionStage.NOT_FOUND
        assert resolution.element is main.locators["#nowhere"]
        assert resolver.context.is_top_level
