"""
Unit tests for element references and resolution results.
"""

from unittest.mock import Mock

from e2e_framework.core.reference import (
    Reference,
    ReferenceKind,
    Resolution,
    ResolutionStage,
)


class TestReferenceParse:
    """Test classification of caller input."""

    def test_plain_selector(self):
        """Test a CSS selector is a plain selector."""
        ref = Reference.parse("#login-button")

        assert ref.kind is ReferenceKind.SELECTOR
        assert ref.value == "#login-button"

    def test_deep_selector(self):
        """Test the >>> combinator marks a deep selector."""
        ref = Reference.parse("my-app >>> settings-panel >>> #save")

        assert ref.kind is ReferenceKind.DEEP_SELECTOR

    def test_deep_marker_without_spaces(self):
        """Test the marker is recognised without surrounding whitespace."""
        assert Reference.parse("host>>>.inner").kind is ReferenceKind.DEEP_SELECTOR

    def test_element_is_direct(self):
        """Test a non-string reference is passed through."""
        element = Mock()

        ref = Reference.parse(element)

        assert ref.kind is ReferenceKind.DIRECT
        assert ref.value is element

    def test_description(self):
        """Test selectors describe themselves verbatim."""
        assert Reference.parse(".row").description == ".row"


class TestResolution:
    """Test resolution result helpers."""

    def test_found(self):
        """Test every stage except NOT_FOUND counts as found."""
        for stage in ResolutionStage:
            resolution = Resolution(element=Mock(), stage=stage)
            assert resolution.found == (stage is not ResolutionStage.NOT_FOUND)

    def test_default_frame_path(self):
        """Test frame_path defaults to an independent empty list."""
        first = Resolution(None, ResolutionStage.DOM)
        second = Resolution(None, ResolutionStage.DOM)

        first.frame_path.append(1)

        assert second.frame_path == []
