"""
Core Page Object Module

Page objects and the element resolution chain behind them.
"""

from .base_component import BaseComponent
from .base_page import BasePage
from .browser_manager import BrowserManager
from .browsing_context import BrowsingContext, element_exists
from .dialogs import DialogTracker
from .element_resolver import ElementResolver
from .frame_manager import FrameInfo, FrameManager, FrameSearchResult
from .reference import Reference, ReferenceKind, Resolution, ResolutionStage
from .shadow_dom import ShadowDomResolver

__all__ = [
    "BaseComponent",
    "BasePage",
    "BrowserManager",
    "BrowsingContext",
    "DialogTracker",
    "element_exists",
    "ElementResolver",
    "FrameInfo",
    "FrameManager",
    "FrameSearchResult",
    "Reference",
    "ReferenceKind",
    "Resolution",
    "ResolutionStage",
    "ShadowDomResolver"
]
