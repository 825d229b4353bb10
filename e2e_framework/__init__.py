"""
e2e-framework

Browser end-to-end test automation on Playwright: page objects with
shadow DOM and iframe resolution, worker/scenario-scoped logging, layered
configuration and report archival.
"""

from .config import ConfigResolver, Settings, Timeouts
from .core import (
    BaseComponent,
    BasePage,
    BrowserManager,
    DialogTracker,
    ElementResolver,
    FrameManager,
    ShadowDomResolver,
)
from .errors import (
    CircuitOpenError,
    ConfigurationError,
    ElementInteractionError,
    FrameSwitchError,
    FrameworkError,
    WaitTimeoutError,
    WindowSwitchError,
)
from .hooks import FrameworkHooks, resolve_worker_id
from .log import LoggingManager, get_logging_manager

__version__ = "1.0.0"

__all__ = [
    "ConfigResolver",
    "Settings",
    "Timeouts",
    "BaseComponent",
    "BasePage",
    "BrowserManager",
    "DialogTracker",
    "ElementResolver",
    "FrameManager",
    "ShadowDomResolver",
    "CircuitOpenError",
    "ConfigurationError",
    "ElementInteractionError",
    "FrameSwitchError",
    "FrameworkError",
    "WaitTimeoutError",
    "WindowSwitchError",
    "FrameworkHooks",
    "resolve_worker_id",
    "LoggingManager",
    "get_logging_manager"
]
