"""
Framework Errors

Only configuration problems and genuine interaction failures reach the
caller. Housekeeping (log sinks, frame restoration) never raises.
"""

from typing import Optional


class FrameworkError(Exception):
    """Base class for all framework errors"""


class ConfigurationError(FrameworkError):
    """A required configuration value or credential is missing or invalid"""

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Missing required configuration value: {key}")


class WaitTimeoutError(FrameworkError):
    """A wait condition was not met within its timeout"""

    def __init__(self, message: str, timeout: int):
        self.timeout = timeout
        super().__init__(message)


class ElementInteractionError(WaitTimeoutError):
    """
    An interaction against an element did not complete in time.

    The message names the selector the caller passed in and the timeout,
    nothing about which resolution stage was tried.
    """

    def __init__(self, selector: str, timeout: int, condition: str = "interactable"):
        self.selector = selector
        self.condition = condition
        super().__init__(f"Element \"{selector}\" not {condition} after {timeout}ms", timeout)


class FrameSwitchError(FrameworkError):
    """Explicit frame switch requested with an unknown frame"""


class WindowSwitchError(FrameworkError):
    """Window switch requested with an unknown window, or no window left"""


class CircuitOpenError(FrameworkError):
    """Circuit breaker is open and rejected the call"""

    def __init__(self, failures: int):
        self.failures = failures
        super().__init__(f"Circuit breaker open - {failures} consecutive failures. Cooling down.")
