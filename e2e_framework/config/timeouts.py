"""
Centralised timeout constants (milliseconds).

Element, page-load and script waits can be overridden via environment.
"""

import os


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


class Timeouts:
    # Single element appear / become interactive
    ELEMENT_WAIT = _env_int("TIMEOUT_IMPLICIT", 15000)
    PAGE_LOAD = _env_int("TIMEOUT_PAGE_LOAD", 30000)
    SCRIPT = _env_int("TIMEOUT_SCRIPT", 30000)

    SHORT = 5000
    MEDIUM = 15000
    LONG = 30000
    EXTRA_LONG = 60000

    POLL_INTERVAL = 500
    API_REQUEST = 30000
    FILE_DOWNLOAD = 30000
    ANIMATION = 1000
