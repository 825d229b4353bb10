"""
Configuration Module

Layered configuration lookup and timeout constants.
"""

from .settings import ConfigResolver, Settings
from .timeouts import Timeouts

__all__ = [
    "ConfigResolver",
    "Settings",
    "Timeouts"
]
