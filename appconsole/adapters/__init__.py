"""Adapters — container environments the console drives.

Public re-exports for convenient access.
"""

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.adapters.mock import MockAppEnvironment

__all__ = [
    "AppEnvironment",
    "EnvironmentQueryError",
    "MockAppEnvironment",
]
