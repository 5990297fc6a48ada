"""
Environment base — the contract between the console and a container.

The planner never talks to a container directly. Everything it needs
from the outside world goes through an AppEnvironment: reading
package files, querying installed apps, dependency sorting, and the
publish/unpublish actions.

Every method takes the target container explicitly. There is no
"selected container" state anywhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from appconsole.core.models.app import AppPackage, InstalledApp
from appconsole.core.models.receipt import Receipt


class EnvironmentQueryError(Exception):
    """A read-side call (package info, installed list, sort) failed."""


class AppEnvironment(ABC):
    """Abstract base class for container environments.

    Query methods return data or raise EnvironmentQueryError.
    Action methods (publish, unpublish) NEVER raise: failures are
    captured in the Receipt with status='failed'.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The environment identifier (e.g., 'bccontainerhelper', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the underlying tooling can be reached. Never raises."""

    # ── Queries ─────────────────────────────────────────────────

    @abstractmethod
    def read_package(self, container: str, path: str) -> AppPackage:
        """Read identity fields from a package file."""

    @abstractmethod
    def list_installed(self, container: str) -> list[InstalledApp]:
        """Snapshot of the apps currently in the container."""

    @abstractmethod
    def sort_by_dependencies(
        self, container: str, packages: Sequence[AppPackage]
    ) -> list[AppPackage]:
        """Return the packages in an order that respects their dependencies."""

    # ── Actions ─────────────────────────────────────────────────

    @abstractmethod
    def publish(self, container: str, package: AppPackage, upgrade: bool) -> Receipt:
        """Publish a package; ``upgrade`` selects the data-upgrade path."""

    @abstractmethod
    def unpublish(self, container: str, name: str, publisher: str, version: str) -> Receipt:
        """Remove one published version of an app."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
