"""
Inventory use case — list the apps in a container.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.core.models.app import InstalledApp


@dataclass
class InventoryResult:
    """Apps seen in one container."""

    container: str = ""
    apps: list[InstalledApp] = field(default_factory=list)
    error: str | None = None

    @property
    def installed_count(self) -> int:
        return sum(1 for a in self.apps if a.is_installed)

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"container": self.container, "error": self.error}
        return {
            "container": self.container,
            "total": len(self.apps),
            "installed": self.installed_count,
            "apps": [a.model_dump(mode="json") for a in self.apps],
        }


def list_apps(container: str, environment: AppEnvironment) -> InventoryResult:
    """Query the container; apps are sorted by publisher, then name."""
    result = InventoryResult(container=container)
    try:
        apps = environment.list_installed(container)
    except EnvironmentQueryError as e:
        result.error = str(e)
        return result

    result.apps = sorted(apps, key=lambda a: (a.publisher.lower(), a.name.lower(), a.version))
    return result
