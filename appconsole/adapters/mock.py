"""
Mock environment — deterministic test double for a container.

Used by the test suite and by ``--mock`` on the CLI. Holds an
installed-app snapshot in memory, reads packages from registered
entries or from ``app.json``-style manifest files, and can be told
to fail specific publishes or unpublishes.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.core.models.app import AppPackage, InstalledApp, normalize_app_id
from appconsole.core.models.receipt import Receipt


@dataclass(frozen=True)
class MockCall:
    """One recorded call against the mock."""

    method: str
    container: str
    target: str
    upgrade: bool = False


class MockAppEnvironment(AppEnvironment):
    """In-memory container for testing.

    By default every publish and unpublish succeeds and the dependency
    sort returns packages in the order given.
    """

    def __init__(
        self,
        environment_name: str = "mock",
        installed: Sequence[InstalledApp] = (),
        available: bool = True,
    ):
        self._name = environment_name
        self._installed = list(installed)
        self._available = available
        self._packages: dict[str, AppPackage] = {}
        self._order: list[str] | None = None
        self._publish_failures: dict[str, str] = {}
        self._unpublish_failures: dict[tuple[str, str], str] = {}
        self._call_log: list[MockCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[MockCall]:
        """All calls this mock has received, in order."""
        return self._call_log

    def calls(self, method: str) -> list[MockCall]:
        return [c for c in self._call_log if c.method == method]

    def is_available(self) -> bool:
        return self._available

    # ── Configuration ───────────────────────────────────────────

    def add_package(self, package: AppPackage) -> None:
        """Make ``read_package(package.path)`` return this package."""
        self._packages[package.path] = package

    def set_dependency_order(self, app_ids: Sequence[str]) -> None:
        """Fix the order ``sort_by_dependencies`` returns, by AppId."""
        self._order = [normalize_app_id(a) for a in app_ids]

    def set_publish_failure(self, app_id: str, error: str = "Mock publish failure") -> None:
        self._publish_failures[normalize_app_id(app_id)] = error

    def set_unpublish_failure(
        self, name: str, version: str, error: str = "Mock unpublish failure"
    ) -> None:
        self._unpublish_failures[(name, version)] = error

    # ── Queries ─────────────────────────────────────────────────

    def read_package(self, container: str, path: str) -> AppPackage:
        self._call_log.append(MockCall("read_package", container, path))
        if path in self._packages:
            return self._packages[path]
        return _read_manifest(Path(path))

    def list_installed(self, container: str) -> list[InstalledApp]:
        self._call_log.append(MockCall("list_installed", container, ""))
        return list(self._installed)

    def sort_by_dependencies(
        self, container: str, packages: Sequence[AppPackage]
    ) -> list[AppPackage]:
        self._call_log.append(MockCall("sort_by_dependencies", container, ""))
        if self._order is None:
            return list(packages)
        rank = {app_id: i for i, app_id in enumerate(self._order)}
        return sorted(packages, key=lambda p: rank.get(p.identity, len(rank)))

    # ── Actions ─────────────────────────────────────────────────

    def publish(self, container: str, package: AppPackage, upgrade: bool) -> Receipt:
        operation = "upgrade" if upgrade else "publish"
        self._call_log.append(MockCall("publish", container, package.label, upgrade))

        error = self._publish_failures.get(package.identity)
        if error is not None:
            return Receipt.failure(
                environment=self._name, operation=operation, target=package.label, error=error,
            )

        self._installed = [a for a in self._installed if a.identity != package.identity]
        self._installed.append(
            InstalledApp(
                app_id=package.app_id,
                name=package.name,
                publisher=package.publisher,
                version=package.version,
                is_installed=True,
                is_published=True,
            )
        )
        return Receipt.success(
            environment=self._name,
            operation=operation,
            target=package.label,
            output=f"[mock] {operation} {package.label} to {container}",
            metadata={"mock": True},
        )

    def unpublish(self, container: str, name: str, publisher: str, version: str) -> Receipt:
        target = f"{publisher}_{name}_{version}"
        self._call_log.append(MockCall("unpublish", container, target))

        error = self._unpublish_failures.get((name, version))
        if error is not None:
            return Receipt.failure(
                environment=self._name, operation="unpublish", target=target, error=error,
            )
        return Receipt.success(
            environment=self._name,
            operation="unpublish",
            target=target,
            output=f"[mock] unpublish {target} from {container}",
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._publish_failures.clear()
        self._unpublish_failures.clear()


def _read_manifest(path: Path) -> AppPackage:
    """Read an ``app.json``-style manifest (id, name, publisher, version)."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise EnvironmentQueryError(f"Cannot read package {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise EnvironmentQueryError(f"Package {path} is not a JSON manifest: {e}") from e

    if not isinstance(data, dict):
        raise EnvironmentQueryError(f"Package {path} is not a JSON object")

    missing = [k for k in ("id", "name", "publisher", "version") if not data.get(k)]
    if missing:
        raise EnvironmentQueryError(f"Package {path} is missing: {', '.join(missing)}")

    return AppPackage(
        app_id=str(data["id"]),
        name=str(data["name"]),
        publisher=str(data["publisher"]),
        version=str(data["version"]),
        path=str(path),
    )
