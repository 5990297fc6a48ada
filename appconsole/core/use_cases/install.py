"""
Install use case — from package files to an audited install run.

Flow:
    paths → package files → read packages → installed snapshot
          → dependency sort → plan → confirm → execute → audit

Errors never escape: they land in ``result.error`` for the CLI to
render. The target container is passed in by the caller on every
call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.core.engine.errors import PlannerError
from appconsole.core.engine.planner import (
    FailureHook,
    build_plan,
    execute_plan,
    generate_operation_id,
)
from appconsole.core.models.app import AppPackage, InstalledApp
from appconsole.core.models.config import ConsoleConfig
from appconsole.core.models.plan import ExecutionSummary, PlanAction, PlanEntry
from appconsole.core.models.receipt import Receipt
from appconsole.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)

PACKAGE_SUFFIX = ".app"


@dataclass
class PlanResult:
    """A plan for one container, or why there is none."""

    container: str = ""
    environment: str = ""
    packages: list[AppPackage] = field(default_factory=list)
    installed: list[InstalledApp] = field(default_factory=list)
    plan: list[PlanEntry] = field(default_factory=list)
    error: str | None = None

    def count(self, action: PlanAction) -> int:
        return sum(1 for e in self.plan if e.action == action)

    @property
    def downgrades(self) -> list[PlanEntry]:
        return [e for e in self.plan if e.action == PlanAction.DOWNGRADE]

    @property
    def has_work(self) -> bool:
        return any(e.action != PlanAction.SKIP for e in self.plan)

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"container": self.container, "error": self.error}
        return {
            "container": self.container,
            "environment": self.environment,
            "total": len(self.plan),
            "actions": {a.value: self.count(a) for a in PlanAction},
            "plan": [e.to_dict() for e in self.plan],
        }


@dataclass
class InstallResult:
    """Result of an install run."""

    planning: PlanResult = field(default_factory=PlanResult)
    summary: ExecutionSummary | None = None
    operation_id: str = ""
    cancelled: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.error:
            return {"container": self.planning.container, "error": self.error}
        result: dict[str, Any] = {
            "operation_id": self.operation_id,
            "cancelled": self.cancelled,
            **self.planning.to_dict(),
        }
        if self.summary is not None:
            result["summary"] = self.summary.to_dict()
        return result


def collect_package_files(paths: Sequence[str | Path]) -> list[str]:
    """Expand directories to the ``*.app`` files they contain.

    Files are taken as given; directories contribute their package
    files in name order. Duplicate paths are dropped.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    files: list[str] = []
    seen: set[str] = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted(p for p in path.iterdir() if p.is_file() and p.suffix == PACKAGE_SUFFIX)
            logger.debug("%s: %d package files", path, len(found))
        elif path.is_file():
            found = [path]
        else:
            raise FileNotFoundError(f"No such package file or directory: {path}")

        for p in found:
            key = str(p.resolve())
            if key not in seen:
                seen.add(key)
                files.append(str(p))
    return files


def build_environment(config: ConsoleConfig, mock_mode: bool = False) -> AppEnvironment:
    """The environment the CLI talks to."""
    if mock_mode:
        from appconsole.adapters.mock import MockAppEnvironment

        return MockAppEnvironment()

    from appconsole.adapters.containers.bccontainer import BcContainerHelperEnvironment

    return BcContainerHelperEnvironment(config)


def plan_install(
    container: str,
    paths: Sequence[str | Path],
    environment: AppEnvironment,
    *,
    allow_duplicates: bool = False,
) -> PlanResult:
    """Read packages, query the container and build the plan. Executes nothing."""
    result = PlanResult(container=container, environment=environment.name)

    try:
        files = collect_package_files(paths)
    except FileNotFoundError as e:
        result.error = str(e)
        return result
    if not files:
        result.error = "No package files found."
        return result

    try:
        result.packages = [environment.read_package(container, f) for f in files]
        result.installed = environment.list_installed(container)
        ordered = environment.sort_by_dependencies(container, result.packages)
    except EnvironmentQueryError as e:
        result.error = str(e)
        return result

    try:
        result.plan = build_plan(
            result.packages,
            result.installed,
            ordered,
            allow_duplicates=allow_duplicates,
        )
    except PlannerError as e:
        result.error = str(e)
        return result

    logger.info(
        "Plan for %s: %d packages (%d new, %d upgrade, %d downgrade, %d skip)",
        container,
        len(result.plan),
        result.count(PlanAction.NEW_INSTALL),
        result.count(PlanAction.UPGRADE),
        result.count(PlanAction.DOWNGRADE),
        result.count(PlanAction.SKIP),
    )
    return result


def run_install(
    container: str,
    paths: Sequence[str | Path],
    environment: AppEnvironment,
    *,
    unpublish_superseded: bool = True,
    on_failure: FailureHook | None = None,
    confirm: Callable[[PlanResult], bool] | None = None,
    allow_duplicates: bool = False,
    audit_writer: AuditWriter | None = None,
) -> InstallResult:
    """Plan and execute an install run against one container.

    Args:
        container: Target container name.
        paths: Package files and/or directories of package files.
        environment: Environment to read from and publish to.
        unpublish_superseded: Remove old versions after successful upgrades.
        on_failure: Decides continue/abort after a failed publish.
        confirm: Called with the plan before executing; returning False
            cancels the run.
        allow_duplicates: Plan packages sharing an AppId independently.
        audit_writer: Ledger for the run (None = no audit entry).
    """
    planning = plan_install(container, paths, environment, allow_duplicates=allow_duplicates)
    result = InstallResult(planning=planning)
    if planning.error:
        result.error = planning.error
        return result

    if confirm is not None and not confirm(planning):
        logger.info("Install on %s cancelled before execution", container)
        result.cancelled = True
        return result

    result.operation_id = generate_operation_id()
    result.summary = execute_plan(
        planning.plan,
        partial(_publish, environment, container),
        partial(environment.unpublish, container),
        unpublish_superseded=unpublish_superseded,
        on_failure=on_failure,
    )

    if audit_writer is not None:
        audit_writer.write(
            AuditEntry.from_summary(
                result.summary,
                operation_id=result.operation_id,
                container=container,
                environment=environment.name,
            )
        )

    return result


def _publish(
    environment: AppEnvironment, container: str, package: AppPackage, is_upgrade: bool
) -> Receipt:
    return environment.publish(container, package, upgrade=is_upgrade)
