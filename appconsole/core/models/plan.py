"""
Plan and execution models — what the planner produces and records.

A PlanEntry is created once during planning and never changes. The
execution side appends an EntryOutcome per attempted entry; entries
without an outcome were never attempted (the run was aborted first).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from appconsole.core.models.app import AppPackage, InstalledApp


class PlanAction(StrEnum):
    """Classification of a package relative to the installed snapshot."""

    NEW_INSTALL = "new_install"
    UPGRADE = "upgrade"
    SKIP = "skip"
    DOWNGRADE = "downgrade"

    @property
    def is_upgrade_class(self) -> bool:
        """Upgrades and downgrades both go through the data-upgrade publish path."""
        return self in (PlanAction.UPGRADE, PlanAction.DOWNGRADE)


class EntryState(StrEnum):
    """Primary state of a plan entry once execution is over."""

    PLANNED = "planned"
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


class SupersededState(StrEnum):
    PENDING = "pending"
    REMOVED = "removed"
    REMOVE_FAILED = "remove_failed"


class PlanEntry(BaseModel):
    """One row of an installation plan."""

    model_config = ConfigDict(frozen=True)

    position: int                        # 1-based row in dependency order
    package: AppPackage
    existing: InstalledApp | None = None
    action: PlanAction

    @property
    def existing_version(self) -> str | None:
        return self.existing.version if self.existing else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "action": self.action.value,
            "app_id": self.package.app_id,
            "name": self.package.name,
            "publisher": self.package.publisher,
            "version": self.package.version,
            "existing_version": self.existing_version,
            "path": self.package.path,
        }


@dataclass
class SupersededRecord:
    """An old version queued for removal after its upgrade succeeded."""

    name: str
    publisher: str
    version: str
    state: SupersededState = SupersededState.PENDING
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "publisher": self.publisher,
            "version": self.version,
            "state": self.state.value,
            "error": self.error,
        }


@dataclass
class EntryOutcome:
    """Execution record for one attempted (or skipped) plan entry."""

    entry: PlanEntry
    state: EntryState
    error: str | None = None
    duration_ms: int = 0
    superseded: SupersededRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.entry.to_dict()
        data["state"] = self.state.value
        data["error"] = self.error
        data["duration_ms"] = self.duration_ms
        data["superseded"] = self.superseded.to_dict() if self.superseded else None
        return data


@dataclass
class ExecutionSummary:
    """Result of executing a plan.

    ``outcomes`` holds entries in plan order, up to the point where
    execution stopped. Entries of ``plan`` that have no outcome were
    not attempted.
    """

    plan: list[PlanEntry] = field(default_factory=list)
    outcomes: list[EntryOutcome] = field(default_factory=list)
    aborted: bool = False

    def _count(self, state: EntryState) -> int:
        return sum(1 for o in self.outcomes if o.state == state)

    @property
    def total(self) -> int:
        return len(self.plan)

    @property
    def succeeded(self) -> int:
        return self._count(EntryState.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(EntryState.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(EntryState.SKIPPED)

    @property
    def not_attempted(self) -> int:
        return self.total - len(self.outcomes)

    @property
    def new_installs(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.state == EntryState.SUCCEEDED and o.entry.action == PlanAction.NEW_INSTALL
        )

    @property
    def upgrades(self) -> int:
        """Successful upgrade-class entries, downgrades included."""
        return sum(
            1 for o in self.outcomes
            if o.state == EntryState.SUCCEEDED and o.entry.action.is_upgrade_class
        )

    @property
    def downgrades(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.state == EntryState.SUCCEEDED and o.entry.action == PlanAction.DOWNGRADE
        )

    @property
    def superseded(self) -> list[SupersededRecord]:
        return [o.superseded for o in self.outcomes if o.superseded is not None]

    @property
    def superseded_removed(self) -> int:
        return sum(1 for s in self.superseded if s.state == SupersededState.REMOVED)

    @property
    def superseded_remove_failed(self) -> int:
        return sum(1 for s in self.superseded if s.state == SupersededState.REMOVE_FAILED)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and self.not_attempted == 0

    @property
    def status(self) -> str:
        if self.all_ok:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def state_of(self, position: int) -> EntryState:
        """Primary state of the entry at ``position`` (1-based)."""
        for outcome in self.outcomes:
            if outcome.entry.position == position:
                return outcome.state
        if any(e.position == position for e in self.plan):
            return EntryState.NOT_ATTEMPTED
        raise KeyError(position)

    def counts(self) -> dict[str, int]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "not_attempted": self.not_attempted,
            "new_installs": self.new_installs,
            "upgrades": self.upgrades,
            "downgrades": self.downgrades,
            "superseded_removed": self.superseded_removed,
            "superseded_remove_failed": self.superseded_remove_failed,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "aborted": self.aborted,
            **self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
