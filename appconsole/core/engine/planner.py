"""
Install planner — classify, order and execute a batch of app packages.

Flow:
    packages + installed snapshot + dependency order
        → build_plan()   (pure: classify each package, keep the order)
        → execute_plan() (sequential publish, then superseded cleanup)
        → ExecutionSummary

The planner owns no I/O. Publishing and unpublishing are injected
callables that return Receipts, so the same engine runs against a
real container or a deterministic fake.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import Counter, defaultdict
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import StrEnum

from appconsole.core.engine.errors import (
    ClassificationError,
    DuplicatePackageError,
    PlanningError,
    PublishError,
    UnpublishError,
)
from appconsole.core.engine.versions import parse_version
from appconsole.core.models.app import AppPackage, InstalledApp
from appconsole.core.models.plan import (
    EntryOutcome,
    EntryState,
    ExecutionSummary,
    PlanAction,
    PlanEntry,
    SupersededRecord,
    SupersededState,
)
from appconsole.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

PublishFn = Callable[[AppPackage, bool], Receipt]
UnpublishFn = Callable[[str, str, str], Receipt]


class FailureDecision(StrEnum):
    """What to do with the rest of the plan after a publish failure."""

    CONTINUE = "continue"
    ABORT = "abort"


FailureHook = Callable[[PlanEntry, PublishError], FailureDecision | None]


# ── Planning ────────────────────────────────────────────────────


def classify(package: AppPackage, existing: InstalledApp | None) -> PlanAction:
    """Classify a package against its installed match (if any).

    Raises:
        ClassificationError: If either version is malformed.
    """
    candidate = parse_version(package.version)
    if existing is None:
        return PlanAction.NEW_INSTALL

    current = parse_version(existing.version)
    if candidate > current:
        return PlanAction.UPGRADE
    if candidate < current:
        return PlanAction.DOWNGRADE
    return PlanAction.SKIP


def find_existing(package: AppPackage, installed: Sequence[InstalledApp]) -> InstalledApp | None:
    """Return the installed app with the package's AppId, if any.

    Only apps with ``is_installed`` count; published-but-uninstalled
    versions are not a match.

    Raises:
        PlanningError: If the snapshot has more than one installed match.
    """
    matches = [
        app for app in installed
        if app.is_installed and app.identity == package.identity
    ]
    if len(matches) > 1:
        versions = ", ".join(m.version for m in matches)
        raise PlanningError(
            f"Installed snapshot has {len(matches)} installed versions of "
            f"{package.name} ({package.app_id}): {versions}"
        )
    return matches[0] if matches else None


def build_plan(
    packages: Sequence[AppPackage],
    installed: Sequence[InstalledApp],
    dependency_order: Sequence[AppPackage],
    *,
    allow_duplicates: bool = False,
) -> list[PlanEntry]:
    """Build an installation plan in dependency order.

    Args:
        packages: Candidate packages of the batch.
        installed: Snapshot of apps in the target container.
        dependency_order: The same packages, sorted so every package
            follows its dependencies. Trusted as-is apart from being
            a permutation of ``packages``.
        allow_duplicates: Plan packages sharing an AppId independently
            instead of rejecting the batch.

    Returns:
        One PlanEntry per package, in ``dependency_order``.

    Raises:
        PlanningError: ``dependency_order`` is not a permutation of
            ``packages``, or the snapshot is inconsistent.
        DuplicatePackageError: Same AppId twice and not ``allow_duplicates``.
        ClassificationError: Any version is malformed.
    """
    if Counter(packages) != Counter(dependency_order):
        raise PlanningError(
            "Dependency order is not a permutation of the candidate packages "
            f"({len(dependency_order)} ordered vs {len(packages)} candidates)"
        )

    if not allow_duplicates:
        _reject_duplicates(packages)

    plan: list[PlanEntry] = []
    for position, package in enumerate(dependency_order, start=1):
        existing = find_existing(package, installed)
        try:
            action = classify(package, existing)
        except ClassificationError as e:
            raise ClassificationError(f"{package.label}: {e}") from e

        entry = PlanEntry(position=position, package=package, existing=existing, action=action)
        plan.append(entry)
        logger.debug(
            "Planned %d. %s → %s (installed: %s)",
            position, package.label, action.value, entry.existing_version or "-",
        )

    return plan


def _reject_duplicates(packages: Sequence[AppPackage]) -> None:
    by_id: dict[str, list[AppPackage]] = defaultdict(list)
    for package in packages:
        by_id[package.identity].append(package)
    for group in by_id.values():
        if len(group) > 1:
            raise DuplicatePackageError(group[0].app_id, [p.label for p in group])


# ── Execution ───────────────────────────────────────────────────


def execute_plan(
    plan: Sequence[PlanEntry],
    publish: PublishFn,
    unpublish: UnpublishFn,
    *,
    unpublish_superseded: bool = True,
    on_failure: FailureHook | None = None,
) -> ExecutionSummary:
    """Execute a plan strictly in order.

    Superseded versions are only queued while the main loop runs. They
    are removed after it, aborted or not, so later entries can still
    rely on the old versions during their own publish step.

    Args:
        plan: Entries from ``build_plan``.
        publish: ``publish(package, is_upgrade) -> Receipt``.
        unpublish: ``unpublish(name, publisher, version) -> Receipt``.
        unpublish_superseded: Remove old versions after successful upgrades.
        on_failure: Called after each failed publish; returning
            ``FailureDecision.ABORT`` stops the main loop. Defaults to
            continuing.

    Returns:
        ExecutionSummary. Publish and unpublish failures are recorded
        there, never raised.
    """
    summary = ExecutionSummary(plan=list(plan))
    pending: list[SupersededRecord] = []

    for entry in plan:
        if entry.action == PlanAction.SKIP:
            summary.outcomes.append(EntryOutcome(entry=entry, state=EntryState.SKIPPED))
            logger.info("⊘ %d. %s already installed", entry.position, entry.package.label)
            continue

        is_upgrade = entry.action.is_upgrade_class
        start = time.monotonic()
        receipt = _call_publish(publish, entry.package, is_upgrade)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if receipt.ok:
            outcome = EntryOutcome(entry=entry, state=EntryState.SUCCEEDED, duration_ms=elapsed_ms)
            if is_upgrade and unpublish_superseded and entry.existing is not None:
                outcome.superseded = SupersededRecord(
                    name=entry.existing.name,
                    publisher=entry.existing.publisher,
                    version=entry.existing.version,
                )
                pending.append(outcome.superseded)
            summary.outcomes.append(outcome)
            logger.info("✓ %d. %s → %s", entry.position, entry.package.label, entry.action.value)
            continue

        error = PublishError(receipt.error or "publish failed", receipt=receipt)
        summary.outcomes.append(
            EntryOutcome(
                entry=entry,
                state=EntryState.FAILED,
                error=str(error),
                duration_ms=elapsed_ms,
            )
        )
        logger.warning("✗ %d. %s: %s", entry.position, entry.package.label, error)

        decision = on_failure(entry, error) if on_failure else None
        if decision == FailureDecision.ABORT:
            summary.aborted = True
            logger.warning(
                "Aborted after %s: %d entries not attempted",
                entry.package.label, summary.not_attempted,
            )
            break

    _remove_superseded(pending, unpublish)
    return summary


def _call_publish(publish: PublishFn, package: AppPackage, is_upgrade: bool) -> Receipt:
    try:
        return publish(package, is_upgrade)
    except Exception as e:
        # Publishers return receipts; anything raised is still a per-entry failure
        logger.error("Publisher raised for %s: %s", package.label, e)
        return Receipt.failure(
            environment="unknown",
            operation="upgrade" if is_upgrade else "publish",
            target=package.label,
            error=f"Unexpected error: {e}",
        )


def _remove_superseded(pending: list[SupersededRecord], unpublish: UnpublishFn) -> None:
    """Best-effort removal of old versions; failures never roll back upgrades."""
    for record in pending:
        target = f"{record.publisher}_{record.name}_{record.version}"
        try:
            receipt = unpublish(record.name, record.publisher, record.version)
        except Exception as e:
            logger.error("Unpublisher raised for %s: %s", target, e)
            receipt = Receipt.failure(
                environment="unknown",
                operation="unpublish",
                target=target,
                error=f"Unexpected error: {e}",
            )

        if receipt.ok:
            record.state = SupersededState.REMOVED
            logger.info("✓ removed superseded %s", target)
            continue

        error = UnpublishError(receipt.error or "unpublish failed", receipt=receipt)
        record.state = SupersededState.REMOVE_FAILED
        record.error = str(error)
        logger.warning("✗ could not remove superseded %s: %s", target, error)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
