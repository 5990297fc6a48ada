"""
Planner error taxonomy.

Planning errors are fatal to plan construction: no partial plan is
returned. Publish and unpublish errors are per item: the executor
records them in the summary and never raises them to its caller.
"""

from __future__ import annotations

from appconsole.core.models.receipt import Receipt


class PlannerError(Exception):
    """Base class for install planner errors."""


class PlanningError(PlannerError):
    """The inputs cannot be turned into a plan."""


class ClassificationError(PlanningError):
    """A version string is malformed, so packages cannot be ordered."""


class DuplicatePackageError(PlanningError):
    """The batch contains the same AppId more than once."""

    def __init__(self, app_id: str, labels: list[str]):
        self.app_id = app_id
        self.labels = labels
        super().__init__(
            f"AppId {app_id} appears {len(labels)} times in the batch: {', '.join(labels)}"
        )


class ExecutionError(PlannerError):
    """A per-item failure while executing a plan."""

    def __init__(self, message: str, receipt: Receipt | None = None):
        super().__init__(message)
        self.receipt = receipt


class PublishError(ExecutionError):
    """Publishing one package failed."""


class UnpublishError(ExecutionError):
    """Removing one superseded version failed."""
