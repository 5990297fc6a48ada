"""Install planning engine."""

from appconsole.core.engine.errors import (
    ClassificationError,
    DuplicatePackageError,
    PlannerError,
    PlanningError,
    PublishError,
    UnpublishError,
)
from appconsole.core.engine.planner import (
    FailureDecision,
    build_plan,
    classify,
    execute_plan,
)
from appconsole.core.engine.versions import compare_versions, parse_version

__all__ = [
    "ClassificationError",
    "DuplicatePackageError",
    "FailureDecision",
    "PlannerError",
    "PlanningError",
    "PublishError",
    "UnpublishError",
    "build_plan",
    "classify",
    "compare_versions",
    "execute_plan",
    "parse_version",
]
