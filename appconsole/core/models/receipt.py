"""
Receipt model — the result contract for environment actions.

Publish and unpublish calls against a container return a Receipt.
Environments NEVER raise from an action: failures are captured here,
so the planner can record them per entry and keep going.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one publish or unpublish call."""

    environment: str                # which environment executed it
    operation: str                  # publish, upgrade, unpublish
    target: str = ""                # app the operation applied to
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the operation failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        environment: str,
        operation: str,
        target: str = "",
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            environment=environment,
            operation=operation,
            target=target,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        environment: str,
        operation: str,
        error: str,
        target: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            environment=environment,
            operation=operation,
            target=target,
            status="failed",
            error=error,
            **kwargs,
        )
