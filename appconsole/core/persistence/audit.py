"""
Install ledger — append-only history of install runs.

Every executed install plan appends one NDJSON line: which container,
which packages, what each entry ended as, and the summary counts.
Lines are never rewritten. Unreadable lines are skipped on read.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from appconsole.core.models.plan import ExecutionSummary

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_PATH = Path(".state") / "audit.ndjson"


class AuditEntry(BaseModel):
    """A single install run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    container: str = ""
    environment: str = ""          # bccontainerhelper, mock

    status: str = ""               # ok, partial, failed
    aborted: bool = False
    counts: dict[str, int] = Field(default_factory=dict)

    entries: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_summary(
        cls,
        summary: ExecutionSummary,
        operation_id: str,
        container: str,
        environment: str,
    ) -> AuditEntry:
        entries = [
            {
                "position": o.entry.position,
                "app": o.entry.package.label,
                "action": o.entry.action.value,
                "state": o.state.value,
                "superseded": o.superseded.state.value if o.superseded else None,
            }
            for o in summary.outcomes
        ]
        errors = [f"{o.entry.package.label}: {o.error}" for o in summary.outcomes if o.error]
        errors += [
            f"unpublish {s.name} {s.version}: {s.error}" for s in summary.superseded if s.error
        ]
        return cls(
            operation_id=operation_id,
            container=container,
            environment=environment,
            status=summary.status,
            aborted=summary.aborted,
            counts=summary.counts(),
            entries=entries,
            errors=errors,
        )


class AuditWriter:
    """Append-only ledger writer.

    Each call to write() appends a single JSON line. The file and its
    directory are created on first write.
    """

    def __init__(self, path: Path | None = None):
        self._path = path or DEFAULT_AUDIT_PATH

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append an entry. A write failure is logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Audit entry written: %s (%s)", entry.operation_id, entry.container)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except ValueError as e:
                        logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read audit ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The most recent N entries, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]

    def entry_count(self) -> int:
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0
