"""
Tests for the install ledger.
"""

import json

from appconsole.core.engine.planner import build_plan, execute_plan
from appconsole.core.models.receipt import Receipt
from appconsole.core.persistence.audit import AuditEntry, AuditWriter

APP_A = "aaaaaaaa-0000-0000-0000-000000000001"
APP_B = "bbbbbbbb-0000-0000-0000-000000000002"


def _summary(make_package, make_installed):
    a = make_package(APP_A, "A", "1.0.0.0")
    b = make_package(APP_B, "B", "2.0.0.0")
    plan = build_plan([a, b], [make_installed(APP_B, "B", "1.0.0.0")], [a, b])

    def publish(package, is_upgrade):
        if package.name == "A":
            return Receipt.failure(environment="t", operation="publish", error="bad signature")
        return Receipt.success(environment="t", operation="upgrade")

    def unpublish(name, publisher, version):
        return Receipt.failure(environment="t", operation="unpublish", error="in use")

    return execute_plan(plan, publish, unpublish)


class TestAuditEntry:
    def test_from_summary(self, make_package, make_installed):
        entry = AuditEntry.from_summary(
            _summary(make_package, make_installed), "op-1", "bc1", "mock"
        )
        assert entry.status == "partial"
        assert entry.counts["failed"] == 1
        assert entry.counts["superseded_remove_failed"] == 1
        assert [e["state"] for e in entry.entries] == ["failed", "succeeded"]
        assert entry.entries[1]["superseded"] == "remove_failed"
        assert entry.errors[0].startswith("Contoso_A_1.0.0.0: bad signature")
        assert "unpublish B 1.0.0.0" in entry.errors[1]


class TestAuditWriter:
    def test_write_and_read(self, tmp_path):
        writer = AuditWriter(tmp_path / "state" / "audit.ndjson")
        writer.write(AuditEntry(operation_id="op-1", container="bc1", status="ok"))
        writer.write(AuditEntry(operation_id="op-2", container="bc2", status="failed"))

        entries = writer.read_all()
        assert [e.operation_id for e in entries] == ["op-1", "op-2"]
        assert writer.entry_count() == 2

    def test_one_json_object_per_line(self, tmp_path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        writer.write(AuditEntry(operation_id="op-1"))
        lines = writer.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["operation_id"] == "op-1"

    def test_read_recent(self, tmp_path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(operation_id=f"op-{i}"))
        assert [e.operation_id for e in writer.read_recent(2)] == ["op-3", "op-4"]
        assert writer.read_recent(0) == []

    def test_missing_file(self, tmp_path):
        writer = AuditWriter(tmp_path / "none.ndjson")
        assert writer.read_all() == []
        assert writer.entry_count() == 0

    def test_corrupt_lines_skipped(self, tmp_path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path)
        writer.write(AuditEntry(operation_id="op-1"))
        with path.open("a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write('{"counts": "wrong type"}\n')
        writer.write(AuditEntry(operation_id="op-2"))

        assert [e.operation_id for e in writer.read_all()] == ["op-1", "op-2"]

    def test_write_failure_is_logged(self, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        writer = AuditWriter(blocker / "audit.ndjson")
        writer.write(AuditEntry(operation_id="op-1"))
        assert "Failed to write audit entry" in caplog.text
