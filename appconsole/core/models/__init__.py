"""
Domain models — Pydantic types for the console.

All models are re-exported here for convenient access:

    from appconsole.core.models import AppPackage, InstalledApp, PlanEntry, Receipt
"""

from appconsole.core.models.app import AppPackage, InstalledApp, normalize_app_id
from appconsole.core.models.config import CmdletNames, ConsoleConfig
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

__all__ = [
    # app.py
    "AppPackage",
    "InstalledApp",
    "normalize_app_id",
    # config.py
    "CmdletNames",
    "ConsoleConfig",
    # plan.py
    "EntryOutcome",
    "EntryState",
    "ExecutionSummary",
    "PlanAction",
    "PlanEntry",
    "SupersededRecord",
    "SupersededState",
    # receipt.py
    "Receipt",
]
