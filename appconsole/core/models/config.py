"""
Console configuration model — the schema of appconsole.yml.

Everything has a default, so an empty file (or no file at all) is a
valid configuration. The target container is only a default for the
CLI: every operation receives the container explicitly.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class CmdletNames(BaseModel):
    """Container-management module cmdlets used by the PowerShell environment."""

    app_info_file: str = "Get-NavContainerAppInfoFile"
    app_info: str = "Get-BcContainerAppInfo"
    sort_app_files: str = "Sort-AppFilesByDependencies"
    publish_app: str = "Publish-BcContainerApp"
    unpublish_app: str = "UnPublish-BcContainerApp"


class ConsoleConfig(BaseModel):
    """Validated console configuration."""

    container: str | None = None          # default target container
    tenant: str = "default"

    # PowerShell host
    powershell: str = "pwsh"
    module: str = "BcContainerHelper"
    timeout: int = 900                    # seconds per cmdlet call
    cmdlets: CmdletNames = Field(default_factory=CmdletNames)

    # Publish behaviour
    skip_verification: bool = False
    sync_mode: str = "Add"
    unpublish_superseded: bool = True
    continue_on_error: bool = True

    audit_file: str = ".state/audit.ndjson"

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        return v

    @field_validator("sync_mode")
    @classmethod
    def _known_sync_mode(cls, v: str) -> str:
        modes = {"Add", "Clean", "Development", "ForceSync"}
        if v not in modes:
            raise ValueError(f"sync_mode must be one of: {', '.join(sorted(modes))}")
        return v
