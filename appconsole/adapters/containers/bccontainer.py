"""
BcContainerHelper environment — app operations through PowerShell.

Drives the container-management PowerShell module through ``pwsh``.
Never reimplements its cmdlets: every query and action is one cmdlet
call whose output is piped through ``ConvertTo-Json`` and parsed here.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import time
from collections.abc import Sequence
from typing import Any

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.core.models.app import AppPackage, InstalledApp
from appconsole.core.models.config import ConsoleConfig
from appconsole.core.models.receipt import Receipt
from appconsole.core.observability.logging_config import POWERSHELL_LOGGER

logger = logging.getLogger(__name__)
ps_logger = logging.getLogger(POWERSHELL_LOGGER)

# Stringify Guid/Version so both PowerShell 5 and 7 emit plain strings
_APP_FIELDS = (
    "@{n='AppId';e={\"$($_.AppId)\"}}, Name, Publisher, "
    "@{n='Version';e={\"$($_.Version)\"}}"
)


class BcContainerHelperEnvironment(AppEnvironment):
    """App environment backed by the BcContainerHelper PowerShell module.

    Config used:
        powershell (str): PowerShell executable (default: 'pwsh').
        module (str): Module to import before each call.
        timeout (int): Seconds per cmdlet call.
        tenant (str): Tenant for install/upgrade/unpublish.
        sync_mode, skip_verification: Publish switches.
        cmdlets: Names of the five cmdlets used.
    """

    def __init__(self, config: ConsoleConfig | None = None):
        self._config = config or ConsoleConfig()

    @property
    def name(self) -> str:
        return "bccontainerhelper"

    def is_available(self) -> bool:
        return shutil.which(self._config.powershell) is not None

    # ── Queries ─────────────────────────────────────────────────

    def read_package(self, container: str, path: str) -> AppPackage:
        script = (
            f"{self._config.cmdlets.app_info_file} -containerName {_ps_quote(container)} "
            f"-appPath {_ps_quote(path)} "
            f"| Select-Object {_APP_FIELDS} | ConvertTo-Json -Compress"
        )
        rows = self._query(script, f"read package {path}")
        if len(rows) != 1:
            raise EnvironmentQueryError(f"Expected one app in {path}, got {len(rows)}")

        row = rows[0]
        try:
            return AppPackage(
                app_id=str(row["AppId"]),
                name=str(row["Name"]),
                publisher=str(row["Publisher"]),
                version=_version_text(row["Version"]),
                path=path,
            )
        except KeyError as e:
            raise EnvironmentQueryError(f"App info for {path} is missing field {e}") from e

    def list_installed(self, container: str) -> list[InstalledApp]:
        script = (
            f"{self._config.cmdlets.app_info} -containerName {_ps_quote(container)} "
            f"-tenant {_ps_quote(self._config.tenant)} -tenantSpecificProperties "
            f"| Select-Object {_APP_FIELDS}, IsInstalled, IsPublished "
            f"| ConvertTo-Json -Compress"
        )
        rows = self._query(script, f"list apps in {container}")

        apps: list[InstalledApp] = []
        for row in rows:
            try:
                apps.append(
                    InstalledApp(
                        app_id=str(row["AppId"]),
                        name=str(row["Name"]),
                        publisher=str(row["Publisher"]),
                        version=_version_text(row["Version"]),
                        is_installed=bool(row.get("IsInstalled")),
                        is_published=bool(row.get("IsPublished")),
                    )
                )
            except KeyError as e:
                raise EnvironmentQueryError(f"App info from {container} is missing field {e}") from e

        logger.debug("%s: %d apps (%d installed)", container, len(apps),
                     sum(1 for a in apps if a.is_installed))
        return apps

    def sort_by_dependencies(
        self, container: str, packages: Sequence[AppPackage]
    ) -> list[AppPackage]:
        if len(packages) < 2:
            return list(packages)

        files = ", ".join(_ps_quote(p.path) for p in packages)
        script = (
            f"{self._config.cmdlets.sort_app_files} -containerName {_ps_quote(container)} "
            f"-appFiles @({files}) | ConvertTo-Json -Compress"
        )
        sorted_paths = self._query(script, "sort app files")

        by_path = {p.path: p for p in packages}
        ordered: list[AppPackage] = []
        for item in sorted_paths:
            path = str(item)
            if path not in by_path:
                raise EnvironmentQueryError(f"Dependency sort returned an unknown file: {path}")
            ordered.append(by_path[path])
        return ordered

    # ── Actions ─────────────────────────────────────────────────

    def publish(self, container: str, package: AppPackage, upgrade: bool) -> Receipt:
        operation = "upgrade" if upgrade else "publish"
        switches = ["-sync", f"-syncMode {self._config.sync_mode}"]
        switches.append("-upgrade" if upgrade else "-install")
        if self._config.skip_verification:
            switches.append("-skipVerification")

        script = (
            f"{self._config.cmdlets.publish_app} -containerName {_ps_quote(container)} "
            f"-appFile {_ps_quote(package.path)} -tenant {_ps_quote(self._config.tenant)} "
            + " ".join(switches)
        )
        return self._action(script, operation, package.label)

    def unpublish(self, container: str, name: str, publisher: str, version: str) -> Receipt:
        script = (
            f"{self._config.cmdlets.unpublish_app} -containerName {_ps_quote(container)} "
            f"-name {_ps_quote(name)} -publisher {_ps_quote(publisher)} "
            f"-version {_ps_quote(version)} -tenant {_ps_quote(self._config.tenant)}"
        )
        return self._action(script, "unpublish", f"{publisher}_{name}_{version}")

    # ── Helpers ─────────────────────────────────────────────────

    def _powershell(self, script: str) -> subprocess.CompletedProcess[str]:
        """Run one script in a fresh PowerShell session."""
        full = (
            "$ErrorActionPreference = 'Stop'; "
            f"Import-Module {self._config.module} -DisableNameChecking; "
            f"{script}"
        )
        ps_logger.debug("PS> %s", script)
        result = subprocess.run(
            [self._config.powershell, "-NoProfile", "-NonInteractive", "-Command", full],
            capture_output=True,
            text=True,
            timeout=self._config.timeout,
        )
        for line in result.stdout.splitlines():
            ps_logger.debug("   %s", line)
        return result

    def _query(self, script: str, what: str) -> list[Any]:
        try:
            result = self._powershell(script)
        except subprocess.TimeoutExpired as e:
            raise EnvironmentQueryError(f"Timed out after {self._config.timeout}s: {what}") from e
        except OSError as e:
            raise EnvironmentQueryError(f"Cannot start {self._config.powershell}: {e}") from e

        if result.returncode != 0:
            raise EnvironmentQueryError(
                f"Failed to {what}: {result.stderr.strip() or f'exit code {result.returncode}'}"
            )
        return _parse_json_rows(result.stdout, what)

    def _action(self, script: str, operation: str, target: str) -> Receipt:
        start = time.monotonic()
        try:
            result = self._powershell(script)
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                environment=self.name,
                operation=operation,
                target=target,
                error=f"Timed out after {self._config.timeout}s",
            )
        except OSError as e:
            return Receipt.failure(
                environment=self.name,
                operation=operation,
                target=target,
                error=f"Cannot start {self._config.powershell}: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                environment=self.name,
                operation=operation,
                target=target,
                output=result.stdout.strip(),
                duration_ms=elapsed_ms,
            )
        return Receipt.failure(
            environment=self.name,
            operation=operation,
            target=target,
            error=result.stderr.strip() or f"Exit code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={"return_code": result.returncode},
        )


def _ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def _parse_json_rows(stdout: str, what: str) -> list[Any]:
    """ConvertTo-Json emits nothing, one object, or an array."""
    text = stdout.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise EnvironmentQueryError(f"Unreadable output from {what}: {e}") from e
    if isinstance(data, list):
        return data
    return [data]


def _version_text(value: Any) -> str:
    """Version as text, also when serialised as a System.Version object."""
    if isinstance(value, dict):
        parts = [value.get(k, -1) for k in ("Major", "Minor", "Build", "Revision")]
        return ".".join(str(p) for p in parts if isinstance(p, int) and p >= 0)
    return str(value)
