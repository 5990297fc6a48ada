"""
Shared test fixtures and configuration.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from appconsole.core.models.app import AppPackage, InstalledApp
from appconsole.core.observability.logging_config import POWERSHELL_LOGGER


@pytest.fixture(autouse=True)
def _restore_logging():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger(POWERSHELL_LOGGER).setLevel(logging.NOTSET)


@pytest.fixture
def make_package() -> Callable[..., AppPackage]:
    """Factory for candidate packages."""

    def _make(
        app_id: str,
        name: str,
        version: str,
        publisher: str = "Contoso",
        path: str | None = None,
    ) -> AppPackage:
        return AppPackage(
            app_id=app_id,
            name=name,
            publisher=publisher,
            version=version,
            path=path or f"/apps/{publisher}_{name}_{version}.app",
        )

    return _make


@pytest.fixture
def make_installed() -> Callable[..., InstalledApp]:
    """Factory for installed-app snapshot rows."""

    def _make(
        app_id: str,
        name: str,
        version: str,
        publisher: str = "Contoso",
        installed: bool = True,
    ) -> InstalledApp:
        return InstalledApp(
            app_id=app_id,
            name=name,
            publisher=publisher,
            version=version,
            is_installed=installed,
            is_published=True,
        )

    return _make


@pytest.fixture
def write_manifest() -> Callable[..., Path]:
    """Write an app.json-style manifest that the mock environment reads."""

    def _write(
        directory: Path,
        app_id: str,
        name: str,
        version: str,
        publisher: str = "Contoso",
        filename: str | None = None,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / (filename or f"{publisher}_{name}_{version}.app")
        path.write_text(
            json.dumps({"id": app_id, "name": name, "publisher": publisher, "version": version}),
            encoding="utf-8",
        )
        return path

    return _write
