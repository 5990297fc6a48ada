"""
App models — candidate packages and the installed-app snapshot.

AppId is the identity of an app. Name, publisher and version describe
one release of it. Both models are frozen: a package is immutable once
read from its file, and the installed list is a snapshot for the
duration of planning.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AppPackage(BaseModel):
    """A candidate app package read from a package file."""

    model_config = ConfigDict(frozen=True)

    app_id: str
    name: str
    publisher: str
    version: str
    path: str = ""               # package file it was read from

    @property
    def identity(self) -> str:
        """Normalised AppId used for matching."""
        return normalize_app_id(self.app_id)

    @property
    def label(self) -> str:
        return f"{self.publisher}_{self.name}_{self.version}"


class InstalledApp(BaseModel):
    """One app as currently seen in the target container."""

    model_config = ConfigDict(frozen=True)

    app_id: str
    name: str
    publisher: str
    version: str
    is_installed: bool = False
    is_published: bool = False

    @property
    def identity(self) -> str:
        return normalize_app_id(self.app_id)

    @property
    def label(self) -> str:
        return f"{self.publisher}_{self.name}_{self.version}"


def normalize_app_id(app_id: str) -> str:
    """AppIds are GUIDs; different tools print them in different case and bracing."""
    return app_id.strip().strip("{}").lower()
