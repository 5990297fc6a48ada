"""
Tests for app environments — mock and BcContainerHelper.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from appconsole.adapters.base import AppEnvironment, EnvironmentQueryError
from appconsole.adapters.containers.bccontainer import (
    BcContainerHelperEnvironment,
    _ps_quote,
    _version_text,
)
from appconsole.adapters.mock import MockAppEnvironment
from appconsole.core.models.config import ConsoleConfig

APP_A = "aaaaaaaa-0000-0000-0000-000000000001"
APP_B = "bbbbbbbb-0000-0000-0000-000000000002"

RUN = "appconsole.adapters.containers.bccontainer.subprocess.run"


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=["pwsh"], returncode=returncode, stdout=stdout, stderr=stderr)


# ── Mock environment ────────────────────────────────────────────────


class TestMockAppEnvironment:
    def test_is_an_environment(self):
        env = MockAppEnvironment()
        assert isinstance(env, AppEnvironment)
        assert env.name == "mock"
        assert env.is_available()
        assert "mock" in repr(env)

    def test_unavailable(self):
        assert not MockAppEnvironment(available=False).is_available()

    def test_read_registered_package(self, make_package):
        env = MockAppEnvironment()
        pkg = make_package(APP_A, "Base", "1.0.0.0")
        env.add_package(pkg)
        assert env.read_package("bc1", pkg.path) == pkg
        assert env.calls("read_package")[0].container == "bc1"

    def test_read_manifest(self, tmp_path, write_manifest):
        path = write_manifest(tmp_path, APP_A, "Base", "1.0.0.0")
        pkg = MockAppEnvironment().read_package("bc1", str(path))
        assert pkg.app_id == APP_A
        assert pkg.version == "1.0.0.0"
        assert pkg.path == str(path)

    def test_read_bad_manifest(self, tmp_path):
        bad = tmp_path / "bad.app"
        bad.write_bytes(b"\x00\x01 binary")
        with pytest.raises(EnvironmentQueryError):
            MockAppEnvironment().read_package("bc1", str(bad))

    def test_read_incomplete_manifest(self, tmp_path):
        path = tmp_path / "partial.app"
        path.write_text(json.dumps({"id": APP_A, "name": "Base"}), encoding="utf-8")
        with pytest.raises(EnvironmentQueryError, match="publisher, version"):
            MockAppEnvironment().read_package("bc1", str(path))

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(EnvironmentQueryError):
            MockAppEnvironment().read_package("bc1", str(tmp_path / "nope.app"))

    def test_dependency_order(self, make_package):
        env = MockAppEnvironment()
        a = make_package(APP_A, "A", "1.0.0.0")
        b = make_package(APP_B, "B", "1.0.0.0")
        assert env.sort_by_dependencies("bc1", [a, b]) == [a, b]
        env.set_dependency_order([APP_B.upper(), APP_A])
        assert env.sort_by_dependencies("bc1", [a, b]) == [b, a]

    def test_publish_updates_snapshot(self, make_package, make_installed):
        env = MockAppEnvironment(installed=[make_installed(APP_A, "A", "1.0.0.0")])
        receipt = env.publish("bc1", make_package(APP_A, "A", "2.0.0.0"), upgrade=True)

        assert receipt.ok
        assert receipt.operation == "upgrade"
        assert "[mock]" in receipt.output
        assert [a.version for a in env.list_installed("bc1")] == ["2.0.0.0"]
        assert env.calls("publish")[0].upgrade is True

    def test_publish_failure(self, make_package):
        env = MockAppEnvironment()
        env.set_publish_failure(APP_A, "compile error")
        receipt = env.publish("bc1", make_package(APP_A, "A", "1.0.0.0"), upgrade=False)
        assert receipt.failed
        assert receipt.error == "compile error"
        assert env.list_installed("bc1") == []

    def test_unpublish_failure_and_reset(self):
        env = MockAppEnvironment()
        env.set_unpublish_failure("A", "1.0.0.0")
        assert env.unpublish("bc1", "A", "Contoso", "1.0.0.0").failed
        env.reset()
        assert env.call_log == []
        assert env.unpublish("bc1", "A", "Contoso", "1.0.0.0").ok


# ── BcContainerHelper environment ───────────────────────────────────


class TestBcContainerHelperEnvironment:
    def _env(self, **overrides):
        return BcContainerHelperEnvironment(ConsoleConfig(**overrides))

    def test_is_available(self):
        env = self._env(powershell="pwsh")
        with patch("appconsole.adapters.containers.bccontainer.shutil.which", return_value=None):
            assert not env.is_available()
        with patch(
            "appconsole.adapters.containers.bccontainer.shutil.which",
            return_value="/usr/bin/pwsh",
        ):
            assert env.is_available()

    def test_command_line(self):
        env = self._env(powershell="powershell.exe", module="navcontainerhelper")
        with patch(RUN, return_value=_completed("")) as run:
            env.list_installed("bc1")

        argv = run.call_args.args[0]
        assert argv[:4] == ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command"]
        assert "Import-Module navcontainerhelper" in argv[4]
        assert "$ErrorActionPreference = 'Stop'" in argv[4]
        assert run.call_args.kwargs["timeout"] == 900

    def test_list_installed(self):
        rows = [
            {"AppId": APP_A, "Name": "Base", "Publisher": "Contoso",
             "Version": "1.0.0.0", "IsInstalled": True, "IsPublished": True},
            {"AppId": APP_B, "Name": "Ext", "Publisher": "Contoso",
             "Version": {"Major": 2, "Minor": 1, "Build": 0, "Revision": 3},
             "IsInstalled": False, "IsPublished": True},
        ]
        with patch(RUN, return_value=_completed(json.dumps(rows))) as run:
            apps = self._env(tenant="t1").list_installed("bc1")

        script = run.call_args.args[0][4]
        assert "Get-BcContainerAppInfo -containerName 'bc1'" in script
        assert "-tenant 't1' -tenantSpecificProperties" in script
        assert [a.version for a in apps] == ["1.0.0.0", "2.1.0.3"]
        assert apps[0].is_installed and not apps[1].is_installed

    def test_list_installed_single_object(self):
        row = {"AppId": APP_A, "Name": "Base", "Publisher": "Contoso", "Version": "1.0.0.0",
               "IsInstalled": True, "IsPublished": True}
        with patch(RUN, return_value=_completed(json.dumps(row))):
            apps = self._env().list_installed("bc1")
        assert len(apps) == 1

    def test_query_failure_raises(self):
        with patch(RUN, return_value=_completed(stderr="container bc1 not found", returncode=1)):
            with pytest.raises(EnvironmentQueryError, match="not found"):
                self._env().list_installed("bc1")

    def test_query_timeout_raises(self):
        with patch(RUN, side_effect=subprocess.TimeoutExpired("pwsh", 5)):
            with pytest.raises(EnvironmentQueryError, match="Timed out"):
                self._env(timeout=5).list_installed("bc1")

    def test_missing_powershell_raises(self):
        with patch(RUN, side_effect=FileNotFoundError("pwsh")):
            with pytest.raises(EnvironmentQueryError, match="Cannot start"):
                self._env().list_installed("bc1")

    def test_unreadable_output(self):
        with patch(RUN, return_value=_completed("WARNING: something")):
            with pytest.raises(EnvironmentQueryError, match="Unreadable"):
                self._env().list_installed("bc1")

    def test_read_package(self):
        row = {"AppId": APP_A, "Name": "Base", "Publisher": "Contoso", "Version": "1.2.0.0"}
        with patch(RUN, return_value=_completed(json.dumps(row))) as run:
            pkg = self._env().read_package("bc1", "C:\\apps\\O'Brien.app")

        assert pkg.version == "1.2.0.0"
        assert pkg.path == "C:\\apps\\O'Brien.app"
        assert "-appPath 'C:\\apps\\O''Brien.app'" in run.call_args.args[0][4]

    def test_read_package_needs_one_row(self):
        with patch(RUN, return_value=_completed("")):
            with pytest.raises(EnvironmentQueryError, match="Expected one app"):
                self._env().read_package("bc1", "x.app")

    def test_sort_by_dependencies(self, make_package):
        a = make_package(APP_A, "A", "1.0.0.0", path="/apps/a.app")
        b = make_package(APP_B, "B", "1.0.0.0", path="/apps/b.app")
        with patch(RUN, return_value=_completed(json.dumps(["/apps/b.app", "/apps/a.app"]))) as run:
            ordered = self._env().sort_by_dependencies("bc1", [a, b])

        assert ordered == [b, a]
        assert "-appFiles @('/apps/a.app', '/apps/b.app')" in run.call_args.args[0][4]

    def test_sort_single_package_skips_powershell(self, make_package):
        a = make_package(APP_A, "A", "1.0.0.0")
        with patch(RUN) as run:
            assert self._env().sort_by_dependencies("bc1", [a]) == [a]
        run.assert_not_called()

    def test_sort_unknown_path(self, make_package):
        a = make_package(APP_A, "A", "1.0.0.0", path="/apps/a.app")
        b = make_package(APP_B, "B", "1.0.0.0", path="/apps/b.app")
        with patch(RUN, return_value=_completed(json.dumps(["/apps/a.app", "/apps/c.app"]))):
            with pytest.raises(EnvironmentQueryError, match="unknown file"):
                self._env().sort_by_dependencies("bc1", [a, b])

    def test_publish_new_install(self, make_package):
        pkg = make_package(APP_A, "A", "1.0.0.0", path="/apps/a.app")
        with patch(RUN, return_value=_completed("published")) as run:
            receipt = self._env().publish("bc1", pkg, upgrade=False)

        script = run.call_args.args[0][4]
        assert receipt.ok
        assert receipt.operation == "publish"
        assert "Publish-BcContainerApp -containerName 'bc1' -appFile '/apps/a.app'" in script
        assert "-sync -syncMode Add -install" in script
        assert "-upgrade" not in script
        assert "-skipVerification" not in script

    def test_publish_upgrade_switches(self, make_package):
        pkg = make_package(APP_A, "A", "2.0.0.0")
        env = self._env(skip_verification=True, sync_mode="ForceSync")
        with patch(RUN, return_value=_completed()) as run:
            receipt = env.publish("bc1", pkg, upgrade=True)

        script = run.call_args.args[0][4]
        assert receipt.operation == "upgrade"
        assert "-syncMode ForceSync -upgrade -skipVerification" in script
        assert "-install" not in script

    def test_publish_failure_is_receipt(self, make_package):
        pkg = make_package(APP_A, "A", "1.0.0.0")
        with patch(RUN, return_value=_completed(stderr="schema sync failed", returncode=1)):
            receipt = self._env().publish("bc1", pkg, upgrade=False)
        assert receipt.failed
        assert receipt.error == "schema sync failed"
        assert receipt.metadata["return_code"] == 1

    def test_publish_timeout_is_receipt(self, make_package):
        pkg = make_package(APP_A, "A", "1.0.0.0")
        with patch(RUN, side_effect=subprocess.TimeoutExpired("pwsh", 900)):
            receipt = self._env().publish("bc1", pkg, upgrade=False)
        assert receipt.failed
        assert "Timed out" in receipt.error

    def test_unpublish(self):
        with patch(RUN, return_value=_completed()) as run:
            receipt = self._env().unpublish("bc1", "Base", "Contoso", "1.0.0.0")

        script = run.call_args.args[0][4]
        assert receipt.ok
        assert receipt.target == "Contoso_Base_1.0.0.0"
        assert "UnPublish-BcContainerApp -containerName 'bc1' -name 'Base'" in script
        assert "-version '1.0.0.0' -tenant 'default'" in script

    def test_custom_cmdlet_names(self):
        env = self._env(cmdlets={"unpublish_app": "UnPublish-NavContainerApp"})
        with patch(RUN, return_value=_completed()) as run:
            env.unpublish("bc1", "Base", "Contoso", "1.0.0.0")
        assert run.call_args.args[0][4].split("; ")[-1].startswith("UnPublish-NavContainerApp")


class TestHelpers:
    def test_ps_quote(self):
        assert _ps_quote("it's") == "'it''s'"

    def test_version_text(self):
        assert _version_text("1.0.0.0") == "1.0.0.0"
        assert _version_text({"Major": 1, "Minor": 2, "Build": -1, "Revision": -1}) == "1.2"
