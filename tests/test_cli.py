"""Tests for CLI commands: exit codes for login, verify-login, logout, troubleshoot."""

import sys
import unittest
from pathlib import Path
from unittest import mock

from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ms365_auth.auth import (
    DiagnosticReport,
    InteractiveFlowErrorKind,
    InteractiveFlowFailed,
    LoginResult,
    StorageClearFailed,
)
from ms365_auth.auth.manager import UserData
from ms365_auth.cli import app
from ms365_auth.config import ConfigurationError

runner = CliRunner()

OK = LoginResult(
    success=True,
    message="Login successful",
    user_data=UserData(display_name="Adele Vance", user_principal_name="adele@contoso.com"),
)
FAILED = LoginResult(success=False, message="Login failed: No valid token found")


class TestCli(unittest.TestCase):
    def _patch_manager(self, manager=None, side_effect=None):
        return mock.patch(
            "ms365_auth.cli.shared.build_auth_manager",
            return_value=manager,
            side_effect=side_effect,
        )

    def test_login_success(self):
        manager = mock.Mock()
        manager.test_login.return_value = OK
        with self._patch_manager(manager):
            result = runner.invoke(app, ["login"])
        self.assertEqual(result.exit_code, 0)
        manager.acquire_token_by_device_code.assert_called_once()

    def test_login_device_code_failure(self):
        manager = mock.Mock()
        manager.acquire_token_by_device_code.side_effect = InteractiveFlowFailed(
            InteractiveFlowErrorKind.INVALID_CLIENT, error="invalid_client"
        )
        with self._patch_manager(manager):
            result = runner.invoke(app, ["login"])
        self.assertEqual(result.exit_code, 1)
        manager.test_login.assert_not_called()

    def test_missing_client_id(self):
        with self._patch_manager(side_effect=ConfigurationError("MS365_CLIENT_ID environment variable is not set")):
            result = runner.invoke(app, ["verify-login"])
        self.assertEqual(result.exit_code, 1)

    def test_verify_login(self):
        manager = mock.Mock()
        manager.test_login.return_value = OK
        with self._patch_manager(manager):
            self.assertEqual(runner.invoke(app, ["verify-login"]).exit_code, 0)

        manager.test_login.return_value = FAILED
        with self._patch_manager(manager):
            self.assertEqual(runner.invoke(app, ["verify-login"]).exit_code, 1)

    def test_logout(self):
        manager = mock.Mock()
        with self._patch_manager(manager):
            self.assertEqual(runner.invoke(app, ["logout"]).exit_code, 0)
        manager.logout.assert_called_once()

        manager.logout.side_effect = StorageClearFailed("both tiers failed")
        with self._patch_manager(manager):
            self.assertEqual(runner.invoke(app, ["logout"]).exit_code, 1)

    def test_troubleshoot(self):
        report = DiagnosticReport(
            env_file_path="/tmp/.env",
            env_file_found=False,
            client_id="NOT SET",
            authority="https://login.microsoftonline.com/common",
            lines=["No .env file found at /tmp/.env"],
        )
        with mock.patch("ms365_auth.cli.troubleshoot_mode.troubleshoot_login", return_value=report) as run:
            result = runner.invoke(app, ["troubleshoot"])
        self.assertEqual(result.exit_code, 0)
        run.assert_called_once()


if __name__ == "__main__":
    unittest.main()
