"""Tests for modbase_tools.core.depot_downloader module."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from modbase_tools.core.config import DownloadConfig, SteamConfig
from modbase_tools.core.depot_downloader import AUTH_CODE_ENV, TOTP_SECRET_ENV, DepotDownloader
from modbase_tools.core.errors import CollaboratorError

SECRET_B64 = "MTIzNDU2Nzg5MDEyMzQ1Njc4OTA="


class TestDepotDownloader:
    """Test download agent invocation."""

    def test_build_command(self, temp_dir: Path) -> None:
        downloader = DepotDownloader(DownloadConfig(executable="/opt/dd"), SteamConfig(app_id="42"))
        assert downloader.build_command(temp_dir) == [
            "/opt/dd", "-no-mobile", "-app", "42", "-dir", str(temp_dir),
        ]

    def test_env_without_secret(self) -> None:
        env = DepotDownloader().build_env({"STEAM_USERNAME": "user"})
        assert env == {"STEAM_USERNAME": "user"}

    def test_env_with_secret(self) -> None:
        """Test that a TOTP secret produces an auth code."""
        with patch("modbase_tools.core.depot_downloader.generate_auth_code", return_value="ABCDE") as gen:
            env = DepotDownloader().build_env({TOTP_SECRET_ENV: SECRET_B64})

        gen.assert_called_once_with(SECRET_B64)
        assert env[AUTH_CODE_ENV] == "ABCDE"
        assert env[TOTP_SECRET_ENV] == SECRET_B64

    def test_env_with_real_code(self) -> None:
        env = DepotDownloader().build_env({TOTP_SECRET_ENV: SECRET_B64})
        assert len(env[AUTH_CODE_ENV]) == 5

    def test_env_invalid_secret(self) -> None:
        with pytest.raises(CollaboratorError, match=TOTP_SECRET_ENV):
            DepotDownloader().build_env({TOTP_SECRET_ENV: "%%%"})

    def test_run(self, temp_dir: Path) -> None:
        """Test a successful download."""
        output = temp_dir / "download"
        with patch("modbase_tools.core.depot_downloader.subprocess.run") as mock_run:
            DepotDownloader().run(output, environ={"PATH": "/usr/bin"})

        assert output.is_dir()
        args, kwargs = mock_run.call_args
        assert args[0][0] == "DepotDownloader"
        assert args[0][-1] == str(output)
        assert kwargs["check"] is True
        assert kwargs["env"] == {"PATH": "/usr/bin"}

    def test_missing_executable(self, temp_dir: Path) -> None:
        with patch(
            "modbase_tools.core.depot_downloader.subprocess.run",
            side_effect=FileNotFoundError("DepotDownloader"),
        ):
            with pytest.raises(CollaboratorError, match="Download agent not found") as exc_info:
                DepotDownloader().run(temp_dir / "out", environ={})
        assert exc_info.value.source == "DepotDownloader"

    def test_agent_failure(self, temp_dir: Path) -> None:
        with patch(
            "modbase_tools.core.depot_downloader.subprocess.run",
            side_effect=subprocess.CalledProcessError(3, ["DepotDownloader"]),
        ):
            with pytest.raises(CollaboratorError, match="exited with status 3") as exc_info:
                DepotDownloader().run(temp_dir / "out", environ={})
        assert "TOTP" not in str(exc_info.value)

    def test_agent_failure_with_totp_hint(self, temp_dir: Path) -> None:
        with patch(
            "modbase_tools.core.depot_downloader.subprocess.run",
            side_effect=subprocess.CalledProcessError(1, ["DepotDownloader"]),
        ):
            with pytest.raises(CollaboratorError, match="TOTP codes expire"):
                DepotDownloader().run(temp_dir / "out", environ={TOTP_SECRET_ENV: SECRET_B64})
