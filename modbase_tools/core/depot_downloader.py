"""Invocation of the external depot download agent."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

import structlog

from modbase_tools.core.config import DownloadConfig, SteamConfig
from modbase_tools.core.errors import CollaboratorError
from modbase_tools.crypto.steam_guard import generate_auth_code

logger = structlog.get_logger()

TOTP_SECRET_ENV = "STEAM_TOTP_SECRET"
AUTH_CODE_ENV = "STEAM_2FA_CODE"


class DepotDownloader:
    """Run the download agent for the configured app."""

    def __init__(
        self,
        config: DownloadConfig | None = None,
        steam: SteamConfig | None = None,
    ):
        self.config = config or DownloadConfig()
        self.steam = steam or SteamConfig()

    def build_command(self, output_dir: Path) -> list[str]:
        return [
            self.config.executable,
            "-no-mobile",
            "-app", self.steam.app_id,
            "-dir", str(output_dir),
        ]

    def build_env(self, environ: Mapping[str, str] | None = None) -> dict[str, str]:
        """Agent environment, with a fresh auth code when a TOTP secret is set.

        The code is only valid for about 30 seconds, so it is generated
        right before the agent starts.
        """
        env = dict(os.environ if environ is None else environ)
        secret = env.get(TOTP_SECRET_ENV)
        if secret:
            try:
                env[AUTH_CODE_ENV] = generate_auth_code(secret)
            except ValueError as e:
                raise CollaboratorError(f"Invalid {TOTP_SECRET_ENV}: {e}") from e
            logger.info("auth_code_generated")
        return env

    def run(self, output_dir: Path, environ: Mapping[str, str] | None = None) -> None:
        """Download the app into output_dir.

        Raises:
            CollaboratorError: If the agent is missing or exits non-zero
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        command = self.build_command(output_dir)
        env = self.build_env(environ)

        logger.info("download_started", app_id=self.steam.app_id, output=str(output_dir))
        try:
            subprocess.run(command, env=env, check=True)
        except FileNotFoundError as e:
            raise CollaboratorError(
                f"Download agent not found: {self.config.executable}",
                source=self.config.executable,
            ) from e
        except subprocess.CalledProcessError as e:
            message = f"Download failed: {self.config.executable} exited with status {e.returncode}"
            if env.get(TOTP_SECRET_ENV):
                message += (
                    " (TOTP codes expire after 30 seconds; if authentication failed,"
                    " run the command again)"
                )
            raise CollaboratorError(message, source=self.config.executable) from e
        logger.info("download_complete", output=str(output_dir))
