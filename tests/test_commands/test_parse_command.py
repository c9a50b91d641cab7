"""Tests for the parse command."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from modbase_tools.__main__ import main


@pytest.fixture
def installation(
    fake_store,
    manifest_bytes: Callable[..., bytes],
    make_installation: Callable[..., Path],
) -> Path:
    fake_store.add_app(1158310, dlc=[])
    fake_store.add_announcement("Update 1.12.0", posttime=1690000000, gid="10")
    return make_installation(
        manifests={"1158311_111.manifest": manifest_bytes(creation_time=1700000000)},
        raw_version="1.12.1",
    )


class TestParseCommand:
    """Test the parse command."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.runner = CliRunner()

    def invoke(self, cli_config: Path, factory, *args: str):
        with patch("modbase_tools.commands.parse.SteamClient", factory):
            return self.runner.invoke(main, ["-c", str(cli_config), *args])

    def test_parse_best_effort(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        installation: Path,
    ) -> None:
        """Test a version whose own notes are missing."""
        output_dir = temp_dir / "out"
        notes_dir = output_dir / "release-notes"

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "parse", str(installation), str(output_dir), str(notes_dir),
        )

        assert result.exit_code == 0
        assert "Version: 1.12.1" in result.output
        assert "using notes for 1.12.0" in result.output

        document = json.loads((output_dir / ".ck3-version.json").read_text())
        assert document["version"] == "1.12.1"
        assert document["release_notes"]["file"] == "release-notes/1_12_0_0_2023-07-22.md"
        assert document["release_notes"]["best_effort"] is True
        assert document["depots"] == {
            "1158311": {"manifest": "111", "updated": "2023-11-14T22:13:20.000Z"}
        }

    def test_parse_json_output(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        installation: Path,
    ) -> None:
        """Test that JSON output prints the metadata document."""
        output_dir = temp_dir / "out"

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "json", "parse", str(installation), str(output_dir), str(temp_dir / "notes"),
        )

        assert result.exit_code == 0
        document = json.loads(result.stdout)
        assert document == json.loads((output_dir / ".ck3-version.json").read_text())

    def test_parse_verbose_depot_table(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        installation: Path,
    ) -> None:
        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "-v", "parse", str(installation), str(temp_dir / "out"), str(temp_dir / "notes"),
        )

        assert result.exit_code == 0
        assert "Depots" in result.output
        assert "1158311" in result.output

    def test_missing_manifest_directory(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
    ) -> None:
        """Test a directory that is not a downloaded installation."""
        empty = temp_dir / "empty"
        empty.mkdir()

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "parse", str(empty), str(temp_dir / "out"), str(temp_dir / "notes"),
        )

        assert result.exit_code == 1
        assert "Manifest directory not found" in result.output

    def test_invalid_version(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        fake_store,
        make_installation: Callable[..., Path],
    ) -> None:
        fake_store.add_app(1158310, dlc=[])
        game = make_installation(raw_version="one.two")

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "parse", str(game), str(temp_dir / "out"), str(temp_dir / "notes"),
        )

        assert result.exit_code == 1
        assert "Invalid version format" in result.output

    def test_launcher_settings_not_an_object(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        fake_store,
        make_installation: Callable[..., Path],
    ) -> None:
        """Test that a malformed settings file is reported, not raised."""
        fake_store.add_app(1158310, dlc=[])
        game = make_installation()
        (game / "launcher" / "launcher-settings.json").write_text("[]")

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "parse", str(game), str(temp_dir / "out"), str(temp_dir / "notes"),
        )

        assert result.exit_code == 1
        assert "must contain a JSON object" in result.output
        assert "Traceback" not in result.output

    def test_no_release_notes(
        self,
        temp_dir: Path,
        cli_config: Path,
        store_client_factory,
        fake_store,
        make_installation: Callable[..., Path],
    ) -> None:
        fake_store.add_app(1158310, dlc=[])
        game = make_installation(raw_version="1.13.0")

        result = self.invoke(
            cli_config, store_client_factory,
            "-o", "plain", "parse", str(game), str(temp_dir / "out"), str(temp_dir / "notes"),
        )

        assert result.exit_code == 1
        assert "No release notes found" in result.output
        assert not (temp_dir / "out" / ".ck3-version.json").exists()
