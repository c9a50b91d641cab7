"""Tests for modbase_tools.core.snapshot module."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from modbase_tools.core.catalog import Catalog
from modbase_tools.core.config import AppConfig
from modbase_tools.core.errors import NotFoundError, PreconditionError, ValidationError
from modbase_tools.core.release_notes import render_release_notes
from modbase_tools.core.snapshot import (
    LauncherVersion,
    SnapshotAssembler,
    choose_release_notes,
    parse_installation,
    read_launcher_version,
)
from modbase_tools.core.steam import SteamClient
from modbase_tools.core.types import DepotRecord


def write_notes(notes_dir: Path, filename: str, title: str, date: str, url: str) -> None:
    notes_dir.mkdir(parents=True, exist_ok=True)
    (notes_dir / filename).write_text(render_release_notes(title, date, url, "Body"))


class TestReadLauncherVersion:
    """Test launcher settings reading."""

    def test_read(self, temp_dir: Path) -> None:
        path = temp_dir / "launcher-settings.json"
        path.write_text(json.dumps({"rawVersion": "1.18.0.2", "version": "1.18.0.2 (Crane)"}))

        launcher = read_launcher_version(path)

        assert launcher.version == "1.18.0.2"
        assert launcher.full_version == "1.18.0.2 (Crane)"
        assert launcher.version_name == "Crane"

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(PreconditionError, match="launcher-settings.json not found"):
            read_launcher_version(temp_dir / "launcher-settings.json")

    def test_invalid_json(self, temp_dir: Path) -> None:
        path = temp_dir / "launcher-settings.json"
        path.write_text("{not json")
        with pytest.raises(PreconditionError, match="Failed to parse"):
            read_launcher_version(path)

    def test_not_an_object(self, temp_dir: Path) -> None:
        """Test that valid JSON of the wrong shape is a precondition failure."""
        path = temp_dir / "launcher-settings.json"
        path.write_text("[]")
        with pytest.raises(PreconditionError, match="must contain a JSON object"):
            read_launcher_version(path)

    def test_non_string_full_version(self, temp_dir: Path) -> None:
        path = temp_dir / "launcher-settings.json"
        path.write_text(json.dumps({"rawVersion": "1.18.0.2", "version": 7}))

        launcher = read_launcher_version(path)

        assert launcher.full_version is None
        assert launcher.version_name is None

    def test_missing_raw_version(self, temp_dir: Path) -> None:
        path = temp_dir / "launcher-settings.json"
        path.write_text(json.dumps({"version": "1.18.0.2"}))
        with pytest.raises(ValidationError, match="Missing version"):
            read_launcher_version(path)

    def test_malformed_raw_version(self, temp_dir: Path) -> None:
        path = temp_dir / "launcher-settings.json"
        path.write_text(json.dumps({"rawVersion": "1.18-beta"}))
        with pytest.raises(ValidationError):
            read_launcher_version(path)


class TestChooseReleaseNotes:
    """Test release notes selection."""

    def test_own_notes(self) -> None:
        found = {"1.12.0": "a.md", "1.12.1": "b.md"}
        assert choose_release_notes("1.12.1", found) == ("1.12.1", "b.md")

    def test_fallback_to_highest_string(self) -> None:
        found = {"1.12.0": "a.md", "1.12.1": "b.md"}
        assert choose_release_notes("1.12.2", found) == ("1.12.1", "b.md")


class TestSnapshotAssembler:
    """Test metadata assembly."""

    def test_assemble(self, temp_dir: Path) -> None:
        """Test the assembled document."""
        notes_dir = temp_dir / "notes"
        write_notes(notes_dir, "1_12_1_0_2023-11-14.md", "Update 1.12.1", "2023-11-14", "https://x/1")
        catalog = Catalog(
            depots={1000: DepotRecord(unit_id=1000, revision_id=5, updated="2023-11-14T22:13:20.000Z")},
            most_recent="2023-11-14T22:13:20.000Z",
        )

        metadata, notes_version = SnapshotAssembler().assemble(
            LauncherVersion("1.12.1", "1.12.1 (Scythe)"),
            catalog,
            notes_dir,
            {"1.12.1": "1_12_1_0_2023-11-14.md"},
        )

        assert notes_version == "1.12.1"
        assert metadata.to_document() == {
            "version": "1.12.1",
            "version_name": "Scythe",
            "updated": "2023-11-14T22:13:20.000Z",
            "release_notes": {
                "title": "1.12.1",
                "date": "2023-11-14",
                "file": "release-notes/1_12_1_0_2023-11-14.md",
                "url": "https://x/1",
            },
            "depots": {"1000": {"manifest": "5", "updated": "2023-11-14T22:13:20.000Z"}},
        }

    def test_best_effort_fallback(self, temp_dir: Path) -> None:
        """Test that ancestor notes are flagged and logged."""
        notes_dir = temp_dir / "notes"
        write_notes(notes_dir, "1_12_0_0_2023-07-22.md", "Update 1.12.0", "2023-07-22", "https://x/0")

        with capture_logs() as logs:
            metadata, notes_version = SnapshotAssembler().assemble(
                LauncherVersion("1.12.1"),
                Catalog(most_recent="2023-11-14T22:13:20.000Z"),
                notes_dir,
                {"1.12.0": "1_12_0_0_2023-07-22.md"},
            )

        assert notes_version == "1.12.0"
        assert metadata.release_notes.best_effort is True
        assert metadata.to_document()["release_notes"]["best_effort"] is True
        assert "version_name" not in metadata.to_document()
        assert any(log["event"] == "release_notes_fallback" for log in logs)

    def test_updated_defaults_to_now(self, temp_dir: Path) -> None:
        """Test the updated timestamp when no manifest had one."""
        notes_dir = temp_dir / "notes"
        write_notes(notes_dir, "1_12_1_0_2023-11-14.md", "Update 1.12.1", "2023-11-14", "https://x/1")

        metadata, _ = SnapshotAssembler().assemble(
            LauncherVersion("1.12.1"),
            Catalog(),
            notes_dir,
            {"1.12.1": "1_12_1_0_2023-11-14.md"},
        )

        assert metadata.updated.endswith("Z")
        assert len(metadata.updated) == len("2023-11-14T22:13:20.000Z")

    def test_write(self, temp_dir: Path) -> None:
        """Test the written file format."""
        notes_dir = temp_dir / "notes"
        write_notes(notes_dir, "n.md", "Update 1.12.1", "2023-11-14", "https://x/1")
        assembler = SnapshotAssembler()
        metadata, _ = assembler.assemble(
            LauncherVersion("1.12.1"), Catalog(most_recent="t"), notes_dir, {"1.12.1": "n.md"}
        )

        path = assembler.write(metadata, temp_dir / "out")

        assert path == temp_dir / "out" / ".ck3-version.json"
        text = path.read_text()
        assert text.endswith("}\n")
        assert text == json.dumps(metadata.to_document(), indent=2) + "\n"


class TestParseInstallation:
    """Test the full parse pipeline."""

    def test_end_to_end(
        self,
        temp_dir: Path,
        app_config: AppConfig,
        steam_client: SteamClient,
        fake_store,
        manifest_bytes: Callable[..., bytes],
        make_installation: Callable[..., Path],
    ) -> None:
        """Test manifests, version and release notes combined."""
        game = make_installation(
            manifests={
                "1158311_111.manifest": manifest_bytes(creation_time=1700000000),
                "2000_222.manifest": manifest_bytes(depot_id=2000, creation_time=1690000000),
            },
            raw_version="1.12.1",
        )
        fake_store.add_app(1158310, dlc=[2000])
        fake_store.add_app(2000, name="Crusader Kings III: Royal Court")
        fake_store.add_announcement("Update 1.12.1", posttime=1700000000, gid="11")
        fake_store.add_announcement("Update 1.12.0", posttime=1690000000, gid="10")
        output_dir = temp_dir / "out"
        notes_dir = output_dir / "release-notes"

        result = parse_installation(game, output_dir, notes_dir, app_config, steam_client)

        document = json.loads((output_dir / ".ck3-version.json").read_text())
        assert document["version"] == "1.12.1"
        assert document["version_name"] == "Scythe"
        assert document["updated"] == "2023-11-14T22:13:20.000Z"
        assert document["release_notes"]["file"] == "release-notes/1_12_1_0_2023-11-14.md"
        assert document["release_notes"]["url"] == "https://store.steampowered.com/news/app/1158310/view/11"
        assert "best_effort" not in document["release_notes"]
        assert document["depots"] == {
            "2000": {"manifest": "222", "updated": "2023-07-22T04:26:40.000Z", "name": "Royal Court"},
            "1158311": {"manifest": "111", "updated": "2023-11-14T22:13:20.000Z"},
        }
        assert sorted(p.name for p in notes_dir.iterdir()) == [
            "1_12_0_0_2023-07-22.md",
            "1_12_1_0_2023-11-14.md",
        ]
        assert result.best_effort is False

    def test_missing_launcher_settings(
        self,
        temp_dir: Path,
        app_config: AppConfig,
        steam_client: SteamClient,
        fake_store,
        make_installation: Callable[..., Path],
    ) -> None:
        """Test that the catalog is built before the version is required."""
        game = make_installation()
        (game / "launcher" / "launcher-settings.json").unlink()
        fake_store.add_app(1158310, dlc=[])

        with pytest.raises(PreconditionError):
            parse_installation(game, temp_dir / "out", temp_dir / "notes", app_config, steam_client)

        assert fake_store.requests_to("/api/appdetails")
        assert not (temp_dir / "out" / ".ck3-version.json").exists()

    def test_no_release_notes(
        self,
        temp_dir: Path,
        app_config: AppConfig,
        steam_client: SteamClient,
        fake_store,
        make_installation: Callable[..., Path],
    ) -> None:
        """Test that a version without any notes produces no metadata."""
        game = make_installation(raw_version="1.12.1")
        fake_store.add_app(1158310, dlc=[])

        with pytest.raises(NotFoundError):
            parse_installation(game, temp_dir / "out", temp_dir / "notes", app_config, steam_client)

        assert not (temp_dir / "out" / ".ck3-version.json").exists()
