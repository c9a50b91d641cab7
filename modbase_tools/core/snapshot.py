"""Snapshot metadata assembly.

Combines the depot catalog, the installed game version and the chosen
release notes into the version metadata document written at the root of
the mirrored tree.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from modbase_tools.core.catalog import Catalog, CatalogBuilder
from modbase_tools.core.config import AppConfig, SnapshotConfig
from modbase_tools.core.errors import PreconditionError
from modbase_tools.core.release_notes import ReleaseNoteMatcher, read_release_notes_info
from modbase_tools.core.steam import SteamClient
from modbase_tools.core.types import ReleaseNotesRef, SnapshotMetadata
from modbase_tools.core.utils import iso_instant, utc_now
from modbase_tools.core.versions import (
    extract_version_name,
    parse_version,
    resolve_required_versions,
)

logger = structlog.get_logger()


@dataclass
class LauncherVersion:
    """Version information from the launcher settings file."""

    version: str
    full_version: str | None = None

    @property
    def version_name(self) -> str | None:
        return extract_version_name(self.full_version)


@dataclass
class ParseResult:
    """Outcome of a full parse run."""

    metadata: SnapshotMetadata
    metadata_path: Path
    release_notes: dict[str, str] = field(default_factory=dict)
    notes_version: str = ""

    @property
    def best_effort(self) -> bool:
        return bool(self.metadata.release_notes.best_effort)


def read_launcher_version(path: Path) -> LauncherVersion:
    """Read ``rawVersion`` and ``version`` from launcher settings.

    Raises:
        PreconditionError: If the file is missing or not a JSON object
        ValidationError: If ``rawVersion`` is not a valid version
    """
    if not path.is_file():
        raise PreconditionError(
            f"launcher-settings.json not found at: {path}",
            path=str(path),
        )
    try:
        settings = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise PreconditionError(
            f"Failed to parse launcher-settings.json: {e}",
            path=str(path),
        ) from e

    if not isinstance(settings, dict):
        raise PreconditionError(
            "launcher-settings.json must contain a JSON object",
            path=str(path),
        )

    raw_version = settings.get("rawVersion")
    parse_version(raw_version)
    full_version = settings.get("version")
    if not isinstance(full_version, str):
        full_version = None
    return LauncherVersion(version=raw_version, full_version=full_version)


def choose_release_notes(version: str, found: dict[str, str]) -> tuple[str, str]:
    """Pick the notes to reference for a version.

    The version's own notes win; otherwise the notes of the ancestor that
    sorts last as a string are used.

    Returns:
        Tuple of (version whose notes are used, notes file name)
    """
    if version in found:
        return version, found[version]
    fallback = sorted(found, reverse=True)[0]
    return fallback, found[fallback]


class SnapshotAssembler:
    """Build and persist the snapshot metadata document."""

    def __init__(self, config: SnapshotConfig | None = None):
        self.config = config or SnapshotConfig()

    def assemble(
        self,
        launcher: LauncherVersion,
        catalog: Catalog,
        notes_dir: Path,
        found: dict[str, str],
    ) -> tuple[SnapshotMetadata, str]:
        """Combine catalog, version and release notes.

        Returns:
            Tuple of (metadata, version whose notes are referenced)
        """
        notes_version, notes_file = choose_release_notes(launcher.version, found)
        best_effort = notes_version != launcher.version
        if best_effort:
            logger.warning(
                "release_notes_fallback",
                version=launcher.version,
                using=notes_version,
            )

        info = read_release_notes_info(notes_dir / notes_file, launcher.version)
        metadata = SnapshotMetadata(
            version=launcher.version,
            version_name=launcher.version_name,
            updated=catalog.most_recent or iso_instant(utc_now()),
            release_notes=ReleaseNotesRef(
                title=info.title,
                date=info.date,
                file=f"{self.config.release_notes_prefix}/{notes_file}",
                url=info.url,
                best_effort=True if best_effort else None,
            ),
            depots=catalog.as_metadata(),
        )
        return metadata, notes_version

    def write(self, metadata: SnapshotMetadata, output_dir: Path) -> Path:
        """Write the metadata document, replacing any previous one."""
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.config.metadata_file
        path.write_text(
            json.dumps(metadata.to_document(), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )
        logger.info("metadata_saved", path=str(path))
        return path


def parse_installation(
    input_dir: Path,
    output_dir: Path,
    notes_dir: Path,
    config: AppConfig,
    client: SteamClient,
) -> ParseResult:
    """Run the full parse pipeline for a downloaded installation.

    Args:
        input_dir: Downloaded game directory
        output_dir: Directory receiving the metadata document
        notes_dir: Directory holding release notes files
        config: Application configuration
        client: Store API client

    Returns:
        Parse result with the written metadata
    """
    snapshot_config = config.snapshot

    catalog = CatalogBuilder(client, config=config.steam).build(
        input_dir / snapshot_config.manifest_dir
    )
    logger.info(
        "depots_processed",
        count=len(catalog.depots),
        most_recent=catalog.most_recent,
    )

    launcher = read_launcher_version(input_dir / snapshot_config.launcher_settings)
    logger.info(
        "version_detected",
        version=launcher.version,
        full_version=launcher.full_version,
        version_name=launcher.version_name,
    )

    required = resolve_required_versions(launcher.version)
    matcher = ReleaseNoteMatcher(client, notes_dir, config=config.steam)
    found = matcher.ensure_all(required)

    assembler = SnapshotAssembler(snapshot_config)
    metadata, notes_version = assembler.assemble(launcher, catalog, notes_dir, found)
    metadata_path = assembler.write(metadata, output_dir)

    return ParseResult(
        metadata=metadata,
        metadata_path=metadata_path,
        release_notes=found,
        notes_version=notes_version,
    )
