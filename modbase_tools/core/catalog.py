"""Depot catalog built from downloaded manifest files."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from modbase_tools.core.config import SteamConfig
from modbase_tools.core.errors import CollaboratorError, PreconditionError
from modbase_tools.core.steam import SteamClient
from modbase_tools.core.types import DepotRecord
from modbase_tools.formats.manifest import ManifestParser, read_manifest_timestamp

logger = structlog.get_logger()

MANIFEST_NAME_PATTERN = re.compile(r"^(\d+)_(\d+)\.manifest$")


@dataclass
class ManifestEntry:
    """A manifest file named ``<depot_id>_<manifest_id>.manifest``."""

    depot_id: int
    manifest_id: int
    path: Path


@dataclass
class Catalog:
    """Depot records keyed by depot ID, in ascending order."""

    depots: dict[int, DepotRecord] = field(default_factory=dict)
    most_recent: str | None = None

    def as_metadata(self) -> dict[str, dict[str, str]]:
        return {str(depot_id): record.as_metadata() for depot_id, record in self.depots.items()}


def find_manifests(manifest_dir: Path) -> list[ManifestEntry]:
    """List manifest files sorted by numeric depot ID.

    Raises:
        PreconditionError: If the directory does not exist
    """
    if not manifest_dir.is_dir():
        raise PreconditionError(
            f"Manifest directory not found: {manifest_dir}",
            path=str(manifest_dir),
        )

    entries = []
    for path in manifest_dir.iterdir():
        match = MANIFEST_NAME_PATTERN.match(path.name)
        if not match or not path.is_file():
            continue
        entries.append(ManifestEntry(int(match.group(1)), int(match.group(2)), path))

    entries.sort(key=lambda e: e.depot_id)
    return entries


def strip_product_prefix(name: str, product_name: str) -> str:
    """``"Crusader Kings III: Royal Court"`` -> ``"Royal Court"``."""
    prefix = re.escape(product_name)
    name = re.sub(rf"^{prefix}:\s*", "", name)
    return re.sub(rf"^{prefix}\s+", "", name)


class CatalogBuilder:
    """Build the depot catalog for one downloaded installation."""

    def __init__(
        self,
        client: SteamClient,
        parser: ManifestParser | None = None,
        config: SteamConfig | None = None,
    ):
        self.client = client
        self.parser = parser or ManifestParser()
        self.config = config or client.config

    def fetch_dlc_ids(self) -> set[int]:
        """DLC IDs of the product; failure here is fatal to the parse."""
        try:
            dlc_ids = self.client.get_dlc_ids(self.config.app_id)
        except CollaboratorError as e:
            logger.error("dlc_list_failed", app_id=self.config.app_id, error=str(e))
            raise
        logger.info("dlc_list_fetched", count=len(dlc_ids))
        return dlc_ids

    def lookup_dlc_name(self, depot_id: int) -> str | None:
        """Store name of a DLC, normalized; None when the lookup fails."""
        try:
            name = self.client.get_app_name(depot_id)
        except CollaboratorError as e:
            logger.warning("dlc_lookup_failed", depot_id=depot_id, error=str(e))
            return None
        finally:
            time.sleep(self.config.request_delay)

        if not name:
            return None
        return strip_product_prefix(name, self.config.product_name)

    def build(self, manifest_dir: Path, dlc_ids: set[int] | None = None) -> Catalog:
        """Scan a manifest directory into a catalog.

        Args:
            manifest_dir: Directory holding ``*.manifest`` files
            dlc_ids: DLC IDs; fetched from the store when None

        Returns:
            Catalog with one record per manifest
        """
        entries = find_manifests(manifest_dir)
        logger.info("manifests_found", count=len(entries), path=str(manifest_dir))

        if dlc_ids is None:
            dlc_ids = self.fetch_dlc_ids()

        catalog = Catalog()
        for entry in entries:
            updated = read_manifest_timestamp(entry.path, self.parser)
            if updated and (catalog.most_recent is None or updated > catalog.most_recent):
                catalog.most_recent = updated

            name = None
            if entry.depot_id in dlc_ids:
                name = self.lookup_dlc_name(entry.depot_id)
                if name:
                    logger.info("dlc_named", depot_id=entry.depot_id, name=name)

            catalog.depots[entry.depot_id] = DepotRecord(
                unit_id=entry.depot_id,
                revision_id=entry.manifest_id,
                updated=updated,
                name=name,
            )

        return catalog
