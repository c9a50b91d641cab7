"""Core type definitions for modbase_tools."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PREVIEW_KEYWORDS = ("dev diary", "developer diary", "dev update", "upcoming", "preview")
RELEASE_TITLE_PHRASES = ("available now", "out now", "released")


class FileDisposition(StrEnum):
    """What the extractor does with one file."""
    SKIP = "skip"
    PLACEHOLDER = "placeholder"
    COPY = "copy"


class DepotRecord(BaseModel):
    """One content unit (depot) discovered from a manifest file."""

    unit_id: int = Field(..., description="Depot ID")
    revision_id: int = Field(..., description="Manifest ID")
    updated: str | None = Field(None, description="ISO timestamp of the manifest")
    name: str | None = Field(None, description="DLC display name")

    def as_metadata(self) -> dict[str, str]:
        """Shape used inside the snapshot metadata document."""
        info = {"manifest": str(self.revision_id)}
        if self.updated:
            info["updated"] = self.updated
        if self.name:
            info["name"] = self.name
        return info


class ReleaseAnnouncement(BaseModel):
    """A single event from the store announcement feed."""

    title: str = Field(..., description="Event name")
    body: str = Field(..., description="BBCode announcement body")
    posttime: int = Field(0, description="Publish time (Unix seconds)")
    gid: str = Field(..., description="Announcement ID")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> ReleaseAnnouncement | None:
        """Build from a raw feed event; None if it has no title or body."""
        title = event.get("event_name")
        announcement = event.get("announcement_body") or {}
        body = announcement.get("body")
        if not title or not body:
            return None
        return cls(
            title=title,
            body=body,
            posttime=int(announcement.get("posttime") or 0),
            gid=str(event.get("gid", "")),
        )

    @property
    def is_preview(self) -> bool:
        """Dev diaries and previews never document a released patch."""
        title = self.title.lower()
        return any(keyword in title for keyword in PREVIEW_KEYWORDS)

    @property
    def mentions_hotfix(self) -> bool:
        return "hotfix" in self.title.lower() or "hotfix" in self.body.lower()

    @property
    def looks_like_release(self) -> bool:
        """Marketing-style titles such as "Coronations - Available Now!"."""
        title = self.title.lower()
        return any(phrase in title for phrase in RELEASE_TITLE_PHRASES)

    @property
    def date(self) -> str:
        """UTC publish date as YYYY-MM-DD."""
        return datetime.fromtimestamp(self.posttime, UTC).strftime("%Y-%m-%d")


class ReleaseNotesRef(BaseModel):
    """Pointer to the release notes file chosen for a snapshot."""

    title: str
    date: str
    file: str
    url: str
    best_effort: bool | None = Field(
        None, description="Set when the notes belong to an ancestor version"
    )


class SnapshotMetadata(BaseModel):
    """Version metadata document written next to the mirrored tree."""

    version: str
    version_name: str | None = None
    updated: str
    release_notes: ReleaseNotesRef
    depots: dict[str, dict[str, str]] = Field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ExtractStats(BaseModel):
    """Counters collected during an extraction pass."""

    copied: int = 0
    placeholders: int = 0
    skipped: int = 0
    copied_bytes: int = 0
    excluded_bytes: int = 0

    def record(self, disposition: FileDisposition, size: int) -> None:
        if disposition is FileDisposition.COPY:
            self.copied += 1
            self.copied_bytes += size
        elif disposition is FileDisposition.PLACEHOLDER:
            self.placeholders += 1
            self.excluded_bytes += size
        else:
            self.skipped += 1
            self.excluded_bytes += size
