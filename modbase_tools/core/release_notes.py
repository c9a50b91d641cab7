"""Release notes discovery and persistence.

For every version in a release chain, the matching announcement is
located in the store's announcement feed and saved as Markdown under
``<slug>_<YYYY-MM-DD>.md``. A file whose slug matches is never fetched
or written again.

The feed is unordered and noisy: dev diaries, previews, hotfix posts and
marketing titles ("Coronations - Available Now!") are mixed together,
so matching is heuristic:

1. titles that look like previews are rejected outright
2. the version must appear in the title as a whole version, i.e. not
   followed by ``.<digit>`` or another digit
3. failing that, a release-style title is accepted if the version is
   mentioned within the first 500 characters of the body
4. baseline (``x.y.0``) targets never match hotfix announcements
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import structlog

from modbase_tools.core.config import SteamConfig
from modbase_tools.core.errors import NotFoundError
from modbase_tools.core.markup import MarkupConverter
from modbase_tools.core.steam import SteamClient
from modbase_tools.core.types import ReleaseAnnouncement
from modbase_tools.core.utils import utc_now
from modbase_tools.core.versions import SemanticVersion, validate_version, version_slug

logger = structlog.get_logger()

BODY_SEARCH_WINDOW = 500

NOTES_FILE_PATTERN = re.compile(r"^(.+)_(\d{4}-\d{2}-\d{2})\.md$")
TITLE_PREFIX_PATTERN = re.compile(r"^(Update|Hotfix|Rollback for Update) ")
PATCH_TITLE_PATTERN = re.compile(r"^(Update|Hotfix|Rollback for Update) [0-9]+\.[0-9]+")
TITLE_VERSION_PATTERN = re.compile(r"([0-9]+\.[0-9]+\.[0-9]+(?:\.[0-9]+)?)")

NOTES_TITLE_PATTERN = re.compile(r"^# (.+)$", re.MULTILINE)
NOTES_DATE_PATTERN = re.compile(r"^\*\*Release Date:\*\* (.+)$", re.MULTILINE)
NOTES_URL_PATTERN = re.compile(r"^\*\*Official Announcement:\*\* (.+)$", re.MULTILINE)

NOTES_TEMPLATE = """# {title}

**Release Date:** {date}
**Official Announcement:** {url}

---

{body}
"""


@dataclass
class ReleaseNotesInfo:
    """Header fields of a saved release notes file."""

    title: str
    date: str
    url: str


def find_existing_notes(notes_dir: Path, slug: str) -> str | None:
    """Name of an existing notes file for a slug, whatever its date."""
    if not notes_dir.is_dir():
        return None
    for path in sorted(notes_dir.iterdir()):
        match = NOTES_FILE_PATTERN.match(path.name)
        if match and match.group(1) == slug:
            return path.name
    return None


def search_variants(version: str) -> list[str]:
    """``1.10.0`` is also announced as ``1.10``."""
    variants = [version]
    if version.endswith(".0"):
        variants.append(version[:-2])
    return variants


def version_pattern(version: str) -> re.Pattern[str]:
    """Whole-version match: ``1.12.1`` matches neither ``1.12.1.3`` nor ``1.12.12``."""
    escaped = re.escape(version.lower())
    return re.compile(rf"\b{escaped}(?![.][0-9])(?:[^0-9]|$)", re.IGNORECASE)


def matches_announcement(
    announcement: ReleaseAnnouncement,
    version: str,
    baseline: bool,
) -> bool:
    """Check whether an announcement documents a version.

    Args:
        announcement: Feed entry
        version: Version text to look for (one search variant)
        baseline: True when the target is an ``x.y.0`` release

    Returns:
        True if the announcement is the release announcement for version
    """
    if announcement.is_preview:
        return False

    pattern = version_pattern(version)
    title = announcement.title.lower()

    if not pattern.search(title):
        if not announcement.looks_like_release:
            return False
        body_start = announcement.body.lower()[:BODY_SEARCH_WINDOW]
        if not pattern.search(body_start):
            return False

    if baseline and announcement.mentions_hotfix:
        return False
    return True


def find_announcement(
    pages: Iterable[list[ReleaseAnnouncement]],
    version: str,
) -> tuple[ReleaseAnnouncement | None, int]:
    """Search feed pages for a version's announcement.

    Each page is searched with every variant in order before the next page
    is requested.

    Returns:
        Tuple of (announcement or None, number of announcements checked)
    """
    variants = search_variants(version)
    baseline = SemanticVersion.parse(version).is_baseline
    checked = 0

    for page in pages:
        for variant in variants:
            for announcement in page:
                if matches_announcement(announcement, variant, baseline):
                    return announcement, checked + len(page)
        checked += len(page)

    return None, checked


def clean_title(title: str) -> str:
    """Drop the leading "Update " / "Hotfix " / "Rollback for Update " prefix."""
    return TITLE_PREFIX_PATTERN.sub("", title)


def render_release_notes(title: str, date: str, url: str, body: str) -> str:
    return NOTES_TEMPLATE.format(title=clean_title(title), date=date, url=url, body=body)


def read_release_notes_info(path: Path, fallback_title: str) -> ReleaseNotesInfo:
    """Read the header of a saved notes file."""
    content = path.read_text(encoding="utf-8")
    title = NOTES_TITLE_PATTERN.search(content)
    date = NOTES_DATE_PATTERN.search(content)
    url = NOTES_URL_PATTERN.search(content)
    return ReleaseNotesInfo(
        title=title.group(1).strip() if title else fallback_title,
        date=date.group(1).strip() if date else utc_now().strftime("%Y-%m-%d"),
        url=url.group(1).strip() if url else "",
    )


def latest_patch_version(titles: Iterable[str]) -> str | None:
    """Version of the most recent patch announcement.

    The first title like ``Update 1.18.0.2`` / ``Hotfix ...`` wins;
    "Available now" marketing posts are ignored.
    """
    for title in titles:
        if not PATCH_TITLE_PATTERN.match(title) or "Available" in title:
            continue
        match = TITLE_VERSION_PATTERN.search(title)
        if match and validate_version(match.group(1)):
            return match.group(1)
        return None
    return None


class ReleaseNoteMatcher:
    """Fetch and save release notes for a chain of versions."""

    def __init__(
        self,
        client: SteamClient,
        notes_dir: Path,
        config: SteamConfig | None = None,
        converter: MarkupConverter | None = None,
    ):
        self.client = client
        self.notes_dir = notes_dir
        self.config = config or client.config
        self.converter = converter or MarkupConverter()

    def save(self, version: str, announcement: ReleaseAnnouncement) -> str:
        """Convert and write an announcement; returns the file name."""
        date = announcement.date
        url = self.config.announcement_url(announcement.gid)
        markdown = self.converter.to_markdown(announcement.body)

        filename = f"{version_slug(version)}_{date}.md"
        path = self.notes_dir / filename
        path.write_text(
            render_release_notes(announcement.title, date, url, markdown),
            encoding="utf-8",
        )
        return filename

    def ensure(self, version: str) -> str | None:
        """Make sure notes for a version exist.

        Returns:
            File name of the notes, or None if no announcement was found
        """
        slug = version_slug(version)
        existing = find_existing_notes(self.notes_dir, slug)
        if existing:
            logger.info("release_notes_exist", version=version, file=existing)
            return existing

        logger.info("release_notes_search", version=version)
        announcement, checked = find_announcement(
            self.client.iter_announcement_pages(), version
        )
        if announcement is None:
            logger.warning("release_notes_not_found", version=version, checked=checked)
            return None

        filename = self.save(version, announcement)
        logger.info(
            "release_notes_saved",
            version=version,
            file=filename,
            title=announcement.title,
        )
        return filename

    def ensure_all(self, required: list[str]) -> dict[str, str]:
        """Ensure notes for every required version, oldest first.

        Args:
            required: Versions newest first, as from resolve_required_versions

        Returns:
            Mapping of version to notes file name for the versions found

        Raises:
            NotFoundError: If no version has notes
        """
        self.notes_dir.mkdir(parents=True, exist_ok=True)

        found: dict[str, str] = {}
        for version in reversed(required):
            filename = self.ensure(version)
            if filename:
                found[version] = filename

        if not found:
            raise NotFoundError(
                f"No release notes found for {required[0]} or its parent versions",
                version=required[0],
            )
        return found
