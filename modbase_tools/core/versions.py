"""Game version handling and release chain resolution.

Versions have 2-4 numeric components: ``major.minor[.patch[.hotfix]]``.
A release ``x.y.z.w`` is documented by the notes of every release it is
layered on, back to the ``x.y.0`` baseline:

    1.10.1.2 -> 1.10.1.2, 1.10.1, 1.10.0
    1.11.3   -> 1.11.3, 1.11.2, 1.11.1, 1.11.0
    1.10.0   -> 1.10.0
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

from modbase_tools.core.errors import ValidationError

VERSION_PATTERN = re.compile(r"^[0-9]+\.[0-9]+(\.[0-9]+)?(\.[0-9]+)?$")
VERSION_NAME_PATTERN = re.compile(r"\(([^)]+)\)")


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """Numeric version compared as a zero-padded four-part tuple."""

    parts: tuple[int, ...]
    text: str

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse a version string.

        Raises:
            ValidationError: If the string is not ``x.y[.z[.w]]``
        """
        if not validate_version(text):
            raise ValidationError(
                f"Invalid version format: {text!r} (expected x.x, x.x.x or x.x.x.x)",
                value=text,
            )
        return cls(tuple(int(p) for p in text.split(".")), text)

    @property
    def key(self) -> tuple[int, int, int, int]:
        padded = (*self.parts, 0, 0, 0, 0)[:4]
        return padded[0], padded[1], padded[2], padded[3]

    @property
    def major(self) -> int:
        return self.key[0]

    @property
    def minor(self) -> int:
        return self.key[1]

    @property
    def patch(self) -> int:
        return self.key[2]

    @property
    def hotfix(self) -> int:
        return self.key[3]

    @property
    def is_hotfix(self) -> bool:
        return len(self.parts) == 4 and self.hotfix > 0

    @property
    def is_baseline(self) -> bool:
        """True for ``x.y.0`` (and shorter forms ending in ``.0``)."""
        return self.text.endswith(".0")

    @property
    def normalized(self) -> str:
        """Four-part dotted form, e.g. ``1.10`` -> ``1.10.0.0``."""
        return ".".join(str(p) for p in self.key)

    @property
    def slug(self) -> str:
        """Filename-safe form, e.g. ``1.10.1`` -> ``1_10_1_0``."""
        return self.normalized.replace(".", "_")

    def without_hotfix(self) -> SemanticVersion:
        major, minor, patch, _ = self.key
        return SemanticVersion((major, minor, patch), f"{major}.{minor}.{patch}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.key == other.key

    def __lt__(self, other: SemanticVersion) -> bool:
        return self.key < other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.text


def validate_version(version: str | None) -> bool:
    """Check that a version string is ``x.x``, ``x.x.x`` or ``x.x.x.x``."""
    if not version or not isinstance(version, str):
        return False
    return VERSION_PATTERN.match(version) is not None


def parse_version(version: str | None) -> SemanticVersion:
    """Parse a version string, raising ValidationError when malformed."""
    if version is None:
        raise ValidationError("Missing version")
    return SemanticVersion.parse(version)


def version_slug(version: str) -> str:
    """Release notes slug for a version string."""
    return SemanticVersion.parse(version).slug


def extract_version_name(full_version: str | None) -> str | None:
    """Nickname from a full version string such as ``1.18.0.2 (Crane)``."""
    if not full_version or not isinstance(full_version, str):
        return None
    match = VERSION_NAME_PATTERN.search(full_version)
    return match.group(1) if match else None


def resolve_required_versions(version: SemanticVersion | str) -> list[str]:
    """Versions whose release notes document the given version.

    The list starts with the version itself and descends through the
    patch lineage; it never crosses a major.minor boundary.

    Args:
        version: Target version

    Returns:
        Version strings, newest first
    """
    if isinstance(version, str):
        version = parse_version(version)

    required = [version.text]

    # A hotfix needs its parent patch release
    if version.is_hotfix:
        required.append(version.without_hotfix().text)

    # Every intermediate patch back to the x.y.0 baseline
    if len(version.parts) >= 3 and version.patch > 0:
        for patch in range(version.patch - 1, -1, -1):
            required.append(f"{version.major}.{version.minor}.{patch}")

    return required
