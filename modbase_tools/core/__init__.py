"""Core functionality for modbase_tools.

This module provides the snapshot pipeline and its shared pieces:
- Configuration management and type definitions
- Store API client
- Depot catalog, version chains and release notes
- Snapshot metadata assembly and tree extraction
"""

from modbase_tools.core.errors import (
    CollaboratorError,
    FormatError,
    ModbaseError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from modbase_tools.core.types import (
    DepotRecord,
    ExtractStats,
    FileDisposition,
    ReleaseAnnouncement,
    SnapshotMetadata,
)
from modbase_tools.core.utils import (
    chunked_read,
    compute_sha256_file,
    format_size,
    iso_instant,
)
from modbase_tools.core.versions import (
    SemanticVersion,
    parse_version,
    resolve_required_versions,
    validate_version,
)

__all__ = [
    # Errors
    "ModbaseError",
    "FormatError",
    "ValidationError",
    "NotFoundError",
    "PreconditionError",
    "CollaboratorError",
    # Types
    "DepotRecord",
    "ExtractStats",
    "FileDisposition",
    "ReleaseAnnouncement",
    "SnapshotMetadata",
    # Versions
    "SemanticVersion",
    "parse_version",
    "resolve_required_versions",
    "validate_version",
    # Utils
    "chunked_read",
    "compute_sha256_file",
    "format_size",
    "iso_instant",
]
