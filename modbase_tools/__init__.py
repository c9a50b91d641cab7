"""Modbase Tools - versioned game installation mirror for modding.

This package turns a downloaded game installation into a versioned,
metadata-annotated snapshot suitable as a modding base.

Key modules:
- core: Shared functionality (config, types, pipeline stages)
- formats: Binary format parsers (depot manifests)
- crypto: Authenticator code generation
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "Modbase Team"

# Re-export commonly used types and functions
from modbase_tools.core.types import (
    DepotRecord,
    FileDisposition,
    SnapshotMetadata,
)
from modbase_tools.core.versions import SemanticVersion, resolve_required_versions

__all__ = [
    "__version__",
    "__author__",
    "DepotRecord",
    "FileDisposition",
    "SnapshotMetadata",
    "SemanticVersion",
    "resolve_required_versions",
]
