"""Error taxonomy for modbase-tools.

Library code raises these; the CLI commands turn them into a diagnostic
and a non-zero exit status. Whether a given error is fatal depends on
where it is raised:

- FormatError: a manifest could not be decoded (per file, non-fatal)
- ValidationError: a version string is malformed (fatal)
- NotFoundError: no release announcement matched a version (per version,
  fatal only when no required version matched)
- PreconditionError: an input/output location is unusable (fatal)
- CollaboratorError: a remote fetch or subprocess failed
"""

from __future__ import annotations


class ModbaseError(Exception):
    """Base class for all modbase-tools errors."""


class FormatError(ModbaseError):
    """Raised when binary manifest data does not match its framing.

    Attributes:
        section: Frame that failed to decode ("payload" or "metadata")
        observed: Observed magic value, when the failure is a magic mismatch
    """

    def __init__(
        self,
        message: str,
        *,
        section: str | None = None,
        observed: int | None = None,
    ):
        self.section = section
        self.observed = observed
        super().__init__(message)


class ValidationError(ModbaseError):
    """Raised when a version string is missing or malformed."""

    def __init__(self, message: str, *, value: str | None = None):
        self.value = value
        super().__init__(message)


class NotFoundError(ModbaseError):
    """Raised when no release announcement can be found."""

    def __init__(self, message: str, *, version: str | None = None):
        self.version = version
        super().__init__(message)


class PreconditionError(ModbaseError):
    """Raised when a required file or directory is missing or unusable."""

    def __init__(self, message: str, *, path: str | None = None):
        self.path = path
        super().__init__(message)


class CollaboratorError(ModbaseError):
    """Raised when a remote service or external process fails.

    Attributes:
        source: URL or command that failed
    """

    def __init__(self, message: str, *, source: str | None = None):
        self.source = source
        super().__init__(message)
