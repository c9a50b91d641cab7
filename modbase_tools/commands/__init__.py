"""CLI command implementations for modbase_tools.

This module contains all command-line interface implementations:
- check: Compare against the latest released game version
- download: Download the game through the depot download agent
- parse: Write snapshot metadata and release notes
- extract: Mirror an installation with binaries reduced to metadata
"""

from modbase_tools.commands.check import check
from modbase_tools.commands.download import download
from modbase_tools.commands.extract import extract
from modbase_tools.commands.parse import parse

__all__ = ["check", "download", "extract", "parse"]
