"""Base classes for binary format parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Generic, TypeVar

import structlog
from pydantic import BaseModel

from modbase_tools.core.errors import FormatError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class FormatParser(ABC, Generic[T]):
    """Base class for format parsers."""

    @abstractmethod
    def parse(self, data: bytes | BinaryIO) -> T:
        """Parse binary data.

        Args:
            data: Binary data or stream

        Returns:
            Parsed format object

        Raises:
            FormatError: If the data does not match the format
        """
        ...

    def parse_file(self, path: str | Path) -> T:
        """Parse format from file.

        Args:
            path: File path

        Returns:
            Parsed format object
        """
        try:
            with open(path, "rb") as f:
                return self.parse(f)
        except OSError as e:
            logger.error("file_read_failed", path=str(path), error=str(e))
            raise FormatError(f"Cannot read file {path}: {e}") from e

    @abstractmethod
    def build(self, obj: T) -> bytes:
        """Build binary data from object.

        Args:
            obj: Format object

        Returns:
            Binary data
        """
        ...

    def validate(self, data: bytes) -> tuple[bool, str]:
        """Validate format data.

        Args:
            data: Binary data to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            obj = self.parse(data)
            rebuilt = self.build(obj)
            if data != rebuilt:
                return False, "Round-trip validation failed"
            return True, "Valid"
        except (FormatError, ValueError) as e:
            return False, str(e)
