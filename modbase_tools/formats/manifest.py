"""Depot manifest parser.

A manifest written by the download agent holds two consecutive frames,
each a little-endian ``magic (4) + length (4) + body`` triple:

1. payload frame (file listing), skipped
2. metadata frame, a protobuf ``ContentManifestMetadata`` message

Only the metadata frame is decoded.
"""

from __future__ import annotations

import struct
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

import structlog
from pydantic import BaseModel, Field

from modbase_tools.core.errors import FormatError
from modbase_tools.core.utils import iso_instant
from modbase_tools.formats.base import FormatParser
from modbase_tools.formats.protobuf import (
    FieldSpec,
    MessageSchema,
    decode_message,
    encode_message,
)

logger = structlog.get_logger()

PAYLOAD_MAGIC = 0x71F617D0
METADATA_MAGIC = 0x1F4812BE

FRAME_HEADER = struct.Struct("<II")

MANIFEST_METADATA_SCHEMA = MessageSchema(
    name="ContentManifestMetadata",
    fields=(
        FieldSpec(1, "depot_id", "uint32"),
        FieldSpec(2, "gid_manifest", "uint64"),
        FieldSpec(3, "creation_time", "uint32"),
        FieldSpec(4, "filenames_encrypted", "bool"),
        FieldSpec(5, "cb_disk_original", "uint64"),
        FieldSpec(6, "cb_disk_compressed", "uint64"),
        FieldSpec(7, "unique_chunks", "uint32"),
        FieldSpec(8, "crc_encrypted", "uint32"),
        FieldSpec(9, "crc_clear", "uint32"),
    ),
)


class ManifestMetadata(BaseModel):
    """Decoded metadata frame."""

    depot_id: int | None = Field(default=None, description="Depot ID")
    gid_manifest: int | None = Field(default=None, description="Manifest ID")
    creation_time: int | None = Field(default=None, description="Creation time (Unix seconds)")
    filenames_encrypted: bool | None = Field(default=None, description="Filenames are encrypted")
    cb_disk_original: int | None = Field(default=None, description="Original size in bytes")
    cb_disk_compressed: int | None = Field(default=None, description="Compressed size in bytes")
    unique_chunks: int | None = Field(default=None, description="Unique chunk count")
    crc_encrypted: int | None = Field(default=None, description="CRC of encrypted manifest")
    crc_clear: int | None = Field(default=None, description="CRC of clear manifest")

    @property
    def created_at(self) -> str | None:
        """Creation time as an ISO-8601 instant, if present."""
        if not self.creation_time:
            return None
        return iso_instant(self.creation_time)


class ManifestFile(BaseModel):
    """Complete manifest structure."""

    payload: bytes = Field(description="Opaque payload frame body")
    metadata: ManifestMetadata = Field(description="Decoded metadata frame")


class ManifestParser(FormatParser[ManifestFile]):
    """Parser for depot manifest files."""

    def __init__(self, schema: MessageSchema = MANIFEST_METADATA_SCHEMA):
        self.schema = schema

    def _read_frame(self, stream: BinaryIO, section: str, expected_magic: int) -> bytes:
        header = stream.read(FRAME_HEADER.size)
        if len(header) < FRAME_HEADER.size:
            raise FormatError(
                f"Insufficient data for {section} frame header",
                section=section,
            )

        magic, size = FRAME_HEADER.unpack(header)
        if magic != expected_magic:
            raise FormatError(
                f"Invalid {section} magic: 0x{magic:08x}, expected 0x{expected_magic:08x}",
                section=section,
                observed=magic,
            )

        body = stream.read(size)
        if len(body) < size:
            raise FormatError(
                f"Truncated {section} frame: declared {size} bytes, got {len(body)}",
                section=section,
            )
        return body

    def parse(self, data: bytes | BinaryIO) -> ManifestFile:
        """Parse a manifest.

        Args:
            data: Binary data or stream

        Returns:
            Parsed manifest

        Raises:
            FormatError: If either frame is malformed
        """
        if isinstance(data, bytes):
            stream = BytesIO(data)
        else:
            stream = data

        payload = self._read_frame(stream, "payload", PAYLOAD_MAGIC)
        metadata_bytes = self._read_frame(stream, "metadata", METADATA_MAGIC)

        try:
            values = decode_message(metadata_bytes, self.schema)
        except FormatError as e:
            raise FormatError(f"Invalid metadata message: {e}", section="metadata") from e

        metadata = ManifestMetadata(**values)
        logger.debug(
            "manifest_parsed",
            payload_size=len(payload),
            depot_id=metadata.depot_id,
            creation_time=metadata.creation_time,
        )
        return ManifestFile(payload=payload, metadata=metadata)

    def build(self, obj: ManifestFile) -> bytes:
        """Build manifest binary data.

        Args:
            obj: Manifest structure

        Returns:
            Binary manifest data
        """
        metadata_bytes = encode_message(obj.metadata.model_dump(), self.schema)

        result = BytesIO()
        result.write(FRAME_HEADER.pack(PAYLOAD_MAGIC, len(obj.payload)))
        result.write(obj.payload)
        result.write(FRAME_HEADER.pack(METADATA_MAGIC, len(metadata_bytes)))
        result.write(metadata_bytes)
        return result.getvalue()


def read_manifest_timestamp(path: Path, parser: ManifestParser) -> str | None:
    """Read a manifest's creation time.

    Decode failures are logged and reported as "no timestamp".

    Args:
        path: Manifest file
        parser: Parser carrying the metadata schema

    Returns:
        ISO-8601 instant or None
    """
    try:
        manifest = parser.parse_file(path)
    except FormatError as e:
        logger.warning(
            "manifest_parse_failed",
            file=path.name,
            section=e.section,
            error=str(e),
        )
        return None
    return manifest.metadata.created_at
