"""Binary format parsers and builders.

- Manifest: depot manifests written by the download agent
- Protobuf: schema-driven wire codec for manifest metadata
"""

from modbase_tools.formats.base import FormatParser
from modbase_tools.formats.manifest import (
    MANIFEST_METADATA_SCHEMA,
    METADATA_MAGIC,
    PAYLOAD_MAGIC,
    ManifestFile,
    ManifestMetadata,
    ManifestParser,
    read_manifest_timestamp,
)
from modbase_tools.formats.protobuf import (
    FieldSpec,
    MessageSchema,
    decode_message,
    decode_varint,
    encode_message,
    encode_varint,
)

__all__ = [
    "FormatParser",
    # Manifest
    "MANIFEST_METADATA_SCHEMA",
    "METADATA_MAGIC",
    "PAYLOAD_MAGIC",
    "ManifestFile",
    "ManifestMetadata",
    "ManifestParser",
    "read_manifest_timestamp",
    # Protobuf
    "FieldSpec",
    "MessageSchema",
    "decode_message",
    "decode_varint",
    "encode_message",
    "encode_varint",
]
