"""Minimal protobuf wire-format codec.

Only the scalar field kinds needed for manifest metadata are supported.
Messages are decoded against an explicit ``MessageSchema`` value; the
schema is built once by the caller and passed to every decode call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from modbase_tools.core.errors import FormatError

MAX_VARINT_BYTES = 10


class WireType(IntEnum):
    """Protobuf wire types."""
    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    FIXED32 = 5


# Field kind -> wire type
FIELD_KINDS: dict[str, WireType] = {
    "uint32": WireType.VARINT,
    "uint64": WireType.VARINT,
    "bool": WireType.VARINT,
    "fixed32": WireType.FIXED32,
    "fixed64": WireType.FIXED64,
    "string": WireType.LENGTH_DELIMITED,
    "bytes": WireType.LENGTH_DELIMITED,
}


@dataclass(frozen=True)
class FieldSpec:
    """A single optional field of a message."""

    number: int
    name: str
    kind: str

    @property
    def wire_type(self) -> WireType:
        return FIELD_KINDS[self.kind]


@dataclass(frozen=True)
class MessageSchema:
    """Field layout of one protobuf message."""

    name: str
    fields: tuple[FieldSpec, ...]

    def __post_init__(self) -> None:
        for spec in self.fields:
            if spec.kind not in FIELD_KINDS:
                raise ValueError(f"Unsupported field kind for {spec.name}: {spec.kind}")

    def by_number(self, number: int) -> FieldSpec | None:
        for spec in self.fields:
            if spec.number == number:
                return spec
        return None


def encode_varint(value: int) -> bytes:
    """Encode an integer as a protobuf varint.

    Args:
        value: Non-negative integer to encode.

    Returns:
        Varint-encoded bytes.
    """
    if value < 0:
        raise ValueError("Varints must be non-negative")
    result = bytearray()
    while value > 0x7F:
        result.append((value & 0x7F) | 0x80)
        value >>= 7
    result.append(value & 0x7F)
    return bytes(result)


def decode_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Decode a varint starting at offset.

    Returns:
        Tuple of (value, new_offset)

    Raises:
        FormatError: If the varint is truncated or too long
    """
    value = 0
    shift = 0
    for i in range(MAX_VARINT_BYTES):
        if offset + i >= len(data):
            raise FormatError(f"Truncated varint at offset {offset}")
        byte = data[offset + i]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, offset + i + 1
        shift += 7
    raise FormatError(f"Varint too long at offset {offset}")


def _take(data: bytes, offset: int, size: int) -> bytes:
    if offset + size > len(data):
        raise FormatError(
            f"Field at offset {offset} needs {size} bytes, {len(data) - offset} available"
        )
    return data[offset:offset + size]


def _convert(spec: FieldSpec, raw: int | bytes) -> Any:
    if spec.kind == "bool":
        return bool(raw)
    if spec.kind == "uint32":
        return int(raw) & 0xFFFFFFFF  # type: ignore[arg-type]
    if spec.kind == "string":
        return bytes(raw).decode("utf-8", errors="replace")  # type: ignore[arg-type]
    return raw


def decode_message(data: bytes, schema: MessageSchema) -> dict[str, Any]:
    """Decode a serialized message.

    Fields absent from the data are absent from the result. Unknown
    field numbers are skipped.

    Args:
        data: Serialized message bytes
        schema: Message layout

    Returns:
        Mapping of field name to decoded value

    Raises:
        FormatError: If the data is not a valid message for the schema
    """
    values: dict[str, Any] = {}
    offset = 0
    while offset < len(data):
        key, offset = decode_varint(data, offset)
        number = key >> 3
        wire_type = key & 0x07
        if number == 0:
            raise FormatError(f"Invalid field number 0 at offset {offset}")

        raw: int | bytes
        if wire_type == WireType.VARINT:
            raw, offset = decode_varint(data, offset)
        elif wire_type == WireType.FIXED64:
            raw = int.from_bytes(_take(data, offset, 8), "little")
            offset += 8
        elif wire_type == WireType.FIXED32:
            raw = int.from_bytes(_take(data, offset, 4), "little")
            offset += 4
        elif wire_type == WireType.LENGTH_DELIMITED:
            length, offset = decode_varint(data, offset)
            raw = _take(data, offset, length)
            offset += length
        else:
            raise FormatError(f"Unsupported wire type {wire_type} for field {number}")

        spec = schema.by_number(number)
        if spec is None:
            continue
        if spec.wire_type != wire_type:
            raise FormatError(
                f"{schema.name}.{spec.name}: expected wire type {int(spec.wire_type)}, got {wire_type}"
            )
        values[spec.name] = _convert(spec, raw)

    return values


def encode_message(values: dict[str, Any], schema: MessageSchema) -> bytes:
    """Serialize a message, skipping fields whose value is None."""
    result = bytearray()
    for spec in sorted(schema.fields, key=lambda s: s.number):
        value = values.get(spec.name)
        if value is None:
            continue
        result.extend(encode_varint((spec.number << 3) | spec.wire_type))
        if spec.wire_type == WireType.VARINT:
            result.extend(encode_varint(int(value)))
        elif spec.wire_type == WireType.FIXED64:
            result.extend(int(value).to_bytes(8, "little"))
        elif spec.wire_type == WireType.FIXED32:
            result.extend(int(value).to_bytes(4, "little"))
        else:
            payload = value.encode("utf-8") if isinstance(value, str) else bytes(value)
            result.extend(encode_varint(len(payload)))
            result.extend(payload)
    return bytes(result)
