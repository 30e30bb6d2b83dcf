"""
Layer 1 — DER Codec
===================
A deliberately small ASN.1 DER encoder/decoder: just enough to build and
walk RSA public key structures.

Supported tags:
    0x02  INTEGER            big-endian, two's complement
    0x03  BIT STRING         first content octet = number of unused bits
    0x05  NULL               decoded as an opaque primitive
    0x06  OBJECT IDENTIFIER  decoded as an opaque primitive
    0x30  SEQUENCE           constructed

Length octets use DER definite form:
    n < 128   ->  one octet n
    n >= 128  ->  0x80|k followed by k big-endian octets of n

INTEGER sign rule: the minimal big-endian magnitude is emitted, and a 0x00
octet is prepended whenever the top bit of the first octet is set, so the
value always reads as non-negative.

This is not a general ASN.1 parser. Anything outside the tags above is
rejected with DecodeError.
"""

import logging
from typing import List, Optional

from ..errors import DecodeError

logger = logging.getLogger(__name__)

TAG_INTEGER           = 0x02
TAG_BIT_STRING        = 0x03
TAG_NULL              = 0x05
TAG_OBJECT_IDENTIFIER = 0x06
TAG_SEQUENCE          = 0x30

_KNOWN_TAGS = {
    TAG_INTEGER:           "INTEGER",
    TAG_BIT_STRING:        "BIT STRING",
    TAG_NULL:              "NULL",
    TAG_OBJECT_IDENTIFIER: "OBJECT IDENTIFIER",
    TAG_SEQUENCE:          "SEQUENCE",
}

_MAX_LENGTH_OCTETS = 4


# ── integer helpers ──────────────────────────────────────────────────────────

def int_to_bytes(n: int) -> bytes:
    """Big-endian unsigned magnitude, at least one octet."""
    if n < 0:
        raise ValueError("Only non-negative integers are supported.")
    return n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")


def bytes_to_int(buf: bytes) -> int:
    return int.from_bytes(buf, "big")


def _integer_content(buf: bytes) -> bytes:
    """Minimal magnitude plus DER sign octet."""
    body = bytes(buf).lstrip(b"\x00") or b"\x00"
    if body[0] & 0x80:
        body = b"\x00" + body
    return body


# ── length octets ────────────────────────────────────────────────────────────

def encode_length(n: int) -> bytes:
    if n < 0:
        raise ValueError("DER length cannot be negative.")
    if n < 0x80:
        return bytes([n])
    octets = int_to_bytes(n)
    return bytes([0x80 | len(octets)]) + octets


def _read_length(data: bytes, pos: int):
    """Returns (length, position of first content octet)."""
    if pos >= len(data):
        raise DecodeError("Truncated DER: missing length octet.")
    first = data[pos]
    pos += 1
    if first < 0x80:
        return first, pos
    count = first & 0x7F
    if count == 0:
        raise DecodeError("Indefinite length is not allowed in DER.")
    if count > _MAX_LENGTH_OCTETS:
        raise DecodeError(f"Length field of {count} octets is too large.")
    if pos + count > len(data):
        raise DecodeError("Truncated DER: length octets run past end of input.")
    return bytes_to_int(data[pos:pos + count]), pos + count


# ── values ───────────────────────────────────────────────────────────────────

class DERValue:
    """
    A single tagged value. Primitive values carry their raw content in
    `value`; SEQUENCEs carry an ordered list of `children`.
    """

    def __init__(self, tag: int, value: bytes = b"",
                 children: Optional[List["DERValue"]] = None):
        if tag not in _KNOWN_TAGS:
            raise ValueError(f"Unsupported DER tag 0x{tag:02x}.")
        self.tag      = tag
        self.value    = bytes(value)
        self.children = list(children) if children is not None else []

    @classmethod
    def integer(cls, buf: bytes) -> "DERValue":
        """INTEGER from a big-endian unsigned byte string."""
        return cls(TAG_INTEGER, _integer_content(buf))

    @classmethod
    def bit_string(cls, payload: bytes) -> "DERValue":
        """BIT STRING over byte-aligned payload (unused bits = 0)."""
        return cls(TAG_BIT_STRING, b"\x00" + bytes(payload))

    @classmethod
    def sequence(cls, children: List["DERValue"]) -> "DERValue":
        return cls(TAG_SEQUENCE, children=children)

    @property
    def is_sequence(self) -> bool:
        return self.tag == TAG_SEQUENCE

    @property
    def tag_name(self) -> str:
        return _KNOWN_TAGS[self.tag]

    def content(self) -> bytes:
        if self.is_sequence:
            return b"".join(child.encode() for child in self.children)
        return self.value

    def encode(self) -> bytes:
        body = self.content()
        return bytes([self.tag]) + encode_length(len(body)) + body

    def unsigned(self) -> bytes:
        """INTEGER content as a minimal unsigned big-endian byte string."""
        if self.tag != TAG_INTEGER:
            raise DecodeError(f"Expected INTEGER, found {self.tag_name}.")
        if not self.value:
            raise DecodeError("Empty INTEGER.")
        if self.value[0] & 0x80:
            raise DecodeError("Negative INTEGER where an unsigned value was expected.")
        return self.value.lstrip(b"\x00") or b"\x00"

    def bits(self) -> bytes:
        """BIT STRING payload with the unused-bits octet removed."""
        if self.tag != TAG_BIT_STRING:
            raise DecodeError(f"Expected BIT STRING, found {self.tag_name}.")
        if not self.value:
            raise DecodeError("Empty BIT STRING.")
        if self.value[0] != 0:
            raise DecodeError("BIT STRING is not byte aligned.")
        return self.value[1:]

    def __getitem__(self, index: int) -> "DERValue":
        if not self.is_sequence:
            raise DecodeError(f"{self.tag_name} has no children.")
        try:
            return self.children[index]
        except IndexError:
            raise DecodeError(
                f"SEQUENCE has {len(self.children)} children, no index {index}."
            ) from None

    def __len__(self) -> int:
        return len(self.children)

    def __eq__(self, other) -> bool:
        if not isinstance(other, DERValue):
            return NotImplemented
        return self.encode() == other.encode()

    def __repr__(self):
        if self.is_sequence:
            return f"DERValue(SEQUENCE, {self.children!r})"
        return f"DERValue({self.tag_name}, {self.value.hex()})"


# ── encode / decode ──────────────────────────────────────────────────────────

def encode(value: DERValue) -> bytes:
    return value.encode()


def _decode_stream(data: bytes, depth: int) -> List[DERValue]:
    values, pos = [], 0
    while pos < len(data):
        tag = data[pos]
        if tag not in _KNOWN_TAGS:
            raise DecodeError(f"Unknown DER tag 0x{tag:02x} at offset {pos}.")
        length, start = _read_length(data, pos + 1)
        end = start + length
        if end > len(data):
            raise DecodeError(
                f"Truncated DER: {_KNOWN_TAGS[tag]} needs {length} octets, "
                f"{len(data) - start} available."
            )
        content = data[start:end]
        if tag == TAG_SEQUENCE:
            values.append(DERValue.sequence(_decode_stream(content, depth + 1)))
        else:
            values.append(DERValue(tag, content))
        pos = end
    logger.debug(f"DER: decoded {len(values)} value(s) at depth {depth}")
    return values


def decode_all(data: bytes) -> List[DERValue]:
    """Decode a concatenation of DER values."""
    return _decode_stream(bytes(data), 0)


def decode(data: bytes) -> DERValue:
    """Decode exactly one top-level DER value."""
    if not data:
        raise DecodeError("Empty DER input.")
    values = decode_all(data)
    if len(values) != 1:
        raise DecodeError(f"Expected one top-level DER value, found {len(values)}.")
    return values[0]
