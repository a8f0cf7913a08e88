"""
Binary encoding for the symptom list stored on a period entry.

Layout (big-endian)::

    b"SYM" | version:u8 | count:u32 | (length:u32 | utf-8 bytes) * count

The empty list encodes to the 8-byte header alone, so "stored but empty"
stays distinguishable from "nothing stored" (``None``).
"""
from __future__ import annotations

import struct
from collections.abc import Sequence
from typing import Iterable, List, Optional

from cycle.errors import CorruptEncoding, EncodingRejected

__all__ = [
    "FORMAT_VERSION",
    "MAGIC",
    "decode",
    "decode_optional",
    "encode",
    "encode_optional",
]

MAGIC = b"SYM"
FORMAT_VERSION = 1

_HEADER = struct.Struct(">3sBI")
_LENGTH = struct.Struct(">I")


def encode(symptoms: Sequence[str]) -> bytes:
    """Encode ``symptoms`` into a versioned blob.

    Raises:
        EncodingRejected: ``symptoms`` is not a sequence of ``str``.
    """
    if isinstance(symptoms, (str, bytes, bytearray)) or not isinstance(symptoms, Sequence):
        raise EncodingRejected(
            f"expected a sequence of strings, got {type(symptoms).__name__}"
        )

    parts: List[bytes] = [_HEADER.pack(MAGIC, FORMAT_VERSION, len(symptoms))]
    for index, name in enumerate(symptoms):
        if not isinstance(name, str):
            raise EncodingRejected(
                f"element {index} is {type(name).__name__}, expected str"
            )
        try:
            raw = name.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingRejected(f"element {index} is not valid unicode") from exc
        parts.append(_LENGTH.pack(len(raw)))
        parts.append(raw)
    return b"".join(parts)


def decode(data: bytes) -> List[str]:
    """Decode a blob produced by :func:`encode`.

    Raises:
        CorruptEncoding: the bytes are truncated, carry the wrong magic or
            version, contain invalid UTF-8 or have trailing garbage.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CorruptEncoding(f"expected bytes, got {type(data).__name__}")
    buf = bytes(data)

    if len(buf) < _HEADER.size:
        raise CorruptEncoding("truncated header")
    magic, version, count = _HEADER.unpack_from(buf, 0)
    if magic != MAGIC:
        raise CorruptEncoding("not a symptom list")
    if version != FORMAT_VERSION:
        raise CorruptEncoding(f"unsupported format version {version}")

    offset = _HEADER.size
    symptoms: List[str] = []
    for index in range(count):
        if offset + _LENGTH.size > len(buf):
            raise CorruptEncoding(f"truncated length for element {index}")
        (length,) = _LENGTH.unpack_from(buf, offset)
        offset += _LENGTH.size
        end = offset + length
        if end > len(buf):
            raise CorruptEncoding(f"truncated payload for element {index}")
        try:
            symptoms.append(buf[offset:end].decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise CorruptEncoding(f"element {index} is not valid utf-8") from exc
        offset = end

    if offset != len(buf):
        raise CorruptEncoding(f"{len(buf) - offset} trailing bytes")
    return symptoms


def encode_optional(symptoms: Optional[Iterable[str]]) -> Optional[bytes]:
    """Column value for ``symptoms``: ``None`` when there is nothing to store."""
    if symptoms is None:
        return None
    if isinstance(symptoms, (set, frozenset)):
        raise EncodingRejected("a set has no defined order")
    if not isinstance(symptoms, (str, bytes, bytearray, Sequence)):
        try:
            symptoms = list(symptoms)
        except TypeError as exc:
            raise EncodingRejected(
                f"expected a sequence of strings, got {type(symptoms).__name__}"
            ) from exc
    if len(symptoms) == 0 and not isinstance(symptoms, (str, bytes, bytearray)):
        return None
    return encode(symptoms)


def decode_optional(data: Optional[bytes]) -> Optional[List[str]]:
    """Inverse of :func:`encode_optional`."""
    if data is None:
        return None
    return decode(data)
