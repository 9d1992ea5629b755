"""Compiled binary dataset layout.

A compiled file is the magic ``GEODB``, the format version as a big-endian
``uint16``, then exactly one tagged value. Tagged values are self-describing:

    0x00 null
    0x01 false / 0x02 true
    0x03 int64            (8 bytes, big-endian, signed)
    0x04 float64          (8 bytes, big-endian IEEE 754)
    0x05 string           (uint32 byte length + UTF-8)
    0x06 list             (uint32 count + tagged values)
    0x07 map              (uint32 count + pairs of untagged key string and tagged value)

The root value has the same shape as the JSON interchange layout, so both
decode paths feed the same record parsing.
"""

from __future__ import annotations

import struct
from typing import Any, Mapping

from .errors import DecodeError, UnsupportedVersion

MAGIC = b"GEODB"
FORMAT_VERSION = 1
HEADER = struct.Struct(">H")

TAG_NULL = 0x00
TAG_FALSE = 0x01
TAG_TRUE = 0x02
TAG_INT = 0x03
TAG_FLOAT = 0x04
TAG_STR = 0x05
TAG_LIST = 0x06
TAG_MAP = 0x07

_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")
_F64 = struct.Struct(">d")

MAX_DEPTH = 32


def is_binary(data: bytes) -> bool:
    return data[: len(MAGIC)] == MAGIC


class _Reader:
    def __init__(self, data: bytes, offset: int) -> None:
        self.data = memoryview(data)
        self.pos = offset

    def take(self, size: int) -> memoryview:
        end = self.pos + size
        if end > len(self.data):
            raise DecodeError(
                f"Unexpected end of data: needed {size} bytes, {len(self.data) - self.pos} left",
                offset=self.pos,
            )
        chunk = self.data[self.pos : end]
        self.pos = end
        return chunk

    def u32(self) -> int:
        return _U32.unpack(self.take(_U32.size))[0]

    def text(self) -> str:
        start = self.pos
        size = self.u32()
        raw = self.take(size)
        try:
            return bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Invalid UTF-8 string: {exc.reason}", offset=start) from exc

    def value(self, depth: int = 0) -> Any:
        if depth > MAX_DEPTH:
            raise DecodeError(f"Nesting deeper than {MAX_DEPTH} levels", offset=self.pos)
        tag_offset = self.pos
        tag = self.take(1)[0]
        if tag == TAG_NULL:
            return None
        if tag == TAG_FALSE:
            return False
        if tag == TAG_TRUE:
            return True
        if tag == TAG_INT:
            return _I64.unpack(self.take(_I64.size))[0]
        if tag == TAG_FLOAT:
            return _F64.unpack(self.take(_F64.size))[0]
        if tag == TAG_STR:
            return self.text()
        if tag == TAG_LIST:
            count = self.u32()
            return [self.value(depth + 1) for _ in range(count)]
        if tag == TAG_MAP:
            count = self.u32()
            out: dict[str, Any] = {}
            for _ in range(count):
                key_offset = self.pos
                key = self.text()
                if key in out:
                    raise DecodeError(f"Duplicate map key '{key}'", offset=key_offset)
                out[key] = self.value(depth + 1)
            return out
        raise DecodeError(f"Unknown value tag 0x{tag:02x}", offset=tag_offset)


def read_version(data: bytes) -> int:
    if not is_binary(data):
        raise DecodeError("Missing GEODB magic header", offset=0)
    reader = _Reader(data, len(MAGIC))
    return HEADER.unpack(reader.take(HEADER.size))[0]


def decode_binary(data: bytes) -> Any:
    """Decode a compiled file into plain lists, dicts and scalars."""
    version = read_version(data)
    if version != FORMAT_VERSION:
        raise UnsupportedVersion(FORMAT_VERSION, version)
    reader = _Reader(data, len(MAGIC) + HEADER.size)
    root = reader.value()
    if reader.pos != len(data):
        raise DecodeError(f"{len(data) - reader.pos} trailing bytes after root value", offset=reader.pos)
    return root


def encode_binary(root: Any, *, version: int = FORMAT_VERSION) -> bytes:
    """Compile a JSON-shaped value into the binary layout."""
    out = bytearray(MAGIC)
    out += HEADER.pack(version)
    _write_value(out, root, "$", 0)
    return bytes(out)


def _write_text(out: bytearray, text: str) -> None:
    encoded = text.encode("utf-8")
    out += _U32.pack(len(encoded))
    out += encoded


def _write_value(out: bytearray, value: Any, path: str, depth: int) -> None:
    if depth > MAX_DEPTH:
        raise ValueError(f"Nesting deeper than {MAX_DEPTH} levels at {path}")
    if value is None:
        out.append(TAG_NULL)
    elif value is True:
        out.append(TAG_TRUE)
    elif value is False:
        out.append(TAG_FALSE)
    elif isinstance(value, int):
        if not -(2**63) <= value < 2**63:
            raise ValueError(f"Integer out of int64 range at {path}")
        out.append(TAG_INT)
        out += _I64.pack(value)
    elif isinstance(value, float):
        out.append(TAG_FLOAT)
        out += _F64.pack(value)
    elif isinstance(value, str):
        out.append(TAG_STR)
        _write_text(out, value)
    elif isinstance(value, (list, tuple)):
        out.append(TAG_LIST)
        out += _U32.pack(len(value))
        for idx, item in enumerate(value):
            _write_value(out, item, f"{path}[{idx}]", depth + 1)
    elif isinstance(value, Mapping):
        out.append(TAG_MAP)
        out += _U32.pack(len(value))
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValueError(f"Map keys must be strings at {path}")
            _write_text(out, key)
            _write_value(out, item, f"{path}.{key}", depth + 1)
    else:
        raise ValueError(f"Unsupported value type {type(value).__name__} at {path}")
