"""Binary VDF codec for Steam shortcuts.vdf.

Wire format, repeated per nesting level until an end marker:

    <type:1> <key:cstring> <value>

    0x00  nested map    value = entries ... 0x08
    0x01  string        value = UTF-8 cstring
    0x02  integer       value = uint32, little endian
    0x08  end of the current map

Decoded values are plain ``dict`` / ``str`` / ``int`` (the GenericValue
shape). Integers are always unsigned 32-bit; nothing else is representable.
"""

from __future__ import annotations

import struct
from io import BytesIO
from typing import BinaryIO, Union

from steamshortcuts.errors import ParseError

__all__ = [
    "BIN_END",
    "BIN_INT32",
    "BIN_NONE",
    "BIN_STRING",
    "GenericMap",
    "GenericValue",
    "UINT32_MAX",
    "binary_dump",
    "binary_dumps",
    "binary_load",
    "binary_loads",
]

# -- Type tag constants --

BIN_NONE = b"\x00"
BIN_STRING = b"\x01"
BIN_INT32 = b"\x02"
BIN_END = b"\x08"

UINT32_MAX = 0xFFFFFFFF

GenericValue = Union[int, str, "GenericMap"]
GenericMap = dict[str, GenericValue]


class _BinaryVDFParser:
    """Stateful binary VDF stream parser."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def parse_map(self, *, root: bool = False) -> GenericMap:
        """Parse map entries up to and including the end marker.

        Args:
            root: The outermost map may also be closed by end of input.

        Returns:
            Parsed dictionary in wire order.

        Raises:
            ParseError: On unknown type tags or truncated input.
        """
        result: GenericMap = {}

        while True:
            tag = self._stream.read(1)
            if not tag:
                if root:
                    break
                raise ParseError("unexpected end of data inside nested map")
            if tag == BIN_END:
                break

            key = self._read_string()

            if tag == BIN_NONE:
                result[key] = self.parse_map()
            elif tag == BIN_STRING:
                result[key] = self._read_string()
            elif tag == BIN_INT32:
                raw = self._stream.read(4)
                if len(raw) != 4:
                    raise ParseError(f"truncated integer for key {key!r}")
                result[key] = struct.unpack("<I", raw)[0]
            else:
                raise ParseError(f"unknown binary VDF type tag 0x{tag.hex()} for key {key!r}")

        return result

    def _read_string(self) -> str:
        """Read a null-terminated UTF-8 string.

        Invalid UTF-8 bytes are kept as surrogate escapes so that writing
        the string back reproduces the original bytes.

        Returns:
            Decoded string without null terminator.
        """
        buf = bytearray()
        while True:
            ch = self._stream.read(1)
            if not ch:
                raise ParseError("unterminated string")
            if ch == b"\x00":
                break
            buf.extend(ch)
        return buf.decode("utf-8", errors="surrogateescape")


def binary_load(fp: BinaryIO) -> GenericMap:
    """Parse binary VDF from a file-like object.

    Args:
        fp: Binary file-like object to read from.

    Returns:
        Parsed dictionary.

    Raises:
        ParseError: If the data is malformed.
    """
    return _BinaryVDFParser(fp).parse_map(root=True)


def binary_loads(data: bytes) -> GenericMap:
    """Parse binary VDF from bytes.

    Args:
        data: Binary VDF data. Empty input yields an empty dict.

    Returns:
        Parsed dictionary.
    """
    return binary_load(BytesIO(data))


def binary_dump(obj: GenericMap, fp: BinaryIO) -> None:
    """Serialize dict to binary VDF and write to file-like object.

    Args:
        obj: Dictionary to serialize.
        fp: Binary file-like object to write to.
    """
    fp.write(binary_dumps(obj))


def binary_dumps(obj: GenericMap) -> bytes:
    """Serialize a GenericValue map to binary VDF bytes.

    Args:
        obj: Dictionary containing only dict, str and uint32 int values.

    Returns:
        Binary VDF representation.

    Raises:
        ValueError: If an integer is outside the uint32 range or a key or
            string contains a NUL byte.
        TypeError: If a value is not a dict, str or int.
    """
    buf = BytesIO()
    _write_dict(buf, obj)
    return buf.getvalue()


def _cstring(text: str, what: str) -> bytes:
    if "\x00" in text:
        raise ValueError(f"{what} contains a NUL byte: {text!r}")
    return text.encode("utf-8", errors="surrogateescape") + b"\x00"


def _write_dict(buf: BytesIO, obj: GenericMap) -> None:
    """Write a dictionary as binary VDF.

    Args:
        buf: Output buffer.
        obj: Dictionary to write.
    """
    for key, value in obj.items():
        key_bytes = _cstring(str(key), "key")

        if isinstance(value, dict):
            buf.write(BIN_NONE)
            buf.write(key_bytes)
            _write_dict(buf, value)
        elif isinstance(value, str):
            buf.write(BIN_STRING)
            buf.write(key_bytes)
            buf.write(_cstring(value, f"value of {key!r}"))
        elif isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value <= UINT32_MAX:
                raise ValueError(f"integer for {key!r} out of uint32 range: {value}")
            buf.write(BIN_INT32)
            buf.write(key_bytes)
            buf.write(struct.pack("<I", value))
        else:
            raise TypeError(f"unsupported binary VDF value for {key!r}: {type(value).__name__}")

    buf.write(BIN_END)
