"""
PDF Object Model
================

Typed values for the document object graph and their serialization.

Supported Values:
    - Name: /Type, /EmbeddedFile, ... (delimiters escaped as #xx)
    - PdfString: literal string, stored byte-for-byte (no percent encoding)
    - Reference: indirect reference "n g R" to an arena object
    - Stream: dictionary + raw payload (uncompressed, /Length filled in)
    - dict, list/tuple, int, float, bool, None

Plain Python str is rejected: every string in the graph must say whether
it is a Name or a PdfString.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union


_DELIMITERS = b"()<>[]{}/%#"

_STRING_ESCAPES = {
    ord("\\"): b"\\\\",
    ord("("): b"\\(",
    ord(")"): b"\\)",
    ord("\r"): b"\\r",
}


class Name(str):
    """A PDF name object."""

    def __repr__(self) -> str:
        return f"Name({str.__repr__(self)})"


@dataclass(frozen=True)
class PdfString:
    """
    A PDF literal string.

    Attributes:
        value: Raw bytes (str input is UTF-8 encoded)
    """

    value: bytes

    def __init__(self, value: Union[str, bytes]) -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        object.__setattr__(self, "value", bytes(value))

    def text(self) -> str:
        return self.value.decode("utf-8", errors="replace")


@dataclass(frozen=True, order=True)
class Reference:
    """Indirect reference to an object in a Document."""

    number: int
    generation: int = 0


@dataclass
class Stream:
    """
    Stream object.

    Attributes:
        dictionary: Stream dictionary (/Length is computed at serialization)
        data: Payload bytes
    """

    dictionary: Dict[str, Any] = field(default_factory=dict)
    data: bytes = b""


def format_number(value: Union[int, float]) -> str:
    """Shortest plain decimal form (no exponent): 156.0 -> '156', 0.9 -> '0.9'."""
    if isinstance(value, bool):
        raise TypeError("bool is not a PDF number")
    if isinstance(value, int):
        return str(value)
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"non-finite number: {value}")
    if value == int(value):
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def escape_name(name: str) -> bytes:
    out = bytearray()
    for byte in name.encode("utf-8"):
        if 0x21 <= byte <= 0x7E and byte not in _DELIMITERS:
            out.append(byte)
        else:
            out += b"#%02X" % byte
    return bytes(out)


def escape_string(value: bytes) -> bytes:
    out = bytearray()
    for byte in value:
        out += _STRING_ESCAPES.get(byte, bytes((byte,)))
    return bytes(out)


def serialize(obj: Any) -> bytes:
    """
    Serialize a value to PDF syntax.

    Raises:
        TypeError: For unsupported values (including plain str)
    """
    if obj is None:
        return b"null"
    if isinstance(obj, bool):
        return b"true" if obj else b"false"
    if isinstance(obj, (int, float)):
        return format_number(obj).encode("ascii")
    if isinstance(obj, Name):
        return b"/" + escape_name(obj)
    if isinstance(obj, PdfString):
        return b"(" + escape_string(obj.value) + b")"
    if isinstance(obj, Reference):
        return b"%d %d R" % (obj.number, obj.generation)
    if isinstance(obj, (list, tuple)):
        return b"[" + b" ".join(serialize(item) for item in obj) + b"]"
    if isinstance(obj, dict):
        return _serialize_dict(obj)
    if isinstance(obj, Stream):
        dictionary = dict(obj.dictionary)
        dictionary["Length"] = len(obj.data)
        return (
            _serialize_dict(dictionary)
            + b"\nstream\n"
            + obj.data
            + b"\nendstream"
        )
    raise TypeError(f"cannot serialize {type(obj).__name__} as a PDF object")


def _serialize_dict(obj: Dict[str, Any]) -> bytes:
    parts = [b"<<"]
    for key, value in obj.items():
        parts.append(b"/" + escape_name(key) + b" " + serialize(value))
    parts.append(b">>")
    return b" ".join(parts)
