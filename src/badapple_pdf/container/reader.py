"""
Artifact Reader
===============

Minimal PDF reader for inspecting artifacts produced by ContainerBuilder.

Capabilities:
    - Classic cross-reference table + trailer
    - Literal/hex strings, names, numbers, arrays, dictionaries, references
    - Uncompressed streams (/Length direct or indirect)
    - Embedded files by name, associated files, page count
    - Link hit-testing: which URI does a click at (x, y) open?

Not supported (raises ContainerFormatError): cross-reference streams,
object streams, encryption. Stream filters are not applied.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from badapple_pdf.container.objects import Name, PdfString, Reference, Stream


logger = logging.getLogger(__name__)


_WHITESPACE = b" \t\r\n\f\x00"
_DELIMITERS = b"()<>[]{}/%"
_NUMBER_START = b"+-.0123456789"

_ESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}


class ContainerFormatError(ValueError):
    """Raised when an artifact cannot be parsed."""
    pass


class _Parser:
    """Cursor-based parser over the raw file bytes."""

    def __init__(self, data: bytes, pos: int = 0) -> None:
        self.data = data
        self.pos = pos

    def error(self, message: str) -> ContainerFormatError:
        return ContainerFormatError(f"{message} at offset {self.pos}")

    def skip_whitespace(self) -> None:
        data = self.data
        while self.pos < len(data):
            c = data[self.pos]
            if c in _WHITESPACE:
                self.pos += 1
            elif c == ord("%"):
                while self.pos < len(data) and data[self.pos] not in b"\r\n":
                    self.pos += 1
            else:
                break

    def peek(self, token: bytes) -> bool:
        return self.data.startswith(token, self.pos)

    def expect(self, token: bytes) -> None:
        self.skip_whitespace()
        if not self.peek(token):
            raise self.error(f"expected {token!r}")
        self.pos += len(token)

    def read_regular(self) -> bytes:
        start = self.pos
        data = self.data
        while (
            self.pos < len(data)
            and data[self.pos] not in _WHITESPACE
            and data[self.pos] not in _DELIMITERS
        ):
            self.pos += 1
        return data[start:self.pos]

    def read_int(self) -> int:
        self.skip_whitespace()
        token = self.read_regular()
        if not token.isdigit():
            raise self.error(f"expected integer, got {token!r}")
        return int(token)

    def parse_object(self) -> Any:
        self.skip_whitespace()
        if self.pos >= len(self.data):
            raise self.error("unexpected end of data")

        c = self.data[self.pos]
        if c == ord("/"):
            return self._parse_name()
        if c == ord("("):
            return self._parse_literal_string()
        if self.peek(b"<<"):
            return self._parse_dict()
        if c == ord("<"):
            return self._parse_hex_string()
        if c == ord("["):
            return self._parse_array()
        if c in _NUMBER_START:
            return self._parse_number_or_reference()

        keyword = self.read_regular()
        if keyword == b"true":
            return True
        if keyword == b"false":
            return False
        if keyword == b"null":
            return None
        raise self.error(f"unexpected token {keyword or bytes((c,))!r}")

    def _parse_name(self) -> Name:
        self.pos += 1
        raw = self.read_regular()
        out = bytearray()
        i = 0
        while i < len(raw):
            if raw[i] == ord("#") and i + 2 < len(raw):
                out.append(int(raw[i + 1:i + 3], 16))
                i += 3
            else:
                out.append(raw[i])
                i += 1
        return Name(out.decode("utf-8", errors="replace"))

    def _parse_literal_string(self) -> PdfString:
        data = self.data
        self.pos += 1
        depth = 1
        out = bytearray()
        while True:
            if self.pos >= len(data):
                raise self.error("unterminated string")
            c = data[self.pos]
            self.pos += 1
            if c == ord("\\"):
                e = data[self.pos]
                self.pos += 1
                if e in _ESCAPES:
                    out += _ESCAPES[e]
                elif ord("0") <= e <= ord("7"):
                    digits = bytes((e,))
                    while len(digits) < 3 and ord("0") <= data[self.pos] <= ord("7"):
                        digits += bytes((data[self.pos],))
                        self.pos += 1
                    out.append(int(digits, 8) & 0xFF)
                elif e == ord("\r"):
                    if self.peek(b"\n"):
                        self.pos += 1
                elif e == ord("\n"):
                    pass
                else:
                    out.append(e)
            elif c == ord("("):
                depth += 1
                out.append(c)
            elif c == ord(")"):
                depth -= 1
                if depth == 0:
                    return PdfString(bytes(out))
                out.append(c)
            else:
                out.append(c)

    def _parse_hex_string(self) -> PdfString:
        end = self.data.find(b">", self.pos)
        if end < 0:
            raise self.error("unterminated hex string")
        digits = bytes(b for b in self.data[self.pos + 1:end] if b not in _WHITESPACE)
        self.pos = end + 1
        if len(digits) % 2:
            digits += b"0"
        return PdfString(bytes.fromhex(digits.decode("ascii")))

    def _parse_array(self) -> List[Any]:
        self.pos += 1
        items = []
        while True:
            self.skip_whitespace()
            if self.peek(b"]"):
                self.pos += 1
                return items
            items.append(self.parse_object())

    def _parse_dict(self) -> Dict[str, Any]:
        self.pos += 2
        result: Dict[str, Any] = {}
        while True:
            self.skip_whitespace()
            if self.peek(b">>"):
                self.pos += 2
                return result
            if not self.peek(b"/"):
                raise self.error("expected name as dictionary key")
            key = self._parse_name()
            result[str(key)] = self.parse_object()

    def _parse_number_or_reference(self) -> Union[int, float, Reference]:
        token = self.read_regular()
        try:
            number: Union[int, float] = int(token)
        except ValueError:
            try:
                number = float(token)
            except ValueError:
                raise self.error(f"invalid number {token!r}")
            return number

        # "n g R" lookahead
        saved = self.pos
        self.skip_whitespace()
        generation = self.read_regular()
        if generation.isdigit():
            self.skip_whitespace()
            if self.read_regular() == b"R":
                return Reference(number, int(generation))
        self.pos = saved
        return number


class PdfReader:
    """
    Reader for single-revision, uncompressed-xref PDF files.

    Example:
        reader = PdfReader.from_path("out/badapple.pdf")
        blob = reader.attachment("BA.bin")
        reader.link_at(300, 400)  # -> start URL
    """

    def __init__(self, data: bytes) -> None:
        if not data.startswith(b"%PDF-"):
            raise ContainerFormatError("missing %PDF- header")

        self.data = data
        self._offsets: Dict[int, int] = {}
        self._cache: Dict[int, Any] = {}
        try:
            self.trailer = self._read_xref()
        except ContainerFormatError:
            raise
        except (IndexError, ValueError) as e:
            raise ContainerFormatError(f"malformed cross-reference table: {e}") from e

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PdfReader":
        return cls(Path(path).read_bytes())

    @property
    def version(self) -> str:
        line = self.data[5:self.data.index(b"\n")]
        return line.decode("ascii", errors="replace").strip()

    def _read_xref(self) -> Dict[str, Any]:
        marker = self.data.rfind(b"startxref")
        if marker < 0:
            raise ContainerFormatError("missing startxref")

        parser = _Parser(self.data, marker + len(b"startxref"))
        parser.pos = parser.read_int()
        parser.skip_whitespace()
        if not parser.peek(b"xref"):
            raise parser.error("cross-reference streams are not supported")
        parser.pos += len(b"xref")

        while True:
            parser.skip_whitespace()
            if parser.peek(b"trailer"):
                parser.pos += len(b"trailer")
                break
            first = parser.read_int()
            count = parser.read_int()
            for number in range(first, first + count):
                offset = parser.read_int()
                parser.read_int()
                parser.skip_whitespace()
                kind = parser.read_regular()
                if kind == b"n":
                    self._offsets[number] = offset
                elif kind != b"f":
                    raise parser.error(f"invalid xref entry type {kind!r}")

        trailer = parser.parse_object()
        if not isinstance(trailer, dict) or "Root" not in trailer:
            raise ContainerFormatError("trailer has no /Root")
        return trailer

    def get_object(self, ref: Reference) -> Any:
        """Load an indirect object."""
        if ref.number in self._cache:
            return self._cache[ref.number]
        if ref.number not in self._offsets:
            raise ContainerFormatError(f"object {ref.number} not in xref")

        parser = _Parser(self.data, self._offsets[ref.number])
        try:
            number = parser.read_int()
            parser.read_int()
            parser.expect(b"obj")
            if number != ref.number:
                raise parser.error(f"xref points to object {number}, wanted {ref.number}")

            obj = parser.parse_object()
            parser.skip_whitespace()
            if isinstance(obj, dict) and parser.peek(b"stream"):
                obj = self._read_stream_body(parser, obj)
        except ContainerFormatError:
            raise
        except (IndexError, ValueError) as e:
            raise ContainerFormatError(f"malformed object {ref.number}: {e}") from e

        self._cache[ref.number] = obj
        return obj

    def _read_stream_body(self, parser: _Parser, dictionary: Dict[str, Any]) -> Stream:
        parser.pos += len(b"stream")
        if parser.peek(b"\r\n"):
            parser.pos += 2
        elif parser.peek(b"\n"):
            parser.pos += 1
        else:
            raise parser.error("stream keyword not followed by EOL")

        length = self.resolve(dictionary.get("Length"))
        if not isinstance(length, int) or length < 0:
            raise parser.error(f"invalid stream /Length {length!r}")

        data = self.data[parser.pos:parser.pos + length]
        if len(data) != length:
            raise parser.error("stream data truncated")
        parser.pos += length
        parser.expect(b"endstream")
        return Stream(dictionary, data)

    def resolve(self, obj: Any) -> Any:
        """Follow references until a direct object is reached."""
        seen = set()
        while isinstance(obj, Reference):
            if obj.number in seen:
                raise ContainerFormatError(f"reference cycle at object {obj.number}")
            seen.add(obj.number)
            obj = self.get_object(obj)
        return obj

    def _dict(self, obj: Any, what: str) -> Dict[str, Any]:
        obj = self.resolve(obj)
        if isinstance(obj, Stream):
            obj = obj.dictionary
        if not isinstance(obj, dict):
            raise ContainerFormatError(f"{what} is not a dictionary")
        return obj

    @property
    def catalog(self) -> Dict[str, Any]:
        return self._dict(self.trailer["Root"], "catalog")

    # -------------------------------------------------------------------------
    # Pages and links
    # -------------------------------------------------------------------------

    def pages(self) -> List[Dict[str, Any]]:
        """Page dictionaries in document order."""
        return list(self._walk_pages(self.catalog.get("Pages"), depth=0))

    def _walk_pages(self, node_ref: Any, depth: int) -> Iterator[Dict[str, Any]]:
        if depth > 32:
            raise ContainerFormatError("page tree too deep")
        node = self._dict(node_ref, "page tree node")
        if node.get("Type") == "Page":
            yield node
            return
        for kid in self.resolve(node.get("Kids", [])):
            yield from self._walk_pages(kid, depth + 1)

    def page_count(self) -> int:
        return len(self.pages())

    def link_annotations(self, page_index: int = 0) -> List[Tuple[Tuple[float, ...], str]]:
        """(rect, uri) for every URI link on a page."""
        page = self.pages()[page_index]
        links = []
        for annot_ref in self.resolve(page.get("Annots", [])):
            annot = self._dict(annot_ref, "annotation")
            if annot.get("Subtype") != "Link":
                continue
            action = self._dict(annot.get("A", {}), "link action")
            if action.get("S") != "URI":
                continue
            uri = self.resolve(action.get("URI"))
            rect = tuple(float(self.resolve(v)) for v in self.resolve(annot["Rect"]))
            if len(rect) != 4 or not isinstance(uri, PdfString):
                raise ContainerFormatError("malformed link annotation")
            x1, y1, x2, y2 = rect
            rect = (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
            links.append((rect, uri.text()))
        return links

    def link_at(self, x: float, y: float, page_index: int = 0) -> Optional[str]:
        """URI opened by activating point (x, y), or None."""
        for (x1, y1, x2, y2), uri in self.link_annotations(page_index):
            if x1 <= x <= x2 and y1 <= y <= y2:
                return uri
        return None

    # -------------------------------------------------------------------------
    # Attachments
    # -------------------------------------------------------------------------

    def _filespec_stream(self, filespec_ref: Any) -> Stream:
        filespec = self._dict(filespec_ref, "file specification")
        embedded = self._dict(filespec.get("EF", {}), "/EF dictionary")
        stream = self.resolve(embedded.get("UF", embedded.get("F")))
        if not isinstance(stream, Stream):
            raise ContainerFormatError("file specification has no embedded stream")
        return stream

    def _name_tree(self, node_ref: Any, depth: int = 0) -> Iterator[Tuple[str, Any]]:
        if depth > 32:
            raise ContainerFormatError("name tree too deep")
        node = self._dict(node_ref, "name tree node")
        entries = self.resolve(node.get("Names", []))
        for i in range(0, len(entries) - 1, 2):
            key = self.resolve(entries[i])
            if not isinstance(key, PdfString):
                raise ContainerFormatError("name tree key is not a string")
            yield key.text(), entries[i + 1]
        for kid in self.resolve(node.get("Kids", [])):
            yield from self._name_tree(kid, depth + 1)

    def embedded_files(self) -> Dict[str, Stream]:
        """Embedded file streams keyed by name-tree key."""
        names = self.catalog.get("Names")
        if names is None:
            return {}
        tree = self._dict(names, "names dictionary").get("EmbeddedFiles")
        if tree is None:
            return {}
        return {key: self._filespec_stream(ref) for key, ref in self._name_tree(tree)}

    def attachments(self) -> Dict[str, bytes]:
        """Attachment payloads keyed by name."""
        return {name: stream.data for name, stream in self.embedded_files().items()}

    def attachment(self, name: str) -> bytes:
        """
        Payload of one attachment.

        Raises:
            KeyError: If no attachment has that name
        """
        return self.attachments()[name]

    def associated_files(self) -> List[str]:
        """File names listed in the catalog /AF array."""
        names = []
        for ref in self.resolve(self.catalog.get("AF", [])):
            filespec = self._dict(ref, "file specification")
            name = self.resolve(filespec.get("UF", filespec.get("F")))
            if not isinstance(name, PdfString):
                raise ContainerFormatError("file specification has no name")
            names.append(name.text())
        return names
