"""
Document Graph
==============

Arena of numbered PDF objects, serialized in a single pass.

Design Rules:
    - Objects are addressed by stable object numbers (Reference), never by
      Python identity
    - Every reserved number is filled exactly once
    - Serialization happens once, after the graph is complete, producing a
      classic cross-reference table and trailer
    - Saving writes a temporary sibling file and renames it into place, so
      no partially written artifact is ever visible at the target path
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from badapple_pdf.container.objects import Reference, serialize


logger = logging.getLogger(__name__)


# Binary comment line marking the file as binary for transfer tools
_BINARY_MARKER = b"%\xe2\xe3\xcf\xd3\n"


def _target_mode(path: Path) -> int:
    """Mode for the written file: the existing target's, else 0o666 minus umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class Document:
    """
    Mutable object graph with a designated root (catalog).

    Attributes:
        version: PDF header version

    Example:
        doc = Document()
        pages = doc.new_id()
        catalog = doc.add({"Type": Name("Catalog"), "Pages": pages})
        doc.set(pages, {...})
        doc.set_root(catalog)
        doc.save("out.pdf")
    """

    def __init__(self, version: str = "1.7") -> None:
        self.version = version
        self._objects: Dict[int, Any] = {}
        self._next_number: int = 1
        self._root: Optional[Reference] = None

    def __len__(self) -> int:
        return len(self._objects)

    @property
    def root(self) -> Optional[Reference]:
        return self._root

    def new_id(self) -> Reference:
        """Reserve an object number to be filled later with set()."""
        ref = Reference(self._next_number)
        self._next_number += 1
        return ref

    def set(self, ref: Reference, obj: Any) -> None:
        """
        Fill a reserved object.

        Raises:
            KeyError: If ref was not reserved by this document
            ValueError: If ref is already filled
        """
        if not 1 <= ref.number < self._next_number or ref.generation != 0:
            raise KeyError(f"unknown object {ref.number} {ref.generation} R")
        if ref.number in self._objects:
            raise ValueError(f"object {ref.number} already set")
        self._objects[ref.number] = obj

    def add(self, obj: Any) -> Reference:
        """Reserve a number and fill it in one step."""
        ref = self.new_id()
        self.set(ref, obj)
        return ref

    def get(self, ref: Reference) -> Any:
        return self._objects[ref.number]

    def set_root(self, ref: Reference) -> None:
        if ref.number not in self._objects:
            raise KeyError(f"root object {ref.number} is not set")
        self._root = ref

    def to_bytes(self) -> bytes:
        """
        Serialize the whole graph.

        Raises:
            ValueError: If the root is missing or a reserved object is unset
        """
        if self._root is None:
            raise ValueError("document has no root")

        missing = [n for n in range(1, self._next_number) if n not in self._objects]
        if missing:
            raise ValueError(f"reserved objects never set: {missing}")

        out = bytearray(b"%PDF-" + self.version.encode("ascii") + b"\n")
        out += _BINARY_MARKER

        offsets = []
        for number in range(1, self._next_number):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % number
            out += serialize(self._objects[number])
            out += b"\nendobj\n"

        xref_offset = len(out)
        size = self._next_number
        out += b"xref\n0 %d\n" % size
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset

        out += b"trailer\n"
        out += serialize({"Size": size, "Root": self._root})
        out += b"\nstartxref\n%d\n%%%%EOF\n" % xref_offset
        return bytes(out)

    def save(
        self,
        path: Union[str, Path],
        create_parent_dirs: bool = False,
    ) -> int:
        """
        Serialize and atomically write the document.

        Args:
            path: Target file
            create_parent_dirs: Create missing parent directories first

        Returns:
            Number of bytes written

        Raises:
            OSError: Any storage failure, unmodified
        """
        path = Path(path)
        data = self.to_bytes()

        if create_parent_dirs:
            path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, _target_mode(path))
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return len(data)
