"""
Container Builder
=================

Assembles the output PDF: two embedded files and one page with a START
button whose area is covered by a URI link annotation.

Object Graph:
    Catalog
      /Pages -> Pages (/Count 1) -> Page
                                     /Contents -> content stream (button drawing)
                                     /Resources /Font /F1 -> Helvetica
                                     /Annots -> Link (/A /URI <url>)
      /Names -> << /EmbeddedFiles << /Names [(AU.ogg) fs (BA.bin) fs] >> >>
      /AF    -> [BA.bin filespec, AU.ogg filespec]

    Filespec (/F, /UF = literal name) /EF /F -> EmbeddedFile stream

Attachment payloads are stored uncompressed, byte-for-byte.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from badapple_pdf.container.document import Document
from badapple_pdf.container.objects import (
    Name,
    PdfString,
    Reference,
    Stream,
    format_number,
)


logger = logging.getLogger(__name__)


BITSTREAM_NAME = "BA.bin"
BITSTREAM_MEDIA_TYPE = "application/octet-stream"
AUDIO_NAME = "AU.ogg"
AUDIO_MEDIA_TYPE = "audio/ogg"

# US Letter, in points
PAGE_SIZE: Tuple[int, int] = (612, 792)

# Button / link area: (x1, y1, x2, y2)
BUTTON_RECT: Tuple[float, float, float, float] = (156.0, 360.0, 456.0, 460.0)
BUTTON_FILL_GRAY = 0.9
BUTTON_BORDER_WIDTH = 2
BUTTON_LABEL = "START"
BUTTON_FONT = "Helvetica"
BUTTON_FONT_SIZE = 36
# Label origin relative to the lower-left corner of the button
BUTTON_LABEL_OFFSET: Tuple[float, float] = (80.0, 35.0)


@dataclass(frozen=True)
class Attachment:
    """
    A named binary payload embedded in the document.

    Attributes:
        name: Literal file name, also the name-tree key
        media_type: MIME type stored as the stream /Subtype
        data: Exact payload bytes
    """

    name: str
    media_type: str
    data: bytes

    def __repr__(self) -> str:
        return (
            f"Attachment(name={self.name!r}, "
            f"media_type={self.media_type!r}, "
            f"size={len(self.data)})"
        )


def button_content(
    rect: Tuple[float, float, float, float] = BUTTON_RECT,
) -> bytes:
    """Content stream drawing the START button."""
    x1, y1, x2, y2 = rect
    n = format_number
    box = f"{n(x1)} {n(y1)} {n(x2 - x1)} {n(y2 - y1)} re"
    tx = x1 + BUTTON_LABEL_OFFSET[0]
    ty = y1 + BUTTON_LABEL_OFFSET[1]

    lines = [
        "q",
        f"{n(BUTTON_FILL_GRAY)} g",
        box,
        "f",
        "0 g",
        f"{n(BUTTON_BORDER_WIDTH)} w",
        box,
        "S",
        "BT",
        f"/F1 {n(BUTTON_FONT_SIZE)} Tf",
        f"{n(tx)} {n(ty)} Td",
        f"({BUTTON_LABEL}) Tj",
        "ET",
        "Q",
    ]
    return ("\n".join(lines) + "\n").encode("ascii")


class ContainerBuilder:
    """
    Builds the playable PDF from a finished blob and audio bytes.

    Attributes:
        start_url: URL opened by the START link
        attachments: [bitstream, audio] in that order

    Example:
        builder = ContainerBuilder(url, blob, audio)
        builder.save("out/badapple.pdf")
    """

    def __init__(self, start_url: str, blob: bytes, audio: bytes) -> None:
        self.start_url = start_url
        self.attachments: List[Attachment] = [
            Attachment(BITSTREAM_NAME, BITSTREAM_MEDIA_TYPE, bytes(blob)),
            Attachment(AUDIO_NAME, AUDIO_MEDIA_TYPE, bytes(audio)),
        ]

    def build(self) -> Document:
        """Create the full object graph."""
        doc = Document(version="1.7")

        catalog_id = doc.new_id()
        pages_id = doc.new_id()
        page_id = doc.new_id()

        font_id = doc.add({
            "Type": Name("Font"),
            "Subtype": Name("Type1"),
            "BaseFont": Name(BUTTON_FONT),
        })

        filespecs = [(a.name, _add_attachment(doc, a)) for a in self.attachments]

        # Name tree keys must be sorted
        tree = []
        for name, ref in sorted(filespecs, key=lambda item: item[0].encode("utf-8")):
            tree += [PdfString(name), ref]
        names_id = doc.add({"EmbeddedFiles": {"Names": tree}})

        contents_id = doc.add(Stream({}, button_content()))

        annot_id = doc.add({
            "Type": Name("Annot"),
            "Subtype": Name("Link"),
            "Rect": list(BUTTON_RECT),
            "Border": [0, 0, 0],
            "A": {
                "S": Name("URI"),
                "URI": PdfString(self.start_url),
            },
        })

        doc.set(page_id, {
            "Type": Name("Page"),
            "Parent": pages_id,
            "MediaBox": [0, 0, PAGE_SIZE[0], PAGE_SIZE[1]],
            "Resources": {"Font": {"F1": font_id}},
            "Contents": contents_id,
            "Annots": [annot_id],
        })
        doc.set(pages_id, {
            "Type": Name("Pages"),
            "Kids": [page_id],
            "Count": 1,
        })
        doc.set(catalog_id, {
            "Type": Name("Catalog"),
            "Pages": pages_id,
            "Names": names_id,
            "AF": [ref for _, ref in filespecs],
        })
        doc.set_root(catalog_id)
        return doc

    def save(
        self,
        path: Union[str, Path],
        create_parent_dirs: bool = False,
    ) -> int:
        """
        Build and write the document in one pass.

        Returns:
            Number of bytes written

        Raises:
            OSError: If the artifact cannot be written (not retried)
        """
        written = self.build().save(path, create_parent_dirs=create_parent_dirs)
        logger.info(f"Wrote PDF: {path} ({written} bytes)")
        return written


def _add_attachment(doc: Document, attachment: Attachment) -> Reference:
    """Add the EmbeddedFile stream and its Filespec; return the Filespec."""
    stream_id = doc.add(Stream(
        {
            "Type": Name("EmbeddedFile"),
            "Subtype": Name(attachment.media_type),
            "Params": {"Size": len(attachment.data)},
        },
        attachment.data,
    ))
    return doc.add({
        "Type": Name("Filespec"),
        "F": PdfString(attachment.name),
        "UF": PdfString(attachment.name),
        "EF": {"F": stream_id},
    })
