"""
Container Module
================

PDF packaging of the bitstream and audio track.

Components:
    - objects: Typed PDF values and their serialization
    - Document: Arena-style object graph written in a single pass
    - ContainerBuilder: Attachments + START page + link annotation
    - PdfReader: Inspection of produced artifacts

Example:
    from badapple_pdf.container import ContainerBuilder, PdfReader

    ContainerBuilder(url, blob, audio).save("out.pdf")
    assert PdfReader.from_path("out.pdf").attachment("BA.bin") == blob
"""

from badapple_pdf.container.objects import Name, PdfString, Reference, Stream
from badapple_pdf.container.document import Document
from badapple_pdf.container.builder import (
    AUDIO_MEDIA_TYPE,
    AUDIO_NAME,
    BITSTREAM_MEDIA_TYPE,
    BITSTREAM_NAME,
    BUTTON_RECT,
    PAGE_SIZE,
    Attachment,
    ContainerBuilder,
)
from badapple_pdf.container.reader import ContainerFormatError, PdfReader

__all__ = [
    "Name",
    "PdfString",
    "Reference",
    "Stream",
    "Document",
    "AUDIO_MEDIA_TYPE",
    "AUDIO_NAME",
    "BITSTREAM_MEDIA_TYPE",
    "BITSTREAM_NAME",
    "BUTTON_RECT",
    "PAGE_SIZE",
    "Attachment",
    "ContainerBuilder",
    "ContainerFormatError",
    "PdfReader",
]
