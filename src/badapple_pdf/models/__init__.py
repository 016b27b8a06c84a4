"""
Data Models
===========

Pydantic models for badapple-pdf.

Models:
    Input:
        - EncodeRequest: Validated invocation parameters

    Wire format:
        - BlobHeader: 10-byte little-endian bitstream header
"""

from badapple_pdf.models.request import EncodeRequest
from badapple_pdf.models.header import BLOB_HEADER_SIZE, BlobHeader

__all__ = [
    # Input
    "EncodeRequest",
    # Wire format
    "BLOB_HEADER_SIZE",
    "BlobHeader",
]
