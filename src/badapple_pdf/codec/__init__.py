"""
Codec Module
============

1-bit frame coding for the bitstream attachment.

Pipeline per frame:
    RawFrame -> threshold_frame -> pack_bits -> DeltaEncoder -> BlobAssembler

Components:
    - threshold_frame: gray -> {0, 1} (1 = dark, inclusive threshold)
    - pack_bits / unpack_bits: 8 pixels per byte, MSB first
    - DeltaEncoder: first frame raw, then XOR against the previous frame
    - BlobAssembler: header + body, frame_count written at finalize
    - decode_blob: inverse of the whole chain
"""

from badapple_pdf.codec.threshold import threshold_frame
from badapple_pdf.codec.packing import pack_bits, packed_length, unpack_bits
from badapple_pdf.codec.delta import DeltaEncoder, DeltaState, reconstruct_frames
from badapple_pdf.codec.blob import (
    BlobAssembler,
    BlobFormatError,
    DecodedBlob,
    decode_blob,
    encode_fps,
)

__all__ = [
    "threshold_frame",
    "pack_bits",
    "packed_length",
    "unpack_bits",
    "DeltaEncoder",
    "DeltaState",
    "reconstruct_frames",
    "BlobAssembler",
    "BlobFormatError",
    "DecodedBlob",
    "decode_blob",
    "encode_fps",
]
