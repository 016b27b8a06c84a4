"""
Delta Encoder
=============

Frame-to-frame XOR coding of packed frames.

State Machine:
    INIT   + P0   -> emit P0 verbatim,   hold P0
    STEADY(Pk) + Pk+1 -> emit Pk ^ Pk+1, hold Pk+1

The held buffer is always the last RAW packed frame, never a diff, so a
decoder recovers frame k+1 by XOR-ing each diff onto its own running total
in order (see reconstruct_frames).
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional

import numpy as np


logger = logging.getLogger(__name__)


class DeltaState(str, Enum):
    """Encoder states."""

    INIT = "INIT"
    STEADY = "STEADY"


class DeltaEncoder:
    """
    Stateful XOR delta encoder.

    Owns a single buffer holding the previous packed frame; it is
    allocated on the first frame and overwritten in place afterwards.

    Example:
        encoder = DeltaEncoder()
        body = [encoder.encode(p) for p in packed_frames]
    """

    def __init__(self) -> None:
        self._previous: Optional[np.ndarray] = None
        self._frames_encoded: int = 0

    @property
    def state(self) -> DeltaState:
        return DeltaState.INIT if self._previous is None else DeltaState.STEADY

    @property
    def frames_encoded(self) -> int:
        return self._frames_encoded

    @property
    def frame_length(self) -> Optional[int]:
        """Packed frame length fixed by the first frame, if any."""
        return None if self._previous is None else len(self._previous)

    def encode(self, packed: bytes) -> bytes:
        """
        Encode the next packed frame.

        Args:
            packed: Packed frame bytes

        Returns:
            The frame itself for the first call, else previous XOR current

        Raises:
            ValueError: If the frame length differs from the first frame
        """
        current = np.frombuffer(bytes(packed), dtype=np.uint8)

        if self._previous is None:
            self._previous = current.copy()
            self._frames_encoded = 1
            return current.tobytes()

        if len(current) != len(self._previous):
            raise ValueError(
                f"packed frame length changed: expected {len(self._previous)}, "
                f"got {len(current)}"
            )

        diff = np.bitwise_xor(self._previous, current)
        np.copyto(self._previous, current)
        self._frames_encoded += 1
        return diff.tobytes()

    def reset(self) -> None:
        """Return to INIT."""
        self._previous = None
        self._frames_encoded = 0


def reconstruct_frames(body: Iterable[bytes]) -> List[bytes]:
    """
    Undo delta coding.

    frame[0] = body[0]; frame[i] = frame[i - 1] ^ body[i]

    Args:
        body: Emitted frames in order (first raw, then diffs)

    Returns:
        The original packed frames
    """
    frames: List[bytes] = []
    running: Optional[np.ndarray] = None

    for chunk in body:
        current = np.frombuffer(bytes(chunk), dtype=np.uint8)
        if running is None:
            running = current.copy()
        else:
            if len(current) != len(running):
                raise ValueError(
                    f"diff length {len(current)} does not match frame length {len(running)}"
                )
            np.bitwise_xor(running, current, out=running)
        frames.append(running.tobytes())

    return frames
