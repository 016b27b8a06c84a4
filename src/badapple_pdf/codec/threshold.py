"""
Thresholder
===========

Converts a grayscale frame into a binary bitmap.

Convention:
    1 = dark  (sample <= threshold, inclusive)
    0 = light (sample >  threshold)

OpenCV's inverse binary threshold implements exactly this rule
(dst = src > thresh ? 0 : maxval), so raising the threshold can only
turn 0s into 1s.
"""

import cv2
import numpy as np


def threshold_frame(samples: np.ndarray, threshold: int) -> np.ndarray:
    """
    Threshold gray samples into a {0, 1} bitmap.

    Args:
        samples: uint8 gray samples, any shape
        threshold: Gray level in [0, 255]; samples at or below it are dark

    Returns:
        uint8 array of the same shape holding 0 or 1

    Raises:
        ValueError: If threshold is outside [0, 255] or samples are not uint8
    """
    if not 0 <= threshold <= 255:
        raise ValueError(f"threshold must be in [0, 255], got {threshold}")

    samples = np.asarray(samples)
    if samples.dtype != np.uint8:
        raise ValueError(f"samples must be uint8, got {samples.dtype}")
    if samples.size == 0:
        return np.zeros(samples.shape, dtype=np.uint8)

    shape = samples.shape
    plane = samples.reshape(1, -1) if samples.ndim != 2 else samples

    _, bits = cv2.threshold(plane, threshold, 1, cv2.THRESH_BINARY_INV)
    return bits.reshape(shape)
