"""JPEG payload decoding with the peripheral's orientation correction.

The sensor is mounted rotated 90 degrees clockwise, so every decoded photo
is rotated 270 degrees clockwise (one quarter-turn counter-clockwise).
"""

from typing import Tuple

import cv2
import numpy as np
from loguru import logger

from framesweep.errors import DecodeError

# (width, height)
PLACEHOLDER_SIZE: Tuple[int, int] = (512, 512)


def _rotate_270(image: np.ndarray) -> np.ndarray:
    return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)


def make_placeholder(size: Tuple[int, int] = PLACEHOLDER_SIZE) -> np.ndarray:
    """Blank BGR bitmap standing in for a failed cell."""
    width, height = size
    return np.zeros((height, width, 3), dtype=np.uint8)


class PhotoDecoder:
    """Decodes encoded photo bytes into an owned, orientation-corrected BGR bitmap."""

    def decode(self, data: bytes) -> np.ndarray:
        if not data:
            raise DecodeError("Empty payload")

        # frombuffer gives a read-only view; imdecode never writes to it
        buf = np.frombuffer(bytes(data), dtype=np.uint8)
        try:
            image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
        except cv2.error as e:
            raise DecodeError(f"OpenCV failed to decode payload: {e}") from e

        if image is None or image.size == 0:
            raise DecodeError(f"Payload of {len(data)} bytes is not a valid image")

        rotated = _rotate_270(image)
        logger.debug(f"Decoded {len(data)} bytes -> {rotated.shape[1]}x{rotated.shape[0]}")
        return rotated
