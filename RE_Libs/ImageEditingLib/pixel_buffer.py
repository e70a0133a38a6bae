"""
Pixel buffer primitives for Raster Edit.

A pixel buffer is a Pillow image in RGBA mode: a 2-D grid of pixels with
8-bit red/green/blue/alpha channels. Numeric code works on a numpy view of
shape (height, width, 4) and dtype uint8.

Functions:
    new_buffer: Create a uniformly filled buffer
    ensure_rgba: Return a buffer in RGBA mode
    copy_buffer: Return an independent copy of a buffer
    to_array: Convert a buffer to a numpy array
    from_array: Convert a numpy array back to a buffer
    buffers_equal: Compare two buffers pixel by pixel
"""

from typing import Any, Tuple

import numpy as np
from PIL import Image

from RE_Libs.constants import BUFFER_MODE, CHANNEL_COUNT, CHANNEL_MAX, CHANNEL_MIN, TRANSPARENT_BLACK

RgbaColor = Tuple[int, int, int, int]
Point = Tuple[int, int]


def new_buffer(width: int, height: int, color: RgbaColor = TRANSPARENT_BLACK) -> Image.Image:
    """
    Create a buffer filled with a single color.

    Args:
        width: Width in pixels (>= 1)
        height: Height in pixels (>= 1)
        color: RGBA fill color

    Returns:
        A new RGBA PIL Image

    Raises:
        ValueError: If width or height is not positive
    """
    if width < 1 or height < 1:
        raise ValueError(f"Buffer size must be positive, got {width}x{height}")
    return Image.new(BUFFER_MODE, (width, height), tuple(color))


def ensure_rgba(image: Any) -> Image.Image:
    """Return the image itself if already RGBA, otherwise an RGBA conversion."""
    if not hasattr(image, "mode"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")
    if image.mode == BUFFER_MODE:
        return image
    return image.convert(BUFFER_MODE)


def copy_buffer(image: Image.Image) -> Image.Image:
    return ensure_rgba(image).copy()


def to_array(image: Image.Image) -> np.ndarray:
    """Return a writable (height, width, 4) uint8 array of the buffer."""
    return np.array(ensure_rgba(image), dtype=np.uint8)


def from_array(array: np.ndarray) -> Image.Image:
    """
    Build an RGBA buffer from an array.

    Float arrays are rounded half up and clamped to 0-255 first.

    Raises:
        ValueError: If the array is not (height, width, 4)
    """
    if array.ndim != 3 or array.shape[2] != CHANNEL_COUNT:
        raise ValueError(f"Expected array of shape (h, w, {CHANNEL_COUNT}), got {array.shape}")

    if array.dtype != np.uint8:
        array = np.clip(np.floor(array + 0.5), CHANNEL_MIN, CHANNEL_MAX).astype(np.uint8)

    return Image.fromarray(np.ascontiguousarray(array))


def buffers_equal(first: Image.Image, second: Image.Image) -> bool:
    """Check that two buffers have the same size and identical RGBA bytes."""
    if first.size != second.size:
        return False
    return ensure_rgba(first).tobytes() == ensure_rgba(second).tobytes()
