"""
Convolution engine for Raster Edit.

Applies a small square kernel of float weights to every pixel of an RGBA
buffer. The source is padded by the kernel radius on every side and each
output pixel reads only from the padded array.

Edge policies:
- NO_OP: pixels within `radius` of the border are left as initialized
  (transparent black). This is the default.
- ZERO_PAD: border pixels are convolved against transparent-black padding.
- EXTEND: padding repeats the nearest edge pixel and every pixel is convolved.

Example:
    >>> kernel = Kernel.from_rows([[0, 0.125, 0], [0.125, 0.5, 0.125], [0, 0.125, 0]])
    >>> blurred = convolve(image, kernel)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple
import logging

import numpy as np
from PIL import Image

from RE_Libs.ImageEditingLib.pixel_buffer import from_array, to_array

logger = logging.getLogger(__name__)


class EdgePolicy(Enum):
    NO_OP = "no_op"
    ZERO_PAD = "zero_pad"
    EXTEND = "extend"

    @classmethod
    def from_name(cls, name: str) -> "EdgePolicy":
        """
        Look up a policy by its serialized name.

        Raises:
            ValueError: If name is not a known policy
        """
        if isinstance(name, cls):
            return name
        normalized = str(name).strip().lower()
        for policy in cls:
            if policy.value == normalized:
                return policy
        valid = ", ".join(policy.value for policy in cls)
        raise ValueError(f"Unknown edge policy: {name}. Valid policies: {valid}")


@dataclass(frozen=True)
class Kernel:
    """Odd-sized square matrix of convolution weights.

    Attributes:
        weights: Rows of float weights, top row first
    """
    weights: Tuple[Tuple[float, ...], ...]

    def __post_init__(self) -> None:
        size = len(self.weights)
        if size == 0 or size % 2 == 0:
            raise ValueError(f"Kernel size must be odd and positive, got {size}")
        for row in self.weights:
            if len(row) != size:
                raise ValueError(f"Kernel must be square, got a row of {len(row)} in a {size}x{size} kernel")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> "Kernel":
        return cls(tuple(tuple(float(value) for value in row) for row in rows))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Kernel":
        return cls.from_rows(array.tolist())

    @property
    def size(self) -> int:
        return len(self.weights)

    @property
    def radius(self) -> int:
        return (self.size - 1) // 2

    @property
    def total(self) -> float:
        return float(sum(sum(row) for row in self.weights))

    def as_array(self) -> np.ndarray:
        return np.array(self.weights, dtype=np.float64)

    def normalized(self) -> "Kernel":
        """Return a copy scaled so that the weights sum to 1.0."""
        total = self.total
        if total == 0:
            raise ValueError("Cannot normalize a kernel whose weights sum to zero")
        return Kernel.from_array(self.as_array() / total)


def pad_array(array: np.ndarray, radius: int, edge_policy: EdgePolicy) -> np.ndarray:
    """
    Pad a (height, width, channels) array by `radius` pixels on every side.

    EXTEND repeats the nearest edge pixel; every other policy pads with zeros.
    """
    pad_width = ((radius, radius), (radius, radius), (0, 0))
    if edge_policy is EdgePolicy.EXTEND:
        return np.pad(array, pad_width, mode="edge")
    return np.pad(array, pad_width, mode="constant", constant_values=0)


def convolve(
    image: Image.Image,
    kernel: Kernel,
    edge_policy: EdgePolicy = EdgePolicy.NO_OP,
) -> Image.Image:
    """
    Convolve every channel of an RGBA buffer with a kernel.

    Channel values are accumulated in float64, rounded half up and clamped
    to 0-255. The input buffer is never modified.

    Args:
        image: RGBA PIL Image
        kernel: Odd-sized square kernel
        edge_policy: How pixels within the kernel radius of the border are treated

    Returns:
        A new RGBA PIL Image of the same size
    """
    source = to_array(image).astype(np.float64)
    height, width, _ = source.shape
    radius = kernel.radius

    padded = pad_array(source, radius, edge_policy)

    # Flip for a true convolution; symmetric kernels are unaffected
    weights = kernel.as_array()[::-1, ::-1]

    accumulated = np.zeros_like(source)
    for row in range(kernel.size):
        for col in range(kernel.size):
            weight = weights[row, col]
            if weight == 0.0:
                continue
            accumulated += weight * padded[row:row + height, col:col + width]

    if edge_policy is EdgePolicy.NO_OP and radius > 0:
        result = np.zeros_like(accumulated)
        if height > 2 * radius and width > 2 * radius:
            result[radius:height - radius, radius:width - radius] = (
                accumulated[radius:height - radius, radius:width - radius]
            )
        accumulated = result

    logger.debug(
        f"Convolved {width}x{height} buffer with {kernel.size}x{kernel.size} kernel "
        f"({edge_policy.value})"
    )
    return from_array(accumulated)
