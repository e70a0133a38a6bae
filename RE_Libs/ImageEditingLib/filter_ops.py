"""
Convolution filter operations.

Each filter builds a fixed kernel from its parameters and delegates to the
convolution engine. Filters are pure: the same input buffer always gives
the same output buffer.

Provides:
- SoftBlur: light 3x3 blur
- SharpenFilter: 3x3 sharpen whose weights sum to 1
- MeanFilter: box average of size (2r+1)
- GaussianBlur: Gaussian kernel of size (2r+1), sigma = r / 3

Example:
    >>> blurred = SoftBlur().apply(image)
    >>> smooth = GaussianBlur(radius=2, edge_policy="extend").apply(image)
"""

from dataclasses import dataclass
from typing import Any, Dict
import math

import numpy as np
from PIL import Image

from RE_Libs.ImageEditingLib.convolution import EdgePolicy, Kernel, convolve
from RE_Libs.ImageEditingLib.image_operation import ImageOperation, register_operation
from RE_Libs.errors import OperationError

MAX_FILTER_RADIUS = 50

SOFT_BLUR_KERNEL = Kernel.from_rows([
    [0, 1 / 8, 0],
    [1 / 8, 1 / 2, 1 / 8],
    [0, 1 / 8, 0],
])

SHARPEN_KERNEL = Kernel.from_rows([
    [0, -1 / 2, 0],
    [-1 / 2, 3, -1 / 2],
    [0, -1 / 2, 0],
])


def mean_kernel(radius: int) -> Kernel:
    size = 2 * radius + 1
    return Kernel.from_array(np.full((size, size), 1.0 / (size * size)))


def gaussian_kernel(radius: int) -> Kernel:
    """Build a normalized Gaussian kernel with sigma = radius / 3."""
    sigma = radius / 3.0
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    xx, yy = np.meshgrid(offsets, offsets)
    weights = np.exp(-(xx * xx + yy * yy) / (2.0 * sigma * sigma)) / (2.0 * math.pi * sigma * sigma)
    return Kernel.from_array(weights).normalized()


class _ConvolutionFilter(ImageOperation):
    """Shared apply/validate for filters with an edge policy."""

    edge_policy: str

    def build_kernel(self) -> Kernel:
        raise NotImplementedError

    def validate(self) -> None:
        try:
            EdgePolicy.from_name(self.edge_policy)
        except ValueError as exc:
            raise OperationError(str(exc)) from exc

    def apply(self, image: Image.Image) -> Image.Image:
        self.validate()
        return convolve(image, self.build_kernel(), EdgePolicy.from_name(self.edge_policy))


def _validate_radius(kind: str, radius: int) -> None:
    if not isinstance(radius, int) or isinstance(radius, bool):
        raise OperationError(f"{kind} radius must be an integer, got {radius!r}")
    if radius < 1 or radius > MAX_FILTER_RADIUS:
        raise OperationError(f"{kind} radius must be 1-{MAX_FILTER_RADIUS}, got {radius}")


@register_operation
@dataclass(frozen=True)
class SoftBlur(_ConvolutionFilter):
    kind = "soft_blur"

    edge_policy: str = EdgePolicy.NO_OP.value

    def build_kernel(self) -> Kernel:
        return SOFT_BLUR_KERNEL

    def to_dict(self) -> Dict[str, Any]:
        return {"edge_policy": self.edge_policy}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoftBlur":
        return cls(edge_policy=str(data.get("edge_policy", EdgePolicy.NO_OP.value)))


@register_operation
@dataclass(frozen=True)
class SharpenFilter(_ConvolutionFilter):
    kind = "sharpen"

    edge_policy: str = EdgePolicy.NO_OP.value

    def build_kernel(self) -> Kernel:
        return SHARPEN_KERNEL

    def to_dict(self) -> Dict[str, Any]:
        return {"edge_policy": self.edge_policy}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SharpenFilter":
        return cls(edge_policy=str(data.get("edge_policy", EdgePolicy.NO_OP.value)))


@register_operation
@dataclass(frozen=True)
class MeanFilter(_ConvolutionFilter):
    """Replace each pixel with the average of its (2r+1) x (2r+1) window."""

    kind = "mean_filter"

    radius: int = 1
    edge_policy: str = EdgePolicy.NO_OP.value

    def validate(self) -> None:
        _validate_radius("Mean filter", self.radius)
        super().validate()

    def build_kernel(self) -> Kernel:
        return mean_kernel(self.radius)

    def describe(self) -> str:
        return f"mean filter (radius {self.radius})"

    def to_dict(self) -> Dict[str, Any]:
        return {"radius": self.radius, "edge_policy": self.edge_policy}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeanFilter":
        return cls(
            radius=int(data["radius"]),
            edge_policy=str(data.get("edge_policy", EdgePolicy.NO_OP.value)),
        )


@register_operation
@dataclass(frozen=True)
class GaussianBlur(_ConvolutionFilter):
    """Gaussian blur with a (2r+1) kernel and sigma = radius / 3."""

    kind = "gaussian_blur"

    radius: int = 1
    edge_policy: str = EdgePolicy.NO_OP.value

    def validate(self) -> None:
        _validate_radius("Gaussian blur", self.radius)
        super().validate()

    def build_kernel(self) -> Kernel:
        return gaussian_kernel(self.radius)

    def describe(self) -> str:
        return f"gaussian blur (radius {self.radius})"

    def to_dict(self) -> Dict[str, Any]:
        return {"radius": self.radius, "edge_policy": self.edge_policy}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GaussianBlur":
        return cls(
            radius=int(data["radius"]),
            edge_policy=str(data.get("edge_policy", EdgePolicy.NO_OP.value)),
        )
