"""
Region edits and geometric transforms.

Classes:
    CropRegion: Crop the buffer to a normalized region
    RotateImage: Rotate clockwise by a multiple of 90 degrees
    FlipImage: Mirror left-right or top-bottom
"""

from dataclasses import dataclass
from typing import Any, Dict

from PIL import Image

from RE_Libs.ImageEditingLib.draw_ops import as_point, region_box
from RE_Libs.ImageEditingLib.image_operation import ImageOperation, register_operation
from RE_Libs.ImageEditingLib.pixel_buffer import Point, ensure_rgba
from RE_Libs.errors import OperationError

FLIP_HORIZONTAL = "horizontal"
FLIP_VERTICAL = "vertical"

# Clockwise degrees -> Pillow transpose method
_ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}

_FLIPS = {
    FLIP_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    FLIP_VERTICAL: Image.Transpose.FLIP_TOP_BOTTOM,
}


@register_operation
@dataclass(frozen=True)
class CropRegion(ImageOperation):
    """Crop to the inclusive region spanned by two corner points.

    The region is clipped to the image; a region lying entirely outside
    the image cannot be applied.
    """

    kind = "crop"

    start: Point
    end: Point

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))

    def apply(self, image: Image.Image) -> Image.Image:
        image = ensure_rgba(image)
        x0, y0, x1, y1 = region_box(self.start, self.end)

        left = max(0, x0)
        top = max(0, y0)
        right = min(image.width, x1 + 1)
        bottom = min(image.height, y1 + 1)
        if right <= left or bottom <= top:
            raise OperationError(
                f"Crop region {self.start}-{self.end} lies outside the "
                f"{image.width}x{image.height} image"
            )

        return image.crop((left, top, right, bottom))

    def to_dict(self) -> Dict[str, Any]:
        return {"start": list(self.start), "end": list(self.end)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CropRegion":
        return cls(start=as_point(data["start"]), end=as_point(data["end"]))


@register_operation
@dataclass(frozen=True)
class RotateImage(ImageOperation):
    kind = "rotate"

    degrees: int = 90

    def validate(self) -> None:
        if self.degrees not in _ROTATIONS:
            raise OperationError(f"degrees must be 90, 180 or 270, got {self.degrees!r}")

    def apply(self, image: Image.Image) -> Image.Image:
        self.validate()
        return ensure_rgba(image).transpose(_ROTATIONS[self.degrees])

    def describe(self) -> str:
        return f"rotate {self.degrees}"

    def to_dict(self) -> Dict[str, Any]:
        return {"degrees": self.degrees}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RotateImage":
        return cls(degrees=int(data["degrees"]))


@register_operation
@dataclass(frozen=True)
class FlipImage(ImageOperation):
    """Mirror the image.

    Attributes:
        axis: 'horizontal' swaps left and right, 'vertical' swaps top and bottom
    """

    kind = "flip"

    axis: str = FLIP_HORIZONTAL

    def validate(self) -> None:
        if self.axis not in _FLIPS:
            raise OperationError(
                f"Invalid axis: {self.axis}. Must be '{FLIP_HORIZONTAL}' or '{FLIP_VERTICAL}'"
            )

    def apply(self, image: Image.Image) -> Image.Image:
        self.validate()
        return ensure_rgba(image).transpose(_FLIPS[self.axis])

    def describe(self) -> str:
        return f"flip {self.axis}"

    def to_dict(self) -> Dict[str, Any]:
        return {"axis": self.axis}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlipImage":
        return cls(axis=str(data["axis"]))
