"""
Pending interaction value object.

The shell builds a PendingInteraction while the user drags out a shape.
It carries the already-resolved pixel coordinates, shape kind, color and
stroke width, renders a preview on a copy of the displayed image, and turns
into a DrawShape once the drag is released. Nothing here reads global state.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from PIL import Image

from RE_Libs.constants import DEFAULT_DRAW_COLOR, DEFAULT_STROKE_WIDTH
from RE_Libs.ImageEditingLib.draw_ops import SHAPE_RECTANGLE, DrawShape, normalize_region
from RE_Libs.ImageEditingLib.pixel_buffer import Point, RgbaColor, copy_buffer


@dataclass(frozen=True)
class PendingInteraction:
    start: Point
    end: Point
    shape: str = SHAPE_RECTANGLE
    color: RgbaColor = DEFAULT_DRAW_COLOR
    stroke_width: int = DEFAULT_STROKE_WIDTH

    @classmethod
    def begin(
        cls,
        point: Point,
        shape: str = SHAPE_RECTANGLE,
        color: RgbaColor = DEFAULT_DRAW_COLOR,
        stroke_width: int = DEFAULT_STROKE_WIDTH,
    ) -> "PendingInteraction":
        """Start a drag at a single point."""
        return cls(start=point, end=point, shape=shape, color=color, stroke_width=stroke_width)

    def moved_to(self, point: Point) -> "PendingInteraction":
        return replace(self, end=point)

    @property
    def region(self) -> Tuple[int, int, int, int]:
        """(x0, y0, width, height) of the dragged region."""
        return normalize_region(self.start, self.end)

    def to_operation(self) -> DrawShape:
        return DrawShape(
            start=self.start,
            end=self.end,
            shape=self.shape,
            color=self.color,
            stroke_width=self.stroke_width,
        )

    def preview(self, image: Optional[Image.Image]) -> Optional[Image.Image]:
        """Render the shape on a copy of image; the input is left untouched."""
        if image is None:
            return None
        return self.to_operation().apply(copy_buffer(image))
