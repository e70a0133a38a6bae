"""
Geometric draw operations.

Draw operations carry a start point and an end point in pixel coordinates.
The region is normalized to its top-left corner and covers the inclusive
pixel box [x0, x0 + width] x [y0, y0 + height], where width and height are
the absolute coordinate differences. A line is the exception: it runs from
the original start point to the original end point.

Drawing happens directly on the supplied buffer, which is also returned.
Parameters are validated before anything is drawn.

Classes:
    DrawShape: Line, rectangle, filled rectangle, oval or filled oval
    DrawOval: Single oval outline in the default color
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from PIL import Image, ImageDraw

from RE_Libs.constants import DEFAULT_DRAW_COLOR, DEFAULT_STROKE_WIDTH
from RE_Libs.ImageEditingLib.image_operation import ImageOperation, register_operation
from RE_Libs.ImageEditingLib.pixel_buffer import Point, RgbaColor, ensure_rgba
from RE_Libs.errors import OperationError

SHAPE_LINE = "line"
SHAPE_RECTANGLE = "rectangle"
SHAPE_FILLED_RECTANGLE = "filled_rectangle"
SHAPE_OVAL = "oval"
SHAPE_FILLED_OVAL = "filled_oval"

SHAPE_KINDS = (
    SHAPE_LINE,
    SHAPE_RECTANGLE,
    SHAPE_FILLED_RECTANGLE,
    SHAPE_OVAL,
    SHAPE_FILLED_OVAL,
)

# Spellings used by older menus and saved histories
LEGACY_SHAPE_NAMES = {
    "Line": SHAPE_LINE,
    "Rectangle": SHAPE_RECTANGLE,
    "filledRectangle": SHAPE_FILLED_RECTANGLE,
    "Oval": SHAPE_OVAL,
    "filledOval": SHAPE_FILLED_OVAL,
}


def normalize_shape_name(shape: str) -> str:
    shape = str(shape).strip()
    return LEGACY_SHAPE_NAMES.get(shape, shape)


def normalize_region(start: Point, end: Point) -> Tuple[int, int, int, int]:
    """
    Normalize two corner points to (x0, y0, width, height).

    Example:
        >>> normalize_region((5, 1), (2, 4))
        (2, 1, 3, 3)
    """
    start_x, start_y = start
    end_x, end_y = end
    return (
        min(start_x, end_x),
        min(start_y, end_y),
        abs(end_x - start_x),
        abs(end_y - start_y),
    )


def region_box(start: Point, end: Point) -> Tuple[int, int, int, int]:
    """Inclusive Pillow box [x0, y0, x1, y1] for the normalized region."""
    x0, y0, width, height = normalize_region(start, end)
    return (x0, y0, x0 + width, y0 + height)


def as_point(value: Any) -> Point:
    x, y = value
    return (int(x), int(y))


def _as_color(value: Any) -> RgbaColor:
    channels = tuple(int(channel) for channel in value)
    if len(channels) == 3:
        channels = channels + (255,)
    return channels


def _validate_color(color: RgbaColor) -> None:
    if len(color) != 4 or any(not 0 <= channel <= 255 for channel in color):
        raise OperationError(f"Color channels must be 0-255 RGBA, got {color}")


@register_operation
@dataclass(frozen=True)
class DrawShape(ImageOperation):
    """Draw one shape of the given kind, color and stroke width.

    Attributes:
        start: Point where the drag started
        end: Point where the drag ended
        shape: One of SHAPE_KINDS (legacy spellings are accepted)
        color: RGBA stroke/fill color
        stroke_width: Outline and line width in pixels (>= 1)
    """

    kind = "draw_shape"

    start: Point
    end: Point
    shape: str = SHAPE_RECTANGLE
    color: RgbaColor = DEFAULT_DRAW_COLOR
    stroke_width: int = DEFAULT_STROKE_WIDTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))
        object.__setattr__(self, "shape", normalize_shape_name(self.shape))
        object.__setattr__(self, "color", _as_color(self.color))

    def validate(self) -> None:
        if self.shape not in SHAPE_KINDS:
            valid = ", ".join(SHAPE_KINDS)
            raise OperationError(f"Unknown shape kind: {self.shape}. Valid kinds: {valid}")
        if not isinstance(self.stroke_width, int) or self.stroke_width < 1:
            raise OperationError(f"stroke_width must be a positive integer, got {self.stroke_width!r}")
        _validate_color(self.color)

    def apply(self, image: Image.Image) -> Image.Image:
        self.validate()
        image = ensure_rgba(image)
        draw = ImageDraw.Draw(image)
        box = region_box(self.start, self.end)

        if self.start == self.end:
            draw.point(self.start, fill=self.color)
        elif self.shape == SHAPE_LINE:
            draw.line([self.start, self.end], fill=self.color, width=self.stroke_width)
        elif self.shape == SHAPE_RECTANGLE:
            self._draw_outline_rectangle(draw, box)
        elif self.shape == SHAPE_FILLED_RECTANGLE:
            draw.rectangle(box, fill=self.color)
        elif self.shape == SHAPE_OVAL:
            draw.ellipse(box, outline=self.color, width=self.stroke_width)
        elif self.shape == SHAPE_FILLED_OVAL:
            draw.ellipse(box, fill=self.color)

        return image

    def _draw_outline_rectangle(self, draw: ImageDraw.ImageDraw, box: Tuple[int, int, int, int]) -> None:
        """Outline grown inward from the box edge; a stroke that covers the box fills it."""
        x0, y0, x1, y1 = box
        if 2 * self.stroke_width >= min(x1 - x0 + 1, y1 - y0 + 1):
            draw.rectangle(box, fill=self.color)
        else:
            draw.rectangle(box, outline=self.color, width=self.stroke_width)

    def describe(self) -> str:
        return f"draw {self.shape.replace('_', ' ')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "shape": self.shape,
            "color": list(self.color),
            "stroke_width": self.stroke_width,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawShape":
        return cls(
            start=as_point(data["start"]),
            end=as_point(data["end"]),
            shape=str(data["shape"]),
            color=_as_color(data.get("color", DEFAULT_DRAW_COLOR)),
            stroke_width=int(data.get("stroke_width", DEFAULT_STROKE_WIDTH)),
        )


@register_operation
@dataclass(frozen=True)
class DrawOval(ImageOperation):
    """Draw exactly one oval outline inscribed in the normalized region.

    Older builds drew a second, un-normalized oval for three of the four
    drag directions. Only the normalized oval is drawn here.
    """

    kind = "draw_oval"

    start: Point
    end: Point
    color: RgbaColor = DEFAULT_DRAW_COLOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))
        object.__setattr__(self, "color", _as_color(self.color))

    def validate(self) -> None:
        _validate_color(self.color)

    def apply(self, image: Image.Image) -> Image.Image:
        self.validate()
        image = ensure_rgba(image)
        draw = ImageDraw.Draw(image)
        if self.start == self.end:
            draw.point(self.start, fill=self.color)
        else:
            draw.ellipse(region_box(self.start, self.end), outline=self.color)
        return image

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "color": list(self.color),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawOval":
        return cls(
            start=as_point(data["start"]),
            end=as_point(data["end"]),
            color=_as_color(data.get("color", DEFAULT_DRAW_COLOR)),
        )
