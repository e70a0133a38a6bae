"""
ImageEditingLib - Core image editing functionality

This module provides pixel buffers, the convolution engine and the
image operations for the Raster Edit project. Importing it registers
every operation kind used by the edit history.

The EditableImage state machine and the editor window live in
`editable_image` and `image_editor_window` and are imported from there.
"""

from RE_Libs.ImageEditingLib.pixel_buffer import (
    Point,
    RgbaColor,
    new_buffer,
    ensure_rgba,
    copy_buffer,
    to_array,
    from_array,
    buffers_equal,
)
from RE_Libs.ImageEditingLib.convolution import EdgePolicy, Kernel, convolve
from RE_Libs.ImageEditingLib.image_operation import (
    ImageOperation,
    register_operation,
    operation_to_dict,
    operation_from_dict,
    get_operation_kinds,
)
from RE_Libs.ImageEditingLib.filter_ops import (
    SoftBlur,
    SharpenFilter,
    MeanFilter,
    GaussianBlur,
)
from RE_Libs.ImageEditingLib.draw_ops import (
    SHAPE_KINDS,
    DrawShape,
    DrawOval,
    normalize_region,
)
from RE_Libs.ImageEditingLib.transform_ops import CropRegion, RotateImage, FlipImage
from RE_Libs.ImageEditingLib.interaction import PendingInteraction

__all__ = [
    "Point",
    "RgbaColor",
    "new_buffer",
    "ensure_rgba",
    "copy_buffer",
    "to_array",
    "from_array",
    "buffers_equal",
    "EdgePolicy",
    "Kernel",
    "convolve",
    "ImageOperation",
    "register_operation",
    "operation_to_dict",
    "operation_from_dict",
    "get_operation_kinds",
    "SoftBlur",
    "SharpenFilter",
    "MeanFilter",
    "GaussianBlur",
    "SHAPE_KINDS",
    "DrawShape",
    "DrawOval",
    "normalize_region",
    "CropRegion",
    "RotateImage",
    "FlipImage",
    "PendingInteraction",
]
