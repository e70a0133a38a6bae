"""
Constants and configuration values for Raster Edit.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Pixel buffer constants
BUFFER_MODE = "RGBA"
CHANNEL_COUNT = 4
CHANNEL_MIN = 0
CHANNEL_MAX = 255
TRANSPARENT_BLACK = (0, 0, 0, 0)

# History file constants
HISTORY_EXTENSION = ".ops"
SCHEMA_VERSION = 1

# History field names
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_IMAGE = "image"
FIELD_SIZE = "size"
FIELD_SAVED_AT = "saved_at"
FIELD_OPERATIONS = "operations"
FIELD_KIND = "kind"

# Export defaults
DEFAULT_EXPORT_EXTENSION = ".jpg"
DEFAULT_JPEG_QUALITY = 95

# Supported file formats (extension -> Pillow format name)
FORMAT_BY_EXTENSION = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".bmp": "BMP",
    ".gif": "GIF",
    ".tiff": "TIFF",
    ".tif": "TIFF",
    ".webp": "WEBP",
}
SUPPORTED_IMAGE_EXTENSIONS = set(FORMAT_BY_EXTENSION)
# Formats that cannot store every RGBA buffer exactly (JPEG compresses, GIF quantizes)
LOSSY_FORMATS = {"JPEG", "GIF"}
QUALITY_FORMATS = {"JPEG"}
ALPHA_LESS_FORMATS = {"JPEG"}

# Draw defaults
DEFAULT_STROKE_WIDTH = 1
DEFAULT_DRAW_COLOR = (0, 0, 0, 255)

# UI constants
DEFAULT_WINDOW_WIDTH = 1200
DEFAULT_WINDOW_HEIGHT = 800
ZOOM_STEP = 1.25
MIN_ZOOM = 0.1
MAX_ZOOM = 10.0
IMAGE_FILE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.gif *.tiff *.tif *.webp)"
