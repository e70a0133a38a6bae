"""
Image and edit-history storage for Raster Edit.

This module handles the persistence layer of an editing session: decoding
source images into RGBA buffers, encoding buffers to raster files, and
reading/writing the edit-history sidecar that sits next to a saved image.

The sidecar (`<image path>.ops` by default) is JSON:
- Schema version
- Image file name and size
- Save timestamp
- Ordered list of tagged operations (oldest first)

Functions:
    history_path_for: Sidecar path for an image path
    resolve_save_format: Pillow format name for a path or explicit format
    load_image: Decode an image file into an RGBA buffer
    save_image: Encode a buffer to an image file
    save_history: Write the operation list to the sidecar
    load_history: Read the operation list from the sidecar
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import json
import logging
import os
import tempfile

from PIL import Image, UnidentifiedImageError

from RE_Libs.constants import (
    ALPHA_LESS_FORMATS,
    DEFAULT_JPEG_QUALITY,
    FIELD_IMAGE,
    FIELD_OPERATIONS,
    FIELD_SAVED_AT,
    FIELD_SCHEMA_VERSION,
    FIELD_SIZE,
    FORMAT_BY_EXTENSION,
    HISTORY_EXTENSION,
    QUALITY_FORMATS,
    SCHEMA_VERSION,
    SUPPORTED_IMAGE_EXTENSIONS,
)
from RE_Libs.ImageEditingLib.image_operation import (
    ImageOperation,
    operation_from_dict,
    operation_to_dict,
)
from RE_Libs.ImageEditingLib.pixel_buffer import ensure_rgba
from RE_Libs.errors import LoadError, OperationError

logger = logging.getLogger(__name__)


def history_path_for(image_path: Path, extension: str = HISTORY_EXTENSION) -> Path:
    """Return `<image path><extension>`, e.g. photo.png -> photo.png.ops."""
    image_path = Path(image_path)
    return image_path.with_name(f"{image_path.name}{extension}")


def resolve_save_format(path: Path, save_format: Optional[str] = None) -> str:
    """
    Resolve the Pillow format name for a target.

    Args:
        path: Target file path
        save_format: Explicit format (PNG, JPG, JPEG, ...) or None to use the suffix

    Returns:
        Pillow format name (e.g. 'PNG', 'JPEG')

    Raises:
        ValueError: If the format is not supported
    """
    if save_format:
        normalized = save_format.strip().upper()
        # PIL uses "JPEG" not "JPG"
        if normalized == "JPG":
            normalized = "JPEG"
        if normalized not in set(FORMAT_BY_EXTENSION.values()):
            raise ValueError(f"Unsupported image format: {save_format}")
        return normalized

    suffix = Path(path).suffix.lower()
    if suffix not in FORMAT_BY_EXTENSION:
        raise ValueError(f"Unsupported image file extension: '{suffix}'")
    return FORMAT_BY_EXTENSION[suffix]


def _atomic_write(target: Path, write) -> None:
    """Call write(tmp_path) and move the result over target."""
    target = Path(target)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write(tmp_path)
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def load_image(path: Path) -> Image.Image:
    """
    Decode an image file into an RGBA buffer.

    Args:
        path: Path to a PNG, JPEG, BMP, GIF, TIFF or WEBP file

    Returns:
        RGBA PIL Image fully loaded into memory

    Raises:
        LoadError: If the file is missing, has an unsupported extension or
                   cannot be decoded
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_IMAGE_EXTENSIONS:
        raise LoadError(f"Unsupported image file extension: '{path.suffix}'", path)

    try:
        with Image.open(path) as source:
            source.load()
            image = ensure_rgba(source).copy()
    except FileNotFoundError as exc:
        raise LoadError(f"Image file does not exist: {path}", path) from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise LoadError(f"Cannot decode image {path}: {exc}", path) from exc

    logger.info(f"Loaded {image.width}x{image.height} image from {path}")
    return image


def save_image(
    image: Image.Image,
    path: Path,
    save_format: Optional[str] = None,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> Path:
    """
    Encode a buffer to an image file.

    JPEG receives an RGB conversion and WEBP is written losslessly. GIF is
    palette-quantized by Pillow. The file is written to a temporary name
    first and then moved into place.

    Raises:
        ValueError: If the format is not supported
        OSError: If the file cannot be written
    """
    path = Path(path)
    resolved_format = resolve_save_format(path, save_format)

    kwargs: Dict[str, Any] = {"format": resolved_format}
    if resolved_format in QUALITY_FORMATS:
        kwargs["quality"] = max(1, min(100, quality))
    elif resolved_format == "WEBP":
        kwargs["lossless"] = True
        kwargs["exact"] = True

    output = ensure_rgba(image)
    if resolved_format in ALPHA_LESS_FORMATS:
        output = output.convert("RGB")

    _atomic_write(path, lambda tmp_path: output.save(tmp_path, **kwargs))
    logger.info(f"Wrote {resolved_format} image to {path}")
    return path


def save_history(
    image_path: Path,
    operations: Sequence[ImageOperation],
    size: Optional[Sequence[int]] = None,
    extension: str = HISTORY_EXTENSION,
) -> Path:
    """
    Write the ordered operation list to the sidecar of an image.

    Args:
        image_path: Path of the saved original image
        operations: Operations oldest first
        size: (width, height) of the original image
        extension: Sidecar suffix

    Returns:
        Path of the written sidecar

    Raises:
        OSError: If the sidecar cannot be written
    """
    image_path = Path(image_path)
    sidecar = history_path_for(image_path, extension)

    payload: Dict[str, Any] = {
        FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
        FIELD_IMAGE: image_path.name,
        FIELD_SIZE: list(size) if size else None,
        FIELD_SAVED_AT: datetime.now().isoformat(timespec="seconds"),
        FIELD_OPERATIONS: [operation_to_dict(operation) for operation in operations],
    }

    text = json.dumps(payload, indent=2)
    _atomic_write(sidecar, lambda tmp_path: tmp_path.write_text(text, encoding="utf-8"))
    logger.info(f"Saved {len(operations)} operation(s) to {sidecar}")
    return sidecar


def load_history(image_path: Path, extension: str = HISTORY_EXTENSION) -> List[ImageOperation]:
    """
    Read the ordered operation list from the sidecar of an image.

    Returns:
        Operations oldest first, or an empty list if no sidecar exists

    Raises:
        LoadError: If the sidecar is unreadable, malformed, written by a newer
                   schema or lists an unknown operation
    """
    sidecar = history_path_for(Path(image_path), extension)
    if not sidecar.exists():
        return []

    try:
        payload = json.loads(sidecar.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise LoadError(f"Cannot read edit history {sidecar}: {exc}", sidecar) from exc

    if not isinstance(payload, dict):
        raise LoadError(f"Edit history {sidecar} is not a JSON object", sidecar)

    schema_version = payload.get(FIELD_SCHEMA_VERSION, SCHEMA_VERSION)
    if not isinstance(schema_version, int) or schema_version > SCHEMA_VERSION:
        raise LoadError(
            f"Edit history {sidecar} has unsupported schema version {schema_version!r}",
            sidecar,
        )

    entries = payload.get(FIELD_OPERATIONS, [])
    if not isinstance(entries, list):
        raise LoadError(f"Edit history {sidecar} has no operation list", sidecar)

    operations: List[ImageOperation] = []
    for index, entry in enumerate(entries):
        try:
            operations.append(operation_from_dict(entry))
        except OperationError as exc:
            raise LoadError(f"Edit history {sidecar}, entry {index}: {exc}", sidecar) from exc

    logger.info(f"Loaded {len(operations)} operation(s) from {sidecar}")
    return operations
