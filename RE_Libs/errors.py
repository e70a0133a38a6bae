"""
Error types raised by the Raster Edit core.

Every public core call either succeeds or raises one of these errors and
leaves the editable image exactly as it was before the call.

Classes:
    EditorError: Base class for all core errors
    LoadError: Source image or history sidecar cannot be read
    OperationError: Invalid operation parameters or an operation failed
    SaveError: Image or history could not be written
    ExportError: Rendered image could not be written
    ExportTargetExistsError: Export target exists and overwrite was not requested
"""

from pathlib import Path
from typing import Optional


class EditorError(Exception):
    """Base class for all Raster Edit core errors."""


class LoadError(EditorError):
    """Raised when an image or its edit history cannot be decoded."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class OperationError(EditorError):
    """Raised when an operation has invalid parameters or cannot be applied."""


class SaveError(EditorError):
    """Raised when saving the original image or its history fails."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ExportError(EditorError):
    """Raised when exporting the rendered image fails."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ExportTargetExistsError(ExportError):
    """Raised when the export target exists and overwrite=False."""
