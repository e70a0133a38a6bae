"""
Editable image: the operation history state machine.

An EditableImage owns the original buffer (the file as last opened or
saved), the current buffer, and two ordered stacks of operations. The
current buffer is always the original with every operation of the undo
stack applied in order.

States:
    Empty   - no image loaded
    Loaded  - image present; Clean (saved) or Dirty (unsaved edits)

Every public method either succeeds with the invariants intact or raises
an EditorError subclass and leaves the state exactly as it was. Instances
are not thread-safe; callers serialize access to one image.

Example:
    >>> image = EditableImage()
    >>> image.open("photo.png")
    >>> image.apply(SoftBlur())
    >>> image.undo()
    >>> image.redo()
    >>> image.save()
    >>> image.export("photo_final.jpg")
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from PIL import Image

from RE_Libs.constants import LOSSY_FORMATS
from RE_Libs.editor_config import EditorConfig
from RE_Libs.ImageEditingLib.image_operation import ImageOperation
from RE_Libs.ImageEditingLib.pixel_buffer import copy_buffer, ensure_rgba
from RE_Libs.ProjStoreLib.history_store import (
    history_path_for,
    load_history,
    load_image,
    resolve_save_format,
    save_history,
    save_image,
)
from RE_Libs.errors import (
    ExportError,
    ExportTargetExistsError,
    LoadError,
    OperationError,
    SaveError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class EditableImage:
    """Image with an undoable, persistable history of operations."""

    def __init__(self, config: Optional[EditorConfig] = None) -> None:
        self.config = config or EditorConfig()
        self._original: Optional[Image.Image] = None
        self._current: Optional[Image.Image] = None
        self._undo_stack: List[ImageOperation] = []
        self._redo_stack: List[ImageOperation] = []
        self._file_path: Optional[Path] = None
        # Whether the file at _file_path holds exactly _original
        self._original_on_disk = False
        self._dirty = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_image(self) -> bool:
        return self._current is not None

    def current_buffer(self) -> Optional[Image.Image]:
        """Return a copy of the rendered image, or None when empty."""
        if self._current is None:
            return None
        return self._current.copy()

    def original_buffer(self) -> Optional[Image.Image]:
        if self._original is None:
            return None
        return self._original.copy()

    def is_dirty(self) -> bool:
        return self._dirty

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        if self._current is None:
            return None
        return self._current.size

    @property
    def undo_operations(self) -> Tuple[ImageOperation, ...]:
        """Applied operations, oldest first."""
        return tuple(self._undo_stack)

    @property
    def redo_operations(self) -> Tuple[ImageOperation, ...]:
        """Undone operations, most recently undone first."""
        return tuple(reversed(self._redo_stack))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self, path: PathLike) -> None:
        """
        Load an image and any edit history saved next to it.

        Both stacks are replaced: the undo stack receives the persisted
        history (replayed onto the original) and the redo stack is empty.

        Raises:
            LoadError: If the image or its history cannot be decoded or the
                       history cannot be replayed. The previous image stays
                       loaded in that case.
        """
        path = Path(path)
        original = load_image(path)
        operations = load_history(path, self.config.history_extension)

        try:
            current = self._replay(original, operations)
        except OperationError as exc:
            raise LoadError(f"Cannot replay edit history of {path}: {exc}", path) from exc

        self._original = original
        self._current = current
        self._undo_stack = list(operations)
        self._redo_stack = []
        self._file_path = path
        self._original_on_disk = True
        self._dirty = False
        logger.info(f"Opened {path} with {len(operations)} operation(s) in history")

    def close(self) -> None:
        """Release the buffers and return to the Empty state."""
        self._original = None
        self._current = None
        self._undo_stack = []
        self._redo_stack = []
        self._file_path = None
        self._original_on_disk = False
        self._dirty = False
        logger.debug("Closed image")

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def apply(self, operation: ImageOperation) -> None:
        """
        Apply an operation to the current image.

        The operation is pushed onto the undo stack and the redo stack is
        cleared.

        Raises:
            OperationError: If no image is loaded or the operation fails; the
                            buffer and both stacks are left unchanged
        """
        if self._current is None:
            raise OperationError("No image loaded")

        result = self._run(operation, self._current)

        self._current = result
        self._undo_stack.append(operation)
        self._redo_stack.clear()
        self._dirty = True
        logger.debug(f"Applied {operation.describe()} ({len(self._undo_stack)} in history)")

    def undo(self) -> None:
        """Revert the most recent operation. No-op when nothing to undo."""
        if not self._undo_stack:
            return

        remaining = self._undo_stack[:-1]
        current = self._replay(self._original, remaining)

        operation = self._undo_stack.pop()
        self._redo_stack.append(operation)
        self._current = current
        self._dirty = True
        logger.debug(f"Undid {operation.describe()}")

    def redo(self) -> None:
        """Re-apply the most recently undone operation. No-op when nothing to redo."""
        if not self._redo_stack:
            return

        operation = self._redo_stack[-1]
        result = self._run(operation, self._current)

        self._redo_stack.pop()
        self._undo_stack.append(operation)
        self._current = result
        self._dirty = True
        logger.debug(f"Redid {operation.describe()}")

    def clear_history(self) -> None:
        """
        Forget both stacks without changing the rendered image.

        The current image becomes the new replay base so that later undos
        never reach past this point.
        """
        if self._current is not None:
            self._original = self._current.copy()
            self._original_on_disk = False
        self._undo_stack = []
        self._redo_stack = []
        logger.debug("Cleared edit history")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """
        Save the original image and its edit history to the current file path.

        Raises:
            SaveError: If no image or file path is set, or writing fails
        """
        if self._file_path is None:
            raise SaveError("Image has no file path; use save_as()")
        self.save_as(self._file_path)

    def save_as(self, path: PathLike) -> None:
        """
        Save the original image and its edit history to a new path.

        The image file is only re-encoded when it differs from what is on
        disk: saving again to the opened or last saved path writes the
        sidecar alone, so lossy originals are not compressed again. The file
        path is only updated once both files are written.

        Raises:
            SaveError: If no image is loaded, the format is unsupported or
                       writing fails; in-memory state is unchanged
        """
        if self._original is None:
            raise SaveError("No image loaded")

        path = Path(path)
        write_image = not (self._original_on_disk and path == self._file_path)
        image_written = False
        try:
            if write_image:
                resolved_format = resolve_save_format(path)
                if resolved_format in LOSSY_FORMATS:
                    logger.warning(f"Saving original as {resolved_format}; reopened pixels may differ")
                save_image(self._original, path, resolved_format, quality=self.config.jpeg_quality)
                image_written = True
            save_history(
                path,
                self._undo_stack,
                size=self._original.size,
                extension=self.config.history_extension,
            )
        except (OSError, ValueError) as exc:
            logger.warning(f"Saving {path} failed: {exc}")
            if image_written and path != self._file_path:
                # Do not leave the new image paired with a stale sidecar
                path.unlink(missing_ok=True)
            raise SaveError(f"Cannot save image to {path}: {exc}", path) from exc

        self._file_path = path
        self._original_on_disk = True
        self._dirty = False
        logger.info(f"Saved {path} ({len(self._undo_stack)} operation(s))")

    def export(
        self,
        path: PathLike,
        save_format: Optional[str] = None,
        overwrite: bool = False,
    ) -> Path:
        """
        Write the rendered image as a flat file.

        A path without a suffix receives the configured default export
        extension. Neither the history nor the dirty flag is touched.

        Args:
            path: Target path
            save_format: Explicit format, or None to use the suffix
            overwrite: Replace an existing file

        Returns:
            The path written

        Raises:
            ExportTargetExistsError: If the target exists and overwrite is False
            ExportError: If no image is loaded, the format is unsupported or
                         writing fails
        """
        if self._current is None:
            raise ExportError("No image loaded")

        path = Path(path)
        if not path.suffix:
            path = path.with_name(f"{path.name}{self.config.default_export_extension}")

        try:
            resolved_format = resolve_save_format(path, save_format)
        except ValueError as exc:
            raise ExportError(str(exc), path) from exc

        if path.exists() and not overwrite:
            raise ExportTargetExistsError(
                f"Export target already exists: {path}. Set overwrite=True to replace.",
                path,
            )

        try:
            save_image(self._current, path, resolved_format, quality=self.config.jpeg_quality)
        except (OSError, ValueError) as exc:
            logger.warning(f"Exporting {path} failed: {exc}")
            raise ExportError(f"Cannot export image to {path}: {exc}", path) from exc

        return path

    def history_path(self) -> Optional[Path]:
        if self._file_path is None:
            return None
        return history_path_for(self._file_path, self.config.history_extension)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _run(operation: ImageOperation, image: Image.Image) -> Image.Image:
        """Apply one operation to a private copy of image."""
        if not isinstance(operation, ImageOperation):
            raise OperationError(f"Expected ImageOperation, got {type(operation).__name__}")

        try:
            return ensure_rgba(operation.apply(copy_buffer(image)))
        except OperationError:
            raise
        except (ValueError, TypeError) as exc:
            raise OperationError(f"{operation.describe()} failed: {exc}") from exc

    @classmethod
    def _replay(cls, original: Image.Image, operations: List[ImageOperation]) -> Image.Image:
        current = copy_buffer(original)
        for operation in operations:
            current = cls._run(operation, current)
        return current
