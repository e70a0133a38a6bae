from io import BytesIO
from pathlib import Path
from typing import Callable, Optional
import logging

from PyQt5.QtCore import QPoint, Qt, pyqtSignal
from PyQt5.QtGui import QPixmap
from PyQt5.QtWidgets import (
    QAction,
    QActionGroup,
    QColorDialog,
    QFileDialog,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QScrollArea,
)

from RE_Libs.constants import (
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    IMAGE_FILE_FILTER,
    MAX_ZOOM,
    MIN_ZOOM,
    ZOOM_STEP,
)
from RE_Libs.editor_config import EditorConfig
from RE_Libs.ImageEditingLib.draw_ops import SHAPE_KINDS, SHAPE_RECTANGLE
from RE_Libs.ImageEditingLib.editable_image import EditableImage
from RE_Libs.ImageEditingLib.filter_ops import GaussianBlur, MeanFilter, SharpenFilter, SoftBlur
from RE_Libs.ImageEditingLib.image_operation import ImageOperation
from RE_Libs.ImageEditingLib.interaction import PendingInteraction
from RE_Libs.ImageEditingLib.transform_ops import FLIP_HORIZONTAL, FLIP_VERTICAL, FlipImage, RotateImage
from RE_Libs.errors import EditorError, ExportTargetExistsError

logger = logging.getLogger(__name__)


class ImageCanvas(QLabel):
    """Label showing the image at a zoom factor and reporting drags in image pixels."""

    drag_started = pyqtSignal(int, int)
    drag_moved = pyqtSignal(int, int)
    drag_finished = pyqtSignal(int, int)

    def __init__(self) -> None:
        super().__init__()
        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)
        self._dragging = False
        self.zoom = 1.0

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.LeftButton:
            self._dragging = True
            self.drag_started.emit(*self.to_image_point(event.pos()))

    def mouseMoveEvent(self, event) -> None:
        if self._dragging:
            self.drag_moved.emit(*self.to_image_point(event.pos()))

    def mouseReleaseEvent(self, event) -> None:
        if self._dragging and event.button() == Qt.LeftButton:
            self._dragging = False
            self.drag_finished.emit(*self.to_image_point(event.pos()))

    def to_image_point(self, pos: QPoint):
        """Map a widget position to image pixel coordinates."""
        return max(0, int(pos.x() / self.zoom)), max(0, int(pos.y() / self.zoom))


class EditorWindow(QMainWindow):
    def __init__(self, image_path: Optional[Path] = None, config: Optional[EditorConfig] = None) -> None:
        super().__init__()
        self.config = config or EditorConfig()
        self.image = EditableImage(self.config)
        self.pending: Optional[PendingInteraction] = None
        self.draw_shape = SHAPE_RECTANGLE
        self.draw_color = (0, 0, 0, 255)
        self.stroke_width = 1
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)

        self._build_ui()
        self._build_menus()
        self._connect_signals()
        self._refresh()

        if image_path is not None:
            self.open_path(Path(image_path))

    def _build_ui(self) -> None:
        self.canvas = ImageCanvas()
        scroll = QScrollArea(self)
        scroll.setWidget(self.canvas)
        scroll.setWidgetResizable(False)
        self.setCentralWidget(scroll)

    def _build_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        self.action_open = self._add_action(file_menu, "&Open...", self.open_file, "Ctrl+O")
        self.action_save = self._add_action(file_menu, "&Save", self.save_file, "Ctrl+S")
        self.action_save_as = self._add_action(file_menu, "Save &As...", self.save_file_as, "Ctrl+Shift+S")
        self.action_export = self._add_action(file_menu, "&Export...", self.export_file, "Ctrl+E")
        file_menu.addSeparator()
        self._add_action(file_menu, "E&xit", self.close, "Ctrl+Q")

        edit_menu = menu_bar.addMenu("&Edit")
        self.action_undo = self._add_action(edit_menu, "&Undo", self.undo, "Ctrl+Z")
        self.action_redo = self._add_action(edit_menu, "&Redo", self.redo, "Ctrl+Y")

        view_menu = menu_bar.addMenu("&View")
        self._add_action(view_menu, "Zoom &In", self.zoom_in, "Ctrl++")
        self._add_action(view_menu, "Zoom &Out", self.zoom_out, "Ctrl+-")
        self._add_action(view_menu, "&Actual Size", self.zoom_reset, "Ctrl+0")

        filter_menu = menu_bar.addMenu("F&ilter")
        self._add_action(filter_menu, "Soft Blur", lambda: self.apply_operation(SoftBlur(self.config.default_edge_policy)))
        self._add_action(filter_menu, "Sharpen", lambda: self.apply_operation(SharpenFilter(self.config.default_edge_policy)))
        self._add_action(filter_menu, "Mean Filter...", lambda: self._apply_with_radius(MeanFilter))
        self._add_action(filter_menu, "Gaussian Blur...", lambda: self._apply_with_radius(GaussianBlur))

        transform_menu = menu_bar.addMenu("&Transform")
        for degrees in (90, 180, 270):
            self._add_action(transform_menu, f"Rotate {degrees}°", lambda d=degrees: self.apply_operation(RotateImage(d)))
        self._add_action(transform_menu, "Flip Horizontal", lambda: self.apply_operation(FlipImage(FLIP_HORIZONTAL)))
        self._add_action(transform_menu, "Flip Vertical", lambda: self.apply_operation(FlipImage(FLIP_VERTICAL)))

        draw_menu = menu_bar.addMenu("&Draw")
        shape_group = QActionGroup(self)
        for shape in SHAPE_KINDS:
            action = self._add_action(draw_menu, shape.replace("_", " ").title(), lambda s=shape: self._set_shape(s))
            action.setCheckable(True)
            action.setChecked(shape == self.draw_shape)
            shape_group.addAction(action)
        draw_menu.addSeparator()
        self._add_action(draw_menu, "Color...", self.pick_color)
        self._add_action(draw_menu, "Stroke Width...", self.pick_stroke_width)

    def _add_action(self, menu, text: str, slot: Callable, shortcut: Optional[str] = None) -> QAction:
        action = QAction(text, self)
        if shortcut:
            action.setShortcut(shortcut)
        action.triggered.connect(lambda _checked=False: slot())
        menu.addAction(action)
        return action

    def _connect_signals(self) -> None:
        self.canvas.drag_started.connect(self.on_drag_started)
        self.canvas.drag_moved.connect(self.on_drag_moved)
        self.canvas.drag_finished.connect(self.on_drag_finished)

    # File actions

    def open_file(self) -> None:
        if not self._confirm_discard():
            return

        path_str, _ = QFileDialog.getOpenFileName(self, "Open Image", "", IMAGE_FILE_FILTER)
        if path_str:
            self.open_path(Path(path_str))

    def open_path(self, path: Path) -> None:
        self._run(lambda: self.image.open(path), "Open Failed")

    def save_file(self) -> None:
        if self.image.file_path is None:
            self.save_file_as()
            return
        self._run(self.image.save, "Save Failed")

    def save_file_as(self) -> bool:
        path_str, _ = QFileDialog.getSaveFileName(self, "Save Image As", "", IMAGE_FILE_FILTER)
        if not path_str:
            return False
        return self._run(lambda: self.image.save_as(Path(path_str)), "Save Failed")

    def export_file(self) -> None:
        path_str, _ = QFileDialog.getSaveFileName(self, "Export Image", "", IMAGE_FILE_FILTER)
        if not path_str:
            return

        try:
            self.image.export(Path(path_str))
        except ExportTargetExistsError as exc:
            answer = QMessageBox.question(
                self,
                "File Already Exists",
                f"{exc.path} already exists. Replace it?",
                QMessageBox.Yes | QMessageBox.Cancel,
                QMessageBox.Cancel,
            )
            if answer == QMessageBox.Yes:
                self._run(lambda: self.image.export(Path(path_str), overwrite=True), "Export Failed")
        except EditorError as exc:
            self._show_error("Export Failed", str(exc))

    def closeEvent(self, event) -> None:
        if self._confirm_discard():
            event.accept()
        else:
            event.ignore()

    # Edit actions

    def undo(self) -> None:
        self._run(self.image.undo, "Undo Failed")

    def redo(self) -> None:
        self._run(self.image.redo, "Redo Failed")

    def apply_operation(self, operation: ImageOperation) -> None:
        if not self.image.has_image():
            return
        self._run(lambda: self.image.apply(operation), "Operation Failed")

    def _apply_with_radius(self, filter_cls) -> None:
        radius, ok = QInputDialog.getInt(self, "Filter Radius", "Radius:", 1, 1, 50)
        if ok:
            self.apply_operation(filter_cls(radius=radius, edge_policy=self.config.default_edge_policy))

    # View actions

    def zoom_in(self) -> None:
        self.set_zoom(self.canvas.zoom * ZOOM_STEP)

    def zoom_out(self) -> None:
        self.set_zoom(self.canvas.zoom / ZOOM_STEP)

    def zoom_reset(self) -> None:
        self.set_zoom(1.0)

    def set_zoom(self, zoom: float) -> None:
        self.canvas.zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
        self.statusBar().showMessage(f"Zoom: {int(self.canvas.zoom * 100)}%")
        self._show_image(self.image.current_buffer())

    # Draw actions

    def _set_shape(self, shape: str) -> None:
        self.draw_shape = shape

    def pick_color(self) -> None:
        color = QColorDialog.getColor(parent=self, title="Pick draw color")
        if color.isValid():
            self.draw_color = (color.red(), color.green(), color.blue(), color.alpha())

    def pick_stroke_width(self) -> None:
        width, ok = QInputDialog.getInt(self, "Stroke Width", "Width (px):", self.stroke_width, 1, 100)
        if ok:
            self.stroke_width = width

    def on_drag_started(self, x: int, y: int) -> None:
        if not self.image.has_image():
            return
        self.pending = PendingInteraction.begin((x, y), self.draw_shape, self.draw_color, self.stroke_width)

    def on_drag_moved(self, x: int, y: int) -> None:
        if self.pending is None:
            return
        self.pending = self.pending.moved_to((x, y))
        self._show_image(self.pending.preview(self.image.current_buffer()))

    def on_drag_finished(self, x: int, y: int) -> None:
        if self.pending is None:
            return
        operation = self.pending.moved_to((x, y)).to_operation()
        self.pending = None
        self.apply_operation(operation)

    # Helpers

    def _run(self, action: Callable[[], None], error_title: str) -> bool:
        try:
            action()
        except EditorError as exc:
            logger.warning(f"{error_title}: {exc}")
            self._show_error(error_title, str(exc))
            self._refresh()
            return False
        self._refresh()
        return True

    def _confirm_discard(self) -> bool:
        """Ask to save unsaved edits. Returns False if the user cancels."""
        if not self.image.is_dirty():
            return True

        answer = QMessageBox.question(
            self,
            "Unsaved Image",
            "The image has unsaved changes. Save them first?",
            QMessageBox.Yes | QMessageBox.No | QMessageBox.Cancel,
            QMessageBox.Cancel,
        )
        if answer == QMessageBox.Cancel:
            return False
        if answer == QMessageBox.Yes:
            if self.image.file_path is None:
                return self.save_file_as()
            return self._run(self.image.save, "Save Failed")

        # Discarding happens when the next image loads or the window closes
        return True

    def _refresh(self) -> None:
        has_image = self.image.has_image()
        self.action_save.setEnabled(has_image)
        self.action_save_as.setEnabled(has_image)
        self.action_export.setEnabled(has_image)
        self.action_undo.setEnabled(self.image.can_undo())
        self.action_redo.setEnabled(self.image.can_redo())

        title = self.image.file_path.name if self.image.file_path else "Untitled"
        marker = "*" if self.image.is_dirty() else ""
        self.setWindowTitle(f"Raster Edit - {title}{marker}")
        self._show_image(self.image.current_buffer())

    def _show_image(self, image) -> None:
        if image is None:
            self.canvas.clear()
            self.canvas.setText("Open an image to start editing")
            self.canvas.adjustSize()
            return

        pixmap = QPixmap()
        if not pixmap.loadFromData(self._to_png_bytes(image), "PNG"):
            self.canvas.setText("Preview failed")
            return
        if self.canvas.zoom != 1.0:
            pixmap = pixmap.scaled(
                max(1, int(image.width * self.canvas.zoom)),
                max(1, int(image.height * self.canvas.zoom)),
                Qt.KeepAspectRatio,
                Qt.FastTransformation,
            )
        self.canvas.setPixmap(pixmap)
        self.canvas.adjustSize()

    def _to_png_bytes(self, image) -> bytes:
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.warning(self, title, message)
