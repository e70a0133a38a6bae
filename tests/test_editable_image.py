"""
Tests for the EditableImage history state machine.

Tests cover:
- Apply, undo and redo semantics
- Dirty tracking
- Saving, reopening and replaying the edit history
- Exporting the rendered image
- Failure atomicity of every public call
"""

import json

import pytest
from PIL import Image

from RE_Libs.editor_config import EditorConfig
from RE_Libs.ImageEditingLib import (
    CropRegion,
    DrawShape,
    MeanFilter,
    RotateImage,
    SharpenFilter,
    SoftBlur,
)
from RE_Libs.ImageEditingLib.editable_image import EditableImage
from RE_Libs.ImageEditingLib.pixel_buffer import buffers_equal, new_buffer
from RE_Libs.errors import (
    ExportError,
    ExportTargetExistsError,
    LoadError,
    OperationError,
    SaveError,
)

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)

BLUE_SQUARE = DrawShape((0, 0), (1, 1), "filled_rectangle", BLUE)


def expected_blue_square():
    image = new_buffer(4, 4, RED)
    for y in range(2):
        for x in range(2):
            image.putpixel((x, y), BLUE)
    return image


class TestEmptyState:
    def test_initial_state(self):
        image = EditableImage()

        assert not image.has_image()
        assert image.current_buffer() is None
        assert image.file_path is None
        assert image.size is None
        assert not image.can_undo()
        assert not image.can_redo()
        assert not image.is_dirty()

    def test_apply_without_image(self):
        with pytest.raises(OperationError):
            EditableImage().apply(SoftBlur())

    def test_undo_redo_without_image_are_noops(self):
        image = EditableImage()
        image.undo()
        image.redo()
        assert not image.has_image()

    def test_save_without_image(self, tmp_path):
        with pytest.raises(SaveError):
            EditableImage().save()
        with pytest.raises(SaveError):
            EditableImage().save_as(tmp_path / "out.png")

    def test_export_without_image(self, tmp_path):
        with pytest.raises(ExportError):
            EditableImage().export(tmp_path / "out.png")


class TestHistory:
    def test_open_is_clean(self, opened_image, red_image):
        assert opened_image.has_image()
        assert opened_image.size == (4, 4)
        assert not opened_image.is_dirty()
        assert not opened_image.can_undo()
        assert buffers_equal(opened_image.current_buffer(), red_image)

    def test_undo_then_redo_blue_square(self, opened_image, red_image):
        """Open red, draw a blue square, undo, redo."""
        opened_image.apply(BLUE_SQUARE)
        opened_image.undo()

        assert buffers_equal(opened_image.current_buffer(), red_image)
        assert opened_image.can_redo()

        opened_image.redo()

        assert buffers_equal(opened_image.current_buffer(), expected_blue_square())
        assert not opened_image.can_redo()

    def test_apply_pushes_and_clears_redo(self, opened_image):
        opened_image.apply(SoftBlur())
        opened_image.undo()
        assert opened_image.can_redo()

        opened_image.apply(BLUE_SQUARE)

        assert opened_image.undo_operations == (BLUE_SQUARE,)
        assert not opened_image.can_redo()
        assert opened_image.is_dirty()

    def test_undo_all_then_redo_all(self, opened_image, red_image):
        operations = [
            BLUE_SQUARE,
            SharpenFilter(edge_policy="extend"),
            DrawShape((3, 0), (0, 3), "line", (0, 255, 0, 255)),
            MeanFilter(radius=1, edge_policy="zero_pad"),
        ]
        snapshots = []
        for operation in operations:
            opened_image.apply(operation)
            snapshots.append(opened_image.current_buffer())

        for _ in operations:
            opened_image.undo()
        assert buffers_equal(opened_image.current_buffer(), red_image)
        assert opened_image.redo_operations == tuple(operations)

        for snapshot in snapshots:
            opened_image.redo()
            assert buffers_equal(opened_image.current_buffer(), snapshot)
        assert opened_image.undo_operations == tuple(operations)

    def test_extra_undo_is_noop(self, opened_image, red_image):
        opened_image.undo()
        opened_image.undo()

        assert buffers_equal(opened_image.current_buffer(), red_image)
        assert not opened_image.is_dirty()

    def test_failed_operation_leaves_state(self, opened_image):
        opened_image.apply(BLUE_SQUARE)
        before = opened_image.current_buffer()

        with pytest.raises(OperationError):
            opened_image.apply(DrawShape((0, 0), (1, 1), "star", BLUE))
        with pytest.raises(OperationError):
            opened_image.apply(RotateImage(45))

        assert buffers_equal(opened_image.current_buffer(), before)
        assert opened_image.undo_operations == (BLUE_SQUARE,)

    def test_non_operation_rejected(self, opened_image):
        with pytest.raises(OperationError):
            opened_image.apply("soft_blur")

    def test_current_buffer_is_a_copy(self, opened_image, red_image):
        buffer = opened_image.current_buffer()
        buffer.putpixel((0, 0), BLUE)

        assert buffers_equal(opened_image.current_buffer(), red_image)

    def test_crop_and_undo(self, opened_image):
        opened_image.apply(CropRegion((1, 1), (2, 2)))
        assert opened_image.size == (2, 2)

        opened_image.undo()
        assert opened_image.size == (4, 4)

    def test_clear_history_keeps_pixels(self, opened_image):
        opened_image.apply(BLUE_SQUARE)
        opened_image.apply(SoftBlur())
        opened_image.undo()
        rendered = opened_image.current_buffer()

        opened_image.clear_history()

        assert not opened_image.can_undo()
        assert not opened_image.can_redo()
        assert buffers_equal(opened_image.current_buffer(), rendered)
        assert buffers_equal(opened_image.original_buffer(), rendered)

    def test_close(self, opened_image):
        opened_image.apply(SoftBlur())
        opened_image.close()

        assert not opened_image.has_image()
        assert not opened_image.can_undo()
        assert not opened_image.is_dirty()


class TestDirtyFlag:
    def test_apply_undo_redo_mark_dirty(self, opened_image):
        opened_image.apply(SoftBlur())
        assert opened_image.is_dirty()

        opened_image.save()
        opened_image.undo()
        assert opened_image.is_dirty()

        opened_image.save()
        opened_image.redo()
        assert opened_image.is_dirty()

    def test_save_clears_dirty(self, opened_image):
        opened_image.apply(SoftBlur())
        opened_image.save()
        assert not opened_image.is_dirty()


class TestSaveAndReopen:
    def test_reopen_restores_history(self, opened_image, red_png, red_image):
        opened_image.apply(BLUE_SQUARE)
        opened_image.apply(SoftBlur())
        rendered = opened_image.current_buffer()
        opened_image.save()

        reopened = EditableImage()
        reopened.open(red_png)

        assert reopened.undo_operations == (BLUE_SQUARE, SoftBlur())
        assert not reopened.can_redo()
        assert not reopened.is_dirty()
        assert buffers_equal(reopened.current_buffer(), rendered)

        # The original is stored untouched, so undo still works after reopening
        reopened.undo()
        reopened.undo()
        assert buffers_equal(reopened.current_buffer(), red_image)

    def test_redo_stack_not_persisted(self, opened_image, red_png):
        opened_image.apply(BLUE_SQUARE)
        opened_image.undo()
        opened_image.save()

        reopened = EditableImage()
        reopened.open(red_png)

        assert not reopened.can_undo()
        assert not reopened.can_redo()

    def test_original_file_unchanged_by_save(self, opened_image, red_png, red_image):
        opened_image.apply(BLUE_SQUARE)
        opened_image.save()

        with Image.open(red_png) as saved:
            assert buffers_equal(saved.convert("RGBA"), red_image)

    def test_save_as_moves_file_path(self, opened_image, tmp_path):
        target = tmp_path / "copy.png"
        opened_image.apply(BLUE_SQUARE)

        opened_image.save_as(target)

        assert opened_image.file_path == target
        assert opened_image.history_path() == tmp_path / "copy.png.ops"
        assert target.exists()
        assert (tmp_path / "copy.png.ops").exists()

    def test_save_as_failure_keeps_state(self, opened_image, red_png, tmp_path):
        opened_image.apply(BLUE_SQUARE)

        with pytest.raises(SaveError):
            opened_image.save_as(tmp_path / "missing_dir" / "out.png")

        assert opened_image.file_path == red_png
        assert opened_image.is_dirty()

    def test_save_as_unsupported_format(self, opened_image, tmp_path):
        with pytest.raises(SaveError):
            opened_image.save_as(tmp_path / "out.xyz")

    def test_sidecar_is_json(self, opened_image, red_png):
        opened_image.apply(MeanFilter(radius=2))
        opened_image.save()

        payload = json.loads(opened_image.history_path().read_text(encoding="utf-8"))
        assert payload["operations"] == [
            {"kind": "mean_filter", "radius": 2, "edge_policy": "no_op"}
        ]

    def test_custom_history_extension(self, red_png):
        image = EditableImage(EditorConfig(history_extension="hist"))
        image.open(red_png)
        image.apply(SoftBlur())
        image.save()

        assert (red_png.parent / "red.png.hist").exists()
        assert not (red_png.parent / "red.png.ops").exists()


class TestFormatsAndResave:
    @pytest.mark.parametrize("extension", [".png", ".tiff", ".webp", ".bmp"])
    def test_save_as_and_reopen_reproduces_render(self, tmp_path, gradient_image, extension):
        source = tmp_path / "gradient.png"
        gradient_image.save(source, format="PNG")
        image = EditableImage()
        image.open(source)
        image.apply(DrawShape((2, 1), (5, 4), "filled_rectangle", BLUE))
        expected = image.current_buffer()

        image.save_as(tmp_path / f"out{extension}")
        reopened = EditableImage()
        reopened.open(tmp_path / f"out{extension}")

        assert buffers_equal(reopened.current_buffer(), expected)

    def test_resave_does_not_reencode_jpeg(self, tmp_path):
        path = tmp_path / "photo.jpg"
        new_buffer(6, 6, RED).convert("RGB").save(path, format="JPEG", quality=80)
        initial_bytes = path.read_bytes()
        image = EditableImage()
        image.open(path)

        image.apply(BLUE_SQUARE)
        image.save()
        image.apply(SoftBlur())
        image.save()

        assert path.read_bytes() == initial_bytes
        assert image.undo_operations == (BLUE_SQUARE, SoftBlur())
        assert (tmp_path / "photo.jpg.ops").exists()

    def test_resave_after_clear_history_writes_image(self, tmp_path):
        path = tmp_path / "photo.jpg"
        new_buffer(6, 6, RED).convert("RGB").save(path, format="JPEG", quality=80)
        initial_bytes = path.read_bytes()
        image = EditableImage()
        image.open(path)

        image.apply(BLUE_SQUARE)
        image.clear_history()
        image.save()

        assert path.read_bytes() != initial_bytes

    @pytest.mark.parametrize("extension", [".gif", ".jpg"])
    def test_lossy_original_logs_warning(self, opened_image, tmp_path, caplog, extension):
        with caplog.at_level("WARNING"):
            opened_image.save_as(tmp_path / f"out{extension}")

        assert "reopened pixels may differ" in caplog.text
        assert (tmp_path / f"out{extension}").exists()

    def test_failed_sidecar_removes_new_image(self, opened_image, red_png, tmp_path):
        target = tmp_path / "copy.png"
        # A directory where the sidecar should go makes the history write fail
        (tmp_path / "copy.png.ops").mkdir()

        with pytest.raises(SaveError):
            opened_image.save_as(target)

        assert not target.exists()
        assert opened_image.file_path == red_png


class TestOpenFailures:
    def test_missing_file_keeps_previous_image(self, opened_image, tmp_path, red_png):
        opened_image.apply(BLUE_SQUARE)

        with pytest.raises(LoadError):
            opened_image.open(tmp_path / "missing.png")

        assert opened_image.file_path == red_png
        assert opened_image.undo_operations == (BLUE_SQUARE,)

    def test_corrupt_sidecar(self, red_png):
        (red_png.parent / "red.png.ops").write_text("{ broken", encoding="utf-8")
        image = EditableImage()

        with pytest.raises(LoadError):
            image.open(red_png)
        assert not image.has_image()

    def test_history_that_cannot_replay(self, red_png):
        payload = {"schema_version": 1, "operations": [{"kind": "crop", "start": [10, 10], "end": [12, 12]}]}
        (red_png.parent / "red.png.ops").write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(LoadError):
            EditableImage().open(red_png)


class TestExport:
    def test_export_png_matches_rendered(self, opened_image, tmp_path):
        opened_image.apply(BLUE_SQUARE)
        target = tmp_path / "out.png"

        written = opened_image.export(target)

        assert written == target
        with Image.open(target) as exported:
            assert buffers_equal(exported.convert("RGBA"), expected_blue_square())

    def test_export_does_not_touch_history(self, opened_image, tmp_path):
        opened_image.apply(BLUE_SQUARE)
        opened_image.export(tmp_path / "out.png")

        assert opened_image.is_dirty()
        assert opened_image.can_undo()
        assert not (tmp_path / "out.png.ops").exists()

    def test_default_extension_appended(self, opened_image, tmp_path):
        written = opened_image.export(tmp_path / "flat")

        assert written == tmp_path / "flat.jpg"
        with Image.open(written) as exported:
            assert exported.format == "JPEG"

    def test_existing_target(self, opened_image, tmp_path):
        target = tmp_path / "out.png"
        target.write_bytes(b"keep me")

        with pytest.raises(ExportTargetExistsError):
            opened_image.export(target)
        assert target.read_bytes() == b"keep me"

        opened_image.export(target, overwrite=True)
        with Image.open(target) as exported:
            assert exported.size == (4, 4)

    def test_unsupported_extension(self, opened_image, tmp_path):
        with pytest.raises(ExportError):
            opened_image.export(tmp_path / "out.xyz")

    def test_explicit_format(self, opened_image, tmp_path):
        written = opened_image.export(tmp_path / "out.img", save_format="png")

        with Image.open(written) as exported:
            assert exported.format == "PNG"
