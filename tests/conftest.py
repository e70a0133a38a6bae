"""
Pytest configuration and shared fixtures for Raster Edit tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import pytest

from RE_Libs.ImageEditingLib.editable_image import EditableImage
from RE_Libs.ImageEditingLib.pixel_buffer import new_buffer

RED = (255, 0, 0, 255)


@pytest.fixture
def red_image():
    """A 4x4 opaque red buffer."""
    return new_buffer(4, 4, RED)


@pytest.fixture
def gradient_image():
    """An 8x6 buffer where every pixel has a distinct color."""
    image = new_buffer(8, 6)
    pixels = image.load()
    for y in range(image.height):
        for x in range(image.width):
            pixels[x, y] = (x * 30, y * 40, (x + y) * 10, 255)
    return image


@pytest.fixture
def red_png(tmp_path, red_image):
    """Path to a 4x4 red PNG on disk."""
    path = tmp_path / "red.png"
    red_image.save(path, format="PNG")
    return path


@pytest.fixture
def opened_image(red_png):
    """An EditableImage with the 4x4 red PNG opened."""
    image = EditableImage()
    image.open(red_png)
    return image
