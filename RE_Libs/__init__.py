"""
RE_Libs - Raster Edit Library Modules

This package contains core functionality for the Raster Edit project,
organized into specialized sub-packages:

- ImageEditingLib: Pixel buffers, convolution, image operations and the editable image
- ProjStoreLib: Image loading/encoding and edit history persistence
"""

__version__ = "0.1.0"
