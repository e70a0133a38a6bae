"""
ProjStoreLib - Image and edit history storage

This module handles decoding and encoding image files and persisting
the edit history sidecar of a saved image.
"""

from RE_Libs.ProjStoreLib.history_store import (
    history_path_for,
    resolve_save_format,
    load_image,
    save_image,
    save_history,
    load_history,
)

__all__ = [
    "history_path_for",
    "resolve_save_format",
    "load_image",
    "save_image",
    "save_history",
    "load_history",
]
