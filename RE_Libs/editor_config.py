"""
Editor configuration for Raster Edit.

Classes:
    EditorConfig: Settings shared by the editable image and the shell
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

from RE_Libs.constants import (
    DEFAULT_EXPORT_EXTENSION,
    DEFAULT_JPEG_QUALITY,
    HISTORY_EXTENSION,
)


@dataclass
class EditorConfig:
    """Configuration for an editing session.

    Attributes:
        history_extension: Suffix appended to the image path for the history sidecar
        default_export_extension: Suffix appended to suffix-less export targets
        jpeg_quality: JPEG quality 1-100 used for lossy saves and exports
        default_edge_policy: Edge policy name used by filters created in the shell
    """
    history_extension: str = HISTORY_EXTENSION
    default_export_extension: str = DEFAULT_EXPORT_EXTENSION
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    default_edge_policy: str = "no_op"

    def __post_init__(self) -> None:
        if not self.history_extension.startswith("."):
            self.history_extension = f".{self.history_extension}"
        if not self.default_export_extension.startswith("."):
            self.default_export_extension = f".{self.default_export_extension}"
        self.jpeg_quality = max(1, min(100, int(self.jpeg_quality)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__}
        return cls(**filtered)
