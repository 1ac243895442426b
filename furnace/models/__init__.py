"""Data schemas and validation."""
from .schemas import ColorScheme, RecordingOptions, Target

__all__ = [
    "ColorScheme",
    "RecordingOptions",
    "Target",
]
