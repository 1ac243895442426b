"""
Furnace - client for on-demand perf flamegraphs of cluster pods.

Drives the furnace proxy through a recording session and exposes the
rendered chart.
"""

__version__ = "0.1.0"

from .models.schemas import ColorScheme, RecordingOptions, Target
from .proxy_client import ProxyClient
from .status import StatusKind, StatusProjection, project

__all__ = [
    "ColorScheme",
    "ProxyClient",
    "RecordingOptions",
    "StatusKind",
    "StatusProjection",
    "Target",
    "project",
]
