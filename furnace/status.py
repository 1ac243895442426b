"""Projection of raw backend status strings onto pipeline progress.

The furnace controller reports one of five labels while it works through
``perf record -> perf script -> stackcollapse -> flamegraph`` and settles on
``idle``. The ordinal is only used to draw progress; control decisions compare
against the exact ``idle`` label.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class StatusKind(IntEnum):
    UNKNOWN = -1
    PERF_RECORD = 0
    PERF_SCRIPT = 1
    STACK_COLLAPSE = 2
    FLAME_GRAPH = 3
    IDLE = 4

    @property
    def label(self) -> str:
        return _LABELS.get(self, "unknown")


_LABELS = {
    StatusKind.PERF_RECORD: "perf record",
    StatusKind.PERF_SCRIPT: "perf script",
    StatusKind.STACK_COLLAPSE: "stackcollapse",
    StatusKind.FLAME_GRAPH: "flamegraph",
    StatusKind.IDLE: "idle",
}
_BY_LABEL = {label: kind for kind, label in _LABELS.items()}

# Progress bars run from PERF_RECORD (0) to IDLE (4).
PROGRESS_MAX = int(StatusKind.IDLE)


@dataclass(frozen=True)
class StatusProjection:
    ordinal: int
    label: str
    kind: StatusKind

    @property
    def show_progress(self) -> bool:
        """Unknown statuses are shown as text only, never as a bar."""
        return self.kind is not StatusKind.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self.kind is StatusKind.IDLE


def project(status: str) -> StatusProjection:
    """Map a backend status label to its ordinal and display label."""
    kind = _BY_LABEL.get(status, StatusKind.UNKNOWN)
    if kind is StatusKind.UNKNOWN:
        return StatusProjection(ordinal=int(kind), label=str(status), kind=kind)
    return StatusProjection(ordinal=int(kind), label=kind.label, kind=kind)


def projection_for(kind: StatusKind) -> StatusProjection:
    return project(kind.label)
