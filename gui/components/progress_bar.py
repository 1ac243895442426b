"""Progress display model (import-safe, no Tk)."""

from __future__ import annotations

from dataclasses import dataclass

from furnace.status import PROGRESS_MAX
from gui.state import Phase, SessionState


@dataclass(frozen=True)
class ProgressBarModel:
    visible: bool = False
    value: int = 0
    maximum: int = PROGRESS_MAX
    label: str = ""
    recording: bool = False

    @classmethod
    def from_state(cls, state: SessionState) -> "ProgressBarModel":
        """Bar is shown while the pipeline runs after stop; unknown stages show no bar."""
        status = state.last_status
        visible = (
            state.phase is Phase.STOPPING_AND_POLLING
            and status.show_progress
            and not status.is_terminal
        )
        return cls(
            visible=visible,
            value=max(status.ordinal, 0),
            label=state.status_label or "",
            recording=state.phase is Phase.RECORDING,
        )
