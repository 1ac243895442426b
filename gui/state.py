"""Recording session state container.

A single ``SessionState`` is owned by the session controller. Views read it;
every change goes through controller operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from furnace.models.schemas import RecordingOptions, Target
from furnace.status import StatusKind, StatusProjection, projection_for


class Phase(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING_AND_POLLING = "stopping_and_polling"
    ARTIFACT_READY = "artifact_ready"


# Phases in which the operator may change namespace/pod.
SELECTABLE_PHASES = (Phase.IDLE, Phase.ARTIFACT_READY)


@dataclass
class SessionState:
    """Holds the state of one recording session."""

    namespace: Optional[str] = None
    selected_target: Optional[Target] = None
    options: RecordingOptions = field(default_factory=RecordingOptions)
    phase: Phase = Phase.IDLE
    last_status: StatusProjection = field(
        default_factory=lambda: projection_for(StatusKind.IDLE)
    )
    busy: bool = False
    artifact_epoch: Optional[int] = None

    @property
    def selection_locked(self) -> bool:
        return self.busy or self.phase not in SELECTABLE_PHASES

    @property
    def status_label(self) -> Optional[str]:
        """Label to display next to the controls; None once the pipeline is idle."""
        if self.last_status.is_terminal:
            return None
        return self.last_status.label

    @property
    def can_start(self) -> bool:
        return (
            not self.busy
            and self.selected_target is not None
            and self.phase in SELECTABLE_PHASES
        )

    @property
    def can_stop(self) -> bool:
        return not self.busy and self.phase is Phase.RECORDING
