"""Chart references for the presentation layer.

Turns a finished run (target + ``artifact_epoch``) into the URLs the view
embeds and links. No network traffic happens here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from furnace.models.schemas import Target
from furnace.proxy_client import build_chart_url, chart_filename
from gui.state import SessionState


@dataclass(frozen=True)
class ArtifactReference:
    target: Target
    epoch: int
    view_url: str
    download_url: str
    filename: str

    @property
    def alt_text(self) -> str:
        return f"Flamegraph for {self.target}"


def build_reference(base_url: str, target: Target, epoch: int) -> ArtifactReference:
    return ArtifactReference(
        target=target,
        epoch=epoch,
        view_url=build_chart_url(base_url, target, epoch),
        download_url=build_chart_url(base_url, target, epoch, download=True),
        filename=chart_filename(target),
    )


class ArtifactPresenter:
    """Keeps the chart reference in step with the session.

    ``refresh()`` only produces a new reference when the epoch or the target
    changes, so listeners redraw once per finished run.
    """

    def __init__(self, base_url: str = ""):
        self.base_url = base_url
        self._key: Optional[Tuple[Target, int]] = None
        self._reference: Optional[ArtifactReference] = None
        self._listeners: List[Callable[[Optional[ArtifactReference]], None]] = []

    @property
    def reference(self) -> Optional[ArtifactReference]:
        return self._reference

    def subscribe(self, listener: Callable[[Optional[ArtifactReference]], None]) -> None:
        self._listeners.append(listener)

    def refresh(self, state: SessionState) -> bool:
        """Recompute from ``state``; returns True when the reference changed."""
        if state.artifact_epoch is None or state.selected_target is None:
            key = None
        else:
            key = (state.selected_target, state.artifact_epoch)
        if key == self._key:
            return False

        self._key = key
        self._reference = None if key is None else build_reference(self.base_url, *key)
        for listener in list(self._listeners):
            listener(self._reference)
        return True
