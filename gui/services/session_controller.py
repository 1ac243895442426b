"""Recording session controller.

Drives one pod through ``start -> stop -> poll status -> chart ready``:

- ``start()`` shows ``perf record`` right away and rolls back if the proxy
  refuses the command.
- ``stop()`` sends the current options and chart width, then polls status
  every ``poll_interval_ms`` until the pipeline reports ``idle``.
- A finished run is stamped with ``artifact_epoch``, the cache-busting token
  for the chart URL.

Backend failures never escape: commands roll back, polls retry. Operations
return ``False`` when they are rejected (busy, wrong phase, nothing selected).
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional

from furnace.models.schemas import RecordingOptions, Target
from furnace.proxy_client import ProxyClient
from furnace.status import StatusKind, project, projection_for
from gui.state import Phase, SELECTABLE_PHASES, SessionState
from gui.utils.async_tasks import Dispatcher
from gui.utils.logging import log, trace

DEFAULT_POLL_INTERVAL_MS = 2_000
# Horizontal space the chart leaves free inside the viewport.
CHART_MARGIN = 20


class SessionController:
    """Owns the ``SessionState`` and the status-poll timer."""

    # Hide the previous chart as soon as a new recording is requested
    # (restored if the start is refused). When False the chart stays until
    # the proxy confirms the new recording.
    hide_artifact_on_start = True

    def __init__(
        self,
        client: ProxyClient,
        dispatcher: Dispatcher,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        time_source: Callable[[], float] = time.time,
        state: Optional[SessionState] = None,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.poll_interval_ms = poll_interval_ms
        self.time_source = time_source
        self.state = state or SessionState()

        self._listeners: List[Callable[[SessionState], None]] = []
        self._poll_timer: Any = None
        self._poll_generation = 0
        self._polling = False
        self._last_epoch: Optional[int] = None
        self._closed = False

    # -------------------- observers --------------------
    def subscribe(self, listener: Callable[[SessionState], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    @property
    def polling(self) -> bool:
        return self._polling

    def _reject(self, action: str, reason: str) -> bool:
        log(f"Ignoring {action}: {reason}", logging.WARNING)
        return False

    # -------------------- selection --------------------
    def select_namespace(self, namespace: str) -> bool:
        """Switch namespace; clears the pod and any chart."""
        if self.state.selection_locked:
            return self._reject("namespace change", self._lock_reason())
        self._cancel_polling()
        self.state.namespace = namespace
        self.state.selected_target = None
        self.state.artifact_epoch = None
        self.state.phase = Phase.IDLE
        self._notify()
        return True

    def select_target(self, name: str) -> bool:
        """Pick a pod in the current namespace; clears any chart."""
        if self.state.selection_locked:
            return self._reject("pod change", self._lock_reason())
        if self.state.namespace is None:
            return self._reject("pod change", "no namespace selected")
        self._cancel_polling()
        self.state.selected_target = Target(namespace=self.state.namespace, name=name)
        self.state.artifact_epoch = None
        self.state.phase = Phase.IDLE
        self._notify()
        return True

    def _lock_reason(self) -> str:
        if self.state.busy:
            return "a command is in flight"
        return f"session is {self.state.phase.value}"

    # -------------------- options --------------------
    def set_option(self, name: str, value) -> None:
        """Change one recording option; applies to the next stop."""
        self.state.options = self.state.options.with_option(name, value)
        self._notify()

    def set_options(self, options: RecordingOptions) -> None:
        self.state.options = options
        self._notify()

    # -------------------- commands --------------------
    def start(self) -> bool:
        state = self.state
        if self._closed:
            return self._reject("start", "controller is closed")
        if state.busy:
            return self._reject("start", "a command is in flight")
        if state.selected_target is None:
            return self._reject("start", "no pod selected")
        if state.phase not in SELECTABLE_PHASES:
            return self._reject("start", f"session is {state.phase.value}")

        rollback = (state.phase, state.last_status, state.artifact_epoch)
        target = state.selected_target

        # Tentative: progress shows "perf record" before the proxy answers.
        state.busy = True
        state.last_status = projection_for(StatusKind.PERF_RECORD)
        if self.hide_artifact_on_start:
            state.artifact_epoch = None
        self._notify()

        def on_started(_result) -> None:
            if self._closed:
                return
            state.phase = Phase.RECORDING
            state.artifact_epoch = None
            state.busy = False
            log(f"Recording {target}", logging.INFO)
            self._notify()

        def on_failed(exc: BaseException) -> None:
            if self._closed:
                return
            state.phase, state.last_status, state.artifact_epoch = rollback
            state.busy = False
            log(f"Start failed for {target}: {exc}", logging.ERROR)
            self._notify()

        self.dispatcher.run_async(lambda: self.client.start(target), on_started, on_failed)
        return True

    def stop(self, viewport_width: int) -> bool:
        """Stop recording; the chart is sized to ``viewport_width - CHART_MARGIN``."""
        state = self.state
        if self._closed:
            return self._reject("stop", "controller is closed")
        if state.busy:
            return self._reject("stop", "a command is in flight")
        if state.phase is not Phase.RECORDING or state.selected_target is None:
            return self._reject("stop", f"session is {state.phase.value}")

        target = state.selected_target
        options = state.options
        width = max(0, int(viewport_width) - CHART_MARGIN)

        state.busy = True
        state.artifact_epoch = None
        self._notify()

        def on_stopped(_result) -> None:
            if self._closed:
                return
            state.phase = Phase.STOPPING_AND_POLLING
            state.busy = False
            log(f"Stopped {target}, rendering at width {width}", logging.INFO)
            self._start_polling()
            self._notify()

        def on_failed(exc: BaseException) -> None:
            if self._closed:
                return
            state.phase = Phase.RECORDING
            state.busy = False
            log(f"Stop failed for {target}: {exc}", logging.ERROR)
            self._notify()

        self.dispatcher.run_async(
            lambda: self.client.stop(target, options, width), on_stopped, on_failed
        )
        return True

    # -------------------- polling --------------------
    def _start_polling(self) -> None:
        self._cancel_polling()
        self._polling = True
        self._schedule_poll(self._poll_generation)

    def _schedule_poll(self, generation: int) -> None:
        self._poll_timer = self.dispatcher.after(
            self.poll_interval_ms, lambda: self._poll(generation)
        )

    def _is_stale(self, generation: int) -> bool:
        return (
            self._closed
            or generation != self._poll_generation
            or self.state.phase is not Phase.STOPPING_AND_POLLING
        )

    def _poll(self, generation: int) -> None:
        self._poll_timer = None
        if self._is_stale(generation):
            return
        target = self.state.selected_target
        trace("status_poll", target=target, generation=generation)
        self.dispatcher.run_async(
            lambda: self.client.status(target),
            lambda raw: self._apply_status(generation, raw),
            lambda exc: self._poll_failed(generation, exc),
        )

    def _apply_status(self, generation: int, raw: str) -> None:
        if self._is_stale(generation):
            log(f"Dropping stale status {raw!r}", logging.DEBUG)
            return
        projection = project(raw)
        self.state.last_status = projection
        log(f"Status {self.state.selected_target}: {projection.label}", logging.DEBUG)

        if projection.is_terminal:
            self._cancel_polling()
            self.state.phase = Phase.ARTIFACT_READY
            self.state.artifact_epoch = self._next_epoch()
            log(f"Flamegraph ready for {self.state.selected_target}", logging.INFO)
            self._notify()
            return

        if projection.kind is StatusKind.UNKNOWN:
            log(f"Unrecognised status {raw!r}, still polling", logging.WARNING)
        self._notify()
        self._schedule_poll(generation)

    def _poll_failed(self, generation: int, exc: BaseException) -> None:
        if self._is_stale(generation):
            return
        log(f"Status poll failed, retrying: {exc}", logging.WARNING)
        self._schedule_poll(generation)

    def _cancel_polling(self) -> None:
        self._poll_generation += 1
        self._polling = False
        if self._poll_timer is not None:
            self.dispatcher.after_cancel(self._poll_timer)
            self._poll_timer = None

    def _next_epoch(self) -> int:
        epoch = int(self.time_source() * 1000)
        if self._last_epoch is not None and epoch <= self._last_epoch:
            epoch = self._last_epoch + 1
        self._last_epoch = epoch
        return epoch

    # -------------------- teardown --------------------
    def close(self) -> None:
        """Cancel the poll timer and ignore any response still in flight."""
        self._cancel_polling()
        self._closed = True
