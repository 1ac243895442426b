"""Registry of profiling-capable pods.

Keeps the latest ``/proxy/registered`` snapshot and refreshes it on a fixed
interval. Failures are logged and the previous snapshot is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from furnace.models.schemas import Target
from furnace.proxy_client import ProxyClient
from gui.utils.async_tasks import Dispatcher
from gui.utils.logging import log, trace

DEFAULT_REFRESH_INTERVAL_MS = 10_000


class TargetRegistry:
    """Periodically refreshed list of registered targets."""

    def __init__(
        self,
        client: ProxyClient,
        dispatcher: Dispatcher,
        interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.interval_ms = interval_ms
        self._targets: List[Target] = []
        self._timer: Any = None
        self._running = False
        self._generation = 0
        self._listeners: List[Callable[[List[Target]], None]] = []

    @property
    def targets(self) -> List[Target]:
        return list(self._targets)

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, listener: Callable[[List[Target]], None]) -> None:
        self._listeners.append(listener)

    # -------------------- lifecycle --------------------
    def start(self) -> None:
        """Fetch now and then every ``interval_ms`` until ``stop()``."""
        if self._running:
            return
        self._running = True
        self.refresh()
        self._schedule()

    def stop(self) -> None:
        self._running = False
        self._generation += 1
        if self._timer is not None:
            self.dispatcher.after_cancel(self._timer)
            self._timer = None

    def _schedule(self) -> None:
        self._timer = self.dispatcher.after(self.interval_ms, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if not self._running:
            return
        self.refresh()
        self._schedule()

    # -------------------- fetching --------------------
    def refresh(self) -> None:
        """Fetch in the background; the result is dropped if ``stop()`` ran first."""
        generation = self._generation
        trace("registry_refresh", known=len(self._targets), generation=generation)
        self.dispatcher.run_async(
            self.client.list_registered,
            lambda targets: self._apply_if_current(generation, targets),
            lambda exc: self._failed_if_current(generation, exc),
        )

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or not self._running

    def _apply_if_current(self, generation: int, targets: Optional[List[Target]]) -> None:
        if self._is_stale(generation):
            log("Dropping registry response that arrived after stop", logging.DEBUG)
            return
        self._apply(targets)

    def _failed_if_current(self, generation: int, exc: BaseException) -> None:
        if self._is_stale(generation):
            return
        self._failed(exc)

    def fetch_targets(self) -> List[Target]:
        """Fetch synchronously, keeping the previous list on failure."""
        try:
            targets = self.client.list_registered()
        except Exception as exc:
            self._failed(exc)
            return self.targets
        self._apply(targets)
        return self.targets

    def _apply(self, targets: Optional[List[Target]]) -> None:
        self._targets = list(targets or [])
        log(f"Registry refreshed: {len(self._targets)} targets", logging.DEBUG)
        for listener in list(self._listeners):
            listener(self.targets)

    def _failed(self, exc: BaseException) -> None:
        log(f"Registry refresh failed, keeping {len(self._targets)} known targets: {exc}", logging.WARNING)

    # -------------------- derived views --------------------
    def namespaces(self) -> List[str]:
        return sorted({t.namespace for t in self._targets})

    def targets_for(self, namespace: Optional[str]) -> List[str]:
        if namespace is None:
            return []
        return sorted({t.name for t in self._targets if t.namespace == namespace})

    def find(self, namespace: str, name: str) -> Optional[Target]:
        for target in self._targets:
            if target.namespace == namespace and target.name == name:
                return target
        return None
