"""Main GUI application object.

``FurnaceApp`` wires the proxy client, registry, session controller and chart
presenter around one dispatcher. It is import-safe; only ``main()`` needs a
display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from furnace.config import Settings, get_settings
from furnace.proxy_client import ProxyClient
from furnace.utils.logger import setup_logging
from gui.services.artifact_service import ArtifactPresenter
from gui.services.clients import get_proxy_client
from gui.services.registry_service import TargetRegistry
from gui.services.session_controller import SessionController
from gui.state import SessionState
from gui.utils.async_tasks import Dispatcher
from gui.utils.logging import set_verbose


@dataclass
class FurnaceApp:
    """App shell shared by the Tk window and the tests.

    The dispatcher decides how timers run: ``TkDispatcher`` for the window,
    ``ManualDispatcher`` in tests.
    """

    dispatcher: Dispatcher
    settings: Settings = field(default_factory=get_settings)
    client: Optional[ProxyClient] = None

    def __post_init__(self) -> None:
        set_verbose(self.settings.verbose)
        if self.client is None:
            self.client = get_proxy_client(self.settings)
        self.registry = TargetRegistry(
            self.client, self.dispatcher, interval_ms=self.settings.refresh_interval_ms
        )
        self.controller = SessionController(
            self.client, self.dispatcher, poll_interval_ms=self.settings.poll_interval_ms
        )
        self.presenter = ArtifactPresenter(base_url=self.client.base_url)
        self.controller.subscribe(self.presenter.refresh)

    @property
    def state(self) -> SessionState:
        return self.controller.state

    def run(self) -> None:
        """Start background refresh of the pod registry."""
        self.registry.start()

    def shutdown(self) -> None:
        """Cancel every timer owned by the app."""
        self.registry.stop()
        self.controller.close()


def main() -> None:
    import tkinter as tk

    from gui.utils.async_tasks import TkDispatcher
    from gui.views.recording import RecordingView

    settings = get_settings()
    setup_logging(settings.log_level, settings.verbose)

    root = tk.Tk()
    root.title("Furnace")
    root.geometry("1200x700")

    app = FurnaceApp(settings=settings, dispatcher=TkDispatcher(root))
    RecordingView(root, app).pack(fill="both", expand=True)

    def on_close():
        app.shutdown()
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", on_close)
    app.run()
    root.mainloop()


if __name__ == "__main__":
    main()
