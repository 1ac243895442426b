"""Recording page: pick a pod, record, and open or download the flamegraph."""

import tkinter as tk
import webbrowser
from tkinter import filedialog, ttk

from furnace.models.schemas import ColorScheme
from gui.components.progress_bar import ProgressBarModel
from gui.state import Phase


class RecordingView(ttk.Frame):
    """Namespace/pod pickers, record button, options and the chart links."""

    def __init__(self, parent, app):
        super().__init__(parent, padding=10)
        self.app = app
        self.controller = app.controller
        self._build()
        app.registry.subscribe(lambda _targets: self._refresh_choices())
        self.controller.subscribe(lambda _state: self.render())
        app.presenter.subscribe(lambda _ref: self.render())
        self.render()

    def _build(self):
        controls = ttk.Frame(self)
        controls.pack(fill="x")

        self.namespace_var = tk.StringVar()
        self.namespace_combo = ttk.Combobox(controls, textvariable=self.namespace_var, state="readonly", width=20)
        self.namespace_combo.set("Select namespace...")
        self.namespace_combo.pack(side=tk.LEFT, padx=(0, 6))
        self.namespace_combo.bind("<<ComboboxSelected>>", lambda _: self._on_namespace())

        self.pod_var = tk.StringVar()
        self.pod_combo = ttk.Combobox(controls, textvariable=self.pod_var, state="readonly", width=28)
        self.pod_combo.set("Select pod...")
        self.pod_combo.pack(side=tk.LEFT, padx=(0, 6))
        self.pod_combo.bind("<<ComboboxSelected>>", lambda _: self._on_pod())

        self.record_btn = ttk.Button(controls, text="Start recording", command=self._on_record)
        self.record_btn.pack(side=tk.LEFT, padx=(0, 10))

        self.symfs_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(controls, text="Use --symfs", variable=self.symfs_var,
                        command=lambda: self.controller.set_option("use_symfs", self.symfs_var.get())
                        ).pack(side=tk.LEFT, padx=(0, 6))

        self.colors_var = tk.StringVar(value=ColorScheme.HOT.value)
        colors = ttk.Combobox(controls, textvariable=self.colors_var, state="readonly", width=8,
                              values=[c.value for c in ColorScheme])
        colors.pack(side=tk.LEFT, padx=(0, 6))
        colors.bind("<<ComboboxSelected>>",
                    lambda _: self.controller.set_option("color_scheme", self.colors_var.get()))

        self.inverted_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(controls, text="Inverted", variable=self.inverted_var,
                        command=lambda: self.controller.set_option("inverted", self.inverted_var.get())
                        ).pack(side=tk.LEFT, padx=(0, 6))

        self.download_btn = ttk.Button(controls, text="Download", command=self._on_download)

        body = ttk.Frame(self)
        body.pack(fill="both", expand=True, pady=(10, 0))
        self.recording_label = ttk.Label(body, text="")
        self.recording_label.pack(anchor="w")
        self.progress = ttk.Progressbar(body, mode="determinate", length=400)
        self.progress_label = ttk.Label(body, text="")
        self.chart_link = ttk.Label(body, text="", foreground="#3b82f6", cursor="hand2")
        self.chart_link.bind("<Button-1>", lambda _: self._open_chart())

    # ---------- events ----------
    def _on_namespace(self):
        if self.controller.select_namespace(self.namespace_var.get()):
            self.pod_combo.set("Select pod...")
            self._refresh_choices()

    def _on_pod(self):
        self.controller.select_target(self.pod_var.get())

    def _on_record(self):
        if self.controller.state.can_stop:
            self.controller.stop(self.winfo_toplevel().winfo_width())
        else:
            self.controller.start()

    def _open_chart(self):
        ref = self.app.presenter.reference
        if ref is not None:
            webbrowser.open(ref.view_url)

    def _on_download(self):
        ref = self.app.presenter.reference
        if ref is None:
            return
        folder = filedialog.askdirectory(title=f"Save {ref.filename} to...")
        if not folder:
            return
        self.app.dispatcher.run_async(
            lambda: self.app.client.download_chart(ref.target, ref.epoch, folder),
        )

    # ---------- rendering ----------
    def _refresh_choices(self):
        self.namespace_combo["values"] = self.app.registry.namespaces()
        self.pod_combo["values"] = self.app.registry.targets_for(self.controller.state.namespace)

    def render(self):
        state = self.controller.state
        locked = "disabled" if state.selection_locked else "readonly"
        self.namespace_combo.configure(state=locked)
        self.pod_combo.configure(state=locked)
        self.record_btn.configure(
            text="Stop recording" if state.phase is Phase.RECORDING else "Start recording",
            state="normal" if (state.can_start or state.can_stop) else "disabled",
        )

        bar = ProgressBarModel.from_state(state)
        self.recording_label.configure(text="Recording..." if bar.recording else "")
        if bar.visible:
            self.progress.configure(maximum=bar.maximum, value=bar.value)
            self.progress.pack(anchor="w", pady=(6, 0))
            self.progress_label.configure(text=bar.label)
            self.progress_label.pack(anchor="w")
        else:
            self.progress.pack_forget()
            self.progress_label.pack_forget()

        ref = self.app.presenter.reference
        if ref is not None:
            self.chart_link.configure(text=f"{ref.alt_text} (open in browser)")
            self.chart_link.pack(anchor="w", pady=(10, 0))
            self.download_btn.pack(side=tk.LEFT)
        else:
            self.chart_link.pack_forget()
            self.download_btn.pack_forget()
