"""
settings_window.py — Tkinter window for choosing the Hubstaff folder.

The folder must contain the ``HubstaffCLI`` binary; the status source runs it
from there.  "Browse…" opens a folder chooser, "Save" hands the path to the
caller and closes the window.
"""
from __future__ import annotations

import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Callable


# ── Colour palette ─────────────────────────────────────────────────────────
_BG      = "#1e1e2e"   # dark background
_FG      = "#cdd6f4"   # text
_ACCENT  = "#89b4fa"   # blue accent
_ENTRY   = "#313244"   # entry background
_BTN     = "#45475a"   # normal button


class SettingsWindow:
    """Window for editing the Hubstaff folder.

    Args:
        directory: Folder shown initially.
        on_save:   Called with the chosen folder when "Save" is clicked.
    """

    def __init__(self, directory: Path, on_save: Callable[[Path], None]) -> None:
        self._on_save = on_save

        self._root = tk.Tk()
        self._root.title("Hubstaff Tray — Settings")
        self._root.resizable(False, False)
        self._root.configure(bg=_BG)
        self._root.protocol("WM_DELETE_WINDOW", self._root.destroy)

        self._root.update_idletasks()
        w, h = 460, 150
        sw = self._root.winfo_screenwidth()
        sh = self._root.winfo_screenheight()
        self._root.geometry(f"{w}x{h}+{(sw-w)//2}+{(sh-h)//2}")
        self._root.attributes("-topmost", True)

        self._path_var = tk.StringVar(value=str(directory))
        self._build_styles()
        self._build_ui()

    # ── Styles ─────────────────────────────────────────────────────────────
    def _build_styles(self) -> None:
        style = ttk.Style(self._root)
        style.theme_use("clam")
        style.configure(".", background=_BG, foreground=_FG, font=("Segoe UI", 10))
        style.configure("TFrame", background=_BG)
        style.configure("TLabel", background=_BG, foreground=_FG)
        style.configure("TEntry", fieldbackground=_ENTRY, foreground=_FG,
                        insertcolor=_FG, borderwidth=0)
        style.configure("TButton", background=_BTN, foreground=_FG, padding=[8, 3])
        style.configure("Accent.TButton",
                        background=_ACCENT, foreground=_BG,
                        font=("Segoe UI", 10, "bold"), padding=[10, 5])
        style.map("Accent.TButton",
                  background=[("active", "#74c7ec"), ("pressed", "#74c7ec")])

    # ── UI construction ────────────────────────────────────────────────────
    def _build_ui(self) -> None:
        ttk.Label(self._root, text="Hubstaff folder (contains HubstaffCLI):").pack(
            anchor="w", padx=16, pady=(16, 4))

        row = ttk.Frame(self._root)
        row.pack(fill="x", padx=16, pady=4)
        ttk.Entry(row, textvariable=self._path_var, width=44).pack(side="left", fill="x", expand=True)
        ttk.Button(row, text="Browse…", command=self._on_browse_click).pack(side="right", padx=(8, 0))

        btn_frame = ttk.Frame(self._root)
        btn_frame.pack(fill="x", padx=16, pady=(12, 16))
        ttk.Button(
            btn_frame, text="Save",
            style="Accent.TButton",
            command=self._on_save_click,
        ).pack(side="right")

    # ── Button handlers ────────────────────────────────────────────────────
    def _on_browse_click(self) -> None:
        chosen = filedialog.askdirectory(
            parent=self._root,
            title="Select folder",
            initialdir=self._path_var.get() or str(Path.home()),
        )
        if chosen:
            self._path_var.set(chosen)

    def _on_save_click(self) -> None:
        raw = self._path_var.get().strip()
        path = Path(raw).expanduser()
        if not raw or not path.is_dir():
            messagebox.showerror("Invalid folder",
                                 f'"{raw}" is not a folder.',
                                 parent=self._root)
            return
        self._root.destroy()
        self._on_save(path)

    # ── Run ────────────────────────────────────────────────────────────────
    def run(self) -> None:
        """Enter the Tkinter event loop (blocks until window is destroyed)."""
        self._root.mainloop()
