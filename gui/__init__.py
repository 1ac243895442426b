"""Furnace GUI package.

Everything except ``gui.views`` and ``gui.app.main`` is import-safe without a
display server, so the session logic runs headless in tests and scripts.
"""
