from typing import Optional

import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Gdk", "3.0")
from gi.repository import Gdk, Gtk

from updater.surface import ModalGeometry, SurfaceError


class ModalSurface(Gtk.Window):
    """
    Borderless modal window floating centered over the host window.

    Size and position are recomputed from the host's current size whenever
    the host is resized. dismiss() is safe to call any number of times and
    disconnects the resize handler before the window is destroyed.
    """

    def __init__(self, parent: Optional[Gtk.Window], geometry: ModalGeometry, title: str = "") -> None:
        if Gdk.Screen.get_default() is None:
            raise SurfaceError("no display available")
        super().__init__(title=title)
        if parent is not None:
            self.set_transient_for(parent)
        self.set_modal(True)
        self.set_decorated(False)
        self.set_skip_taskbar_hint(True)
        self.set_type_hint(Gdk.WindowTypeHint.DIALOG)
        self.get_style_context().add_class("modal-surface")

        self.geometry = geometry
        self._parent = parent
        self._open = True
        self._resize_handler: Optional[int] = None
        if parent is not None:
            self._resize_handler = parent.connect("configure-event", self._on_display_resized)
        self.connect("destroy", self._on_destroy)
        self.resize_to_display()

    def _display_rect(self) -> tuple[int, int, int, int]:
        if self._parent is not None and self._parent.get_visible():
            px, py = self._parent.get_position()
            pw, ph = self._parent.get_size()
            return px, py, pw, ph
        display = Gdk.Display.get_default()
        monitor = None
        if display is not None:
            monitor = display.get_primary_monitor() or display.get_monitor(0)
        if monitor is None:
            raise SurfaceError("no monitor available")
        area = monitor.get_workarea()
        return area.x, area.y, area.width, area.height

    def resize_to_display(self) -> None:
        if not self._open:
            return
        ox, oy, dw, dh = self._display_rect()
        rect = self.geometry.place(dw, dh)
        self.resize(rect.width, rect.height)
        self.move(ox + rect.x, oy + rect.y)

    def _on_display_resized(self, _widget, _event) -> bool:
        self.resize_to_display()
        return False

    def is_open(self) -> bool:
        return self._open

    def dismiss(self) -> None:
        if not self._open:
            return
        self._disconnect_resize()
        self._open = False
        self.destroy()

    def _disconnect_resize(self) -> None:
        if self._resize_handler is not None and self._parent is not None:
            self._parent.disconnect(self._resize_handler)
            self._resize_handler = None

    def _on_destroy(self, *_args) -> None:
        # Destroyed from outside (parent went away): still drop the handler
        self._disconnect_resize()
        self._open = False
