import logging
from typing import Optional

import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Gdk", "3.0")
gi.require_version("Pango", "1.0")
from gi.repository import Gdk, Gtk, Pango

from helpers.ansi import AnsiParser, tag_style
from updater.runner import Run
from updater.surface import TERMINAL_GEOMETRY
from widgets.modal import ModalSurface

LOG = logging.getLogger("nvim-updater")

_PANGO_VALUES = {
    ("style", "italic"): Pango.Style.ITALIC,
    ("underline", "single"): Pango.Underline.SINGLE,
}

# Quick answers for prompts while the command runs
_RUNNING_KEYS = {
    "Return": "\n",
    "KP_Enter": "\n",
    "y": "y\n",
    "Y": "y\n",
    "n": "n\n",
    "N": "n\n",
}


class TerminalConsole(ModalSurface):
    """
    Modal terminal for a Run: streams the command output with ANSI colors and
    lets the user answer prompts (sudo password, y/n) while it runs.

    Key presses are offered to the Run first; once the command has exited the
    Run decides which keys close the window and swallows the rest.
    """

    def __init__(self, parent: Optional[Gtk.Window], run: Run) -> None:
        super().__init__(parent, TERMINAL_GEOMETRY, title=run.options.title)
        self.run = run
        self.get_style_context().add_class("terminal-surface")

        outer = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=6)
        outer.set_border_width(8)
        self.add(outer)

        title = Gtk.Label(label=run.options.title)
        title.set_xalign(0.0)
        title.get_style_context().add_class("modal-title")
        outer.pack_start(title, False, False, 0)

        self.textview = Gtk.TextView()
        self.textview.set_editable(False)
        self.textview.set_cursor_visible(False)
        self.textview.set_monospace(True)
        self.textview.set_wrap_mode(Gtk.WrapMode.WORD_CHAR)
        self.textview.get_style_context().add_class("terminal-view")
        self.buf = self.textview.get_buffer()
        self._parser = AnsiParser()

        sw = Gtk.ScrolledWindow()
        sw.set_policy(Gtk.PolicyType.AUTOMATIC, Gtk.PolicyType.AUTOMATIC)
        sw.add(self.textview)
        outer.pack_start(sw, True, True, 0)

        self.hint = Gtk.Label(label="")
        self.hint.set_xalign(0.0)
        self.hint.get_style_context().add_class("terminal-hint")
        outer.pack_start(self.hint, False, False, 0)

        # Input controls for the running process
        self.controls = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=6)
        self.input_entry = Gtk.Entry()
        self.input_entry.set_placeholder_text("Type input (Enter to send)")
        self.input_entry.connect("activate", self._on_send)
        self.controls.pack_start(self.input_entry, True, True, 0)

        self.password_toggle = Gtk.CheckButton.new_with_label("Hide input")
        self.password_toggle.connect(
            "toggled", lambda b: self.input_entry.set_visibility(not b.get_active())
        )
        self.controls.pack_start(self.password_toggle, False, False, 0)

        ctrlc_btn = Gtk.Button(label="Ctrl+C")
        ctrlc_btn.set_tooltip_text("Interrupt the running command")
        ctrlc_btn.connect("clicked", self._on_ctrl_c)
        self.controls.pack_start(ctrlc_btn, False, False, 0)
        outer.pack_end(self.controls, False, False, 0)

        self.connect("key-press-event", self._on_key_press)
        self.connect("delete-event", self._on_delete)

        self.show_all()
        self.present()
        self.input_entry.grab_focus()

    # -- TerminalSurface -----------------------------------------------------

    def append(self, line: str) -> None:
        self.write(line + "\n")

    def write(self, text: str) -> None:
        if not self.is_open():
            return
        for segment, tags in self._parser.feed(text):
            start_offset = self.buf.get_char_count()
            self.buf.insert(self.buf.get_end_iter(), segment)
            start_it = self.buf.get_iter_at_offset(start_offset)
            end_it = self.buf.get_end_iter()
            for name in tags:
                tag = self._ensure_tag(name)
                if tag is not None:
                    self.buf.apply_tag(tag, start_it, end_it)
        if self.textview.get_realized():
            mark = self.buf.create_mark(None, self.buf.get_end_iter(), False)
            self.textview.scroll_to_mark(mark, 0.0, True, 0.0, 1.0)
            self.buf.delete_mark(mark)

    def set_hint(self, text: str) -> None:
        if self.is_open():
            self.hint.set_text(text)

    def set_running(self, running: bool) -> None:
        if not self.is_open():
            return
        self.controls.set_sensitive(running)
        if not running:
            # Close keys go through the window handler, not the entry
            self.textview.grab_focus()

    # -- internals -------------------------------------------------------------

    def _ensure_tag(self, name: str) -> Optional[Gtk.TextTag]:
        table = self.buf.get_tag_table()
        tag = table.lookup(name)
        if tag is not None:
            return tag
        try:
            prop, value = tag_style(name)
        except KeyError:
            return None
        tag = Gtk.TextTag.new(name)
        tag.set_property(prop, _PANGO_VALUES.get((prop, value), value))
        table.add(tag)
        return tag

    def _on_key_press(self, _widget, event) -> bool:
        name = Gdk.keyval_name(event.keyval) or ""
        if self.run.on_key(name):
            return True
        # Still running: the entry handles its own typing
        if self.input_entry.has_focus():
            return False
        if event.state & Gdk.ModifierType.CONTROL_MASK and name in ("c", "C"):
            self._on_ctrl_c(None)
            return True
        payload = _RUNNING_KEYS.get(name)
        if payload is not None:
            self._send_text(payload)
            return True
        return False

    def _on_delete(self, _widget, _event) -> bool:
        self.run.on_close_request()
        # Closing is done by the Run through dismiss(), never by the default handler
        return True

    def _on_send(self, _entry) -> None:
        txt = self.input_entry.get_text()
        if not txt.endswith("\n"):
            txt += "\n"
        self._send_text(txt, echo=not self.password_toggle.get_active())
        self.input_entry.set_text("")

    def _send_text(self, text: str, echo: bool = True) -> None:
        if not self.run.send_input(text):
            self.append("[send error] process is not accepting input")
            return
        if echo:
            LOG.debug(f"[sent] {text!r}")

    def _on_ctrl_c(self, _btn) -> None:
        if self.run.interrupt():
            self.append("[signal] SIGINT sent")
