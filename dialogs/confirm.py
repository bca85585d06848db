from typing import Callable, Optional

import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Gdk", "3.0")
from gi.repository import Gdk, Gtk

from updater.prompt import PromptState
from updater.surface import PROMPT_GEOMETRY
from widgets.modal import ModalSurface


class ConfirmationPrompt(ModalSurface):
    """Two-line y/n question; answers arrive through the callbacks."""

    def __init__(
        self,
        parent: Optional[Gtk.Window],
        prompt_text: str,
        on_yes: Callable[[], None],
        on_no: Callable[[], None],
    ) -> None:
        super().__init__(parent, PROMPT_GEOMETRY, title="Confirm")
        self.get_style_context().add_class("confirm-prompt")
        self.state = PromptState(on_yes, on_no, close=self.dismiss)

        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=2)
        box.set_border_width(8)
        self.add(box)

        question = Gtk.Label(label=prompt_text)
        question.set_xalign(0.0)
        question.set_line_wrap(True)
        box.pack_start(question, False, False, 0)

        # Text-entry style answer line; the key handler decides, the entry only shows focus
        self.answer = Gtk.Entry()
        self.answer.set_has_frame(False)
        self.answer.set_text("y/n: ")
        self.answer.set_editable(False)
        box.pack_start(self.answer, False, False, 0)

        self.connect("key-press-event", self._on_key_press)
        self.connect("delete-event", self._on_delete)
        self.show_all()
        self.present()
        self.answer.grab_focus()
        self.answer.set_position(-1)

    def _on_key_press(self, _widget, event) -> bool:
        return self.state.press(Gdk.keyval_name(event.keyval) or "")

    def _on_delete(self, _widget, _event) -> bool:
        self.state.cancel()
        return True


def ask(
    parent: Optional[Gtk.Window],
    prompt_text: str,
    on_yes: Callable[[], None],
    on_no: Callable[[], None],
) -> ConfirmationPrompt:
    return ConfirmationPrompt(parent, prompt_text, on_yes, on_no)
