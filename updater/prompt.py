from typing import Callable, Optional

YES_KEYS = ("y",)
NO_KEYS = ("n", "q", "Escape")


class PromptState:
    """
    Answer logic of a y/n prompt.

    The first bound key decides; the surface is closed before the callback
    runs and every later key is ignored, so exactly one of on_yes/on_no fires.
    Unbound keys are swallowed so they never reach the window underneath.
    """

    def __init__(
        self,
        on_yes: Callable[[], None],
        on_no: Callable[[], None],
        close: Optional[Callable[[], None]] = None,
    ) -> None:
        self._on_yes = on_yes
        self._on_no = on_no
        self._close = close
        self.answer: Optional[bool] = None

    @property
    def answered(self) -> bool:
        return self.answer is not None

    def press(self, key: str) -> bool:
        if self.answered:
            return True
        if key in YES_KEYS:
            self._finish(True)
        elif key in NO_KEYS:
            self._finish(False)
        return True

    def cancel(self) -> None:
        # Window-manager close counts as Escape
        self.press("Escape")

    def _finish(self, answer: bool) -> None:
        self.answer = answer
        if self._close is not None:
            self._close()
        if answer:
            self._on_yes()
        else:
            self._on_no()
