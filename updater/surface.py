from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol


class SurfaceError(RuntimeError):
    """Raised when a modal viewport cannot be allocated."""


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class ModalGeometry:
    """
    Size of a modal surface relative to the display it floats over.

    `fixed_height` (absolute units) replaces the height fraction for small
    surfaces such as the confirmation prompt.
    """

    width_fraction: float = 0.8
    height_fraction: float = 0.8
    fixed_height: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("width_fraction", "height_fraction"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {value}")
        if self.fixed_height is not None and self.fixed_height <= 0:
            raise ValueError(f"fixed_height must be positive, got {self.fixed_height}")

    def place(self, display_width: int, display_height: int) -> Rect:
        """Centered rectangle for the current display size."""
        width = max(1, int(display_width * self.width_fraction))
        if self.fixed_height is not None:
            height = min(self.fixed_height, max(1, display_height))
        else:
            height = max(1, int(display_height * self.height_fraction))
        x = max(0, (display_width - width) // 2)
        y = max(0, (display_height - height) // 2)
        return Rect(x, y, width, height)


TERMINAL_GEOMETRY = ModalGeometry(0.8, 0.8)
PROMPT_GEOMETRY = ModalGeometry(0.25, 1.0, fixed_height=72)


class Surface(Protocol):
    """What the orchestration core needs from an open modal viewport."""

    def is_open(self) -> bool: ...

    def dismiss(self) -> None: ...


class TerminalSurface(Surface, Protocol):
    def append(self, line: str) -> None: ...

    def write(self, text: str) -> None:
        """Show text with no line break, e.g. a prompt awaiting input."""

    def set_hint(self, text: str) -> None: ...

    def set_running(self, running: bool) -> None: ...
