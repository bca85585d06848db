import re
from typing import Iterator

# Tag name -> (Gtk.TextTag property, value). Mirrors the console palette in style/css.py
BASE_TAGS: dict[str, tuple[str, object]] = {
    "ansi-bold": ("weight", 700),
    "ansi-dim": ("scale", 0.95),
    "ansi-italic": ("style", "italic"),
    "ansi-underline": ("underline", "single"),
    "ansi-red": ("foreground", "#ff5555"),
    "ansi-green": ("foreground", "#50fa7b"),
    "ansi-yellow": ("foreground", "#f1fa8c"),
    "ansi-blue": ("foreground", "#8be9fd"),
    "ansi-magenta": ("foreground", "#ff79c6"),
    "ansi-cyan": ("foreground", "#66d9ef"),
    "ansi-white": ("foreground", "#f8f8f2"),
    "ansi-bright-black": ("foreground", "#6272a4"),
    "ansi-bright-red": ("foreground", "#ff6e6e"),
    "ansi-bright-green": ("foreground", "#69ff94"),
    "ansi-bright-yellow": ("foreground", "#ffffa5"),
    "ansi-bright-blue": ("foreground", "#9aedfe"),
    "ansi-bright-magenta": ("foreground", "#ff92df"),
    "ansi-bright-cyan": ("foreground", "#82e9ff"),
    "ansi-bright-white": ("foreground", "#ffffff"),
}

SGR_TAGS = {
    "1": "ansi-bold",
    "2": "ansi-dim",
    "3": "ansi-italic",
    "4": "ansi-underline",
    "30": "ansi-bright-black",
    "31": "ansi-red",
    "32": "ansi-green",
    "33": "ansi-yellow",
    "34": "ansi-blue",
    "35": "ansi-magenta",
    "36": "ansi-cyan",
    "37": "ansi-white",
    "90": "ansi-bright-black",
    "91": "ansi-bright-red",
    "92": "ansi-bright-green",
    "93": "ansi-bright-yellow",
    "94": "ansi-bright-blue",
    "95": "ansi-bright-magenta",
    "96": "ansi-bright-cyan",
    "97": "ansi-bright-white",
}

BG_COLORS = {
    "40": "#000000",
    "41": "#ff5555",
    "42": "#50fa7b",
    "43": "#f1fa8c",
    "44": "#8be9fd",
    "45": "#ff79c6",
    "46": "#66d9ef",
    "47": "#f8f8f2",
    "100": "#6272a4",
    "101": "#ff6e6e",
    "102": "#69ff94",
    "103": "#ffffa5",
    "104": "#9aedfe",
    "105": "#ff92df",
    "106": "#82e9ff",
    "107": "#ffffff",
}

_XTERM_BASE = [
    "#000000", "#800000", "#008000", "#808000",
    "#000080", "#800080", "#008080", "#c0c0c0",
    "#808080", "#ff0000", "#00ff00", "#ffff00",
    "#0000ff", "#ff00ff", "#00ffff", "#ffffff",
]
_CUBE = [0, 95, 135, 175, 215, 255]

# SGR sequences are interpreted; any other CSI (cursor moves, erase line) is dropped
_CSI_RE = re.compile(r"\x1b\[([0-9;?]*)([A-Za-z])")


def xterm_color(n: int) -> str:
    if n < 16:
        return _XTERM_BASE[n]
    if n <= 231:
        n -= 16
        r, g, b = (n // 36) % 6, (n // 6) % 6, n % 6
        return f"#{_CUBE[r]:02x}{_CUBE[g]:02x}{_CUBE[b]:02x}"
    level = 8 + (n - 232) * 10
    return f"#{level:02x}{level:02x}{level:02x}"


def tag_style(name: str) -> tuple[str, object]:
    """
    Resolve any tag name produced by AnsiParser to its text-tag property.
    """
    if name in BASE_TAGS:
        return BASE_TAGS[name]
    if name.startswith("ansi-bg-"):
        return "background", BG_COLORS[name[len("ansi-bg-"):]]
    if name.startswith("ansi-xterm-"):
        _, _, kind, idx = name.split("-")
        prop = "foreground" if kind == "38" else "background"
        return prop, xterm_color(int(idx))
    raise KeyError(name)


class AnsiParser:
    """
    Splits terminal output into (text, tags) segments.

    Active attributes carry over between feed() calls, so a color opened on
    one output line still applies to the next until it is reset.
    """

    def __init__(self) -> None:
        self.active: list[str] = []

    def reset(self) -> None:
        self.active = []

    def feed(self, raw: str) -> Iterator[tuple[str, tuple[str, ...]]]:
        pos = 0
        while True:
            m = _CSI_RE.search(raw, pos)
            segment = raw[pos : m.start()] if m else raw[pos:]
            if segment:
                yield segment, tuple(self.active)
            if not m:
                return
            if m.group(2) == "m":
                self._apply_sgr(m.group(1))
            pos = m.end()

    def _apply_sgr(self, params: str) -> None:
        codes = params.split(";") if params else []
        if not codes or "0" in codes:
            self.active = []
            # Codes after a reset in the same sequence still apply
            if "0" in codes:
                codes = codes[len(codes) - codes[::-1].index("0"):]
        i = 0
        while i < len(codes):
            c = codes[i]
            if c in ("38", "48") and i + 2 < len(codes) and codes[i + 1] == "5":
                try:
                    idx = int(codes[i + 2])
                except ValueError:
                    idx = -1
                if 0 <= idx <= 255:
                    self._add(f"ansi-xterm-{c}-{idx}")
                i += 3
                continue
            if c in SGR_TAGS:
                self._add(SGR_TAGS[c])
            elif c in BG_COLORS:
                self._add(f"ansi-bg-{c}")
            i += 1

    def _add(self, name: str) -> None:
        if name not in self.active:
            self.active.append(name)


def strip_ansi(raw: str) -> str:
    return _CSI_RE.sub("", raw)
