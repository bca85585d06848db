import logging
from enum import IntEnum
from typing import Callable, Optional

LOG = logging.getLogger("nvim-updater")


class Level(IntEnum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR


# (message, level) -> None; the GTK host renders it, tests record it
Sink = Callable[[str, Level], None]


class Notifier:
    """
    Routes user-facing notices to the host.

    INFO and DEBUG notices are only shown when the config is verbose or the
    caller forces them. Everything is logged either way.
    """

    def __init__(self, verbose: bool = False, sink: Optional[Sink] = None) -> None:
        self.verbose = verbose
        self._sink = sink

    def set_sink(self, sink: Optional[Sink]) -> None:
        self._sink = sink

    def __call__(self, message: str, level: Level = Level.INFO, force: bool = False) -> bool:
        LOG.log(int(level), message)
        if level <= Level.INFO and not self.verbose and not force:
            return False
        if self._sink is not None:
            self._sink(message, level)
        return True
