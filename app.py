#!/usr/bin/env python3
"""
GTK3 app that keeps a Neovim source checkout built and installed.

Run without arguments to open the status window. A subcommand runs that
action straight away inside the window:

    nvim-updater update [branch] [build_type] [source_dir]
    nvim-updater remove [source_dir]
    nvim-updater changes
    nvim-updater clone [source_dir]
    nvim-updater health

With NVIMUPDATER_HEADLESS set, the app quits once a successful run is closed.

Requirements:
- Python 3
- GTK3 and PyGObject (python3-gi, gir1.2-gtk-3.0)
- git, make and sudo installed and available on PATH
"""

import argparse
import logging
import os
import sys
from typing import Optional

import gi

gi.require_version("Gtk", "3.0")
from gi.repository import Gtk  # noqa: E402

from helpers.notify import Notifier  # noqa: E402
from helpers.settings import APP_ID, DEBUG_ENV, Config, load_config  # noqa: E402
from main_window import MainWindow  # noqa: E402
from updater.status import StatusCache  # noqa: E402

LOG = logging.getLogger("nvim-updater")


def _setup_logging() -> None:
    level = logging.DEBUG if os.environ.get(DEBUG_ENV) else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvim-updater", description="Update, build and install Neovim from source."
    )
    sub = parser.add_subparsers(dest="action")

    upd = sub.add_parser("update", help="pull, build and install Neovim")
    upd.add_argument("branch", nargs="?")
    upd.add_argument("build_type", nargs="?")
    upd.add_argument("source_dir", nargs="?")

    rm = sub.add_parser("remove", help="delete the source directory")
    rm.add_argument("source_dir", nargs="?")

    clone = sub.add_parser("clone", help="clone the Neovim source")
    clone.add_argument("source_dir", nargs="?")

    sub.add_parser("changes", help="list new upstream commits")
    sub.add_parser("health", help="check the build prerequisites")
    return parser


def action_args(ns: argparse.Namespace) -> list[str]:
    """Positional values of the chosen subcommand, in order, without trailing gaps."""
    order = {
        "update": ("branch", "build_type", "source_dir"),
        "remove": ("source_dir",),
        "clone": ("source_dir",),
    }.get(ns.action or "", ())
    values = [getattr(ns, name, None) or "" for name in order]
    while values and not values[-1]:
        values.pop()
    return values


class App(Gtk.Application):
    def __init__(self, config: Config, action: Optional[str] = None, args=None) -> None:
        super().__init__(application_id=APP_ID)
        self.config = config
        self.notifier = Notifier(verbose=config.verbose)
        self.status = StatusCache(config.source_dir)
        self._action = action
        self._action_args = list(args or [])

    def do_activate(self) -> None:  # type: ignore[override]
        if not self.props.active_window:
            win = MainWindow(self, self.config, self.notifier, self.status)
            if self._action:
                action, self._action = self._action, None
                win.run_action(action, self._action_args)
        self.props.active_window.present()

    def do_shutdown(self) -> None:  # type: ignore[override]
        win = self.props.active_window
        probe = getattr(win, "probe", None)
        if probe is not None:
            probe.stop()
        Gtk.Application.do_shutdown(self)


def main(argv: Optional[list[str]] = None) -> int:
    _setup_logging()
    argv = list(argv if argv is not None else sys.argv)
    ns = build_parser().parse_args(argv[1:])
    config = load_config()
    LOG.debug(f"config: {config}")
    app = App(config, ns.action, action_args(ns))
    # GTK only sees the program name; subcommands are handled above
    return app.run(argv[:1] or ["nvim-updater"])


if __name__ == "__main__":
    raise SystemExit(main())
