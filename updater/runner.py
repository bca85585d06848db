"""
Runs a shell command inside a modal terminal surface.

A Run is a small state machine driven entirely by events delivered on the UI
thread: output lines, the process exit, key presses and window-close
requests. The close callback fires at most once, and only after the exit
event for the process has been seen.
"""

import logging
import os
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional

from helpers.notify import Level, Notifier
from helpers.proc import ChildProcess, Post, SpawnError, spawn_shell, stream
from helpers.settings import HEADLESS_ENV, Config
from updater.surface import SurfaceError, TerminalSurface

LOG = logging.getLogger("nvim-updater")

SUCCESS_CLOSE_KEYS = ("q", "space", "Return", "Escape", "y")
FAILURE_CLOSE_KEYS = ("q",)

# Viewport tags read by the status line
TAG_TERMINAL = "terminal"
TAG_UPDATING = "updating"
TAG_CLONING = "cloning"
TAG_SHOWING_CHANGES = "showing-changes"


class RunState(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass
class RunResult:
    exit_code: int = -1
    output: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.output)

    def copy(self) -> "RunResult":
        return RunResult(self.exit_code, list(self.output))


@dataclass
class RunOptions:
    command: str
    tag: str = TAG_TERMINAL
    autoclose: bool = False
    on_close: Optional[Callable[[RunResult], None]] = None
    legacy_chain_to_update: bool = False
    title: str = "Neovim Updater"
    cwd: Optional[str] = None

    def __post_init__(self) -> None:
        if self.legacy_chain_to_update:
            warnings.warn(
                "legacy_chain_to_update is deprecated; pass an on_close callback instead",
                DeprecationWarning,
                stacklevel=3,
            )


def _direct(fn, *args):
    fn(*args)
    return False


class Run:
    """One command execution and the modal that shows it."""

    def __init__(self, runner: "CommandRunner", options: RunOptions) -> None:
        self.runner = runner
        self.options = options
        self.result = RunResult()
        self.state = RunState.RUNNING
        self.surface: Optional[TerminalSurface] = None
        self.child: Optional[ChildProcess] = None
        self.reader: object = None
        self._close_callback_fired = False
        # Last output line is a prompt still waiting for its newline
        self._line_open = False

    @property
    def tag(self) -> str:
        return self.options.tag

    # -- events -----------------------------------------------------------

    def on_output(self, text: str, partial: bool = False) -> None:
        if self.state is not RunState.RUNNING:
            LOG.debug(f"dropping output after exit: {text!r}")
            return
        if self._line_open and self.result.output:
            self.result.output[-1] += text
        else:
            self.result.output.append(text)
        self._line_open = partial
        if self.surface is not None and self.surface.is_open():
            if partial:
                self.surface.write(text)
            else:
                self.surface.append(text)

    def on_exit(self, exit_code: int) -> None:
        if self.state is not RunState.RUNNING:
            return
        self.result.exit_code = exit_code
        LOG.info(f"[{self.tag}] exited with code {exit_code}")
        surface_open = self.surface is not None and self.surface.is_open()
        if surface_open:
            if self._line_open:
                self.surface.append("")
            self.surface.append(f"[exit {exit_code}]")
        self._line_open = False
        if surface_open:
            self.surface.set_running(False)
        if exit_code == 0:
            self.state = RunState.SUCCEEDED
            if self.options.autoclose:
                self._close_sequence()
                return
            if surface_open:
                self.surface.set_hint("Done. Press q, Space, Enter, Esc or y to close.")
        else:
            self.state = RunState.FAILED
            self.runner.notify(f"Command failed with exit code: {exit_code}", Level.ERROR)
            if surface_open:
                self.surface.set_hint(f"Failed (exit {exit_code}). Press q to close.")

    def on_key(self, key: str) -> bool:
        """
        Returns True when the key was consumed. While the command runs keys
        are left to the console, which forwards them to the process.
        """
        if self.state is RunState.RUNNING:
            return False
        if self.state is RunState.SUCCEEDED:
            if key in SUCCESS_CLOSE_KEYS:
                self._close_sequence()
            return True
        if self.state is RunState.FAILED:
            if key in FAILURE_CLOSE_KEYS:
                self._dismiss()
            return True
        return True

    def on_close_request(self) -> bool:
        """Window-manager close. Returns True when the surface may go away."""
        if self.state is RunState.RUNNING:
            self.runner.notify(
                "Command is still running; use Ctrl+C to interrupt it first.", Level.WARN
            )
            return False
        if self.state is RunState.SUCCEEDED:
            self._close_sequence()
        elif self.state is RunState.FAILED:
            self._dismiss()
        return True

    # -- process input ----------------------------------------------------

    def send_input(self, text: str) -> bool:
        if self.state is not RunState.RUNNING or self.child is None:
            return False
        try:
            self.child.write(text)
        except OSError as ex:
            LOG.warning(f"[{self.tag}] send failed: {ex}")
            return False
        return True

    def interrupt(self) -> bool:
        if self.state is not RunState.RUNNING or self.child is None:
            return False
        try:
            self.child.interrupt()
        except OSError as ex:
            LOG.warning(f"[{self.tag}] interrupt failed: {ex}")
            return False
        return True

    # -- closing ------------------------------------------------------------

    def _close_surface(self) -> None:
        if self.surface is not None and self.surface.is_open():
            self.surface.dismiss()
        self.state = RunState.CLOSED
        self.runner._finished(self)

    def _dismiss(self) -> None:
        # Failure path: no close callback, no follow-up workflow
        self._close_surface()

    def _close_sequence(self) -> None:
        if self._close_callback_fired:
            return
        self._close_callback_fired = True
        self._close_surface()
        if self.options.on_close is not None:
            self.options.on_close(self.result.copy())
        if self.runner.environ.get(HEADLESS_ENV):
            LOG.info("headless mode: quitting after successful run")
            self.runner.quit_host()
        if self.options.legacy_chain_to_update:
            self.runner.chain_to_update()


SurfaceFactory = Callable[[Run], TerminalSurface]


class CommandRunner:
    def __init__(
        self,
        config: Config,
        notify: Notifier,
        surface_factory: SurfaceFactory,
        spawn: Callable[..., ChildProcess] = spawn_shell,
        post: Post = _direct,
        quit_host: Callable[[], None] = lambda: None,
        chain_to_update: Callable[[], None] = lambda: None,
        environ: Mapping[str, str] = os.environ,
        reader: Callable[..., object] = stream,
    ) -> None:
        self.config = config
        self.notify = notify
        self._surface_factory = surface_factory
        self._spawn = spawn
        self._post = post
        self.quit_host = quit_host
        self.chain_to_update = chain_to_update
        self.environ = environ
        self._reader = reader
        self.active: list[Run] = []
        self._tag_listeners: list[Callable[[Optional[str]], None]] = []
        self._finish_listeners: list[Callable[[Run], None]] = []

    @property
    def active_tag(self) -> Optional[str]:
        return self.active[-1].tag if self.active else None

    def subscribe(self, fn: Callable[[Optional[str]], None]) -> None:
        self._tag_listeners.append(fn)

    def subscribe_finished(self, fn: Callable[[Run], None]) -> None:
        self._finish_listeners.append(fn)

    def _tag_changed(self) -> None:
        tag = self.active_tag
        for fn in list(self._tag_listeners):
            fn(tag)

    def run(self, options: RunOptions) -> Optional[Run]:
        """
        Spawn the command and open its terminal surface. Returns immediately;
        progress arrives later through the Run's event handlers. Returns None
        when the process or the surface could not be created.
        """
        run = Run(self, options)
        LOG.info(f"[{options.tag}] $ {options.command}")
        try:
            child = self._spawn(
                options.command, cwd=options.cwd, use_pty=self.config.use_pty
            )
        except SpawnError as ex:
            self.notify(f"Failed to start command: {ex}", Level.ERROR)
            return None
        run.child = child
        try:
            run.surface = self._surface_factory(run)
        except SurfaceError as ex:
            self.notify(f"Failed to create terminal window: {ex}", Level.ERROR)
            child.kill()
            return None
        run.surface.append(f"$ {options.command}")
        run.surface.set_running(True)
        self.active.append(run)
        self._tag_changed()
        run.reader = self._reader(child, run.on_output, run.on_exit, post=self._post)
        return run

    def _finished(self, run: Run) -> None:
        if run in self.active:
            self.active.remove(run)
            self._tag_changed()
            for fn in list(self._finish_listeners):
                fn(run)
