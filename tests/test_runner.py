"""Tests for updater.runner: the run state machine and its close sequence."""

from unittest.mock import MagicMock

import pytest

from helpers.notify import Level, Notifier
from helpers.proc import SpawnError
from helpers.settings import HEADLESS_ENV, Config
from updater.runner import CommandRunner, RunOptions, RunState
from updater.surface import SurfaceError


class FakeSurface:
    def __init__(self, run):
        self.run = run
        self.lines = []
        self.hints = []
        self.running = None
        self.open = True
        self.dismissed = 0

    def is_open(self):
        return self.open

    def dismiss(self):
        self.dismissed += 1
        self.open = False

    def append(self, line):
        self.lines.append(line)

    def write(self, text):
        self.lines.append(("partial", text))

    def set_hint(self, text):
        self.hints.append(text)

    def set_running(self, running):
        self.running = running


def _runner(environ=None, spawn=None, surface_factory=FakeSurface):
    messages = []
    notifier = Notifier(verbose=False, sink=lambda m, lvl: messages.append((m, lvl)))
    child = MagicMock()
    runner = CommandRunner(
        Config(),
        notifier,
        surface_factory=surface_factory,
        spawn=spawn or MagicMock(return_value=child),
        quit_host=MagicMock(),
        chain_to_update=MagicMock(),
        environ=environ or {},
        reader=MagicMock(),
    )
    return runner, child, messages


def test_run_opens_surface_and_tracks_tag():
    runner, child, _ = _runner()
    tags = []
    runner.subscribe(tags.append)
    run = runner.run(RunOptions("make", tag="updating"))
    assert run.state is RunState.RUNNING
    assert run.surface.lines == ["$ make"]
    assert run.surface.running is True
    assert runner.active_tag == "updating"
    assert tags == ["updating"]
    runner._reader.assert_called_once()


def test_output_is_recorded_and_shown():
    runner, _, _ = _runner()
    run = runner.run(RunOptions("make"))
    run.on_output("building")
    assert run.result.output == ["building"]
    assert run.surface.lines[-1] == "building"


def test_close_callback_only_after_exit_and_once():
    runner, _, _ = _runner()
    on_close = MagicMock()
    run = runner.run(RunOptions("make", on_close=on_close))
    assert run.on_key("q") is False
    assert run.on_close_request() is False
    on_close.assert_not_called()

    run.on_output("ok")
    run.on_exit(0)
    assert run.state is RunState.SUCCEEDED
    run.on_key("space")
    run.on_key("q")
    run.on_close_request()
    on_close.assert_called_once()
    result = on_close.call_args[0][0]
    assert result.exit_code == 0
    assert result.output == ["ok"]
    assert run.state is RunState.CLOSED
    assert run.surface.dismissed == 1
    assert runner.active == []


@pytest.mark.parametrize("key", ["q", "space", "Return", "Escape", "y"])
def test_success_close_keys(key):
    runner, _, _ = _runner()
    on_close = MagicMock()
    run = runner.run(RunOptions("true", on_close=on_close))
    run.on_exit(0)
    run.on_key(key)
    on_close.assert_called_once()


def test_success_ignores_other_keys():
    runner, _, _ = _runner()
    on_close = MagicMock()
    run = runner.run(RunOptions("true", on_close=on_close))
    run.on_exit(0)
    assert run.on_key("x") is True
    on_close.assert_not_called()
    assert run.state is RunState.SUCCEEDED


def test_autoclose_fires_on_exit():
    runner, _, _ = _runner()
    on_close = MagicMock()
    run = runner.run(RunOptions("true", autoclose=True, on_close=on_close))
    run.on_exit(0)
    on_close.assert_called_once()
    assert run.state is RunState.CLOSED


def test_failure_notifies_and_never_calls_back():
    runner, _, messages = _runner()
    on_close = MagicMock()
    with pytest.warns(DeprecationWarning):
        options = RunOptions("false", on_close=on_close, legacy_chain_to_update=True)
    run = runner.run(options)
    run.on_exit(2)
    assert run.state is RunState.FAILED
    assert ("Command failed with exit code: 2", Level.ERROR) in messages
    assert run.surface.lines[-1] == "[exit 2]"

    run.on_key("Escape")
    assert run.state is RunState.FAILED
    run.on_key("q")
    assert run.state is RunState.CLOSED
    on_close.assert_not_called()
    runner.chain_to_update.assert_not_called()


def test_failure_close_request_dismisses_without_callback():
    runner, _, _ = _runner()
    on_close = MagicMock()
    run = runner.run(RunOptions("false", on_close=on_close))
    run.on_exit(1)
    assert run.on_close_request() is True
    on_close.assert_not_called()
    assert run.surface.dismissed == 1


def test_running_close_request_is_refused_with_warning():
    runner, child, messages = _runner()
    run = runner.run(RunOptions("sleep 10"))
    assert run.on_close_request() is False
    assert messages[-1][1] is Level.WARN
    child.kill.assert_not_called()
    assert run.surface.open


def test_legacy_chain_runs_after_on_close():
    runner, _, _ = _runner()
    order = []
    runner.chain_to_update.side_effect = lambda: order.append("chain")
    with pytest.warns(DeprecationWarning):
        options = RunOptions(
            "true", on_close=lambda _r: order.append("close"), legacy_chain_to_update=True
        )
    run = runner.run(options)
    run.on_exit(0)
    run.on_key("y")
    assert order == ["close", "chain"]


def test_headless_quits_after_success():
    runner, _, _ = _runner(environ={HEADLESS_ENV: "1"})
    run = runner.run(RunOptions("true"))
    run.on_exit(0)
    runner.quit_host.assert_not_called()
    run.on_key("Return")
    runner.quit_host.assert_called_once()


def test_headless_does_not_quit_on_failure():
    runner, _, _ = _runner(environ={HEADLESS_ENV: "1"})
    run = runner.run(RunOptions("false"))
    run.on_exit(1)
    run.on_key("q")
    runner.quit_host.assert_not_called()


def test_events_after_exit_are_ignored():
    runner, _, _ = _runner()
    run = runner.run(RunOptions("true"))
    run.on_exit(0)
    run.on_output("late")
    run.on_exit(1)
    assert run.result.exit_code == 0
    assert "late" not in run.result.output


def test_spawn_failure_opens_no_surface():
    factory = MagicMock()
    runner, _, messages = _runner(
        spawn=MagicMock(side_effect=SpawnError("no bash")), surface_factory=factory
    )
    assert runner.run(RunOptions("make")) is None
    factory.assert_not_called()
    assert messages[-1] == ("Failed to start command: no bash", Level.ERROR)
    assert runner.active == []


def test_surface_failure_kills_child():
    runner, child, messages = _runner(
        surface_factory=MagicMock(side_effect=SurfaceError("no display"))
    )
    assert runner.run(RunOptions("make")) is None
    child.kill.assert_called_once()
    assert messages[-1][1] is Level.ERROR
    assert runner.active_tag is None


def test_input_goes_to_child_while_running():
    runner, child, _ = _runner()
    run = runner.run(RunOptions("sudo make install"))
    assert run.send_input("secret\n") is True
    child.write.assert_called_once_with("secret\n")
    assert run.interrupt() is True
    child.interrupt.assert_called_once()
    run.on_exit(130)
    assert run.send_input("y\n") is False
    assert run.interrupt() is False


def test_finish_listeners_see_closed_run():
    runner, _, _ = _runner()
    seen = []
    runner.subscribe_finished(lambda run: seen.append((run.tag, run.state)))
    run = runner.run(RunOptions("true", tag="cloning"))
    run.on_exit(0)
    run.on_key("q")
    assert seen == [("cloning", RunState.CLOSED)]


def test_active_tag_is_most_recent_run():
    runner, _, _ = _runner()
    first = runner.run(RunOptions("a", tag="showing-changes"))
    second = runner.run(RunOptions("b", tag="updating"))
    assert runner.active_tag == "updating"
    second.on_exit(0)
    second.on_key("q")
    assert runner.active_tag == "showing-changes"
    first.on_exit(0)
    first.on_key("q")
    assert runner.active_tag is None


def test_prompt_tail_is_shown_and_joined_with_answer():
    runner, _, _ = _runner()
    run = runner.run(RunOptions("sudo make install"))
    run.on_output("[sudo] password for me: ", partial=True)
    assert run.surface.lines[-1] == ("partial", "[sudo] password for me: ")
    run.on_output("")
    run.on_output("Installing...")
    assert run.result.output == ["[sudo] password for me: ", "Installing..."]


def test_open_prompt_line_is_ended_before_exit_marker():
    runner, _, _ = _runner()
    run = runner.run(RunOptions("read x"))
    run.on_output("Continue? [y/N] ", partial=True)
    run.on_exit(1)
    assert run.surface.lines[-2:] == ["", "[exit 1]"]
    assert run.result.output == ["Continue? [y/N] "]
