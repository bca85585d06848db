"""Tests for helpers.proc, running a real /bin/sh through pipes and a PTY."""

import os
import threading
from unittest.mock import MagicMock

import pytest

from helpers.proc import (
    ChildProcess,
    SpawnError,
    _clean_line,
    _is_prompt_tail,
    spawn_shell,
    stream,
)


def _collect(child):
    lines, codes = [], []
    done = threading.Event()

    def on_exit(rc):
        codes.append(rc)
        done.set()

    stream(child, lambda text, partial: lines.append(text), on_exit)
    assert done.wait(10)
    return lines, codes


def test_pipe_output_and_exit_code():
    child = spawn_shell("echo one; echo two >&2; exit 3", use_pty=False, shell="sh")
    lines, codes = _collect(child)
    assert sorted(lines) == ["one", "two"]
    assert codes == [3]


def test_pipe_stdin():
    child = spawn_shell("read answer; echo got $answer", use_pty=False, shell="sh")
    child.write("y\n")
    lines, codes = _collect(child)
    assert lines == ["got y"]
    assert codes == [0]


def test_cwd(tmp_path):
    child = spawn_shell("pwd", cwd=str(tmp_path), use_pty=False, shell="sh")
    lines, _ = _collect(child)
    assert lines[-1].endswith(tmp_path.name)


def test_missing_shell_raises():
    with pytest.raises(SpawnError):
        spawn_shell("true", use_pty=False, shell="/nonexistent/shell")


def test_missing_cwd_raises(tmp_path):
    with pytest.raises(SpawnError):
        spawn_shell("true", cwd=str(tmp_path / "gone"), use_pty=False, shell="sh")


@pytest.mark.parametrize(
    "raw, clean",
    [("done\r", "done"), ("10%\r50%\r100%", "100%"), ("plain", "plain")],
)
def test_clean_line(raw, clean):
    assert _clean_line(raw) == clean


@pytest.mark.skipif(not os.path.exists("/dev/ptmx"), reason="no pseudo-terminals")
def test_pty_prompt_arrives_before_answer():
    child = spawn_shell("printf 'Password: '; read x; echo got $x", shell="sh")
    pieces, codes = [], []
    prompted, done = threading.Event(), threading.Event()

    def on_output(text, partial):
        pieces.append((text, partial))
        if partial:
            prompted.set()

    def on_exit(rc):
        codes.append(rc)
        done.set()

    stream(child, on_output, on_exit)
    assert prompted.wait(10)
    assert pieces == [("Password: ", True)]
    child.write("secret\n")
    assert done.wait(10)
    assert codes == [0]
    assert ("got secret", False) in pieces


@pytest.mark.parametrize(
    "tail, flushed",
    [("Password: ", True), ("", False), ("50%\r", False), ("\x1b[3", False)],
)
def test_prompt_tail_detection(tail, flushed):
    assert _is_prompt_tail(tail) is flushed


def test_missing_stdout_pipe_is_os_error():
    popen = MagicMock(stdout=None)
    with pytest.raises(OSError):
        list(ChildProcess(popen).lines())
