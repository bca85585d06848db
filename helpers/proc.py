import codecs
import errno
import fcntl
import logging
import os
import pty
import signal
import subprocess
import termios
import threading
from typing import Callable, Iterator, Optional

LOG = logging.getLogger("nvim-updater")

# Schedules fn(*args) on the UI thread (GLib.idle_add in the app)
Post = Callable[..., object]


class SpawnError(RuntimeError):
    pass


def _env(force_color: bool) -> dict:
    env = dict(os.environ)
    if force_color:
        env.update(
            {
                "FORCE_COLOR": "1",
                "CLICOLOR": "1",
                "CLICOLOR_FORCE": "1",
                "TERM": "xterm-256color",
            }
        )
        env.pop("NO_COLOR", None)
    return env


def _make_controlling_tty() -> None:
    # Runs in the child: new session with the PTY slave (fd 0) as its terminal,
    # which sudo needs to prompt for a password
    os.setsid()
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def _clean_line(line: str) -> str:
    # PTYs translate \n to \r\n; progress meters redraw with bare \r
    line = line.rstrip("\r")
    if "\r" in line:
        line = line.rsplit("\r", 1)[-1]
    return line


def _is_prompt_tail(text: str) -> bool:
    # Progress meters (\r redraws) and half-read escape sequences wait for the
    # rest of their line
    return bool(text) and "\r" not in text and "\x1b" not in text


class ChildProcess:
    """
    A spawned shell command. Output (stdout and stderr merged) is read line by
    line; input can be sent either through the PTY master or stdin.
    """

    def __init__(self, popen: subprocess.Popen, master_fd: Optional[int] = None) -> None:
        self.popen = popen
        self.master_fd = master_fd

    @property
    def pid(self) -> int:
        return self.popen.pid

    def lines(self) -> Iterator[tuple[str, bool]]:
        """
        Yield (text, partial) pairs. A partial piece is the start of a line
        still waiting for its newline, e.g. "[sudo] password for me: "; the
        text that follows belongs to the same line.
        """
        if self.master_fd is None:
            if self.popen.stdout is None:
                raise OSError("process has no stdout pipe")
            for line in iter(self.popen.stdout.readline, ""):
                yield _clean_line(line.rstrip("\n")), False
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        while True:
            try:
                chunk = os.read(self.master_fd, 4096)
            except OSError as ex:
                # Linux reports EIO on the master once the child side closes
                if ex.errno != errno.EIO:
                    raise
                chunk = b""
            if not chunk:
                break
            pending += decoder.decode(chunk)
            *complete, pending = pending.split("\n")
            for line in complete:
                yield _clean_line(line), False
            if _is_prompt_tail(pending):
                yield pending, True
                pending = ""
        pending += decoder.decode(b"", final=True)
        if pending:
            yield _clean_line(pending), False

    def write(self, text: str) -> None:
        data = text.encode("utf-8", "replace")
        if self.master_fd is not None:
            os.write(self.master_fd, data)
        elif self.popen.stdin:
            self.popen.stdin.write(text)
            self.popen.stdin.flush()
        else:
            raise OSError("no stdin available")

    def interrupt(self) -> None:
        self.popen.send_signal(signal.SIGINT)

    def kill(self) -> None:
        try:
            self.popen.kill()
        except OSError:
            pass
        self.wait()

    def wait(self) -> int:
        rc = self.popen.wait()
        if self.master_fd is not None:
            try:
                os.close(self.master_fd)
            except OSError:
                pass
            self.master_fd = None
        return rc


def spawn_shell(
    command: str,
    cwd: Optional[str] = None,
    use_pty: bool = True,
    force_color: bool = True,
    shell: str = "bash",
) -> ChildProcess:
    """
    Start `command` under `shell -c`.

    With use_pty the child gets a pseudo-terminal so tools keep colors and
    interactive prompts (sudo asks for its password inside the console).
    Falls back to plain pipes when no PTY can be allocated.
    """
    argv = [shell, "-c", command]
    if use_pty:
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as ex:
            LOG.warning(f"failed to open pty: {ex}; falling back to pipes")
        else:
            try:
                p = subprocess.Popen(
                    argv,
                    cwd=cwd,
                    stdin=slave_fd,
                    stdout=slave_fd,
                    stderr=slave_fd,
                    env=_env(force_color),
                    close_fds=True,
                    preexec_fn=_make_controlling_tty,
                )
            except (OSError, subprocess.SubprocessError) as ex:
                os.close(master_fd)
                raise SpawnError(f"failed to start {shell}: {ex}") from ex
            finally:
                # Child keeps its own copy of the slave end
                os.close(slave_fd)
            LOG.debug(f"[spawn/pty] pid={p.pid} {command}")
            return ChildProcess(p, master_fd=master_fd)

    try:
        p = subprocess.Popen(
            argv,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            env=_env(force_color),
        )
    except OSError as ex:
        raise SpawnError(f"failed to start {shell}: {ex}") from ex
    LOG.debug(f"[spawn] pid={p.pid} {command}")
    return ChildProcess(p)


def _direct(fn, *args):
    fn(*args)
    return False


def stream(
    child: ChildProcess,
    on_output: Callable[[str, bool], None],
    on_exit: Callable[[int], None],
    post: Post = _direct,
) -> threading.Thread:
    """
    Read the child's output on a daemon thread and hand every line (or
    prompt tail, with partial=True), then the exit code, to `post` so the
    callbacks run on the UI thread in order.
    """

    def loop():
        try:
            for text, partial in child.lines():
                post(on_output, text, partial)
        except OSError as ex:
            post(on_output, f"[read error] {ex}", False)
        rc = child.wait()
        post(on_exit, rc)

    t = threading.Thread(target=loop, daemon=True)
    t.start()
    return t
