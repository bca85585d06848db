import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional, Tuple

from helpers import git

LOG = logging.getLogger("nvim-updater")

RunGit = Callable[..., Tuple[int, str, str]]


class CountKind(Enum):
    UNKNOWN = "unknown"
    UP_TO_DATE = "up-to-date"
    AHEAD = "ahead"


@dataclass(frozen=True)
class PendingCount:
    """
    Upstream commits missing from the local checkout.

    Rendered as "?", "0" or the decimal count only at the display boundary.
    """

    kind: CountKind
    commits: int = 0

    @classmethod
    def unknown(cls) -> "PendingCount":
        return cls(CountKind.UNKNOWN)

    @classmethod
    def up_to_date(cls) -> "PendingCount":
        return cls(CountKind.UP_TO_DATE)

    @classmethod
    def ahead(cls, commits: int) -> "PendingCount":
        if commits < 0:
            raise ValueError(f"commit count cannot be negative: {commits}")
        return cls(CountKind.AHEAD, commits) if commits else cls.up_to_date()

    @classmethod
    def parse(cls, text: str) -> "PendingCount":
        try:
            value = int((text or "").strip())
        except ValueError:
            return cls.unknown()
        return cls.ahead(value) if value >= 0 else cls.unknown()

    @property
    def known(self) -> bool:
        return self.kind is not CountKind.UNKNOWN

    def __str__(self) -> str:
        if self.kind is CountKind.UNKNOWN:
            return "?"
        return str(self.commits)


class StatusSummary(NamedTuple):
    count: str
    text: str
    icon: str
    color: str


ACTIVE_TAG_TEXT = {
    "updating": "Updating Neovim…",
    "cloning": "Cloning Neovim source…",
    "showing-changes": "Showing new commits…",
}


def status_summary(count: PendingCount, active_tag: Optional[str] = None) -> StatusSummary:
    if active_tag in ACTIVE_TAG_TEXT:
        return StatusSummary(
            str(count), ACTIVE_TAG_TEXT[active_tag], "system-run-symbolic", "#8be9fd"
        )
    if count.kind is CountKind.UNKNOWN:
        return StatusSummary("?", "Update status unknown", "dialog-question-symbolic", "#f1fa8c")
    if count.kind is CountKind.UP_TO_DATE:
        return StatusSummary("0", "Up to date", "emblem-ok-symbolic", "#50fa7b")
    return StatusSummary(
        str(count),
        f"{count.commits} new commit(s) to pull",
        "software-update-available-symbolic",
        "#ff79c6",
    )


class StatusCache:
    """
    Last known pending-commit count for the source checkout.

    Written only by the probe (refresh/store) and by a successful update
    (reset); everything else reads `count`.
    """

    def __init__(self, source_dir: str, run_git: RunGit = git.run_git) -> None:
        self.source_dir = source_dir
        self._run_git = run_git
        self.count = PendingCount.unknown()
        self._listeners: list[Callable[[PendingCount], None]] = []

    def subscribe(self, fn: Callable[[PendingCount], None]) -> None:
        self._listeners.append(fn)

    def query(self) -> PendingCount:
        """Ask git how far behind origin the current branch is. Does not store."""
        # A failed fetch still leaves the last fetched remote refs to count against
        rc, _out, err = self._run_git(["fetch"], self.source_dir)
        if rc != 0:
            LOG.debug(f"git fetch failed: {err.strip()}")
        rc, out, _err = self._run_git(["rev-parse", "--abbrev-ref", "HEAD"], self.source_dir)
        if rc != 0:
            return PendingCount.unknown()
        branch = out.strip()
        rc, out, _err = self._run_git(
            ["rev-list", "--count", f"{branch}..origin/{branch}"], self.source_dir
        )
        if rc != 0:
            return PendingCount.unknown()
        return PendingCount.parse(out)

    def store(self, count: PendingCount) -> PendingCount:
        self.count = count
        LOG.debug(f"pending commits: {count}")
        for fn in list(self._listeners):
            fn(count)
        return count

    def refresh(self) -> PendingCount:
        return self.store(self.query())

    def reset(self) -> None:
        self.store(PendingCount.up_to_date())


# schedule(delay_seconds, callback) arms a one-shot timer
Schedule = Callable[[int, Callable[[], object]], object]


class PeriodicProbe:
    """
    Runs `tick` every `interval` seconds.

    Each firing re-arms only once the tick reports completion through the
    `done` callback it receives, so a slow refresh pushes the next one back
    instead of overlapping it.
    """

    def __init__(
        self,
        interval: int,
        tick: Callable[[Callable[[], None]], None],
        schedule: Schedule,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self._tick = tick
        self._schedule = schedule
        self._running = False
        self.firings = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self, immediate: bool = True) -> None:
        if self._running:
            return
        self._running = True
        if immediate:
            self._fire()
        else:
            self._arm()

    def stop(self) -> None:
        self._running = False

    def _arm(self) -> None:
        if self._running:
            self._schedule(self.interval, self._fire)

    def _fire(self) -> bool:
        if not self._running:
            return False
        self.firings += 1
        rearmed = False

        def done() -> None:
            nonlocal rearmed
            if not rearmed:
                rearmed = True
                self._arm()

        self._tick(done)
        # One-shot: GLib removes the source when the callback returns False
        return False
