"""Tests for updater.status: pending count probing, summaries and the periodic probe."""

from unittest.mock import MagicMock

import pytest

from updater.status import (
    CountKind,
    PendingCount,
    PeriodicProbe,
    StatusCache,
    status_summary,
)


def _git(responses):
    """Fake run_git answering by the first argument; records every call."""
    calls = []

    def run_git(args, cwd=None):
        calls.append(args)
        return responses.get(args[0], (0, "", ""))

    return run_git, calls


def test_zero_commits_is_up_to_date():
    run_git, _ = _git({"rev-parse": (0, "master\n", ""), "rev-list": (0, "0\n", "")})
    cache = StatusCache("/src/nvim", run_git=run_git)
    count = cache.refresh()
    assert count == PendingCount.up_to_date()
    assert str(cache.count) == "0"


def test_branch_query_failure_skips_count():
    run_git, calls = _git({"rev-parse": (128, "", "not a git repository")})
    cache = StatusCache("/src/nvim", run_git=run_git)
    assert str(cache.refresh()) == "?"
    assert [c[0] for c in calls] == ["fetch", "rev-parse"]


def test_counts_against_remote_branch():
    run_git, calls = _git({"rev-parse": (0, "release-0.10\n", ""), "rev-list": (0, "7\n", "")})
    cache = StatusCache("/src/nvim", run_git=run_git)
    assert cache.refresh() == PendingCount.ahead(7)
    assert calls[-1] == ["rev-list", "--count", "release-0.10..origin/release-0.10"]


def test_failed_fetch_still_counts():
    run_git, _ = _git(
        {"fetch": (1, "", "offline"), "rev-parse": (0, "master\n", ""), "rev-list": (0, "3\n", "")}
    )
    assert StatusCache("/src", run_git=run_git).refresh().commits == 3


def test_refresh_is_stable():
    run_git, _ = _git({"rev-parse": (0, "master\n", ""), "rev-list": (0, "4\n", "")})
    cache = StatusCache("/src", run_git=run_git)
    assert cache.refresh() == cache.refresh() == PendingCount.ahead(4)


def test_query_does_not_store():
    run_git, _ = _git({"rev-parse": (0, "master\n", ""), "rev-list": (0, "4\n", "")})
    cache = StatusCache("/src", run_git=run_git)
    cache.query()
    assert cache.count == PendingCount.unknown()


def test_store_and_reset_notify_listeners():
    cache = StatusCache("/src", run_git=MagicMock())
    seen = []
    cache.subscribe(seen.append)
    cache.store(PendingCount.ahead(2))
    cache.reset()
    assert seen == [PendingCount.ahead(2), PendingCount.up_to_date()]


@pytest.mark.parametrize(
    "text, expected",
    [("12\n", "12"), ("0", "0"), ("", "?"), ("abc", "?"), ("-1", "?")],
)
def test_parse(text, expected):
    assert str(PendingCount.parse(text)) == expected


def test_ahead_rejects_negative():
    with pytest.raises(ValueError):
        PendingCount.ahead(-2)
    assert PendingCount.ahead(0).kind is CountKind.UP_TO_DATE
    assert not PendingCount.unknown().known


def test_summary_texts():
    assert status_summary(PendingCount.unknown()).text == "Update status unknown"
    assert status_summary(PendingCount.up_to_date()).text == "Up to date"
    summary = status_summary(PendingCount.ahead(5))
    assert summary.count == "5"
    assert summary.text == "5 new commit(s) to pull"
    assert status_summary(PendingCount.ahead(5), "updating").text == "Updating Neovim…"
    assert status_summary(PendingCount.up_to_date(), "terminal").text == "Up to date"


class FakeScheduler:
    def __init__(self):
        self.pending = []

    def __call__(self, delay, fn):
        self.pending.append((delay, fn))

    def fire(self):
        _delay, fn = self.pending.pop(0)
        return fn()


def test_probe_fires_immediately_and_rearms_on_done():
    sched = FakeScheduler()
    dones = []
    probe = PeriodicProbe(300, tick=dones.append, schedule=sched)
    probe.start()
    assert probe.firings == 1
    assert sched.pending == []
    dones[0]()
    dones[0]()
    assert [d for d, _ in sched.pending] == [300]
    assert sched.fire() is False
    assert probe.firings == 2


def test_probe_does_not_overlap_slow_ticks():
    sched = FakeScheduler()
    probe = PeriodicProbe(10, tick=lambda done: None, schedule=sched)
    probe.start()
    assert probe.firings == 1
    assert sched.pending == []


def test_probe_stop_prevents_rearm():
    sched = FakeScheduler()
    dones = []
    probe = PeriodicProbe(10, tick=dones.append, schedule=sched)
    probe.start(immediate=False)
    assert probe.firings == 0
    probe.stop()
    sched.fire()
    assert probe.firings == 0
    assert not probe.running


def test_probe_rejects_bad_interval():
    with pytest.raises(ValueError):
        PeriodicProbe(0, tick=MagicMock(), schedule=MagicMock())
