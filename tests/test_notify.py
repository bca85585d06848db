"""Tests for helpers.notify: verbosity gating of user-facing notices."""

import logging

from helpers.notify import Level, Notifier


def test_info_hidden_unless_verbose():
    shown = []
    notify = Notifier(verbose=False, sink=lambda m, lvl: shown.append(m))
    assert notify("building") is False
    assert notify("failed", Level.ERROR) is True
    assert notify("warned", Level.WARN) is True
    assert shown == ["failed", "warned"]


def test_force_shows_info():
    shown = []
    notify = Notifier(sink=lambda m, lvl: shown.append((m, lvl)))
    notify("Action canceled", force=True)
    assert shown == [("Action canceled", Level.INFO)]


def test_verbose_shows_info():
    shown = []
    notify = Notifier(verbose=True, sink=lambda m, lvl: shown.append(m))
    notify("cloning")
    assert shown == ["cloning"]


def test_everything_is_logged(caplog):
    notify = Notifier()
    with caplog.at_level(logging.DEBUG, logger="nvim-updater"):
        notify("quiet", Level.DEBUG)
    assert "quiet" in caplog.text


def test_no_sink_is_fine():
    assert Notifier().__call__("boom", Level.ERROR) is True
