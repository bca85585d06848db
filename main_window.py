#!/usr/bin/env python3
"""
GTK3 window that keeps a Neovim source checkout up to date.

- Shows how many upstream commits the local checkout is missing; the count is
  refreshed on startup, on demand, and periodically when enabled.
- Update runs clone/fetch, checkout, pull, build and install in a modal
  console; the console stays open on failure so the output can be read.
- View changes lists the new commits and offers to update afterwards.

Requirements:
- Python 3
- GTK3 and PyGObject (python3-gi, gir1.2-gtk-3.0)
- git, make and sudo available on PATH
"""

import logging
import os
import threading
import time
from typing import Callable, Mapping, Optional

import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Gdk", "3.0")
from gi.repository import (
    Gdk,  # noqa: E402  # type: ignore
    Gio,  # noqa: E402  # type: ignore
    GLib,  # noqa: E402  # type: ignore
    Gtk,  # noqa: E402  # type: ignore
    Pango,  # noqa: E402  # type: ignore
)

from dialogs.about import show_about_dialog
from dialogs.confirm import ask
from dialogs.logs import show_health_dialog, show_logs_dialog
from helpers.health import check_health
from helpers.notify import Level, Notifier
from helpers.settings import APP_TITLE, Config
from style.css import get_css
from updater.pipeline import UpdateOptions
from updater.runner import TAG_UPDATING, CommandRunner, Run
from updater.status import PendingCount, PeriodicProbe, StatusCache
from updater.workflow import Updater
from widgets.console import TerminalConsole

LOG = logging.getLogger("nvim-updater")

_BANNER_CLASSES = ("status-up", "status-ok", "status-unknown", "status-busy")

# (accelerator, label) -> action name; registered when default_keymaps is on
DEFAULT_ACCELS = (
    ("<Control>u", "update"),
    ("<Control><Shift>d", "update-debug"),
    ("<Control><Shift>r", "update-release"),
    ("<Control><Shift>c", "remove"),
    ("<Control><Shift>l", "changes"),
)


class MainWindow(Gtk.ApplicationWindow):
    def __init__(
        self,
        app: Gtk.Application,
        config: Config,
        notifier: Notifier,
        status: StatusCache,
        environ: Mapping[str, str] = os.environ,
    ) -> None:
        super().__init__(application=app, title=APP_TITLE)
        self.set_default_size(560, 300)
        self.set_border_width(0)
        self.config = config
        self.notifier = notifier
        self.status = status
        self._run_logs: list[tuple[str, str, str]] = []  # (timestamp, event, details)
        self._refreshing = False

        self._init_css()

        # HeaderBar
        hb = Gtk.HeaderBar()
        hb.set_show_close_button(True)
        hb.props.title = APP_TITLE
        hb.props.subtitle = config.source_dir
        self.set_titlebar(hb)

        self.refresh_btn = Gtk.Button.new_from_icon_name("view-refresh", Gtk.IconSize.BUTTON)
        self.refresh_btn.set_tooltip_text("Check for new commits")
        self.refresh_btn.connect("clicked", lambda _b: self.refresh_status(show_none=True))
        hb.pack_start(self.refresh_btn)

        self.update_btn = Gtk.Button(label="Update")
        self.update_btn.set_tooltip_text("Pull, build and install Neovim")
        self.update_btn.connect("clicked", lambda _b: self.run_action("update"))

        self.view_btn = Gtk.Button(label="View changes")
        self.view_btn.set_tooltip_text("List commits waiting upstream")
        self.view_btn.connect("clicked", lambda _b: self.run_action("changes"))

        menu = Gtk.Menu()
        for label, action in (
            ("Update (Debug build)", "update-debug"),
            ("Update (Release build)", "update-release"),
            ("Clone source", "clone"),
            ("Remove source directory", "remove"),
            ("Health check", "health"),
            ("Run logs", "logs"),
            ("About", "about"),
        ):
            item = Gtk.MenuItem(label=label)
            item.connect("activate", lambda _i, a=action: self.run_action(a))
            menu.append(item)
        menu.show_all()

        menu_btn = Gtk.MenuButton()
        menu_btn.set_tooltip_text("Menu")
        menu_btn.set_popup(menu)
        menu_btn.set_image(Gtk.Image.new_from_icon_name("open-menu-symbolic", Gtk.IconSize.BUTTON))

        hb.pack_end(menu_btn)
        hb.pack_end(self.view_btn)
        hb.pack_end(self.update_btn)

        # Main content
        outer = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=0)
        self.add(outer)

        content = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=12)
        content.set_border_width(16)
        outer.pack_start(content, True, True, 0)

        banner_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=12)
        banner_box.set_halign(Gtk.Align.CENTER)
        banner_box.set_valign(Gtk.Align.CENTER)
        banner_box.set_vexpand(True)
        self.status_icon = Gtk.Image.new_from_icon_name("dialog-question-symbolic", Gtk.IconSize.DIALOG)
        banner_box.pack_start(self.status_icon, False, False, 0)
        self.primary_label = Gtk.Label()
        self.primary_label.set_use_markup(True)
        self.primary_label.set_line_wrap(True)
        self.primary_label.set_line_wrap_mode(Pango.WrapMode.WORD_CHAR)
        self.primary_label.get_style_context().add_class("status-banner")
        banner_box.pack_start(self.primary_label, False, False, 0)
        content.pack_start(banner_box, True, True, 0)

        # Spinner (for background work)
        spin_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        self.spinner = Gtk.Spinner()
        spin_box.pack_start(self.spinner, False, False, 0)
        self.status_hint = Gtk.Label(label="")
        self.status_hint.set_xalign(0.0)
        spin_box.pack_start(self.status_hint, False, False, 0)
        content.pack_start(spin_box, False, False, 0)

        # Message panel for notifications
        self.message_revealer = Gtk.Revealer()
        self.message_revealer.set_transition_type(Gtk.RevealerTransitionType.SLIDE_DOWN)
        self.message_revealer.set_reveal_child(False)
        message_frame = Gtk.Frame()
        message_frame.set_shadow_type(Gtk.ShadowType.IN)
        message_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        message_box.set_border_width(8)
        self.message_icon = Gtk.Image.new_from_icon_name("dialog-information-symbolic", Gtk.IconSize.MENU)
        self.message_label = Gtk.Label(xalign=0.0)
        self.message_label.set_line_wrap(True)
        self.message_label.set_max_width_chars(80)
        close_msg = Gtk.Button.new_from_icon_name("window-close-symbolic", Gtk.IconSize.MENU)
        close_msg.set_relief(Gtk.ReliefStyle.NONE)
        close_msg.connect("clicked", lambda _b: self.message_revealer.set_reveal_child(False))
        message_box.pack_start(self.message_icon, False, False, 0)
        message_box.pack_start(self.message_label, True, True, 0)
        message_box.pack_end(close_msg, False, False, 0)
        message_frame.add(message_box)
        self.message_revealer.add(message_frame)
        outer.pack_end(self.message_revealer, False, False, 0)

        # Orchestration core
        notifier.set_sink(self._show_message)
        self.runner = CommandRunner(
            config,
            notifier,
            surface_factory=lambda run: TerminalConsole(self, run),
            post=GLib.idle_add,
            quit_host=app.quit,
            environ=environ,
        )
        self.updater = Updater(
            config,
            notifier,
            status,
            self.runner,
            ask=lambda text, on_yes, on_no: ask(self, text, on_yes, on_no),
        )
        self.updater.request_refresh = self.refresh_status
        self.runner.subscribe(lambda _tag: self._apply_status())
        self.runner.subscribe_finished(self._on_run_finished)
        status.subscribe(lambda _count: self._apply_status())

        if config.default_keymaps:
            self._register_accels()

        self.show_all()
        self._apply_status()

        self.probe: Optional[PeriodicProbe] = None
        if config.check_for_updates:
            self.probe = PeriodicProbe(
                config.update_interval,
                tick=lambda done: self.refresh_status(
                    show_none=False, done=done, announce=config.notify_updates
                ),
                schedule=GLib.timeout_add_seconds,
            )
            self.probe.start()
        else:
            self.refresh_status()

    # -- actions ---------------------------------------------------------------

    def run_action(self, action: str, args: Optional[list[str]] = None) -> None:
        """Entry point shared by buttons, accelerators and the command line."""
        args = [a for a in (args or [])]
        if action == "update":
            branch, build_type, source_dir = (args + [None, None, None])[:3]
            self.updater.update(
                UpdateOptions(source_dir=source_dir, build_type=build_type, branch=branch)
            )
        elif action == "update-debug":
            self.updater.update(UpdateOptions(build_type="Debug"))
        elif action == "update-release":
            self.updater.update(UpdateOptions(build_type="Release"))
        elif action == "changes":
            self.updater.show_pending_changes()
        elif action == "clone":
            self.updater.clone_source(*(args[:1] or [None]))
        elif action == "remove":
            self.updater.remove_source_dir(*(args[:1] or [None]))
        elif action == "health":
            self._show_health()
        elif action == "logs":
            show_logs_dialog(self)
        elif action == "about":
            show_about_dialog(self, APP_TITLE, self.config)
        else:
            self.notifier(f"Unknown action: {action}", Level.ERROR)

    def _register_accels(self) -> None:
        accel = Gtk.AccelGroup()
        for spec, action in DEFAULT_ACCELS:
            key, mods = Gtk.accelerator_parse(spec)
            accel.connect(
                key, mods, Gtk.AccelFlags.VISIBLE, self._accel_handler(action)
            )
        self.add_accel_group(accel)

    def _accel_handler(self, action: str) -> Callable[..., bool]:
        def handler(*_args) -> bool:
            self.run_action(action)
            return True

        return handler

    def _show_health(self) -> None:
        self._busy(True, "Running health check...")

        def work():
            items = check_health(self.config)

            def done():
                self._busy(False, "")
                show_health_dialog(self, items)
                return False

            GLib.idle_add(done)

        threading.Thread(target=work, daemon=True).start()

    # -- status ----------------------------------------------------------------

    def refresh_status(
        self,
        show_none: bool = False,
        done: Optional[Callable[[], None]] = None,
        announce: bool = False,
    ) -> None:
        """
        Query git off the UI thread and store the result back on it. Only one
        refresh runs at a time; `done` fires once the result is stored.
        """
        if self._refreshing:
            if done:
                done()
            return
        self._refreshing = True
        self._busy(True, "Checking for new commits...")

        def refresh_work():
            count = self.status.query()
            GLib.idle_add(self._finish_refresh, count, show_none, announce, done)

        threading.Thread(target=refresh_work, daemon=True).start()

    def _finish_refresh(
        self,
        count: PendingCount,
        show_none: bool,
        announce: bool,
        done: Optional[Callable[[], None]],
    ) -> bool:
        self._refreshing = False
        self.status.store(count)
        self._busy(False, "")
        if show_none or announce:
            self.updater.notify_new_commits(show_none=show_none)
        if done:
            done()
        return False

    def _apply_status(self) -> None:
        summary = self.updater.status_summary()
        ctx = self.primary_label.get_style_context()
        for cls in _BANNER_CLASSES:
            ctx.remove_class(cls)
        if self.runner.active_tag:
            ctx.add_class("status-busy")
        elif summary.count == "?":
            ctx.add_class("status-unknown")
        elif summary.count == "0":
            ctx.add_class("status-ok")
        else:
            ctx.add_class("status-up")
        self.primary_label.set_markup(
            f"<span size='xx-large' weight='bold'>{GLib.markup_escape_text(summary.text)}</span>"
        )
        self.status_icon.set_from_icon_name(summary.icon, Gtk.IconSize.DIALOG)

        busy = self.runner.active_tag is not None
        self.update_btn.set_sensitive(not busy)
        self.view_btn.set_sensitive(not busy and summary.count not in ("0", "?"))
        btn_ctx = self.update_btn.get_style_context()
        if summary.count not in ("0", "?"):
            btn_ctx.add_class("suggested-action")  # typically blue in GTK themes
        else:
            btn_ctx.remove_class("suggested-action")

    def _busy(self, is_busy: bool, hint: str) -> None:
        self.refresh_btn.set_sensitive(not is_busy)
        if is_busy:
            self.spinner.start()
        else:
            self.spinner.stop()
        self.status_hint.set_text(hint or "")

    # -- notifications & logs --------------------------------------------------

    def _show_message(self, message: str, level: Level) -> None:
        icon = (
            "dialog-error-symbolic"
            if level >= Level.WARN
            else "dialog-information-symbolic"
        )
        self.message_icon.set_from_icon_name(icon, Gtk.IconSize.MENU)
        self.message_label.set_text(message or "")
        self.message_revealer.set_reveal_child(bool(message))
        # Desktop notification when the user is looking elsewhere
        if not self.is_active():
            app = self.get_application()
            if isinstance(app, Gio.Application):
                notif = Gio.Notification.new(APP_TITLE)
                notif.set_body(message)
                if level >= Level.ERROR:
                    notif.set_priority(Gio.NotificationPriority.HIGH)
                app.send_notification("nvim-updater", notif)

    def _on_run_finished(self, run: Run) -> None:
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
        outcome = "succeeded" if run.result.exit_code == 0 else f"failed (exit {run.result.exit_code})"
        self._run_logs.append(
            (ts, f"{run.tag} {outcome}", f"$ {run.options.command}\n{run.result.text}")
        )
        if run.tag == TAG_UPDATING and run.result.exit_code == 0:
            self._show_message("Neovim update completed successfully!", Level.INFO)

    def _init_css(self) -> None:
        provider = Gtk.CssProvider()
        provider.load_from_data(get_css().encode("utf-8"))
        screen = Gdk.Screen.get_default()
        if screen:
            Gtk.StyleContext.add_provider_for_screen(
                screen, provider, Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION
            )
