import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Pango", "1.0")
from gi.repository import GLib, Gtk, Pango

from helpers.settings import Config


def show_about_dialog(window, app_title: str, config: Config) -> None:
    dialog = Gtk.Window(title=f"About {app_title}")
    dialog.set_transient_for(window)
    dialog.set_modal(True)
    dialog.set_default_size(620, 440)

    outer = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=10)
    outer.set_border_width(16)
    dialog.add(outer)

    header = Gtk.Label()
    header.set_use_markup(True)
    header.set_markup(
        f"<span size='xx-large' weight='bold'>{GLib.markup_escape_text(app_title)}</span>"
    )
    header.set_xalign(0.0)
    outer.pack_start(header, False, False, 0)

    subtitle = Gtk.Label()
    subtitle.set_use_markup(True)
    subtitle.set_markup(
        "<span size='large'>Keeps a Neovim source checkout up to date and rebuilds it.</span>"
    )
    subtitle.set_xalign(0.0)
    subtitle.set_line_wrap(True)
    subtitle.set_line_wrap_mode(Pango.WrapMode.WORD_CHAR)
    outer.pack_start(subtitle, False, False, 0)

    info_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=6)
    info_box.set_hexpand(True)
    outer.pack_start(info_box, False, False, 0)

    for label, value in (
        ("Source", config.source_dir),
        ("Branch", config.branch),
        ("Build type", config.build_type),
        ("Remote", config.repo_url),
    ):
        lbl = Gtk.Label()
        lbl.set_xalign(0.0)
        lbl.set_use_markup(True)
        lbl.set_markup(f"<b>{label}:</b> {GLib.markup_escape_text(value)}")
        info_box.pack_start(lbl, False, False, 0)

    sw = Gtk.ScrolledWindow()
    sw.set_policy(Gtk.PolicyType.AUTOMATIC, Gtk.PolicyType.AUTOMATIC)
    sw.set_min_content_height(200)
    outer.pack_start(sw, True, True, 0)

    body = Gtk.TextView()
    body.set_editable(False)
    body.set_cursor_visible(False)
    body.set_monospace(True)
    buf = body.get_buffer()
    buf.set_text(
        "Features:\n"
        " - Clones or fetches the source, checks out the branch and pulls\n"
        " - Builds with make and installs with sudo inside a modal console\n"
        " - Shows how many upstream commits are waiting\n"
        " - Lists the new commits before updating\n\n"
        "Tip: options are read from ~/.config/nvim-updater/settings.json."
    )
    sw.add(body)

    dialog.show_all()
