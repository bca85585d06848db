import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Optional

LOG = logging.getLogger("nvim-updater")

APP_ID = "io.github.nvim-updater"
APP_TITLE = "Neovim Updater"
HEADLESS_ENV = "NVIMUPDATER_HEADLESS"
DEBUG_ENV = "NVIMUPDATER_DEBUG"
NEOVIM_REPO_URL = "https://github.com/neovim/neovim"


def settings_file() -> str:
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(
        os.path.expanduser("~"), ".config"
    )
    return os.path.join(base, "nvim-updater", "settings.json")


def _as_bool(value) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (bool, int)):
        return bool(value)
    raise TypeError(f"not a boolean: {value!r}")


@dataclass(frozen=True)
class Config:
    source_dir: str = "~/.local/src/neovim"
    build_type: str = "RelWithDebInfo"
    branch: str = "master"
    verbose: bool = False
    check_for_updates: bool = False
    update_interval: int = 60 * 60 * 4  # seconds
    notify_updates: bool = False
    default_keymaps: bool = True
    use_pty: bool = True
    repo_url: str = NEOVIM_REPO_URL

    def __post_init__(self) -> None:
        if self.update_interval <= 0:
            raise ValueError(
                f"update_interval must be positive, got {self.update_interval}"
            )
        # Frozen: go through object.__setattr__ to normalize the path once
        object.__setattr__(self, "source_dir", os.path.expanduser(self.source_dir))

    def merged(self, overrides: Optional[dict]) -> "Config":
        """
        Return a copy with user overrides applied on top of this config.

        Unknown keys are dropped, and so are empty strings/None, which count as
        "not provided" the same way the update options do.
        """
        known = {f.name: f.type for f in fields(self)}
        changes = {}
        for key, value in (overrides or {}).items():
            if key not in known:
                LOG.debug(f"Ignoring unknown setting {key!r}")
                continue
            if value is None or value == "":
                continue
            current = getattr(self, key)
            if isinstance(current, bool):
                value = _as_bool(value)
            elif isinstance(current, int):
                value = int(value)
            else:
                value = str(value)
            changes[key] = value
        return replace(self, **changes)


def load_config(path: Optional[str] = None) -> Config:
    """
    Build the session config: defaults merged with the user's settings.json.
    A missing file means defaults; an unreadable one is logged and ignored.
    """
    path = path or settings_file()
    overrides: dict = {}
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                overrides = loaded
            else:
                LOG.warning(f"Ignoring {path}: top level must be an object")
        except (OSError, ValueError) as ex:
            LOG.warning(f"Failed to read settings from {path}: {ex}")
    try:
        return Config().merged(overrides)
    except (TypeError, ValueError) as ex:
        LOG.warning(f"Invalid settings in {path}: {ex}; using defaults")
        return Config()
