import logging
import os
import shutil
from typing import Callable, Optional

from helpers import git
from helpers.notify import Level, Notifier
from helpers.settings import Config
from updater import pipeline
from updater.pipeline import PipelineSpec, UpdateOptions
from updater.runner import (
    TAG_CLONING,
    TAG_SHOWING_CHANGES,
    TAG_TERMINAL,
    TAG_UPDATING,
    CommandRunner,
    Run,
    RunOptions,
    RunResult,
)
from updater.status import PendingCount, StatusCache, StatusSummary, status_summary
from updater.surface import SurfaceError

LOG = logging.getLogger("nvim-updater")

# ask(prompt_text, on_yes, on_no) shows a y/n prompt and returns immediately
Ask = Callable[[str, Callable[[], None], Optional[Callable[[], None]]], object]


class Updater:
    """
    The operations the host window, accelerators and command line call into.
    """

    def __init__(
        self,
        config: Config,
        notify: Notifier,
        status: StatusCache,
        runner: CommandRunner,
        ask: Ask,
        dir_exists: Callable[[str], bool] = git.directory_exists,
        remove_tree: Callable[[str], None] = shutil.rmtree,
    ) -> None:
        self.config = config
        self.notify = notify
        self.status = status
        self.runner = runner
        self._ask = ask
        self._dir_exists = dir_exists
        self._remove_tree = remove_tree
        self.last_pipeline: Optional[PipelineSpec] = None
        runner.chain_to_update = self._confirm_update
        # The host swaps in a refresh that runs off the UI thread
        self.request_refresh: Callable[[], object] = self.refresh_pending_count

    # -- prompts --------------------------------------------------------------

    def confirm(
        self,
        prompt_text: str,
        on_yes: Callable[[], None],
        on_no: Optional[Callable[[], None]] = None,
    ) -> None:
        if on_no is None:
            on_no = lambda: self.notify("Action canceled", Level.INFO, force=True)  # noqa: E731
        try:
            self._ask(prompt_text, on_yes, on_no)
        except SurfaceError as ex:
            self.notify(f"Failed to open confirmation prompt: {ex}", Level.ERROR)

    def _confirm_update(self) -> None:
        self.confirm("Perform Neovim update?", lambda: self.update())

    # -- modal commands -------------------------------------------------------

    def run_in_modal(
        self,
        command: str,
        tag: str = TAG_TERMINAL,
        autoclose: bool = False,
        on_close: Optional[Callable[[RunResult], None]] = None,
        legacy_chain_to_update: bool = False,
        title: str = "Neovim Updater",
    ) -> Optional[Run]:
        return self.runner.run(
            RunOptions(
                command=command,
                tag=tag,
                autoclose=autoclose,
                on_close=on_close,
                legacy_chain_to_update=legacy_chain_to_update,
                title=title,
            )
        )

    def update(self, options: Optional[UpdateOptions] = None) -> Optional[Run]:
        """
        Clone (when missing) or fetch the source, check out the branch, pull,
        build and install it, all inside one modal terminal.
        """
        opts = (options or UpdateOptions()).resolve(self.config)
        exists = self._dir_exists(opts.source_dir)
        spec = pipeline.update_pipeline(opts, self.config.repo_url, exists)
        self.last_pipeline = spec

        lines = [
            "Starting Neovim update:",
            f"Source Directory: {opts.source_dir}",
            f"Branch: {opts.branch}",
            f"Build Type: {opts.build_type}",
            "Updating existing repository..." if exists else "Cloning repository...",
        ]
        self.notify("\n".join(lines), Level.INFO)

        return self.run_in_modal(
            spec.command_line(),
            tag=TAG_UPDATING,
            on_close=lambda _result: self.status.reset(),
            title="Updating Neovim",
        )

    def clone_source(
        self, source_dir: Optional[str] = None, branch: Optional[str] = None
    ) -> Optional[Run]:
        source_dir = os.path.expanduser(source_dir or self.config.source_dir)
        branch = branch or self.config.branch
        if self._dir_exists(source_dir):
            self.notify(f"Source directory already exists: {source_dir}", Level.WARN)
            return None
        spec = pipeline.clone_pipeline(source_dir, branch, self.config.repo_url)
        self.last_pipeline = spec
        self.notify(f"Cloning Neovim source into {source_dir}", Level.INFO)
        return self.run_in_modal(
            spec.command_line(),
            tag=TAG_CLONING,
            on_close=lambda _result: self.request_refresh(),
            title="Cloning Neovim",
        )

    def show_pending_changes(self, source_dir: Optional[str] = None) -> Optional[Run]:
        """
        List the commits waiting upstream; once the list is acknowledged, offer
        to run the update.
        """
        source_dir = os.path.expanduser(source_dir or self.config.source_dir)
        if not self._dir_exists(source_dir):
            self.notify(f"Source directory does not exist: {source_dir}", Level.WARN)
            return None
        spec = pipeline.changes_pipeline(source_dir, self.config.branch)
        self.last_pipeline = spec
        return self.run_in_modal(
            spec.command_line(),
            tag=TAG_SHOWING_CHANGES,
            on_close=lambda _result: self._confirm_update(),
            title="New Neovim commits",
        )

    # -- source directory -----------------------------------------------------

    def remove_source_dir(self, source_dir: Optional[str] = None, ask: bool = True) -> None:
        source_dir = os.path.expanduser(source_dir or self.config.source_dir)
        if not self._dir_exists(source_dir):
            self.notify(f"Source directory does not exist: {source_dir}", Level.WARN)
            return
        if ask:
            self.confirm(
                f"Remove Neovim source directory {source_dir}?",
                lambda: self._remove(source_dir),
            )
        else:
            self._remove(source_dir)

    def _remove(self, source_dir: str) -> bool:
        try:
            self._remove_tree(source_dir)
        except OSError as ex:
            self.notify(
                f"Error removing Neovim source directory: {source_dir} ({ex})", Level.ERROR
            )
            return False
        self.status.store(PendingCount.unknown())
        self.notify(
            f"Successfully removed Neovim source directory: {source_dir}",
            Level.INFO,
            force=True,
        )
        return True

    # -- pending count ----------------------------------------------------------

    def refresh_pending_count(self) -> PendingCount:
        return self.status.refresh()

    def status_summary(self) -> StatusSummary:
        return status_summary(self.status.count, self.runner.active_tag)

    def notify_new_commits(self, show_none: bool = False, force: bool = True) -> bool:
        count = self.status.count
        branch = self.config.branch
        if count.commits > 0:
            return self.notify(
                f"There are {count.commits} new commit(s) in Neovim {branch}.",
                Level.INFO,
                force=force,
            )
        if not show_none:
            return False
        if count.known:
            return self.notify("Neovim source is up to date.", Level.INFO, force=force)
        return self.notify("Unable to determine pending Neovim commits.", Level.WARN)
