"""
Shell pipelines run by the updater.

Every pipeline is a list of stages fused with `&&` into one command line, so
the shell itself aborts the remaining stages when one fails.
"""

import os
import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from helpers.settings import Config


class WorkflowStage(str, Enum):
    DIRECTORY = "directory"  # clone, or enter the existing checkout
    SYNC = "sync"
    BUILD = "build"
    INSTALL = "install"
    CLONE = "clone"
    LOG = "log"


@dataclass(frozen=True)
class Stage:
    label: str
    command: str


@dataclass(frozen=True)
class PipelineSpec:
    stages: tuple[Stage, ...]

    def command_line(self) -> str:
        return " && ".join(s.command for s in self.stages)

    @property
    def labels(self) -> list[str]:
        return [s.label for s in self.stages]

    def stage(self, label: str) -> Optional[Stage]:
        for s in self.stages:
            if s.label == label:
                return s
        return None


@dataclass(frozen=True)
class UpdateOptions:
    source_dir: Optional[str] = None
    build_type: Optional[str] = None
    branch: Optional[str] = None

    def resolve(self, config: Config) -> "UpdateOptions":
        """
        Fill unset or empty fields from the session config. `~` is expanded
        here since the shell never sees it unquoted.
        """
        return UpdateOptions(
            source_dir=os.path.expanduser(self.source_dir or config.source_dir),
            build_type=self.build_type or config.build_type,
            branch=self.branch or config.branch,
        )


def update_pipeline(opts: UpdateOptions, repo_url: str, dir_exists: bool) -> PipelineSpec:
    """
    clone-or-enter, fetch/checkout/pull, build, install.

    An existing checkout is only entered, never re-cloned or wiped.
    """
    src = shlex.quote(opts.source_dir)
    if dir_exists:
        directory = f"cd {src}"
    else:
        directory = f"git clone {shlex.quote(repo_url)} {src} && cd {src}"
    return PipelineSpec(
        (
            Stage(WorkflowStage.DIRECTORY.value, directory),
            Stage(
                WorkflowStage.SYNC.value,
                f"git fetch origin && git checkout {shlex.quote(opts.branch)} && git pull",
            ),
            Stage(
                WorkflowStage.BUILD.value,
                f"make clean && make CMAKE_BUILD_TYPE={shlex.quote(opts.build_type)}",
            ),
            Stage(WorkflowStage.INSTALL.value, "sudo make install"),
        )
    )


def clone_pipeline(source_dir: str, branch: str, repo_url: str) -> PipelineSpec:
    return PipelineSpec(
        (
            Stage(
                WorkflowStage.CLONE.value,
                f"git clone -b {shlex.quote(branch)} {shlex.quote(repo_url)} "
                f"{shlex.quote(source_dir)}",
            ),
        )
    )


def changes_pipeline(source_dir: str, branch: str) -> PipelineSpec:
    """Commits on origin/<branch> that the local checkout does not have yet."""
    src = shlex.quote(source_dir)
    remote = shlex.quote(f"origin/{branch}")
    return PipelineSpec(
        (
            Stage(WorkflowStage.DIRECTORY.value, f"cd {src}"),
            Stage(WorkflowStage.SYNC.value, "git fetch origin"),
            Stage(
                WorkflowStage.LOG.value,
                "git --no-pager log --graph --color=always "
                f"--pretty=format:'%h %s (%an, %ar)' HEAD..{remote}",
            ),
        )
    )
