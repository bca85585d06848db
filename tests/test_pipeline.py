"""Tests for updater.pipeline: stage order and the clone-or-enter decision."""

import pytest

from helpers.settings import Config
from updater.pipeline import (
    PipelineSpec,
    Stage,
    UpdateOptions,
    WorkflowStage,
    changes_pipeline,
    clone_pipeline,
    update_pipeline,
)

URL = "https://github.com/neovim/neovim"


def test_missing_dir_clones_then_builds_release():
    opts = UpdateOptions("/src/nvim", "Release", "master")
    spec = update_pipeline(opts, URL, dir_exists=False)
    assert spec.command_line() == (
        f"git clone {URL} /src/nvim && cd /src/nvim"
        " && git fetch origin && git checkout master && git pull"
        " && make clean && make CMAKE_BUILD_TYPE=Release"
        " && sudo make install"
    )
    assert spec.labels == ["directory", "sync", "build", "install"]


def test_existing_dir_is_entered_not_cloned():
    opts = UpdateOptions("/src/nvim", "RelWithDebInfo", "release-0.10")
    spec = update_pipeline(opts, URL, dir_exists=True)
    assert "git clone" not in spec.command_line()
    assert spec.stage(WorkflowStage.DIRECTORY.value).command == "cd /src/nvim"
    assert spec.command_line().startswith("cd /src/nvim && git fetch origin")
    assert "git checkout release-0.10" in spec.command_line()


def test_paths_with_spaces_are_quoted():
    opts = UpdateOptions("/home/me/my src", "Debug", "master")
    spec = update_pipeline(opts, URL, dir_exists=True)
    assert spec.stage("directory").command == "cd '/home/me/my src'"


def test_install_is_last_stage():
    spec = update_pipeline(UpdateOptions("/x", "Debug", "master"), URL, dir_exists=True)
    assert spec.stages[-1] == Stage("install", "sudo make install")


def test_resolve_fills_empty_fields_from_config():
    config = Config(source_dir="/opt/nvim", build_type="Release", branch="stable")
    resolved = UpdateOptions(source_dir="", build_type=None, branch="nightly").resolve(config)
    assert resolved == UpdateOptions("/opt/nvim", "Release", "nightly")


def test_clone_pipeline_checks_out_branch():
    spec = clone_pipeline("/src/nvim", "stable", URL)
    assert spec.command_line() == f"git clone -b stable {URL} /src/nvim"


def test_changes_pipeline_logs_remote_range():
    spec = changes_pipeline("/src/nvim", "master")
    line = spec.command_line()
    assert line.startswith("cd /src/nvim && git fetch origin && ")
    assert line.endswith("HEAD..origin/master")
    assert "--color=always" in line


def test_unknown_stage_is_none():
    assert PipelineSpec(()).stage("build") is None
    assert PipelineSpec(()).command_line() == ""


@pytest.mark.parametrize("exists", [True, False])
def test_stages_joined_with_and(exists):
    spec = update_pipeline(UpdateOptions("/x", "Debug", "master"), URL, exists)
    assert spec.command_line() == " && ".join(s.command for s in spec.stages)


def test_resolve_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    resolved = UpdateOptions(source_dir="~/nvsrc").resolve(Config())
    assert resolved.source_dir == str(tmp_path / "nvsrc")
    spec = update_pipeline(resolved, URL, dir_exists=True)
    assert spec.stage("directory").command == f"cd {tmp_path / 'nvsrc'}"
