import os
import shutil
from typing import Callable, NamedTuple

from helpers import git
from helpers.settings import Config


class HealthItem(NamedTuple):
    level: str  # "ok" | "warn" | "error" | "info"
    message: str


def check_health(
    config: Config,
    branch_exists: Callable[[str, str], bool] = git.remote_branch_exists,
) -> list[HealthItem]:
    """
    Diagnose the environment the updater depends on: tools on PATH, the
    source directory (or its parent) being writable, and the configured
    branch existing upstream.
    """
    items: list[HealthItem] = []

    for tool in ("git", "make", "sudo"):
        if shutil.which(tool):
            items.append(HealthItem("ok", f"Found '{tool}' on PATH"))
        else:
            items.append(HealthItem("error", f"'{tool}' not found on PATH"))

    source_dir = config.source_dir
    if git.directory_exists(source_dir):
        items.append(HealthItem("ok", f"Source directory exists: {source_dir}"))
        if git.check_write_permissions(source_dir):
            items.append(
                HealthItem("ok", "Write access to source directory checked successfully")
            )
        else:
            items.append(
                HealthItem("warn", f"No write access to source directory: {source_dir}")
            )
            items.append(
                HealthItem(
                    "info",
                    "Hint: remove the source directory and retry with correct permissions.",
                )
            )
    else:
        items.append(HealthItem("warn", f"Source directory does not exist: {source_dir}"))
        items.append(HealthItem("info", "Hint: use 'Clone source' to create it."))
        parent_dir = os.path.dirname(source_dir.rstrip(os.sep)) or os.sep
        if git.check_write_permissions(parent_dir):
            items.append(
                HealthItem("ok", f"Write access to parent directory ({parent_dir}) is available.")
            )
        else:
            items.append(HealthItem("error", f"No write access to parent directory: {parent_dir}"))
            items.append(
                HealthItem("info", "Hint: adjust permissions or try a different 'source_dir'.")
            )

    if branch_exists(config.repo_url, config.branch):
        items.append(HealthItem("ok", f"Remote branch exists: {config.branch}"))
    else:
        items.append(
            HealthItem(
                "error",
                f"Branch '{config.branch}' does not exist on {config.repo_url}!",
            )
        )
    return items


def format_report(items: list[HealthItem]) -> str:
    marks = {"ok": "OK", "warn": "WARNING", "error": "ERROR", "info": "-"}
    return "\n".join(f"{marks.get(it.level, it.level)}: {it.message}" for it in items)
