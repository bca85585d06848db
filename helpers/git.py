import os
import subprocess
import tempfile
from typing import Optional, Tuple


def run_git(args: list[str], cwd: Optional[str] = None, timeout: int = 60) -> Tuple[int, str, str]:
    try:
        cp = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
        return cp.returncode, cp.stdout, cp.stderr
    except (OSError, subprocess.SubprocessError) as exc:
        return 1, "", str(exc)


def directory_exists(path: str) -> bool:
    return os.path.isdir(os.path.expanduser(path))


def check_write_permissions(directory: str) -> bool:
    """
    Probe by creating (and removing) a temp file, which also catches
    read-only mounts that os.access() reports as writable.
    """
    try:
        with tempfile.NamedTemporaryFile(
            dir=os.path.expanduser(directory), prefix="nvim_updater_tmp_"
        ):
            pass
        return True
    except OSError:
        return False


def remote_branch_exists(repo_url: str, branch: str) -> bool:
    rc, out, _ = run_git(["ls-remote", "--heads", repo_url, branch])
    return rc == 0 and bool(out.strip())
