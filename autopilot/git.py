"""Thin wrappers around the git executable."""

import logging
import shutil
import subprocess

from autopilot.errors import GitError

logger = logging.getLogger(__name__)


def run_git(*args: str, cwd: str | None = None) -> subprocess.CompletedProcess:
    logger.debug("git %s", " ".join(args))
    return subprocess.run(["git", *args], capture_output=True, text=True, cwd=cwd)


def check_git(*args: str, cwd: str | None = None) -> str:
    """Run git and return stdout, raising GitError on a non-zero exit."""
    result = run_git(*args, cwd=cwd)
    if result.returncode != 0:
        raise GitError(list(args), result.returncode, result.stdout, result.stderr)
    return result.stdout


def is_git_installed() -> bool:
    if shutil.which("git") is None:
        return False
    try:
        result = run_git("--version")
    except OSError:
        return False
    return result.returncode == 0 and "git version" in result.stdout


def is_git_repository(cwd: str | None = None) -> bool:
    return run_git("rev-parse", "--is-inside-work-tree", cwd=cwd).returncode == 0


def get_status(cwd: str | None = None) -> str | None:
    """Porcelain status output, or None when git status fails."""
    result = run_git("status", "--porcelain", cwd=cwd)
    if result.returncode != 0:
        return None
    return result.stdout


def has_remote(name: str = "origin", cwd: str | None = None) -> bool:
    result = run_git("remote", cwd=cwd)
    if result.returncode != 0:
        return False
    return name in result.stdout.split()


def stage_all(cwd: str | None = None) -> None:
    check_git("add", "-A", cwd=cwd)


def commit(message: str, cwd: str | None = None) -> None:
    check_git("commit", "-m", message, cwd=cwd)


def push(cwd: str | None = None) -> None:
    check_git("push", cwd=cwd)


def push_upstream(branch: str, remote: str = "origin", cwd: str | None = None) -> None:
    check_git("push", "-u", remote, branch, cwd=cwd)


def get_current_branch(cwd: str | None = None) -> str | None:
    result = run_git("branch", "--show-current", cwd=cwd)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def init_repository(branch: str = "main", cwd: str | None = None) -> None:
    check_git("init", cwd=cwd)
    check_git("branch", "-M", branch, cwd=cwd)


def add_remote(url: str, name: str = "origin", cwd: str | None = None) -> None:
    check_git("remote", "add", name, url, cwd=cwd)
