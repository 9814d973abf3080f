"""Precondition checks shared by init, push and watch."""

from autopilot import credentials, git
from autopilot.errors import PreconditionError


def require_token() -> str:
    token = credentials.get_current_token()
    if not token:
        raise PreconditionError("You are not connected to GitHub.", "Run `autopilot connect` first.")
    return token


def require_git() -> None:
    if not git.is_git_installed():
        raise PreconditionError("Git is not installed", "Install Git: https://git-scm.com/downloads")


def require_repository(cwd: str | None = None) -> None:
    if not git.is_git_repository(cwd=cwd):
        raise PreconditionError("Not a git repository", "Run `autopilot init` or `git init` first.")


def require_remote(cwd: str | None = None) -> None:
    if not git.has_remote(cwd=cwd):
        raise PreconditionError(
            "No remote repository configured",
            "Run `autopilot init` to set up a GitHub repository, "
            "or add one manually: git remote add origin <url>",
        )
