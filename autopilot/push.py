"""Stage, commit and push every change in the working tree."""

import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

import click

from autopilot import checks, git
from autopilot.errors import GitError, PreconditionError, SyncError, SyncErrorKind, classify_sync_failure
from autopilot.output import detail, error, fail, hint, info, success, warn

MAX_LISTED_CHANGES = 5


@dataclass
class SyncResult:
    branch: str
    message: str


def default_commit_message(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"Auto-commit: {now:%Y-%m-%d %H:%M:%S}"


def run_sync_action(
    message: str | None = None,
    cwd: str | None = None,
    progress: Callable[[str], None] | None = None,
) -> SyncResult:
    """Run git add -A, git commit and git push as one unit.

    Any failing step aborts the rest and raises a classified SyncError.
    """
    message = message or default_commit_message()
    branch = git.get_current_branch(cwd=cwd) or "main"

    def step(text: str) -> None:
        if progress:
            progress(text)

    try:
        step("Staging changes...")
        git.stage_all(cwd=cwd)
        step("Committing...")
        git.commit(message, cwd=cwd)
        step(f"Pushing to origin/{branch}...")
        git.push(cwd=cwd)
    except GitError as e:
        raise classify_sync_failure(f"{e.stdout}\n{e.stderr}", branch=branch) from e
    return SyncResult(branch=branch, message=message)


def report_sync_error(exc: SyncError) -> None:
    if exc.kind is SyncErrorKind.NO_CHANGES:
        warn(exc.title)
        detail(exc.hint)
        return
    error(exc.title)
    if exc.kind is SyncErrorKind.GENERIC and exc.detail:
        detail(exc.detail)
    hint(exc.hint)


def summarize_status(status: str) -> None:
    changed = status.strip().splitlines()
    info(f"Found {len(changed)} change(s):")
    for line in changed[:MAX_LISTED_CHANGES]:
        detail(line)
    if len(changed) > MAX_LISTED_CHANGES:
        detail(f"... and {len(changed) - MAX_LISTED_CHANGES} more")


@click.command("push")
@click.option("--message", "-m", help="Commit message (prompted for when omitted)")
def push(message: str | None):
    """
    Stage, commit and push all changes in one step.

    \b
    Examples:
        autopilot push
        autopilot push -m "Fix typo in README"
    """
    info("Checking repository...")
    try:
        checks.require_token()
        checks.require_git()
        success("Git installed")
        checks.require_repository()
        success("Inside git repository")
    except PreconditionError as e:
        fail(e)

    status = git.get_status()
    if not status or not status.strip():
        warn("No changes to commit")
        detail("Working directory is clean.")
        return
    summarize_status(status)

    try:
        checks.require_remote()
    except PreconditionError as e:
        fail(e)
    success("Remote origin found")

    if not message:
        message = click.prompt("Commit message", default=f"Update {date.today().isoformat()}").strip()
        if not message:
            error("Commit cancelled: message cannot be empty")
            sys.exit(1)

    try:
        result = run_sync_action(message, progress=info)
    except SyncError as e:
        report_sync_error(e)
        if e.kind is not SyncErrorKind.NO_CHANGES:
            sys.exit(1)
        return

    success(f"Committed: {result.message}")
    success(f"Pushed to origin/{result.branch}")
