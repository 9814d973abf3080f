"""Exceptions raised by autopilot commands and the watch engine."""

from enum import Enum


class AutopilotError(Exception):
    """Base class for all autopilot errors."""


class PreconditionError(AutopilotError):
    """A check that must pass before a command can do its work."""

    def __init__(self, reason: str, hint: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


class GitError(AutopilotError):
    def __init__(self, command: list[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        output = (stderr or stdout).strip()
        super().__init__(f"git {' '.join(command)} failed ({returncode}): {output}")


class SyncErrorKind(Enum):
    NO_CHANGES = "no-changes"
    NO_UPSTREAM = "no-upstream"
    REJECTED = "rejected"
    GENERIC = "generic"


_SYNC_MESSAGES = {
    SyncErrorKind.NO_CHANGES: ("Nothing to commit", "Working directory is clean."),
    SyncErrorKind.NO_UPSTREAM: ("No upstream branch set", "Run: git push -u origin {branch}"),
    SyncErrorKind.REJECTED: (
        "Push rejected",
        "Your local branch is behind the remote. Try: git pull --rebase",
    ),
    SyncErrorKind.GENERIC: (
        "Failed to push",
        "Check your internet connection and repository access.",
    ),
}


class SyncError(AutopilotError):
    """A failed stage -> commit -> push sequence, classified by cause."""

    def __init__(self, kind: SyncErrorKind, detail: str = "", branch: str = "main"):
        self.kind = kind
        self.detail = detail
        self.branch = branch
        super().__init__(f"{self.title}: {detail}" if detail else self.title)

    @property
    def title(self) -> str:
        return _SYNC_MESSAGES[self.kind][0]

    @property
    def hint(self) -> str:
        return _SYNC_MESSAGES[self.kind][1].format(branch=self.branch)


def classify_sync_failure(output: str, branch: str = "main") -> SyncError:
    """Map git's error output onto a SyncError."""
    if "nothing to commit" in output or "no changes added to commit" in output:
        kind = SyncErrorKind.NO_CHANGES
    elif "no upstream branch" in output:
        kind = SyncErrorKind.NO_UPSTREAM
    elif "rejected" in output:
        kind = SyncErrorKind.REJECTED
    else:
        kind = SyncErrorKind.GENERIC
    return SyncError(kind, output.strip(), branch=branch)


class ObserverError(AutopilotError):
    """Filesystem observer failure; reported but never fatal to a session."""


class GitHubError(AutopilotError):
    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        super().__init__(f"GitHub API error ({status}): {message}" if status else message)


class RepositoryExistsError(GitHubError):
    def __init__(self, name: str, message: str = "name already exists on this account"):
        self.name = name
        super().__init__(422, message)


class CredentialError(AutopilotError):
    """The OS keyring refused to store or delete a secret."""
