"""Watch-mode settings."""

from dataclasses import dataclass, field

DEBOUNCE_SECONDS = 15.0
STABILITY_THRESHOLD = 1.0
POLL_INTERVAL = 0.1

# Matched against every component of a path relative to the watched root.
# Other hidden files and directories are excluded by ignore_hidden.
IGNORED_DIRS = frozenset({
    ".git",
    ".next",
    ".cache",
    "node_modules",
    "dist",
    "build",
    "coverage",
    "__pycache__",
    "venv",
})


@dataclass
class WatchConfig:
    root: str = "."
    debounce: float = DEBOUNCE_SECONDS
    stability_threshold: float = STABILITY_THRESHOLD
    poll_interval: float = POLL_INTERVAL
    ignored_dirs: frozenset = field(default=IGNORED_DIRS)
    ignore_hidden: bool = True

    def __post_init__(self):
        if self.debounce <= 0:
            raise ValueError("debounce must be positive")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
