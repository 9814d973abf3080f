"""Debounce coordinator for watch mode.

Collapses bursts of filesystem changes into a single sync action that fires
``delay`` seconds after the last change, and never runs two actions at once.

States::

    IDLE --change--> PENDING --change--> PENDING (countdown restarted)
    PENDING --countdown elapsed--> PROCESSING --action done--> IDLE
    PROCESSING --change--> PROCESSING (change recorded as ignored)

Everything here runs on one asyncio event loop. The action itself is blocking
and runs in the loop's default executor, so changes keep arriving (and are
ignored) while it is in flight.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from autopilot.config import DEBOUNCE_SECONDS
from autopilot.observer import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)

MAX_LISTED_PATHS = 10


class CoordinatorState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"


class CoordinatorListener(Protocol):
    def change_recorded(self, event: ChangeEvent, restarted: bool, delay: float) -> None: ...

    def change_ignored(self, event: ChangeEvent) -> None: ...

    def processing_started(self, message: str) -> None: ...

    def processing_succeeded(self, result: Any) -> None: ...

    def processing_failed(self, error: Exception) -> None: ...

    def processing_finished(self) -> None: ...


def build_commit_message(changes: dict[str, ChangeKind], now: datetime | None = None) -> str:
    """Timestamped subject with a per-kind summary and the changed paths."""
    now = now or datetime.now()
    subject = f"Auto-commit: {now:%Y-%m-%d %H:%M:%S}"
    if not changes:
        return subject

    counts = Counter(changes.values())
    summary = ", ".join(f"{counts[kind]} {kind.value}" for kind in ChangeKind if counts[kind])
    lines = [f"{subject} ({summary})", ""]
    items = list(changes.items())
    for path, kind in items[:MAX_LISTED_PATHS]:
        lines.append(f"{kind.value}: {path}")
    if len(items) > MAX_LISTED_PATHS:
        lines.append(f"... and {len(items) - MAX_LISTED_PATHS} more")
    return "\n".join(lines)


class DebounceCoordinator:
    def __init__(
        self,
        action: Callable[[str], Any],
        delay: float = DEBOUNCE_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
        listener: CoordinatorListener | None = None,
    ):
        self.action = action
        self.delay = delay
        self.listener = listener
        self._loop = loop or asyncio.get_running_loop()

        self.processing = False
        self.deadline: float | None = None
        self.runs = 0
        self.ignored: list[ChangeEvent] = []
        self._timer: asyncio.TimerHandle | None = None
        self._batch: dict[str, ChangeKind] = {}
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> CoordinatorState:
        if self.processing:
            return CoordinatorState.PROCESSING
        if self._timer is not None:
            return CoordinatorState.PENDING
        return CoordinatorState.IDLE

    @property
    def batch(self) -> dict[str, ChangeKind]:
        return dict(self._batch)

    def notify(self, event: ChangeEvent) -> None:
        """Feed one change into the state machine. Must run on the loop thread."""
        if self._closed:
            return

        if self.processing:
            logger.debug("Ignoring %s %s while processing", event.kind.value, event.path)
            self.ignored.append(event)
            if self.listener:
                self.listener.change_ignored(event)
            return

        # Re-insert so the batch stays in order of the latest change.
        self._batch.pop(event.path, None)
        self._batch[event.path] = event.kind

        restarted = self._timer is not None
        if restarted:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.delay, self._fire)
        self.deadline = self._loop.time() + self.delay
        logger.debug("%s %s; firing in %.1fs", event.kind.value, event.path, self.delay)

        if self.listener:
            self.listener.change_recorded(event, restarted, self.delay)

    def _fire(self) -> None:
        self._timer = None
        self.deadline = None
        if self._closed or self.processing:
            return

        changes, self._batch = self._batch, {}
        message = build_commit_message(changes)
        # Raised here, lowered in _process: nothing may slip in before the task starts.
        self.processing = True
        self.ignored = []
        self._task = self._loop.create_task(self._process(message))

    async def _process(self, message: str) -> None:
        logger.debug("Processing batch")
        if self.listener:
            self.listener.processing_started(message)
        try:
            result = await self._loop.run_in_executor(None, self.action, message)
        except Exception as e:
            logger.warning("Sync action failed: %s", e)
            if self.listener:
                self.listener.processing_failed(e)
        else:
            logger.debug("Sync action succeeded")
            if self.listener:
                self.listener.processing_succeeded(result)
        finally:
            self.processing = False
            self.runs += 1
            self._task = None
            if self.ignored:
                logger.debug("%d change(s) arrived while processing", len(self.ignored))
        if self.listener:
            self.listener.processing_finished()

    def shutdown(self) -> None:
        """Cancel any pending countdown and stop accepting changes."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug("Pending countdown cancelled")
        self.deadline = None
        self._batch.clear()

    async def drain(self) -> None:
        """Wait for an in-flight action to finish."""
        if self._task is not None:
            await asyncio.shield(self._task)
