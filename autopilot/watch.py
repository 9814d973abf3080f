"""Watch mode: push automatically after a burst of edits settles."""

import asyncio
import functools
import logging
import signal
import sys
import threading
from collections.abc import Callable
from typing import Any

import click

from autopilot import checks
from autopilot.config import DEBOUNCE_SECONDS, WatchConfig
from autopilot.coordinator import CoordinatorListener, DebounceCoordinator
from autopilot.errors import ObserverError, PreconditionError, SyncError
from autopilot.observer import ChangeEvent, ChangeKind, FilesystemObserver
from autopilot.output import detail, error, fail, info, success, warn
from autopilot.push import report_sync_error, run_sync_action

logger = logging.getLogger(__name__)


class ConsoleListener:
    """Print coordinator activity to the terminal."""

    def change_recorded(self, event: ChangeEvent, restarted: bool, delay: float) -> None:
        color = "red" if event.kind is ChangeKind.DELETED else "cyan"
        click.secho(f"{event.kind.value}: {event.path}", fg=color)
        if restarted:
            detail("Resetting timer...")
        detail(f"Will process in {delay:g}s if no new changes...")

    def change_ignored(self, event: ChangeEvent) -> None:
        detail(f"{event.kind.value}: {event.path} (push in progress, picked up by the next change)")

    def processing_started(self, message: str) -> None:
        info("Processing changes...")

    def processing_succeeded(self, result: Any) -> None:
        success("Changes pushed successfully")

    def processing_failed(self, exc: Exception) -> None:
        if isinstance(exc, SyncError):
            report_sync_error(exc)
        else:
            error(f"Failed to push: {exc}")

    def processing_finished(self) -> None:
        info("Watching for more changes...")


def check_preconditions(cwd: str | None = None) -> None:
    """Everything watch needs before the first change arrives."""
    checks.require_token()
    checks.require_git()
    checks.require_repository(cwd=cwd)
    checks.require_remote(cwd=cwd)


class WatchSession:
    """Wire the observer to the coordinator and run until interrupted.

    Shutdown cancels a pending countdown, stops the observer and waits for
    its threads, then waits for an in-flight push so it is never cut off
    halfway. It runs once no matter how many interrupts arrive.
    """

    def __init__(
        self,
        config: WatchConfig,
        action: Callable[[str], Any] | None = None,
        listener: CoordinatorListener | None = None,
    ):
        self.config = config
        self.action = action or functools.partial(run_sync_action, cwd=config.root)
        self.listener = listener
        self.coordinator: DebounceCoordinator | None = None
        self.observer: FilesystemObserver | None = None
        self.observer_errors: list[ObserverError] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None
        self._shutdown_started = False
        self._signals: list[int] = []
        self._previous_sigint: Any = None

    def _on_change(self, event: ChangeEvent) -> None:
        # Called from watchdog threads.
        self._loop.call_soon_threadsafe(self.coordinator.notify, event)

    def _on_observer_error(self, exc: ObserverError) -> None:
        self._loop.call_soon_threadsafe(self._report_observer_error, exc)

    def _report_observer_error(self, exc: ObserverError) -> None:
        logger.warning("Watcher error: %s", exc)
        self.observer_errors.append(exc)
        error(f"Watcher error: {exc}")

    def request_stop(self) -> None:
        if self._stop is None or self._stop.is_set():
            if self.coordinator is not None and self.coordinator.processing:
                warn("Waiting for the push in progress to finish...")
            return
        warn("Stopping watch mode...")
        self._stop.set()

    def _install_signal_handlers(self) -> None:
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(signum, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # No loop signal support (Windows, or not the main thread).
                if signum == signal.SIGINT and _in_main_thread():
                    loop = self._loop
                    self._previous_sigint = signal.signal(
                        signum, lambda *_: loop.call_soon_threadsafe(self.request_stop)
                    )
                continue
            self._signals.append(signum)

    def _remove_signal_handlers(self) -> None:
        for signum in self._signals:
            self._loop.remove_signal_handler(signum)
        self._signals = []
        if self._previous_sigint is not None:
            signal.signal(signal.SIGINT, self._previous_sigint)
            self._previous_sigint = None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        self.coordinator = DebounceCoordinator(
            self.action, delay=self.config.debounce, loop=self._loop, listener=self.listener
        )
        self.observer = FilesystemObserver(self.config, self._on_change, self._on_observer_error)
        self.observer.start()

    async def shutdown(self) -> None:
        if self._shutdown_started:
            return
        self._shutdown_started = True
        logger.debug("Shutting down watch session")

        self.coordinator.shutdown()
        # Joining watchdog's threads blocks, so keep it off the loop.
        await self._loop.run_in_executor(None, self.observer.stop)
        if self.coordinator.processing:
            info("Waiting for the push in progress to finish...")
            await self.coordinator.drain()

    async def run(self, install_signals: bool = True) -> None:
        await self.start()
        if install_signals:
            self._install_signal_handlers()
        try:
            await self._stop.wait()
        finally:
            await self.shutdown()
            self._remove_signal_handlers()


def _in_main_thread() -> bool:
    return threading.current_thread() is threading.main_thread()


@click.command("watch")
@click.option(
    "--debounce",
    "-d",
    type=click.FloatRange(min=0, min_open=True),
    default=DEBOUNCE_SECONDS,
    show_default=True,
    envvar="AUTOPILOT_DEBOUNCE",
    help="Seconds of quiet after the last change before pushing",
)
@click.option(
    "--path",
    "root",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Directory to watch",
)
def watch(debounce: float, root: str):
    """
    Watch the working tree and push automatically.

    Every burst of edits becomes a single commit, pushed once nothing
    has changed for DEBOUNCE seconds. Press Ctrl+C to stop.

    \b
    Examples:
        autopilot watch
        autopilot watch --debounce 30
    """
    info("Starting Autopilot watch mode...")
    try:
        _watch(debounce, root)
    except KeyboardInterrupt:
        # Ctrl+C before the session's own handlers are installed.
        warn("Interrupted")
    success("Watch mode stopped")


def _watch(debounce: float, root: str) -> None:
    try:
        check_preconditions(cwd=root)
    except PreconditionError as e:
        fail(e)
    success("All checks passed")

    config = WatchConfig(root=root, debounce=debounce)
    info("Watching for changes...")
    detail(f"Debounce time: {debounce:g}s")
    detail("Press Ctrl+C to stop")

    session = WatchSession(config, listener=ConsoleListener())
    try:
        asyncio.run(session.run())
    except ObserverError as e:
        error(str(e))
        sys.exit(1)
