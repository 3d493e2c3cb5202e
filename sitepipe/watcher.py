"""Watch loop: rerun pipelines when their sources change."""
import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from sitepipe.config import AssetGroup, Config
from sitepipe.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

CHANGE_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}


class WatchSubscription:
    """Links an asset group to the action rerun when it changes.

    At most one run is in flight per subscription. Changes arriving during a
    run mark it dirty and cause exactly one more run once it finishes.
    """

    def __init__(self, group: AssetGroup, action: Callable[[], Awaitable]):
        self.group = group
        self.action = action
        self.task: asyncio.Task | None = None
        self.dirty = False

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def trigger(self) -> asyncio.Task | None:
        """Start a run, or queue one if a run is in flight.

        Returns:
            The new task, or None when the change was queued
        """
        if self.running:
            self.dirty = True
            return None
        self.task = asyncio.get_running_loop().create_task(self._run())
        return self.task

    async def _run(self) -> None:
        while True:
            self.dirty = False
            try:
                await self.action()
            except Exception:
                logger.exception(f"Rebuild of '{self.group.name}' failed")
            if not self.dirty:
                break


class _EventBridge(FileSystemEventHandler):
    """Forwards watchdog events from the observer thread to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[str], object]):
        self.loop = loop
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in CHANGE_EVENTS:
            return
        paths = [event.src_path]
        if getattr(event, "dest_path", ""):
            paths.append(event.dest_path)
        for path in paths:
            self.loop.call_soon_threadsafe(self.callback, os.fsdecode(path))


class Watcher:
    """Runs the watch loop for every asset group."""

    def __init__(self, config: Config, orchestrator: Orchestrator):
        self.config = config
        self.orchestrator = orchestrator
        self.observer = None

        groups = config.asset_groups()
        self.subscriptions = [
            WatchSubscription(groups[name], partial(orchestrator.run_pipeline, name))
            for name in orchestrator.pipelines
        ]
        # Generator inputs rebuild the whole site
        self.subscriptions.append(WatchSubscription(groups["jekyll"], orchestrator.build))

    def dispatch(self, path: str) -> list[asyncio.Task]:
        """Trigger every subscription whose group contains path.

        Args:
            path: Changed file path

        Returns:
            Tasks started by this change
        """
        started = []
        for subscription in self.subscriptions:
            if not subscription.group.matches(path):
                continue
            logger.info(f"{path} changed, rebuilding '{subscription.group.name}'")
            task = subscription.trigger()
            if task is not None:
                started.append(task)
        return started

    def watch_roots(self) -> list[Path]:
        """Existing group roots, without roots nested in another root."""
        roots: list[Path] = []
        candidates = sorted(
            {Path(os.path.abspath(s.group.root)) for s in self.subscriptions},
            key=lambda p: len(p.parts),
        )
        for root in candidates:
            if not root.is_dir():
                logger.warning(f"Not watching missing directory {root}")
                continue
            if any(parent == root or parent in root.parents for parent in roots):
                continue
            roots.append(root)
        return roots

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start the observer thread."""
        handler = _EventBridge(loop, self.dispatch)
        self.observer = Observer()
        for root in self.watch_roots():
            self.observer.schedule(handler, str(root), recursive=True)
            logger.info(f"Watching {root}")
        self.observer.start()

    def stop(self) -> None:
        """Stop and join the observer thread."""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    async def run(self) -> None:
        """Watch until cancelled."""
        self.start(asyncio.get_running_loop())
        try:
            await asyncio.Event().wait()
        finally:
            self.stop()
