"""Filesystem watcher feeding vault notifications into the event bus."""

import asyncio
import concurrent.futures
import logging
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .events.event_bus import DomainEvent, EventBus
from .events.file_events import FileCreated, FileModified

logger = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """Translates watchdog events into FileCreated / FileModified events.

    Watchdog calls these methods on its observer thread; events are handed
    to the asyncio loop that owns the event bus.
    """

    def __init__(self, root_path: Path, event_bus: EventBus, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self.root_path = Path(root_path).resolve()
        self.event_bus = event_bus
        self.loop = loop

    def _vault_path(self, src_path) -> Optional[str]:
        try:
            relative = Path(src_path).resolve().relative_to(self.root_path)
        except ValueError:
            return None
        if any(part.startswith(".") for part in relative.parts):
            return None
        return relative.as_posix()

    def _publish(self, event: DomainEvent) -> None:
        future = asyncio.run_coroutine_threadsafe(self.event_bus.publish(event), self.loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: concurrent.futures.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Error publishing file event: {error}")

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            logger.debug(f"Created: {path}")
            self._publish(FileCreated(path=path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            logger.debug(f"Modified: {path}")
            self._publish(FileModified(path=path))


class VaultWatcher:
    """Watches a vault folder recursively."""

    def __init__(self, root_path: Path, event_bus: EventBus,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.root_path = Path(root_path)
        self.handler = VaultEventHandler(self.root_path, event_bus,
                                         loop or asyncio.get_event_loop())
        self.observer: Optional[Observer] = None

    def start(self) -> None:
        if self.observer is not None:
            return
        self.observer = Observer()
        self.observer.schedule(self.handler, str(self.root_path), recursive=True)
        self.observer.start()
        logger.info(f"Watching {self.root_path}")

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
