"""Orchestration of automatic and manual sorting.

The AutoSorter reacts to file notifications, keeps the in-progress guard that
stops a move from re-triggering itself, owns the move history and turns
outcomes into user notices.
"""

import asyncio
import logging
import posixpath
from typing import TYPE_CHECKING, Optional, Set

from ..events.event_bus import EventBus
from ..events.file_events import FileCreated, FileModified, FileSorted
from ..exceptions import SmartFileSorterError
from ..notifications import Notifier, NullNotifier
from ..storage.base import VaultFile, VaultStorage
from ..utils.paths import normalize_path
from .move_history import MoveHistory
from .sorter import BatchResult, MoveResult, MoveStatus, ProgressCallback, Sorter, is_excluded

if TYPE_CHECKING:
    from ..models.config import SorterSettings

logger = logging.getLogger(__name__)

HISTORY_DISPLAY_LIMIT = 10


def _folder_label(path: str) -> str:
    return posixpath.dirname(path) or "/"


class AutoSorter:
    """Runs the sorter in response to events and user commands."""

    def __init__(self,
                 storage: VaultStorage,
                 settings: "SorterSettings",
                 notifier: Optional[Notifier] = None,
                 history: Optional[MoveHistory] = None,
                 create_delay: float = 1.0,
                 modify_delay: float = 0.5,
                 release_delay: float = 2.0):
        self.storage = storage
        self.settings = settings
        self.notifier = notifier or NullNotifier()
        self.history = history if history is not None else MoveHistory()
        self.sorter = Sorter(storage,
                             history=self.history,
                             notifier=self.notifier,
                             verbose_logging=settings.verbose_logging)
        self.create_delay = create_delay
        self.modify_delay = modify_delay
        self.release_delay = release_delay
        self.event_bus: Optional[EventBus] = None
        self._processing: Set[str] = set()

    def apply_settings(self, settings: "SorterSettings") -> None:
        """Swap in new settings (e.g. after the user edited them)."""
        self.settings = settings
        self.sorter.set_verbose_logging(settings.verbose_logging)

    # =========================================================================
    # Automatic sorting
    # =========================================================================

    def subscribe(self, event_bus: EventBus) -> None:
        """Start reacting to file notifications published on ``event_bus``."""
        self.event_bus = event_bus
        event_bus.subscribe(FileCreated, self.on_file_created)
        event_bus.subscribe(FileModified, self.on_file_modified)

    def is_processing(self, path: str) -> bool:
        return normalize_path(path) in self._processing

    def _is_document_path(self, path: str) -> bool:
        return self.storage.is_document(VaultFile(path=normalize_path(path)))

    async def on_file_created(self, event: FileCreated) -> None:
        if not (self.settings.enable_auto_sort and self.settings.sort_on_create):
            return
        if not self._is_document_path(event.path):
            return
        # Metadata is parsed after the notification arrives
        await asyncio.sleep(self.create_delay)
        await self.auto_sort_file(event.path)

    async def on_file_modified(self, event: FileModified) -> None:
        if not (self.settings.enable_auto_sort and self.settings.sort_on_modify):
            return
        if not self._is_document_path(event.path):
            return
        await asyncio.sleep(self.modify_delay)
        await self.auto_sort_file(event.path)

    def _hold(self, path: str) -> None:
        self._processing.add(path)

    def _release_later(self, path: str) -> None:
        loop = asyncio.get_event_loop()
        loop.call_later(self.release_delay, self._processing.discard, path)

    async def auto_sort_file(self, path: str) -> Optional[MoveResult]:
        """Sort one file in response to a notification.

        Paths already being processed and excluded paths are ignored. Errors
        are logged and never raised.
        """
        path = normalize_path(path)
        if path in self._processing:
            logger.debug(f"Already processing {path}, ignoring notification")
            return None
        if is_excluded(path, self.settings.excluded_folders):
            return None

        self._hold(path)
        held = [path]
        try:
            entry = await self.storage.get_entry(path)
            if not isinstance(entry, VaultFile) or not self.storage.is_document(entry):
                return None

            result = await self.sorter.sort_file(entry, self.settings.rules)
            if result is None or not result.moved:
                return result

            # The move itself produces notifications for the new path
            self._hold(result.destination)
            held.append(result.destination)

            if self.event_bus is not None:
                await self.event_bus.publish(FileSorted(
                    path=result.destination,
                    from_path=result.source,
                    rule_name=result.rule.name,
                ))
            if self.settings.show_notifications:
                self.notifier.notify(f"Moved {entry.name} to {_folder_label(result.destination)}")
            return result
        except Exception as e:
            logger.error(f"Error auto-sorting file {path}: {e}")
            return None
        finally:
            for held_path in held:
                self._release_later(held_path)

    # =========================================================================
    # Manual commands
    # =========================================================================

    async def sort_file(self, path: str) -> Optional[MoveResult]:
        """Sort a single file on user request and report the outcome."""
        entry = await self.storage.get_entry(path)
        if not isinstance(entry, VaultFile):
            self.notifier.notify(f"No such file: {path}")
            return None
        if not self.storage.is_document(entry):
            self.notifier.notify("Current file is not a markdown file")
            return None

        result = await self.sorter.sort_file(entry, self.settings.rules)

        if result is None:
            self.notifier.notify("No matching rule found for current file")
        elif result.status == MoveStatus.MOVED:
            self.notifier.notify(f"Moved to {_folder_label(result.destination)}")
        elif result.status == MoveStatus.ALREADY_IN_PLACE:
            self.notifier.notify("File is already in the correct location")
        elif result.status == MoveStatus.FAILED:
            self.notifier.notify(f"Error moving file {entry.name}: {result.error}")
        return result

    async def sort_all(self, on_progress: Optional[ProgressCallback] = None) -> BatchResult:
        """Sort every document in the vault, honouring the excluded folders."""
        if not self.settings.enabled_rules():
            self.notifier.notify("No enabled sorting rules found")
            return BatchResult()

        try:
            result = await self.sorter.sort_collection(
                self.settings.rules, self.settings.excluded_folders, on_progress
            )
        except SmartFileSorterError as e:
            self.notifier.notify(f"Error sorting files: {e}")
            raise

        self.notifier.notify(
            f"Sorting complete!\n"
            f"Moved: {result.moved}\n"
            f"Skipped: {result.skipped}\n"
            f"Errors: {result.errors}"
        )
        return result

    async def sort_folder(self, folder_path: str, recursive: bool = False) -> BatchResult:
        """Sort the documents in one folder, optionally including subfolders."""
        if not self.settings.enabled_rules():
            self.notifier.notify("No enabled sorting rules found")
            return BatchResult()

        try:
            result = await self.sorter.sort_subtree(folder_path, self.settings.rules, recursive)
        except SmartFileSorterError as e:
            self.notifier.notify(f"Error sorting folder: {e}")
            raise

        name = posixpath.basename(normalize_path(folder_path)) or "/"
        recursive_text = " (including subfolders)" if recursive else ""
        self.notifier.notify(
            f"Sorted {name}{recursive_text}\n"
            f"Moved: {result.moved}\n"
            f"Skipped: {result.skipped}\n"
            f"Errors: {result.errors}"
        )
        return result

    def show_move_history(self) -> str:
        """Report the most recent moves, newest first."""
        if len(self.history) == 0:
            text = "No move history available"
        else:
            text = self.history.format_recent(HISTORY_DISPLAY_LIMIT)
        self.notifier.notify(text)
        return text
