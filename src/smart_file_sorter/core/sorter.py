"""File placement: destination resolution, collision-safe moves and batch sorts."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from ..exceptions import FolderConflictError
from ..models.snapshot import FileMetadataSnapshot, stringify_value
from ..models.sorting_rule import SortingRule
from ..notifications import Notifier, NullNotifier
from ..storage.base import VaultFile, VaultFolder, VaultStorage
from ..utils.paths import is_within_folder, join_path, normalize_path, path_segments
from .move_history import MoveHistory
from .rule_matcher import RuleMatcher

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class MoveStatus(Enum):
    """Outcome of a single move attempt."""
    MOVED = "moved"
    ALREADY_IN_PLACE = "already_in_place"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class MoveResult:
    """Result of moving one file by a rule."""
    status: MoveStatus
    source: str
    destination: str
    rule: SortingRule
    error: Optional[Exception] = None

    @property
    def moved(self) -> bool:
        return self.status == MoveStatus.MOVED


@dataclass
class BatchResult:
    """Counters accumulated over a batch sort."""
    moved: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.moved + self.skipped + self.errors

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            moved=self.moved + other.moved,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )

    def count(self, result: MoveResult) -> None:
        if result.status == MoveStatus.MOVED:
            self.moved += 1
        elif result.status == MoveStatus.FAILED:
            self.errors += 1
        else:
            self.skipped += 1


def is_excluded(path: str, excluded_folders: Iterable[str]) -> bool:
    """Check if a path lies in (or is) one of the excluded folders."""
    return any(is_within_folder(path, folder) for folder in excluded_folders)


class Sorter:
    """Moves documents to the destination of their first matching rule.

    Storage calls are awaited one at a time; a batch never has more than one
    move in flight.
    """

    def __init__(self,
                 storage: VaultStorage,
                 matcher: Optional[RuleMatcher] = None,
                 history: Optional[MoveHistory] = None,
                 notifier: Optional[Notifier] = None,
                 verbose_logging: bool = False):
        self.storage = storage
        self.matcher = matcher or RuleMatcher()
        self.history = history
        self.notifier = notifier or NullNotifier()
        self.verbose_logging = verbose_logging

    def set_verbose_logging(self, verbose: bool) -> None:
        self.verbose_logging = verbose

    def _log_detail(self, message: str) -> None:
        logger.log(logging.INFO if self.verbose_logging else logging.DEBUG, message)

    # =========================================================================
    # Single file
    # =========================================================================

    def resolve_destination(self, file: VaultFile, rule: SortingRule,
                            snapshot: Optional[FileMetadataSnapshot]) -> str:
        """Compute the path the file should live at under ``rule``."""
        return join_path(self.resolve_folder(rule, snapshot), file.name)

    def resolve_folder(self, rule: SortingRule,
                       snapshot: Optional[FileMetadataSnapshot]) -> str:
        """Compute the destination folder, including the dynamic subfolder."""
        folder = normalize_path(rule.destination_folder)

        if rule.create_subfolders and rule.subfolder_property and snapshot is not None:
            subfolder = stringify_value(snapshot.get(rule.subfolder_property))
            if subfolder:
                folder = join_path(folder, subfolder)

        return folder

    async def ensure_folder_exists(self, folder_path: str) -> None:
        """Create every missing folder along ``folder_path``.

        Raises:
            FolderConflictError: If a file occupies one of the folder positions
        """
        segments = path_segments(folder_path)
        for i in range(1, len(segments) + 1):
            current = "/".join(segments[:i])
            entry = await self.storage.get_entry(current)
            if entry is None:
                await self.storage.create_folder(current)
                self._log_detail(f"Created folder: {current}")
            elif not isinstance(entry, VaultFolder):
                raise FolderConflictError(current)

    async def move(self, file: VaultFile, rule: SortingRule,
                   snapshot: Optional[FileMetadataSnapshot]) -> MoveResult:
        """Move ``file`` to where ``rule`` says it belongs.

        Returns:
            MoveResult with status MOVED, ALREADY_IN_PLACE, CONFLICT or FAILED;
            failures carry the underlying exception instead of raising it
        """
        source = file.path
        folder = self.resolve_folder(rule, snapshot)
        destination = join_path(folder, file.name)

        if destination == source:
            self._log_detail(f"File already in correct location: {source}")
            return MoveResult(MoveStatus.ALREADY_IN_PLACE, source, destination, rule)

        try:
            existing = await self.storage.get_entry(destination)
            if existing is not None and not existing.is_same(file):
                logger.warning(f"File already exists at destination: {destination}")
                self.notifier.notify(f"Cannot move {file.name}: file already exists at destination")
                return MoveResult(MoveStatus.CONFLICT, source, destination, rule)

            await self.ensure_folder_exists(folder)
            await self.storage.rename(file, destination)
        except Exception as e:
            logger.error(f"Error moving file {source}: {e}")
            return MoveResult(MoveStatus.FAILED, source, destination, rule, error=e)

        self._log_detail(f"Moved {source} to {destination}")
        if self.history is not None:
            self.history.record(file.name, source, destination, rule.name)
        return MoveResult(MoveStatus.MOVED, source, destination, rule)

    async def sort_file(self, file: VaultFile,
                        rules: Sequence[SortingRule]) -> Optional[MoveResult]:
        """Look up fresh metadata, pick the first matching rule and move.

        Returns:
            The move result, or None when no rule matches
        """
        snapshot = await self.storage.get_metadata(file)
        rule = self.matcher.find_first_match(snapshot, rules)
        if rule is None:
            return None
        return await self.move(file, rule, snapshot)

    # =========================================================================
    # Batches
    # =========================================================================

    async def _sort_into(self, result: BatchResult, file: VaultFile,
                         rules: List[SortingRule]) -> None:
        try:
            move_result = await self.sort_file(file, rules)
        except Exception as e:
            logger.error(f"Error processing {file.path}: {e}")
            result.errors += 1
            return

        if move_result is None:
            result.skipped += 1
        else:
            result.count(move_result)

    async def sort_collection(self,
                              rules: Sequence[SortingRule],
                              excluded_folders: Iterable[str] = (),
                              on_progress: Optional[ProgressCallback] = None) -> BatchResult:
        """Sort every document in the vault.

        Args:
            rules: Rules in precedence order; disabled ones are ignored
            excluded_folders: Folders whose documents are left alone
            on_progress: Called with (processed, total) after each document

        Returns:
            BatchResult whose counters add up to the number of documents
        """
        enabled_rules = [rule for rule in rules if rule.enabled]
        excluded = [normalize_path(f) for f in excluded_folders if normalize_path(f)]
        documents = sorted(await self.storage.list_documents(), key=lambda f: f.path)
        total = len(documents)
        result = BatchResult()

        for index, file in enumerate(documents, start=1):
            if is_excluded(file.path, excluded):
                result.skipped += 1
            else:
                await self._sort_into(result, file, enabled_rules)

            if on_progress:
                on_progress(index, total)

        logger.info(f"Sorted {total} documents: {result.moved} moved, "
                    f"{result.skipped} skipped, {result.errors} errors")
        return result

    async def sort_subtree(self, folder_path: str, rules: Sequence[SortingRule],
                           recursive: bool = False) -> BatchResult:
        """Sort the documents directly inside a folder.

        Child folders are sorted too when ``recursive`` is set. Excluded
        folders are not consulted here; only ``sort_collection`` applies them.
        """
        enabled_rules = [rule for rule in rules if rule.enabled]
        # Collected up front so a file moved deeper into the subtree is not seen twice
        documents = await self._collect_documents(folder_path, recursive)
        result = BatchResult()

        for file in documents:
            await self._sort_into(result, file, enabled_rules)

        return result

    async def _collect_documents(self, folder_path: str, recursive: bool) -> List[VaultFile]:
        documents = []
        for child in await self.storage.list_children(folder_path):
            if self.storage.is_document(child):
                documents.append(child)
            elif recursive and isinstance(child, VaultFolder):
                documents.extend(await self._collect_documents(child.path, recursive))
        return documents
