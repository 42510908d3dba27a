"""In-memory vault storage."""

from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from ..exceptions import FileOperationError
from ..models.snapshot import FileMetadataSnapshot
from ..utils.paths import normalize_path, path_segments
from .base import VaultEntry, VaultFile, VaultFolder, VaultStorage


class InMemoryVault(VaultStorage):
    """Vault kept entirely in memory.

    Useful for embedding the sorter in hosts that own their own file tree
    and for exercising rules without touching disk.
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._entries: Dict[str, VaultEntry] = {}
        self._metadata: Dict[str, Optional[FileMetadataSnapshot]] = {}

    @property
    def display_name(self) -> str:
        return f"{self._name} (in-memory)"

    # =========================================================================
    # Population helpers
    # =========================================================================

    def add_folder(self, path: str) -> VaultFolder:
        """Add a folder and any missing ancestors."""
        folder = None
        segments = path_segments(path)
        for i in range(1, len(segments) + 1):
            current = "/".join(segments[:i])
            existing = self._entries.get(current)
            if existing is None:
                existing = VaultFolder(path=current, id=uuid4().hex)
                self._entries[current] = existing
            elif not isinstance(existing, VaultFolder):
                raise FileOperationError(f"Path exists but is not a folder: {current}")
            folder = existing
        return folder

    def add_file(self, path: str, properties: Optional[Mapping[str, Any]] = None,
                 tags: Iterable[str] = ()) -> VaultFile:
        """Add a file with the given frontmatter properties and tags."""
        path = normalize_path(path)
        if path in self._entries:
            raise FileOperationError(f"Path already exists: {path}")
        parent = "/".join(path_segments(path)[:-1])
        if parent:
            self.add_folder(parent)
        file = VaultFile(path=path, id=uuid4().hex)
        self._entries[path] = file
        self._metadata[file.id] = FileMetadataSnapshot.from_frontmatter(properties, tags)
        return file

    def set_metadata(self, file: VaultFile, snapshot: Optional[FileMetadataSnapshot]) -> None:
        """Replace a file's metadata (None simulates metadata not parsed yet)."""
        self._metadata[file.id] = snapshot

    # =========================================================================
    # VaultStorage interface
    # =========================================================================

    async def get_metadata(self, file: VaultFile) -> Optional[FileMetadataSnapshot]:
        return self._metadata.get(file.id)

    async def get_entry(self, path: str) -> Optional[VaultEntry]:
        return self._entries.get(normalize_path(path))

    async def create_folder(self, path: str) -> None:
        self.add_folder(path)

    async def rename(self, file: VaultFile, new_path: str) -> None:
        new_path = normalize_path(new_path)
        stored = self._entries.get(file.path)
        if stored is None or not stored.is_same(file):
            raise FileOperationError(f"Source file does not exist: {file.path}")
        if new_path in self._entries:
            raise FileOperationError(f"Destination already exists: {new_path}")
        parent = "/".join(path_segments(new_path)[:-1])
        if parent and not isinstance(self._entries.get(parent), VaultFolder):
            raise FileOperationError(f"Destination folder does not exist: {parent}")

        del self._entries[file.path]
        stored.path = new_path
        file.path = new_path
        self._entries[new_path] = stored

    async def list_documents(self) -> List[VaultFile]:
        return [entry for entry in self._entries.values() if self.is_document(entry)]

    async def list_children(self, folder_path: str) -> List[VaultEntry]:
        folder_path = normalize_path(folder_path)
        if folder_path and not isinstance(self._entries.get(folder_path), VaultFolder):
            raise FileOperationError(f"Folder does not exist: {folder_path}")
        return [entry for entry in self._entries.values() if entry.parent == folder_path]
