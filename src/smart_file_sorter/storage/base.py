"""Base classes for vault storage backends.

This module defines the interface the sorter relies on: metadata lookup,
existence lookup, folder creation and the rename primitive.
"""

import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..models.snapshot import FileMetadataSnapshot

DOCUMENT_EXTENSIONS = ("md",)


@dataclass
class VaultEntry:
    """An entry in the vault.

    Attributes:
        path: Vault-relative, slash-separated path ("" is the root)
        id: Backend-specific identity that survives renames
    """
    path: str
    id: Optional[str] = None

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)

    @property
    def parent(self) -> str:
        return posixpath.dirname(self.path)

    def is_same(self, other: "VaultEntry") -> bool:
        """Check whether two entries refer to the same stored object."""
        if self.id is not None and other.id is not None:
            return self.id == other.id
        return self.path == other.path


@dataclass
class VaultFile(VaultEntry):
    """A file in the vault. ``path`` is updated in place when it is renamed."""

    @property
    def extension(self) -> str:
        _, ext = posixpath.splitext(self.name)
        return ext.lstrip(".").lower()


@dataclass
class VaultFolder(VaultEntry):
    """A folder in the vault."""
    pass


class VaultStorage(ABC):
    """Abstract base class for vault backends.

    All I/O is asynchronous; the sorter awaits one call at a time.
    """

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for this vault."""
        pass

    @abstractmethod
    async def get_metadata(self, file: VaultFile) -> Optional[FileMetadataSnapshot]:
        """Read the current metadata of a file.

        Returns:
            A fresh snapshot, or None if the metadata is not available yet
        """
        pass

    @abstractmethod
    async def get_entry(self, path: str) -> Optional[VaultEntry]:
        """Look up the entry stored at ``path``.

        Returns:
            VaultFile or VaultFolder, or None if nothing exists there
        """
        pass

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing ancestors.

        Raises:
            FileOperationError: If the folder cannot be created
        """
        pass

    @abstractmethod
    async def rename(self, file: VaultFile, new_path: str) -> None:
        """Move a file to ``new_path``, preserving its identity and content.

        On success ``file.path`` is updated to ``new_path``.

        Raises:
            FileOperationError: If the target exists or the move fails
        """
        pass

    @abstractmethod
    async def list_documents(self) -> List[VaultFile]:
        """List every document in the vault."""
        pass

    @abstractmethod
    async def list_children(self, folder_path: str) -> List[VaultEntry]:
        """List the immediate children of a folder.

        Raises:
            FileOperationError: If the folder does not exist
        """
        pass

    def is_document(self, entry: VaultEntry) -> bool:
        """Check whether an entry is a document the sorter handles."""
        return isinstance(entry, VaultFile) and entry.extension in DOCUMENT_EXTENSIONS
