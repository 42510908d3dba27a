"""Local filesystem vault storage."""

import asyncio
import logging
import os
import re
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..exceptions import FileOperationError, MetadataError
from ..models.snapshot import FileMetadataSnapshot
from ..utils.paths import normalize_path
from .base import VaultEntry, VaultFile, VaultFolder, VaultStorage

logger = logging.getLogger(__name__)

_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*$", re.DOTALL | re.MULTILINE)
_FENCED_CODE = re.compile(r"^(```|~~~).*?^\1", re.DOTALL | re.MULTILINE)
_INLINE_CODE = re.compile(r"`[^`\n]*`")
_INLINE_TAG = re.compile(r"(?<![^\s(\[])#([\w/-]+)")


def split_frontmatter(text: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Split a markdown document into (frontmatter, body).

    Invalid YAML is logged and treated as no frontmatter.
    """
    match = _FRONTMATTER.match(text)
    if not match:
        return None, text

    body = text[match.end():]
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring invalid frontmatter: {e}")
        return None, body

    if not isinstance(data, dict):
        return None, body
    return {str(k): v for k, v in data.items()}, body


def extract_inline_tags(body: str) -> List[str]:
    """Find ``#tag`` annotations outside code; purely numeric tags are ignored."""
    body = _FENCED_CODE.sub("", body)
    body = _INLINE_CODE.sub("", body)
    tags = []
    for match in _INLINE_TAG.finditer(body):
        tag = match.group(1)
        if any(not c.isdigit() for c in tag):
            tags.append(f"#{tag}")
    return tags


class LocalVault(VaultStorage):
    """Vault backed by a folder on the local filesystem.

    Dot-prefixed files and folders (``.obsidian``, ``.trash``) are invisible
    to the sorter.
    """

    def __init__(self, root_path: Path, max_workers: int = 2) -> None:
        self.root_path = Path(root_path).resolve()
        if not self.root_path.is_dir():
            raise FileOperationError(f"Vault folder does not exist: {self.root_path}")
        self.executor = ThreadPoolExecutor(max_workers=max_workers)

    @property
    def display_name(self) -> str:
        return f"{self.root_path} (local)"

    def _full_path(self, path: str) -> Path:
        """Convert a vault path to an absolute path inside the vault."""
        full = (self.root_path / normalize_path(path)).resolve()
        if full != self.root_path and self.root_path not in full.parents:
            raise FileOperationError(f"Path escapes the vault: {path}")
        return full

    def _relative(self, full: Path) -> str:
        return full.relative_to(self.root_path).as_posix()

    def _make_entry(self, full: Path) -> VaultEntry:
        stat = full.stat()
        identity = f"{stat.st_dev}:{stat.st_ino}"
        cls = VaultFolder if full.is_dir() else VaultFile
        return cls(path=self._relative(full), id=identity)

    async def _run(self, fn, *args):
        return await asyncio.get_event_loop().run_in_executor(self.executor, fn, *args)

    def close(self) -> None:
        self.executor.shutdown(wait=True)

    # =========================================================================
    # Reads
    # =========================================================================

    def _read_metadata(self, path: str) -> Optional[FileMetadataSnapshot]:
        full = self._full_path(path)
        try:
            text = full.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise MetadataError(f"Cannot read {path}: {e}") from e

        frontmatter, body = split_frontmatter(text)
        return FileMetadataSnapshot.from_frontmatter(frontmatter, extract_inline_tags(body))

    async def get_metadata(self, file: VaultFile) -> Optional[FileMetadataSnapshot]:
        return await self._run(self._read_metadata, file.path)

    def _get_entry(self, path: str) -> Optional[VaultEntry]:
        try:
            full = self._full_path(path)
        except FileOperationError:
            return None
        if not os.path.lexists(full):
            return None
        return self._make_entry(full)

    async def get_entry(self, path: str) -> Optional[VaultEntry]:
        return await self._run(self._get_entry, path)

    def _list_documents(self) -> List[VaultFile]:
        documents = []
        for root, dirs, files in os.walk(self.root_path):
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            for filename in files:
                if filename.startswith("."):
                    continue
                entry = self._make_entry(Path(root) / filename)
                if self.is_document(entry):
                    documents.append(entry)
        return documents

    async def list_documents(self) -> List[VaultFile]:
        return await self._run(self._list_documents)

    def _list_children(self, folder_path: str) -> List[VaultEntry]:
        full = self._full_path(folder_path)
        if not full.is_dir():
            raise FileOperationError(f"Folder does not exist: {folder_path}")
        return [self._make_entry(child) for child in sorted(full.iterdir())
                if not child.name.startswith(".")]

    async def list_children(self, folder_path: str) -> List[VaultEntry]:
        return await self._run(self._list_children, folder_path)

    # =========================================================================
    # Writes
    # =========================================================================

    def _create_folder(self, path: str) -> None:
        full = self._full_path(path)
        try:
            full.mkdir(parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError) as e:
            raise FileOperationError(f"Path exists but is not a folder: {path}") from e
        except OSError as e:
            raise FileOperationError(f"Failed to create folder {path}: {e}") from e

    async def create_folder(self, path: str) -> None:
        await self._run(self._create_folder, path)

    def _rename(self, src_path: str, dest_path: str) -> None:
        full_src = self._full_path(src_path)
        full_dest = self._full_path(dest_path)

        if not full_src.exists():
            raise FileOperationError(f"Source file does not exist: {src_path}")
        # On case-insensitive filesystems the destination may be the source itself
        if full_dest.exists() and not full_src.samefile(full_dest):
            raise FileOperationError(f"Destination already exists: {dest_path}")

        try:
            shutil.move(str(full_src), str(full_dest))
        except Exception as e:
            raise FileOperationError(f"Failed to move file from {src_path} to {dest_path}: {e}") from e

    async def rename(self, file: VaultFile, new_path: str) -> None:
        # TODO: rewrite path-qualified links ([[Folder/note]], [x](Folder/note.md)) pointing at the moved note
        new_path = normalize_path(new_path)
        await self._run(self._rename, file.path, new_path)
        file.path = new_path
