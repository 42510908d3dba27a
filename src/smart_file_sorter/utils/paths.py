"""Vault path helpers.

Vault paths are relative, slash-separated and carry no leading or trailing
separator. The vault root is the empty string.
"""

import re
import unicodedata
from typing import List

_SEPARATORS = re.compile(r"[\\/]+")


def normalize_path(path: str) -> str:
    """Collapse redundant separators and strip leading/trailing ones."""
    if not path:
        return ""
    path = _SEPARATORS.sub("/", path.replace("\u00a0", " "))
    path = path.strip("/")
    return unicodedata.normalize("NFC", path)


def join_path(*parts: str) -> str:
    """Join path parts and normalize the result."""
    return normalize_path("/".join(p for p in parts if p))


def path_segments(path: str) -> List[str]:
    """Split a path into its segments (the root has none)."""
    normalized = normalize_path(path)
    return normalized.split("/") if normalized else []


def is_within_folder(path: str, folder: str) -> bool:
    """Check if ``path`` is ``folder`` itself or lies below it.

    The comparison is segment-aligned: "Archive" contains "Archive/x" but
    not "ArchiveX".
    """
    folder = normalize_path(folder)
    if not folder:
        return False
    path = normalize_path(path)
    return path == folder or path.startswith(folder + "/")
