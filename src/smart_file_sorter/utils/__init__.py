"""Utility functions for smart file sorter."""

from smart_file_sorter.utils.paths import (
    is_within_folder,
    join_path,
    normalize_path,
    path_segments,
)

__all__ = [
    "normalize_path",
    "join_path",
    "path_segments",
    "is_within_folder",
]
