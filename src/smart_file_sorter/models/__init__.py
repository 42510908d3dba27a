"""Data models for smart file sorter."""

from .sorting_rule import MatchType, SortingRule
from .snapshot import FileMetadataSnapshot
from .config import SorterSettings, load_settings, save_settings

__all__ = [
    "MatchType",
    "SortingRule",
    "FileMetadataSnapshot",
    "SorterSettings",
    "load_settings",
    "save_settings",
]
