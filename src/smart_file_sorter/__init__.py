"""Smart File Sorter

Moves notes into folders according to ordered rules matched against their
frontmatter properties and tags.
"""

__version__ = "0.1.0"

from .core.rule_matcher import RuleMatcher
from .core.sorter import Sorter, MoveStatus, MoveResult, BatchResult
from .core.move_history import MoveHistory, MoveOperation
from .core.auto_sorter import AutoSorter
from .models.sorting_rule import SortingRule, MatchType
from .models.snapshot import FileMetadataSnapshot
from .models.config import SorterSettings, load_settings, save_settings

__all__ = [
    # Core components
    "RuleMatcher",
    "Sorter",
    "AutoSorter",
    "MoveHistory",

    # Types and enums
    "SortingRule",
    "MatchType",
    "FileMetadataSnapshot",
    "MoveStatus",
    "MoveResult",
    "MoveOperation",
    "BatchResult",
    "SorterSettings",

    # Settings
    "load_settings",
    "save_settings",
]
