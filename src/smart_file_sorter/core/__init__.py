"""Core sorting modules."""

from .rule_matcher import RuleMatcher
from .move_history import MoveHistory, MoveOperation
from .sorter import BatchResult, MoveResult, MoveStatus, Sorter, is_excluded
from .auto_sorter import AutoSorter

__all__ = [
    'RuleMatcher',
    'MoveHistory',
    'MoveOperation',
    'BatchResult',
    'MoveResult',
    'MoveStatus',
    'Sorter',
    'is_excluded',
    'AutoSorter',
]
