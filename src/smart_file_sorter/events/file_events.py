"""
File Events - notifications about documents in the vault.
"""

from dataclasses import dataclass
from typing import Any, Dict

from .event_bus import DomainEvent


@dataclass(kw_only=True)
class FileCreated(DomainEvent):
    """Event fired when a file appears in the vault."""
    path: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"path": self.path}


@dataclass(kw_only=True)
class FileModified(DomainEvent):
    """Event fired when a file's content changes."""
    path: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"path": self.path}


@dataclass(kw_only=True)
class FileSorted(DomainEvent):
    """Event fired after a file was moved by a sorting rule."""
    path: str
    from_path: str
    rule_name: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "from_path": self.from_path,
            "rule_name": self.rule_name,
        }
