"""
Event System

Carries file notifications between the watcher, the auto-sorter and any
other interested component.
"""

from .event_bus import EventBus, DomainEvent
from .file_events import FileCreated, FileModified, FileSorted

__all__ = [
    # Core event system
    "EventBus",
    "DomainEvent",
    # File events
    "FileCreated",
    "FileModified",
    "FileSorted",
]
