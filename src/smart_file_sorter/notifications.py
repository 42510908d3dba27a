"""User-facing notices."""

from typing import List, Optional, Protocol

from rich.console import Console
from rich.markup import escape


class Notifier(Protocol):
    """Fire-and-forget message display."""

    def notify(self, message: str) -> None:
        ...


class NullNotifier:
    """Discards every notice."""

    def notify(self, message: str) -> None:
        pass


class ConsoleNotifier:
    """Prints notices to a rich console."""

    def __init__(self, console: Optional[Console] = None, style: str = "cyan"):
        self.console = console or Console(stderr=True)
        self.style = style

    def notify(self, message: str) -> None:
        self.console.print(f"[{self.style}]•[/{self.style}] {escape(message)}", highlight=False)


class RecordingNotifier:
    """Keeps notices in memory, for hosts that display them later."""

    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
