"""In-memory history of completed moves."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Iterator, List

DEFAULT_CAPACITY = 100


@dataclass(slots=True, frozen=True)
class MoveOperation:
    """A single completed move."""
    file: str
    from_path: str
    to_path: str
    rule: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict:
        return {
            "file": self.file,
            "from": self.from_path,
            "to": self.to_path,
            "rule": self.rule,
            "timestamp": self.timestamp.isoformat(),
        }

    def describe(self) -> str:
        return (f"[{self.timestamp:%Y-%m-%d %H:%M:%S}] {self.file}\n"
                f"  {self.from_path} → {self.to_path}\n"
                f"  Rule: {self.rule}")


class MoveHistory:
    """Append-only log of the most recent moves; the oldest are evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self._operations: Deque[MoveOperation] = deque(maxlen=capacity)

    def record(self, file: str, from_path: str, to_path: str, rule: str) -> MoveOperation:
        operation = MoveOperation(file=file, from_path=from_path, to_path=to_path, rule=rule)
        self._operations.append(operation)
        return operation

    def recent(self, limit: int = 10) -> List[MoveOperation]:
        """Return up to ``limit`` operations, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._operations))[:limit]

    def format_recent(self, limit: int = 10) -> str:
        return "\n\n".join(op.describe() for op in self.recent(limit))

    def clear(self) -> None:
        self._operations.clear()

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[MoveOperation]:
        return iter(self._operations)
