"""
Append-only, timestamped audit trail kept by the scheduler
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

logger = logging.getLogger(__name__)


class AuditLog:
    """In-memory, unbounded log of scheduler activity"""

    def __init__(self, source: str = "Orchestrator"):
        self.source = source
        self._entries: List[str] = []

    def record(self, message: str, level: int = logging.INFO) -> str:
        line = f"[{datetime.now().isoformat()}] [{self.source}] {message}"
        self._entries.append(line)
        logger.log(level, message)
        return line

    def extend(self, messages: Iterable[str], prefix: str = "") -> None:
        """Fold lines produced elsewhere (e.g. by a node) into the trail"""
        for message in messages:
            self.record(f"{prefix}{message}")

    def clear(self) -> None:
        self._entries.clear()
        self.record("Logs cleared.")

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def last(self) -> Optional[str]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))
