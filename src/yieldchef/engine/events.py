"""Structured record of committed ledger operations."""

from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Event:
    timestamp: int
    event_type: str
    account: Optional[str] = None
    pool_id: Optional[int] = None
    amount: Optional[int] = None
    meta: dict = field(default_factory=dict)


class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)

    def add(self, e: Event) -> None:
        self.events.append(e)

    def __len__(self) -> int:
        return len(self.events)

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.event_type == event_type]

    def tail(self, n: int = 200) -> List[Event]:
        if n <= 0:
            return []
        if n >= len(self.events):
            return list(self.events)
        return list(self.events)[-n:]
