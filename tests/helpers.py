"""Shared test doubles"""

from typing import List, Optional

from parkindex.infrastructure.messaging import DomainEvent, EventHandler


class RecordingEventHandler(EventHandler):
    """Keeps every received event in memory"""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.events: List[DomainEvent] = []

    def handle(self, event: DomainEvent) -> None:
        self.events.append(event)
        if self.limit is not None and len(self.events) > self.limit:
            del self.events[0]
