"""
Marketplace activity log.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from marketplace.core.clock import Clock, utcnow


class EventType(Enum):
    """Types of marketplace activity."""

    USER_REGISTERED = "user_registered"
    COLLECTION_CREATED = "collection_created"

    ITEM_MINTED = "item_minted"
    ITEM_UPDATED = "item_updated"
    ITEM_LISTED = "item_listed"
    ITEM_DELISTED = "item_delisted"

    AUCTION_OPENED = "auction_opened"
    BID_PLACED = "bid_placed"
    AUCTION_SETTLED = "auction_settled"
    AUCTION_EXPIRED = "auction_expired"

    PURCHASE = "purchase"


@dataclass
class MarketEvent:
    """A logged marketplace event."""

    sequence: int
    event_type: EventType
    timestamp: datetime
    actor_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        actor = f"U{self.actor_id}" if self.actor_id is not None else "System"
        return f"[{actor}] {self.event_type.value}: {self.details}"


class EventLog:
    """Append-only activity log shared by the core components."""

    def __init__(self, clock: Clock = utcnow):
        self._clock = clock
        self._lock = threading.Lock()
        self.events: List[MarketEvent] = []

    def log(self, event_type: EventType, actor_id: Optional[int] = None, **details: Any) -> MarketEvent:
        """Log a marketplace event."""
        with self._lock:
            event = MarketEvent(
                sequence=len(self.events) + 1,
                event_type=event_type,
                timestamp=self._clock(),
                actor_id=actor_id,
                details=details,
            )
            self.events.append(event)
        return event

    def get_events(self) -> List[MarketEvent]:
        """Get all logged events."""
        with self._lock:
            return self.events.copy()

    def get_recent_events(self, count: int = 10) -> List[MarketEvent]:
        """Get the most recent N events, newest first."""
        with self._lock:
            return list(reversed(self.events[-count:])) if count > 0 else []

    def clear(self) -> None:
        """Clear the event log."""
        with self._lock:
            self.events.clear()
