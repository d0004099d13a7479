"""
Messaging Infrastructure for the Parking Slot Index

This module implements event-driven notification of slot state changes:
1. Event Bus - In-process publish/subscribe for domain events
2. Logging Handler - Console/log notification of slot events
3. Redis Publisher - Forwards events to a Redis Pub/Sub channel so other
   processes (dashboards, signage) can follow the lot

Key Patterns:
- Publish/Subscribe
- Handler failures are logged and never reach the publisher
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4
import json
import logging

import redis

from ..config import AppConfig


# ============================================================================
# MESSAGE TYPES AND ENUMS
# ============================================================================

class MessageType(str, Enum):
    """Types of messages in the system"""
    DOMAIN_EVENT = "domain_event"


class EventType(str, Enum):
    """Domain event types"""
    PARKING_SLOT_OCCUPIED = "parking_slot_occupied"
    PARKING_SLOT_RELEASED = "parking_slot_released"
    PARKING_SLOT_RESERVED = "parking_slot_reserved"


# ============================================================================
# MESSAGE BASE CLASSES
# ============================================================================

@dataclass
class Message:
    """Base message class"""
    message_id: UUID = field(default_factory=uuid4)
    message_type: MessageType = MessageType.DOMAIN_EVENT
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary"""
        data = asdict(self)
        data['message_id'] = str(self.message_id)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        """Convert message to JSON string"""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        """Create message from dictionary"""
        data = dict(data)
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        data['message_id'] = UUID(data['message_id'])
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> 'Message':
        """Create message from JSON string"""
        return cls.from_dict(json.loads(json_str))


@dataclass
class DomainEvent(Message):
    """Domain event about one slot"""
    event_type: EventType = EventType.PARKING_SLOT_RELEASED
    slot_number: Optional[int] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.message_type = MessageType.DOMAIN_EVENT
        # from_dict hands enum fields back as plain strings
        self.event_type = EventType(self.event_type)

    def describe(self) -> str:
        """One-line human readable notification"""
        license_id = self.data.get("license_id")
        car = f" (car {license_id})" if license_id else ""
        if self.event_type == EventType.PARKING_SLOT_OCCUPIED:
            return f"Slot {self.slot_number} occupied{car}"
        if self.event_type == EventType.PARKING_SLOT_RESERVED:
            return f"Slot {self.slot_number} reserved"
        reason = self.data.get("reason")
        suffix = f" [{reason}]" if reason else ""
        return f"Slot {self.slot_number} released{car}{suffix}"


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Handlers run synchronously in subscription order. A failing handler is
    logged and skipped; the remaining handlers still run.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to every event type"""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type}")
            except ValueError:
                pass

    def publish(self, event: DomainEvent) -> int:
        """
        Publish an event to all subscribers

        Returns: Number of handlers that processed the event without error
        """
        self._logger.debug(f"Publishing event: {event.event_type} (ID: {event.message_id})")

        delivered = 0
        for handler in list(self._subscribers.get(event.event_type, [])):
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
                delivered += 1
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type} with {handler.__class__.__name__}: {e}"
                )
        return delivered

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()


class LoggingEventHandler(EventHandler):
    """Writes one notification line per slot event"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("SlotNotifications")

    def handle(self, event: DomainEvent) -> None:
        self._logger.info(event.describe())


# ============================================================================
# REDIS PUBLISHER
# ============================================================================

class RedisEventPublisher(EventHandler):
    """
    Forwards slot events to a Redis Pub/Sub channel as JSON

    Connection errors are logged and reported as a False publish result; the
    in-memory index is never affected by Redis being unavailable.
    """

    def __init__(
        self,
        redis_url: str = AppConfig.REDIS_URL,
        channel: str = AppConfig.EVENT_CHANNEL,
        client: Optional[redis.Redis] = None,
        **kwargs
    ):
        self.redis_url = redis_url
        self.channel = channel
        self._logger = logging.getLogger(self.__class__.__name__)
        self.redis_client = client or redis.Redis.from_url(redis_url, **kwargs)

    def publish(self, message: Message) -> bool:
        """Publish a message to the channel"""
        try:
            receivers = self.redis_client.publish(self.channel, message.to_json())
            self._logger.debug(f"Published message to {self.channel}: {message.message_id}")
            return receivers > 0
        except redis.RedisError as e:
            self._logger.error(f"Error publishing to Redis: {e}")
            return False

    def handle(self, event: DomainEvent) -> None:
        self.publish(event)

    def close(self) -> None:
        """Close Redis connections"""
        try:
            self.redis_client.close()
        except redis.RedisError as e:
            self._logger.warning(f"Error closing Redis connection: {e}")
