"""
Domain Models for the Parking Slot Index

This module contains:
1. Value Objects: Occupant, SlotCategories, ParkingStatistics
2. Entities: SlotRecord (identity = slot number)
3. Time helpers shared by the sweep and fee calculations

The tree that owns SlotRecord instances lives in slot_index.py.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from ..config import AppConfig


# ============================================================================
# TIME HELPERS
# ============================================================================

def whole_hours_between(start: datetime, end: datetime) -> int:
    """Whole hours elapsed from start to end, truncated toward zero"""
    return int((end - start) / timedelta(hours=1))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a persisted entry time; empty text yields None"""
    if not value:
        return None
    return datetime.strptime(value.strip(), AppConfig.TIMESTAMP_FORMAT)


def format_timestamp(value: Optional[datetime]) -> str:
    """Format an entry time for persistence; None yields an empty string"""
    if value is None:
        return ""
    return value.strftime(AppConfig.TIMESTAMP_FORMAT)


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)  # Value objects are immutable
class Occupant:
    """
    Value Object: The car currently parked in a slot
    Replaced wholesale when the slot changes occupant
    """
    license_id: str
    entry_time: Optional[datetime] = None

    def __post_init__(self):
        """Validate occupant after initialization"""
        if not self.license_id or not self.license_id.strip():
            raise ValueError("License id cannot be empty")
        object.__setattr__(self, 'license_id', self.license_id.strip())

    def hours_parked(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole hours since entry, or None when the entry time is unknown"""
        if self.entry_time is None:
            return None
        return whole_hours_between(self.entry_time, now or datetime.now())

    def __str__(self) -> str:
        return f"Car [License: {self.license_id}, Entry Time: {format_timestamp(self.entry_time) or 'unknown'}]"


@dataclass(frozen=True)
class SlotCategories:
    """Value Object: Slot numbers split by state, each list ascending"""
    available: List[int] = field(default_factory=list)
    occupied: List[int] = field(default_factory=list)
    reserved: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": list(self.available),
            "occupied": list(self.occupied),
            "reserved": list(self.reserved),
        }


@dataclass(frozen=True)
class ParkingStatistics:
    """Value Object: Aggregate counts over the whole index"""
    total: int
    occupied: int

    @property
    def available(self) -> int:
        return self.total - self.occupied

    @property
    def occupancy_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.occupied / self.total


# ============================================================================
# ENTITIES
# ============================================================================

class SlotRecord:
    """
    Entity: A single parking slot
    Identity is the slot number, which is also the index key and never changes.

    Invariant: reserved implies available. Occupying the slot clears the
    reservation. The occupant is expected to be present exactly while the slot
    is occupied, but bulk loads may mark a slot unavailable without one.
    """

    __slots__ = ('_slot_number', 'available', 'reserved', 'occupant', 'subtree_height')

    def __init__(self, slot_number: int, occupant: Optional[Occupant] = None):
        if isinstance(slot_number, bool) or not isinstance(slot_number, int):
            raise TypeError(f"Slot number must be an integer, got: {slot_number!r}")
        self._slot_number = slot_number
        self.available = True
        self.reserved = False
        self.occupant = occupant
        self.subtree_height = 1

    @property
    def slot_number(self) -> int:
        return self._slot_number

    @property
    def is_occupied(self) -> bool:
        return not self.available

    def occupy(self, occupant: Occupant) -> bool:
        """
        Park a car here. Clears any pending reservation.
        Returns: True if a reservation was cleared
        """
        had_reservation = self.reserved
        self.available = False
        self.reserved = False
        self.occupant = occupant
        return had_reservation

    def vacate(self) -> Optional[Occupant]:
        """Free the slot and return the occupant that left, if any"""
        previous = self.occupant
        self.occupant = None
        self.available = True
        return previous

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "slot_number": self.slot_number,
            "available": self.available,
            "reserved": self.reserved,
            "license_id": self.occupant.license_id if self.occupant else None,
            "entry_time": self.occupant.entry_time.isoformat()
            if self.occupant and self.occupant.entry_time else None,
        }

    def __eq__(self, other: object) -> bool:
        """Records are equal if they describe the same slot state"""
        if not isinstance(other, SlotRecord):
            return False
        return (
            self.slot_number == other.slot_number
            and self.available == other.available
            and self.reserved == other.reserved
            and self.occupant == other.occupant
        )

    def __hash__(self) -> int:
        return hash(self.slot_number)

    def __repr__(self) -> str:
        return (
            f"SlotRecord(slot_number={self.slot_number}, available={self.available}, "
            f"reserved={self.reserved}, occupant={self.occupant!r})"
        )

    def __str__(self) -> str:
        text = f"Slot: {self.slot_number} | Available: {self.available} | Reserved: {self.reserved}"
        if self.occupant is not None:
            text += f" | Car: {self.occupant}"
        return text
