"""
Data Transfer Objects (DTOs) for the Parking Slot Index

This module defines DTOs for data transfer between layers:
1. Result DTOs - Reported outcomes of service operations
2. Read DTOs - Slot details, categories and statistics for display
3. Row DTOs - Validation of persisted slot rows on import

DTO Principles:
- Expected domain conditions are reported through `success`/`outcome`,
  never raised
- Validation at creation
- No business logic, only data
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import AppConfig
from ..domain.models import (
    SlotRecord, SlotCategories, ParkingStatistics,
    format_timestamp, parse_timestamp
)

logger = logging.getLogger(__name__)


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseDTO':
        """Create DTO from dictionary"""
        return cls(**data)

    @classmethod
    def from_json(cls, json_str: str) -> 'BaseDTO':
        """Create DTO from JSON string"""
        return cls(**json.loads(json_str))


# ============================================================================
# ENUMS
# ============================================================================

class SlotOutcome(str, Enum):
    """Reported outcome of a slot operation"""
    OK = "ok"
    NOT_FOUND = "not_found"
    NO_AVAILABLE_SLOTS = "no_available_slots"
    ALREADY_AVAILABLE = "already_available"
    SLOT_OCCUPIED = "slot_occupied"
    NOT_OCCUPIED = "not_occupied"
    NO_ENTRY_TIME = "no_entry_time"
    INVALID_REQUEST = "invalid_request"


class SlotStatusDTO(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"


# ============================================================================
# RESULT DTOs
# ============================================================================

class SlotOperationDTO(BaseDTO):
    """
    DTO for the result of a mutating slot operation

    `root` is the tree root after the operation; callers must keep it as the
    new handle whether or not the operation succeeded.
    """
    success: bool = Field(description="Operation success")
    outcome: SlotOutcome = Field(description="Reported outcome")
    slot_number: Optional[int] = Field(default=None, description="Slot acted on")
    license_id: Optional[str] = Field(default=None, description="Occupant license id")
    reservation_cleared: bool = Field(default=False, description="A pending reservation was dropped")
    released_slots: List[int] = Field(default_factory=list, description="Slots freed by a sweep")
    message: str = Field(default="", description="Result message")
    root: Optional[Any] = Field(default=None, exclude=True, description="Tree root after the operation")
    timestamp: datetime = Field(default_factory=datetime.now, description="Operation timestamp")


class FeeQuoteDTO(BaseDTO):
    """DTO for a parking fee computation"""
    success: bool = Field(description="Computation success")
    outcome: SlotOutcome = Field(description="Reported outcome")
    slot_number: int = Field(description="Slot number")
    license_id: Optional[str] = Field(default=None, description="Occupant license id")
    hours: int = Field(default=0, ge=0, description="Whole hours parked")
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0, description="Rate per hour")
    amount: Decimal = Field(default=Decimal("0"), ge=0, description="Fee amount")
    currency: str = Field(default=AppConfig.DEFAULT_CURRENCY, min_length=3, max_length=3)
    message: str = Field(default="", description="Result message")

    def format(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


# ============================================================================
# READ DTOs
# ============================================================================

class SlotDetailsDTO(BaseDTO):
    """DTO for displaying a single slot"""
    slot_number: int
    available: bool
    reserved: bool
    license_id: Optional[str] = None
    entry_time: Optional[datetime] = None

    @property
    def status(self) -> SlotStatusDTO:
        if not self.available:
            return SlotStatusDTO.OCCUPIED
        if self.reserved:
            return SlotStatusDTO.RESERVED
        return SlotStatusDTO.AVAILABLE

    @classmethod
    def from_record(cls, record: SlotRecord) -> 'SlotDetailsDTO':
        occupant = record.occupant
        return cls(
            slot_number=record.slot_number,
            available=record.available,
            reserved=record.reserved,
            license_id=occupant.license_id if occupant else None,
            entry_time=occupant.entry_time if occupant else None,
        )


class SlotCategoriesDTO(BaseDTO):
    """DTO for slot numbers grouped by state"""
    available: List[int] = Field(default_factory=list)
    occupied: List[int] = Field(default_factory=list)
    reserved: List[int] = Field(default_factory=list)

    @classmethod
    def from_categories(cls, categories: SlotCategories) -> 'SlotCategoriesDTO':
        return cls(**categories.to_dict())


class ParkingStatisticsDTO(BaseDTO):
    """DTO for aggregate parking statistics"""
    total: int = Field(ge=0)
    occupied: int = Field(ge=0)
    available: int = Field(ge=0)
    occupancy_rate: float = Field(default=0.0, ge=0, le=1)

    @classmethod
    def from_statistics(cls, stats: ParkingStatistics) -> 'ParkingStatisticsDTO':
        return cls(
            total=stats.total,
            occupied=stats.occupied,
            available=stats.available,
            occupancy_rate=stats.occupancy_rate,
        )


# ============================================================================
# ROW DTOs (import/export)
# ============================================================================

class SlotRow(NamedTuple):
    """One persisted slot, in the column order of the stores"""
    slot_number: int
    license_id: str
    entry_time: str
    available: bool
    reserved: bool


class SlotRowDTO(BaseDTO):
    """
    DTO validating one raw persisted row

    Cells arrive as whatever the store produced (numbers as floats, empty
    cells as None, booleans as text). A missing or non-integral slot number
    validates to None and the row is skipped by the importer.
    """
    slot_number: Optional[int] = None
    license_id: str = ""
    entry_time: Optional[datetime] = None
    available: bool = False
    reserved: bool = False

    @field_validator('slot_number', mode='before')
    @classmethod
    def coerce_slot_number(cls, v):
        """Accept ints and integral floats/text; anything else becomes None"""
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, float):
            return int(v) if v.is_integer() else None
        if isinstance(v, str):
            v = v.strip()
            try:
                return int(v)
            except ValueError:
                try:
                    number = float(v)
                except ValueError:
                    return None
                return int(number) if number.is_integer() else None
        return v

    @field_validator('license_id', mode='before')
    @classmethod
    def coerce_license_id(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator('entry_time', mode='before')
    @classmethod
    def coerce_entry_time(cls, v):
        """Parse persisted text; an unparsable timestamp is dropped"""
        if v is None or isinstance(v, datetime):
            return v
        try:
            return parse_timestamp(str(v))
        except ValueError:
            logger.warning(f"Ignoring unparsable entry time: {v!r}")
            return None

    @field_validator('available', 'reserved', mode='before')
    @classmethod
    def coerce_flag(cls, v):
        if v is None or v == "":
            return False
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "y")
        return bool(v)

    @classmethod
    def from_row(cls, row) -> 'SlotRowDTO':
        """Build from a positional row; short rows are padded with empty cells"""
        cells = list(row) + [None] * (5 - len(row))
        return cls(
            slot_number=cells[0],
            license_id=cells[1],
            entry_time=cells[2],
            available=cells[3],
            reserved=cells[4],
        )

    def to_row(self) -> SlotRow:
        return SlotRow(
            slot_number=self.slot_number,
            license_id=self.license_id,
            entry_time=format_timestamp(self.entry_time),
            available=self.available,
            reserved=self.reserved,
        )
