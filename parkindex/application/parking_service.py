"""
Parking Slot Application Service

This module implements the application service layer for the slot index.
It composes SlotIndex operations into the parking use cases and reports
their outcomes.

Responsibilities:
1. Slot assignment (nearest available + occupy) and release
2. Reservations
3. Fee computation and statistics
4. Auto-release of cars parked too long
5. Publishing slot events for notification

Key Principles:
- The service never touches tree topology; it calls SlotIndex by key
- Every mutating call returns the root the caller must keep
- Expected domain conditions are reported outcomes, not exceptions
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from ..config import AppConfig
from ..domain.models import Occupant, ParkingStatistics, SlotRecord
from ..domain.slot_index import SlotIndex, SlotNode
from ..infrastructure.messaging import DomainEvent, EventBus, EventType
from .dtos import (
    FeeQuoteDTO, ParkingStatisticsDTO, SlotCategoriesDTO,
    SlotDetailsDTO, SlotOperationDTO, SlotOutcome
)


class ParkingService:
    """
    Main application service for the parking slot index

    This service orchestrates the use cases of the system:
    1. assign / release / reserve
    2. compute_fee / statistics
    3. sweep_stale (auto-release)
    4. read-only queries used by the menu
    """

    def __init__(self, index: Optional[SlotIndex] = None, event_bus: Optional[EventBus] = None):
        """
        Initialize the parking service

        Args:
            index: Tree operations to use. A fresh SlotIndex by default.
            event_bus: Bus receiving slot events. A private bus by default.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.index = index or SlotIndex()
        self.event_bus = event_bus or EventBus()

        # Service configuration
        self.config: Dict[str, Any] = {
            "currency": AppConfig.DEFAULT_CURRENCY,
            "default_hourly_rate": AppConfig.DEFAULT_HOURLY_RATE,
            "stale_after_hours": AppConfig.DEFAULT_STALE_AFTER_HOURS,
        }

    # ------------------------------------------------------------------
    # Mutating use cases
    # ------------------------------------------------------------------

    def assign(self, root: Optional[SlotNode], license_id: str,
               now: Optional[datetime] = None) -> SlotOperationDTO:
        """
        Park a car in the nearest available slot

        Use Case: Vehicle Entry
        1. Find the lowest-numbered available slot
        2. Mark it occupied with a new occupant
        3. Drop any pending reservation on it

        Returns: Operation result carrying the root
        """
        license_id = (license_id or "").strip()
        if not license_id:
            return self._report(root, False, SlotOutcome.INVALID_REQUEST,
                                "License id cannot be empty.")
        if not license_id.isprintable():
            return self._report(root, False, SlotOutcome.INVALID_REQUEST,
                                f"License id contains control characters: {license_id!r}")

        slot_number = self.index.find_nearest_available(root)
        if slot_number is None:
            return self._report(root, False, SlotOutcome.NO_AVAILABLE_SLOTS,
                                "No available slots.", license_id=license_id)

        occupant = Occupant(license_id, now or datetime.now())
        root = self.index.update_availability(root, slot_number, False)
        record = self.index.search(root, slot_number)
        reservation_cleared = record.occupy(occupant)

        message = f"Car {license_id} parked at slot {slot_number}"
        if reservation_cleared:
            message = f"Reservation cleared for Slot {slot_number}. {message}"

        self._publish(EventType.PARKING_SLOT_OCCUPIED, slot_number, {
            "license_id": license_id,
            "entry_time": occupant.entry_time.isoformat(),
            "reservation_cleared": reservation_cleared,
        })
        return self._report(root, True, SlotOutcome.OK, message,
                            slot_number=slot_number, license_id=license_id,
                            reservation_cleared=reservation_cleared)

    def release(self, root: Optional[SlotNode], slot_number: int) -> SlotOperationDTO:
        """
        Free a slot

        Clears the occupant and any pending reservation. A slot that is
        already available and unreserved is reported as a no-op.
        """
        record = self.index.search(root, slot_number)
        if record is None:
            return self._report(root, False, SlotOutcome.NOT_FOUND,
                                f"Slot {slot_number} is not present in the parking lot.",
                                slot_number=slot_number)

        if record.available and not record.reserved:
            return self._report(root, False, SlotOutcome.ALREADY_AVAILABLE,
                                f"Slot {slot_number} is already available.",
                                slot_number=slot_number)

        reservation_cleared = record.reserved
        previous = record.vacate()
        root = self.index.update_reservation(root, slot_number, False)

        license_id = previous.license_id if previous else None
        self._publish(EventType.PARKING_SLOT_RELEASED, slot_number, {
            "license_id": license_id,
            "reason": "released",
        })
        return self._report(root, True, SlotOutcome.OK,
                            f"Slot {slot_number} is now available.",
                            slot_number=slot_number, license_id=license_id,
                            reservation_cleared=reservation_cleared)

    def reserve(self, root: Optional[SlotNode], slot_number: int) -> SlotOperationDTO:
        """
        Place a reservation on an available slot

        Reserving an already reserved slot is allowed and leaves it reserved.
        """
        record = self.index.search(root, slot_number)
        if record is None:
            return self._report(root, False, SlotOutcome.NOT_FOUND,
                                f"Slot {slot_number} not found.", slot_number=slot_number)

        if not record.available:
            return self._report(root, False, SlotOutcome.SLOT_OCCUPIED,
                                f"Slot {slot_number} is already occupied.",
                                slot_number=slot_number)

        root = self.index.update_reservation(root, slot_number, True)
        self._publish(EventType.PARKING_SLOT_RESERVED, slot_number, {})
        return self._report(root, True, SlotOutcome.OK,
                            f"Slot {slot_number} has been reserved.", slot_number=slot_number)

    def sweep_stale(self, root: Optional[SlotNode], hours_limit: Optional[int] = None,
                    now: Optional[datetime] = None) -> SlotOperationDTO:
        """
        Release every car parked for hours_limit whole hours or more

        One PARKING_SLOT_RELEASED event is published per released slot.
        """
        if hours_limit is None:
            hours_limit = self.config["stale_after_hours"]
        if hours_limit < 0:
            return self._report(root, False, SlotOutcome.INVALID_REQUEST,
                                f"Hours limit cannot be negative: {hours_limit}")

        released: List[int] = []

        def notify(record: SlotRecord, occupant: Occupant) -> None:
            released.append(record.slot_number)
            self._publish(EventType.PARKING_SLOT_RELEASED, record.slot_number, {
                "license_id": occupant.license_id,
                "reason": f"parked over {hours_limit} hours",
            })

        root = self.index.sweep_stale(root, hours_limit, now=now, on_release=notify)

        return self._report(root, True, SlotOutcome.OK,
                            f"Released {len(released)} slot(s) parked over {hours_limit} hours.",
                            released_slots=released)

    # ------------------------------------------------------------------
    # Billing and statistics
    # ------------------------------------------------------------------

    def compute_fee(self, root: Optional[SlotNode], slot_number: int,
                    hourly_rate: Optional[Decimal] = None,
                    now: Optional[datetime] = None) -> FeeQuoteDTO:
        """
        Fee for the car in a slot: whole hours parked (truncated) times the
        hourly rate. Unknown or free slots quote zero.
        """
        rate = Decimal(str(hourly_rate)) if hourly_rate is not None \
            else Decimal(str(self.config["default_hourly_rate"]))
        currency = self.config["currency"]

        if not rate.is_finite() or rate < 0:
            return self._quote(slot_number, False, SlotOutcome.INVALID_REQUEST,
                               f"Hourly rate must be a finite, non-negative amount: {rate}",
                               currency=currency)

        record = self.index.search(root, slot_number)
        if record is None:
            return self._quote(slot_number, False, SlotOutcome.NOT_FOUND,
                               f"Slot {slot_number} not found.", rate, currency)

        if record.available:
            return self._quote(slot_number, False, SlotOutcome.NOT_OCCUPIED,
                               f"Slot {slot_number} is not occupied.", rate, currency)

        occupant = record.occupant
        if occupant is None or occupant.entry_time is None:
            return self._quote(slot_number, False, SlotOutcome.NO_ENTRY_TIME,
                               f"Slot {slot_number} has no recorded entry time.", rate, currency,
                               license_id=occupant.license_id if occupant else None)

        hours = max(0, occupant.hours_parked(now))
        amount = rate * hours
        quote = FeeQuoteDTO(
            success=True,
            outcome=SlotOutcome.OK,
            slot_number=slot_number,
            license_id=occupant.license_id,
            hours=hours,
            hourly_rate=rate,
            amount=amount,
            currency=currency,
            message=f"Parking fee for slot {slot_number}: {amount:.2f} {currency} ({hours} hours)",
        )
        self.logger.info(quote.message)
        return quote

    def statistics(self, root: Optional[SlotNode]) -> ParkingStatisticsDTO:
        """Total, occupied and available slot counts"""
        stats = ParkingStatistics(
            total=self.index.count_total(root),
            occupied=self.index.count_occupied(root),
        )
        return ParkingStatisticsDTO.from_statistics(stats)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def nearest_available(self, root: Optional[SlotNode]) -> Optional[int]:
        return self.index.find_nearest_available(root)

    def slot_details(self, root: Optional[SlotNode], slot_number: int) -> Optional[SlotDetailsDTO]:
        record = self.index.search(root, slot_number)
        if record is None:
            self.logger.warning(f"Slot {slot_number} not present in the parking lot!")
            return None
        return SlotDetailsDTO.from_record(record)

    def categorize(self, root: Optional[SlotNode]) -> SlotCategoriesDTO:
        return SlotCategoriesDTO.from_categories(self.index.categorize(root))

    def parking_status(self, root: Optional[SlotNode]) -> List[SlotDetailsDTO]:
        """Every slot in ascending order"""
        return [SlotDetailsDTO.from_record(record) for record in self.index.in_order(root)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(self, event_type: EventType, slot_number: int, data: Dict[str, Any]) -> None:
        self.event_bus.publish(DomainEvent(
            event_type=event_type,
            slot_number=slot_number,
            data=data,
            source=self.__class__.__name__,
        ))

    def _report(self, root: Optional[SlotNode], success: bool, outcome: SlotOutcome,
                message: str, **kwargs) -> SlotOperationDTO:
        if success:
            self.logger.info(message)
        else:
            self.logger.warning(message)
        return SlotOperationDTO(success=success, outcome=outcome, message=message,
                                root=root, **kwargs)

    def _quote(self, slot_number: int, success: bool, outcome: SlotOutcome, message: str,
               rate: Decimal = Decimal("0"), currency: str = AppConfig.DEFAULT_CURRENCY,
               license_id: Optional[str] = None) -> FeeQuoteDTO:
        self.logger.warning(message)
        return FeeQuoteDTO(
            success=success,
            outcome=outcome,
            slot_number=slot_number,
            license_id=license_id,
            hourly_rate=max(rate, Decimal("0")),
            currency=currency,
            message=message,
        )


# ============================================================================
# SERVICE FACTORY
# ============================================================================

class ParkingServiceFactory:
    """Factory for creating parking service instances"""

    @staticmethod
    def create_default_service(event_bus: Optional[EventBus] = None) -> ParkingService:
        """Create a default parking service instance"""
        return ParkingService(event_bus=event_bus)

    @staticmethod
    def create_service_with_config(config: Dict[str, Any],
                                   event_bus: Optional[EventBus] = None) -> ParkingService:
        """Create a parking service with custom configuration"""
        service = ParkingService(event_bus=event_bus)
        unknown = set(config) - set(service.config)
        if unknown:
            raise ValueError(f"Unknown service configuration keys: {sorted(unknown)}")
        service.config.update(config)
        return service
