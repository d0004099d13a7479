"""
Parking session: explicit owner of the slot index root

The session is created by loading a store, threads its root through every
service call, keeps whatever root the service hands back and saves the tree
at shutdown. One reentrant lock serializes every operation, reads included,
since rotations can restructure any subtree.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import logging
import threading

from ..domain.slot_index import SlotNode
from ..infrastructure.factories import SlotIndexFactory, SlotRowFactory
from ..infrastructure.repositories import SlotStore
from .dtos import (
    FeeQuoteDTO, ParkingStatisticsDTO, SlotCategoriesDTO,
    SlotDetailsDTO, SlotOperationDTO
)
from .parking_service import ParkingService


class ParkingSession:
    """One logical session over a single slot index"""

    def __init__(self, service: ParkingService, store: Optional[SlotStore] = None,
                 root: Optional[SlotNode] = None):
        self.service = service
        self.store = store
        self._root = root
        self._lock = threading.RLock()
        self._logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def open(cls, service: ParkingService, store: SlotStore) -> 'ParkingSession':
        """
        Load the store into a new session.
        Raises: ImportExportError if the store cannot be read
        """
        session = cls(service, store)
        session.load()
        return session

    @property
    def root(self) -> Optional[SlotNode]:
        return self._root

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Replace the tree with the store's content; returns the slot count"""
        if self.store is None:
            raise ValueError("Session has no store to load from")
        rows = self.store.read_rows()
        with self._lock:
            self._root = SlotIndexFactory(self.service.index).from_rows(rows)
            total = self.service.index.count_total(self._root)
        self._logger.info(f"Parking slots loaded successfully from {self.store.location} ({total} slots)")
        return total

    def save(self) -> int:
        """Write the tree to the store; returns the number of rows written"""
        if self.store is None:
            raise ValueError("Session has no store to save to")
        with self._lock:
            rows = SlotRowFactory(self.service.index).from_index(self._root)
        return self.store.write_rows(rows)

    def add_slot(self, slot_number: int) -> bool:
        """Add an empty slot to the inventory; False if it already exists"""
        with self._lock:
            if self.service.index.search(self._root, slot_number) is not None:
                return False
            self._root = self.service.index.insert(self._root, slot_number)
            return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _apply(self, result: SlotOperationDTO) -> SlotOperationDTO:
        self._root = result.root
        return result

    def park(self, license_id: str, now: Optional[datetime] = None) -> SlotOperationDTO:
        with self._lock:
            return self._apply(self.service.assign(self._root, license_id, now=now))

    def free(self, slot_number: int) -> SlotOperationDTO:
        with self._lock:
            return self._apply(self.service.release(self._root, slot_number))

    def reserve(self, slot_number: int) -> SlotOperationDTO:
        with self._lock:
            return self._apply(self.service.reserve(self._root, slot_number))

    def sweep_stale(self, hours_limit: Optional[int] = None,
                    now: Optional[datetime] = None) -> SlotOperationDTO:
        with self._lock:
            return self._apply(self.service.sweep_stale(self._root, hours_limit, now=now))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def slot_details(self, slot_number: int) -> Optional[SlotDetailsDTO]:
        with self._lock:
            return self.service.slot_details(self._root, slot_number)

    def nearest_available(self) -> Optional[int]:
        with self._lock:
            return self.service.nearest_available(self._root)

    def parking_status(self) -> List[SlotDetailsDTO]:
        with self._lock:
            return self.service.parking_status(self._root)

    def categorize(self) -> SlotCategoriesDTO:
        with self._lock:
            return self.service.categorize(self._root)

    def statistics(self) -> ParkingStatisticsDTO:
        with self._lock:
            return self.service.statistics(self._root)

    def compute_fee(self, slot_number: int, hourly_rate: Optional[Decimal] = None,
                    now: Optional[datetime] = None) -> FeeQuoteDTO:
        with self._lock:
            return self.service.compute_fee(self._root, slot_number, hourly_rate, now=now)
