"""
Factory Pattern Implementation for the slot index

Import/export adapter between persisted slot rows and the tree:
1. SlotIndexFactory - builds an index from raw rows
2. SlotRowFactory - produces rows from an index, in slot order

Rows use the encoding of the stores: entry time as "YYYY-MM-DD HH:MM" text
and an empty string for an absent license or entry time.
"""

from typing import Any, Iterable, List, Optional, Sequence
import logging

from pydantic import ValidationError

from ..application.dtos import SlotRow, SlotRowDTO
from ..domain.models import Occupant, format_timestamp
from ..domain.slot_index import SlotIndex, SlotNode


class SlotIndexFactory:
    """Builds a SlotIndex tree from persisted rows"""

    def __init__(self, index: Optional[SlotIndex] = None):
        self.index = index or SlotIndex()
        self._logger = logging.getLogger(self.__class__.__name__)
        self.skipped = 0

    def from_rows(self, rows: Iterable[Sequence[Any]]) -> Optional[SlotNode]:
        """
        Populate a new tree from rows

        For each row with a valid slot number: insert (with an occupant when
        the license is non-empty), then set availability, then reservation.
        Rows without a valid slot number are skipped.

        Returns: Root of the new tree, None if no row was usable
        """
        root: Optional[SlotNode] = None
        self.skipped = 0
        loaded = 0

        for position, raw in enumerate(rows, start=2):
            try:
                row = SlotRowDTO.from_row(raw)
            except ValidationError as e:
                self._skip(position, f"invalid row: {e.error_count()} error(s)")
                continue

            if row.slot_number is None:
                self._skip(position, "no valid slot number")
                continue

            occupant = Occupant(row.license_id, row.entry_time) if row.license_id else None
            reserved = row.reserved
            if reserved and not row.available:
                self._logger.warning(
                    f"Row {position}: slot {row.slot_number} is occupied and reserved, dropping reservation"
                )
                reserved = False

            root = self.index.insert(root, row.slot_number, occupant)
            root = self.index.update_availability(root, row.slot_number, row.available)
            root = self.index.update_reservation(root, row.slot_number, reserved)
            loaded += 1

        self._logger.info(f"Loaded {loaded} slot rows ({self.skipped} skipped)")
        return root

    def _skip(self, position: int, reason: str) -> None:
        self.skipped += 1
        self._logger.warning(f"Skipping row {position}: {reason}")


class SlotRowFactory:
    """Produces persisted rows from a SlotIndex tree"""

    def __init__(self, index: Optional[SlotIndex] = None):
        self.index = index or SlotIndex()

    def from_index(self, root: Optional[SlotNode]) -> List[SlotRow]:
        """One row per slot, ascending slot order"""
        rows = []
        for record in self.index.in_order(root):
            occupant = record.occupant
            rows.append(SlotRow(
                slot_number=record.slot_number,
                license_id=occupant.license_id if occupant else "",
                entry_time=format_timestamp(occupant.entry_time) if occupant else "",
                available=record.available,
                reserved=record.reserved,
            ))
        return rows
