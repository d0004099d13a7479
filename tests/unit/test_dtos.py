#!/usr/bin/env python3
"""
DTO Unit Tests

Tests for result DTOs and for the row DTO used when importing slot files.
"""

import json
import sys
import unittest
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

sys.path.append(str(Path(__file__).parent.parent.parent))

from parkindex.application.dtos import (
    FeeQuoteDTO, ParkingStatisticsDTO, SlotDetailsDTO, SlotOperationDTO,
    SlotOutcome, SlotRow, SlotRowDTO, SlotStatusDTO
)
from parkindex.domain.models import Occupant, ParkingStatistics, SlotRecord


class TestSlotRowDTO(unittest.TestCase):
    """Unit tests for raw row validation"""

    def test_spreadsheet_row(self):
        """Numbers read from a workbook arrive as floats"""
        row = SlotRowDTO.from_row((5.0, "ABC123", "2024-01-01 10:00", False, False))
        self.assertEqual(row.slot_number, 5)
        self.assertEqual(row.license_id, "ABC123")
        self.assertEqual(row.entry_time, datetime(2024, 1, 1, 10, 0))
        self.assertFalse(row.available)
        self.assertFalse(row.reserved)

    def test_slot_number_coercion(self):
        cases = [
            (7, 7),
            ("8", 8),
            (" 9 ", 9),
            ("10.0", 10),
            (10.5, None),
            ("abc", None),
            (None, None),
            (True, None),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(SlotRowDTO.from_row((raw,)).slot_number, expected)

    def test_empty_cells(self):
        """Empty license, time and flags default to blank/False"""
        row = SlotRowDTO.from_row((3, None, None, None, ""))
        self.assertEqual(row.license_id, "")
        self.assertIsNone(row.entry_time)
        self.assertFalse(row.available)
        self.assertFalse(row.reserved)

    def test_text_flags(self):
        row = SlotRowDTO.from_row((3, "", "", "TRUE", "no"))
        self.assertTrue(row.available)
        self.assertFalse(row.reserved)
        row = SlotRowDTO.from_row((3, "", "", "0", "yes"))
        self.assertFalse(row.available)
        self.assertTrue(row.reserved)

    def test_unparsable_entry_time_is_dropped(self):
        with self.assertLogs("parkindex.application.dtos", level="WARNING"):
            row = SlotRowDTO.from_row((3, "ABC123", "yesterday", False, False))
        self.assertIsNone(row.entry_time)
        self.assertEqual(row.license_id, "ABC123")

    def test_short_row_is_padded(self):
        row = SlotRowDTO.from_row((4,))
        self.assertEqual(row.slot_number, 4)
        self.assertFalse(row.available)

    def test_to_row(self):
        row = SlotRowDTO.from_row((4, "XYZ999", "2024-02-03 04:05", False, False))
        self.assertEqual(row.to_row(), SlotRow(4, "XYZ999", "2024-02-03 04:05", False, False))


class TestResultDTOs(unittest.TestCase):
    """Unit tests for operation and fee results"""

    def test_operation_excludes_root(self):
        """The tree root never leaks into serialized results"""
        result = SlotOperationDTO(success=True, outcome=SlotOutcome.OK,
                                  slot_number=5, message="done", root=object())
        data = result.to_dict()
        self.assertNotIn("root", data)
        self.assertEqual(data["outcome"], "ok")
        self.assertEqual(data["released_slots"], [])
        self.assertEqual(json.loads(result.to_json())["slot_number"], 5)

    def test_outcome_compares_with_enum(self):
        result = SlotOperationDTO(success=False, outcome=SlotOutcome.NOT_FOUND)
        self.assertEqual(result.outcome, SlotOutcome.NOT_FOUND)

    def test_fee_quote_validation(self):
        quote = FeeQuoteDTO(success=True, outcome=SlotOutcome.OK, slot_number=1,
                            hours=3, hourly_rate=Decimal("2.50"), amount=Decimal("7.50"))
        self.assertEqual(quote.format(), "7.50 USD")
        with self.assertRaises(ValidationError):
            FeeQuoteDTO(success=True, outcome=SlotOutcome.OK, slot_number=1, hours=-1)
        with self.assertRaises(ValidationError):
            FeeQuoteDTO(success=True, outcome=SlotOutcome.OK, slot_number=1, currency="EURO")

    def test_statistics_from_value_object(self):
        dto = ParkingStatisticsDTO.from_statistics(ParkingStatistics(total=4, occupied=1))
        self.assertEqual((dto.total, dto.occupied, dto.available), (4, 1, 3))
        self.assertAlmostEqual(dto.occupancy_rate, 0.25)


class TestSlotDetailsDTO(unittest.TestCase):
    """Unit tests for slot display DTOs"""

    def test_status_from_record(self):
        record = SlotRecord(2)
        self.assertEqual(SlotDetailsDTO.from_record(record).status, SlotStatusDTO.AVAILABLE)

        record.reserved = True
        self.assertEqual(SlotDetailsDTO.from_record(record).status, SlotStatusDTO.RESERVED)

        record.occupy(Occupant("ABC123", datetime(2024, 1, 1, 9, 0)))
        details = SlotDetailsDTO.from_record(record)
        self.assertEqual(details.status, SlotStatusDTO.OCCUPIED)
        self.assertEqual(details.license_id, "ABC123")
        self.assertEqual(details.entry_time, datetime(2024, 1, 1, 9, 0))


if __name__ == "__main__":
    unittest.main()
