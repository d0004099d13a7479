#!/usr/bin/env python3
"""
Command Pattern Unit Tests

Tests for input parsers, the eleven menu commands, the factory and the
processor history. Commands run against an in-memory session.
"""

import shutil
import sys
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

sys.path.append(str(Path(__file__).parent.parent.parent))

from parkindex.application.commands import (
    CommandFactory, CommandProcessor, ComputeFeeCommand, FreeSlotCommand,
    NearestSlotCommand, ParkCarCommand, ParkingStatusCommand, ReserveSlotCommand,
    SaveAndExitCommand, ShowSlotCommand, SlotListsCommand, StatisticsCommand,
    SweepStaleCommand, parse_hours, parse_rate, parse_slot_number
)
from parkindex.application.parking_service import ParkingService
from parkindex.application.session import ParkingSession
from parkindex.domain.models import Occupant
from parkindex.infrastructure.repositories import ImportExportError, SpreadsheetSlotStore


def make_session(*slots):
    session = ParkingSession(ParkingService())
    for slot in slots:
        session.add_slot(slot)
    return session


class TestParsers(unittest.TestCase):
    """Unit tests for operator input parsing"""

    def test_parse_slot_number(self):
        self.assertEqual(parse_slot_number(" 12 "), 12)
        with self.assertRaises(ValueError):
            parse_slot_number("twelve")

    def test_parse_hours(self):
        self.assertEqual(parse_hours("0"), 0)
        with self.assertRaises(ValueError):
            parse_hours("-3")

    def test_parse_rate(self):
        self.assertEqual(parse_rate("2.75"), Decimal("2.75"))
        for text in ("-1", "abc", "NaN", "Infinity"):
            with self.assertRaises(ValueError):
                parse_rate(text)


class TestMenuCommands(unittest.TestCase):
    """Unit tests for each menu command"""

    def setUp(self):
        self.session = make_session(3, 1, 2)

    def test_park_and_free(self):
        result = ParkCarCommand(license_id="ABC123").execute(self.session)
        self.assertTrue(result.success)
        self.assertEqual(result.lines, ["Car ABC123 parked at slot 1"])
        self.assertEqual(result.data["slot_number"], 1)

        result = FreeSlotCommand(slot_number=1).execute(self.session)
        self.assertTrue(result.success)
        self.assertEqual(result.message, "Slot 1 is now available.")

    def test_park_requires_license(self):
        result = ParkCarCommand(license_id=" ").execute(self.session)
        self.assertFalse(result.success)
        self.assertIn("Validation failed", result.message)
        self.assertEqual(self.session.statistics().occupied, 0)

    def test_show_slot(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        result = ShowSlotCommand(slot_number=1).execute(self.session)
        self.assertIn("Availability: Occupied", result.lines)
        self.assertIn("Car License: ABC123", result.lines)

        result = ShowSlotCommand(slot_number=2).execute(self.session)
        self.assertIn("No car parked in this slot.", result.lines)

        result = ShowSlotCommand(slot_number=99).execute(self.session)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Slot 99 not present in the parking lot!")

    def test_nearest_slot(self):
        self.assertEqual(NearestSlotCommand().execute(self.session).message,
                         "Nearest Available Slot: 1")
        result = NearestSlotCommand().execute(make_session())
        self.assertEqual(result.message, "Nearest Available Slot: None")
        self.assertFalse(result.success)

    def test_status_and_lists(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        ReserveSlotCommand(slot_number=3).execute(self.session)

        status = ParkingStatusCommand().execute(self.session)
        self.assertEqual(status.lines, [
            "Slot: 1 | Status: Occupied | Car: ABC123",
            "Slot: 2 | Status: Available",
            "Slot: 3 | Status: Reserved",
        ])

        lists = SlotListsCommand().execute(self.session)
        self.assertEqual(lists.lines, [
            "Available Slots: [2]",
            "Occupied Slots: [1]",
            "Reserved Slots: [3]",
        ])

    def test_status_empty_lot(self):
        result = ParkingStatusCommand().execute(make_session())
        self.assertEqual(result.lines, ["The parking lot has no slots."])

    def test_statistics(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        result = StatisticsCommand().execute(self.session)
        self.assertEqual(result.lines, [
            "--- Parking Statistics ---",
            "Total Slots: 3",
            "Occupied Slots: 1",
            "Available Slots: 2",
        ])

    def test_sweep_stale_reports_each_slot(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        result = SweepStaleCommand(hours_limit=0).execute(self.session)
        self.assertEqual(result.lines[0], "Slot 1 is now available.")
        self.assertEqual(self.session.statistics().occupied, 0)

    def test_reserve_occupied_slot(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        result = ReserveSlotCommand(slot_number=1).execute(self.session)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Slot 1 is already occupied.")

    def test_compute_fee(self):
        ParkCarCommand(license_id="ABC123").execute(self.session)
        result = ComputeFeeCommand(slot_number=1, hourly_rate=Decimal("3")).execute(self.session)
        self.assertTrue(result.success)
        self.assertEqual(result.data["hours"], 0)

    def test_missing_parameter(self):
        result = FreeSlotCommand().execute(self.session)
        self.assertFalse(result.success)
        self.assertIn("slot_number is required", result.message)

    def test_save_and_exit(self):
        store = Mock()
        store.write_rows.return_value = 3
        self.session.store = store
        result = SaveAndExitCommand().execute(self.session)
        self.assertTrue(result.success)
        self.assertTrue(result.exit_requested)
        rows = store.write_rows.call_args.args[0]
        self.assertEqual([row.slot_number for row in rows], [1, 2, 3])

    def test_save_of_unwritable_license_reports_failure(self):
        """A license the workbook rejects fails the save instead of crashing"""
        temp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, temp_dir, True)
        self.session.store = SpreadsheetSlotStore(Path(temp_dir) / "lot.xlsx")
        record = self.session.service.index.search(self.session.root, 1)
        record.occupy(Occupant("AB\x1b[A12"))

        result = SaveAndExitCommand().execute(self.session)

        self.assertFalse(result.success)
        self.assertFalse(result.exit_requested)
        self.assertTrue(result.message.startswith("Could not save parking slots"))

    def test_save_failure_keeps_menu_open(self):
        store = Mock()
        store.write_rows.side_effect = ImportExportError("disk full", "slots.xlsx")
        self.session.store = store
        result = SaveAndExitCommand().execute(self.session)
        self.assertFalse(result.success)
        self.assertFalse(result.exit_requested)
        self.assertIn("disk full", result.message)


class TestCommandFactory(unittest.TestCase):
    """Unit tests for menu lookup"""

    def test_menu_has_eleven_entries(self):
        menu = CommandFactory.menu()
        self.assertEqual([key for key, _ in menu], list(range(1, 12)))
        self.assertEqual(menu[0], (1, "Park a Car"))
        self.assertEqual(menu[-1], (11, "Save & Exit"))

    def test_create_command(self):
        command = CommandFactory.create_command(2, {"slot_number": 4})
        self.assertIsInstance(command, FreeSlotCommand)
        self.assertEqual(command.params["slot_number"], 4)
        self.assertIsNone(CommandFactory.create_command(12))


class TestCommandProcessor(unittest.TestCase):
    """Unit tests for processing and history"""

    def test_history_is_bounded(self):
        processor = CommandProcessor(make_session(1), max_history_size=2)
        for _ in range(3):
            processor.process(NearestSlotCommand())
        self.assertEqual(len(processor.command_history), 2)
        self.assertEqual(processor.command_history[-1].command_type, "NearestSlotCommand")
        self.assertIn("executed_at", processor.command_history[0].to_dict())


if __name__ == "__main__":
    unittest.main()
