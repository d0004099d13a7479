#!/usr/bin/env python3
"""
Performance Integration Tests

Bulk inserts, lookups and releases on large generated lots. Thresholds are
generous; the assertions guard against accidental quadratic behaviour.
"""

import time
import unittest
from datetime import datetime

from parkindex.application.parking_service import ParkingService
from parkindex.domain.models import Occupant
from parkindex.infrastructure.factories import SlotIndexFactory

from scripts.generate_slots import generate_rows


class TestIndexPerformance(unittest.TestCase):
    """Timed operations on a 10k slot lot"""

    SLOT_COUNT = 10000

    @classmethod
    def setUpClass(cls):
        cls.service = ParkingService()
        cls.index = cls.service.index
        rows = generate_rows(cls.SLOT_COUNT, start=10, step=5, seed=7)
        cls.root = SlotIndexFactory(cls.index).from_rows(rows)

    def test_bulk_load_is_balanced(self):
        self.assertEqual(self.index.count_total(self.root), self.SLOT_COUNT)
        self.assertTrue(self.index.is_balanced(self.root))
        # 10k nodes fit in an AVL tree of height 19 at most
        self.assertLessEqual(self.root.height, 19)

    def test_insertion_performance(self):
        started = time.perf_counter()
        root = None
        for slot in range(10, 50001, 5):
            root = self.index.insert(root, slot)
        elapsed = time.perf_counter() - started

        self.assertEqual(self.index.count_total(root), 9999)
        self.assertLess(elapsed, 10.0, "Insertion of 10K slots took too long")

    def test_search_performance(self):
        started = time.perf_counter()
        for slot in range(10, 10 + 5 * self.SLOT_COUNT, 5):
            self.assertIsNotNone(self.index.search(self.root, slot))
        self.assertLess(time.perf_counter() - started, 5.0, "Search took too long")

    def test_nearest_available_performance(self):
        started = time.perf_counter()
        nearest = self.service.nearest_available(self.root)
        self.assertIsNotNone(nearest)
        self.assertLess(time.perf_counter() - started, 0.5)

    def test_release_performance(self):
        service = ParkingService()
        root = None
        for slot in range(1, 5001):
            root = service.index.insert(root, slot)
        for slot in range(1, 5001):
            root = service.index.update_availability(root, slot, False)
            service.index.search(root, slot).occupy(Occupant(f"CAR{slot}"))

        started = time.perf_counter()
        for slot in range(1, 5001):
            root = service.release(root, slot).root
        elapsed = time.perf_counter() - started

        self.assertEqual(service.statistics(root).occupied, 0)
        self.assertLess(elapsed, 10.0, "Freeing 5K slots took too long")


class TestSampleGenerator(unittest.TestCase):
    """The generated rows used above"""

    def test_generated_rows(self):
        rows = generate_rows(200, start=3, step=2, occupied_share=0.5, reserved_share=0.2, seed=1)
        self.assertEqual([row.slot_number for row in rows], list(range(3, 403, 2)))
        for row in rows:
            self.assertEqual(bool(row.license_id), not row.available)
            self.assertFalse(row.reserved and not row.available)

    def test_seed_is_reproducible(self):
        now = datetime(2024, 1, 1, 12, 0)
        self.assertEqual(generate_rows(50, seed=3, now=now), generate_rows(50, seed=3, now=now))


if __name__ == "__main__":
    unittest.main()
