#!/usr/bin/env python3
"""
Parking Slot Index - Sample Data Generator

Writes a slot file (.xlsx or database URL) with a configurable number of
slots, a share of them occupied by random cars and a share reserved. Useful
for trying the menu and for load testing the index.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional
import argparse
import logging
import random
import string
import sys

# Add the project root to Python path for imports
sys.path.append(str(Path(__file__).parent.parent))

from parkindex.application.dtos import SlotRow
from parkindex.domain.models import format_timestamp
from parkindex.infrastructure.repositories import ImportExportError, SlotStoreFactory


def random_license(rng: random.Random) -> str:
    letters = "".join(rng.choices(string.ascii_uppercase, k=3))
    digits = "".join(rng.choices(string.digits, k=3))
    return f"{letters}{digits}"


def generate_rows(count: int, start: int = 1, step: int = 1,
                  occupied_share: float = 0.3, reserved_share: float = 0.05,
                  max_hours: int = 48, seed: Optional[int] = None,
                  now: Optional[datetime] = None) -> List[SlotRow]:
    """Build rows for `count` slots numbered start, start+step, ..."""
    rng = random.Random(seed)
    now = now or datetime.now()
    rows = []
    for i in range(count):
        slot_number = start + i * step
        roll = rng.random()
        if roll < occupied_share:
            entry = now - timedelta(minutes=rng.randint(0, max_hours * 60))
            rows.append(SlotRow(slot_number, random_license(rng), format_timestamp(entry), False, False))
        elif roll < occupied_share + reserved_share:
            rows.append(SlotRow(slot_number, "", "", True, True))
        else:
            rows.append(SlotRow(slot_number, "", "", True, False))
    return rows


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Generate a sample parking slot file')
    parser.add_argument('output', help='Target .xlsx path or database URL')
    parser.add_argument('--count', type=int, default=100, help='Number of slots')
    parser.add_argument('--start', type=int, default=1, help='First slot number')
    parser.add_argument('--step', type=int, default=1, help='Gap between slot numbers')
    parser.add_argument('--occupied', type=float, default=0.3, help='Share of occupied slots')
    parser.add_argument('--reserved', type=float, default=0.05, help='Share of reserved slots')
    parser.add_argument('--seed', type=int, default=None, help='Random seed')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    rows = generate_rows(args.count, args.start, args.step, args.occupied, args.reserved, seed=args.seed)
    # shuffled so loading exercises every rotation case
    random.Random(args.seed).shuffle(rows)

    try:
        written = SlotStoreFactory.create(args.output).write_rows(rows)
    except ImportExportError as e:
        logging.getLogger(__name__).error(f"Could not write {args.output}: {e}")
        return 1

    print(f"Wrote {written} slots to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
