"""
Main application entry point for the Parking Slot Index

Loads the slot inventory, wires the service, event bus and notification
handlers together, and runs the console menu.
"""

from decimal import Decimal
from typing import List, Optional
import argparse
import logging
import os
import sys

from .application.commands import parse_rate
from .application.parking_service import ParkingServiceFactory
from .application.session import ParkingSession
from .config import AppConfig
from .infrastructure.messaging import EventBus, LoggingEventHandler, RedisEventPublisher
from .infrastructure.repositories import ImportExportError, SlotStoreFactory
from .presentation.cli import ParkingMenu


def setup_logging(level: str = "INFO", log_dir: str = AppConfig.LOG_DIR):
    """Setup application logging configuration"""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=AppConfig.LOG_FORMAT,
        handlers=[
            logging.FileHandler(os.path.join(log_dir, AppConfig.LOG_FILE)),
            logging.StreamHandler(sys.stdout)
        ]
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Parking slot management backed by a balanced slot index')
    parser.add_argument('--data', default=AppConfig.DEFAULT_DATA_FILE,
                        help='Slot file (.xlsx) or database URL to load and save')
    parser.add_argument('--rate', type=parse_rate, default=AppConfig.DEFAULT_HOURLY_RATE,
                        help='Default hourly rate')
    parser.add_argument('--stale-hours', type=int, default=AppConfig.DEFAULT_STALE_AFTER_HOURS,
                        help='Default limit for releasing cars parked too long')
    parser.add_argument('--redis-url', default=None,
                        help='Also publish slot events to this Redis server')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--log-dir', default=AppConfig.LOG_DIR)
    return parser


def build_session(data: str, rate: Decimal, stale_hours: int,
                  redis_url: Optional[str] = None) -> ParkingSession:
    """
    Wire the service and its event handlers, then load the store.
    Raises: ImportExportError if the store cannot be read
    """
    event_bus = EventBus()
    event_bus.subscribe_all(LoggingEventHandler())
    if redis_url:
        event_bus.subscribe_all(RedisEventPublisher(redis_url=redis_url))

    service = ParkingServiceFactory.create_service_with_config(
        {"default_hourly_rate": rate, "stale_after_hours": stale_hours},
        event_bus=event_bus,
    )
    store = SlotStoreFactory.create(data)
    return ParkingSession.open(service, store)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level, args.log_dir)
    logger.info(f"Starting {AppConfig.APP_NAME} {AppConfig.VERSION}...")

    try:
        session = build_session(args.data, args.rate, args.stale_hours, args.redis_url)
    except ImportExportError as e:
        logger.error(f"Could not load parking slots: {e}")
        return 1

    ParkingMenu(session).run()
    logger.info("Parking session closed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
