"""
Application configuration for the parking slot index

Constants shared by the entry point, the CLI and the infrastructure layer.
Service-level knobs (currency, default rate, stale threshold) live in
ParkingService.config so they can be overridden per instance.
"""

from decimal import Decimal


class AppConfig:
    """Application configuration"""
    APP_NAME = "Parking Slot Index"
    VERSION = "1.0.0"

    # Persistence
    DEFAULT_DATA_FILE = "parking_lot_data.xlsx"
    SHEET_NAME = "Parking Slots"
    SHEET_HEADERS = (
        "Slot Number",
        "Car License Number",
        "Entry Time",
        "Availability",
        "Reservations",
    )
    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

    # Billing
    DEFAULT_HOURLY_RATE = Decimal("2.50")
    DEFAULT_CURRENCY = "USD"

    # Auto-release
    DEFAULT_STALE_AFTER_HOURS = 24

    # Logging
    LOG_DIR = "logs"
    LOG_FILE = "parking_app.log"
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Messaging
    REDIS_URL = "redis://localhost:6379"
    EVENT_CHANNEL = "parking.slots"
