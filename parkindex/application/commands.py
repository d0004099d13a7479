"""
Command Pattern Implementation for the parking menu

Each of the eleven menu operations is a command object that validates its
parameters, runs exactly one session call and returns a CommandResult with
the lines to show the operator.

Command Types:
1. Mutations - park, free, reserve, sweep stale cars
2. Queries - slot details, nearest slot, status, lists, statistics, fee
3. Lifecycle - save and exit
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Tuple, Type
import logging
import uuid

from .dtos import SlotOperationDTO
from .session import ParkingSession
from ..infrastructure.repositories import ImportExportError


def parse_slot_number(text: str) -> int:
    return int(str(text).strip())


def parse_hours(text: str) -> int:
    value = int(str(text).strip())
    if value < 0:
        raise ValueError("hours cannot be negative")
    return value


def parse_rate(text: str) -> Decimal:
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation:
        raise ValueError(f"invalid rate: {text!r}")
    if not value.is_finite() or value < 0:
        raise ValueError(f"invalid rate: {text!r}")
    return value


# ============================================================================
# COMMAND RESULT
# ============================================================================

@dataclass
class CommandResult:
    """Outcome of one menu command"""
    success: bool
    command_id: str
    command_type: str
    executed_at: datetime
    lines: List[str] = field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    exit_requested: bool = False

    @property
    def message(self) -> str:
        return "\n".join(self.lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "command_id": self.command_id,
            "command_type": self.command_type,
            "executed_at": self.executed_at.isoformat(),
            "lines": list(self.lines),
            "data": self.data,
            "exit_requested": self.exit_requested,
        }


# ============================================================================
# COMMAND BASE CLASS
# ============================================================================

class Command(ABC):
    """
    Abstract base class for menu commands

    Subclasses declare their menu number, title and the parameters the
    operator is prompted for as (name, prompt, parser) triples.
    """

    menu_key: int = 0
    title: str = ""
    parameters: Tuple[Tuple[str, str, Callable[[str], Any]], ...] = ()

    def __init__(self, **params):
        self.command_id = str(uuid.uuid4())
        self.params = params
        self.executed_at: Optional[datetime] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self) -> Tuple[bool, List[str]]:
        """Check that every declared parameter was supplied"""
        errors = [f"{name} is required" for name, _, _ in self.parameters
                  if self.params.get(name) is None]
        return len(errors) == 0, errors

    @abstractmethod
    def run(self, session: ParkingSession) -> CommandResult:
        pass

    def execute(self, session: ParkingSession) -> CommandResult:
        """Validate, then run against the session"""
        is_valid, errors = self.validate()
        if not is_valid:
            return self._result(False, [f"Validation failed: {', '.join(errors)}"])
        self.executed_at = datetime.now()
        return self.run(session)

    def get_description(self) -> str:
        return self.__class__.__name__.replace("Command", "")

    def _result(self, success: bool, lines: List[str], data: Optional[Dict[str, Any]] = None,
                exit_requested: bool = False) -> CommandResult:
        return CommandResult(
            success=success,
            command_id=self.command_id,
            command_type=self.__class__.__name__,
            executed_at=self.executed_at or datetime.now(),
            lines=lines,
            data=data,
            exit_requested=exit_requested,
        )

    def _from_operation(self, operation: SlotOperationDTO) -> CommandResult:
        return self._result(operation.success, [operation.message], operation.to_dict())


# ============================================================================
# MENU COMMANDS
# ============================================================================

class ParkCarCommand(Command):
    menu_key = 1
    title = "Park a Car"
    parameters = (("license_id", "Enter Car License Number: ", str),)

    def validate(self) -> Tuple[bool, List[str]]:
        license_id = self.params.get("license_id")
        if not license_id or not str(license_id).strip():
            return False, ["License number is required"]
        return True, []

    def run(self, session: ParkingSession) -> CommandResult:
        return self._from_operation(session.park(self.params["license_id"]))


class FreeSlotCommand(Command):
    menu_key = 2
    title = "Remove a Car"
    parameters = (("slot_number", "Enter Slot Number to Free: ", parse_slot_number),)

    def run(self, session: ParkingSession) -> CommandResult:
        return self._from_operation(session.free(self.params["slot_number"]))


class ShowSlotCommand(Command):
    menu_key = 3
    title = "Display Slot Details"
    parameters = (("slot_number", "Enter the Slot Number: ", parse_slot_number),)

    def run(self, session: ParkingSession) -> CommandResult:
        slot_number = self.params["slot_number"]
        details = session.slot_details(slot_number)
        if details is None:
            return self._result(False, [f"Slot {slot_number} not present in the parking lot!"])

        lines = [
            "Details of the Slot",
            f"Slot Number: {details.slot_number}",
            f"Availability: {'Available' if details.available else 'Occupied'}",
            f"Reservation: {'Reserved' if details.reserved else 'Unreserved'}",
        ]
        if details.license_id:
            entry = details.entry_time.strftime("%Y-%m-%d %H:%M") if details.entry_time else "unknown"
            lines.append(f"Car License: {details.license_id}")
            lines.append(f"Entry Time: {entry}")
        else:
            lines.append("No car parked in this slot.")
        return self._result(True, lines, details.to_dict())


class NearestSlotCommand(Command):
    menu_key = 4
    title = "Find Nearest Available Slot"

    def run(self, session: ParkingSession) -> CommandResult:
        nearest = session.nearest_available()
        text = "None" if nearest is None else str(nearest)
        return self._result(nearest is not None, [f"Nearest Available Slot: {text}"],
                            {"slot_number": nearest})


class ParkingStatusCommand(Command):
    menu_key = 5
    title = "Show Parking Status"

    def run(self, session: ParkingSession) -> CommandResult:
        slots = session.parking_status()
        if not slots:
            return self._result(True, ["The parking lot has no slots."])
        lines = []
        for slot in slots:
            line = f"Slot: {slot.slot_number} | Status: {slot.status.value.capitalize()}"
            if slot.license_id:
                line += f" | Car: {slot.license_id}"
            lines.append(line)
        return self._result(True, lines, {"count": len(slots)})


class SlotListsCommand(Command):
    menu_key = 6
    title = "Show Slots Availability"

    def run(self, session: ParkingSession) -> CommandResult:
        categories = session.categorize()
        lines = [
            f"Available Slots: {categories.available}",
            f"Occupied Slots: {categories.occupied}",
            f"Reserved Slots: {categories.reserved}",
        ]
        return self._result(True, lines, categories.to_dict())


class StatisticsCommand(Command):
    menu_key = 7
    title = "Show Parking Statistics"

    def run(self, session: ParkingSession) -> CommandResult:
        stats = session.statistics()
        lines = [
            "--- Parking Statistics ---",
            f"Total Slots: {stats.total}",
            f"Occupied Slots: {stats.occupied}",
            f"Available Slots: {stats.available}",
        ]
        return self._result(True, lines, stats.to_dict())


class SweepStaleCommand(Command):
    menu_key = 8
    title = "Remove Cars Parked for Too Long"
    parameters = (("hours_limit", "Enter the number of hours to check for old cars: ", parse_hours),)

    def run(self, session: ParkingSession) -> CommandResult:
        operation = session.sweep_stale(self.params["hours_limit"])
        lines = [f"Slot {slot} is now available." for slot in operation.released_slots]
        lines.append(operation.message)
        return self._result(operation.success, lines, operation.to_dict())


class ReserveSlotCommand(Command):
    menu_key = 9
    title = "Reserve a Parking Slot"
    parameters = (("slot_number", "Enter Slot Number to Reserve: ", parse_slot_number),)

    def run(self, session: ParkingSession) -> CommandResult:
        return self._from_operation(session.reserve(self.params["slot_number"]))


class ComputeFeeCommand(Command):
    menu_key = 10
    title = "Calculate Parking Fee"
    parameters = (
        ("slot_number", "Enter Slot Number: ", parse_slot_number),
        ("hourly_rate", "Enter Hourly Rate: ", parse_rate),
    )

    def run(self, session: ParkingSession) -> CommandResult:
        quote = session.compute_fee(self.params["slot_number"], self.params["hourly_rate"])
        return self._result(quote.success, [quote.message], quote.to_dict())


class SaveAndExitCommand(Command):
    menu_key = 11
    title = "Save & Exit"

    def run(self, session: ParkingSession) -> CommandResult:
        try:
            written = session.save()
        except ImportExportError as e:
            self.logger.error(f"Error saving parking slots: {e}")
            return self._result(False, [f"Could not save parking slots: {e}"])
        return self._result(True, [f"Saved {written} slots.", "Exiting..."],
                            {"rows": written}, exit_requested=True)


# ============================================================================
# COMMAND FACTORY
# ============================================================================

MENU_COMMANDS: Tuple[Type[Command], ...] = (
    ParkCarCommand,
    FreeSlotCommand,
    ShowSlotCommand,
    NearestSlotCommand,
    ParkingStatusCommand,
    SlotListsCommand,
    StatisticsCommand,
    SweepStaleCommand,
    ReserveSlotCommand,
    ComputeFeeCommand,
    SaveAndExitCommand,
)


class CommandFactory:
    """Factory for creating commands from menu choices"""

    _registry: Dict[int, Type[Command]] = {cls.menu_key: cls for cls in MENU_COMMANDS}

    @classmethod
    def command_class(cls, menu_key: int) -> Optional[Type[Command]]:
        return cls._registry.get(menu_key)

    @classmethod
    def create_command(cls, menu_key: int, params: Optional[Dict[str, Any]] = None) -> Optional[Command]:
        """
        Create a command instance from a menu number and parameters

        Returns: Command instance or None if the number is not on the menu
        """
        command_class = cls.command_class(menu_key)
        if command_class is None:
            return None
        return command_class(**(params or {}))

    @classmethod
    def menu(cls) -> List[Tuple[int, str]]:
        return [(key, command.title) for key, command in sorted(cls._registry.items())]


# ============================================================================
# COMMAND PROCESSOR
# ============================================================================

class CommandProcessor:
    """Runs commands against one session and keeps an audit history"""

    def __init__(self, session: ParkingSession, max_history_size: int = 1000):
        self.session = session
        self.logger = logging.getLogger(self.__class__.__name__)
        self.command_history: List[CommandResult] = []
        self.max_history_size = max_history_size

    def process(self, command: Command) -> CommandResult:
        self.logger.debug(f"Processing command: {command.get_description()}")
        result = command.execute(self.session)
        self.command_history.append(result)
        if len(self.command_history) > self.max_history_size:
            self.command_history.pop(0)
        return result
