"""
Console menu for the parking slot index

Numbered menu of the eleven parking operations. Input and output functions
are injectable so the loop can be driven from tests or another front end.
"""

from typing import Any, Callable, Dict, Optional
import logging

from ..application.commands import CommandFactory, CommandProcessor, CommandResult
from ..application.session import ParkingSession
from ..config import AppConfig


class ParkingMenu:
    """Interactive menu loop over one parking session"""

    def __init__(
        self,
        session: ParkingSession,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ):
        self.session = session
        self.processor = CommandProcessor(session)
        self._input = input_fn
        self._output = output_fn
        self.logger = logging.getLogger(self.__class__.__name__)

    def show_menu(self) -> None:
        self._output(f"\n{AppConfig.APP_NAME.upper()}")
        for key, title in CommandFactory.menu():
            self._output(f"{key}. {title}")

    def read_choice(self) -> Optional[int]:
        text = self._input("Enter your choice: ").strip()
        try:
            return int(text)
        except ValueError:
            return None

    def read_parameters(self, command_class) -> Optional[Dict[str, Any]]:
        """Prompt for each parameter; None if the operator typed something invalid"""
        params = {}
        for name, prompt, parser in command_class.parameters:
            text = self._input(prompt)
            try:
                params[name] = parser(text)
            except ValueError as e:
                self._output(f"Invalid input for {name.replace('_', ' ')}: {e}")
                return None
        return params

    def run_once(self) -> Optional[CommandResult]:
        """
        Show the menu and handle a single choice

        Returns: The command result, or None when the choice or its input
                 was invalid
        """
        self.show_menu()
        choice = self.read_choice()
        command_class = CommandFactory.command_class(choice) if choice is not None else None
        if command_class is None:
            self._output("Invalid choice. Please try again.")
            return None

        params = self.read_parameters(command_class)
        if params is None:
            return None

        result = self.processor.process(command_class(**params))
        for line in result.lines:
            self._output(line)
        return result

    def run(self) -> None:
        """Loop until Save & Exit succeeds or input ends"""
        while True:
            try:
                result = self.run_once()
            except (EOFError, KeyboardInterrupt):
                self.logger.warning("Input closed, leaving without saving")
                self._output("\nExiting without saving.")
                return
            if result is not None and result.exit_requested:
                return
