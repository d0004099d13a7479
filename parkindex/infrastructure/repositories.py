"""
Repository Pattern Implementation for persisted slot rows

Stores move the fixed 5-column slot row
(slot number, license id, entry time, availability, reservation)
between the process and durable storage. They know nothing about the tree;
the import/export adapter in factories.py turns rows into an index and back.

Storage Implementations:
- SpreadsheetSlotStore - .xlsx workbook via openpyxl
- SQLAlchemySlotStore - Any relational database SQLAlchemy can reach

Every storage failure surfaces as ImportExportError. Reads return the full
row list before anything touches the index, so a failed load never leaves a
half-built tree behind.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union
from zipfile import BadZipFile
import logging

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import IllegalCharacterError, InvalidFileException
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from ..config import AppConfig
from ..application.dtos import SlotRow


class ImportExportError(Exception):
    """Reading or writing persisted slot rows failed"""

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.location = location


# ============================================================================
# REPOSITORY INTERFACE
# ============================================================================

class SlotStore(ABC):
    """Base interface for slot row storage"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable storage location"""
        pass

    @abstractmethod
    def read_rows(self) -> List[Tuple[Any, ...]]:
        """Read every raw row, header excluded"""
        pass

    @abstractmethod
    def write_rows(self, rows: Iterable[SlotRow]) -> int:
        """Replace stored rows; returns the number of rows written"""
        pass


# ============================================================================
# SPREADSHEET STORE
# ============================================================================

class SpreadsheetSlotStore(SlotStore):
    """
    Slot rows in the first sheet of an .xlsx workbook, one header row
    followed by one row per slot. A missing file reads as an empty lot.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def read_rows(self) -> List[Tuple[Any, ...]]:
        if not self.path.exists():
            self._logger.warning(f"No slot file at {self.path}, starting with an empty lot")
            return []

        try:
            workbook = load_workbook(self.path, read_only=True, data_only=True)
            try:
                sheet = workbook.worksheets[0]
                rows = [tuple(row) for row in sheet.iter_rows(min_row=2, values_only=True)]
            finally:
                workbook.close()
        except (OSError, InvalidFileException, BadZipFile, KeyError, IndexError) as e:
            self._logger.error(f"Error reading slots from {self.path}: {e}")
            raise ImportExportError(f"Cannot read slot file {self.path}: {e}", self.location) from e

        self._logger.info(f"Read {len(rows)} rows from {self.path}")
        return rows

    def write_rows(self, rows: Iterable[SlotRow]) -> int:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = AppConfig.SHEET_NAME
        sheet.append(list(AppConfig.SHEET_HEADERS))

        count = 0
        try:
            for count, row in enumerate(rows, start=1):
                for column, value in enumerate(row, start=1):
                    cell = sheet.cell(row=count + 1, column=column, value=value)
                    # text such as "=A1" must not turn into a formula
                    if isinstance(value, str):
                        cell.data_type = 's'
        except (IllegalCharacterError, ValueError) as e:
            self._logger.error(f"Cannot store row {count} in {self.path}: {e}")
            raise ImportExportError(f"Cannot write slot file {self.path}: {e}", self.location) from e

        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True)
            workbook.save(self.path)
        except OSError as e:
            self._logger.error(f"Error saving slots to {self.path}: {e}")
            raise ImportExportError(f"Cannot write slot file {self.path}: {e}", self.location) from e

        self._logger.info(f"Parking slots saved successfully to {self.path}")
        return count


# ============================================================================
# SQLALCHEMY STORE
# ============================================================================

Base = declarative_base()


class SlotRowModel(Base):
    """SQLAlchemy model for a persisted slot row"""
    __tablename__ = 'parking_slots'

    slot_number = Column(Integer, primary_key=True, autoincrement=False)
    license_id = Column(Text, nullable=False, default="")
    entry_time = Column(String(16), nullable=False, default="")
    available = Column(Boolean, nullable=False, default=True)
    reserved = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def to_row(self) -> Tuple[Any, ...]:
        return (self.slot_number, self.license_id, self.entry_time, self.available, self.reserved)


class SQLAlchemySlotStore(SlotStore):
    """Slot rows in a relational table, replaced wholesale on every write"""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        super().__init__()
        if engine is None and database_url is None:
            raise ValueError("Either database_url or engine must be provided")
        self.database_url = database_url or str(engine.url)
        try:
            self.engine = engine or create_engine(database_url, echo=False)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise ImportExportError(f"Cannot open database {self.database_url}: {e}",
                                    self.database_url) from e
        self.session_factory = sessionmaker(autoflush=False, bind=self.engine)

    @property
    def location(self) -> str:
        return self.database_url

    def read_rows(self) -> List[Tuple[Any, ...]]:
        try:
            with self.session_factory() as session:
                models = session.scalars(select(SlotRowModel).order_by(SlotRowModel.slot_number)).all()
                rows = [model.to_row() for model in models]
        except SQLAlchemyError as e:
            self._logger.error(f"Database error reading slots: {e}")
            raise ImportExportError(f"Cannot read slots from {self.database_url}: {e}",
                                    self.location) from e

        self._logger.info(f"Read {len(rows)} rows from {self.database_url}")
        return rows

    def write_rows(self, rows: Iterable[SlotRow]) -> int:
        models = [
            SlotRowModel(
                slot_number=row.slot_number,
                license_id=row.license_id,
                entry_time=row.entry_time,
                available=row.available,
                reserved=row.reserved,
            )
            for row in rows
        ]
        try:
            with self.session_factory() as session:
                with session.begin():
                    session.execute(delete(SlotRowModel))
                    session.add_all(models)
        except SQLAlchemyError as e:
            self._logger.error(f"Database error saving slots: {e}")
            raise ImportExportError(f"Cannot write slots to {self.database_url}: {e}",
                                    self.location) from e

        self._logger.info(f"Parking slots saved successfully to {self.database_url}")
        return len(models)


# ============================================================================
# STORE FACTORY
# ============================================================================

class SlotStoreFactory:
    """Factory for creating slot stores"""

    @staticmethod
    def create(location: Union[str, Path]) -> SlotStore:
        """Database URLs (anything with '://') go to SQLAlchemy, paths to a workbook"""
        location = str(location)
        if "://" in location:
            return SQLAlchemySlotStore(database_url=location)
        return SpreadsheetSlotStore(location)
