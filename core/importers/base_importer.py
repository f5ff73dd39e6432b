"""
ABOUTME: Abstract base class for access log importers
ABOUTME: Turns raw lines into AccessRecords and tracks skipped lines

Subclasses only decide how a file is opened (plain text, gzip, zstd).
Parsing, error reporting, and counting live here so every format behaves
the same way.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TextIO

from core.config import ColumnSpec
from core.log_parser import AccessRecord, ParseError, parse_line
from core.sqlite_database import AccessDatabase

logger = logging.getLogger(__name__)


@dataclass
class ImportStats:
    """Counters for one imported file."""

    lines_read: int = 0
    records_parsed: int = 0
    lines_skipped: int = 0
    blank_lines: int = 0


class BaseLogImporter(ABC):
    """
    Base class for access log importers.

    Subclasses must define:
    - FORMAT_ID: format identifier ('plain', 'gzip', 'zstd')
    - open_text(): return a text stream over the decompressed log
    """

    FORMAT_ID: str = None

    def __init__(self):
        self.stats = ImportStats()

    @abstractmethod
    def open_text(self, file_path: str) -> TextIO:
        """
        Open a log file as a text stream.

        Args:
            file_path: Path to the log file

        Returns:
            TextIO: Stream yielding decoded lines
        """
        pass

    def read_lines(self, file_path: str) -> Iterator[str]:
        """
        Yield raw lines from the file, newline included.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(2, "Input file does not exist", file_path)

        with self.open_text(file_path) as handle:
            yield from handle

    def stream_records(self, file_path: str, columns: ColumnSpec, time_format: str) -> Iterator[AccessRecord]:
        """
        Parse every line of the file, skipping lines that fail to parse.

        Failures are logged with their line number and raw text; they never
        stop the import.

        Args:
            file_path: Path to the log file
            columns: Field positions
            time_format: Timestamp descriptor

        Yields:
            AccessRecord: One per parseable line
        """
        self.stats = ImportStats()
        logger.info(f"Streaming records from {os.path.basename(file_path)} ({self.FORMAT_ID})")

        for line in self.read_lines(file_path):
            self.stats.lines_read += 1

            if not line.strip():
                self.stats.blank_lines += 1
                continue

            try:
                record = parse_line(line, columns, time_format)
            except ParseError as e:
                self.stats.lines_skipped += 1
                logger.warning(f"Unable to parse line {self.stats.lines_read} ({e}): {line.rstrip()}")
                continue

            self.stats.records_parsed += 1
            yield record

        logger.info(
            f"{self.stats.lines_read} lines processed, {self.stats.records_parsed} records, "
            f"{self.stats.lines_skipped} skipped"
        )

    def import_file(
        self,
        database: AccessDatabase,
        file_path: str,
        columns: ColumnSpec,
        time_format: str,
        batch_size: int = 1000,
        progress: Callable[[int], None] | None = None,
    ) -> ImportStats:
        """
        Parse a log file and bulk insert its records.

        Records are written in transactions of ``batch_size`` rows. A
        WriteError aborts the import; batches committed before it remain.

        Args:
            database: Destination database
            file_path: Path to the log file
            columns: Field positions
            time_format: Timestamp descriptor
            batch_size: Records per insert transaction
            progress: Called with the number of rows after each insert

        Returns:
            ImportStats: Counters for the file
        """
        batch: list[AccessRecord] = []
        for record in self.stream_records(file_path, columns, time_format):
            batch.append(record)
            if len(batch) >= batch_size:
                self._flush(database, batch, progress)
                batch = []
        if batch:
            self._flush(database, batch, progress)
        return self.stats

    def _flush(
        self, database: AccessDatabase, batch: list[AccessRecord], progress: Callable[[int], None] | None
    ) -> None:
        written = database.insert_batch(batch)
        if progress:
            progress(written)
