# ABOUTME: Writes domain-prefixed URLs into a numbered sequence of text files
# ABOUTME: Rolls over to the next file on demand or after a fixed number of lines

import logging
from typing import TextIO

from core.config import SEQUENCE_PLACEHOLDER

logger = logging.getLogger(__name__)


class UrlFileWriter:
    """
    Owns one output file at a time.

    File names come from ``pattern`` with ``{n}`` replaced by the sequence
    number, starting at 1. With a ``line_budget`` the writer rolls over after
    that many lines; without one it only rolls over when told to.

    Usage:
        with UrlFileWriter("urls_{n}.txt", "https://example.com", line_budget=50000) as writer:
            writer.write(urls)
    """

    def __init__(self, pattern: str, domain: str, line_budget: int | None = None, sequence_number: int = 1):
        self.pattern = pattern
        self.domain = domain
        self.line_budget = line_budget
        self.sequence_number = sequence_number
        self.lines_in_current_file = 0
        self.total_lines = 0
        self.current_path: str | None = None
        self.file_line_counts: dict[str, int] = {}
        self._fh: TextIO | None = None

    @property
    def files_written(self) -> list[str]:
        return list(self.file_line_counts)

    def path_for(self, sequence_number: int) -> str:
        return self.pattern.replace(SEQUENCE_PLACEHOLDER, str(sequence_number))

    def open(self) -> None:
        """Open the file for the current sequence number, truncating it."""
        if self._fh is not None:
            return
        self.current_path = self.path_for(self.sequence_number)
        self._fh = open(self.current_path, "w", encoding="utf-8")
        self.lines_in_current_file = 0
        self.file_line_counts[self.current_path] = 0
        logger.debug(f"Opened output file {self.current_path}")

    def write(self, urls: list[str]) -> int:
        """Write each URL as ``domain + url + newline``.

        Returns:
            Number of lines written by this call
        """
        if self._fh is None:
            self.open()

        written = 0
        for url in urls:
            self._fh.write(f"{self.domain}{url}\n")
            self.lines_in_current_file += 1
            self.file_line_counts[self.current_path] += 1
            self.total_lines += 1
            written += 1
            if self.line_budget and self.lines_in_current_file == self.line_budget:
                self.rollover()
        return written

    def rollover(self) -> None:
        """Close the current file and open the next one in the sequence."""
        self.close()
        self.sequence_number += 1
        self.open()

    def close(self) -> None:
        """Flush and release the current file. Safe to call more than once."""
        if self._fh is None:
            return
        self._fh.close()
        self._fh = None
        logger.info(f"Wrote {self.lines_in_current_file} lines to {self.current_path}")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
