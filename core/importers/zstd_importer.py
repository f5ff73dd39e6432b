"""
ABOUTME: Importer for Zstandard-compressed access logs
ABOUTME: Decompresses as a stream so large archives never sit in memory
"""

import io
from typing import TextIO

import zstandard

from .base_importer import BaseLogImporter

# Long-distance archives need a window larger than the library default
MAX_WINDOW_SIZE = 2**31


class ZstdLogImporter(BaseLogImporter):
    """Importer for .zst access logs."""

    FORMAT_ID = "zstd"

    def open_text(self, file_path: str) -> TextIO:
        raw = open(file_path, "rb")
        try:
            reader = zstandard.ZstdDecompressor(max_window_size=MAX_WINDOW_SIZE).stream_reader(
                raw, read_across_frames=True, closefd=True
            )
        except zstandard.ZstdError:
            raw.close()
            raise
        return io.TextIOWrapper(reader, encoding="utf-8", errors="replace")
