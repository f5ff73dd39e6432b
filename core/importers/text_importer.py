"""
ABOUTME: Importers for uncompressed and gzip-compressed access logs
ABOUTME: Rotated logs (access.log.1.gz) are read without unpacking them first
"""

import gzip
from typing import TextIO

from .base_importer import BaseLogImporter


class PlainLogImporter(BaseLogImporter):
    """Importer for plain text access logs."""

    FORMAT_ID = "plain"

    def open_text(self, file_path: str) -> TextIO:
        return open(file_path, encoding="utf-8", errors="replace")


class GzipLogImporter(BaseLogImporter):
    """Importer for gzip-compressed access logs."""

    FORMAT_ID = "gzip"

    def open_text(self, file_path: str) -> TextIO:
        return gzip.open(file_path, "rt", encoding="utf-8", errors="replace")
