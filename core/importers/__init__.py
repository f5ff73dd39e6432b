"""
ABOUTME: Importer factory and compression detection for access logs
ABOUTME: Provides a unified interface for plain, gzip, and zstd log files

This module exports:
- get_importer(): Factory function to get a format-specific importer
- detect_log_format(): Detect the compression from the file name
- BaseLogImporter: Abstract base class for all importers
"""

import os

from .base_importer import BaseLogImporter, ImportStats

LOG_FORMATS = ("plain", "gzip", "zstd")


def detect_log_format(file_path: str) -> str:
    """
    Detect log compression based on the file extension.

    Args:
        file_path: Path to the access log

    Returns:
        str: Format identifier ('plain', 'gzip', 'zstd')
    """
    name = os.path.basename(file_path).lower()
    if name.endswith(".zst"):
        return "zstd"
    if name.endswith(".gz"):
        return "gzip"
    return "plain"


def get_importer(log_format: str, **kwargs) -> BaseLogImporter:
    """
    Factory function to get a format-specific importer instance.

    Args:
        log_format: Format identifier ('plain', 'gzip', 'zstd')
        **kwargs: Additional arguments passed to importer constructor

    Returns:
        BaseLogImporter: Format-specific importer instance

    Raises:
        ValueError: If format is invalid
    """
    # Lazy imports keep zstandard off the path for plain logs
    if log_format == "plain":
        from .text_importer import PlainLogImporter

        return PlainLogImporter(**kwargs)
    elif log_format == "gzip":
        from .text_importer import GzipLogImporter

        return GzipLogImporter(**kwargs)
    elif log_format == "zstd":
        from .zstd_importer import ZstdLogImporter

        return ZstdLogImporter(**kwargs)
    else:
        raise ValueError(f"Invalid log format: {log_format}. Must be one of: {', '.join(LOG_FORMATS)}")


__all__ = ["BaseLogImporter", "ImportStats", "get_importer", "detect_log_format", "LOG_FORMATS"]
