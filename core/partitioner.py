# ABOUTME: Distributes stored URLs across output files by line count or by IP group
# ABOUTME: Streams pages through the Paginator and applies the optional exclusion filter

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from core.config import ConfigError
from core.paginator import Paginator
from core.sqlite_database import AccessDatabase
from core.url_writer import UrlFileWriter

logger = logging.getLogger(__name__)


class InsufficientIpsError(Exception):
    """Raised when there are fewer distinct IPs than requested files."""

    pass


@dataclass
class ExportSummary:
    """Totals for one export run."""

    files: list[str] = field(default_factory=list)
    lines_written: int = 0
    urls_filtered: int = 0
    pages_read: int = 0
    ips_processed: int = 0
    ips_skipped: int = 0


class UrlFilter:
    """Drops URLs matching a regular expression (searched, not anchored)."""

    def __init__(self, pattern: str | None):
        self.pattern = pattern
        try:
            self.regex = re.compile(pattern) if pattern else None
        except re.error as e:
            raise ConfigError(f"Invalid filter pattern '{pattern}': {e}") from e

    def apply(self, urls: list[str]) -> list[str]:
        if self.regex is None:
            return urls
        return [url for url in urls if not self.regex.search(url)]


def ips_per_file(ip_total: int, group_count: int) -> int:
    """IPs to place in each file, rounded half up (5 IPs / 2 files -> 3)."""
    return (2 * ip_total + group_count) // (2 * group_count)


def _write_page(
    writer: UrlFileWriter,
    urls: list[str],
    url_filter: UrlFilter | None,
    summary: ExportSummary,
    progress: Callable[[int], None] | None,
) -> None:
    kept = url_filter.apply(urls) if url_filter else urls
    summary.pages_read += 1
    summary.urls_filtered += len(urls) - len(kept)
    summary.lines_written += writer.write(kept)
    if progress:
        progress(len(urls))


def export_by_line_count(
    database: AccessDatabase,
    writer: UrlFileWriter,
    page_size: int = 1000,
    url_filter: UrlFilter | None = None,
    progress: Callable[[int], None] | None = None,
) -> ExportSummary:
    """Write every stored URL, rolling over after ``writer.line_budget`` lines.

    Args:
        database: Source database
        writer: Unopened writer with a line budget
        page_size: URLs fetched per query
        url_filter: Optional exclusion filter
        progress: Called with the number of URLs read after each page

    Returns:
        ExportSummary for the run
    """
    if not writer.line_budget:
        raise ConfigError("Line count export needs a line budget")

    summary = ExportSummary()
    paginator = Paginator(database, page_size)
    writer.open()
    try:
        for urls in paginator.iter_urls(page_size):
            _write_page(writer, urls, url_filter, summary, progress)
    finally:
        writer.close()

    summary.files = writer.files_written
    logger.info(f"Line count export: {summary.lines_written} lines in {len(summary.files)} files")
    return summary


def export_by_ip_groups(
    database: AccessDatabase,
    writer: UrlFileWriter,
    group_count: int,
    page_size: int = 1000,
    url_filter: UrlFilter | None = None,
    progress: Callable[[int], None] | None = None,
) -> ExportSummary:
    """Write URLs grouped by IP into ``group_count`` files.

    Each file receives ``ips_per_file`` IPs worth of URLs, in IP enumeration
    order and insertion order within an IP. Once the last file has its share
    the export stops; IPs left over by the rounding are not written.

    Raises:
        InsufficientIpsError: Fewer distinct IPs than ``group_count``. Raised
            before any file is opened.
    """
    ip_total = database.count_ips()
    if ip_total < group_count:
        raise InsufficientIpsError(f"Too few IPs ({ip_total}) found to split urls into {group_count} files")

    per_file = ips_per_file(ip_total, group_count)
    logger.info(f"{ip_total} IPs found in the database, {per_file} IPs per file")

    summary = ExportSummary()
    paginator = Paginator(database, page_size)
    current_file_no = 1
    ip_count = 0

    writer.open()
    try:
        for ip in database.distinct_ips():
            for urls in paginator.iter_urls_for_ip(ip, page_size):
                _write_page(writer, urls, url_filter, summary, progress)
            summary.ips_processed += 1
            ip_count += 1

            if ip_count == per_file:
                if current_file_no == group_count:
                    break
                writer.rollover()
                current_file_no += 1
                ip_count = 0
    finally:
        writer.close()

    summary.ips_skipped = ip_total - summary.ips_processed
    if summary.ips_skipped:
        logger.warning(f"{summary.ips_skipped} IPs were not written (rounding of {ip_total}/{group_count})")

    summary.files = writer.files_written
    logger.info(f"IP group export: {summary.lines_written} lines in {len(summary.files)} files")
    return summary
