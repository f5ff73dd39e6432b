# ABOUTME: Offset-based cursor over AccessDatabase.page for "next batch" reads
# ABOUTME: Keeps peak memory bounded to one page of URLs at a time

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from core.sqlite_database import AccessDatabase

logger = logging.getLogger(__name__)


@dataclass
class Cursor:
    """Pagination state for one logical scan."""

    offset: int = 0
    page_size: int = 1000
    predicate: tuple[tuple[str, str, str], ...] = ()
    ordered: bool = False


class Paginator:
    """
    Streams URLs from the database one page at a time.

    The offset survives between calls so callers just ask for the next page.
    Switching to a different predicate (e.g. the next IP) needs ``reset()``
    first, otherwise the new scan would start at the previous offset.
    """

    def __init__(self, database: AccessDatabase, page_size: int = 1000):
        self.database = database
        self.cursor = Cursor(page_size=page_size)

    def reset(self) -> None:
        self.cursor.offset = 0

    def _next(self, page_size: int, predicate: tuple[tuple[str, str, str], ...], ordered: bool) -> list[str]:
        if predicate != self.cursor.predicate and self.cursor.offset:
            logger.warning(f"Predicate changed at offset {self.cursor.offset} without reset()")
        self.cursor.page_size = page_size
        self.cursor.predicate = predicate
        self.cursor.ordered = ordered

        rows = self.database.page(
            ["url"], page_size, where=predicate, ordered=ordered, offset=self.cursor.offset
        )
        if rows:
            self.cursor.offset += page_size
        return [row["url"] for row in rows]

    def next_urls(self, page_size: int | None = None) -> list[str]:
        """Next page of URLs over the whole table; empty when exhausted."""
        return self._next(page_size or self.cursor.page_size, (), False)

    def next_urls_for_ip(self, ip: str, page_size: int | None = None) -> list[str]:
        """Next page of URLs for one IP in insertion order; empty when exhausted."""
        return self._next(page_size or self.cursor.page_size, (("ip", ip, "="),), True)

    def iter_urls(self, page_size: int | None = None) -> Iterator[list[str]]:
        """Yield every page of URLs from the start of the table."""
        self.reset()
        while True:
            urls = self.next_urls(page_size)
            if not urls:
                return
            yield urls

    def iter_urls_for_ip(self, ip: str, page_size: int | None = None) -> Iterator[list[str]]:
        """Yield every page of URLs for ``ip`` from the start of its rows."""
        self.reset()
        while True:
            urls = self.next_urls_for_ip(ip, page_size)
            if not urls:
                return
            yield urls
