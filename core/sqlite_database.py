# ABOUTME: SQLite storage for parsed access log records with paginated reads
# ABOUTME: Append-only access table, cached distinct IP list, and parameterized page queries

import logging
import os
import sqlite3
import time
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from core.log_parser import AccessRecord

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS access (
    id integer PRIMARY KEY,
    ip varchar(16),
    time integer,
    url text,
    code integer
);
CREATE INDEX IF NOT EXISTS idx_access_ip ON access (ip, id);
"""

# Security: only these identifiers may reach the SQL text, values are always bound
VALID_FIELDS = {"id", "ip", "time", "url", "code"}
VALID_OPERATORS = {"=", "!=", "<", "<=", ">", ">=", "LIKE"}


class AccessDatabaseError(Exception):
    """Base exception for access database operations."""

    pass


class StorageUnavailableError(AccessDatabaseError):
    """Raised when the database file cannot be opened or created."""

    pass


class WriteError(AccessDatabaseError):
    """Raised when a row cannot be written. Treated as fatal by callers."""

    pass


@dataclass
class BatchMetrics:
    """Performance metrics for batch inserts."""

    batches: int = 0
    records_inserted: int = 0
    total_insert_time: float = 0.0

    @property
    def records_per_second(self) -> float:
        return self.records_inserted / self.total_insert_time if self.total_insert_time > 0 else 0.0


def build_where(where: Sequence[tuple[str, Any, str]]) -> tuple[str, list[Any]]:
    """Build an AND-joined WHERE clause from (field, value, operator) triples.

    Returns:
        Tuple of (sql fragment, bound parameters). The fragment is empty when
        there are no conditions.

    Raises:
        ValueError: If a field or operator is not whitelisted
    """
    if not where:
        return "", []

    clauses = []
    params = []
    for column, value, operator in where:
        if column not in VALID_FIELDS:
            raise ValueError(f"Invalid field '{column}'")
        operator = operator.upper()
        if operator not in VALID_OPERATORS:
            raise ValueError(f"Invalid operator '{operator}'")
        clauses.append(f"{column} {operator} ?")
        params.append(value)
    return " WHERE " + " AND ".join(clauses), params


class AccessDatabase:
    """
    SQLite database holding the ``access`` table.

    The file is created with its schema on first use and reused across runs:
    ingestion appends rows, export and stats only read them. One process owns
    the file for the duration of a run.

    Usage:
        with AccessDatabase("db.sqlite") as db:
            db.insert_batch(records)
    """

    def __init__(self, path: str):
        """Open (or create) the database file.

        Args:
            path: Location of the SQLite file

        Raises:
            StorageUnavailableError: If the file cannot be opened or created
        """
        self.path = path
        self.connection: sqlite3.Connection | None = None
        self.metrics = BatchMetrics()
        # Computed on first distinct_ips() call and never invalidated: the IP
        # set is only read after ingestion has finished.
        self._ips: list[str] | None = None
        self.open()

    def open(self) -> None:
        if self.connection is not None:
            return

        is_new = not os.path.exists(self.path)
        try:
            self.connection = sqlite3.connect(self.path)
            self.connection.row_factory = sqlite3.Row
            self.setup_schema()
        except sqlite3.Error as e:
            if self.connection is not None:
                self.connection.close()
                self.connection = None
            raise StorageUnavailableError(f"Cannot open database '{self.path}': {e}") from e

        if is_new:
            logger.info(f"A new database has been created: {self.path}")
        else:
            logger.info(f"The database has been opened: {self.path}")

    def setup_schema(self) -> None:
        """Create the access table and its index if they do not exist yet."""
        with self.connection:
            self.connection.executescript(SCHEMA_SQL)

    @contextmanager
    def _cursor(self):
        if self.connection is None:
            raise AccessDatabaseError("Database is closed")
        cursor = self.connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def insert(self, record: AccessRecord) -> None:
        """Append one record.

        Raises:
            WriteError: On constraint or I/O failure
        """
        self.insert_batch([record])

    def insert_batch(self, records: Iterable[AccessRecord]) -> int:
        """Append records in a single transaction.

        Earlier batches stay committed if this one fails.

        Returns:
            Number of rows written

        Raises:
            WriteError: On constraint or I/O failure
        """
        rows = [(r.ip, r.timestamp, r.url, r.status_code) for r in records]
        if not rows:
            return 0

        if self.connection is None:
            raise WriteError("Database is closed")

        start = time.time()
        try:
            with self.connection:
                self.connection.executemany("INSERT INTO access (ip, time, url, code) VALUES (?, ?, ?, ?)", rows)
        except sqlite3.Error as e:
            raise WriteError(f"Failed to insert {len(rows)} rows: {e}") from e

        self.metrics.batches += 1
        self.metrics.records_inserted += len(rows)
        self.metrics.total_insert_time += time.time() - start
        return len(rows)

    def count_urls(self, url: str | None = None) -> int:
        """Count stored rows, optionally only those with exactly this URL."""
        where_sql, params = build_where([("url", url, "=")] if url is not None else [])
        with self._cursor() as cur:
            cur.execute(f"SELECT count(1) AS urls FROM access{where_sql}", params)
            return cur.fetchone()["urls"]

    def distinct_ips(self) -> list[str]:
        """Return every distinct IP in order of first appearance.

        The list is cached on this instance after the first call. Rows inserted
        afterwards through the same instance are not reflected.
        """
        if self._ips is None:
            with self._cursor() as cur:
                cur.execute("SELECT ip FROM access GROUP BY ip ORDER BY min(id)")
                self._ips = [row["ip"] for row in cur]
            logger.debug(f"Cached {len(self._ips)} distinct IPs")
        return list(self._ips)

    def count_ips(self) -> int:
        return len(self.distinct_ips())

    def page(
        self,
        fields: Sequence[str],
        page_size: int,
        where: Sequence[tuple[str, Any, str]] = (),
        ordered: bool = False,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Fetch one page of rows.

        Args:
            fields: Columns to select (subset of id, ip, time, url, code)
            page_size: Maximum rows to return
            where: (field, value, operator) conditions joined with AND
            ordered: Order by insertion id ascending
            offset: Rows to skip

        Returns:
            List of row dicts; an empty list means the scan is exhausted
        """
        if not fields:
            raise ValueError("At least one field is required")
        for column in fields:
            if column not in VALID_FIELDS:
                raise ValueError(f"Invalid field '{column}'")
        if page_size < 1 or offset < 0:
            raise ValueError(f"Invalid page_size={page_size} offset={offset}")

        where_sql, params = build_where(where)
        query = f"SELECT {', '.join(fields)} FROM access{where_sql}"
        if ordered:
            query += " ORDER BY id"
        query += " LIMIT ? OFFSET ?"

        with self._cursor() as cur:
            cur.execute(query, [*params, page_size, offset])
            return [dict(row) for row in cur]

    def health_check(self) -> bool:
        try:
            with self._cursor() as cur:
                cur.execute("SELECT 1")
                return cur.fetchone() is not None
        except (sqlite3.Error, AccessDatabaseError) as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def get_database_info(self) -> dict[str, Any]:
        """Summary used by the stats command."""
        return {
            "path": os.path.abspath(self.path),
            "size_bytes": os.path.getsize(self.path) if os.path.exists(self.path) else 0,
            "rows": self.count_urls(),
            "distinct_ips": self.count_ips(),
        }

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self.connection is None:
            return
        self.connection.close()
        self.connection = None
        logger.info(f"The database has been closed: {self.path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
