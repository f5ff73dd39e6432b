# ABOUTME: Validated run configuration for ingest, export, and stats modes
# ABOUTME: Resolves database path and batch sizes from overrides, environment, then defaults

import os
from dataclasses import dataclass

DEFAULT_DATABASE_PATH = "db.sqlite"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_BATCH_SIZE = 1000
MAX_BATCH_SIZE = 100_000

SEQUENCE_PLACEHOLDER = "{n}"


class ConfigError(ValueError):
    """Raised for an invalid or incomplete option combination."""

    pass


@dataclass(frozen=True)
class ColumnSpec:
    """Zero-based positions of the fields in a space-split log line."""

    ip_index: int
    time_index: int
    url_index: int
    code_index: int

    @classmethod
    def from_string(cls, value: str) -> "ColumnSpec":
        """Parse the ``ip,time,url,code`` option string.

        Raises:
            ConfigError: If there are not exactly four non-negative integers
        """
        parts = [part.strip() for part in (value or "").split(",")]
        if len(parts) != 4:
            raise ConfigError(f"Log line pattern must list four indexes (ip,time,url,code), got '{value}'")
        try:
            indexes = [int(part) for part in parts]
        except ValueError:
            raise ConfigError(f"Log line pattern must only contain integers, got '{value}'") from None
        if any(index < 0 for index in indexes):
            raise ConfigError(f"Log line pattern indexes must be zero or greater, got '{value}'")
        return cls(*indexes)


@dataclass
class RuntimeSettings:
    """Settings shared by every mode."""

    database_path: str = DEFAULT_DATABASE_PATH
    page_size: int = DEFAULT_PAGE_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE

    def validate(self) -> None:
        if not self.database_path:
            raise ConfigError("Database path must not be empty")
        if not 1 <= self.page_size <= MAX_BATCH_SIZE:
            raise ConfigError(f"A2S_PAGE_SIZE must be 1-{MAX_BATCH_SIZE}, got {self.page_size}")
        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigError(f"A2S_BATCH_SIZE must be 1-{MAX_BATCH_SIZE}, got {self.batch_size}")


@dataclass
class IngestConfig:
    """Options for parsing an access log into the database."""

    input_path: str
    columns: ColumnSpec | None
    time_format: str | None

    def validate(self) -> None:
        if self.columns is None or not self.time_format:
            raise ConfigError("Log line pattern (-p) and time format (-t) are required together with input (-i).")
        if "H" not in self.time_format:
            raise ConfigError(f"Time format must contain the hour token 'H', got '{self.time_format}'")
        if not os.path.isfile(self.input_path):
            raise ConfigError(f"Input file does not exist or is not readable: {self.input_path}")


@dataclass
class ExportConfig:
    """Options for writing URL files from the database."""

    output_pattern: str
    domain: str | None
    lines_per_file: int | None = None
    group_count: int | None = None
    exclude_pattern: str | None = None

    def validate(self) -> None:
        if not self.domain:
            raise ConfigError("Domain (-d) is required when generating output files.")
        if SEQUENCE_PLACEHOLDER not in self.output_pattern:
            raise ConfigError(f"Output pattern must contain '{SEQUENCE_PLACEHOLDER}', got '{self.output_pattern}'")
        if self.lines_per_file is None and self.group_count is None:
            raise ConfigError("No output format selected (-l or -g).")
        if self.lines_per_file is not None and self.group_count is not None:
            raise ConfigError("Only one output format can be selected (-l or -g).")
        if self.lines_per_file is not None and self.lines_per_file < 1:
            raise ConfigError(f"Lines per file (-l) must be at least 1, got {self.lines_per_file}")
        if self.group_count is not None and self.group_count < 1:
            raise ConfigError(f"Number of files (-g) must be at least 1, got {self.group_count}")


@dataclass
class StatsConfig:
    """Options for the read-only statistics mode."""

    subject: str
    limit: str | None = None

    VALID_SUBJECTS = ("urls", "ips")

    def validate(self) -> None:
        if self.subject not in self.VALID_SUBJECTS:
            raise ConfigError(f"Unknown stats operation '{self.subject}' (expected urls or ips).")

    @property
    def verbose(self) -> bool:
        return self.subject == "ips" and self.limit == "verbose"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from None


def get_runtime_settings(
    database_path: str | None = None, page_size: int | None = None, batch_size: int | None = None
) -> RuntimeSettings:
    """Build runtime settings with explicit overrides taking precedence.

    Environment variables:
        A2S_DATABASE_PATH: Database file (default: db.sqlite in the working directory)
        A2S_PAGE_SIZE: Rows fetched per page during export (default: 1000)
        A2S_BATCH_SIZE: Records per insert transaction during ingest (default: 1000)

    Returns:
        Validated RuntimeSettings
    """
    settings = RuntimeSettings(
        database_path=database_path or os.environ.get("A2S_DATABASE_PATH") or DEFAULT_DATABASE_PATH,
        page_size=page_size if page_size is not None else _env_int("A2S_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        batch_size=batch_size if batch_size is not None else _env_int("A2S_BATCH_SIZE", DEFAULT_BATCH_SIZE),
    )
    settings.validate()
    return settings
