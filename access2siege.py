#!/usr/bin/env python
"""
ABOUTME: Command line entry point for access2siege
ABOUTME: Loads access logs into SQLite and writes URL files for siege load tests

Modes (one per run, checked in this order):
  -i  parse an access log into the database
  -o  write URL files from the database
  -c  print statistics about the database
"""

import argparse
import sys

from rich import box
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from core.config import (
    ColumnSpec,
    ConfigError,
    ExportConfig,
    IngestConfig,
    RuntimeSettings,
    StatsConfig,
    get_runtime_settings,
)
from core.importers import detect_log_format, get_importer
from core.partitioner import InsufficientIpsError, UrlFilter, export_by_ip_groups, export_by_line_count
from core.sqlite_database import AccessDatabase, AccessDatabaseError, StorageUnavailableError
from core.url_writer import UrlFileWriter
from monitoring.performance_timing import PerformanceTiming
from utils.console_output import console, print_error, print_info, print_section, print_success
from utils.error_handling import format_user_error
from version import get_version_string


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="access2siege",
        description="Analyse web server access logs and generate URL files for siege",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read a log into the database
  python access2siege.py -i access.log -p "0,3,6,8" -t "d/m/y:H:i:s"
  python access2siege.py -i access.log.2.gz -p "0,3,6,8" -t "d/m/y:H:i:s"

  # Write URL files, 50000 lines each (optionally dropping css files)
  python access2siege.py -o "urls_{n}.txt" -d https://foo.com -l 50000
  python access2siege.py -o "urls_{n}.txt" -f 'css$' -d https://foo.com -l 50000

  # Write 4 URL files grouped by client IP
  python access2siege.py -o "urls_{n}.txt" -d https://foo.com -g 4

  # Statistics
  python access2siege.py -c urls
  python access2siege.py -c urls -x '/user'
  python access2siege.py -c ips
  python access2siege.py -c ips -x verbose
        """,
    )

    parser.add_argument(
        "--version", action="version", version=get_version_string(), help="Show version information and exit"
    )

    # Input
    parser.add_argument("-i", "--input", help="Access log to parse into the database (plain, .gz or .zst)")
    parser.add_argument(
        "-p", "--pattern", help='Positions of ip,time,url,code in the space-split log line, e.g. "0,3,6,8"'
    )
    parser.add_argument("-t", "--time", dest="time_format", help='Time format in the log, e.g. "d/m/y:H:i:s"')

    # Output
    parser.add_argument("-o", "--output", help="Output file pattern, {n} is replaced by the file number")
    parser.add_argument("-d", "--domain", help="Domain to prefix URLs with (http(s)://test.dk)")
    output_mode = parser.add_mutually_exclusive_group()
    output_mode.add_argument("-l", "--lines", type=int, help="Write this many lines into each file")
    output_mode.add_argument(
        "-g", "--group", type=int, help="Group URLs by IP into this many files (files may differ in size)"
    )
    parser.add_argument("-f", "--filter", help="Leave out URLs matching this regular expression")

    # Stats
    parser.add_argument("-c", "--count", choices=StatsConfig.VALID_SUBJECTS, help="Count urls or ips")
    parser.add_argument("-x", "--count-option", help="Exact URL to count (-c urls) or 'verbose' (-c ips)")

    # Runtime
    parser.add_argument("--database", help="SQLite database file (default: $A2S_DATABASE_PATH or db.sqlite)")
    parser.add_argument("--page-size", type=int, help="Rows read per query during export (default: 1000)")
    parser.add_argument("--batch-size", type=int, help="Rows per insert transaction during import (default: 1000)")
    parser.add_argument("--timing", action="store_true", help="Print phase timings and memory use at the end")

    # Logging
    parser.add_argument("--log-file", help="Path to log file for skipped lines and debug output")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level for file output (default: INFO)",
    )
    return parser


def make_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed:,} rows"),
        TimeElapsedColumn(),
        console=console.console,
        transient=True,
    )


def run_ingest(args: argparse.Namespace, settings: RuntimeSettings, timing: PerformanceTiming) -> None:
    config = IngestConfig(
        input_path=args.input,
        columns=ColumnSpec.from_string(args.pattern) if args.pattern else None,
        time_format=args.time_format,
    )
    config.validate()

    log_format = detect_log_format(config.input_path)
    importer = get_importer(log_format)
    print_section(f"Importing {config.input_path} ({log_format})")

    with AccessDatabase(settings.database_path) as db, make_progress() as progress:
        task = progress.add_task("Parsing", total=None)
        with timing.time_phase("Import") as phase:
            stats = importer.import_file(
                db,
                config.input_path,
                config.columns,
                config.time_format,
                batch_size=settings.batch_size,
                progress=lambda n: progress.advance(task, n),
            )
            phase["items"] = stats.records_parsed

    metrics = db.metrics
    print_success(f"Done reading file: {stats.records_parsed:,} records stored")
    print_info(
        f"{metrics.records_inserted:,} rows inserted in {metrics.batches:,} batches "
        f"({metrics.records_per_second:,.0f} rows/s)",
        indent=1,
    )
    if stats.lines_skipped:
        print_info(f"{stats.lines_skipped:,} lines could not be parsed and were skipped", indent=1)


def run_export(args: argparse.Namespace, settings: RuntimeSettings, timing: PerformanceTiming) -> None:
    config = ExportConfig(
        output_pattern=args.output,
        domain=args.domain,
        lines_per_file=args.lines,
        group_count=args.group,
        exclude_pattern=args.filter,
    )
    config.validate()
    url_filter = UrlFilter(config.exclude_pattern)
    writer = UrlFileWriter(config.output_pattern, config.domain, line_budget=config.lines_per_file)

    with AccessDatabase(settings.database_path) as db, make_progress() as progress:
        if config.lines_per_file:
            print_section(f"Writing {config.lines_per_file:,} lines per file")
            task = progress.add_task("Exporting", total=db.count_urls())
            with timing.time_phase("Export") as phase:
                summary = export_by_line_count(
                    db, writer, settings.page_size, url_filter, progress=lambda n: progress.advance(task, n)
                )
                phase["items"] = summary.lines_written
        else:
            print_section(f"Grouping URLs by IP into {config.group_count} files")
            print_info(f"{db.count_ips():,} IPs found in the database.")
            task = progress.add_task("Exporting", total=None)
            with timing.time_phase("Export") as phase:
                summary = export_by_ip_groups(
                    db,
                    writer,
                    config.group_count,
                    settings.page_size,
                    url_filter,
                    progress=lambda n: progress.advance(task, n),
                )
                phase["items"] = summary.lines_written

    print_success("All files have been created")
    print_info(f"{summary.lines_written:,} URLs written to {len(summary.files)} files", indent=1)
    if summary.urls_filtered:
        print_info(f"{summary.urls_filtered:,} URLs left out by the filter", indent=1)
    if summary.ips_skipped:
        print_info(f"{summary.ips_skipped:,} IPs left over after the last file", indent=1)


def run_stats(args: argparse.Namespace, settings: RuntimeSettings) -> None:
    config = StatsConfig(subject=args.count, limit=args.count_option)
    config.validate()

    with AccessDatabase(settings.database_path) as db:
        if not db.health_check():
            raise StorageUnavailableError(f"Database '{settings.database_path}' is not readable")

        if config.subject == "ips":
            if config.verbose:
                info = db.get_database_info()
                table = Table(
                    title="Distinct IPs", caption=f"{info['path']} ({info['size_bytes']:,} bytes)", box=box.SIMPLE
                )
                table.add_column("#", justify="right", style="cyan")
                table.add_column("IP", style="green")
                for number, ip in enumerate(db.distinct_ips(), start=1):
                    table.add_row(str(number), ip)
                console.console.print(table)
            print_info(f"The database has '{db.count_ips()}' IPs")
        else:
            print_info(f"The database has '{db.count_urls(config.limit)}' URLs")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    console.setup_console_logging("WARNING")
    if args.log_file:
        console.setup_file_logging(args.log_file, args.log_level)
        print_info(f"File logging enabled: {args.log_file} (level: {args.log_level})")

    timing = PerformanceTiming()
    try:
        settings = get_runtime_settings(args.database, args.page_size, args.batch_size)
        if args.input:
            run_ingest(args, settings, timing)
        elif args.output:
            run_export(args, settings, timing)
        elif args.count:
            run_stats(args, settings)
        else:
            raise ConfigError("No operation defined (-o, -i or -c).")
    except (ConfigError, AccessDatabaseError, InsufficientIpsError, OSError) as e:
        print_error(format_user_error(e))
        return 1
    finally:
        console.close()

    if args.timing:
        timing.print_summary()
    return 0


if __name__ == "__main__":
    sys.exit(main())
