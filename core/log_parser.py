# ABOUTME: Parses one raw access log line into an AccessRecord
# ABOUTME: Column positions and the timestamp layout are supplied by the caller

import itertools
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from core.config import ColumnSpec

# Date tokens of the time format descriptor mapped to strptime candidates
DATE_TOKENS = {
    "d": ("%d",),
    "j": ("%d",),
    "m": ("%b", "%m", "%B"),
    "M": ("%b", "%B"),
    "n": ("%m",),
    "b": ("%b",),
    "y": ("%Y", "%y"),
    "Y": ("%Y",),
}
TIME_FORMAT = "%H:%M:%S"
UTC_OFFSET_RE = re.compile(r"[+-]\d{2}:?\d{2}")
FALLBACK_DATE_FORMATS = ("%Y-%m-%d",)


class ParseError(ValueError):
    """A single log line could not be turned into a record."""

    pass


class MissingFieldError(ParseError):
    """A configured column is out of range or empty."""

    pass


class InvalidTimestampError(ParseError):
    """The timestamp field could not be converted to epoch seconds."""

    pass


class InvalidStatusCodeError(ParseError):
    """The status code column is not an integer."""

    pass


@dataclass(frozen=True)
class AccessRecord:
    """One parsed access log entry. ``id`` is assigned by the database."""

    ip: str
    timestamp: int
    url: str
    status_code: int
    id: int | None = None


def _field(fields: list[str], index: int, name: str) -> str:
    if index >= len(fields) or not fields[index]:
        raise MissingFieldError(f"missing {name} field at index {index}")
    return fields[index]


def split_timestamp(raw_time: str, time_format: str) -> tuple[str, str]:
    """Slice a raw timestamp field into its date and time substrings.

    The leading bracket is dropped. When the hour token opens the format the
    first 8 characters are the time and the remainder the date. Otherwise the
    last ``hour_pos + 2`` characters are the time and everything before the
    separator is the date. The second rule only lines up when the date part
    of the format is 6 characters long (e.g. ``d/m/y:H:i:s``); both rules are
    kept as-is until other layouts need support.

    Returns:
        Tuple of (date, time)
    """
    raw_time = raw_time[1:]
    hour_pos = time_format.find("H")
    if hour_pos == 0:
        time_part = raw_time[:8]
        date_part = raw_time[8:]
    else:
        pos = hour_pos + 2
        time_part = raw_time[-pos:]
        date_part = raw_time[: -(pos + 1)]
    if "/" in date_part:
        date_part = date_part.replace("/", "-")
    return date_part.strip(" :-"), time_part.strip()


def date_formats_for(time_format: str) -> list[str]:
    """Build the strptime date formats implied by the descriptor's date tokens."""
    tokens = [DATE_TOKENS[char] for char in time_format if char in DATE_TOKENS]
    formats = ["-".join(combo) for combo in itertools.product(*tokens)] if tokens else []
    for fallback in FALLBACK_DATE_FORMATS:
        if fallback not in formats:
            formats.append(fallback)
    return formats


def to_epoch(date_part: str, time_part: str, offset: str, time_format: str) -> int:
    """Convert sliced date/time text plus an optional UTC offset to epoch seconds.

    Raises:
        InvalidTimestampError: If no candidate format matches
    """
    suffix, suffix_format = (f" {offset}", " %z") if offset else ("", "")
    for date_format in date_formats_for(time_format):
        try:
            parsed = datetime.strptime(
                f"{date_part} {time_part}{suffix}", f"{date_format} {TIME_FORMAT}{suffix_format}"
            )
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    raise InvalidTimestampError(f"unable to parse date '{date_part}' time '{time_part}' offset '{offset}'")


def parse_line(raw_line: str, columns: ColumnSpec, time_format: str) -> AccessRecord:
    """Parse one access log line.

    Args:
        raw_line: Line as read from the log, newline included or not
        columns: Positions of ip/time/url/code in the space-split line
        time_format: Descriptor such as ``d/m/y:H:i:s``

    Returns:
        AccessRecord without an id

    Raises:
        MissingFieldError: A configured column is absent or empty
        InvalidTimestampError: The timestamp cannot be converted
        InvalidStatusCodeError: The status code is not an integer
    """
    fields = raw_line.rstrip("\r\n").split(" ")

    ip = _field(fields, columns.ip_index, "ip")
    raw_time = _field(fields, columns.time_index, "time")
    url = _field(fields, columns.url_index, "url")
    code = _field(fields, columns.code_index, "code")

    try:
        status_code = int(code)
    except ValueError:
        raise InvalidStatusCodeError(f"status code '{code}' is not an integer") from None

    # Offset lives in the next field, e.g. "-0700]"
    offset_index = columns.time_index + 1
    offset = fields[offset_index][:-1] if offset_index < len(fields) else ""
    if not UTC_OFFSET_RE.fullmatch(offset):
        offset = ""

    date_part, time_part = split_timestamp(raw_time, time_format)
    timestamp = to_epoch(date_part, time_part, offset, time_format)

    return AccessRecord(ip=ip, timestamp=timestamp, url=url, status_code=status_code)
