#!/usr/bin/env python
"""
ABOUTME: Shared pytest fixtures for the access2siege test suite
ABOUTME: Provides temporary databases, sample log lines, and record builders
"""

import pytest

from core.config import ColumnSpec
from core.log_parser import AccessRecord
from core.sqlite_database import AccessDatabase

# Apache common log layout split on single spaces:
# 0 ip, 3 [time, 4 offset], 6 url, 8 status code
APACHE_COLUMNS = ColumnSpec(ip_index=0, time_index=3, url_index=6, code_index=8)
APACHE_TIME_FORMAT = "d/m/y:H:i:s"


def make_record(ip: str = "10.0.0.1", url: str = "/index.html", timestamp: int = 1640000000, code: int = 200):
    return AccessRecord(ip=ip, timestamp=timestamp, url=url, status_code=code)


def make_log_line(
    ip: str = "127.0.0.1", url: str = "/apache_pb.gif", code: str = "200", when: str = "10/Oct/2000:13:55:36"
) -> str:
    return f'{ip} - - [{when} -0700] "GET {url} HTTP/1.0" {code} 2326\n'


@pytest.fixture
def apache_columns():
    return APACHE_COLUMNS


@pytest.fixture
def database_path(tmp_path):
    return str(tmp_path / "db.sqlite")


@pytest.fixture
def database(database_path):
    """Empty database in a temporary directory"""
    db = AccessDatabase(database_path)
    yield db
    db.close()


@pytest.fixture
def url_database(database):
    """Database with 250 URLs spread over 5 IPs"""
    records = [make_record(ip=f"10.0.0.{i % 5}", url=f"/page/{i}") for i in range(250)]
    database.insert_batch(records)
    return database


@pytest.fixture
def grouped_database(database):
    """Database with IP A owning 10 URLs and IP B owning 5, interleaved on insert"""
    records = []
    for i in range(10):
        records.append(make_record(ip="192.168.1.1", url=f"/a/{i}"))
        if i < 5:
            records.append(make_record(ip="192.168.1.2", url=f"/b/{i}"))
    database.insert_batch(records)
    return database


@pytest.fixture
def sample_log(tmp_path):
    """Access log with four good lines, one short line, and one blank line"""
    lines = [
        make_log_line(ip="10.1.1.1", url="/"),
        make_log_line(ip="10.1.1.2", url="/user/1"),
        "broken line\n",
        "\n",
        make_log_line(ip="10.1.1.1", url="/style.css", code="304"),
        make_log_line(ip="10.1.1.3", url="/user/2", code="404"),
    ]
    path = tmp_path / "access.log"
    path.write_text("".join(lines), encoding="utf-8")
    return path
