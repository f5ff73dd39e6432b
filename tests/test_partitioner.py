"""
ABOUTME: Tests for line-count and IP-group URL export
ABOUTME: Checks file counts, file contents, filtering, and the IP precondition
"""

import pytest

from core.config import ConfigError
from core.partitioner import (
    InsufficientIpsError,
    UrlFilter,
    export_by_ip_groups,
    export_by_line_count,
    ips_per_file,
)
from core.url_writer import UrlFileWriter

from .conftest import make_record

DOMAIN = "https://foo.com"


def read_lines(path):
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()


@pytest.fixture
def pattern(tmp_path):
    return str(tmp_path / "urls_{n}.txt")


class TestLineCountExport:
    """Test fixed line budget rollover"""

    def test_250_urls_budget_100(self, url_database, pattern):
        writer = UrlFileWriter(pattern, DOMAIN, line_budget=100)
        summary = export_by_line_count(url_database, writer, page_size=30)

        assert len(summary.files) == 3
        assert [len(read_lines(path)) for path in summary.files] == [100, 100, 50]
        assert summary.lines_written == 250
        assert summary.files[0].endswith("urls_1.txt")
        assert summary.files[2].endswith("urls_3.txt")

    def test_lines_are_prefixed(self, url_database, pattern):
        writer = UrlFileWriter(pattern, DOMAIN, line_budget=100)
        summary = export_by_line_count(url_database, writer)

        lines = [line for path in summary.files for line in read_lines(path)]
        assert all(line.startswith(DOMAIN + "/page/") for line in lines)
        assert sorted(lines) == sorted(f"{DOMAIN}/page/{i}" for i in range(250))

    def test_files_end_with_newline(self, url_database, pattern):
        writer = UrlFileWriter(pattern, DOMAIN, line_budget=100)
        summary = export_by_line_count(url_database, writer)
        with open(summary.files[-1], encoding="utf-8") as f:
            assert f.read().endswith("\n")

    def test_exact_multiple_leaves_empty_last_file(self, database, pattern):
        """Test 200 URLs with budget 100 roll over into an empty third file"""
        database.insert_batch([make_record(url=f"/page/{i}") for i in range(200)])
        summary = export_by_line_count(database, UrlFileWriter(pattern, DOMAIN, line_budget=100))

        assert [len(read_lines(path)) for path in summary.files] == [100, 100, 0]
        assert summary.lines_written == 200

    def test_requires_line_budget(self, url_database, pattern):
        with pytest.raises(ConfigError):
            export_by_line_count(url_database, UrlFileWriter(pattern, DOMAIN))

    def test_progress_callback(self, url_database, pattern):
        seen = []
        writer = UrlFileWriter(pattern, DOMAIN, line_budget=100)
        export_by_line_count(url_database, writer, page_size=100, progress=seen.append)
        assert seen == [100, 100, 50]


class TestIpGroupExport:
    """Test IP-grouped rollover"""

    def test_two_ips_two_files(self, grouped_database, pattern):
        writer = UrlFileWriter(pattern, DOMAIN)
        summary = export_by_ip_groups(grouped_database, writer, group_count=2, page_size=3)

        assert len(summary.files) == 2
        assert read_lines(summary.files[0]) == [f"{DOMAIN}/a/{i}" for i in range(10)]
        assert read_lines(summary.files[1]) == [f"{DOMAIN}/b/{i}" for i in range(5)]
        assert summary.ips_processed == 2
        assert summary.ips_skipped == 0

    def test_one_file_holds_everything(self, grouped_database, pattern):
        writer = UrlFileWriter(pattern, DOMAIN)
        summary = export_by_ip_groups(grouped_database, writer, group_count=1)
        assert len(summary.files) == 1
        assert len(read_lines(summary.files[0])) == 15

    def test_insufficient_ips(self, database, pattern, tmp_path):
        """Test 3 IPs cannot be split into 5 files and nothing is created"""
        database.insert_batch([make_record(ip=f"10.0.0.{i}") for i in range(3)])
        with pytest.raises(InsufficientIpsError):
            export_by_ip_groups(database, UrlFileWriter(pattern, DOMAIN), group_count=5)
        assert list(tmp_path.glob("urls_*.txt")) == []

    def test_leftover_ips_are_dropped(self, database, pattern):
        """Test 4 IPs over 3 files puts one IP per file and drops the last"""
        database.insert_batch([make_record(ip=f"10.0.0.{i}", url=f"/ip/{i}") for i in range(4)])
        summary = export_by_ip_groups(database, UrlFileWriter(pattern, DOMAIN), group_count=3)

        assert [read_lines(path) for path in summary.files] == [
            [f"{DOMAIN}/ip/0"],
            [f"{DOMAIN}/ip/1"],
            [f"{DOMAIN}/ip/2"],
        ]
        assert summary.ips_skipped == 1

    def test_rounding_up_leaves_fewer_files(self, database, pattern):
        """Test 5 IPs over 2 files gives 3 then 2 IPs"""
        database.insert_batch([make_record(ip=f"10.0.0.{i}", url=f"/ip/{i}") for i in range(5)])
        summary = export_by_ip_groups(database, UrlFileWriter(pattern, DOMAIN), group_count=2)

        assert [len(read_lines(path)) for path in summary.files] == [3, 2]
        assert summary.ips_skipped == 0

    def test_rounding_down_leaves_empty_last_file(self, database, pattern):
        """Test 6 IPs over 4 files fills three files with 2 IPs and leaves the fourth empty"""
        database.insert_batch([make_record(ip=f"10.0.0.{i}", url=f"/ip/{i}") for i in range(6)])
        summary = export_by_ip_groups(database, UrlFileWriter(pattern, DOMAIN), group_count=4)

        assert [len(read_lines(path)) for path in summary.files] == [2, 2, 2, 0]
        assert summary.ips_processed == 6
        assert summary.ips_skipped == 0


class TestIpsPerFile:
    """Test half-up rounding of the IP share"""

    @pytest.mark.parametrize(
        "ip_total,group_count,expected",
        [(2, 2, 1), (5, 2, 3), (3, 2, 2), (4, 3, 1), (10, 4, 3), (7, 7, 1), (100, 3, 33)],
    )
    def test_rounding(self, ip_total, group_count, expected):
        assert ips_per_file(ip_total, group_count) == expected


class TestUrlFilter:
    """Test the exclusion filter"""

    def test_drops_matches_and_keeps_order(self):
        url_filter = UrlFilter(r"css$")
        assert url_filter.apply(["/a", "/b.css", "/c", "/d.css?x", "/e"]) == ["/a", "/c", "/d.css?x", "/e"]

    def test_no_pattern_keeps_everything(self):
        urls = ["/a", "/b"]
        assert UrlFilter(None).apply(urls) == urls

    def test_invalid_pattern(self):
        with pytest.raises(ConfigError):
            UrlFilter("(unclosed")

    def test_filtered_urls_never_written(self, database, pattern):
        database.insert_batch(
            [make_record(ip=f"10.0.0.{i % 2}", url=f"/p/{i}.css" if i % 3 == 0 else f"/p/{i}") for i in range(30)]
        )
        url_filter = UrlFilter(r"\.css$")

        line_summary = export_by_line_count(
            database, UrlFileWriter(pattern, DOMAIN, line_budget=7), page_size=4, url_filter=url_filter
        )
        written = [line for path in line_summary.files for line in read_lines(path)]
        assert written == [f"{DOMAIN}/p/{i}" for i in range(30) if i % 3 != 0]
        assert line_summary.urls_filtered == 10

        group_summary = export_by_ip_groups(database, UrlFileWriter(pattern, DOMAIN), 2, url_filter=url_filter)
        grouped = [line for path in group_summary.files for line in read_lines(path)]
        assert not any(line.endswith(".css") for line in grouped)
        assert len(grouped) == 20
