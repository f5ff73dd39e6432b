"""
ABOUTME: Tests for access log importers and bulk ingestion
ABOUTME: Covers compression detection, gzip/zstd reading, skipped lines, and batching
"""

import gzip
import logging

import pytest
import zstandard

from core.importers import detect_log_format, get_importer
from core.importers.text_importer import GzipLogImporter, PlainLogImporter
from core.importers.zstd_importer import ZstdLogImporter
from core.sqlite_database import WriteError

from .conftest import APACHE_COLUMNS, APACHE_TIME_FORMAT, make_log_line


class TestFormatDetection:
    """Test importer selection from file names"""

    @pytest.mark.parametrize(
        "name,expected",
        [("access.log", "plain"), ("access.log.1", "plain"), ("access.log.2.gz", "gzip"), ("ACCESS.ZST", "zstd")],
    )
    def test_detect(self, name, expected):
        assert detect_log_format(f"/var/log/{name}") == expected

    def test_factory(self):
        assert isinstance(get_importer("plain"), PlainLogImporter)
        assert isinstance(get_importer("gzip"), GzipLogImporter)
        assert isinstance(get_importer("zstd"), ZstdLogImporter)

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            get_importer("bz2")


class TestStreamRecords:
    """Test parsing whole files"""

    def test_plain_file(self, sample_log):
        importer = get_importer("plain")
        records = list(importer.stream_records(str(sample_log), APACHE_COLUMNS, APACHE_TIME_FORMAT))

        assert [r.url for r in records] == ["/", "/user/1", "/style.css", "/user/2"]
        assert [r.status_code for r in records] == [200, 200, 304, 404]
        assert importer.stats.lines_read == 6
        assert importer.stats.records_parsed == 4
        assert importer.stats.lines_skipped == 1
        assert importer.stats.blank_lines == 1

    def test_skipped_line_is_logged(self, sample_log, caplog):
        importer = get_importer("plain")
        with caplog.at_level(logging.WARNING, logger="core.importers.base_importer"):
            list(importer.stream_records(str(sample_log), APACHE_COLUMNS, APACHE_TIME_FORMAT))
        assert "Unable to parse line 3" in caplog.text
        assert "broken line" in caplog.text

    def test_gzip_file(self, tmp_path):
        path = tmp_path / "access.log.gz"
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(make_log_line(url="/gz/1") + make_log_line(url="/gz/2"))

        importer = get_importer(detect_log_format(str(path)))
        urls = [r.url for r in importer.stream_records(str(path), APACHE_COLUMNS, APACHE_TIME_FORMAT)]
        assert urls == ["/gz/1", "/gz/2"]

    def test_zstd_file(self, tmp_path):
        path = tmp_path / "access.log.zst"
        data = (make_log_line(url="/zst/1") + make_log_line(url="/zst/2")).encode("utf-8")
        path.write_bytes(zstandard.ZstdCompressor().compress(data))

        importer = get_importer(detect_log_format(str(path)))
        urls = [r.url for r in importer.stream_records(str(path), APACHE_COLUMNS, APACHE_TIME_FORMAT)]
        assert urls == ["/zst/1", "/zst/2"]

    def test_missing_file(self, tmp_path):
        importer = get_importer("plain")
        with pytest.raises(FileNotFoundError):
            list(importer.stream_records(str(tmp_path / "nope.log"), APACHE_COLUMNS, APACHE_TIME_FORMAT))


class TestImportFile:
    """Test bulk insertion into the database"""

    def test_batches(self, sample_log, database):
        seen = []
        importer = get_importer("plain")
        stats = importer.import_file(
            database, str(sample_log), APACHE_COLUMNS, APACHE_TIME_FORMAT, batch_size=3, progress=seen.append
        )

        assert stats.records_parsed == 4
        assert seen == [3, 1]
        assert database.metrics.batches == 2
        assert database.count_urls() == 4
        assert database.distinct_ips() == ["10.1.1.1", "10.1.1.2", "10.1.1.3"]

    def test_bad_lines_never_reach_database(self, tmp_path, database):
        path = tmp_path / "bad.log"
        path.write_text("short\n" + make_log_line(code="abc"), encoding="utf-8")

        stats = get_importer("plain").import_file(database, str(path), APACHE_COLUMNS, APACHE_TIME_FORMAT)
        assert stats.lines_skipped == 2
        assert database.count_urls() == 0

    def test_write_error_is_fatal(self, sample_log, database):
        """Test a failed insert aborts while earlier batches stay"""
        importer = get_importer("plain")
        real_insert = database.insert_batch
        calls = []

        def failing_insert(batch):
            calls.append(len(batch))
            if len(calls) == 2:
                raise WriteError("disk full")
            return real_insert(batch)

        database.insert_batch = failing_insert
        with pytest.raises(WriteError):
            importer.import_file(database, str(sample_log), APACHE_COLUMNS, APACHE_TIME_FORMAT, batch_size=2)
        assert database.count_urls() == 2
