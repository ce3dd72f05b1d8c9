from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from clipvault.utils import (
    default_export_name,
    ensure_dirs,
    format_timestamp,
    generate_id,
    parse_timestamp,
    truncate_text,
)


class TestGenerateId:
    def test_prefix(self):
        assert generate_id().startswith("clip_")
        assert generate_id("ws").startswith("ws_")

    def test_unique(self):
        assert len({generate_id() for _ in range(500)}) == 500


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text("hello", 60) == "hello"

    def test_long_text_truncated(self):
        result = truncate_text("a" * 100, 60)
        assert len(result) == 60
        assert result.endswith("...")

    def test_multiline_collapsed(self):
        assert truncate_text("hello\nworld\nfoo", 60) == "hello world foo"

    def test_exact_length_not_truncated(self):
        text = "a" * 60
        assert truncate_text(text, 60) == text


class TestTimestamps:
    def test_iso_round_trip(self):
        moment = datetime(2026, 3, 4, 5, 6, 7, 890)
        assert parse_timestamp(format_timestamp(moment)) == moment

    def test_epoch_millis(self):
        assert parse_timestamp(0) == datetime.fromtimestamp(0)

    def test_none_and_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None
        assert format_timestamp(None) is None

    def test_datetime_passthrough(self):
        moment = datetime(2026, 1, 1)
        assert parse_timestamp(moment) is moment

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp(True)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


    def test_utc_suffix_converted_to_local(self):
        parsed = parse_timestamp("2024-01-01T00:00:00Z")
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert parsed.tzinfo is None
        assert parsed == expected

    def test_offset_converted_to_local(self):
        parsed = parse_timestamp("2024-01-01T02:00:00+02:00")
        assert parsed == parse_timestamp("2024-01-01T00:00:00Z")

    def test_aware_datetime_made_naive(self):
        aware = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(aware).tzinfo is None


class TestDefaultExportName:
    def test_uses_date(self):
        assert default_export_name(date(2026, 10, 19)) == "clipvault-backup-2026-10-19.json"


class TestEnsureDirs:
    def test_creates_data_dir(self, tmp_path):
        data_dir = tmp_path / "data"
        with patch("clipvault.utils.DATA_DIR", data_dir):
            ensure_dirs()
        assert data_dir.is_dir()
