"""
Tests for the last-update watermark file.
"""

import logging

import pytest

from core.errors import StartupError
from core.watermark import WatermarkStore, millis_to_iso


class TestWatermarkStore:
    def test_missing_file_is_zero_and_created(self, tmp_path):
        path = tmp_path / "last-update.txt"

        assert WatermarkStore(str(path)).load() == 0
        assert path.read_text(encoding="utf-8") == "0"

    def test_save_then_load(self, tmp_path):
        store = WatermarkStore(str(tmp_path / "last-update.txt"))

        store.save(1_700_000_123_456)

        assert store.load() == 1_700_000_123_456

    def test_unreadable_value_is_zero(self, tmp_path, caplog):
        path = tmp_path / "last-update.txt"
        path.write_text("yesterday", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            assert WatermarkStore(str(path)).load() == 0
        assert any("Unreadable" in r.getMessage() for r in caplog.records)

    def test_save_failure_is_logged_not_raised(self, tmp_path, caplog):
        store = WatermarkStore(str(tmp_path / "missing-dir" / "last-update.txt"))

        with caplog.at_level(logging.ERROR):
            store.save(42)

        assert any("Unable to write update time" in r.getMessage() for r in caplog.records)

    def test_unusable_path_is_startup_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")

        with pytest.raises(StartupError):
            WatermarkStore(str(blocker / "last-update.txt")).load()


def test_millis_to_iso():
    assert millis_to_iso(0) == "1970-01-01T00:00:00+00:00"
