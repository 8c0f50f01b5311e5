"""
Tests for process bootstrap in observer.py.
"""

import json

import pytest

import observer
from core.errors import FetchError, StartupError


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "updateInterval": 60000,
        "apps": [730],
        "properties": ["name"],
        "database": {"path": str(tmp_path / "data" / "market.sqlite3")},
    }), encoding="utf-8")
    monkeypatch.setattr(observer, "CONFIG_PATH", str(path))
    monkeypatch.setattr(observer, "LAST_UPDATE_PATH", str(tmp_path / "last-update.txt"))
    return path


class TestBuildScheduler:
    def test_wires_context(self, config_file, tmp_path):
        scheduler = observer.build_scheduler()
        try:
            assert scheduler.last_update == 0
            assert scheduler.ctx.config.apps == ("730",)
            assert scheduler.ctx.store.count() == 0
            assert scheduler.ctx.throttle.interval == 10
            assert (tmp_path / "last-update.txt").read_text() == "0"
        finally:
            scheduler.ctx.store.close()

    def test_unknown_source(self, config_file, monkeypatch):
        monkeypatch.setattr(observer, "SOURCE", "bazaar")

        with pytest.raises(StartupError):
            observer.build_scheduler()


class TestMain:
    def test_missing_config_exits_with_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(observer, "CONFIG_PATH", str(tmp_path / "missing.json"))
        monkeypatch.setattr(observer, "LAST_UPDATE_PATH", str(tmp_path / "last-update.txt"))

        assert observer.main() == 1

    def test_run_once_success(self, config_file, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(observer, "MODE", "once")
        monkeypatch.setitem(observer.FETCHERS, "steam", lambda ctx, app_id: calls.append(app_id))

        assert observer.main() == 0

        assert calls == ["730"]
        assert int((tmp_path / "last-update.txt").read_text()) > 0

    def test_run_once_failure(self, config_file, tmp_path, monkeypatch):
        def failing(ctx, app_id):
            raise FetchError("Unable to fetch page #1: response code was 500", 1, 500)

        monkeypatch.setattr(observer, "MODE", "once")
        monkeypatch.setitem(observer.FETCHERS, "steam", failing)

        assert observer.main() == 1
        assert (tmp_path / "last-update.txt").read_text() == "0"

    def test_unusable_watermark_path_exits_with_error(self, config_file, tmp_path, monkeypatch):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        monkeypatch.setattr(observer, "MODE", "once")
        monkeypatch.setattr(observer, "LAST_UPDATE_PATH", str(blocker / "last-update.txt"))

        assert observer.main() == 1
