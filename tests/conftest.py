"""
Shared fixtures: a fake clock/sleep pair, a scripted HTTP session and an
isolated ObserverContext backed by a temporary SQLite file.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
import requests

from core.config import IngestionConfig
from core.context import ObserverContext
from core.storage import ItemStore
from core.throttle import RequestThrottle
from core.watermark import WatermarkStore


class FakeClock:
    """Time only moves when something sleeps."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code=200, body=None, bad_json=False):
        self.status_code = status_code
        self._body = body
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Replays scripted responses (or raises scripted exceptions) in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(dict(params or {}))
        if not self.responses:
            raise AssertionError("Unexpected extra request: %r" % (params,))
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    @property
    def starts(self):
        return [c["start"] for c in self.calls]


def make_item(hash_name, sell_price=100, **fields):
    item = {"hash_name": hash_name, "sell_price": sell_price}
    item.update(fields)
    return item


def page(total, items, success=True):
    return FakeResponse(200, {"success": success, "total_count": total, "results": items})


def items_range(prefix, start, count, **fields):
    return [make_item(f"{prefix}-{i}", 100 + i, **fields) for i in range(start, start + count)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_ctx(tmp_path, clock):
    stores = []

    def factory(responses=(), apps=("730",), properties=("name",), **overrides):
        settings = dict(
            apps=tuple(apps),
            update_interval=3_600_000,
            properties=tuple(properties),
            db_path=str(tmp_path / "market.sqlite3"),
            request_interval=10,
            cool_down=30,
            page_size=100,
            transport_retries=3,
            api_url="https://example.invalid/market/search/render/?norender=1",
        )
        settings.update(overrides)
        config = IngestionConfig(**settings)
        store = ItemStore(config.db_path, config.properties, table=config.table).connect()
        stores.append(store)
        return ObserverContext(
            config=config,
            store=store,
            watermark=WatermarkStore(str(tmp_path / "last-update.txt")),
            throttle=RequestThrottle(config.request_interval, clock=clock, sleep=clock.sleep),
            session=FakeSession(responses),
            sleep=clock.sleep,
            clock=clock,
        )

    yield factory
    for store in stores:
        store.close()


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection reset by peer")
