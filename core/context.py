# core/context.py
import time
from dataclasses import dataclass, field
from typing import Callable

import requests

from .config import USER_AGENT, IngestionConfig
from .storage import ItemStore
from .throttle import RequestThrottle
from .watermark import WatermarkStore


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
    })
    return session


@dataclass
class ObserverContext:
    """
    Everything one observer run shares: configuration, the request throttle,
    the HTTP session and both stores. Tests build isolated contexts with fake
    sessions, clocks and sleeps.
    """
    config: IngestionConfig
    store: ItemStore
    watermark: WatermarkStore
    throttle: RequestThrottle | None = None
    session: requests.Session = field(default_factory=build_session)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        if self.throttle is None:
            self.throttle = RequestThrottle(self.config.request_interval, sleep=self.sleep)

    def now_millis(self) -> int:
        return int(self.clock() * 1000)
