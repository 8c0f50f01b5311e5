# core/throttle.py
import threading
import time
from typing import Any, Callable, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RequestThrottle:
    """
    Serializes outbound requests in submission order and keeps the start of
    consecutive dispatches at least `interval` seconds apart.

    A dispatch hands over to the next ticket as soon as it has started, so a
    slow request does not delay the following one beyond the interval.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval = max(0.0, float(interval))
        self._clock = clock
        self._sleep = sleep
        self._cond = threading.Condition()
        self._next_ticket = 0
        self._serving = 0
        self._last_start: float | None = None

    @property
    def pending(self) -> int:
        with self._cond:
            return self._next_ticket - self._serving

    def _wait_for_slot(self) -> None:
        if self._last_start is None:
            return
        since_last = self._clock() - self._last_start
        wait_for = self.interval - since_last
        if wait_for > 0:
            logger.debug(
                "Request spacing: last dispatch %.1fs ago; waiting %.1fs.",
                since_last, wait_for,
            )
            self._sleep(wait_for)

    def submit(self, request_fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._serving:
                self._cond.wait()

        try:
            self._wait_for_slot()
            self._last_start = self._clock()
        finally:
            with self._cond:
                self._serving += 1
                self._cond.notify_all()

        return request_fn(*args, **kwargs)
