# core/scheduler.py
import enum
from typing import Callable, Optional

from .context import ObserverContext
from .errors import ObserverError
from .logger import get_logger

logger = get_logger(__name__)


class CycleState(enum.Enum):
    WAITING = "waiting"
    RUNNING = "running"


class CycleScheduler:
    """
    Runs one update cycle (every configured app, in order) per timer firing.

    The first cycle starts as soon as the persisted watermark is at least one
    interval old; later cycles start a full interval after the previous one
    settled, whatever its outcome. Missed cycles are not replayed.
    """

    def __init__(
        self,
        ctx: ObserverContext,
        fetch_all: Callable[[ObserverContext, str], object],
        last_update: int = 0,
    ):
        self.ctx = ctx
        self.fetch_all = fetch_all
        self.state = CycleState.WAITING
        self.last_update = last_update

    @property
    def interval_seconds(self) -> float:
        return self.ctx.config.update_interval_seconds

    def initial_delay(self, now_millis: Optional[int] = None) -> float:
        """Seconds to wait before the first cycle given the stored watermark."""
        if now_millis is None:
            now_millis = self.ctx.now_millis()
        interval = self.ctx.config.update_interval
        delta = now_millis - self.last_update
        if delta >= interval:
            return 0.0
        return (interval - delta) / 1000.0

    def run_cycle(self) -> bool:
        """Fetch every app once. Returns True when the watermark was advanced."""
        self.state = CycleState.RUNNING
        logger.info("Starting price update")
        try:
            for app_id in self.ctx.config.apps:
                self.fetch_all(self.ctx, app_id)
        except ObserverError as e:
            logger.error("Error encountered during price update: %s", e)
            return False
        except Exception as e:
            logger.exception("Unhandled error during price update: %s", e)
            return False
        else:
            self.last_update = self.ctx.now_millis()
            self.ctx.watermark.save(self.last_update)
            logger.info("Price update complete")
            return True
        finally:
            self.state = CycleState.WAITING

    def _wait(self, seconds: float) -> None:
        if seconds <= 0:
            return
        logger.info("Next price update in %.1f minutes.", seconds / 60)
        self.ctx.sleep(seconds)

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Drive the Waiting -> Running -> Waiting loop. max_cycles bounds the
        number of cycles; None runs until the process is stopped.
        """
        delay = self.initial_delay()
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            self._wait(delay)
            self.run_cycle()
            cycles += 1
            delay = self.interval_seconds
