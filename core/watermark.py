# core/watermark.py
import datetime
import os

import pytz

from .errors import StartupError
from .logger import get_logger

logger = get_logger(__name__)


def millis_to_iso(epoch_millis: int) -> str:
    return datetime.datetime.fromtimestamp(epoch_millis / 1000.0, tz=pytz.UTC).isoformat()


class WatermarkStore:
    """
    Epoch-millisecond timestamp of the last completed update cycle, kept as a
    base-10 integer in a text file. 0 means the observer has never completed one.
    """

    def __init__(self, path: str):
        self.path = path

    def _write(self, epoch_millis: int) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(str(int(epoch_millis)))

    def _read_or_init(self) -> str | None:
        """Stored text, or None after creating the file with 0."""
        if os.path.exists(self.path):
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read().strip()
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._write(0)
        return None

    def load(self) -> int:
        logger.info("Reading last price update time from %s", self.path)
        last_update = 0
        try:
            raw = self._read_or_init()
        except OSError as e:
            raise StartupError(f"Unable to access last update file {self.path}: {e}") from e
        if raw is not None:
            try:
                last_update = int(raw, 10)
            except ValueError:
                logger.warning("Unreadable last update time %r; treating as never run.", raw)
                last_update = 0
        if last_update == 0:
            logger.info("No price update information found")
        else:
            logger.info("Last updated price database on %s", millis_to_iso(last_update))
        return last_update

    def save(self, epoch_millis: int) -> None:
        """Persist the watermark; failures are logged and never raised."""
        logger.info("Writing last price update time")
        try:
            self._write(epoch_millis)
        except OSError as e:
            logger.error("Unable to write update time to %s: %s", self.path, e)
