import os

from core.config import CONFIG_PATH, LAST_UPDATE_PATH, load_config
from core.context import ObserverContext
from core.errors import StartupError
from core.logger import get_logger
from core.scheduler import CycleScheduler
from core.storage import ItemStore
from core.watermark import WatermarkStore
from fetchers import FETCHERS

logger = get_logger(__name__)

VERSION = "0.1.0"
MODE = os.getenv("MODE", "daemon").lower()  # "daemon" or "once"
SOURCE = os.getenv("SOURCE", "steam").lower()


def build_scheduler(
    config_path: str | None = None,
    watermark_path: str | None = None,
) -> CycleScheduler:
    """Load config and watermark, connect the store and wire the scheduler."""
    config = load_config(config_path or CONFIG_PATH)
    watermark = WatermarkStore(watermark_path or LAST_UPDATE_PATH)
    last_update = watermark.load()

    fetch_all = FETCHERS.get(SOURCE)
    if fetch_all is None:
        raise StartupError(f"No fetcher registered for source '{SOURCE}'")

    store = ItemStore(config.db_path, config.properties, table=config.table)
    store.connect()

    ctx = ObserverContext(config=config, store=store, watermark=watermark)
    return CycleScheduler(ctx, fetch_all, last_update=last_update)


def run_once() -> int:
    scheduler = build_scheduler()
    try:
        return 0 if scheduler.run_cycle() else 1
    finally:
        scheduler.ctx.store.close()


def run_daemon() -> None:
    scheduler = build_scheduler()
    try:
        scheduler.run_forever()
    finally:
        scheduler.ctx.store.close()


def main() -> int:
    logger.info("--------------- Market Observer v%s ---------------", VERSION)
    try:
        if MODE == "once":
            return run_once()
        run_daemon()
        return 0
    except StartupError as e:
        logger.error("Error encountered on startup: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
        return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal observer error: %s", e)
        raise SystemExit(2)
