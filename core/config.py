# core/config.py
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .errors import StartupError
from .logger import get_logger
from .models import ITEM_PROPERTIES

logger = get_logger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "./config.json")
LAST_UPDATE_PATH = os.getenv("LAST_UPDATE_PATH", "./last-update.txt")
DB_PATH = os.getenv("DB_PATH", "./data/market.sqlite3")

API_URL = os.getenv(
    "STEAM_API_URL",
    "https://steamcommunity.com/market/search/render/?query=&norender=1",
)
USER_AGENT = os.getenv(
    "STEAM_USER_AGENT",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Steam starts answering 429 below roughly one request per 10 seconds.
MIN_REQUEST_INTERVAL = 10.0
REQUEST_INTERVAL = float(os.getenv("REQUEST_INTERVAL", "10"))
REQUEST_COOL_DOWN = float(os.getenv("REQUEST_COOL_DOWN", "30"))
PAGE_SIZE = int(os.getenv("PAGE_SIZE", "100"))
MAX_PAGE_SIZE = 100
TRANSPORT_RETRIES = int(os.getenv("TRANSPORT_RETRIES", "3"))


def clamp_page_size(value: int) -> int:
    return max(1, min(MAX_PAGE_SIZE, int(value)))


@dataclass(frozen=True)
class IngestionConfig:
    """
    Immutable settings for one observer process.
    update_interval is in milliseconds (like the watermark); request_interval
    and cool_down are in seconds.
    """
    apps: Tuple[str, ...]
    update_interval: int
    properties: Tuple[str, ...] = ()
    db_path: str = DB_PATH
    table: str = "items"
    request_interval: float = REQUEST_INTERVAL
    cool_down: float = REQUEST_COOL_DOWN
    page_size: int = PAGE_SIZE
    max_pages: int = 0
    transport_retries: int = TRANSPORT_RETRIES
    api_url: str = API_URL

    def __post_init__(self):
        object.__setattr__(self, "page_size", clamp_page_size(self.page_size))

    @property
    def update_interval_seconds(self) -> float:
        return self.update_interval / 1000.0


def _require_int(cfg: Dict[str, Any], key: str, default: int | None = None) -> int:
    value = cfg.get(key, default)
    if value is None:
        raise StartupError(f"config.json is missing '{key}'.")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise StartupError(f"config.json '{key}' must be a non-negative number.")
    return int(value)


def _parse_properties(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise StartupError("config.json 'properties' must be a list.")
    props = []
    for prop in raw:
        if prop not in ITEM_PROPERTIES:
            logger.warning("Ignoring unknown item property %r in config.", prop)
            continue
        if prop not in props:
            props.append(prop)
    return tuple(props)


def parse_config(cfg: Any) -> IngestionConfig:
    if not isinstance(cfg, dict):
        raise StartupError("config.json must be an object.")

    apps = cfg.get("apps")
    if not isinstance(apps, list) or not apps:
        raise StartupError("config.json 'apps' must be a non-empty list.")

    database = cfg.get("database") or {}
    if not isinstance(database, dict):
        raise StartupError("config.json 'database' must be an object.")

    page_size = _require_int(cfg, "pageSize", PAGE_SIZE)
    if page_size != clamp_page_size(page_size):
        logger.warning(
            "pageSize %d is outside 1..%d; using %d.",
            page_size, MAX_PAGE_SIZE, clamp_page_size(page_size),
        )

    request_interval = _require_int(cfg, "requestInterval", int(REQUEST_INTERVAL * 1000)) / 1000.0
    if request_interval < MIN_REQUEST_INTERVAL:
        logger.warning(
            "requestInterval of %.1fs is below the recommended %.0fs; expect 429 responses.",
            request_interval, MIN_REQUEST_INTERVAL,
        )

    return IngestionConfig(
        apps=tuple(str(app) for app in apps),
        update_interval=_require_int(cfg, "updateInterval"),
        properties=_parse_properties(cfg.get("properties")),
        db_path=str(database.get("path") or DB_PATH),
        table=str(database.get("table") or "items"),
        request_interval=request_interval,
        cool_down=_require_int(cfg, "coolDown", int(REQUEST_COOL_DOWN * 1000)) / 1000.0,
        page_size=page_size,
        max_pages=_require_int(cfg, "maxPages", 0),
    )


def load_config(path: str = CONFIG_PATH) -> IngestionConfig:
    logger.info("Loading configuration file %s", path)
    if not os.path.exists(path):
        raise StartupError(f"Config file not found at {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise StartupError(f"Failed to load config.json at {path}: {e}") from e

    config = parse_config(raw)
    logger.info(
        "Configuration loaded: %d apps, update every %ds, properties=%s",
        len(config.apps), config.update_interval // 1000, list(config.properties),
    )
    return config
