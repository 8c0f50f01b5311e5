# core/storage.py
import json
import os
import re
import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import PersistenceError, StartupError
from .logger import get_logger
from .models import ITEM_PROPERTIES

logger = get_logger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def resolve_field(item: Dict[str, Any], field: str) -> Any:
    """
    Value of `field` for a market item: the top-level value when the key is
    present (even if null), else the one from asset_description, else None.
    """
    if field in item:
        return item[field]
    description = item.get("asset_description")
    if isinstance(description, dict):
        return description.get(field)
    return None


def _to_column(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, bool):
        return int(value)
    return value


def build_document(item: Dict[str, Any], properties: Sequence[str]) -> Dict[str, Any]:
    """Fields written for one item: sell_price plus each whitelisted property."""
    doc = {"sell_price": item.get("sell_price")}
    for prop in properties:
        doc[prop] = _to_column(resolve_field(item, prop))
    return doc


class ItemStore:
    """
    Latest-value document store keyed by hash_name, backed by SQLite.
    Only sell_price and the configured properties are ever written; other
    columns keep whatever a previous configuration stored there.
    """

    def __init__(self, db_path: str, properties: Iterable[str] = (), table: str = "items"):
        if not _TABLE_NAME_RE.match(table):
            raise StartupError(f"Invalid table name {table!r}")
        self.db_path = db_path
        self.table = table
        self.properties = tuple(dict.fromkeys(p for p in properties if p in ITEM_PROPERTIES))
        self._con: sqlite3.Connection | None = None
        self._upsert_sql = self._build_upsert_sql()

    def _build_upsert_sql(self) -> str:
        columns = ["hash_name", "sell_price", *self.properties]
        updates = ",\n                ".join(
            f"{col}=excluded.{col}" for col in columns[1:]
        )
        column_list = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"""
            INSERT INTO {self.table} ({column_list})
            VALUES ({placeholders})
            ON CONFLICT(hash_name) DO UPDATE SET
                {updates}
        """

    def connect(self) -> "ItemStore":
        logger.info("Connecting to item store at %s", self.db_path)
        try:
            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._con = sqlite3.connect(self.db_path)
            self.ensure_schema()
        except (OSError, sqlite3.Error) as e:
            self.close()
            raise StartupError(f"Unable to open item store {self.db_path}: {e}") from e
        logger.info("Successfully connected to item store")
        return self

    def close(self) -> None:
        if self._con is not None:
            self._con.close()
            self._con = None

    def __enter__(self) -> "ItemStore":
        return self.connect()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._con is None:
            raise PersistenceError("Item store is not connected")
        return self._con

    def ensure_schema(self) -> None:
        optional = ",\n                    ".join(ITEM_PROPERTIES)
        with self.connection as con:
            con.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    hash_name TEXT PRIMARY KEY,
                    sell_price INTEGER,
                    {optional}
                )
            """
            )

    def upsert_page(self, items: List[Dict[str, Any]]) -> None:
        """
        Write one page of items as a single batch. Any failure rolls back the
        whole page and is raised as one PersistenceError.
        """
        if not items:
            return

        rows = []
        for item in items:
            hash_name = item.get("hash_name")
            if not hash_name:
                raise PersistenceError(f"Item without hash_name: {item!r:.200}")
            doc = build_document(item, self.properties)
            rows.append((hash_name, *doc.values()))

        try:
            with self.connection as con:
                con.executemany(self._upsert_sql, rows)
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Batch upsert of {len(rows)} items failed: {e}"
            ) from e
        logger.debug("Upserted %d items into %s", len(rows), self.table)

    def get(self, hash_name: str) -> Optional[Dict[str, Any]]:
        cur = self.connection.execute(
            f"SELECT hash_name, sell_price, {', '.join(ITEM_PROPERTIES)} "
            f"FROM {self.table} WHERE hash_name=?",
            (hash_name,),
        )
        row = cur.fetchone()
        if row is None:
            return None
        keys = ("hash_name", "sell_price", *ITEM_PROPERTIES)
        return dict(zip(keys, row))

    def count(self) -> int:
        cur = self.connection.execute(f"SELECT COUNT(*) FROM {self.table}")
        row = cur.fetchone()
        return row[0] if row and row[0] is not None else 0
