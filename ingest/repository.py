# ingest/repository.py
"""
Menu repository: the persistence seam used by reconcile (read) and the
import job runner (write).

    list_items(menu_id)              -> List[ExistingMenuItem]
    ensure_menu(menu_id, name, rid)  -> None
    create_item(menu_id, item, rid)  -> item id (str)
    update_item(item_id, fields)     -> None

Items are never deleted. Per-item rejections raise ItemValidationError;
anything that means the store itself cannot be reached raises
RepositoryUnavailableError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ingest import config
from ingest.contracts import (
    FACET_ATTR,
    FACET_CLASS,
    ExistingMenuItem,
    ItemType,
    ParsedMenuItem,
)
from ingest.errors import ItemValidationError, RepositoryUnavailableError

log = logging.getLogger(__name__)

DB_PATH = config.DB_PATH

# Columns update_item accepts.
UPDATABLE_FIELDS = ("name", "description", "price", "category", "item_type", "facets", "confidence")


# ---------------------------------------------------------------------------
# DB helpers
# ---------------------------------------------------------------------------

def db_connect() -> sqlite3.Connection:
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Idempotent; safe to run on every start."""
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS menus (
          id            TEXT PRIMARY KEY,
          name          TEXT NOT NULL,
          restaurant_id TEXT,
          created_at    TEXT NOT NULL,
          updated_at    TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS menu_items (
          id            INTEGER PRIMARY KEY AUTOINCREMENT,
          menu_id       TEXT NOT NULL,
          restaurant_id TEXT,
          name          TEXT NOT NULL,
          item_type     TEXT NOT NULL,
          category      TEXT,
          description   TEXT,
          price_cents   INTEGER,            -- NULL when the price was unparseable
          facets_json   TEXT,               -- facet group of item_type, JSON
          confidence    INTEGER,
          created_at    TEXT NOT NULL,
          updated_at    TEXT NOT NULL,
          FOREIGN KEY (menu_id) REFERENCES menus(id) ON DELETE CASCADE
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_menu_items_menu ON menu_items(menu_id)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_menu_items_rest ON menu_items(restaurant_id)")

    # DBs created before the scoping column existed
    def _col_exists(table: str, col: str) -> bool:
        return any(r[1].lower() == col for r in conn.execute(f"PRAGMA table_info({table});").fetchall())

    if not _col_exists("menu_items", "restaurant_id"):
        cur.execute("ALTER TABLE menu_items ADD COLUMN restaurant_id TEXT;")
    conn.commit()


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _to_cents(price: Optional[float]) -> Optional[int]:
    if price is None:
        return None
    return int(round(float(price) * 100))


def _from_cents(cents: Optional[int]) -> Optional[float]:
    if cents is None:
        return None
    return round(int(cents) / 100.0, 2)


def item_fields(item: ParsedMenuItem) -> Dict[str, Any]:
    """The writable fields of a parsed item, as passed to update_item."""
    facets = item.facets
    return {
        "name": item.name,
        "description": item.description,
        "price": item.price,
        "category": item.category,
        "item_type": item.item_type.value,
        "facets": facets.to_dict() if facets is not None else None,
        "confidence": item.confidence,
    }


def validate_fields(fields: Dict[str, Any], partial: bool = False) -> None:
    """Raises ItemValidationError for a write the store must refuse."""
    if not partial or "name" in fields:
        name = (fields.get("name") or "").strip()
        if not name:
            raise ItemValidationError("name is required", field="name")
        if len(name) > config.MAX_ITEM_NAME_LENGTH:
            raise ItemValidationError(
                f"name longer than {config.MAX_ITEM_NAME_LENGTH} characters", field="name"
            )
    price = fields.get("price")
    if price is not None:
        try:
            value = float(price)
        except (TypeError, ValueError):
            raise ItemValidationError(f"price is not a number: {price!r}", field="price")
        if value < 0:
            raise ItemValidationError("price cannot be negative", field="price")
    if "item_type" in fields or not partial:
        try:
            ItemType(fields.get("item_type"))
        except ValueError:
            raise ItemValidationError(f"unknown item type: {fields.get('item_type')!r}", field="item_type")
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ItemValidationError(f"unknown fields: {', '.join(sorted(unknown))}")


def _existing_from_row(row: Any) -> ExistingMenuItem:
    item_type = ItemType(row["item_type"])
    facets = None
    if row["facets_json"]:
        facets = FACET_CLASS[item_type].from_dict(json.loads(row["facets_json"]))
    return ExistingMenuItem(
        id=str(row["id"]),
        name=row["name"],
        item_type=item_type,
        category=row["category"],
        price=_from_cents(row["price_cents"]),
        description=row["description"],
        **{FACET_ATTR[item_type]: facets},
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

class MenuRepository:
    """Interface the pipeline writes through."""

    def list_items(self, menu_id: str) -> List[ExistingMenuItem]:
        raise NotImplementedError

    def ensure_menu(self, menu_id: str, name: str, restaurant_id: Optional[str] = None) -> None:
        raise NotImplementedError

    def create_item(self, menu_id: str, item: ParsedMenuItem, restaurant_id: Optional[str] = None) -> str:
        raise NotImplementedError

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError


class SqliteMenuRepository(MenuRepository):
    """
    sqlite3-backed repository. Every call opens its connection through the
    module-level ``db_connect()``; tests monkeypatch that to an in-memory DB.
    """

    def __init__(self) -> None:
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = db_connect()
            if not self._schema_ready:
                ensure_schema(conn)
                self._schema_ready = True
            return conn
        except sqlite3.Error as e:
            raise RepositoryUnavailableError(f"menu database unavailable: {e}") from e

    def list_items(self, menu_id: str) -> List[ExistingMenuItem]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM menu_items WHERE menu_id = ? ORDER BY id",
                (str(menu_id),),
            ).fetchall()
        except sqlite3.Error as e:
            raise RepositoryUnavailableError(f"could not list menu items: {e}") from e
        return [_existing_from_row(r) for r in rows]

    def ensure_menu(self, menu_id: str, name: str, restaurant_id: Optional[str] = None) -> None:
        conn = self._connect()
        now = _now()
        try:
            with conn:
                conn.execute(
                    "INSERT OR IGNORE INTO menus (id, name, restaurant_id, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (str(menu_id), name, restaurant_id, now, now),
                )
        except sqlite3.Error as e:
            raise RepositoryUnavailableError(f"could not create menu {menu_id}: {e}") from e

    def create_item(self, menu_id: str, item: ParsedMenuItem, restaurant_id: Optional[str] = None) -> str:
        fields = item_fields(item)
        validate_fields(fields)
        conn = self._connect()
        now = _now()
        try:
            with conn:
                cur = conn.execute(
                    """
                    INSERT INTO menu_items
                      (menu_id, restaurant_id, name, item_type, category, description,
                       price_cents, facets_json, confidence, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(menu_id),
                        restaurant_id,
                        fields["name"].strip(),
                        fields["item_type"],
                        fields["category"],
                        fields["description"],
                        _to_cents(fields["price"]),
                        json.dumps(fields["facets"]) if fields["facets"] is not None else None,
                        fields["confidence"],
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ItemValidationError(f"rejected by store: {e}") from e
        except sqlite3.Error as e:
            raise RepositoryUnavailableError(f"could not create item: {e}") from e
        item_id = str(cur.lastrowid)
        log.debug("created menu item %s on menu %s", item_id, menu_id)
        return item_id

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        validate_fields(fields, partial=True)
        sets: List[str] = []
        params: List[Any] = []
        for key in UPDATABLE_FIELDS:
            if key not in fields:
                continue
            value = fields[key]
            if key == "price":
                sets.append("price_cents = ?")
                params.append(_to_cents(value))
            elif key == "facets":
                sets.append("facets_json = ?")
                params.append(json.dumps(value) if value is not None else None)
            else:
                sets.append(f"{key} = ?")
                params.append(value.strip() if key == "name" else value)
        if not sets:
            return
        sets.append("updated_at = ?")
        params.append(_now())

        conn = self._connect()
        try:
            with conn:
                cur = conn.execute(
                    f"UPDATE menu_items SET {', '.join(sets)} WHERE id = ?",
                    (*params, str(item_id)),
                )
        except sqlite3.IntegrityError as e:
            raise ItemValidationError(f"rejected by store: {e}") from e
        except sqlite3.Error as e:
            raise RepositoryUnavailableError(f"could not update item {item_id}: {e}") from e
        if cur.rowcount == 0:
            raise ItemValidationError(f"menu item {item_id} not found", field="existing_item_id")
        log.debug("updated menu item %s (%s)", item_id, ", ".join(k for k in fields))


class InMemoryMenuRepository(MenuRepository):
    """Dict-backed repository for tests and local runs."""

    def __init__(self, items: Optional[List[ExistingMenuItem]] = None, menu_id: str = "1") -> None:
        self._lock = threading.Lock()
        self._next_id = 1
        self.menus: Dict[str, Dict[str, Any]] = {}
        self.rows: Dict[str, Dict[str, Any]] = {}
        for existing in items or []:
            row = {
                "menu_id": str(menu_id),
                "restaurant_id": None,
                "name": existing.name,
                "description": existing.description,
                "price": existing.price,
                "category": existing.category,
                "item_type": existing.item_type.value,
                "facets": existing.facets.to_dict() if existing.facets else None,
                "confidence": None,
            }
            self.rows[str(existing.id)] = row
            if str(existing.id).isdigit():
                self._next_id = max(self._next_id, int(existing.id) + 1)

    def _to_existing(self, item_id: str, row: Dict[str, Any]) -> ExistingMenuItem:
        item_type = ItemType(row["item_type"])
        facets = FACET_CLASS[item_type].from_dict(row["facets"]) if row["facets"] else None
        return ExistingMenuItem(
            id=item_id,
            name=row["name"],
            item_type=item_type,
            category=row["category"],
            price=row["price"],
            description=row["description"],
            **{FACET_ATTR[item_type]: facets},
        )

    def list_items(self, menu_id: str) -> List[ExistingMenuItem]:
        with self._lock:
            return [
                self._to_existing(item_id, row)
                for item_id, row in self.rows.items()
                if row["menu_id"] == str(menu_id)
            ]

    def ensure_menu(self, menu_id: str, name: str, restaurant_id: Optional[str] = None) -> None:
        with self._lock:
            self.menus.setdefault(str(menu_id), {"name": name, "restaurant_id": restaurant_id})

    def create_item(self, menu_id: str, item: ParsedMenuItem, restaurant_id: Optional[str] = None) -> str:
        fields = item_fields(item)
        validate_fields(fields)
        with self._lock:
            item_id = str(self._next_id)
            self._next_id += 1
            self.rows[item_id] = dict(fields, name=fields["name"].strip(), menu_id=str(menu_id), restaurant_id=restaurant_id)
        return item_id

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        validate_fields(fields, partial=True)
        with self._lock:
            row = self.rows.get(str(item_id))
            if row is None:
                raise ItemValidationError(f"menu item {item_id} not found", field="existing_item_id")
            row.update(fields)
