"""
SQLite storage for ShopTrack Lite.

A single ``Database`` instance owns the connection for the lifetime of
the app.  It provides:

- Schema management with versioning through ``PRAGMA user_version``
- Nestable transactions (outermost ``BEGIN``, inner ``SAVEPOINT``)
- Thin ``execute`` / ``query`` helpers returning ``sqlite3.Row`` objects

Opening is fatal on failure: every screen depends on storage, so
``open_database`` raises ``StorageOpenError`` and the app does not start.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

from shoptrack.errors import SchemaError, StorageOpenError
from shoptrack.logutil import get_logger

log = get_logger("database")

# Version 1: original layout.  Version 2: sales.transaction_id and
# settings.cr_number, used to group receipts into bills.
SCHEMA_VERSION = 2

_SCHEMA_V1 = [
    """
    CREATE TABLE products (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        name TEXT NOT NULL,
        cost_price REAL NOT NULL,
        selling_price REAL NOT NULL,
        wholesale_price REAL,
        quantity_in_stock INTEGER NOT NULL,
        has_quantity_based_pricing INTEGER NOT NULL DEFAULT 0,
        barcode TEXT,
        created_at INTEGER NOT NULL,
        category_id INTEGER,
        image_path TEXT,
        color_hex TEXT,
        track_inventory INTEGER NOT NULL DEFAULT 1
    )
    """,
    "CREATE INDEX index_products_barcode ON products (barcode)",
    """
    CREATE TABLE categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE sales (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        product_id INTEGER NOT NULL,
        product_name TEXT NOT NULL,
        quantity_sold INTEGER NOT NULL,
        unit_price REAL NOT NULL,
        total_amount REAL NOT NULL,
        cost_price REAL NOT NULL,
        profit REAL NOT NULL,
        payment_method TEXT NOT NULL DEFAULT 'CASH',
        sale_date INTEGER NOT NULL,
        is_wholesale INTEGER NOT NULL DEFAULT 0,
        is_cancelled INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX index_sales_sale_date ON sales (sale_date)",
    """
    CREATE TABLE favorites (
        product_id INTEGER PRIMARY KEY NOT NULL,
        display_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE price_ranges (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        product_id INTEGER NOT NULL,
        min_quantity INTEGER NOT NULL,
        max_quantity INTEGER NOT NULL,
        price REAL NOT NULL
    )
    """,
    "CREATE INDEX index_price_ranges_product_id ON price_ranges (product_id)",
    """
    CREATE TABLE settings (
        id INTEGER PRIMARY KEY NOT NULL,
        wholesale_mode_enabled INTEGER NOT NULL DEFAULT 0,
        currency_code TEXT NOT NULL DEFAULT 'USD',
        shop_name TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        description TEXT NOT NULL,
        amount REAL NOT NULL,
        category TEXT NOT NULL,
        date INTEGER NOT NULL
    )
    """,
    "CREATE INDEX index_expenses_date ON expenses (date)",
    """
    CREATE TABLE cash_reconciliation (
        date TEXT PRIMARY KEY NOT NULL,
        opening_cash REAL NOT NULL DEFAULT 0.0,
        actual_cash_counted REAL NOT NULL DEFAULT 0.0,
        change_for_tomorrow REAL NOT NULL DEFAULT 0.0,
        notes TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE supplies (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        name TEXT NOT NULL,
        quantity REAL NOT NULL,
        unit TEXT NOT NULL,
        cost_per_unit REAL NOT NULL,
        low_stock_threshold INTEGER NOT NULL DEFAULT 10,
        created_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE product_supply_links (
        product_id INTEGER NOT NULL,
        supply_id INTEGER NOT NULL,
        quantity_consumed REAL NOT NULL,
        PRIMARY KEY (product_id, supply_id)
    )
    """,
    "CREATE INDEX index_product_supply_links_supply_id ON product_supply_links (supply_id)",
    """
    CREATE TABLE purchase_bills (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        date INTEGER NOT NULL,
        supplier_name TEXT,
        total_amount REAL NOT NULL,
        notes TEXT
    )
    """,
    """
    CREATE TABLE purchase_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
        bill_id INTEGER NOT NULL,
        item_type TEXT NOT NULL,
        item_id INTEGER,
        item_name TEXT NOT NULL,
        quantity REAL NOT NULL,
        unit_cost REAL NOT NULL,
        total_cost REAL NOT NULL
    )
    """,
    "CREATE INDEX index_purchase_items_bill_id ON purchase_items (bill_id)",
]

_MIGRATIONS = {
    # target version -> statements
    2: [
        "ALTER TABLE sales ADD COLUMN transaction_id INTEGER",
        "ALTER TABLE settings ADD COLUMN cr_number TEXT NOT NULL DEFAULT ''",
        "CREATE INDEX IF NOT EXISTS index_sales_transaction_id ON sales (transaction_id)",
    ],
}


class Database:
    """Owner of the SQLite connection and the schema."""

    def __init__(self, db_path):
        if db_path == ":memory:":
            self.db_path = db_path
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Autocommit mode; transaction() issues BEGIN/SAVEPOINT itself.
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None,
                                     check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.RLock()
        self._depth = 0
        # Callbacks waiting for the outermost COMMIT, one list per open level.
        self._pending = []

        try:
            self._init_schema()
        except SchemaError:
            self._conn.close()
            raise
        log.info("Database ready: %s (schema v%d)", self.db_path, self.schema_version)

    # ── Schema ────────────────────────────────────────────────────────

    @property
    def schema_version(self):
        return self._conn.execute("PRAGMA user_version").fetchone()[0]

    def _init_schema(self):
        current = self.schema_version
        if current > SCHEMA_VERSION:
            raise SchemaError(
                f"Database version {current} is newer than supported "
                f"version {SCHEMA_VERSION}")
        try:
            with self.transaction():
                if current == 0:
                    self._create_schema()
                elif current < SCHEMA_VERSION:
                    self._migrate_schema(current)
        except sqlite3.Error as e:
            log.error("Schema initialization failed: %s", e)
            raise SchemaError(f"Failed to initialize schema: {e}") from e

    def _create_schema(self):
        for statement in _SCHEMA_V1:
            self._conn.execute(statement)
        self._migrate_schema(1)
        log.info("Created schema version %d", SCHEMA_VERSION)

    def _migrate_schema(self, current_version):
        for version in range(current_version + 1, SCHEMA_VERSION + 1):
            log.info("Migrating schema to version %d", version)
            for statement in _MIGRATIONS.get(version, []):
                self._conn.execute(statement)
            self._conn.execute(f"PRAGMA user_version = {version}")

    # ── Transactions ──────────────────────────────────────────────────

    @contextmanager
    def transaction(self):
        """Run the enclosed block atomically.

        Nested use creates a savepoint, so an inner failure that the caller
        catches only rolls back the inner block.
        """
        with self._lock:
            depth = self._depth
            if depth == 0:
                self._conn.execute("BEGIN")
            else:
                self._conn.execute(f"SAVEPOINT sp_{depth}")
            self._depth += 1
            self._pending.append([])
            try:
                yield self
            except BaseException:
                self._depth -= 1
                self._pending.pop()
                if depth == 0:
                    self._conn.execute("ROLLBACK")
                else:
                    self._conn.execute(f"ROLLBACK TO sp_{depth}")
                    self._conn.execute(f"RELEASE sp_{depth}")
                raise
            else:
                self._depth -= 1
                done = self._pending.pop()
                if depth == 0:
                    self._conn.execute("COMMIT")
                else:
                    self._conn.execute(f"RELEASE sp_{depth}")
                    self._pending[-1].extend(done)
                    return
        for callback in done:
            callback()

    @property
    def in_transaction(self):
        return self._depth > 0

    def after_commit(self, callback):
        """Run ``callback`` once the current transaction commits.

        Outside a transaction it runs at once.  A rollback, including a
        rollback to an enclosing savepoint, discards it.
        """
        with self._lock:
            if self._depth > 0:
                self._pending[-1].append(callback)
                return
        callback()

    # ── Statement helpers ─────────────────────────────────────────────

    def execute(self, sql, params=()):
        with self._lock:
            return self._conn.execute(sql, params)

    def executemany(self, sql, rows):
        with self._lock:
            return self._conn.executemany(sql, rows)

    def query(self, sql, params=()):
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def query_one(self, sql, params=()):
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def scalar(self, sql, params=(), default=None):
        row = self.query_one(sql, params)
        if row is None or row[0] is None:
            return default
        return row[0]

    def close(self):
        with self._lock:
            self._conn.close()
        log.info("Database closed: %s", self.db_path)


def open_database(db_path):
    """Open (creating/migrating as needed) the database at ``db_path``.

    Any failure is reported as ``StorageOpenError``; callers treat it as
    fatal.
    """
    try:
        return Database(db_path)
    except SchemaError as e:
        raise StorageOpenError(str(e)) from e
    except (sqlite3.Error, OSError) as e:
        log.critical("Cannot open database %s: %s", db_path, e)
        raise StorageOpenError(f"Cannot open database {db_path}: {e}") from e
