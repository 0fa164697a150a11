"""Async SQLite data layer for the storefront."""

import asyncio
import logging
import sqlite3
from collections import namedtuple
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path

import aiosqlite

from .errors import TransientStoreError

_log = logging.getLogger(__name__)

ExecResult = namedtuple('ExecResult', ['rowcount', 'lastrowid'])

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    username    TEXT NOT NULL,
    email       TEXT,
    growid      TEXT,
    balance     INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
    total_spent INTEGER NOT NULL DEFAULT 0 CHECK (total_spent >= 0),
    role        TEXT NOT NULL DEFAULT 'customer',
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    code        TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    price       INTEGER NOT NULL CHECK (price >= 0),
    image       TEXT,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS inventory (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    data        TEXT NOT NULL,
    is_sold     INTEGER NOT NULL DEFAULT 0,
    reservation TEXT,
    created_at  TEXT NOT NULL,
    sold_at     TEXT
);

CREATE INDEX IF NOT EXISTS idx_inventory_available
    ON inventory (product_id, is_sold, reservation);

CREATE TABLE IF NOT EXISTS orders (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    order_number   TEXT NOT NULL UNIQUE,
    user_id        TEXT NOT NULL REFERENCES users(id),
    product_id     INTEGER NOT NULL,
    inventory_id   INTEGER,
    quantity       INTEGER NOT NULL CHECK (quantity >= 1),
    unit_price     INTEGER NOT NULL CHECK (unit_price >= 0),
    total_amount   INTEGER NOT NULL CHECK (total_amount >= 0),
    status         TEXT NOT NULL,
    payment_method TEXT NOT NULL,
    notes          TEXT,
    reservation    TEXT,
    created_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_orders_user ON orders (user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_orders_reservation ON orders (reservation);

CREATE TABLE IF NOT EXISTS config (
    key   TEXT PRIMARY KEY,
    value TEXT
);
"""


@contextmanager
def _store_errors():
    try:
        yield
    except sqlite3.OperationalError as e:
        message = str(e).lower()
        if 'locked' in message or 'busy' in message:
            raise TransientStoreError(str(e)) from e
        raise


async def _execute(conn, sql, params):
    with _store_errors():
        cursor = await conn.execute(sql, params)
        result = ExecResult(cursor.rowcount, cursor.lastrowid)
        await cursor.close()
    return result


async def _executemany(conn, sql, params_list):
    with _store_errors():
        cursor = await conn.executemany(sql, params_list)
        result = ExecResult(cursor.rowcount, cursor.lastrowid)
        await cursor.close()
    return result


async def _fetchone(conn, sql, params):
    with _store_errors():
        cursor = await conn.execute(sql, params)
        row = await cursor.fetchone()
        await cursor.close()
    return row


async def _fetchall(conn, sql, params):
    with _store_errors():
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        await cursor.close()
    return rows


class Transaction:
    """Statements issued inside ``Database.transaction()``."""

    def __init__(self, conn):
        self._conn = conn

    async def execute(self, sql, params=()):
        return await _execute(self._conn, sql, params)

    async def executemany(self, sql, params_list):
        return await _executemany(self._conn, sql, params_list)

    async def fetchone(self, sql, params=()):
        return await _fetchone(self._conn, sql, params)

    async def fetchall(self, sql, params=()):
        return await _fetchall(self._conn, sql, params)


class Database:
    """One shared aiosqlite connection.

    Every statement is issued under a single lock so a coroutine can never
    observe or join another coroutine's open transaction.
    """

    def __init__(self, path='shop.db'):
        self.path = path
        self._conn = None
        self._lock = asyncio.Lock()

    @property
    def connected(self):
        return self._conn is not None

    async def connect(self):
        if self._conn is not None:
            return
        # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE
        self._conn = await aiosqlite.connect(str(self.path), isolation_level=None)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON;")
        if str(self.path) != ':memory:':
            await self._conn.execute("PRAGMA journal_mode = WAL;")
            await self._conn.execute("PRAGMA busy_timeout = 5000;")
        await self._conn.executescript(SCHEMA)
        _log.info("Connected to store at %s", Path(str(self.path)))

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _require_conn(self):
        if self._conn is None:
            raise RuntimeError("Database connection not initialized.")
        return self._conn

    async def execute(self, sql, params=()):
        conn = self._require_conn()
        async with self._lock:
            return await _execute(conn, sql, params)

    async def fetchone(self, sql, params=()):
        conn = self._require_conn()
        async with self._lock:
            return await _fetchone(conn, sql, params)

    async def fetchall(self, sql, params=()):
        conn = self._require_conn()
        async with self._lock:
            return await _fetchall(conn, sql, params)

    @asynccontextmanager
    async def transaction(self):
        """BEGIN IMMEDIATE on enter, COMMIT on success, ROLLBACK on exception."""
        conn = self._require_conn()
        async with self._lock:
            with _store_errors():
                await conn.execute("BEGIN IMMEDIATE")
            try:
                yield Transaction(conn)
                with _store_errors():
                    await conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                raise


async def retry_transient(operation, attempts=3, base_delay=0.2):
    """Run a read ``operation`` again when the store reports a transient error.

    Only read paths go through here; writes fail fast.
    """
    for attempt in range(attempts):
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt == attempts - 1:
                _log.error("Store still unavailable after %d attempts: %s", attempts, e)
                raise
            wait_seconds = base_delay * (2 ** attempt)
            _log.warning("Transient store error (attempt %d/%d): %s. Retrying in %.1fs",
                         attempt + 1, attempts, e, wait_seconds)
            await asyncio.sleep(wait_seconds)
