"""Query functions over accounts, products, inventory, orders and config."""

import logging
from datetime import datetime, time, timezone

from .db import retry_transient
from .errors import AccountNotFound, InvalidInput, InvalidPrice, OrderNotFound, ProductNotFound
from .models import Account, DepositInfo, InventoryUnit, Order, Product, ProductStock, ShopStats, utcnow

_log = logging.getLogger(__name__)

WORLD_NAME = 'world_name'
OWNER_NAME = 'owner_name'
BOT_NAME = 'bot_name'

PRODUCT_FIELDS = ('name', 'code', 'description', 'price', 'image')

# Unsold units, minus any whose reservation already belongs to an order
AVAILABLE_UNITS = (
    "i.is_sold = 0 AND NOT EXISTS (SELECT 1 FROM orders o WHERE o.reservation = i.reservation)"
)


def parse_price(value):
    """Parse an admin-entered price into a non-negative integer."""
    if isinstance(value, bool):
        raise InvalidPrice(f"invalid price {value!r}")
    if isinstance(value, int):
        price = value
    else:
        try:
            price = int(str(value).strip())
        except ValueError:
            raise InvalidPrice(f"invalid price {value!r}") from None
    if price < 0:
        raise InvalidPrice(f"price must not be negative, got {price}")
    return price


def parse_payloads(text):
    """Split stock text into one payload per non-blank line."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class Store:
    def __init__(self, db):
        self.db = db

    # Accounts

    async def find_account(self, account_id):
        row = await self.db.fetchone("SELECT * FROM users WHERE id = ?", (account_id,))
        return Account.from_row(row) if row else None

    async def get_account(self, account_id):
        account = await self.find_account(account_id)
        if account is None:
            raise AccountNotFound(f"account {account_id} is not registered")
        return account

    async def list_accounts(self):
        rows = await self.db.fetchall("SELECT * FROM users ORDER BY created_at")
        return [Account.from_row(row) for row in rows]

    async def register_account(self, account_id, username, alias, email=None):
        """Create the account, or update its alias (and email when given).

        Returns ``(account, created)``.
        """
        alias = (alias or '').strip()
        if not alias:
            raise InvalidInput("alias must not be empty")
        email = (email or '').strip() or None
        async with self.db.transaction() as tx:
            existing = await tx.fetchone("SELECT id FROM users WHERE id = ?", (account_id,))
            if existing is None:
                await tx.execute(
                    "INSERT INTO users (id, username, email, growid, created_at) VALUES (?, ?, ?, ?, ?)",
                    (account_id, username, email, alias, utcnow().isoformat()),
                )
                created = True
            elif email:
                await tx.execute("UPDATE users SET growid = ?, email = ? WHERE id = ?", (alias, email, account_id))
                created = False
            else:
                await tx.execute("UPDATE users SET growid = ? WHERE id = ?", (alias, account_id))
                created = False
            row = await tx.fetchone("SELECT * FROM users WHERE id = ?", (account_id,))
        return Account.from_row(row), created

    # Products

    async def list_products(self):
        rows = await self.db.fetchall("SELECT * FROM products ORDER BY id")
        return [Product.from_row(row) for row in rows]

    async def get_product(self, product_id):
        row = await self.db.fetchone("SELECT * FROM products WHERE id = ?", (product_id,))
        if row is None:
            raise ProductNotFound(f"product {product_id} does not exist")
        return Product.from_row(row)

    async def create_product(self, name, code, description, price, image=None):
        price = parse_price(price)
        if not name or not code:
            raise InvalidInput("name and code are required")
        result = await self.db.execute(
            "INSERT INTO products (name, code, description, price, image, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (name, code, description or '', price, image, utcnow().isoformat()),
        )
        return await self.get_product(result.lastrowid)

    async def update_product(self, product_id, **updates):
        unknown = set(updates) - set(PRODUCT_FIELDS)
        if unknown:
            raise InvalidInput(f"unknown product fields: {', '.join(sorted(unknown))}")
        if 'price' in updates:
            updates['price'] = parse_price(updates['price'])
        if not updates:
            return await self.get_product(product_id)
        assignments = ', '.join(f"{name} = ?" for name in updates)
        result = await self.db.execute(
            f"UPDATE products SET {assignments} WHERE id = ?",
            (*updates.values(), product_id),
        )
        if result.rowcount == 0:
            raise ProductNotFound(f"product {product_id} does not exist")
        return await self.get_product(product_id)

    async def delete_product(self, product_id):
        product = await self.get_product_with_stock(product_id)
        await self.db.execute("DELETE FROM products WHERE id = ?", (product_id,))
        return product

    async def _products_with_stock(self):
        rows = await self.db.fetchall(
            f"""
            SELECT p.*, COUNT(i.id) AS stock
            FROM products p
            LEFT JOIN inventory i ON i.product_id = p.id AND {AVAILABLE_UNITS}
            GROUP BY p.id
            ORDER BY p.id
            """
        )
        return [ProductStock(Product.from_row(row), int(row['stock'])) for row in rows]

    async def list_products_with_stock(self):
        return await retry_transient(self._products_with_stock)

    async def get_product_with_stock(self, product_id):
        product = await self.get_product(product_id)
        return ProductStock(product, await self.count_stock(product_id))

    async def count_stock(self, product_id):
        row = await self.db.fetchone(
            f"SELECT COUNT(*) AS stock FROM inventory i WHERE i.product_id = ? AND {AVAILABLE_UNITS}",
            (product_id,),
        )
        return int(row['stock'])

    async def add_inventory(self, product_id, payloads):
        """Insert one unsold unit per payload; returns ``(added, total_stock)``."""
        payloads = [p.strip() for p in payloads if p and p.strip()]
        if not payloads:
            raise InvalidInput("no stock lines to add")
        now = utcnow().isoformat()
        async with self.db.transaction() as tx:
            exists = await tx.fetchone("SELECT id FROM products WHERE id = ?", (product_id,))
            if exists is None:
                raise ProductNotFound(f"product {product_id} does not exist")
            await tx.executemany(
                "INSERT INTO inventory (product_id, data, created_at) VALUES (?, ?, ?)",
                [(product_id, payload, now) for payload in payloads],
            )
            row = await tx.fetchone(
                f"SELECT COUNT(*) AS stock FROM inventory i WHERE i.product_id = ? AND {AVAILABLE_UNITS}",
                (product_id,),
            )
        _log.info("Added %d units to product %s", len(payloads), product_id)
        return len(payloads), int(row['stock'])

    async def units_for_order(self, order):
        """Inventory units handed out by ``order``, sold or not."""
        if not order.reservation:
            return []
        rows = await self.db.fetchall(
            "SELECT * FROM inventory WHERE reservation = ? ORDER BY id", (order.reservation,)
        )
        return [InventoryUnit.from_row(row) for row in rows]

    # Orders

    async def insert_order(self, order_number, account_id, product_id, inventory_id,
                           quantity, unit_price, total_amount, status, payment_method, notes=None, reservation=None):
        result = await self.db.execute(
            """
            INSERT INTO orders (order_number, user_id, product_id, inventory_id, quantity,
                                unit_price, total_amount, status, payment_method, notes, reservation, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (order_number, account_id, product_id, inventory_id, quantity,
             unit_price, total_amount, status, payment_method, notes, reservation, utcnow().isoformat()),
        )
        row = await self.db.fetchone("SELECT * FROM orders WHERE id = ?", (result.lastrowid,))
        return Order.from_row(row)

    async def get_order(self, order_number):
        row = await self.db.fetchone("SELECT * FROM orders WHERE order_number = ?", (order_number,))
        if row is None:
            raise OrderNotFound(f"order {order_number} does not exist")
        return Order.from_row(row)

    async def list_orders_for_account(self, account_id, limit=10):
        rows = await self.db.fetchall(
            "SELECT * FROM orders WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (account_id, limit),
        )
        return [Order.from_row(row) for row in rows]

    async def count_orders(self):
        row = await self.db.fetchone("SELECT COUNT(*) AS n FROM orders")
        return int(row['n'])

    async def total_revenue(self, since=None):
        if since is None:
            row = await self.db.fetchone("SELECT COALESCE(SUM(total_amount), 0) AS total FROM orders")
        else:
            row = await self.db.fetchone(
                "SELECT COALESCE(SUM(total_amount), 0) AS total FROM orders WHERE created_at >= ?",
                (since.isoformat(),),
            )
        return int(row['total'])

    async def shop_stats(self, now=None):
        now = now or utcnow()
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
        listings = await self.list_products_with_stock()
        return ShopStats(
            total_products=len(listings),
            active_listings=sum(1 for listing in listings if listing.stock > 0),
            order_count=await self.count_orders(),
            total_revenue=await self.total_revenue(),
            revenue_today=await self.total_revenue(since=start_of_day),
        )

    # Config

    async def get_config(self, key):
        row = await self.db.fetchone("SELECT value FROM config WHERE key = ?", (key,))
        return row['value'] if row else None

    async def set_config(self, key, value):
        await self.db.execute(
            "INSERT INTO config (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    async def get_deposit_info(self):
        rows = await self.db.fetchall(
            "SELECT key, value FROM config WHERE key IN (?, ?, ?)", (WORLD_NAME, OWNER_NAME, BOT_NAME)
        )
        values = {row['key']: row['value'] for row in rows}
        return DepositInfo(values.get(WORLD_NAME), values.get(OWNER_NAME), values.get(BOT_NAME))

    async def set_deposit_info(self, world_name, owner_name, bot_name):
        async with self.db.transaction() as tx:
            await tx.executemany(
                "INSERT INTO config (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                [(WORLD_NAME, world_name), (OWNER_NAME, owner_name), (BOT_NAME, bot_name)],
            )
        return DepositInfo(world_name, owner_name, bot_name)
