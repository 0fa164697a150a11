"""Shared fixtures: an in-memory store with the purchase core wired on top."""

import pytest
import pytest_asyncio

from storefront.db import Database
from storefront.ids import account_id_for
from storefront.inventory import InventoryAllocator
from storefront.ledger import BalanceLedger
from storefront.purchase import PurchaseService
from storefront.store import Store

BUYER_DISCORD_ID = 123456789012345678
BUYER_ID = account_id_for(BUYER_DISCORD_ID)


@pytest_asyncio.fixture
async def db():
    """Create and return a connected in-memory database."""
    database = Database(':memory:')
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def store(db):
    return Store(db)


@pytest.fixture
def allocator(db):
    return InventoryAllocator(db)


@pytest.fixture
def ledger(db):
    return BalanceLedger(db)


@pytest.fixture
def service(store, allocator, ledger):
    return PurchaseService(store, allocator, ledger, store_name='Magaddon Store', clock=lambda: 1700000000.0)


@pytest.fixture
def make_account(store, ledger):
    """Register an account and credit it with ``balance`` world locks."""
    async def _make(balance=0, discord_id=BUYER_DISCORD_ID, alias='BUYER'):
        account_id = account_id_for(discord_id)
        await store.register_account(account_id, f"user{discord_id}", alias)
        if balance:
            await ledger.credit_deposit(account_id, balance)
        return account_id
    return _make


@pytest.fixture
def make_product(store):
    """Create a product and stock it with ``stock`` numbered payloads."""
    async def _make(price=100, stock=0, name='Netflix Premium', code='NFX'):
        product = await store.create_product(name, code, 'A test product', price)
        if stock:
            await store.add_inventory(product.id, [f"{code.lower()}-account-{i}" for i in range(stock)])
        return product
    return _make


class RecordingDelivery:
    """Delivery callable that remembers every package handed to it."""

    def __init__(self, error=None):
        self.error = error
        self.packages = []

    async def __call__(self, package):
        if self.error is not None:
            raise self.error
        self.packages.append(package)


@pytest.fixture
def delivery():
    return RecordingDelivery()
