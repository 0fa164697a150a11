"""Tests for the purchase transaction core."""

import asyncio

import pytest

from conftest import BUYER_ID, RecordingDelivery
from storefront.errors import (
    AccountNotFound,
    DeliveryFailed,
    InsufficientBalance,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    RecordingFailed,
)
from storefront.ids import account_id_for
from storefront.models import ORDER_COMPLETED, ORDER_UNSETTLED
from storefront.purchase import PurchaseState, build_delivery, validate_quantity


@pytest.mark.asyncio
async def test_successful_purchase(service, store, ledger, make_account, make_product, delivery):
    """Test a purchase delivers, settles and records in one pass."""
    account_id = await make_account(balance=500)
    product = await make_product(price=100, stock=5, code='NFX')

    result = await service.purchase(account_id, product.id, 3, delivery)

    assert result.state is PurchaseState.COMPLETE
    assert result.completed
    assert result.settled
    assert result.error is None
    assert result.total_price == 300
    assert result.order_number.startswith('ORD-1700000000000-')

    balance = await ledger.get_balance(account_id)
    assert balance.balance == 200
    assert balance.lifetime_spend == 300
    assert await store.count_stock(product.id) == 2

    orders = await store.list_orders_for_account(account_id)
    assert len(orders) == 1
    assert orders[0].total_amount == 300
    assert orders[0].unit_price == 100
    assert orders[0].quantity == 3
    assert orders[0].status == ORDER_COMPLETED
    assert orders[0].order_number == result.order_number

    [package] = delivery.packages
    assert package.quantity == 3
    assert package.content == 'nfx-account-0\nnfx-account-1\nnfx-account-2'


@pytest.mark.asyncio
async def test_quantity_may_arrive_as_text(service, make_account, make_product, delivery):
    account_id = await make_account(balance=100)
    product = await make_product(price=50, stock=2)

    result = await service.purchase(account_id, product.id, ' 2 ', delivery)

    assert result.completed
    assert result.quantity == 2


@pytest.mark.asyncio
async def test_insufficient_balance_is_rejected_without_side_effects(
        service, store, ledger, make_account, make_product, delivery):
    account_id = await make_account(balance=50)
    product = await make_product(price=100, stock=5)

    with pytest.raises(InsufficientBalance) as excinfo:
        await service.purchase(account_id, product.id, 1, delivery)

    assert excinfo.value.shortfall == 50
    assert (await ledger.get_balance(account_id)).balance == 50
    assert await store.count_stock(product.id) == 5
    assert await store.count_orders() == 0
    assert delivery.packages == []


@pytest.mark.asyncio
async def test_insufficient_stock_is_rejected(service, store, ledger, make_account, make_product, delivery):
    account_id = await make_account(balance=10000)
    product = await make_product(price=10, stock=2)

    with pytest.raises(InsufficientStock) as excinfo:
        await service.purchase(account_id, product.id, 5, delivery)

    assert excinfo.value.available == 2
    assert (await ledger.get_balance(account_id)).balance == 10000
    assert await store.count_stock(product.id) == 2
    assert delivery.packages == []


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -3, 'abc', '', 100000, True])
async def test_invalid_quantity_is_rejected(service, make_account, make_product, delivery, quantity):
    account_id = await make_account(balance=100)
    product = await make_product(stock=1)

    with pytest.raises(InvalidQuantity):
        await service.purchase(account_id, product.id, quantity, delivery)


@pytest.mark.asyncio
async def test_unknown_product_takes_precedence(service, delivery):
    """Test a missing product is reported even when the buyer is unregistered too."""
    with pytest.raises(ProductNotFound):
        await service.purchase(account_id_for(1), 999, 1, delivery)


@pytest.mark.asyncio
async def test_unregistered_buyer(service, make_product, delivery):
    product = await make_product(stock=1)
    with pytest.raises(AccountNotFound):
        await service.purchase(account_id_for(1), product.id, 1, delivery)


@pytest.mark.asyncio
async def test_failed_delivery_rolls_back_allocation(service, store, ledger, make_account, make_product):
    """Test units return to the pool and no funds move when delivery fails."""
    account_id = await make_account(balance=500)
    product = await make_product(price=100, stock=3)
    broken = RecordingDelivery(error=RuntimeError("Cannot send messages to this user"))

    with pytest.raises(DeliveryFailed):
        await service.purchase(account_id, product.id, 2, broken)

    assert (await ledger.get_balance(account_id)).balance == 500
    assert await store.count_stock(product.id) == 3
    assert await store.count_orders() == 0
    # The rolled back units can be bought again
    result = await service.purchase(account_id, product.id, 3, RecordingDelivery())
    assert result.completed


@pytest.mark.asyncio
async def test_recording_failure_is_degraded_success(
        service, store, ledger, make_account, make_product, delivery, monkeypatch):
    account_id = await make_account(balance=500)
    product = await make_product(price=100, stock=2)

    async def broken_insert(**kwargs):
        raise RuntimeError("orders table unavailable")

    monkeypatch.setattr(store, 'insert_order', broken_insert)

    result = await service.purchase(account_id, product.id, 2, delivery)

    assert result.state is PurchaseState.FAILED_RECORDED
    assert result.degraded
    assert result.order is None
    assert isinstance(result.error, RecordingFailed)
    assert result.settled
    assert 'orders table unavailable' in result.detail
    assert len(result.detail) <= 200
    # Goods delivered and funds taken; nothing is reversed
    assert len(delivery.packages) == 1
    assert (await ledger.get_balance(account_id)).balance == 300
    assert await store.count_stock(product.id) == 0


@pytest.mark.asyncio
async def test_settlement_failure_records_unsettled_order(
        service, store, ledger, make_account, make_product, delivery, monkeypatch):
    account_id = await make_account(balance=500)
    product = await make_product(price=100, stock=2)

    async def broken_deduct(account_id, amount):
        raise InsufficientBalance(amount, 0)

    monkeypatch.setattr(ledger, 'deduct', broken_deduct)

    result = await service.purchase(account_id, product.id, 1, delivery)

    assert result.state is PurchaseState.FAILED_RECORDED
    assert not result.settled
    assert result.order.status == ORDER_UNSETTLED
    assert not result.order.is_completed
    assert 'settlement failed' in result.order.notes
    assert await store.count_stock(product.id) == 1


@pytest.mark.asyncio
async def test_concurrent_purchases_never_overdraw(service, store, ledger, make_account, make_product):
    """Test two purchases racing for the same funds leave the balance non-negative."""
    account_id = await make_account(balance=150)
    product = await make_product(price=100, stock=5)

    results = await asyncio.gather(
        service.purchase(account_id, product.id, 1, RecordingDelivery()),
        service.purchase(account_id, product.id, 1, RecordingDelivery()),
        return_exceptions=True,
    )

    completed = [r for r in results if not isinstance(r, Exception) and r.completed]
    assert len(completed) == 1
    for other in results:
        if isinstance(other, Exception):
            assert isinstance(other, InsufficientBalance)
        elif not other.completed:
            assert other.order.status == ORDER_UNSETTLED
    balance = await ledger.get_balance(account_id)
    assert balance.balance == 50
    assert balance.lifetime_spend == 100
    completed_orders = [o for o in await store.list_orders_for_account(account_id) if o.is_completed]
    assert len(completed_orders) == 1


@pytest.mark.asyncio
async def test_announce_is_best_effort(service, make_account, make_product, delivery):
    account_id = await make_account(balance=100)
    product = await make_product(price=100, stock=1)
    result = await service.purchase(account_id, product.id, 1, delivery)

    async def broken(result):
        raise RuntimeError("missing permissions")

    announced = []

    async def announcer(result):
        announced.append(result.order_number)

    assert await service.announce(result, broken) is False
    assert await service.announce(result, None) is False
    assert await service.announce(result, announcer) is True
    assert announced == [result.order_number]


def test_validate_quantity():
    assert validate_quantity(1) == 1
    assert validate_quantity('42') == 42
    assert validate_quantity(99999) == 99999
    with pytest.raises(InvalidQuantity):
        validate_quantity('4.5')


@pytest.mark.asyncio
async def test_build_delivery_filename(make_product):
    product = await make_product(name='Disney+ Yearly')

    package = build_delivery(product, ['a', 'b'], 'Magaddon Store', now=1700000000.5)

    assert package.filename == 'purchased_from_MagaddonStore_disney__yearly_1700000000500.txt'
    assert package.content == 'a\nb'
    assert package.quantity == 2


def test_buyer_fixture_matches_account_mapping():
    assert BUYER_ID == account_id_for(123456789012345678)


@pytest.mark.asyncio
async def test_delivered_units_are_never_resold_after_restart(
        service, store, allocator, make_account, make_product, delivery, monkeypatch):
    """Test units whose sale could not be marked stay out of stock across a restart."""
    first_buyer = await make_account(balance=500)
    second_buyer = await make_account(balance=500, discord_id=222, alias='SECOND')
    product = await make_product(price=100, stock=1)

    async def broken_mark_sold(unit_ids):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(allocator, 'mark_sold', broken_mark_sold)
    first = await service.purchase(first_buyer, product.id, 1, delivery)
    monkeypatch.undo()

    assert first.degraded
    assert first.order.status == ORDER_UNSETTLED
    assert first.order.reservation is not None
    assert await store.count_stock(product.id) == 0

    # Start-up cleanup settles the delivered units instead of releasing them
    assert await allocator.release_stale_reservations() == 0
    units = await store.units_for_order(first.order)
    assert [unit.data for unit in units] == [delivery.packages[0].content]
    assert all(unit.is_sold for unit in units)

    second_delivery = RecordingDelivery()
    with pytest.raises(InsufficientStock):
        await service.purchase(second_buyer, product.id, 1, second_delivery)
    assert second_delivery.packages == []


@pytest.mark.asyncio
async def test_orphaned_reservations_are_released_on_restart(service, store, allocator, make_product):
    product = await make_product(stock=2)
    # A process stopped between allocation and delivery
    await allocator.allocate(product.id, 2)

    assert await allocator.release_stale_reservations() == 2
    assert await store.count_stock(product.id) == 2
    assert len(await allocator.allocate(product.id, 2)) == 2
