"""Tests for buyer-facing messages, delivery and receipts."""

from unittest.mock import AsyncMock, Mock

import pytest

from storefront.delivery import DirectMessageDelivery, PurchaseLogAnnouncer
from storefront.errors import (
    AccountNotFound,
    DeliveryFailed,
    InsufficientBalance,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    RecordingFailed,
)
from storefront.formatting import format_price
from storefront.models import Product, ProductStock
from storefront.purchase import DeliveryPackage, PurchaseResult, PurchaseState
from storefront.ui import purchase_error_message, purchase_success_message, render_stock_message

PRODUCT = Product(id=1, name='Netflix', code='NFX', description='Premium 4K', price=100)


def make_result(state=PurchaseState.COMPLETE, settled=True, error=None):
    return PurchaseResult(
        state=state,
        account_id='abc',
        product=PRODUCT,
        quantity=3,
        total_price=300,
        order_number='ORD-1700000000000-ab12cd34ef',
        settled=settled,
        error=error,
    )


@pytest.mark.parametrize("error, fragment", [
    (InvalidQuantity('x'), 'between 1 and 99999'),
    (ProductNotFound('x'), 'Product not found'),
    (AccountNotFound('x'), 'set your GrowID'),
    (InsufficientStock(5, 2), 'Only 2 available'),
    (DeliveryFailed('x'), 'No World Locks were deducted'),
    (RecordingFailed('x'), 'contact support'),
    (RuntimeError('boom'), 'contact support'),
])
def test_purchase_error_message(error, fragment):
    assert fragment in purchase_error_message(error)


def test_insufficient_balance_shows_shortfall():
    message = purchase_error_message(InsufficientBalance(12345, 100))
    assert f"You need {format_price(12245)} more" in message


def test_success_message_mentions_degraded_state():
    assert 'Staff have been notified' not in purchase_success_message(make_result())

    degraded = purchase_success_message(
        make_result(PurchaseState.FAILED_RECORDED, error=RecordingFailed('order not recorded'))
    )
    assert 'ORD-1700000000000-ab12cd34ef' in degraded
    assert 'order not recorded' in degraded
    assert format_price(300) in degraded


def test_unsettled_purchase_does_not_claim_payment():
    text = purchase_success_message(make_result(
        PurchaseState.FAILED_RECORDED, settled=False, error=RecordingFailed('settlement failed: locked'),
    ))

    assert format_price(300) not in text
    assert 'has not been charged' in text
    assert 'settlement failed' in text


@pytest.mark.asyncio
async def test_render_stock_message():
    rendered = render_stock_message([ProductStock(PRODUCT, 7)])

    assert rendered['content'] is None
    assert rendered['view'].timeout is None
    assert 'NETFLIX' in rendered['embed'].description
    assert 'Stock: **7**' in rendered['embed'].description


@pytest.mark.asyncio
async def test_direct_message_delivery_attaches_payloads():
    user = Mock()
    user.send = AsyncMock()
    package = DeliveryPackage(PRODUCT, 2, 'purchased.txt', 'a\nb')

    await DirectMessageDelivery(user)(package)

    kwargs = user.send.await_args.kwargs
    assert 'Netflix' in kwargs['content']
    assert kwargs['file'].filename == 'purchased.txt'
    assert kwargs['file'].fp.read() == b'a\nb'


@pytest.mark.asyncio
async def test_direct_message_failure_propagates():
    user = Mock()
    user.send = AsyncMock(side_effect=RuntimeError('Cannot send messages to this user'))
    with pytest.raises(RuntimeError):
        await DirectMessageDelivery(user)(DeliveryPackage(PRODUCT, 1, 'f.txt', 'a'))


@pytest.mark.asyncio
async def test_purchase_log_announcer():
    channel = Mock()
    channel.send = AsyncMock()
    announcer = PurchaseLogAnnouncer(channel, 42, 'Magaddon Store')

    await announcer(make_result())

    embed = channel.send.await_args.kwargs['embed']
    assert embed.title == '#Order Number: ORD-1700000000000-ab12cd34ef'
    assert '<@42>' in embed.description
    assert '3 NETFLIX' in embed.description


@pytest.mark.asyncio
async def test_announcer_without_channel_is_a_no_op():
    await PurchaseLogAnnouncer(None, 42, 'Magaddon Store')(make_result())
