"""Purchase transaction core.

A purchase walks VALIDATING -> ALLOCATING -> DELIVERING -> SETTLING ->
RECORDING -> COMPLETE. Anything that fails before delivery leaves no trace
(REJECTED, or a rolled-back allocation when delivery itself fails). Once
the goods have been handed over nothing is reversed: settlement or
bookkeeping problems end in FAILED_RECORDED and are logged for manual
reconciliation.
"""

import asyncio
import enum
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import DeliveryFailed, InsufficientBalance, InvalidQuantity, RecordingFailed
from .ids import generate_order_number
from .models import ORDER_COMPLETED, ORDER_UNSETTLED, PAYMENT_METHOD, Order, Product

_log = logging.getLogger(__name__)

MAX_QUANTITY = 99999
DETAIL_LIMIT = 200


class PurchaseState(enum.Enum):
    VALIDATING = 'validating'
    ALLOCATING = 'allocating'
    DELIVERING = 'delivering'
    SETTLING = 'settling'
    RECORDING = 'recording'
    COMPLETE = 'complete'
    REJECTED = 'rejected'
    FAILED_RECORDED = 'failed_recorded'


@dataclass(frozen=True)
class DeliveryPackage:
    product: Product
    quantity: int
    filename: str
    content: str


@dataclass
class PurchaseResult:
    state: PurchaseState
    account_id: str
    product: Product
    quantity: int
    total_price: int
    order_number: str
    order: Optional[Order] = None
    settled: bool = False
    error: Optional[RecordingFailed] = None

    @property
    def completed(self):
        return self.state is PurchaseState.COMPLETE

    @property
    def degraded(self):
        return self.state is PurchaseState.FAILED_RECORDED

    @property
    def detail(self):
        return str(self.error) if self.error is not None else None


def validate_quantity(value):
    if isinstance(value, bool):
        raise InvalidQuantity(f"invalid quantity {value!r}")
    if isinstance(value, int):
        quantity = value
    else:
        try:
            quantity = int(str(value).strip())
        except ValueError:
            raise InvalidQuantity(f"invalid quantity {value!r}") from None
    if not 1 <= quantity <= MAX_QUANTITY:
        raise InvalidQuantity(f"quantity must be between 1 and {MAX_QUANTITY}, got {quantity}")
    return quantity


def build_delivery(product, payloads, store_name, now=None):
    """Bundle the purchased payloads into one text attachment."""
    millis = int((time.time() if now is None else now) * 1000)
    safe_store = re.sub(r'[^a-z0-9]', '', store_name, flags=re.IGNORECASE) or 'store'
    safe_product = re.sub(r'[^a-z0-9]', '_', product.name, flags=re.IGNORECASE).lower()
    filename = f"purchased_from_{safe_store}_{safe_product}_{millis}.txt"
    return DeliveryPackage(product, len(payloads), filename, '\n'.join(payloads))


def _clip(text):
    return text if len(text) <= DETAIL_LIMIT else text[:DETAIL_LIMIT - 3] + '...'


def _truncate(error):
    return _clip(f"{type(error).__name__}: {error}")


class PurchaseService:
    def __init__(self, store, allocator, ledger, store_name='Magaddon Store', clock=time.time):
        self.store = store
        self.allocator = allocator
        self.ledger = ledger
        self.store_name = store_name
        self.clock = clock

    def _context(self, account_id, product_id, quantity, total=None):
        stamp = datetime.fromtimestamp(self.clock(), timezone.utc).isoformat()
        return f"account={account_id} product={product_id} quantity={quantity} total={total} at={stamp}"

    async def _load(self, account_id, product_id):
        product, balance = await asyncio.gather(
            self.store.get_product(product_id),
            self.ledger.get_balance(account_id),
            return_exceptions=True,
        )
        # Product errors take precedence over account errors
        if isinstance(product, BaseException):
            raise product
        if isinstance(balance, BaseException):
            raise balance
        return product, balance

    async def purchase(self, account_id, product_id, quantity, deliver):
        """Buy ``quantity`` units of ``product_id`` for ``account_id``.

        ``deliver`` is an async callable taking a ``DeliveryPackage``; it must
        raise if the goods could not be handed over. Raises a ``ShopError``
        when the purchase is rejected or delivery fails, in which case no
        funds moved and no units were sold.
        """
        state = PurchaseState.VALIDATING
        try:
            quantity = validate_quantity(quantity)
            product, balance = await self._load(account_id, product_id)
            total_price = product.price * quantity
            if balance.balance < total_price:
                raise InsufficientBalance(total_price, balance.balance)

            state = PurchaseState.ALLOCATING
            allocation = await self.allocator.allocate(product.id, quantity)
        except Exception as e:
            _log.info("Purchase rejected during %s: %s (%s)", state.value, e,
                      self._context(account_id, product_id, quantity))
            raise

        state = PurchaseState.DELIVERING
        package = build_delivery(product, allocation.payloads, self.store_name, now=self.clock())
        try:
            await deliver(package)
        except Exception as e:
            await self._release(allocation, account_id, product.id, quantity)
            _log.warning("Delivery failed, allocation rolled back: %s (%s)", e,
                         self._context(account_id, product.id, quantity, total_price))
            raise DeliveryFailed(str(e)) from e

        problems = []
        state = PurchaseState.SETTLING
        try:
            await self.allocator.mark_sold(allocation.unit_ids)
        except Exception as e:
            problems.append(f"mark sold failed: {_truncate(e)}")
            _log.exception("Reconciliation anomaly: delivered units %s could not be marked sold (%s)",
                           allocation.unit_ids, self._context(account_id, product.id, quantity, total_price))
        settled = False
        try:
            await self.ledger.deduct(account_id, total_price)
            settled = True
        except Exception as e:
            problems.append(f"settlement failed: {_truncate(e)}")
            _log.error("Reconciliation anomaly: goods delivered but balance not deducted: %s (%s)",
                       e, self._context(account_id, product.id, quantity, total_price))

        state = PurchaseState.RECORDING
        order_number = generate_order_number(self.clock())
        result = PurchaseResult(
            state=state,
            account_id=account_id,
            product=product,
            quantity=quantity,
            total_price=total_price,
            order_number=order_number,
            settled=settled,
        )
        try:
            result.order = await self.store.insert_order(
                order_number=order_number,
                account_id=account_id,
                product_id=product.id,
                inventory_id=allocation.unit_ids[0],
                quantity=quantity,
                unit_price=product.price,
                total_amount=total_price,
                status=ORDER_COMPLETED if not problems else ORDER_UNSETTLED,
                payment_method=PAYMENT_METHOD,
                notes='; '.join(problems) or None,
                reservation=allocation.token,
            )
        except Exception as e:
            problems.append(f"order not recorded: {_truncate(e)}")
            _log.exception("Reconciliation anomaly: order %s could not be recorded, reservation %s (%s)",
                           order_number, allocation.token, self._context(account_id, product.id, quantity, total_price))

        if problems:
            result.state = PurchaseState.FAILED_RECORDED
            result.error = RecordingFailed(_clip('; '.join(problems)))
        else:
            result.state = PurchaseState.COMPLETE
            _log.info("Purchase %s completed (%s)", order_number,
                      self._context(account_id, product.id, quantity, total_price))
        return result

    async def _release(self, allocation, account_id, product_id, quantity):
        try:
            await self.allocator.rollback(allocation.unit_ids)
        except Exception:
            # Units stay reserved until the next start-up releases them
            _log.exception("Could not roll back allocation %s (%s)", allocation.unit_ids,
                           self._context(account_id, product_id, quantity))

    async def announce(self, result, announcer):
        """Best-effort receipt broadcast; failures are logged and dropped."""
        if announcer is None:
            return False
        try:
            await announcer(result)
        except Exception as e:
            _log.warning("Could not announce purchase %s: %s", result.order_number, e)
            return False
        return True
