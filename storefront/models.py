"""Typed records returned by the store layer.

Rows are mapped through ``from_row`` so that a missing column or a value of
the wrong type raises ``ValueError`` at the store boundary instead of
leaking half-populated records into the purchase flow.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ORDER_COMPLETED = 'completed'
ORDER_UNSETTLED = 'unsettled'
PAYMENT_METHOD = 'world_lock'


def utcnow():
    return datetime.now(timezone.utc)


def _required(row, key):
    try:
        value = row[key]
    except (KeyError, IndexError):
        raise ValueError(f"row is missing column {key!r}") from None
    if value is None:
        raise ValueError(f"column {key!r} must not be null")
    return value


def _int(row, key, minimum=None):
    value = _required(row, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"column {key!r} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValueError(f"column {key!r} must be >= {minimum}, got {value}")
    return value


def _str(row, key):
    value = _required(row, key)
    if not isinstance(value, str):
        raise ValueError(f"column {key!r} must be text, got {value!r}")
    return value


def _optional(row, key):
    try:
        return row[key]
    except (KeyError, IndexError):
        return None


def _timestamp(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"invalid timestamp {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Account:
    id: str
    username: str
    alias: Optional[str]
    email: Optional[str]
    balance: int
    total_spent: int
    role: str
    created_at: datetime

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_str(row, 'id'),
            username=_str(row, 'username'),
            alias=_optional(row, 'growid'),
            email=_optional(row, 'email'),
            balance=_int(row, 'balance', minimum=0),
            total_spent=_int(row, 'total_spent', minimum=0),
            role=_str(row, 'role'),
            created_at=_timestamp(_required(row, 'created_at')),
        )


@dataclass(frozen=True)
class Balance:
    balance: int
    lifetime_spend: int


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    code: str
    description: str
    price: int
    image: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_int(row, 'id'),
            name=_str(row, 'name'),
            code=_str(row, 'code'),
            description=_optional(row, 'description') or '',
            price=_int(row, 'price', minimum=0),
            image=_optional(row, 'image'),
        )


@dataclass(frozen=True)
class ProductStock:
    product: Product
    stock: int

    @property
    def id(self):
        return self.product.id

    @property
    def name(self):
        return self.product.name

    @property
    def code(self):
        return self.product.code

    @property
    def price(self):
        return self.product.price


@dataclass(frozen=True)
class InventoryUnit:
    id: int
    product_id: int
    data: str
    is_sold: bool
    created_at: datetime
    sold_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_int(row, 'id'),
            product_id=_int(row, 'product_id'),
            data=_str(row, 'data'),
            is_sold=bool(_int(row, 'is_sold')),
            created_at=_timestamp(_required(row, 'created_at')),
            sold_at=_timestamp(_optional(row, 'sold_at')),
        )


@dataclass(frozen=True)
class Order:
    id: int
    order_number: str
    account_id: str
    product_id: int
    inventory_id: Optional[int]
    quantity: int
    unit_price: int
    total_amount: int
    status: str
    payment_method: str
    notes: Optional[str]
    created_at: datetime
    reservation: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_int(row, 'id'),
            order_number=_str(row, 'order_number'),
            account_id=_str(row, 'user_id'),
            product_id=_int(row, 'product_id'),
            inventory_id=_optional(row, 'inventory_id'),
            quantity=_int(row, 'quantity', minimum=1),
            unit_price=_int(row, 'unit_price', minimum=0),
            total_amount=_int(row, 'total_amount', minimum=0),
            status=_str(row, 'status'),
            payment_method=_str(row, 'payment_method'),
            notes=_optional(row, 'notes'),
            created_at=_timestamp(_required(row, 'created_at')),
            reservation=_optional(row, 'reservation'),
        )

    @property
    def is_completed(self):
        return self.status == ORDER_COMPLETED


@dataclass(frozen=True)
class DepositInfo:
    world_name: Optional[str]
    owner_name: Optional[str]
    bot_name: Optional[str]


@dataclass(frozen=True)
class ShopStats:
    total_products: int
    active_listings: int
    order_count: int
    total_revenue: int
    revenue_today: int
