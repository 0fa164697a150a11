class ShopError(Exception):
    """Base exception for storefront operations."""
    pass


class InvalidInput(ShopError):
    pass


class InvalidQuantity(InvalidInput):
    pass


class InvalidPrice(InvalidInput):
    pass


class NotFound(ShopError):
    pass


class AccountNotFound(NotFound):
    pass


class ProductNotFound(NotFound):
    pass


class OrderNotFound(NotFound):
    pass


class InsufficientStock(ShopError):
    def __init__(self, requested, available):
        super().__init__(f"requested {requested}, only {available} available")
        self.requested = requested
        self.available = available


class InsufficientBalance(ShopError):
    def __init__(self, required, balance):
        super().__init__(f"balance {balance} is short of {required} by {required - balance}")
        self.required = required
        self.balance = balance

    @property
    def shortfall(self):
        return self.required - self.balance


class DeliveryFailed(ShopError):
    pass


class RecordingFailed(ShopError):
    pass


class TransientStoreError(ShopError):
    """Raised when the store is temporarily unavailable (locked, busy)."""
    pass
