import logging

from .errors import InsufficientStock, InvalidQuantity
from .ids import generate_reservation_token
from .models import InventoryUnit, utcnow

_log = logging.getLogger(__name__)


def _placeholders(ids):
    return ', '.join('?' for _ in ids)


class Allocation:
    """Units reserved for one purchase; unsold until ``mark_sold``."""

    def __init__(self, token, product_id, units):
        self.token = token
        self.product_id = product_id
        self.units = list(units)

    @property
    def unit_ids(self):
        return [unit.id for unit in self.units]

    @property
    def payloads(self):
        return [unit.data for unit in self.units]

    def __len__(self):
        return len(self.units)


class InventoryAllocator:
    def __init__(self, db):
        self.db = db

    async def allocate(self, product_id, quantity):
        """Reserve ``quantity`` unsold units of ``product_id``.

        Reserved units stay unsold (and so still count as stock) but are
        skipped by every other allocation until sold or rolled back.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantity(f"invalid quantity {quantity!r}")
        token = generate_reservation_token()
        async with self.db.transaction() as tx:
            rows = await tx.fetchall(
                """
                SELECT id FROM inventory
                WHERE product_id = ? AND is_sold = 0 AND reservation IS NULL
                ORDER BY id
                LIMIT ?
                """,
                (product_id, quantity),
            )
            if len(rows) < quantity:
                raise InsufficientStock(quantity, len(rows))
            ids = [row['id'] for row in rows]
            result = await tx.execute(
                f"UPDATE inventory SET reservation = ? "
                f"WHERE id IN ({_placeholders(ids)}) AND is_sold = 0 AND reservation IS NULL",
                (token, *ids),
            )
            if result.rowcount != quantity:
                raise InsufficientStock(quantity, result.rowcount)
            units = await tx.fetchall(
                "SELECT * FROM inventory WHERE reservation = ? ORDER BY id", (token,)
            )
        return Allocation(token, product_id, [InventoryUnit.from_row(row) for row in units])

    async def mark_sold(self, unit_ids):
        """Flip the given units to sold. Already-sold units are left untouched.

        The reservation token stays on the sold units and ties them to their order.
        """
        unit_ids = list(unit_ids)
        if not unit_ids:
            return 0
        result = await self.db.execute(
            f"UPDATE inventory SET is_sold = 1, sold_at = ? "
            f"WHERE id IN ({_placeholders(unit_ids)}) AND is_sold = 0",
            (utcnow().isoformat(), *unit_ids),
        )
        return result.rowcount

    async def rollback(self, unit_ids):
        """Release a reservation, leaving the units unsold and available."""
        unit_ids = list(unit_ids)
        if not unit_ids:
            return 0
        result = await self.db.execute(
            f"UPDATE inventory SET reservation = NULL "
            f"WHERE id IN ({_placeholders(unit_ids)}) AND is_sold = 0",
            tuple(unit_ids),
        )
        return result.rowcount

    async def release_stale_reservations(self):
        """Clean up reservations left behind by a process that stopped mid-purchase.

        Units whose reservation is recorded on an order were already delivered,
        so they are marked sold. Every other reservation goes back to stock.
        Returns the number of units released.
        """
        async with self.db.transaction() as tx:
            settled = await tx.execute(
                """
                UPDATE inventory SET is_sold = 1, sold_at = ?
                WHERE is_sold = 0 AND reservation IS NOT NULL
                  AND EXISTS (SELECT 1 FROM orders o WHERE o.reservation = inventory.reservation)
                """,
                (utcnow().isoformat(),),
            )
            released = await tx.execute(
                "UPDATE inventory SET reservation = NULL WHERE reservation IS NOT NULL AND is_sold = 0"
            )
        if settled.rowcount:
            _log.warning("Marked %d delivered inventory units sold", settled.rowcount)
        if released.rowcount:
            _log.warning("Released %d stale inventory reservations", released.rowcount)
        return released.rowcount
