"""
Batch allocation.

FEFO (first-expiry-first-out) selection of a batch for a product, and
the split plan used when a cart entry is switched to another batch:

    target batch first, then the product's other batches by expiry date;
    packs are taken greedily, then units from what each batch has left.

Allocation never touches the catalog; CartEngine installs the plan.
"""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING, Iterable

from pharmacart.cart import LineItem, MergedEntry
from pharmacart.conf import PharmacartSettings, get_pharmacart_settings
from pharmacart.discounts import ZERO, clamp_discount, effective_max_discount
from pharmacart.protocols import BatchInfo

if TYPE_CHECKING:
    from pharmacart.cart import CartEngine


@dataclass(frozen=True)
class AllocationResult:
    """Lines produced by a split, and what could not be placed."""

    lines: tuple[LineItem, ...]
    pack_shortfall: Decimal = ZERO
    unit_shortfall: Decimal = ZERO

    @property
    def fulfilled(self) -> bool:
        return self.pack_shortfall <= 0 and self.unit_shortfall <= 0

    @property
    def entries(self) -> tuple[MergedEntry, ...]:
        """Lines grouped per batch, in allocation order."""
        grouped: dict[str, MergedEntry] = {}
        for line in self.lines:
            entry = grouped.get(line.batch_id) or MergedEntry(line.batch_id)
            grouped[line.batch_id] = entry.with_slot(line.is_unit, line)
        return tuple(grouped.values())


def sort_by_expiry(batches: Iterable[BatchInfo]) -> list[BatchInfo]:
    """Earliest expiry first; ties keep catalog order."""
    return sorted(batches, key=lambda batch: batch.expiry_date)


class BatchAllocator:
    """Chooses batches for cart additions and batch switches."""

    def __init__(self, pharmacart_settings: PharmacartSettings | None = None) -> None:
        self.settings = pharmacart_settings or get_pharmacart_settings()

    def unreserved_stock(self, batch: BatchInfo, cart: "CartEngine") -> Decimal:
        """Packs of a batch not yet held by the cart."""
        return batch.stock - cart.committed_packs(batch.id, batch.units_per_pack)

    def select_for_product(
        self,
        group: list[BatchInfo],
        cart: "CartEngine",
        batch_id: str | None = None,
    ) -> BatchInfo | None:
        """
        Pick the batch to add for a product.

        Args:
            group: Every batch of the product
            cart: Cart whose holdings reduce the available stock
            batch_id: Batch chosen by the user, if any

        Returns:
            The chosen batch if it still has unreserved stock, otherwise the
            earliest-expiring batch with unreserved stock, or None.
        """
        if batch_id is not None:
            for batch in group:
                if batch.id == batch_id and self.unreserved_stock(batch, cart) > 0:
                    return batch

        for batch in sort_by_expiry(group):
            if self.unreserved_stock(batch, cart) > 0:
                return batch
        return None

    def plan_split(
        self,
        batches: Iterable[BatchInfo],
        target: BatchInfo,
        pack_qty,
        unit_qty,
        discount=ZERO,
    ) -> AllocationResult:
        """
        Spread pack and unit quantities over a product's batches.

        Stock already in the cart for this product is not subtracted: the
        caller replaces every entry of the product with the result.
        The discount is re-capped for each batch it lands on.
        """
        fresh = {batch.id: batch for batch in batches}
        target = fresh.get(target.id, target)
        ordered = [target] + [batch for batch in sort_by_expiry(fresh.values()) if batch.id != target.id]

        remaining_packs = Decimal(str(pack_qty))
        remaining_units = Decimal(str(unit_qty))
        lines: list[LineItem] = []

        for batch in ordered:
            if remaining_packs <= 0 and remaining_units <= 0:
                break

            stock_in_packs = max(batch.stock.to_integral_value(rounding=ROUND_FLOOR), ZERO)
            line_discount = clamp_discount(discount, self._max_discount(batch))

            packs_taken = ZERO
            if remaining_packs > 0:
                packs_taken = min(remaining_packs, stock_in_packs)
                if packs_taken > 0:
                    lines.append(LineItem(batch.id, packs_taken, False, line_discount))
                    remaining_packs -= packs_taken

            if remaining_units > 0 and batch.has_dual_mode:
                units_left = (stock_in_packs - packs_taken) * batch.units_per_pack
                units_taken = min(remaining_units, units_left)
                if units_taken > 0:
                    lines.append(LineItem(batch.id, units_taken, True, line_discount))
                    remaining_units -= units_taken

        return AllocationResult(
            lines=tuple(lines),
            pack_shortfall=max(remaining_packs, ZERO),
            unit_shortfall=max(remaining_units, ZERO),
        )

    def _max_discount(self, batch: BatchInfo) -> Decimal:
        return effective_max_discount(
            batch,
            default_max=self.settings.DEFAULT_MAX_DISCOUNT,
            low_margin_threshold=self.settings.LOW_MARGIN_THRESHOLD,
        )
