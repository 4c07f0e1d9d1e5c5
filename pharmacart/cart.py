"""
Cart engine for one order.

The cart keeps one entry per batch id, each with a pack slot and a unit
slot. Every mutating call builds a new entry map from a single snapshot
of the current one and installs it in one assignment, so callers never
observe a state that breaks the stock invariant:

    pack_qty * units_per_pack + unit_qty <= stock * units_per_pack

Violations are not raised. The state stays unchanged (or clamped) and
the returned Outcome says why:

    outcome = cart.add_line(batch, quantity=3)
    if outcome.rejected:
        print(outcome.code, outcome.message)
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from django.db import models
from django.utils.translation import gettext_lazy as _

from pharmacart.conf import PharmacartSettings, get_pharmacart_settings
from pharmacart.discounts import HUNDRED, ZERO, clamp_discount, effective_max_discount
from pharmacart.exceptions import ERROR_MESSAGES
from pharmacart.protocols import BatchInfo, CatalogBackend

if TYPE_CHECKING:
    from pharmacart.allocation import BatchAllocator

logger = logging.getLogger(__name__)

# Converted quantities closer than this to a whole number are snapped to it.
QUANTITY_EPSILON = Decimal("1e-9")


class OutcomeStatus(models.TextChoices):
    APPLIED = "applied", _("Applied")
    CLAMPED = "clamped", _("Clamped")
    REJECTED = "rejected", _("Rejected")


@dataclass(frozen=True)
class Outcome:
    """Result of a cart operation."""

    status: str
    code: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data) -> "Outcome":
        return cls(OutcomeStatus.APPLIED, None, data)

    @classmethod
    def clamp(cls, code: str, **data) -> "Outcome":
        return cls(OutcomeStatus.CLAMPED, code, data)

    @classmethod
    def reject(cls, code: str, **data) -> "Outcome":
        return cls(OutcomeStatus.REJECTED, code, data)

    @property
    def applied(self) -> bool:
        """True if the cart changed (fully or clamped)."""
        return self.status != OutcomeStatus.REJECTED

    @property
    def rejected(self) -> bool:
        return self.status == OutcomeStatus.REJECTED

    @property
    def message(self) -> str | None:
        if self.code is None:
            return None
        return ERROR_MESSAGES.get(self.code, self.code)


@dataclass(frozen=True)
class LineItem:
    """Quantity and discount of one (batch, mode) slot."""

    batch_id: str
    quantity: Decimal
    is_unit: bool = False
    discount: Decimal = ZERO


@dataclass(frozen=True)
class MergedEntry:
    """
    Pack and unit slots of one batch.

    The cart stores exactly one entry per batch id. Entries are immutable,
    so the stored objects double as the read view handed to callers.
    """

    batch_id: str
    pack: LineItem | None = None
    unit: LineItem | None = None

    def slot(self, is_unit: bool) -> LineItem | None:
        return self.unit if is_unit else self.pack

    def with_slot(self, is_unit: bool, line: LineItem | None) -> "MergedEntry":
        if is_unit:
            return replace(self, unit=line)
        return replace(self, pack=line)

    def with_discount(self, discount: Decimal) -> "MergedEntry":
        entry = self
        for line in self.lines:
            entry = entry.with_slot(line.is_unit, replace(line, discount=discount))
        return entry

    @property
    def lines(self) -> tuple[LineItem, ...]:
        return tuple(line for line in (self.pack, self.unit) if line is not None)

    @property
    def pack_quantity(self) -> Decimal:
        return self.pack.quantity if self.pack else ZERO

    @property
    def unit_quantity(self) -> Decimal:
        return self.unit.quantity if self.unit else ZERO

    @property
    def discount(self) -> Decimal:
        return max((line.discount for line in self.lines), default=ZERO)

    @property
    def has_quantity(self) -> bool:
        return self.pack_quantity + self.unit_quantity > 0

    @property
    def is_empty(self) -> bool:
        return self.pack is None and self.unit is None


@dataclass(frozen=True)
class CartTotals:
    """Order aggregates."""

    gross_subtotal: Decimal
    net_item_total: Decimal
    order_total: Decimal
    total_discount_amount: Decimal
    discount_percent: Decimal
    item_count: int


def calculate_line_total(line: LineItem, batch: BatchInfo) -> Decimal:
    """Net total of one line: unit price x quantity, minus the line discount."""
    gross = batch.unit_price(line.is_unit) * line.quantity
    return gross * (1 - line.discount / HUNDRED)


def units_of(entry: MergedEntry | None, units_per_pack: int) -> Decimal:
    """Total single units held by an entry across both slots."""
    if entry is None:
        return ZERO
    return entry.pack_quantity * units_per_pack + entry.unit_quantity


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _is_whole(value: Decimal) -> bool:
    return value == value.to_integral_value()


def _snap(value: Decimal) -> Decimal:
    whole = value.to_integral_value()
    if abs(value - whole) < QUANTITY_EPSILON:
        return whole
    return value


class CartEngine:
    """
    Line items of one order, plus its order-level discount.

    Batch data is always read from the catalog. The last record seen for
    each batch in the cart is kept so totals remain computable if the
    catalog drops a batch mid-session; mutating calls still require the
    catalog to know the batch.
    """

    def __init__(
        self,
        catalog: CatalogBackend,
        pharmacart_settings: PharmacartSettings | None = None,
        allocator: "BatchAllocator | None" = None,
    ) -> None:
        from pharmacart.allocation import BatchAllocator

        self.catalog = catalog
        self.settings = pharmacart_settings or get_pharmacart_settings()
        self.allocator = allocator or BatchAllocator(self.settings)
        self._entries: dict[str, MergedEntry] = {}
        self._order_discount = ZERO
        self._known: dict[str, BatchInfo] = {}

    # ======================================================================
    # READ API
    # ======================================================================

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def order_discount(self) -> Decimal:
        return self._order_discount

    def lines(self) -> list[LineItem]:
        """Flat list of lines, pack before unit within each entry."""
        return [line for entry in self._entries.values() for line in entry.lines]

    def merged_entries(self) -> list[MergedEntry]:
        return list(self._entries.values())

    def get_entry(self, batch_id: str) -> MergedEntry | None:
        return self._entries.get(batch_id)

    def get_line(self, batch_id: str, is_unit: bool) -> LineItem | None:
        entry = self._entries.get(batch_id)
        return entry.slot(is_unit) if entry else None

    def committed_units(self, batch_id: str, units_per_pack: int | None = None) -> Decimal:
        """Units of a batch already held by this cart (both slots)."""
        entry = self._entries.get(batch_id)
        if entry is None:
            return ZERO
        if units_per_pack is None:
            batch = self.resolve_batch(batch_id)
            units_per_pack = batch.units_per_pack if batch else 1
        return units_of(entry, units_per_pack)

    def committed_packs(self, batch_id: str, units_per_pack: int | None = None) -> Decimal:
        """Pack equivalents of a batch already held by this cart."""
        if units_per_pack is None:
            batch = self.resolve_batch(batch_id)
            units_per_pack = batch.units_per_pack if batch else 1
        return self.committed_units(batch_id, units_per_pack) / units_per_pack

    def resolve_batch(self, batch_id: str) -> BatchInfo | None:
        """Freshest known record for a batch (catalog first, then last seen)."""
        batch = self.catalog.find_batch_by_id(batch_id)
        if batch is not None:
            self._known[batch_id] = batch
            return batch
        return self._known.get(batch_id)

    def max_discount_for(self, batch: BatchInfo) -> Decimal:
        return effective_max_discount(
            batch,
            default_max=self.settings.DEFAULT_MAX_DISCOUNT,
            low_margin_threshold=self.settings.LOW_MARGIN_THRESHOLD,
        )

    def line_total(self, line: LineItem) -> Decimal:
        batch = self.resolve_batch(line.batch_id)
        if batch is None:
            return ZERO
        return calculate_line_total(line, batch)

    def totals(self) -> CartTotals:
        gross = ZERO
        net = ZERO
        item_count = 0
        for entry in self._entries.values():
            batch = self.resolve_batch(entry.batch_id)
            if batch is None:
                continue
            for line in entry.lines:
                gross += batch.unit_price(line.is_unit) * line.quantity
                net += calculate_line_total(line, batch)
            if entry.has_quantity:
                item_count += 1

        order_total = net * (1 - self._order_discount / HUNDRED)
        discount_amount = gross - order_total
        discount_percent = discount_amount / gross * HUNDRED if gross > 0 else ZERO
        return CartTotals(
            gross_subtotal=gross,
            net_item_total=net,
            order_total=order_total,
            total_discount_amount=discount_amount,
            discount_percent=discount_percent,
            item_count=item_count,
        )

    @property
    def is_checkout_eligible(self) -> bool:
        """At least one entry, and every entry holds some quantity."""
        entries = self._entries
        return bool(entries) and all(entry.has_quantity for entry in entries.values())

    # ======================================================================
    # LINE OPERATIONS
    # ======================================================================

    def add_line(self, batch: BatchInfo, is_unit: bool = False, quantity=1) -> Outcome:
        """
        Add quantity of a batch in pack or unit mode.

        Merges into the existing slot of the same mode, or creates it.
        Rejected when the combined units would exceed the batch stock.
        """
        quantity = _decimal(quantity)
        if quantity <= 0 or (is_unit and not _is_whole(quantity)):
            return self._reject("INVALID_QUANTITY", batch_id=batch.id, quantity=quantity)
        if batch.stock <= 0:
            return self._reject("INSUFFICIENT_STOCK", batch_id=batch.id, available_units=ZERO)

        entries = self._entries
        entry = entries.get(batch.id) or MergedEntry(batch.id)
        committed = units_of(entry, batch.units_per_pack)
        adding = quantity if is_unit else quantity * batch.units_per_pack
        if committed + adding > batch.total_units:
            return self._reject(
                "INSUFFICIENT_STOCK",
                batch_id=batch.id,
                available_units=batch.total_units - committed,
            )

        existing = entry.slot(is_unit)
        if existing is not None:
            line = replace(existing, quantity=existing.quantity + quantity)
        else:
            line = LineItem(batch_id=batch.id, quantity=quantity, is_unit=is_unit)

        new_entries = dict(entries)
        new_entries[batch.id] = entry.with_slot(is_unit, line)
        self._known[batch.id] = batch
        self._install(new_entries)
        return Outcome.ok(batch_id=batch.id, quantity=line.quantity)

    def remove_line(self, batch_id: str, is_unit: bool) -> Outcome:
        entries = self._entries
        entry = entries.get(batch_id)
        if entry is None or entry.slot(is_unit) is None:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id, is_unit=is_unit)

        new_entries = dict(entries)
        remaining = entry.with_slot(is_unit, None)
        if remaining.is_empty:
            del new_entries[batch_id]
        else:
            new_entries[batch_id] = remaining
        self._install(new_entries)
        return Outcome.ok(batch_id=batch_id)

    def remove_product(self, batch_id: str) -> Outcome:
        """Remove both slots of a batch."""
        entries = self._entries
        if batch_id not in entries:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id)

        new_entries = {bid: entry for bid, entry in entries.items() if bid != batch_id}
        self._install(new_entries)
        return Outcome.ok(batch_id=batch_id)

    def update_quantity(self, batch_id: str, is_unit: bool, delta) -> Outcome:
        """
        Change one slot's quantity by delta.

        A batch without unit mode keeps at least 1 pack (removal is a
        separate call); with unit mode either slot may reach 0.
        """
        entries = self._entries
        entry = entries.get(batch_id)
        target = entry.slot(is_unit) if entry else None
        if target is None:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id, is_unit=is_unit)

        batch = self._fetch(batch_id)
        if batch is None:
            return self._reject("BATCH_NOT_FOUND", batch_id=batch_id)

        new_qty = target.quantity + _decimal(delta)
        if is_unit and not _is_whole(new_qty):
            return self._reject("INVALID_QUANTITY", batch_id=batch_id, quantity=new_qty)

        minimum = 0 if (batch.has_dual_mode or is_unit) else 1
        if new_qty < minimum:
            return self._reject("BELOW_MINIMUM", batch_id=batch_id, minimum=minimum)

        pack_qty = entry.pack_quantity if is_unit else new_qty
        unit_qty = new_qty if is_unit else entry.unit_quantity
        if pack_qty * batch.units_per_pack + unit_qty > batch.total_units:
            return self._reject(
                "INSUFFICIENT_STOCK",
                batch_id=batch_id,
                available_units=batch.total_units - units_of(entry, batch.units_per_pack),
            )

        new_entries = dict(entries)
        new_entries[batch_id] = entry.with_slot(is_unit, replace(target, quantity=new_qty))
        self._install(new_entries)
        return Outcome.ok(batch_id=batch_id, quantity=new_qty)

    def set_quantity(self, batch_id: str, is_unit: bool, quantity) -> Outcome:
        """Set one slot to an absolute quantity, creating the slot if needed."""
        quantity = _decimal(quantity)
        current = self.get_line(batch_id, is_unit)
        if current is not None:
            return self.update_quantity(batch_id, is_unit, quantity - current.quantity)

        batch = self._fetch(batch_id)
        if batch is None:
            return self._reject("BATCH_NOT_FOUND", batch_id=batch_id)
        return self.add_line(batch, is_unit=is_unit, quantity=quantity)

    def toggle_unit_mode(self, batch_id: str, from_unit: bool) -> Outcome:
        """
        Move a slot's quantity to the other mode, converting it.

        Pack -> unit multiplies by units_per_pack, unit -> pack divides
        (the result may be fractional). The converted quantity is added to
        an existing slot of the target mode, otherwise the slot is relabeled.
        Pack -> unit is rejected when it would not give whole units.
        """
        entries = self._entries
        entry = entries.get(batch_id)
        source = entry.slot(from_unit) if entry else None
        if source is None:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id, is_unit=from_unit)

        batch = self._fetch(batch_id)
        if batch is None:
            return self._reject("BATCH_NOT_FOUND", batch_id=batch_id)

        units_per_pack = batch.units_per_pack
        if from_unit:
            if units_per_pack <= 1:
                return self._reject("NO_DUAL_MODE", batch_id=batch_id)
            converted = source.quantity / units_per_pack
        else:
            converted = source.quantity * units_per_pack
            if not _is_whole(_snap(converted)):
                return self._reject("INVALID_QUANTITY", batch_id=batch_id, quantity=converted)

        to_unit = not from_unit
        existing = entry.slot(to_unit)
        if existing is not None:
            line = replace(existing, quantity=_snap(existing.quantity + converted))
        else:
            line = replace(source, is_unit=to_unit, quantity=_snap(converted))

        new_entries = dict(entries)
        new_entries[batch_id] = entry.with_slot(from_unit, None).with_slot(to_unit, line)
        self._install(new_entries)
        return Outcome.ok(batch_id=batch_id, is_unit=to_unit, quantity=line.quantity)

    def move_entry(self, batch_id: str, new_index: int) -> Outcome:
        """Move an entry to another position (row reordering)."""
        entries = self._entries
        if batch_id not in entries:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id)
        if not 0 <= new_index < len(entries):
            return self._reject("INVALID_POSITION", batch_id=batch_id, index=new_index)

        order = [bid for bid in entries if bid != batch_id]
        order.insert(new_index, batch_id)
        self._install({bid: entries[bid] for bid in order})
        return Outcome.ok(batch_id=batch_id, index=new_index)

    def clear(self) -> None:
        self._install({}, order_discount=ZERO)

    # ======================================================================
    # DISCOUNTS
    # ======================================================================

    def set_line_discount(self, batch_id: str, requested, is_unit: bool | None = None) -> Outcome:
        """
        Set the discount of one slot, or of both slots when is_unit is None.

        The value is clamped to the batch's effective maximum. A discount
        above zero clears the order discount in the same update.
        """
        entries = self._entries
        entry = entries.get(batch_id)
        if entry is None or (is_unit is not None and entry.slot(is_unit) is None):
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id, is_unit=is_unit)

        batch = self._fetch(batch_id)
        if batch is None:
            return self._reject("BATCH_NOT_FOUND", batch_id=batch_id)

        requested = _decimal(requested)
        ceiling = self.max_discount_for(batch)
        value = clamp_discount(requested, ceiling)

        if is_unit is None:
            new_entry = entry.with_discount(value)
        else:
            new_entry = entry.with_slot(is_unit, replace(entry.slot(is_unit), discount=value))

        new_entries = dict(entries)
        new_entries[batch_id] = new_entry
        order_discount = ZERO if value > 0 else self._order_discount
        self._install(new_entries, order_discount=order_discount)

        if value != requested:
            return Outcome.clamp(
                "DISCOUNT_CAPPED",
                batch_id=batch_id,
                discount=value,
                requested=requested,
                max_discount=ceiling,
            )
        return Outcome.ok(batch_id=batch_id, discount=value)

    def toggle_max_discount(self, batch_id: str) -> Outcome:
        """Apply the maximum allowed discount to an entry, or clear it."""
        entry = self._entries.get(batch_id)
        if entry is None:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id)

        batch = self._fetch(batch_id)
        if batch is None:
            return self._reject("BATCH_NOT_FOUND", batch_id=batch_id)

        target = self.max_discount_for(batch) if entry.discount == 0 else ZERO
        return self.set_line_discount(batch_id, target)

    def set_order_discount(self, percent) -> Outcome:
        """Set the order discount (0-100). Above zero clears every line discount."""
        requested = _decimal(percent)
        value = min(max(requested, ZERO), HUNDRED)

        entries = self._entries
        if value > 0:
            new_entries = {bid: entry.with_discount(ZERO) for bid, entry in entries.items()}
        else:
            new_entries = dict(entries)
        self._install(new_entries, order_discount=value)

        if value != requested:
            return Outcome.clamp("DISCOUNT_CAPPED", discount=value, requested=requested)
        return Outcome.ok(discount=value)

    # ======================================================================
    # BATCH ALLOCATION
    # ======================================================================

    def add_product(
        self,
        group: Iterable[BatchInfo],
        is_unit: bool = False,
        quantity=1,
        batch_id: str | None = None,
    ) -> Outcome:
        """
        Add a product by group of batches.

        Uses batch_id when it still has unreserved stock, otherwise the
        earliest-expiring batch with unreserved stock.
        """
        batch = self.allocator.select_for_product(list(group), self, batch_id=batch_id)
        if batch is None:
            return self._reject("NO_STOCK_AVAILABLE", batch_id=batch_id)
        return self.add_line(batch, is_unit=is_unit, quantity=quantity)

    def switch_batch(
        self,
        batch_id: str,
        target: BatchInfo,
        pack_qty=None,
        unit_qty=None,
    ) -> Outcome:
        """
        Move a product onto another batch, splitting across batches if needed.

        Every entry of the product (any batch) is replaced by the allocation
        plan, inserted where the first of them was. Quantities default to
        the current entry's. Unmet quantity is dropped and reported as a
        SHORTFALL outcome.
        """
        entries = self._entries
        current = entries.get(batch_id)
        source = self.resolve_batch(batch_id) if current else None
        if current is None or source is None:
            return self._reject("LINE_NOT_FOUND", batch_id=batch_id)

        product_key = source.product_key
        if target.product_key != product_key:
            return self._reject("PRODUCT_MISMATCH", batch_id=batch_id, target_id=target.id)

        pack_qty = current.pack_quantity if pack_qty is None else _decimal(pack_qty)
        unit_qty = current.unit_quantity if unit_qty is None else _decimal(unit_qty)

        batches = self.catalog.find_batches_by_product(*product_key)
        plan = self.allocator.plan_split(batches, target, pack_qty, unit_qty, discount=current.discount)

        kept: list[tuple[str, MergedEntry]] = []
        insert_at = None
        for bid, entry in entries.items():
            batch = self.resolve_batch(bid)
            if batch is not None and batch.product_key == product_key:
                if insert_at is None:
                    insert_at = len(kept)
                continue
            kept.append((bid, entry))
        if insert_at is None:
            insert_at = len(kept)

        planned = [(entry.batch_id, entry) for entry in plan.entries]
        new_entries = dict(kept[:insert_at] + planned + kept[insert_at:])
        for batch in batches:
            if batch.id in new_entries:
                self._known[batch.id] = batch
        if target.id in new_entries and target.id not in self._known:
            self._known[target.id] = target
        self._install(new_entries)

        if not plan.fulfilled:
            logger.info(
                "Batch switch for %s short by %s packs, %s units",
                product_key,
                plan.pack_shortfall,
                plan.unit_shortfall,
            )
            return Outcome.clamp(
                "SHORTFALL",
                batch_id=target.id,
                pack_shortfall=plan.pack_shortfall,
                unit_shortfall=plan.unit_shortfall,
            )
        return Outcome.ok(batch_id=target.id)

    # ======================================================================
    # PERSISTENCE
    # ======================================================================

    def dump(self) -> dict:
        """Plain, JSON-friendly representation of the cart state."""
        return {
            "order_discount": str(self._order_discount),
            "entries": [
                {
                    "batch_id": entry.batch_id,
                    "lines": [
                        {
                            "quantity": str(line.quantity),
                            "is_unit": line.is_unit,
                            "discount": str(line.discount),
                        }
                        for line in entry.lines
                    ],
                }
                for entry in self._entries.values()
            ],
        }

    @classmethod
    def load(
        cls,
        data: dict,
        catalog: CatalogBackend,
        pharmacart_settings: PharmacartSettings | None = None,
    ) -> "CartEngine":
        """
        Rebuild a cart from dump() output.

        Entries whose batch is gone, or whose quantities no longer fit
        the current stock, are dropped.
        """
        cart = cls(catalog, pharmacart_settings)
        entries: dict[str, MergedEntry] = {}
        for raw in data.get("entries", []):
            batch = catalog.find_batch_by_id(raw["batch_id"])
            if batch is None:
                logger.warning("Dropping cart entry for unknown batch %s", raw["batch_id"])
                continue
            entry = MergedEntry(batch.id)
            for raw_line in raw.get("lines", []):
                line = LineItem(
                    batch_id=batch.id,
                    quantity=Decimal(raw_line["quantity"]),
                    is_unit=bool(raw_line.get("is_unit", False)),
                    discount=Decimal(raw_line.get("discount", "0")),
                )
                entry = entry.with_slot(line.is_unit, line)
            if entry.is_empty:
                continue
            if units_of(entry, batch.units_per_pack) > batch.total_units:
                logger.warning("Dropping cart entry for batch %s: stock changed", batch.id)
                continue
            entries[batch.id] = entry
            cart._known[batch.id] = batch

        cart._install(entries, order_discount=Decimal(data.get("order_discount", "0")))
        return cart

    # ======================================================================
    # INTERNALS
    # ======================================================================

    def _fetch(self, batch_id: str) -> BatchInfo | None:
        """Catalog lookup; None on a miss."""
        batch = self.catalog.find_batch_by_id(batch_id)
        if batch is not None:
            self._known[batch_id] = batch
        return batch

    def _install(self, entries: dict[str, MergedEntry], order_discount: Decimal | None = None) -> None:
        self._entries = entries
        if order_discount is not None:
            self._order_discount = order_discount
        self._known = {bid: batch for bid, batch in self._known.items() if bid in entries}

    def _reject(self, code: str, **data) -> Outcome:
        logger.debug("Cart operation rejected: %s %s", code, data)
        return Outcome.reject(code, **data)
