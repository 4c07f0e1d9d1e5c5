"""Catalog protocols."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class BatchInfo:
    """A physical stock lot, as seen by the cart.

    Stock is expressed in packs and may be fractional once single units
    have been sold from an opened pack. units_per_pack == 1 means the
    batch has no unit mode.
    """

    id: str
    name: str
    price: Decimal
    cost_price: Decimal
    stock: Decimal
    expiry_date: date
    units_per_pack: int = 1
    dosage_form: str = ""
    category: str = ""
    max_discount: Decimal | None = None
    barcode: str | None = None
    internal_code: str | None = None

    def __post_init__(self):
        for name in ("price", "cost_price", "stock"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, Decimal(str(value)))
        if self.max_discount is not None and not isinstance(self.max_discount, Decimal):
            object.__setattr__(self, "max_discount", Decimal(str(self.max_discount)))
        if not self.units_per_pack or self.units_per_pack < 1:
            object.__setattr__(self, "units_per_pack", 1)

    @property
    def product_key(self) -> tuple[str, str]:
        """Product identity shared by every batch of the same item."""
        return (self.name, self.dosage_form or "")

    @property
    def has_dual_mode(self) -> bool:
        return self.units_per_pack > 1

    @property
    def total_units(self) -> Decimal:
        return self.stock * self.units_per_pack

    def unit_price(self, is_unit: bool) -> Decimal:
        """Price of one pack, or of one unit when is_unit is set."""
        if is_unit:
            return self.price / self.units_per_pack
        return self.price


@runtime_checkable
class CatalogBackend(Protocol):
    """Interface for read-only batch queries."""

    def find_batches_by_product(self, name: str, dosage_form: str = "") -> list[BatchInfo]:
        """Return every batch of a product."""
        ...

    def find_batch_by_id(self, batch_id: str) -> BatchInfo | None:
        """Return batch by id, or None."""
        ...
