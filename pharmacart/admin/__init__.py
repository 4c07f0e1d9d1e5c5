"""Pharmacart admin."""

from pharmacart.admin.batch import BatchAdmin
from pharmacart.admin.sale import SaleAdmin, SaleLineInline

__all__ = [
    "BatchAdmin",
    "SaleAdmin",
    "SaleLineInline",
]
