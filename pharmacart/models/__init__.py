"""Pharmacart models."""

from pharmacart.models.batch import Batch
from pharmacart.models.sale import Sale, SaleLine

__all__ = [
    "Batch",
    "Sale",
    "SaleLine",
]
