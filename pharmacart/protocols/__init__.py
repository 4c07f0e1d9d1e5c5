"""Pharmacart protocols."""

from pharmacart.protocols.catalog import BatchInfo, CatalogBackend
from pharmacart.protocols.sale import SaleRecorder

__all__ = [
    "BatchInfo",
    "CatalogBackend",
    "SaleRecorder",
]
