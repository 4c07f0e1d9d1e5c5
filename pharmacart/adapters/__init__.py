"""Pharmacart adapters."""

from pharmacart.adapters.memory import InMemoryCatalogBackend

__all__ = [
    "InMemoryCatalogBackend",
]
