"""
In-memory CatalogBackend.

Holds BatchInfo records in a dict. Useful for tests, demos and for
projects whose catalog lives in another service and is mirrored in
process:

    catalog = InMemoryCatalogBackend([
        BatchInfo(id="b1", name="Panadol", dosage_form="Tablet", ...),
    ])
    manager = SessionManager(catalog)
"""

from typing import Iterable

from pharmacart.protocols import BatchInfo, CatalogBackend


class InMemoryCatalogBackend:
    """CatalogBackend over a dict of BatchInfo records, keyed by id."""

    def __init__(self, batches: Iterable[BatchInfo] = ()) -> None:
        self._batches: dict[str, BatchInfo] = {}
        for batch in batches:
            self.put(batch)

    def __len__(self) -> int:
        return len(self._batches)

    def put(self, batch: BatchInfo) -> None:
        """Add or replace a batch (e.g. after a stock or price change)."""
        self._batches[batch.id] = batch

    def remove(self, batch_id: str) -> BatchInfo | None:
        return self._batches.pop(batch_id, None)

    def find_batches_by_product(self, name: str, dosage_form: str = "") -> list[BatchInfo]:
        key = (name, dosage_form or "")
        return [batch for batch in self._batches.values() if batch.product_key == key]

    def find_batch_by_id(self, batch_id: str) -> BatchInfo | None:
        return self._batches.get(batch_id)


# Verify implementation at import time
if not isinstance(InMemoryCatalogBackend(), CatalogBackend):
    raise TypeError("InMemoryCatalogBackend does not implement CatalogBackend protocol")
