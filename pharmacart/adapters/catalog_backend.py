"""CatalogBackend implementation over the Batch model."""

from pharmacart.models import Batch
from pharmacart.protocols import BatchInfo, CatalogBackend


class DjangoCatalogBackend:
    """
    CatalogBackend reading batches from the database.

    Batch ids are the primary keys as strings. Every call hits the
    database, so carts always see current price, cost and stock.
    """

    def find_batches_by_product(self, name: str, dosage_form: str = "") -> list[BatchInfo]:
        """Return every batch of a product, earliest expiry first."""
        return [batch.to_info() for batch in Batch.objects.for_product(name, dosage_form)]

    def find_batch_by_id(self, batch_id: str) -> BatchInfo | None:
        """Return batch by id, or None."""
        if not str(batch_id).isdigit():
            return None
        batch = Batch.objects.filter(pk=int(batch_id)).first()
        return batch.to_info() if batch else None


# Verify implementation at import time
if not isinstance(DjangoCatalogBackend(), CatalogBackend):
    raise TypeError("DjangoCatalogBackend does not implement CatalogBackend protocol")
