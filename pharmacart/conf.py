"""
Pharmacart configuration.

Usage in settings.py:
    PHARMACART = {
        "MAX_SESSIONS": 10,
        "DELIVERY_FEE": "5.00",
        "DEFAULT_MAX_DISCOUNT": 10,
        "LOW_MARGIN_THRESHOLD": "0.20",
        "SALE_RECORDER": "pharmacart.adapters.sale_recorder.DjangoSaleRecorder",
    }

Settings objects are plain values: build one with get_pharmacart_settings()
(or PharmacartSettings(...) directly) and hand it to SessionManager,
CartEngine and CheckoutService. Nothing here is cached per process.
"""

import importlib
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class PharmacartSettings:
    """Pharmacart configuration settings."""

    MAX_SESSIONS: int = 10
    DELIVERY_FEE: Decimal = Decimal("5")
    DEFAULT_MAX_DISCOUNT: Decimal = Decimal("10")
    LOW_MARGIN_THRESHOLD: Decimal = Decimal("0.20")
    DEFAULT_CUSTOMER_NAME: str = "Guest Customer"
    CATALOG_BACKEND: str | None = "pharmacart.adapters.catalog_backend.DjangoCatalogBackend"
    SALE_RECORDER: str | None = None

    def __post_init__(self):
        # Settings files often carry floats or strings for money values.
        self.DELIVERY_FEE = Decimal(str(self.DELIVERY_FEE))
        self.DEFAULT_MAX_DISCOUNT = Decimal(str(self.DEFAULT_MAX_DISCOUNT))
        self.LOW_MARGIN_THRESHOLD = Decimal(str(self.LOW_MARGIN_THRESHOLD))
        self.MAX_SESSIONS = int(self.MAX_SESSIONS)
        if self.MAX_SESSIONS < 1:
            from pharmacart.exceptions import CartError

            raise CartError("INVALID_SETTING", "MAX_SESSIONS must be at least 1", setting="MAX_SESSIONS")


def get_pharmacart_settings() -> PharmacartSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PHARMACART", {})
    return PharmacartSettings(**user_settings)


def import_backend(path: str) -> Any:
    """Instantiate the class at a dotted path (e.g. "pkg.module.ClassName")."""
    module_path, cls_name = path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, cls_name)
    return cls()


def get_catalog_backend(pharmacart_settings: PharmacartSettings | None = None):
    """Return a new instance of the configured CatalogBackend, or None."""
    conf = pharmacart_settings or get_pharmacart_settings()
    if not conf.CATALOG_BACKEND:
        return None
    return import_backend(conf.CATALOG_BACKEND)


def get_sale_recorder(pharmacart_settings: PharmacartSettings | None = None):
    """Return a new instance of the configured SaleRecorder, or None."""
    conf = pharmacart_settings or get_pharmacart_settings()
    if not conf.SALE_RECORDER:
        return None
    return import_backend(conf.SALE_RECORDER)
