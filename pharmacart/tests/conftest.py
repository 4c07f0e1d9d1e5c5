"""Pytest fixtures for Pharmacart tests."""

from datetime import date
from decimal import Decimal

import pytest

from pharmacart.adapters.memory import InMemoryCatalogBackend
from pharmacart.cart import CartEngine
from pharmacart.conf import PharmacartSettings
from pharmacart.protocols import BatchInfo
from pharmacart.sessions import SessionManager


def make_batch(
    id,
    name="Panadol",
    dosage_form="Tablet",
    price="20",
    cost_price="10",
    stock="5",
    expiry_date=date(2026, 6, 30),
    units_per_pack=1,
    **extra,
):
    """Build a BatchInfo with sensible defaults (50% margin)."""
    return BatchInfo(
        id=id,
        name=name,
        dosage_form=dosage_form,
        price=Decimal(price),
        cost_price=Decimal(cost_price),
        stock=Decimal(stock),
        expiry_date=expiry_date,
        units_per_pack=units_per_pack,
        **extra,
    )


@pytest.fixture
def pharmacart_settings():
    """Default settings, independent of Django settings."""
    return PharmacartSettings()


@pytest.fixture
def single_batch():
    """Pack-only batch: 5 packs of Amoxil at 50.00."""
    return make_batch(
        "amox-1",
        name="Amoxil",
        dosage_form="Capsule",
        price="50",
        cost_price="25",
        stock="5",
        expiry_date=date(2026, 3, 31),
    )


@pytest.fixture
def dual_batch():
    """Dual-mode batch: 4 packs of 10 tablets at 20.00 per pack."""
    return make_batch("pan-1", stock="4", units_per_pack=10, expiry_date=date(2026, 1, 31))


@pytest.fixture
def catalog(single_batch, dual_batch):
    return InMemoryCatalogBackend([single_batch, dual_batch])


@pytest.fixture
def cart(catalog, pharmacart_settings):
    return CartEngine(catalog, pharmacart_settings)


@pytest.fixture
def manager(catalog, pharmacart_settings):
    return SessionManager(catalog, pharmacart_settings)
