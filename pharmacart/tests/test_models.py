"""Tests for Pharmacart models."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from pharmacart.models import Batch, Sale, SaleLine

pytestmark = pytest.mark.django_db


@pytest.fixture
def batch():
    return Batch.objects.create(
        name="Panadol",
        dosage_form="Tablet",
        category="Analgesics",
        barcode="6221000000017",
        price_q=2000,
        cost_price_q=1000,
        stock=Decimal("4"),
        units_per_pack=10,
        expiry_date=date(2030, 1, 31),
    )


class TestBatch:
    def test_str(self, batch):
        assert str(batch) == "Panadol (Tablet) - exp 01/2030"

    def test_prices(self, batch):
        assert batch.price == Decimal("20")
        assert batch.cost_price == Decimal("10")

    def test_price_setter(self, batch):
        batch.price = Decimal("12.345")
        assert batch.price_q == 1235

    def test_margin_percent(self, batch):
        assert batch.margin_percent == Decimal("50.0")

    def test_margin_percent_without_price(self, batch):
        batch.price_q = 0
        assert batch.margin_percent is None

    def test_max_discount_effective(self, batch):
        assert batch.max_discount_effective == Decimal("10")

        batch.cost_price_q = 1900
        assert batch.max_discount_effective == Decimal("2")

        batch.max_discount = Decimal("4")
        assert batch.max_discount_effective == Decimal("4")

    def test_max_discount_effective_follows_settings(self, batch, settings):
        settings.PHARMACART = {"DEFAULT_MAX_DISCOUNT": 15}
        assert batch.max_discount_effective == Decimal("15")

        # 50% margin counts as low once the threshold is raised to 60%.
        settings.PHARMACART = {"LOW_MARGIN_THRESHOLD": "0.60"}
        assert batch.max_discount_effective == Decimal("25")

    def test_is_expired(self, batch):
        assert not batch.is_expired
        batch.expiry_date = date.today() - timedelta(days=1)
        assert batch.is_expired

    def test_to_info(self, batch):
        info = batch.to_info()

        assert info.id == str(batch.pk)
        assert info.product_key == ("Panadol", "Tablet")
        assert info.price == Decimal("20")
        assert info.stock == Decimal("4")
        assert info.has_dual_mode
        assert info.barcode == "6221000000017"
        assert info.internal_code is None

    def test_history_tracks_stock(self, batch):
        batch.stock = Decimal("3.5")
        batch.save()

        assert batch.history.count() == 2
        assert batch.history.first().stock == Decimal("3.5")


class TestBatchQuerySet:
    def test_for_product_orders_by_expiry(self, batch):
        earlier = Batch.objects.create(
            name="Panadol", dosage_form="Tablet", price_q=2000, stock=1, expiry_date=date(2029, 6, 30)
        )
        Batch.objects.create(name="Panadol", dosage_form="Syrup", price_q=3000, stock=1, expiry_date=date(2028, 1, 1))

        assert list(Batch.objects.for_product("Panadol", "Tablet")) == [earlier, batch]

    def test_in_stock(self, batch):
        empty = Batch.objects.create(name="Zyrtec", stock=0, expiry_date=date(2030, 1, 1))

        assert batch in Batch.objects.in_stock()
        assert empty not in Batch.objects.in_stock()

    def test_expired(self, batch):
        old = Batch.objects.create(name="Zyrtec", stock=1, expiry_date=date(2020, 1, 1))

        assert list(Batch.objects.expired()) == [old]


class TestSale:
    def test_lines_survive_batch_deletion(self, batch):
        sale = Sale.objects.create(customer_name="Guest Customer", total_q=4000)
        SaleLine.objects.create(sale=sale, batch=batch, name="Panadol", quantity=Decimal("2"), total_q=4000)

        batch.delete()

        line = sale.lines.get()
        assert line.batch is None
        assert line.name == "Panadol"
        assert sale.total == Decimal("40")
        assert sale.status == "completed"
