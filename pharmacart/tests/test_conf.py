"""Tests for settings loading, backend imports and CartError."""

from decimal import Decimal

import pytest

from pharmacart.adapters.memory import InMemoryCatalogBackend
from pharmacart.cart import CartEngine, Outcome
from pharmacart.conf import (
    PharmacartSettings,
    get_catalog_backend,
    get_pharmacart_settings,
    get_sale_recorder,
    import_backend,
)
from pharmacart.exceptions import ERROR_MESSAGES, CartError
from pharmacart.service import CheckoutService
from pharmacart.sessions import SessionManager


class TestPharmacartSettings:
    def test_defaults(self):
        conf = PharmacartSettings()

        assert conf.MAX_SESSIONS == 10
        assert conf.DELIVERY_FEE == Decimal("5")
        assert conf.DEFAULT_MAX_DISCOUNT == Decimal("10")
        assert conf.LOW_MARGIN_THRESHOLD == Decimal("0.20")
        assert conf.DEFAULT_CUSTOMER_NAME == "Guest Customer"
        assert conf.SALE_RECORDER is None

    def test_coerces_values(self):
        conf = PharmacartSettings(MAX_SESSIONS="3", DELIVERY_FEE=7.5, LOW_MARGIN_THRESHOLD="0.25")

        assert conf.MAX_SESSIONS == 3
        assert conf.DELIVERY_FEE == Decimal("7.5")
        assert conf.LOW_MARGIN_THRESHOLD == Decimal("0.25")

    def test_max_sessions_must_be_positive(self):
        with pytest.raises(CartError) as exc:
            PharmacartSettings(MAX_SESSIONS=0)

        assert exc.value.code == "INVALID_SETTING"
        assert exc.value.data["setting"] == "MAX_SESSIONS"

    def test_unknown_key(self):
        with pytest.raises(TypeError):
            PharmacartSettings(MAX_TABS=3)

    def test_reads_django_settings(self, settings):
        settings.PHARMACART = {"MAX_SESSIONS": 4, "DEFAULT_CUSTOMER_NAME": "Walk-in"}

        conf = get_pharmacart_settings()

        assert conf.MAX_SESSIONS == 4
        assert conf.DEFAULT_CUSTOMER_NAME == "Walk-in"

    def test_not_cached(self, settings):
        settings.PHARMACART = {"MAX_SESSIONS": 4}
        assert get_pharmacart_settings().MAX_SESSIONS == 4

        settings.PHARMACART = {"MAX_SESSIONS": 6}
        assert get_pharmacart_settings().MAX_SESSIONS == 6

    def test_engines_use_their_own_settings(self):
        """Two carts with different settings do not interfere."""
        catalog = InMemoryCatalogBackend()
        strict = CartEngine(catalog, PharmacartSettings(DEFAULT_MAX_DISCOUNT=3))
        loose = CartEngine(catalog, PharmacartSettings(DEFAULT_MAX_DISCOUNT=15))

        assert strict.settings.DEFAULT_MAX_DISCOUNT == Decimal("3")
        assert loose.settings.DEFAULT_MAX_DISCOUNT == Decimal("15")


class TestBackends:
    def test_import_backend(self):
        backend = import_backend("pharmacart.adapters.memory.InMemoryCatalogBackend")
        assert isinstance(backend, InMemoryCatalogBackend)

    def test_new_instance_each_time(self):
        conf = PharmacartSettings(CATALOG_BACKEND="pharmacart.adapters.memory.InMemoryCatalogBackend")
        assert get_catalog_backend(conf) is not get_catalog_backend(conf)

    def test_no_catalog_backend(self):
        assert get_catalog_backend(PharmacartSettings(CATALOG_BACKEND=None)) is None

    def test_no_sale_recorder(self):
        assert get_sale_recorder(PharmacartSettings()) is None

    def test_configured_sale_recorder(self):
        from pharmacart.adapters.sale_recorder import DjangoSaleRecorder

        conf = PharmacartSettings(SALE_RECORDER="pharmacart.adapters.sale_recorder.DjangoSaleRecorder")
        assert isinstance(get_sale_recorder(conf), DjangoSaleRecorder)


class TestCartError:
    def test_default_message(self):
        err = CartError("ORDER_NOT_ELIGIBLE")

        assert err.code == "ORDER_NOT_ELIGIBLE"
        assert err.message == "Order is not eligible for checkout"
        assert str(err) == "[ORDER_NOT_ELIGIBLE] Order is not eligible for checkout"

    def test_custom_message(self):
        assert CartError("STOCK_CONFLICT", "Batch 7 is short").message == "Batch 7 is short"

    def test_as_dict(self):
        data = CartError("STOCK_CONFLICT", batch_id="7").as_dict()

        assert data["code"] == "STOCK_CONFLICT"
        assert data["data"] == {"batch_id": "7"}

    def test_properties(self):
        err = CartError("SESSION_NOT_FOUND", session_id="abc")

        assert err.session_id == "abc"
        assert err.batch_id is None


class TestOutcome:
    def test_messages_share_error_codes(self):
        outcome = Outcome.reject("INSUFFICIENT_STOCK", batch_id="b1")

        assert outcome.rejected
        assert not outcome.applied
        assert outcome.message == ERROR_MESSAGES["INSUFFICIENT_STOCK"]

    def test_clamped_counts_as_applied(self):
        outcome = Outcome.clamp("DISCOUNT_CAPPED")
        assert outcome.applied
        assert not outcome.rejected

    def test_ok_has_no_message(self):
        assert Outcome.ok().message is None


class TestPackageExports:
    def test_lazy_exports(self):
        import pharmacart

        assert pharmacart.SessionManager is SessionManager
        assert pharmacart.CheckoutService is CheckoutService
        assert pharmacart.CartError is CartError
        with pytest.raises(AttributeError):
            pharmacart.Cart

    def test_usage_example(self, manager, pharmacart_settings):
        catalog = manager.catalog
        manager.active.cart.add_product(catalog.find_batches_by_product("Panadol", "Tablet"), quantity=2)

        order = CheckoutService(pharmacart_settings).checkout(manager, payment_method="cash")

        assert order.total == Decimal("40.00")
        assert order.payment_method == "cash"
