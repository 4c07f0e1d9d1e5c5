"""Tests for the discount policy and discount operations of the cart."""

from decimal import Decimal

from pharmacart.cart import OutcomeStatus
from pharmacart.discounts import clamp_discount, effective_max_discount, margin, margin_percent
from pharmacart.tests.conftest import make_batch


class TestEffectiveMaxDiscount:
    def test_explicit_max_discount_wins(self):
        batch = make_batch("b1", price="100", cost_price="95", max_discount=Decimal("7"))
        assert effective_max_discount(batch) == Decimal("7")

    def test_zero_max_discount_falls_back_to_margin(self):
        """max_discount of 0 counts as unset."""
        batch = make_batch("b1", price="100", cost_price="50", max_discount=Decimal("0"))
        assert effective_max_discount(batch) == Decimal("10")

    def test_low_margin_cap(self):
        """Price 100, cost 95: margin 5%, ceiling floor(5 / 2) = 2."""
        batch = make_batch("b1", price="100", cost_price="95")
        assert effective_max_discount(batch) == Decimal("2")

    def test_default_ceiling_for_healthy_margin(self):
        batch = make_batch("b1", price="100", cost_price="60")
        assert effective_max_discount(batch) == Decimal("10")

    def test_threshold_is_exclusive(self):
        """Exactly 20% margin is not low margin."""
        batch = make_batch("b1", price="100", cost_price="80")
        assert effective_max_discount(batch) == Decimal("10")

    def test_negative_margin_gives_zero(self):
        batch = make_batch("b1", price="100", cost_price="120")
        assert effective_max_discount(batch) == Decimal("0")

    def test_zero_price_gives_zero(self):
        batch = make_batch("b1", price="0", cost_price="0")
        assert margin(batch) == Decimal("0")
        assert effective_max_discount(batch) == Decimal("0")

    def test_custom_default_and_threshold(self):
        batch = make_batch("b1", price="100", cost_price="70")
        assert effective_max_discount(batch, default_max=Decimal("15")) == Decimal("15")
        assert effective_max_discount(batch, low_margin_threshold=Decimal("0.40")) == Decimal("15")

    def test_margin_percent(self):
        batch = make_batch("b1", price="30", cost_price="20")
        assert margin_percent(batch) == Decimal("33.3")


class TestClampDiscount:
    def test_within_range(self):
        assert clamp_discount(5, Decimal("10")) == Decimal("5")

    def test_above_ceiling(self):
        assert clamp_discount(25, Decimal("10")) == Decimal("10")

    def test_negative(self):
        assert clamp_discount(-3, Decimal("10")) == Decimal("0")

    def test_never_above_hundred(self):
        assert clamp_discount(150, Decimal("120")) == Decimal("100")


class TestSetLineDiscount:
    def test_applies_within_ceiling(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)
        outcome = cart.set_line_discount("amox-1", 5)

        assert outcome.status == OutcomeStatus.APPLIED
        assert cart.get_line("amox-1", False).discount == Decimal("5")

    def test_low_margin_request_is_clamped(self, catalog, cart):
        """Requesting 10% on a 5% margin batch clamps to 2%."""
        batch = make_batch("thin", name="Zyrtec", price="100", cost_price="95")
        catalog.put(batch)
        cart.add_line(batch, quantity=1)

        outcome = cart.set_line_discount("thin", 10)

        assert outcome.status == OutcomeStatus.CLAMPED
        assert outcome.code == "DISCOUNT_CAPPED"
        assert outcome.data["max_discount"] == Decimal("2")
        assert cart.get_line("thin", False).discount == Decimal("2")

    def test_result_always_within_bounds(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)
        for requested in (-50, 0, 3, 10, 11, 99, 1000):
            cart.set_line_discount("amox-1", requested)
            assert Decimal("0") <= cart.get_line("amox-1", False).discount <= Decimal("10")

    def test_both_slots_by_default(self, cart, dual_batch):
        cart.add_line(dual_batch, quantity=1)
        cart.add_line(dual_batch, is_unit=True, quantity=3)

        cart.set_line_discount("pan-1", 4)

        entry = cart.get_entry("pan-1")
        assert entry.pack.discount == Decimal("4")
        assert entry.unit.discount == Decimal("4")

    def test_single_slot(self, cart, dual_batch):
        cart.add_line(dual_batch, quantity=1)
        cart.add_line(dual_batch, is_unit=True, quantity=3)

        cart.set_line_discount("pan-1", 4, is_unit=True)

        entry = cart.get_entry("pan-1")
        assert entry.pack.discount == Decimal("0")
        assert entry.unit.discount == Decimal("4")

    def test_missing_line(self, cart):
        outcome = cart.set_line_discount("nope", 5)
        assert outcome.rejected
        assert outcome.code == "LINE_NOT_FOUND"

    def test_ceiling_follows_catalog_price(self, catalog, cart, single_batch):
        """The ceiling is read from the current catalog record."""
        cart.add_line(single_batch, quantity=1)
        catalog.put(make_batch("amox-1", name="Amoxil", dosage_form="Capsule", price="50", cost_price="48"))

        cart.set_line_discount("amox-1", 10)

        # margin 4% -> ceiling 2
        assert cart.get_line("amox-1", False).discount == Decimal("2")


class TestToggleMaxDiscount:
    def test_toggle_on_and_off(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)

        cart.toggle_max_discount("amox-1")
        assert cart.get_entry("amox-1").discount == Decimal("10")

        cart.toggle_max_discount("amox-1")
        assert cart.get_entry("amox-1").discount == Decimal("0")

    def test_missing_line(self, cart):
        assert cart.toggle_max_discount("nope").code == "LINE_NOT_FOUND"


class TestMutualExclusivity:
    def test_line_discount_clears_order_discount(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)
        cart.set_order_discount(15)

        cart.set_line_discount("amox-1", 5)

        assert cart.order_discount == Decimal("0")
        assert cart.get_line("amox-1", False).discount == Decimal("5")

    def test_order_discount_clears_line_discounts(self, cart, single_batch, dual_batch):
        cart.add_line(single_batch, quantity=1)
        cart.add_line(dual_batch, quantity=1)
        cart.set_line_discount("amox-1", 5)
        cart.set_line_discount("pan-1", 8)

        cart.set_order_discount(12)

        assert cart.order_discount == Decimal("12")
        assert all(line.discount == 0 for line in cart.lines())

    def test_zero_line_discount_keeps_order_discount(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)
        cart.set_order_discount(15)

        cart.set_line_discount("amox-1", 0)

        assert cart.order_discount == Decimal("15")

    def test_zero_order_discount_keeps_line_discounts(self, cart, single_batch):
        cart.add_line(single_batch, quantity=1)
        cart.set_line_discount("amox-1", 5)

        cart.set_order_discount(0)

        assert cart.get_line("amox-1", False).discount == Decimal("5")

    def test_order_discount_clamped_to_hundred(self, cart):
        outcome = cart.set_order_discount(150)

        assert outcome.status == OutcomeStatus.CLAMPED
        assert cart.order_discount == Decimal("100")
