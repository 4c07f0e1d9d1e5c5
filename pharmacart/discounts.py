"""
Discount policy.

A line discount is capped by the batch's effective maximum:

    - explicit max_discount on the batch, when set and positive
    - otherwise floor(margin% / 2) for low-margin batches (margin < 20%)
    - otherwise the default ceiling (10%)

Only one discount mechanism is active per order: a line discount above
zero clears the order discount and vice versa (enforced by CartEngine).
"""

from decimal import ROUND_FLOOR, Decimal

from pharmacart.protocols import BatchInfo

DEFAULT_MAX_DISCOUNT = Decimal("10")
LOW_MARGIN_THRESHOLD = Decimal("0.20")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def margin(batch: BatchInfo) -> Decimal:
    """Profit margin as a fraction of the sale price (0 when price <= 0)."""
    if batch.price <= 0:
        return ZERO
    return (batch.price - batch.cost_price) / batch.price


def margin_percent(batch: BatchInfo) -> Decimal:
    return (margin(batch) * HUNDRED).quantize(Decimal("0.1"))


def effective_max_discount(
    batch: BatchInfo,
    default_max: Decimal = DEFAULT_MAX_DISCOUNT,
    low_margin_threshold: Decimal = LOW_MARGIN_THRESHOLD,
) -> Decimal:
    """
    Return the discount ceiling (percent) for a batch.

    Must be recomputed whenever price or cost may have changed.
    """
    if batch.max_discount is not None and batch.max_discount > 0:
        return Decimal(batch.max_discount)

    batch_margin = margin(batch)
    if batch_margin < low_margin_threshold:
        ceiling = (batch_margin * HUNDRED / 2).to_integral_value(rounding=ROUND_FLOOR)
        # Selling below cost leaves no room for a discount.
        return max(ceiling, ZERO)
    return Decimal(default_max)


def clamp_discount(requested, ceiling: Decimal) -> Decimal:
    """Clamp a requested discount into [0, ceiling] (never above 100%)."""
    requested = Decimal(str(requested))
    return min(max(requested, ZERO), ceiling, HUNDRED)
