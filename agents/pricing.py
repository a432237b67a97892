"""
Promotional pricing policy for expiring stock.

The flash-sale markdown is capped so that a pharmacy keeps the margin mandated
upstream of this engine. The policy never looks at cost price; guaranteeing
enough headroom between cost and selling price is the caller's job.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MAX_DISCOUNT_RATE = Decimal("0.15")
_WHOLE_UNIT = Decimal("1")


def _to_money(value: Decimal | float | int | str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Price must be numeric, got {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Price must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"Price must be non-negative, got {value!r}")
    return amount


def compute_promotional_price(
    selling_price: Decimal | float | int | str,
    discount_rate: Decimal | float | str = MAX_DISCOUNT_RATE,
) -> Decimal:
    """
    Return the flash-sale price for ``selling_price``.

    The discount is at most MAX_DISCOUNT_RATE (15%) and the result is rounded to
    the nearest whole currency unit, halves rounding up. For any non-negative
    finite input the result lies in ``[0, selling_price]``. Prices below one
    whole unit are returned unchanged, since rounding would mark them down to 0;
    when rounding would land above a fractional price, the price is also
    returned unchanged. Low single-unit prices can still lose more than 15%
    to rounding (1.5 -> 1), within half a unit of the cap.

    Examples:
        compute_promotional_price(1000) -> Decimal("850")
        compute_promotional_price(333)  -> Decimal("283")   # 333 - 49.95 = 283.05
    """
    price = _to_money(selling_price)
    try:
        rate = Decimal(str(discount_rate))
    except InvalidOperation as e:
        raise ValueError(f"Discount rate must be numeric, got {discount_rate!r}") from e
    if not rate.is_finite() or rate < 0 or rate > MAX_DISCOUNT_RATE:
        raise ValueError(
            f"Discount rate must be within [0, {MAX_DISCOUNT_RATE}], got {discount_rate!r}"
        )
    if price < _WHOLE_UNIT:
        return price
    discounted = (price - price * rate).quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)
    # Rounding up can overshoot a fractional price below 3 units; never mark up.
    return min(discounted, price)


def discount_amount(
    selling_price: Decimal | float | int | str,
    discount_rate: Decimal | float | str = MAX_DISCOUNT_RATE,
) -> Decimal:
    """Effective markdown after rounding (selling price minus promotional price)."""
    price = _to_money(selling_price)
    return price - compute_promotional_price(price, discount_rate)
