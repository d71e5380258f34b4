"""Billing calculator: part totals, advance deduction, delivery validation.

Amounts are held as integer minor units (paise) and only formatted to
two-decimal strings at the edges, so repeated additions never drift.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from repairdesk.errors import ValidationError


def to_minor_units(value) -> int:
    """Parse a decimal amount ("150", 150, 99.5, "100.25") into minor units.

    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a valid amount: {value!r}")
    text = str(value).strip() if value is not None else ""
    try:
        amount = Decimal(text or "0")
    except InvalidOperation:
        raise ValueError(f"Not a valid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_minor_units(units: int) -> str:
    sign = "-" if units < 0 else ""
    units = abs(units)
    return f"{sign}{units // 100}.{units % 100:02d}"


def _field(part, name: str):
    if isinstance(part, Mapping):
        return part.get(name)
    return getattr(part, name, None)


@dataclass(frozen=True)
class DeliveryTotals:
    total_minor: int
    final_minor: int

    @property
    def total_amount(self) -> str:
        return format_minor_units(self.total_minor)

    @property
    def final_amount(self) -> str:
        return format_minor_units(self.final_minor)


def line_amount_minor(part) -> int:
    """quantity × price for one part, in minor units."""
    quantity = _field(part, "quantity")
    if quantity is None:
        quantity = 1
    if isinstance(quantity, bool) or int(quantity) != quantity or quantity < 1:
        raise ValidationError(f"Part quantity must be a whole number >= 1, got {quantity!r}")
    try:
        price = to_minor_units(_field(part, "price"))
    except ValueError as e:
        raise ValidationError(str(e))
    if price < 0:
        raise ValidationError("Part price must not be negative")
    return int(quantity) * price


def compute_delivery(parts: Iterable, advance_cash) -> DeliveryTotals:
    """total = Σ quantity × price; final = total − advance (may go negative)."""
    try:
        advance = to_minor_units(advance_cash)
    except ValueError as e:
        raise ValidationError(str(e))
    if advance < 0:
        raise ValidationError("Advance cash must not be negative")
    total = sum(line_amount_minor(p) for p in parts)
    return DeliveryTotals(total_minor=total, final_minor=total - advance)


def validate_delivery(delivery_date: str, parts: Iterable) -> None:
    """Precondition for pending -> delivered."""
    if not (delivery_date or "").strip():
        raise ValidationError("Please fill delivery date")
    for i, part in enumerate(parts, 1):
        if not (_field(part, "description") or "").strip():
            raise ValidationError(f"Part {i} needs a description")
        try:
            price = to_minor_units(_field(part, "price"))
        except ValueError as e:
            raise ValidationError(str(e))
        if price <= 0:
            raise ValidationError(f"Part {i} needs a valid price")
