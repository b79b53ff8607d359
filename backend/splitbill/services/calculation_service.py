from collections import defaultdict
from decimal import Decimal

from splitbill.utils.currency_utils import to_decimal, quantize_money

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def _as_decimal(value) -> Decimal:
    result = to_decimal(value)
    return result if result is not None else ZERO


def calculate_bill_totals(
    subtotal: Decimal,
    service_charge: Decimal,
    tax_rate: Decimal,
    discount: Decimal,
) -> dict[str, Decimal]:
    """
    The single bill-total formula used by every view and by the terminal.

    service = subtotal * service_charge% ; tax = (subtotal + service) * tax_rate%
    (tax compounds on the service charge) ; total = subtotal + service + tax - discount,
    floored at zero.
    """
    subtotal = _as_decimal(subtotal)
    discount = _as_decimal(discount)
    service_amount = subtotal * _as_decimal(service_charge) / HUNDRED
    tax_amount = (subtotal + service_amount) * _as_decimal(tax_rate) / HUNDRED
    total = max(ZERO, subtotal + service_amount + tax_amount - discount)
    return {
        "subtotal": subtotal,
        "service_charge": service_amount,
        "tax": tax_amount,
        "discount": discount,
        "total": total,
    }


def _field(obj, name):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def summarize_bill(items, service_charge, tax_rate, discount) -> dict[str, Decimal]:
    """Sum item totals (ORM rows, schemas or JSON dicts) and apply calculate_bill_totals."""
    subtotal = sum((_as_decimal(_field(item, "total")) for item in items), ZERO)
    return calculate_bill_totals(subtotal, service_charge, tax_rate, discount)


def participant_breakdown(items) -> list[dict]:
    """
    Per-participant share of the subtotal, from assignment amounts.
    Unassigned units are reported under name None.
    Order follows first appearance across items.
    """
    owed: dict[str | None, Decimal] = defaultdict(Decimal)
    paid: dict[str | None, Decimal] = defaultdict(Decimal)
    order: list[str | None] = []

    for item in items:
        assignments = _field(item, "assignments") or []
        for a in assignments:
            name = _field(a, "name")
            if name not in owed:
                order.append(name)
            amount = _as_decimal(_field(a, "amount"))
            owed[name] += amount
            if _field(a, "paid"):
                paid[name] += amount

        unassigned_units = int(_field(item, "quantity") or 0) - len(assignments)
        if unassigned_units > 0:
            if None not in owed:
                order.append(None)
            owed[None] += _as_decimal(_field(item, "amount")) * unassigned_units

    return [
        {
            "name": name,
            "amount": quantize_money(owed[name]),
            "paid": quantize_money(paid[name]),
        }
        for name in order
    ]
