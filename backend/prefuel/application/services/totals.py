"""Derived monetary fields owned by the store — quote amounts, invoice and PO totals.

All arithmetic runs on Decimal and is rounded half-up to whole paise, then
handed back as floats for the JSON snapshot.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

_CENT = Decimal("0.01")


def _dec(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    return Decimal(str(value))


def _money(value: Decimal) -> float:
    return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def line_total(qty: Any, price: Any) -> Decimal:
    return _dec(qty) * _dec(price)


def quote_amount(lines: Iterable[dict[str, Any]]) -> float:
    """Sum of qty × price over the quote lines."""
    return _money(sum((line_total(line.get("qty"), line.get("price")) for line in lines), Decimal(0)))


def invoice_totals(lines: Iterable[dict[str, Any]]) -> dict[str, float]:
    """Subtotal, tax and grand total. Tax is computed per line, then summed."""
    subtotal = Decimal(0)
    tax = Decimal(0)
    for line in lines:
        amount = line_total(line.get("qty"), line.get("price"))
        subtotal += amount
        tax += amount * _dec(line.get("taxPercent")) / 100
    subtotal_r = _money(subtotal)
    tax_r = _money(tax)
    return {
        "subtotal": subtotal_r,
        "tax": tax_r,
        "grandTotal": _money(_dec(subtotal_r) + _dec(tax_r)),
    }


def purchase_order_totals(lines: Iterable[dict[str, Any]]) -> dict[str, float]:
    quantity = 0
    cost = Decimal(0)
    for line in lines:
        quantity += int(line.get("qty") or 0)
        cost += line_total(line.get("qty"), line.get("unitCost"))
    return {"quantity": quantity, "cost": _money(cost)}


# ── Per-entity derivations (record → record, in place) ──────────────


def derive_quote(record: dict[str, Any]) -> None:
    record["amount"] = quote_amount(record.get("items") or [])


def derive_invoice(record: dict[str, Any]) -> None:
    lines = record.get("items") or []
    if lines:
        record["totals"] = invoice_totals(lines)
        record["amount"] = record["totals"]["grandTotal"]
    else:
        amount = _money(_dec(record.get("amount")))
        record["amount"] = amount
        record["totals"] = {"subtotal": amount, "tax": 0.0, "grandTotal": amount}


def derive_purchase_order(record: dict[str, Any]) -> None:
    record["totals"] = purchase_order_totals(record.get("items") or [])
