"""Line-item and document totals for invoices and purchase orders.

line amount = quantity * rate; line tax = amount * tax_rate;
document total = subtotal - discount + tax + shipping. Amounts are rounded
half-up to two places.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

CENT = Decimal('0.01')
ZERO = Decimal('0')
# Numeric(14, 2) money columns and Numeric(12, 3) quantities
MONEY_LIMIT = Decimal('1e12')
QUANTITY_LIMIT = Decimal('1e9')


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineTotals:
    amount: Decimal
    tax: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal


def line_totals(quantity: Decimal, rate: Decimal, tax_rate: Optional[Decimal] = None) -> LineTotals:
    amount = money(quantity * rate)
    tax = money(amount * (tax_rate or ZERO))
    return LineTotals(amount=amount, tax=tax, total_amount=amount + tax)


def document_totals(lines: Iterable[LineTotals], discount: Optional[Decimal] = None, shipping_cost: Optional[Decimal] = None) -> DocumentTotals:
    lines = list(lines)
    subtotal = sum((ln.amount for ln in lines), ZERO)
    tax = sum((ln.tax for ln in lines), ZERO)
    discount = money(discount or ZERO)
    shipping_cost = money(shipping_cost or ZERO)
    return DocumentTotals(
        subtotal=money(subtotal),
        tax=money(tax),
        discount=discount,
        shipping_cost=shipping_cost,
        total_amount=money(subtotal - discount + tax + shipping_cost),
    )
