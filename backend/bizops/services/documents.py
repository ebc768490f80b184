from __future__ import annotations
"""Shared payload handling for invoice and purchase-order documents."""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from bizops.services.totals import LineTotals, line_totals, document_totals, money, MONEY_LIMIT, QUANTITY_LIMIT
from bizops.utils.validation import ValidationFailed, raise_validation_error, validate_payload, to_decimal, parse_date

MONEY_FIELDS = ('discount', 'shipping_cost', 'subtotal', 'total_amount')
TAX_RATE_LIMIT = Decimal('100')


def _dec(details: list, field: str, raw: Any, minimum: Optional[Decimal] = None, positive: bool = False,
         limit: Decimal = MONEY_LIMIT) -> Optional[Decimal]:
    try:
        value = to_decimal(raw)
    except ValueError:
        details.append({'field': field, 'message': f'"{field}" must be a number'})
        return None
    if positive and value <= 0:
        details.append({'field': field, 'message': f'"{field}" must be a positive number'})
        return None
    if minimum is not None and value < minimum:
        details.append({'field': field, 'message': f'"{field}" must be greater than or equal to {minimum}'})
        return None
    if abs(value) >= limit:
        details.append({'field': field, 'message': f'"{field}" must be less than {limit:f}'})
        return None
    return value


def _text(details: list, field: str, raw: Any, required: bool = False, max_len: int = 255) -> Optional[str]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            details.append({'field': field, 'message': f'"{field.rsplit(".", 1)[-1]}" is required'})
        return None
    if not isinstance(raw, str):
        details.append({'field': field, 'message': f'"{field}" must be a string'})
        return None
    value = raw.strip()
    if len(value) > max_len:
        details.append({'field': field, 'message': f'"{field}" length must be less than or equal to {max_len} characters long'})
        return None
    return value


def parse_lines(raw_items: Any, collection: str, with_tax: bool) -> List[Dict[str, Any]]:
    """Validate line items and fill ``amount``/``total_amount`` when the client omitted them.

    Raises ``ValidationFailed`` listing every bad field as ``<collection>[i].<field>``.
    """
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise_validation_error([{'field': collection, 'message': f'"{collection}" must be an array'}])
    details: list = []
    lines = []
    for idx, item in enumerate(raw_items):
        prefix = f'{collection}[{idx}]'
        if not isinstance(item, dict):
            details.append({'field': prefix, 'message': 'line item must be an object'})
            continue
        before = len(details)
        item_id = item.get('id')
        if item_id is not None and (isinstance(item_id, bool) or not isinstance(item_id, int)):
            details.append({'field': f'{prefix}.id', 'message': '"id" must be an integer'})
        product_name = _text(details, f'{prefix}.product_name', item.get('product_name'), required=True)
        description = _text(details, f'{prefix}.description', item.get('description'), max_len=500)
        quantity = _dec(details, f'{prefix}.quantity', item.get('quantity'), positive=True, limit=QUANTITY_LIMIT)
        rate = _dec(details, f'{prefix}.rate', item.get('rate'), minimum=Decimal('0'))
        tax_rate = None
        if with_tax:
            tax_rate = _dec(details, f'{prefix}.tax_rate', item.get('tax_rate') or 0, minimum=Decimal('0'),
                            limit=TAX_RATE_LIMIT)
        supplied = {}
        for field in ('amount', 'total_amount'):
            if item.get(field) not in (None, ''):
                supplied[field] = _dec(details, f'{prefix}.{field}', item[field], minimum=Decimal('0'))
        if len(details) > before:
            continue
        computed = line_totals(quantity, rate, tax_rate)
        if computed.total_amount >= MONEY_LIMIT:
            details.append({'field': f'{prefix}.amount', 'message': f'line total must be less than {MONEY_LIMIT:f}'})
            continue
        line = {
            'product_name': product_name,
            'description': description,
            'quantity': quantity,
            'rate': rate,
            'amount': money(supplied['amount']) if 'amount' in supplied else computed.amount,
            'total_amount': money(supplied['total_amount']) if 'total_amount' in supplied else computed.total_amount,
        }
        if with_tax:
            line['tax_rate'] = tax_rate
        if item_id is not None:
            line['id'] = item_id
        lines.append(line)
    if details:
        raise_validation_error(details)
    return lines


def header_money(data: Dict[str, Any], lines: List[Dict[str, Any]]) -> Dict[str, Decimal]:
    """Monetary header fields; subtotal/total default to the computed document totals."""
    details: list = []
    values: Dict[str, Optional[Decimal]] = {}
    for field in MONEY_FIELDS:
        raw = data.get(field)
        values[field] = None if raw in (None, '') else _dec(details, field, raw, minimum=Decimal('0'))
    if details:
        raise_validation_error(details)
    totals = document_totals(
        (LineTotals(ln['amount'], ln['total_amount'] - ln['amount'], ln['total_amount']) for ln in lines),
        discount=values['discount'],
        shipping_cost=values['shipping_cost'],
    )
    for field in ('subtotal', 'total_amount'):
        if values[field] is None and abs(getattr(totals, field)) >= MONEY_LIMIT:
            details.append({'field': field, 'message': f'"{field}" must be less than {MONEY_LIMIT:f}'})
    if details:
        raise_validation_error(details)
    return {
        'discount': totals.discount,
        'shipping_cost': totals.shipping_cost,
        'subtotal': money(values['subtotal']) if values['subtotal'] is not None else totals.subtotal,
        'total_amount': money(values['total_amount']) if values['total_amount'] is not None else totals.total_amount,
    }


def parse_optional_date(details: list, data: Dict[str, Any], field: str, required: bool = False):
    raw = data.get(field)
    if raw in (None, ''):
        if required:
            details.append({'field': field, 'message': f'"{field}" is required'})
        return None
    try:
        return parse_date(raw)
    except ValueError:
        details.append({'field': field, 'message': f'"{field}" must be a date (YYYY-MM-DD)'})
        return None


def read_header(data: Any, rules: Dict[str, Dict[str, Any]], required=()) -> tuple:
    """``validate_payload`` that hands back its field errors so callers can add their own."""
    if not isinstance(data, dict):
        raise_validation_error([{'field': '', 'message': 'request body must be a JSON object'}])
    try:
        return validate_payload(data, rules, required), []
    except ValidationFailed as e:
        return {}, list(e.details)
