from __future__ import annotations
import logging
from flask import Blueprint, request, abort
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from bizops import get_db
from bizops.constants.permissions import Perm
from bizops.decorators.auth import require_permission
from bizops.decorators.audit import audit_log
from bizops.models.invoice import Invoice, InvoiceItem
from bizops.services.documents import parse_lines, header_money, parse_optional_date, read_header
from bizops.utils.filters import apply_filters
from bizops.utils.listing import list_response
from bizops.utils.sorting import apply_multi_sort
from bizops.utils.serialization import model_to_dict
from bizops.utils.validation import raise_validation_error

inv_bp = Blueprint('invoices', __name__)
logger = logging.getLogger(__name__)

INVOICE_RULES = {
    'customer_name': {'type': str, 'max': 255},
    'customer_address': {'type': str, 'max': 500, 'nullable': True},
    'invoice_number': {'type': str, 'max': 64},
    'payment_terms': {'type': str, 'max': 64, 'nullable': True},
    'status': {'type': str, 'max': 32, 'nullable': True},
    'memo': {'type': str, 'max': 1000, 'nullable': True},
    'currency': {'type': str, 'max': 8},
    'customer_id': {'type': int, 'nullable': True},
}


def _invoice_json(inv: Invoice):
    body = model_to_dict(inv)
    body['invoice_items'] = [model_to_dict(it) for it in inv.items]
    return body


@inv_bp.get('/invoices')
@require_permission(Perm.FINANCIAL_VIEW)
def list_invoices():
    session = get_db()
    q = session.query(Invoice).options(selectinload(Invoice.items))
    filter_specs = {
        'customer_name': {'op': lambda qu, v: qu.filter(Invoice.customer_name.ilike(f'%{v}%'))},
        'status': {'op': lambda qu, v: qu.filter(Invoice.status == v)},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'invoice_date': Invoice.invoice_date,
        'due_date': Invoice.due_date,
        'total_amount': Invoice.total_amount,
        'invoice_number': Invoice.invoice_number,
        'id': Invoice.id,
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Invoice.id.desc(), default=(Invoice.invoice_date.desc(),))
    return list_response(q, _invoice_json)


@inv_bp.get('/invoices/<int:invoice_id>')
@require_permission(Perm.FINANCIAL_VIEW)
def get_invoice(invoice_id: int):
    inv = get_db().execute(select(Invoice).where(Invoice.id == invoice_id)).scalar_one_or_none()
    if not inv:
        abort(404, description='Invoice not found')
    return _invoice_json(inv)


@inv_bp.post('/invoices')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('INVOICE.CREATE', entity='Invoice', entity_id_key='id', meta_keys=['invoice_number', 'total_amount'])
def create_invoice():
    session = get_db()
    data = request.get_json(silent=True) or {}
    header, details = read_header(data, INVOICE_RULES, required=('customer_name', 'invoice_number'))
    invoice_date = parse_optional_date(details, data, 'invoice_date', required=True)
    due_date = parse_optional_date(details, data, 'due_date')
    if details:
        raise_validation_error(details)
    lines = parse_lines(data.get('invoice_items'), 'invoice_items', with_tax=False)
    if session.execute(select(Invoice.id).where(Invoice.invoice_number == header['invoice_number'])).first():
        abort(409, description='Invoice number already exists.')
    inv = Invoice(invoice_date=invoice_date, due_date=due_date, **header, **header_money(data, lines))
    inv.items = [InvoiceItem(**ln) for ln in lines]
    session.add(inv)
    session.commit()
    logger.info('Created invoice id=%s number=%s', inv.id, inv.invoice_number)
    return _invoice_json(inv), 201


@inv_bp.delete('/invoices/<int:invoice_id>')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('INVOICE.DELETE', entity='Invoice', entity_id_arg='invoice_id')
def delete_invoice(invoice_id: int):
    session = get_db()
    inv = session.execute(select(Invoice).where(Invoice.id == invoice_id)).scalar_one_or_none()
    if not inv:
        abort(404, description='Invoice not found')
    deleted = _invoice_json(inv)
    session.delete(inv)
    session.commit()
    logger.info('Deleted invoice id=%s', invoice_id)
    return {'message': 'Invoice deleted successfully', 'deletedInvoice': deleted}
