from __future__ import annotations
import logging
from datetime import date
from decimal import Decimal
from flask import Blueprint, request, abort, g
from sqlalchemy import select
from sqlalchemy.orm import joinedload
from bizops import get_db
from bizops.constants.permissions import Perm
from bizops.decorators.auth import require_permission
from bizops.decorators.audit import audit_log
from bizops.models.transaction import FinancialTransaction
from bizops.models.vendor import Vendor
from bizops.utils.listing import list_response
from bizops.utils.filters import apply_filters
from bizops.utils.sorting import apply_multi_sort
from bizops.utils.serialization import model_to_dict, to_jsonable
from bizops.utils.validation import validate_payload, to_decimal, parse_date

tx_bp = Blueprint('transactions', __name__)
logger = logging.getLogger(__name__)

TX_RULES = {
    'project_id': {'type': int, 'nullable': True},
    'transaction_date': {'type': date},
    'amount': {'type': Decimal},
    'transaction_method': {'type': str, 'max': 64},
    'category': {'type': str, 'max': 64},
    'description': {'type': str, 'max': 500, 'nullable': True},
    'reference_number': {'type': str, 'max': 64, 'nullable': True},
    'vendor_id': {'type': int, 'nullable': True},
    'type': {'type': str, 'max': 16},
}
TX_REQUIRED = ['transaction_date', 'amount', 'transaction_method', 'category']

SORTABLE = {
    'transaction_date': FinancialTransaction.transaction_date,
    'amount': FinancialTransaction.amount,
    'category': FinancialTransaction.category,
    'updated_at': FinancialTransaction.updated_at,
    'id': FinancialTransaction.id,
}


def _tx_json(tx: FinancialTransaction):
    body = model_to_dict(tx)
    body['vendor'] = model_to_dict(tx.vendor) if tx.vendor else None
    return body


def _coerce(data: dict) -> dict:
    if 'transaction_date' in data:
        data['transaction_date'] = parse_date(data['transaction_date'])
    if 'amount' in data:
        data['amount'] = to_decimal(data['amount'])
    return data


def _assert_vendor_exists(session, vendor_id):
    if vendor_id is not None and not session.get(Vendor, vendor_id):
        abort(400, description=f'Unknown vendor_id {vendor_id}')


def _get_tx_or_404(tx_id: int) -> FinancialTransaction:
    tx = get_db().execute(select(FinancialTransaction).where(FinancialTransaction.id == tx_id)).scalar_one_or_none()
    if not tx:
        abort(404, description='Transaction not found')
    return tx


def _listing_query():
    session = get_db()
    q = session.query(FinancialTransaction).options(joinedload(FinancialTransaction.vendor))
    filter_specs = {
        'category': {'op': lambda qu, v: qu.filter(FinancialTransaction.category == v)},
        'type': {'op': lambda qu, v: qu.filter(FinancialTransaction.type == v)},
        'vendor_id': {'coerce': int, 'op': lambda qu, v: qu.filter(FinancialTransaction.vendor_id == v)},
    }
    return apply_filters(q, filter_specs, request.args)


@tx_bp.get('/transactions')
@require_permission(Perm.PAYMENT_VIEW)
def list_transactions():
    q = apply_multi_sort(_listing_query(), request.args.get('sort'), SORTABLE, FinancialTransaction.id.desc(),
                         default=(FinancialTransaction.transaction_date.desc(),))
    return list_response(q, _tx_json)


@tx_bp.get('/transactions/by-date')
@require_permission(Perm.PAYMENT_VIEW)
def list_transactions_by_date():
    start_raw = request.args.get('start'); end_raw = request.args.get('end')
    if not start_raw or not end_raw:
        abort(400, description='Missing `start` or `end` date.')
    try:
        start = parse_date(start_raw); end = parse_date(end_raw)
    except ValueError:
        abort(400, description='`start` and `end` must be dates (YYYY-MM-DD)')
    if start > end:
        abort(400, description='`start` must not be after `end`')
    q = _listing_query().filter(FinancialTransaction.transaction_date.between(start, end))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, FinancialTransaction.id.desc(),
                         default=(FinancialTransaction.transaction_date.desc(),))
    return list_response(q, _tx_json)


@tx_bp.post('/transactions')
@require_permission(Perm.PAYMENT_EDIT)
@audit_log('TX.CREATE', entity='FinancialTransaction', entity_id_key='id', meta_keys=['amount', 'category'])
def create_transaction():
    session = get_db()
    data = _coerce(validate_payload(request.get_json(silent=True) or {}, TX_RULES, required=TX_REQUIRED))
    _assert_vendor_exists(session, data.get('vendor_id'))
    data.setdefault('type', FinancialTransaction.TYPE_SPEND)
    tx = FinancialTransaction(created_by=g.identity.user_id, **data)
    session.add(tx)
    session.commit()
    logger.info('Created transaction id=%s amount=%s', tx.id, tx.amount)
    return _tx_json(tx), 201


@tx_bp.get('/transactions/<int:tx_id>')
@require_permission(Perm.FINANCIAL_VIEW)
def get_transaction(tx_id: int):
    tx = _get_tx_or_404(tx_id)
    body = model_to_dict(tx)
    body['vendor_name'] = tx.vendor.vendor_name if tx.vendor else 'N/A'
    body['creator_name'] = tx.creator.username if tx.creator else 'N/A'
    return body


@tx_bp.put('/transactions/<int:tx_id>')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('TX.UPDATE', entity='FinancialTransaction', entity_id_key='id', diff_keys=['amount', 'category', 'transaction_date'],
           pre_fetch=lambda a, kw: _prefetch_tx(kw.get('tx_id')), meta_keys=['amount'])
def update_transaction(tx_id: int):
    session = get_db()
    tx = _get_tx_or_404(tx_id)
    data = _coerce(validate_payload(request.get_json(silent=True) or {}, TX_RULES))
    if 'vendor_id' in data:
        _assert_vendor_exists(session, data['vendor_id'])
    for key, value in data.items():
        setattr(tx, key, value)
    session.commit()
    logger.info('Updated transaction id=%s', tx.id)
    return _tx_json(tx)


@tx_bp.delete('/transactions/<int:tx_id>')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('TX.DELETE', entity='FinancialTransaction', entity_id_arg='tx_id')
def delete_transaction(tx_id: int):
    session = get_db()
    tx = _get_tx_or_404(tx_id)
    session.delete(tx)
    session.commit()
    logger.info('Deleted transaction id=%s', tx_id)
    return {'success': True}


def _prefetch_tx(tx_id: int):
    session = get_db()
    tx = session.execute(select(FinancialTransaction).where(FinancialTransaction.id == tx_id)).scalar_one_or_none()
    if not tx:
        return {}
    return to_jsonable({'amount': tx.amount, 'category': tx.category, 'transaction_date': tx.transaction_date})
