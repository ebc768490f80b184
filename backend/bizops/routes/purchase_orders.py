from __future__ import annotations
import logging
from flask import Blueprint, request, abort
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from bizops import get_db
from bizops.constants.permissions import Perm
from bizops.decorators.auth import require_permission
from bizops.decorators.audit import audit_log
from bizops.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from bizops.models.vendor import Vendor
from bizops.services.documents import parse_lines, header_money, parse_optional_date, read_header
from bizops.utils.filters import apply_filters
from bizops.utils.listing import list_response
from bizops.utils.sorting import apply_multi_sort
from bizops.utils.serialization import model_to_dict
from bizops.utils.validation import raise_validation_error

po_bp = Blueprint('po', __name__)
logger = logging.getLogger(__name__)

PO_RULES = {
    'po_number': {'type': str, 'max': 64},
    'billing_address': {'type': str, 'max': 500, 'nullable': True},
    'status': {'type': str, 'max': 32, 'nullable': True},
    'memo': {'type': str, 'max': 1000, 'nullable': True},
    'currency': {'type': str, 'max': 8},
}
ITEMS_KEY = 'purchase_order_items'


def _po_json(po: PurchaseOrder):
    body = model_to_dict(po)
    body[ITEMS_KEY] = [model_to_dict(it) for it in po.items]
    return body


def _get_po_or_404(po_id: int) -> PurchaseOrder:
    po = get_db().execute(select(PurchaseOrder).where(PurchaseOrder.id == po_id)).scalar_one_or_none()
    if not po:
        abort(404, description='Purchase order not found')
    return po


def _parse_header(data: dict, creating: bool) -> dict:
    out, details = read_header(data, PO_RULES, required=('po_number',) if creating else ())
    for field in ('order_date', 'expected_delivery'):
        if field in data:
            out[field] = parse_optional_date(details, data, field)
    if 'vendor_id' in data:
        vendor_id = data['vendor_id']
        if vendor_id in (None, ''):
            out['vendor_id'] = None
        elif isinstance(vendor_id, bool) or not isinstance(vendor_id, int):
            details.append({'field': 'vendor_id', 'message': '"vendor_id" must be an integer'})
        elif not get_db().get(Vendor, vendor_id):
            details.append({'field': 'vendor_id', 'message': f'Unknown vendor id {vendor_id}'})
        else:
            out['vendor_id'] = vendor_id
    if details:
        raise_validation_error(details)
    return out


def _assert_po_number_free(session, po_number, exclude_id=None):
    q = select(PurchaseOrder.id).where(PurchaseOrder.po_number == po_number)
    if exclude_id is not None:
        q = q.where(PurchaseOrder.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='Purchase order number already exists.')


@po_bp.get('/purchase-orders')
@require_permission(Perm.FINANCIAL_VIEW)
def list_purchase_orders():
    session = get_db()
    q = session.query(PurchaseOrder).options(selectinload(PurchaseOrder.items))
    filter_specs = {
        'vendor_id': {'coerce': int, 'op': lambda qu, v: qu.filter(PurchaseOrder.vendor_id == v)},
        'status': {'op': lambda qu, v: qu.filter(PurchaseOrder.status == v)},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'order_date': PurchaseOrder.order_date,
        'po_number': PurchaseOrder.po_number,
        'total_amount': PurchaseOrder.total_amount,
        'updated_at': PurchaseOrder.updated_at,
        'id': PurchaseOrder.id,
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, PurchaseOrder.id.desc(), default=(PurchaseOrder.order_date.desc(),))
    return list_response(q, _po_json)


@po_bp.get('/purchase-orders/<int:po_id>')
@require_permission(Perm.FINANCIAL_VIEW)
def get_purchase_order(po_id: int):
    return _po_json(_get_po_or_404(po_id))


@po_bp.post('/purchase-orders')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('PO.CREATE', entity='PurchaseOrder', entity_id_key='id', meta_keys=['po_number', 'total_amount'])
def create_purchase_order():
    session = get_db()
    data = request.get_json(silent=True) or {}
    header = _parse_header(data, creating=True)
    lines = parse_lines(data.get(ITEMS_KEY), ITEMS_KEY, with_tax=True)
    _assert_po_number_free(session, header['po_number'])
    po = PurchaseOrder(**header, **header_money(data, lines))
    po.items = [PurchaseOrderItem(**ln) for ln in lines]
    session.add(po)
    session.commit()
    logger.info('Created purchase order id=%s number=%s', po.id, po.po_number)
    return _po_json(po), 201


@po_bp.put('/purchase-orders/<int:po_id>')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('PO.UPDATE', entity='PurchaseOrder', entity_id_key='id', diff_keys=['status', 'total_amount'],
           pre_fetch=lambda a, kw: _prefetch_po(kw.get('po_id')), meta_keys=['po_number'])
def update_purchase_order(po_id: int):
    """Update the header and reconcile items in one transaction.

    Incoming items with an ``id`` update the matching row, items without one are
    created, and existing rows missing from the payload are deleted. Items are
    left untouched when the payload has no ``purchase_order_items`` key.
    """
    session = get_db()
    po = _get_po_or_404(po_id)
    data = request.get_json(silent=True) or {}
    header = _parse_header(data, creating=False)
    if 'po_number' in header:
        _assert_po_number_free(session, header['po_number'], exclude_id=po.id)

    if ITEMS_KEY in data:
        lines = parse_lines(data.get(ITEMS_KEY), ITEMS_KEY, with_tax=True)
        existing = {it.id: it for it in po.items}
        unknown = [ln['id'] for ln in lines if 'id' in ln and ln['id'] not in existing]
        if unknown:
            raise_validation_error([{'field': ITEMS_KEY, 'message': f'Unknown item ids for this purchase order: {unknown}'}])
    else:
        lines = [{'amount': it.amount, 'total_amount': it.total_amount} for it in po.items]
    money_input = {
        'discount': data.get('discount', po.discount),
        'shipping_cost': data.get('shipping_cost', po.shipping_cost),
        'subtotal': data.get('subtotal'),
        'total_amount': data.get('total_amount'),
    }
    money = header_money(money_input, lines)

    try:
        for key, value in {**header, **money}.items():
            setattr(po, key, value)
        if ITEMS_KEY in data:
            keep_ids = {ln['id'] for ln in lines if 'id' in ln}
            for item in list(po.items):
                if item.id not in keep_ids:
                    po.items.remove(item)
            for ln in lines:
                if 'id' in ln:
                    item = existing[ln['id']]
                    for key, value in ln.items():
                        if key != 'id':
                            setattr(item, key, value)
                else:
                    po.items.append(PurchaseOrderItem(**ln))
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(po)
    logger.info('Updated purchase order id=%s', po.id)
    return _po_json(po)


@po_bp.delete('/purchase-orders/<int:po_id>')
@require_permission(Perm.FINANCIAL_EDIT)
@audit_log('PO.DELETE', entity='PurchaseOrder', entity_id_arg='po_id')
def delete_purchase_order(po_id: int):
    session = get_db()
    po = _get_po_or_404(po_id)
    # items go with the header through the delete-orphan cascade
    session.delete(po)
    session.commit()
    logger.info('Deleted purchase order id=%s', po_id)
    return '', 204


def _prefetch_po(po_id: int):
    session = get_db()
    po = session.execute(select(PurchaseOrder).where(PurchaseOrder.id == po_id)).scalar_one_or_none()
    if not po:
        return {}
    return {'status': po.status, 'total_amount': float(po.total_amount) if po.total_amount is not None else None}
