from __future__ import annotations
import logging
from decimal import Decimal
from flask import Blueprint, request, abort, g
from sqlalchemy import select, or_
from bizops import get_db
from bizops.models.vendor import Vendor
from bizops.constants.permissions import Perm
from bizops.decorators.auth import require_permission
from bizops.decorators.audit import audit_log
from bizops.utils.listing import list_response
from bizops.utils.filters import apply_filters, parse_bool
from bizops.utils.sorting import apply_multi_sort
from bizops.utils.serialization import model_to_dict
from bizops.utils.validation import validate_payload, to_decimal

vendors_bp = Blueprint('vendors', __name__)
logger = logging.getLogger(__name__)

VENDOR_RULES = {
    'vendor_name': {'type': str, 'min': 2, 'max': 255},
    'gst_no': {'type': str, 'max': 15, 'nullable': True},
    'vendor_type': {'type': str, 'max': 64, 'nullable': True},
    'email': {'type': str, 'email': True, 'max': 255},
    'phone': {'type': str, 'max': 20, 'nullable': True},
    'address': {'type': str, 'max': 500, 'nullable': True},
    'bank_name': {'type': str, 'max': 255, 'nullable': True},
    'bank_account_number': {'type': str, 'max': 50, 'nullable': True},
    'ifsc_code': {'type': str, 'max': 11, 'nullable': True},
    'is_active': {'type': bool},
    'payables': {'type': Decimal, 'nullable': True},
}


def _vendor_json(v: Vendor):
    return model_to_dict(v)


def _get_vendor_or_404(vendor_id: int) -> Vendor:
    v = get_db().execute(select(Vendor).where(Vendor.id == vendor_id)).scalar_one_or_none()
    if not v:
        abort(404, description='Vendor not found.')
    return v


def _assert_unique(session, data: dict, exclude_id=None):
    conds = []
    if data.get('vendor_name'):
        conds.append(Vendor.vendor_name == data['vendor_name'])
    if data.get('email'):
        conds.append(Vendor.email == data['email'])
    if not conds:
        return
    q = select(Vendor.id).where(or_(*conds))
    if exclude_id is not None:
        q = q.where(Vendor.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='Vendor with this name or email already exists.')


@vendors_bp.get('/vendors')
@require_permission(Perm.VENDOR_VIEW)
def list_vendors():
    session = get_db()
    q = session.query(Vendor)
    filter_specs = {
        'name': {'op': lambda qu, v: qu.filter(Vendor.vendor_name.ilike(f'%{v}%'))},
        'is_active': {'coerce': parse_bool, 'op': lambda qu, v: qu.filter(Vendor.is_active == v)},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'vendor_name': Vendor.vendor_name,
        'created_at': Vendor.created_at,
        'updated_at': Vendor.updated_at,
        'payables': Vendor.payables,
        'id': Vendor.id,
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Vendor.id.desc(), default=(Vendor.created_at.desc(),))
    return list_response(q, _vendor_json)


@vendors_bp.get('/vendors/<int:vendor_id>')
@require_permission(Perm.VENDOR_VIEW)
def get_vendor(vendor_id: int):
    return _vendor_json(_get_vendor_or_404(vendor_id))


@vendors_bp.post('/vendors')
@require_permission(Perm.VENDOR_EDIT)
@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='id', meta_keys=['vendor_name', 'email'])
def create_vendor():
    session = get_db()
    data = validate_payload(request.get_json(silent=True) or {}, VENDOR_RULES, required=['vendor_name', 'email'])
    _assert_unique(session, data)
    if data.get('payables') is not None:
        data['payables'] = to_decimal(data['payables'])
    data.setdefault('is_active', True)
    v = Vendor(created_by=g.identity.user_id, **data)
    session.add(v)
    session.commit()
    logger.info('Created vendor id=%s', v.id)
    return _vendor_json(v), 201


@vendors_bp.put('/vendors/<int:vendor_id>')
@require_permission(Perm.VENDOR_EDIT)
@audit_log('VENDOR.UPDATE', entity='Vendor', entity_id_key='id', diff_keys=['vendor_name', 'email', 'is_active'],
           pre_fetch=lambda a, kw: _prefetch_vendor(kw.get('vendor_id')), meta_keys=['vendor_name'])
def update_vendor(vendor_id: int):
    session = get_db()
    v = _get_vendor_or_404(vendor_id)
    data = validate_payload(request.get_json(silent=True) or {}, VENDOR_RULES)
    _assert_unique(session, data, exclude_id=v.id)
    if data.get('payables') is not None:
        data['payables'] = to_decimal(data['payables'])
    for key, value in data.items():
        setattr(v, key, value)
    session.commit()
    logger.info('Updated vendor id=%s', v.id)
    return _vendor_json(v)


@vendors_bp.delete('/vendors/<int:vendor_id>')
@require_permission(Perm.VENDOR_EDIT)
@audit_log('VENDOR.DELETE', entity='Vendor', entity_id_arg='vendor_id')
def delete_vendor(vendor_id: int):
    session = get_db()
    v = _get_vendor_or_404(vendor_id)
    session.delete(v)
    session.commit()
    logger.info('Deleted vendor id=%s', vendor_id)
    return {'success': True, 'message': f'Vendor with ID {vendor_id} successfully deleted.'}


def _prefetch_vendor(vendor_id: int):
    session = get_db()
    v = session.execute(select(Vendor).where(Vendor.id == vendor_id)).scalar_one_or_none()
    if not v:
        return {}
    return {'vendor_name': v.vendor_name, 'email': v.email, 'is_active': v.is_active}
