from __future__ import annotations
import logging
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select
from bizops import get_db
from bizops.constants.permissions import Perm
from bizops.decorators.auth import require_login, require_permission
from bizops.decorators.audit import audit_log
from bizops.models.company import CompanyDetails
from bizops.utils.filters import parse_bool
from bizops.utils.serialization import model_to_dict, logo_data_uri
from bizops.utils.validation import validate_payload, raise_validation_error

company_bp = Blueprint('company', __name__)
logger = logging.getLogger(__name__)

COMPANY_RULES = {
    'company_name': {'type': str, 'min': 1, 'max': 255},
    'address': {'type': str, 'max': 500, 'nullable': True},
    'city': {'type': str, 'max': 128, 'nullable': True},
    'state': {'type': str, 'max': 128, 'nullable': True},
    'pin_code': {'type': str, 'max': 16, 'nullable': True},
    'country': {'type': str, 'max': 64, 'nullable': True},
    'phone': {'type': str, 'max': 20, 'nullable': True},
    'email': {'type': str, 'email': True, 'max': 255, 'nullable': True},
    'gst_no': {'type': str, 'max': 15, 'nullable': True},
    'registration_number': {'type': str, 'max': 64, 'nullable': True},
}


def _first_company():
    return get_db().execute(select(CompanyDetails).order_by(CompanyDetails.id).limit(1)).scalar_one_or_none()


def _read_form(required=()):
    """Validated text fields plus ``is_own_company`` from the multipart form."""
    form = request.form.to_dict()
    raw_flag = form.pop('is_own_company', None)
    data = validate_payload(form, COMPANY_RULES, required=required)
    if raw_flag not in (None, ''):
        try:
            data['is_own_company'] = parse_bool(raw_flag)
        except ValueError:
            raise_validation_error([{'field': 'is_own_company', 'message': '"is_own_company" must be a boolean'}])
    return data


def _read_logo():
    """Uploaded logo as ``(bytes, mimetype)`` or ``None`` when no file was sent."""
    upload = request.files.get('logo')
    if upload is None or not upload.filename:
        return None
    raw = upload.read()
    limit = current_app.config['MAX_LOGO_BYTES']
    if len(raw) > limit:
        abort(400, description=f'Logo exceeds the maximum size of {limit} bytes.')
    return raw, upload.mimetype or 'application/octet-stream'


def _company_json(company: CompanyDetails, logo_status=None):
    body = model_to_dict(company, exclude=('logo', 'logo_mimetype'))
    body['logo'] = logo_status
    return body


@company_bp.get('/company-details')
@require_login
def get_company_details():
    company = _first_company()
    if not company:
        abort(404, description='Company details not found')
    return _company_json(company, logo_data_uri(company.logo, company.logo_mimetype))


@company_bp.post('/company-details')
@require_permission(Perm.EDIT_COMPANY_DETAILS)
@audit_log('COMPANY.CREATE', entity='CompanyDetails', entity_id_key='id', meta_keys=['company_name'])
def create_company_details():
    session = get_db()
    data = _read_form(required=['company_name'])
    logo = _read_logo()
    company = CompanyDetails(**data)
    if logo:
        company.logo, company.logo_mimetype = logo
    session.add(company)
    session.commit()
    logger.info('Created company details id=%s', company.id)
    return _company_json(company, 'Logo uploaded' if logo else None), 201


@company_bp.put('/company-details')
@require_permission(Perm.EDIT_COMPANY_DETAILS)
@audit_log('COMPANY.UPDATE', entity='CompanyDetails', entity_id_key='id', meta_keys=['company_name'])
def update_company_details():
    session = get_db()
    company = _first_company()
    if not company:
        abort(404, description='Company details not found')
    data = _read_form()
    logo = _read_logo()
    for key, value in data.items():
        setattr(company, key, value)
    if logo:
        company.logo, company.logo_mimetype = logo
    session.commit()
    logger.info('Updated company details id=%s', company.id)
    return _company_json(company, 'Logo updated' if logo else None)
