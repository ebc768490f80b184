import base64
import io
from flask import Flask
from bizops import get_db
from bizops.constants.permissions import Perm
from bizops.models.company import CompanyDetails
from tests.test_utils_seed import seed_user_with_perms, ensure_user, auth_headers

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32


def _clear_companies():
    session = get_db()
    session.query(CompanyDetails).delete()
    session.commit()


def _form(**fields):
    return {'data': fields, 'content_type': 'multipart/form-data'}


def test_company_details_lifecycle(app_context: Flask):
    client = app_context.test_client()
    _clear_companies()
    editor = auth_headers(seed_user_with_perms('company_editor@example.com', [Perm.EDIT_COMPANY_DETAILS]))
    reader = auth_headers(ensure_user('company_reader@example.com'))

    missing = client.get('/company-details', headers=reader)
    assert missing.status_code == 404
    assert client.put('/company-details', headers=editor, **_form(city='Pune')).status_code == 404

    created = client.post('/company-details', headers=editor, **_form(
        company_name='Print Works', city='Bengaluru', is_own_company='true',
        logo=(io.BytesIO(PNG_BYTES), 'logo.png', 'image/png'),
    ))
    assert created.status_code == 201, created.get_json()
    body = created.get_json()
    assert body['logo'] == 'Logo uploaded'
    assert body['is_own_company'] is True
    assert body['company_name'] == 'Print Works'

    # any signed-in user may read the profile
    fetched = client.get('/company-details', headers=reader)
    assert fetched.status_code == 200
    logo = fetched.get_json()['logo']
    assert logo == 'data:image/png;base64,' + base64.b64encode(PNG_BYTES).decode('ascii')

    updated = client.put('/company-details', headers=editor, **_form(city='Mysuru'))
    assert updated.status_code == 200
    assert updated.get_json()['city'] == 'Mysuru'
    assert updated.get_json()['company_name'] == 'Print Works'
    assert updated.get_json()['logo'] is None

    relogo = client.put('/company-details', headers=editor, **_form(logo=(io.BytesIO(b'GIF89a'), 'logo.gif', 'image/gif')))
    assert relogo.get_json()['logo'] == 'Logo updated'


def test_company_details_rejects_bad_input(app_context: Flask):
    client = app_context.test_client()
    editor = auth_headers(seed_user_with_perms('company_editor2@example.com', [Perm.EDIT_COMPANY_DETAILS]))
    too_big = client.post('/company-details', headers=editor, **_form(
        company_name='Huge Logo Ltd', logo=(io.BytesIO(b'x' * 4096), 'big.png', 'image/png'),
    ))
    assert too_big.status_code == 400
    assert 'maximum size' in too_big.get_json()['error']
    no_name = client.post('/company-details', headers=editor, **_form(city='Nowhere'))
    assert no_name.status_code == 400
    assert no_name.get_json()['details'][0]['field'] == 'company_name'
    bad_flag = client.post('/company-details', headers=editor, **_form(company_name='Flag Co', is_own_company='maybe'))
    assert bad_flag.status_code == 400


def test_company_details_permissions(app_context: Flask):
    client = app_context.test_client()
    vendor_user = auth_headers(seed_user_with_perms('company_vendor@example.com', [Perm.VENDOR_EDIT]))
    resp = client.post('/company-details', headers=vendor_user, **_form(company_name='Sneaky Co'))
    assert resp.status_code == 403
    assert client.get('/company-details').status_code == 401
