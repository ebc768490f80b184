from flask import Flask
from bizops.constants.permissions import Perm
from tests.test_utils_seed import seed_user_with_perms, ensure_user, auth_headers

VENDOR_PERMS = [Perm.VENDOR_VIEW, Perm.VENDOR_EDIT]


def _editor_headers():
    return auth_headers(seed_user_with_perms('vendor_editor@example.com', VENDOR_PERMS))


def test_vendor_crud_flow(app_context: Flask):
    client = app_context.test_client()
    headers = _editor_headers()
    resp = client.post('/vendors', json={
        'vendor_name': 'Alpha Supplies', 'email': 'alpha@supplies.example', 'payables': '1250.50', 'gst_no': '29ABCDE1234F1Z5',
    }, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    vendor = resp.get_json()
    vid = vendor['id']
    assert vendor['is_active'] is True
    assert vendor['payables'] == 1250.5
    assert vendor['created_by'] is not None

    resp = client.get(f'/vendors/{vid}', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['vendor_name'] == 'Alpha Supplies'

    resp = client.put(f'/vendors/{vid}', json={'vendor_name': 'Alpha Supplies Co', 'is_active': False}, headers=headers)
    assert resp.status_code == 200
    updated = resp.get_json()
    assert updated['vendor_name'] == 'Alpha Supplies Co'
    assert updated['is_active'] is False

    resp = client.delete(f'/vendors/{vid}', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json() == {'success': True, 'message': f'Vendor with ID {vid} successfully deleted.'}
    assert client.get(f'/vendors/{vid}', headers=headers).status_code == 404


def test_vendor_validation_and_conflicts(app_context: Flask):
    client = app_context.test_client()
    headers = _editor_headers()
    resp = client.post('/vendors', json={'vendor_name': 'B'}, headers=headers)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'Validation failed.'
    fields = {d['field'] for d in body['details']}
    assert {'vendor_name', 'email'} <= fields

    ok = client.post('/vendors', json={'vendor_name': 'Beta Traders', 'email': 'beta@traders.example'}, headers=headers)
    assert ok.status_code == 201
    dup = client.post('/vendors', json={'vendor_name': 'Beta Traders', 'email': 'other@traders.example'}, headers=headers)
    assert dup.status_code == 409
    assert dup.get_json()['status'] == 409

    blank = client.post('/vendors', json={'vendor_name': 'Gamma Traders', 'email': '   '}, headers=headers)
    assert blank.status_code == 400
    assert [d['field'] for d in blank.get_json()['details']] == ['email']


def test_vendor_listing_filters_and_etag(app_context: Flask):
    client = app_context.test_client()
    headers = _editor_headers()
    client.post('/vendors', json={'vendor_name': 'Gamma Listing', 'email': 'gamma@listing.example'}, headers=headers)
    client.post('/vendors', json={'vendor_name': 'Delta Listing', 'email': 'delta@listing.example', 'is_active': False}, headers=headers)
    resp = client.get('/vendors?name=listing&is_active=true', headers=headers)
    assert resp.status_code == 200
    names = [v['vendor_name'] for v in resp.get_json()['data']]
    assert 'Gamma Listing' in names
    assert 'Delta Listing' not in names
    etag = resp.headers.get('ETag')
    assert etag
    again = client.get('/vendors?name=listing&is_active=true', headers={**headers, 'If-None-Match': etag})
    assert again.status_code == 304
    assert client.get('/vendors?sort=bogus', headers=headers).status_code == 400


def test_vendor_permission_enforcement(app_context: Flask):
    client = app_context.test_client()
    viewer = seed_user_with_perms('vendor_viewer@example.com', [Perm.VENDOR_VIEW])
    headers = auth_headers(viewer)
    assert client.get('/vendors', headers=headers).status_code == 200
    resp = client.post('/vendors', json={'vendor_name': 'Nope Vendor', 'email': 'nope@vendor.example'}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'Access denied. Missing permission: vendor_edit'
    assert client.delete('/vendors/1', headers=headers).status_code == 403
    assert client.get('/vendors').status_code == 401


def test_vendor_superuser_without_roles(app_context: Flask):
    client = app_context.test_client()
    ceo = ensure_user('vendor_ceo@example.com', is_ceo=True)
    headers = auth_headers(ceo)
    resp = client.post('/vendors', json={'vendor_name': 'CEO Vendor', 'email': 'ceo@vendor.example'}, headers=headers)
    assert resp.status_code == 201
    assert client.get('/vendors', headers=headers).status_code == 200
