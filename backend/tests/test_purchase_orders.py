import pytest
from flask import Flask
from bizops.constants.permissions import Perm
from tests.test_utils_seed import seed_user_with_perms, auth_headers


@pytest.fixture()
def headers(app_context):
    return auth_headers(seed_user_with_perms('po_editor@example.com', [Perm.FINANCIAL_VIEW, Perm.FINANCIAL_EDIT, Perm.VENDOR_EDIT]))


def _po(number, **overrides):
    body = {
        'po_number': number,
        'order_date': '2024-05-02',
        'status': 'draft',
        'shipping_cost': '20',
        'purchase_order_items': [
            {'product_name': 'Filament', 'quantity': 10, 'rate': '25.00', 'tax_rate': '0.18'},
            {'product_name': 'Nozzle', 'quantity': 2, 'rate': '7.50'},
        ],
    }
    body.update(overrides)
    return body


def test_create_po_with_tax(app_context: Flask, headers):
    client = app_context.test_client()
    vendor = client.post('/vendors', json={'vendor_name': 'PO Vendor', 'email': 'po@vendor.example'}, headers=headers).get_json()
    resp = client.post('/purchase-orders', json=_po('PO-2001', vendor_id=vendor['id']), headers=headers)
    assert resp.status_code == 201, resp.get_json()
    po = resp.get_json()
    items = po['purchase_order_items']
    assert [it['amount'] for it in items] == [250.0, 15.0]
    assert [it['total_amount'] for it in items] == [295.0, 15.0]
    assert po['subtotal'] == 265.0
    # 265 + 45 tax + 20 shipping
    assert po['total_amount'] == 330.0
    assert po['vendor_id'] == vendor['id']


def test_update_po_diffs_items(app_context: Flask, headers):
    client = app_context.test_client()
    po = client.post('/purchase-orders', json=_po('PO-2002'), headers=headers).get_json()
    keep, drop = po['purchase_order_items']
    resp = client.put(f"/purchase-orders/{po['id']}", json={
        'status': 'sent',
        'purchase_order_items': [
            {'id': keep['id'], 'product_name': 'Filament PLA', 'quantity': 4, 'rate': '25.00'},
            {'product_name': 'Bed Tape', 'quantity': 1, 'rate': '12.00'},
        ],
    }, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'sent'
    items = body['purchase_order_items']
    assert [it['product_name'] for it in items] == ['Filament PLA', 'Bed Tape']
    assert items[0]['id'] == keep['id']
    assert drop['id'] not in {it['id'] for it in items}
    assert body['subtotal'] == 112.0
    assert body['total_amount'] == 132.0


def test_update_po_header_only_keeps_items(app_context: Flask, headers):
    client = app_context.test_client()
    po = client.post('/purchase-orders', json=_po('PO-2003'), headers=headers).get_json()
    resp = client.put(f"/purchase-orders/{po['id']}", json={'memo': 'rush', 'shipping_cost': 0}, headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['memo'] == 'rush'
    assert len(body['purchase_order_items']) == 2
    assert body['total_amount'] == 310.0


def test_update_po_rejects_foreign_item_ids(app_context: Flask, headers):
    client = app_context.test_client()
    po = client.post('/purchase-orders', json=_po('PO-2004'), headers=headers).get_json()
    resp = client.put(f"/purchase-orders/{po['id']}", json={
        'purchase_order_items': [{'id': 99999999, 'product_name': 'X', 'quantity': 1, 'rate': 1}],
    }, headers=headers)
    assert resp.status_code == 400
    # nothing was changed
    again = client.get(f"/purchase-orders/{po['id']}", headers=headers).get_json()
    assert len(again['purchase_order_items']) == 2


def test_po_duplicates_and_validation(app_context: Flask, headers):
    client = app_context.test_client()
    assert client.post('/purchase-orders', json=_po('PO-2005'), headers=headers).status_code == 201
    assert client.post('/purchase-orders', json=_po('PO-2005'), headers=headers).status_code == 409
    other = client.post('/purchase-orders', json=_po('PO-2006'), headers=headers).get_json()
    clash = client.put(f"/purchase-orders/{other['id']}", json={'po_number': 'PO-2005'}, headers=headers)
    assert clash.status_code == 409
    bad = client.post('/purchase-orders', json=_po('', vendor_id='abc', order_date='soon'), headers=headers)
    assert bad.status_code == 400
    fields = {d['field'] for d in bad.get_json()['details']}
    assert {'po_number', 'vendor_id', 'order_date'} <= fields


def test_delete_po_returns_no_content(app_context: Flask, headers):
    client = app_context.test_client()
    po = client.post('/purchase-orders', json=_po('PO-2007'), headers=headers).get_json()
    resp = client.delete(f"/purchase-orders/{po['id']}", headers=headers)
    assert resp.status_code == 204
    assert resp.data == b''
    assert client.get(f"/purchase-orders/{po['id']}", headers=headers).status_code == 404


def test_po_permissions(app_context: Flask):
    client = app_context.test_client()
    vendor_only = auth_headers(seed_user_with_perms('po_vendor_only@example.com', [Perm.VENDOR_VIEW, Perm.VENDOR_EDIT]))
    assert client.get('/purchase-orders', headers=vendor_only).status_code == 403
    assert client.post('/purchase-orders', json=_po('PO-2999'), headers=vendor_only).status_code == 403
    assert client.get('/purchase-orders').status_code == 401


def test_po_rejects_wrong_typed_header_fields(app_context: Flask, headers):
    client = app_context.test_client()
    resp = client.post('/purchase-orders', json=_po('PO-2008', status={'a': 1}, billing_address=['x'], currency='RUPEES-LONG'), headers=headers)
    assert resp.status_code == 400
    fields = {d['field'] for d in resp.get_json()['details']}
    assert fields == {'status', 'billing_address', 'currency'}

    po = client.post('/purchase-orders', json=_po('PO-2009'), headers=headers).get_json()
    bad_number = client.put(f"/purchase-orders/{po['id']}", json={'po_number': 12}, headers=headers)
    assert bad_number.status_code == 400
    assert bad_number.get_json()['details'][0]['field'] == 'po_number'
    empty_number = client.put(f"/purchase-orders/{po['id']}", json={'po_number': '  '}, headers=headers)
    assert empty_number.status_code == 400


def test_po_rejects_malformed_items(app_context: Flask, headers):
    client = app_context.test_client()
    po = client.post('/purchase-orders', json=_po('PO-2010'), headers=headers).get_json()
    keep = po['purchase_order_items'][0]
    resp = client.put(f"/purchase-orders/{po['id']}", json={
        'purchase_order_items': [
            {'id': [keep['id']], 'product_name': 'Filament', 'quantity': 1, 'rate': 1},
            {'id': True, 'product_name': 'Nozzle', 'quantity': 1, 'rate': 1},
            {'product_name': 'Tape', 'quantity': 1, 'rate': 1, 'amount': 'abc', 'tax_rate': '1e6'},
        ],
    }, headers=headers)
    assert resp.status_code == 400
    fields = {d['field'] for d in resp.get_json()['details']}
    assert fields == {
        'purchase_order_items[0].id',
        'purchase_order_items[1].id',
        'purchase_order_items[2].amount',
        'purchase_order_items[2].tax_rate',
    }
    again = client.get(f"/purchase-orders/{po['id']}", headers=headers).get_json()
    assert [it['id'] for it in again['purchase_order_items']] == [it['id'] for it in po['purchase_order_items']]

    huge = client.post('/purchase-orders', json=_po('PO-2011', purchase_order_items=[
        {'product_name': 'Filament', 'quantity': '1e30', 'rate': '1e30'},
    ]), headers=headers)
    assert huge.status_code == 400
    assert {d['field'] for d in huge.get_json()['details']} == {
        'purchase_order_items[0].quantity', 'purchase_order_items[0].rate',
    }
