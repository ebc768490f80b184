from bizops.constants.permissions import Perm
from tests.test_utils_seed import ensure_user, ensure_role, ensure_user_role_assignment


def _login(client, email, password):
    return client.post('/auth/login', json={'email': email, 'password': password})


def test_register_login_and_me(client):
    resp = client.post('/auth/register', json={
        'full_name': 'Reg User', 'username': 'reguser', 'email': 'reg@example.com', 'password': 'pw123456',
    })
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['message'] == 'User registered successfully'

    resp = _login(client, 'reg@example.com', 'pw123456')
    assert resp.status_code == 200, resp.get_json()
    token = resp.get_json()['access_token']

    me = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert me.status_code == 200
    body = me.get_json()
    assert body['email'] == 'reg@example.com'
    assert body['username'] == 'reguser'
    assert body['is_ceo'] is False
    assert body['permissions'] == []
    assert 'password_hash' not in body


def test_register_duplicate_and_validation(client):
    payload = {'full_name': 'Dup', 'username': 'dupuser', 'email': 'dup@example.com', 'password': 'pw123456'}
    assert client.post('/auth/register', json=payload).status_code == 201
    again = client.post('/auth/register', json={**payload, 'username': 'dupuser2'})
    assert again.status_code == 400
    assert again.get_json()['error'] == 'Email or username already in use'

    bad = client.post('/auth/register', json={'username': 'x', 'email': 'not-an-email'})
    assert bad.status_code == 400
    fields = {d['field'] for d in bad.get_json()['details']}
    assert {'full_name', 'password', 'email', 'username'} <= fields


def test_login_rejects_bad_credentials_and_inactive(client):
    ensure_user('login_ok@example.com', password='right-pw')
    ensure_user('login_inactive@example.com', password='right-pw', is_active=False)
    assert _login(client, 'login_ok@example.com', 'wrong').status_code == 401
    assert _login(client, 'missing@example.com', 'right-pw').status_code == 401
    assert _login(client, 'login_inactive@example.com', 'right-pw').status_code == 401
    assert client.post('/auth/login', json={}).status_code == 400


def test_permissions_endpoint_reflects_role_changes(client):
    user = ensure_user('fresh_perms@example.com', password='pw-fresh')
    ensure_user_role_assignment(user, ensure_role('Fresh A', [Perm.VENDOR_VIEW]))
    token = _login(client, 'fresh_perms@example.com', 'pw-fresh').get_json()['access_token']
    headers = {'Authorization': f'Bearer {token}'}
    assert client.get('/auth/permissions', headers=headers).get_json()['permissions'] == ['vendor_view']
    # same token, new role: the next check sees the new grants
    ensure_user_role_assignment(user, ensure_role('Fresh B', [Perm.PAYMENT_VIEW, Perm.PAYMENT_EDIT]))
    body = client.get('/auth/permissions', headers=headers).get_json()
    assert body['permissions'] == ['payment_edit', 'payment_view']
    assert body['is_ceo'] is False


def test_me_requires_session(client):
    resp = client.get('/auth/me')
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'Authentication required.'
    bad = client.get('/auth/me', headers={'Authorization': 'Bearer not-a-token'})
    assert bad.status_code == 401
