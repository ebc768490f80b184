import pytest
from bizops.constants.permissions import Perm
from bizops.services.policy import (
    Identity, RequestContext, authorize, resolve_permissions, assign_role, current_profile,
    REASON_UNAUTHENTICATED, REASON_FORBIDDEN,
)
from tests.test_utils_seed import ensure_user, ensure_role, ensure_user_role_assignment, seed_user_with_perms


def _ctx(user, superuser=False):
    return RequestContext(identity=Identity(email=user.email, user_id=user.id, is_superuser=superuser))


def _boom(_identity):
    raise AssertionError('resolver must not be consulted')


def test_finance_viewer_scenario(app_context):
    user = ensure_user('policy_viewer@example.com')
    role = ensure_role('Policy Finance Viewer', [Perm.FINANCIAL_VIEW])
    ensure_user_role_assignment(user, role)
    allowed = authorize(_ctx(user), Perm.FINANCIAL_VIEW)
    assert allowed.allowed is True
    assert allowed.reason is None
    assert allowed.identity.email == user.email
    denied = authorize(_ctx(user), Perm.FINANCIAL_EDIT)
    assert denied.allowed is False
    assert denied.reason == REASON_FORBIDDEN


def test_anonymous_is_unauthenticated():
    decision = authorize(RequestContext.anonymous(), Perm.VENDOR_VIEW, resolver=_boom)
    assert decision.allowed is False
    assert decision.reason == REASON_UNAUTHENTICATED
    assert decision.identity is None


@pytest.mark.parametrize('required', ['vendor_view', 'anything_not_defined', 'Vendor View', ''])
def test_superuser_bypasses_resolver(required):
    ident = Identity(email='ceo@example.com', user_id=1, is_superuser=True)
    decision = authorize(RequestContext(identity=ident), required, resolver=_boom)
    assert decision.allowed is True


def test_superuser_without_roles_in_store(app_context):
    ceo = ensure_user('policy_ceo@example.com', is_ceo=True)
    assert resolve_permissions(ceo.email) == set()
    assert authorize(_ctx(ceo, superuser=True), 'anything_not_defined').allowed is True


def test_allowed_iff_in_resolved_set():
    held = {'vendor_view', 'payment_view'}
    ident = Identity(email='someone@example.com', user_id=7)
    ctx = RequestContext(identity=ident)
    for perm in Perm:
        assert authorize(ctx, perm, resolver=lambda _e: held).allowed is (perm.value in held)


def test_permission_names_are_case_sensitive():
    ctx = RequestContext(identity=Identity(email='case@example.com', user_id=8))
    assert authorize(ctx, 'VENDOR_VIEW', resolver=lambda _e: {'vendor_view'}).allowed is False


def test_resolve_unknown_identity_is_empty(app_context):
    assert resolve_permissions('nobody-here@example.com') == set()
    assert resolve_permissions('') == set()


def test_resolve_user_without_roles_is_empty(app_context):
    user = ensure_user('policy_noroles@example.com')
    assert resolve_permissions(user.email) == set()
    assert authorize(_ctx(user), Perm.VENDOR_VIEW).reason == REASON_FORBIDDEN


def test_reassignment_yields_exactly_new_role_permissions(app_context):
    user = ensure_user('policy_reassign@example.com')
    role_a = ensure_role('Policy Role A', [Perm.VENDOR_VIEW])
    role_b = ensure_role('Policy Role B', [Perm.PAYMENT_EDIT])
    assign_role(user.id, role_a.id)
    assert resolve_permissions(user.email) == {'vendor_view'}
    assign_role(user.id, role_b.id)
    assert resolve_permissions(user.email) == {'payment_edit'}
    # repeating the same assignment leaves the set unchanged
    assign_role(user.id, role_b.id)
    assert resolve_permissions(user.email) == {'payment_edit'}


def test_assign_role_failure_keeps_previous_role(app_context, monkeypatch):
    from bizops import get_db
    user = ensure_user('policy_atomic@example.com')
    role_a = ensure_role('Policy Atomic A', [Perm.VENDOR_EDIT])
    role_b = ensure_role('Policy Atomic B', [Perm.FINANCIAL_EDIT])
    assign_role(user.id, role_a.id)

    def broken_add(obj):
        raise RuntimeError('insert failed')

    # the delete has already run when the insert fails
    monkeypatch.setattr(get_db(), 'add', broken_add)
    with pytest.raises(RuntimeError):
        assign_role(user.id, role_b.id)
    monkeypatch.undo()
    assert resolve_permissions(user.email) == {'vendor_edit'}


def test_assign_role_unknown_ids(app_context):
    from werkzeug.exceptions import NotFound
    from bizops.utils.validation import ValidationFailed
    user = ensure_user('policy_unknown_role@example.com')
    with pytest.raises(ValidationFailed):
        assign_role(user.id, 987654)
    with pytest.raises(NotFound):
        assign_role(987654, 1)


def test_current_profile(app_context):
    user = seed_user_with_perms('policy_profile@example.com', [Perm.PAYMENT_VIEW, Perm.FINANCIAL_VIEW])
    profile = current_profile(user.email)
    assert profile['email'] == user.email
    assert profile['is_ceo'] is False
    assert profile['permissions'] == ['financial_view', 'payment_view']
    assert current_profile('ghost@example.com') is None
