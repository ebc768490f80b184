"""Permission resolution and the authorization gate.

The gate works on an explicit ``RequestContext`` and returns an ``AuthzDecision``;
it never builds an HTTP response. Mapping decisions to status codes is the job
of ``bizops.decorators.auth``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set
from flask import abort
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from sqlalchemy import select, delete
from bizops.models.authz import User, UserRole, RolePermission, Permission, Role
from bizops.utils.validation import raise_validation_error
from bizops import get_db

logger = logging.getLogger(__name__)

REASON_UNAUTHENTICATED = 'unauthenticated'
REASON_FORBIDDEN = 'forbidden'


@dataclass(frozen=True)
class Identity:
    email: str
    user_id: Optional[int] = None
    is_superuser: bool = False


@dataclass(frozen=True)
class RequestContext:
    identity: Optional[Identity] = None

    @classmethod
    def anonymous(cls) -> 'RequestContext':
        return cls(identity=None)


@dataclass(frozen=True)
class AuthzDecision:
    allowed: bool
    reason: Optional[str] = None
    identity: Optional[Identity] = None


def request_context() -> RequestContext:
    """Build the context from the verified session token of the current request.

    A missing token yields an anonymous context; a malformed or expired token is
    rejected by flask-jwt-extended before we get here.
    """
    verify_jwt_in_request(optional=True)
    email = get_jwt_identity()
    if not email:
        return RequestContext.anonymous()
    claims = get_jwt()
    user_id = claims.get('user_id')
    return RequestContext(identity=Identity(
        email=email,
        user_id=int(user_id) if user_id is not None else None,
        is_superuser=bool(claims.get('is_ceo', False)),
    ))


def resolve_permissions(identity: str) -> Set[str]:
    """Flattened set of permission names held by the user with this e-mail.

    Unknown users and users without roles both resolve to an empty set.
    """
    if not identity:
        return set()
    session = get_db()
    stmt = (
        select(Permission.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .join(User, User.id == UserRole.user_id)
        .where(User.email == identity)
        .distinct()
    )
    return set(session.execute(stmt).scalars())


def authorize(ctx: RequestContext, required: str, resolver: Callable[[str], Set[str]] = resolve_permissions) -> AuthzDecision:
    ident = ctx.identity
    if ident is None or not ident.email:
        return AuthzDecision(False, REASON_UNAUTHENTICATED)
    # superuser must never be blocked by stale or missing role data
    if ident.is_superuser:
        return AuthzDecision(True, None, ident)
    required = getattr(required, 'value', required)
    if required in resolver(ident.email):
        return AuthzDecision(True, None, ident)
    logger.info('Permission %s denied for %s', required, ident.email)
    return AuthzDecision(False, REASON_FORBIDDEN, ident)


def current_profile(identity: str):
    """Profile plus freshly resolved permissions, or None for an unknown identity."""
    session = get_db()
    user = session.execute(select(User).where(User.email == identity)).scalar_one_or_none()
    if not user:
        return None
    return {
        'id': user.id,
        'username': user.username,
        'name': user.full_name,
        'email': user.email,
        'is_active': user.is_active,
        'is_ceo': user.is_ceo,
        'permissions': sorted(resolve_permissions(user.email)),
    }


def assign_role(user_id: int, role_id: int, assigned_by: Optional[int] = None) -> UserRole:
    """Replace the user's role with ``role_id`` in a single transaction.

    Readers never observe the intermediate state with zero roles.
    """
    session = get_db()
    user = session.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404, description='User not found')
    role = session.execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
    if not role:
        raise_validation_error([{'field': 'role_id', 'message': f'Unknown role id {role_id}'}])
    try:
        session.execute(delete(UserRole).where(UserRole.user_id == user.id))
        assignment = UserRole(user_id=user.id, role_id=role.id, assigned_by=assigned_by)
        session.add(assignment)
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.expire(user, ['user_roles'])
    logger.info('Assigned role %s to user id=%s', role.name, user.id)
    return assignment
