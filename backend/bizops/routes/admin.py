from __future__ import annotations
import logging
from flask import Blueprint, request, g
from sqlalchemy.orm import selectinload
from bizops import get_db
from bizops.models.authz import User, Role, RolePermission, UserRole
from bizops.models.audit import AuditLog
from bizops.decorators.auth import require_superuser
from bizops.decorators.audit import audit_log
from bizops.services.policy import assign_role
from bizops.utils.filters import apply_filters
from bizops.utils.listing import list_response
from bizops.utils.serialization import to_jsonable
from bizops.utils.validation import validate_payload

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


def _user_json(user: User):
    assignment = user.user_roles[0] if user.user_roles else None
    role = assignment.role if assignment else None
    return {
        'id': user.id,
        'username': user.username,
        'name': user.full_name,
        'email': user.email,
        'is_active': user.is_active,
        'is_ceo': user.is_ceo,
        'role': {'id': role.id, 'name': role.name} if role else None,
        'permissions': sorted(rp.permission.name for rp in role.permissions) if role else [],
    }


def _role_json(role: Role):
    return {
        'id': role.id,
        'name': role.name,
        'description': role.description,
        'permissions': [{'id': rp.permission.id, 'name': rp.permission.name} for rp in role.permissions],
    }


@admin_bp.get('/users')
@require_superuser
def list_users():
    session = get_db()
    q = session.query(User).options(
        selectinload(User.user_roles).selectinload(UserRole.role)
        .selectinload(Role.permissions).selectinload(RolePermission.permission)
    ).order_by(User.id.asc())
    return list_response(q, _user_json)


@admin_bp.get('/roles')
@require_superuser
def list_roles():
    session = get_db()
    q = session.query(Role).options(
        selectinload(Role.permissions).selectinload(RolePermission.permission)
    ).order_by(Role.id.asc())
    return list_response(q, _role_json)


@admin_bp.put('/users/<int:user_id>/role')
@require_superuser
@audit_log('USER.ROLE.SET', entity='User', entity_id_key='user_id', meta_keys=['role_id', 'role_name'])
def set_user_role(user_id: int):
    data = validate_payload(request.get_json(silent=True) or {}, {'role_id': {'type': int}}, required=['role_id'])
    assignment = assign_role(user_id, data['role_id'], assigned_by=g.identity.user_id)
    return to_jsonable({
        'user_id': assignment.user_id,
        'role_id': assignment.role_id,
        'role_name': assignment.role.name,
        'assigned_by': assignment.assigned_by,
    })


@admin_bp.get('/audit-logs')
@require_superuser
def list_audit_logs():
    session = get_db()
    q = session.query(AuditLog)
    filter_specs = {
        'action': {'op': lambda qu, v: qu.filter(AuditLog.action == v)},
        'entity': {'op': lambda qu, v: qu.filter(AuditLog.entity == v)},
        'actor_user_id': {'coerce': int, 'op': lambda qu, v: qu.filter(AuditLog.actor_user_id == v)},
    }
    q = apply_filters(q, filter_specs, request.args).order_by(AuditLog.id.desc())
    return list_response(q, lambda row: {
        'id': row.id,
        'actor_user_id': row.actor_user_id,
        'actor_email': row.actor_email,
        'action': row.action,
        'entity': row.entity,
        'entity_id': row.entity_id,
        'meta': row.meta or {},
        'created_at': row.created_at,
    })
