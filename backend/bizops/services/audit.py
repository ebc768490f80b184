from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g, has_app_context
from bizops import get_db
from bizops.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. USER.ROLE.SET, VENDOR.DELETE
      entity: optional entity name (Role, User, Vendor, etc.)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)

    The actor is taken from the identity the authorization gate stored on ``g``.
    """
    session = get_db()
    ident = g.get('identity') if has_app_context() else None
    log = AuditLog(
        actor_user_id=(ident.user_id if ident and ident.user_id is not None else 0),
        actor_email=ident.email if ident else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
