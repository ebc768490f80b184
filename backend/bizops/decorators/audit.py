from __future__ import annotations
"""Audit logging decorator for mutating route handlers.

Usage examples:

@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='id', meta_keys=['vendor_name'])
def create_vendor():
    ... return {'id': vendor.id, 'vendor_name': vendor.vendor_name}, 201

@audit_log('USER.ROLE.SET', entity='User', entity_id_arg='user_id', meta_keys=['role_id'])
def set_user_role(user_id): ...

Parameters:
  action: required audit action code (e.g. VENDOR.UPDATE)
  entity: optional entity label (Vendor, User, Invoice)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter used when entity_id_key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  diff_keys / pre_fetch: pre_fetch(args, kwargs) returns a snapshot taken before the
    handler runs; changed diff_keys are recorded under meta['changes'].

Handlers return dict or (dict, status); the first element is inspected.
The audit row is committed separately from the handler's own transaction and a
failure to write it is logged, not surfaced to the client.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from bizops.services.audit import add_audit
from bizops import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta = {k: data.get(k) for k in (meta_keys or ()) if k in data}
            if diff_keys and before:
                changes = {
                    k: {'before': before.get(k), 'after': data.get(k)}
                    for k in diff_keys
                    if k in before and k in data and before.get(k) != data.get(k)
                }
                if changes:
                    meta['changes'] = changes
            session = get_db()
            try:
                add_audit(action, entity, entity_id, meta)
                session.commit()
            except Exception:
                session.rollback()
                logger.exception('Failed to write audit entry %s', action)
            return rv
        return wrapper
    return outer
