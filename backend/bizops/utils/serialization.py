from __future__ import annotations
"""Canonical JSON conversion for ORM values.

Every handler funnels its payload through ``to_jsonable`` so Decimal, oversized
integer and temporal values are rendered the same way everywhere.
"""
import base64
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

# Largest integer a JavaScript client can hold without precision loss
JS_MAX_SAFE_INTEGER = 2 ** 53 - 1


def to_jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > JS_MAX_SAFE_INTEGER else value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    raise TypeError(f'Object of type {type(value).__name__} is not JSON serializable')


def model_to_dict(obj, exclude: Iterable[str] = ()) -> dict:
    """Column values of a mapped instance, converted with ``to_jsonable``."""
    skip = set(exclude)
    out = {}
    for col in obj.__table__.columns:
        if col.key in skip:
            continue
        out[col.key] = getattr(obj, col.key)
    return to_jsonable(out)


def logo_data_uri(raw: Optional[bytes], mimetype: Optional[str] = None) -> Optional[str]:
    if not raw:
        return None
    return f"data:{mimetype or 'image/jpeg'};base64,{base64.b64encode(raw).decode('ascii')}"


__all__ = ['to_jsonable', 'model_to_dict', 'logo_data_uri', 'JS_MAX_SAFE_INTEGER']
