from __future__ import annotations
"""Reusable validation helpers for request payloads.

Rules are plain dicts so route modules can declare them next to the handler:

    VENDOR_RULES = {
        'vendor_name': {'type': str, 'min': 2, 'max': 255},
        'email': {'type': str, 'email': True, 'max': 255, 'nullable': True},
        'is_active': {'type': bool},
    }

Every problem is collected (no early abort) and reported as a 400 with a
``details`` list of ``{'field', 'message'}`` entries.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional
from werkzeug.exceptions import BadRequest

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class ValidationFailed(BadRequest):
    def __init__(self, details: List[Dict[str, str]], description: str = 'Validation failed.'):
        super().__init__(description=description)
        self.details = details


def raise_validation_error(details: List[Dict[str, str]], description: str = 'Validation failed.'):
    raise ValidationFailed(details, description)


def _check(name: str, value: Any, rule: Dict[str, Any]) -> Optional[str]:
    expected = rule.get('type', str)
    if expected is bool:
        if not isinstance(value, bool):
            return f'"{name}" must be a boolean'
        return None
    if expected is Decimal:
        try:
            to_decimal(value)
        except ValueError:
            return f'"{name}" must be a number'
        return None
    if expected is date:
        try:
            parse_date(value)
        except ValueError:
            return f'"{name}" must be a date (YYYY-MM-DD)'
        return None
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            return f'"{name}" must be an integer'
        return None
    if not isinstance(value, str):
        return f'"{name}" must be a string'
    value = value.strip()
    if 'min' in rule and len(value) < rule['min']:
        return f'"{name}" length must be at least {rule["min"]} characters long'
    if 'max' in rule and len(value) > rule['max']:
        return f'"{name}" length must be less than or equal to {rule["max"]} characters long'
    if rule.get('email') and value and not EMAIL_RE.match(value):
        return f'"{name}" must be a valid email'
    return None


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(data: Dict[str, Any], rules: Dict[str, Dict[str, Any]], required: Iterable[str] = ()) -> Dict[str, Any]:
    """Validate ``data`` against ``rules``; unknown keys are stripped.

    Returns the cleaned dict (strings trimmed) or raises ``ValidationFailed``.
    """
    if not isinstance(data, dict):
        raise_validation_error([{'field': '', 'message': 'request body must be a JSON object'}])
    details: List[Dict[str, str]] = []
    cleaned: Dict[str, Any] = {}
    for name in required:
        if _blank(data.get(name)):
            details.append({'field': name, 'message': f'"{name}" is required'})
    for name, rule in rules.items():
        if name not in data:
            continue
        value = data[name]
        if _blank(value):
            if rule.get('nullable'):
                cleaned[name] = None
            elif name not in required:
                details.append({'field': name, 'message': f'"{name}" is not allowed to be empty'})
            continue
        problem = _check(name, value, rule)
        if problem:
            details.append({'field': name, 'message': problem})
            continue
        cleaned[name] = value.strip() if isinstance(value, str) else value
    if details:
        raise_validation_error(details)
    return cleaned


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError('boolean is not a number')
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        raise ValueError(f'{value!r} is not a number')
    if not d.is_finite():
        raise ValueError(f'{value!r} is not a number')
    return d


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError('date required')
    raw = value.strip()
    try:
        return datetime.fromisoformat(raw.replace('Z', '+00:00')).date()
    except ValueError:
        return date.fromisoformat(raw[:10])


__all__ = ['ValidationFailed', 'raise_validation_error', 'validate_payload', 'to_decimal', 'parse_date']
