from __future__ import annotations
from typing import List, Tuple
from flask import abort


def parse_sort(sort_expr: str | None) -> List[Tuple[str, bool]]:
    """Split ``"-amount,transaction_date"`` into ``[('amount', True), ('transaction_date', False)]``."""
    fields: List[Tuple[str, bool]] = []
    seen = set()
    for raw in (sort_expr or '').split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token.lstrip('-+')
        if key in seen:
            abort(400, description=f'Duplicate sort field {key}')
        seen.add(key)
        fields.append((key, desc))
    return fields


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker, default=()):
    """Order ``query`` by the requested fields, or ``default`` when none are given.

    ``allowed`` maps public field names to columns; ``tie_breaker`` is always last.
    """
    fields = parse_sort(sort_expr)
    if not fields:
        return query.order_by(*default, tie_breaker)
    clauses = []
    for key, desc in fields:
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    return query.order_by(*clauses, tie_breaker)
