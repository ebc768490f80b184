"""Paginated list responses with ETag / Last-Modified validators.

Every collection endpoint answers ``{'data': [...], 'pagination': {...}}`` and
honours ``If-None-Match`` (checked first) and ``If-Modified-Since`` with a 304.
"""
from __future__ import annotations
import hashlib
import json
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime
from typing import Callable, Dict, List, Optional, Tuple
from flask import request, abort, make_response
from sqlalchemy.orm import Query
from bizops.config.pagination import normalize_pagination
from bizops.utils.serialization import to_jsonable

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """UTC, tz-aware, truncated to whole seconds (HTTP dates carry no fractions)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def page_query(q: Query) -> Tuple[list, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.order_by(None).count()
    return q.offset(offset).limit(limit).all(), total, limit, offset


def compute_etag(data: list, total: int, limit: int, offset: int, latest_iso: str = '') -> str:
    """Hash of the serialized page, so any change to a returned row changes the tag."""
    body = json.dumps(data, sort_keys=True, separators=(',', ':'), default=str)
    seed = f"{body}|{total}|{limit}|{offset}|{latest_iso}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def _latest_stamp(rows: list) -> Optional[datetime]:
    stamps = []
    for r in rows:
        ts = getattr(r, 'updated_at', None) or getattr(r, 'created_at', None)
        if isinstance(ts, datetime):
            stamps.append(canonicalize_timestamp(ts))
    return max(stamps) if stamps else None


def _validator_headers(etag: str, latest: Optional[datetime]) -> Dict[str, str]:
    headers = {'ETag': etag}
    if latest:
        headers['Last-Modified'] = format_datetime(latest, usegmt=True)
        headers['X-Last-Modified-ISO'] = latest.isoformat().replace('+00:00', 'Z')
    return headers


def _parse_if_modified_since(raw: str) -> Optional[datetime]:
    # ISO 8601 first, then RFC 1123 HTTP-date
    try:
        dt = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        try:
            dt = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return None
    return canonicalize_timestamp(dt)


def is_not_modified(etag: str, latest: Optional[datetime]) -> bool:
    inm = request.headers.get('If-None-Match')
    if inm:
        return inm.strip('"') == etag
    ims_raw = request.headers.get('If-Modified-Since')
    if not ims_raw or not latest:
        return False
    ims = _parse_if_modified_since(ims_raw)
    return bool(ims and latest <= ims + TIMESTAMP_TOLERANCE)


def list_response(q: Query, row_json: Callable[[object], dict]):
    """Paginate ``q``, serialize each row with ``row_json`` and attach validators."""
    rows, total, limit, offset = page_query(q)
    data: List[dict] = [to_jsonable(row_json(r)) for r in rows]
    latest = _latest_stamp(rows)
    latest_iso = latest.isoformat().replace('+00:00', 'Z') if latest else ''
    etag = compute_etag(data, total, limit, offset, latest_iso)
    if is_not_modified(etag, latest):
        resp = make_response('', 304)
    else:
        resp = make_response({
            'data': data,
            'pagination': {'total': total, 'limit': limit, 'offset': offset, 'returned': len(data)},
        })
    for name, value in _validator_headers(etag, latest).items():
        resp.headers[name] = value
    return resp
