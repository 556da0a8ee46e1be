from __future__ import annotations
from typing import Any, Dict, Iterable, Optional, Tuple
from flask import request, abort, make_response, jsonify
from sqlalchemy.orm import Query
from invoice_tracker.config.pagination import normalize_pagination
import hashlib
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def _iso(dt: Optional[datetime]) -> str:
    return canonicalize_timestamp(dt).isoformat().replace('+00:00', 'Z') if isinstance(dt, datetime) else ''


def latest_timestamp(rows: Iterable[Any], attr: str = 'updated_at') -> Optional[datetime]:
    stamps = [getattr(r, attr) for r in rows if isinstance(getattr(r, attr, None), datetime)]
    if not stamps:
        return None
    return max(canonicalize_timestamp(s) for s in stamps)


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable[Any], total: int, limit: int, offset: int, latest_ts: Optional[str] = '', variant: str = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}|{variant}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def build_list_payload(rows: list, total: int, limit: int, offset: int, extra: Optional[Dict[str, Any]] = None):
    payload = {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }
    if extra:
        payload.update(extra)
    return payload


def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(canonicalize_timestamp(dt), usegmt=True)


def _set_validators(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_ts:
        resp.headers['Last-Modified'] = _http_date(latest_ts)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_ts)
    return resp


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
    except ValueError:
        try:
            dt = parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
    if dt and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    If-None-Match takes precedence over If-Modified-Since.
    Returns a 304 response object if conditions satisfied, else None.
    """
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') == etag_value:
            return _set_validators(make_response('', 304), etag_value, latest_ts)
        return None
    ims_dt = _parse_if_modified_since(request.headers.get('If-Modified-Since', ''))
    if ims_dt and latest_ts:
        if canonicalize_timestamp(latest_ts) <= canonicalize_timestamp(ims_dt) + TIMESTAMP_TOLERANCE:
            return _set_validators(make_response('', 304), etag_value, latest_ts)
    return None


def cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None, extra: Optional[Dict[str, Any]] = None, variant: str = ''):
    """Build a paginated list response with ETag/Last-Modified validators.

    Serves GET and HEAD: 304 when the client copy is current, empty body on HEAD.
    variant carries whatever else the rendered rows depend on (the current day
    for derived labels, joined rows that do not bump updated_at).
    """
    ids = [r.get('id') for r in rows]
    etag = compute_etag(ids, total, limit, offset, _iso(latest_ts), variant)
    cond = handle_conditional(etag, latest_ts)
    if cond is not None:
        return cond
    resp = _set_validators(make_response(jsonify(build_list_payload(rows, total, limit, offset, extra))), etag, latest_ts)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


def cached_resource_response(body: Dict[str, Any], latest_ts: Optional[datetime] = None, variant: str = ''):
    etag = compute_etag([body.get('id')], 1, 1, 0, _iso(latest_ts), variant)
    cond = handle_conditional(etag, latest_ts)
    if cond is not None:
        return cond
    resp = _set_validators(make_response(jsonify(body)), etag, latest_ts)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp
