from __future__ import annotations
"""Audit logging decorator for mutating route handlers.

Usage:

@inv_bp.post('/<int:invoice_id>/mark-paid')
@require_action('invoice.mark_paid')
@audit_log('INVOICE.PAY', entity='Invoice', entity_id_key='id',
           diff_keys=['status', 'payment_date'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def mark_paid(invoice_id, auth): ...

Parameters:
  action: audit action code
  entity: entity label (Invoice, User)
  entity_id_key: key in the returned JSON object whose value becomes entity_id
  entity_id_arg: view keyword argument used when the payload carries no id
  meta_keys: keys projected from the returned JSON into meta
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys
  diff_keys / pre_fetch: before/after comparison stored under meta['changes']

The decorator must sit below the auth decorator so it receives the ``auth``
keyword. Only successful (< 400) responses are audited.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from invoice_tracker.services.audit import add_audit
from invoice_tracker import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, status) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if diff_keys and pre_fetch else None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400:
                return rv
            try:
                payload = data if isinstance(data, dict) else {}
                entity_id = None
                if entity_id_key and entity_id_key in payload:
                    entity_id = payload.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta: Dict[str, Any] = {}
                if meta_builder:
                    meta = meta_builder(payload, rv, args, kwargs) or {}
                elif meta_keys:
                    meta = {k: payload.get(k) for k in meta_keys if k in payload}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = {
                        k: {'before': before_snapshot.get(k), 'after': payload.get(k)}
                        for k in diff_keys
                        if k in before_snapshot and k in payload and before_snapshot.get(k) != payload.get(k)
                    }
                    if changes:
                        meta['changes'] = changes
                add_audit(action, kwargs.get('auth'), entity, entity_id, meta)
                get_db().commit()
            except Exception:
                # Audit must not interfere with an already-committed main response
                logger.exception('audit write failed for %s', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
