from __future__ import annotations
from typing import Any, Dict, Optional
from invoice_tracker import get_db
from invoice_tracker.models.audit import AuditLog
from invoice_tracker.services.policy import AuthSession


def add_audit(action: str, auth: Optional[AuthSession], entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. INVOICE.CREATE, INVOICE.PAY, USER.ROLE.SET
      auth: the caller's session (None for anonymous flows such as signup)
      entity: optional entity name (Invoice, User)
      entity_id: optional primary key
      meta: additional JSON-safe dictionary (shallow copied)
    """
    session = get_db()
    log = AuditLog(
        actor_user_id=auth.user_id if auth else 0,
        actor_role=auth.role if auth else None,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
