from __future__ import annotations
"""Request payload validation helpers.

Each helper either returns the parsed value or aborts with 400 so routes can
validate inline before touching the database.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional
from flask import abort


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def require_fields(data: Dict[str, Any], *names: str):
    missing = [n for n in names if data.get(n) in (None, '') or (isinstance(data.get(n), str) and not data.get(n).strip())]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


def parse_amount(raw: Any, field_name: str = 'amount') -> Decimal:
    """Parse a non-negative currency amount with at most two decimals.

    Values are never rounded: anything that would not read back exactly is rejected.
    """
    if isinstance(raw, bool) or raw is None:
        abort(400, description=f"{field_name} invalid")
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        abort(400, description=f"{field_name} invalid")
    if not value.is_finite():
        abort(400, description=f"{field_name} invalid")
    if value < 0:
        abort(400, description=f"{field_name} must be non-negative")
    if value.as_tuple().exponent < -2:
        abort(400, description=f"{field_name} supports at most two decimals")
    return value


def parse_date(raw: Any, field_name: str, required: bool = True) -> Optional[date]:
    if raw in (None, ''):
        if required:
            abort(400, description=f"{field_name} required")
        return None
    if not isinstance(raw, str):
        abort(400, description=f"{field_name} must be YYYY-MM-DD")
    try:
        return date.fromisoformat(raw)
    except ValueError:
        abort(400, description=f"{field_name} must be YYYY-MM-DD")


def optional_text(raw: Any, field_name: str) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        abort(400, description=f"{field_name} must be a string")
    return raw


def validate_password_pair(password: Optional[str], confirm: Optional[str]):
    if not password:
        abort(400, description='password required')
    if password != confirm:
        abort(400, description='passwords do not match')

__all__ = ['validate_status', 'require_fields', 'parse_amount', 'parse_date', 'optional_text', 'validate_password_pair']
