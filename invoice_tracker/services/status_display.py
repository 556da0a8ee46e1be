from __future__ import annotations
"""Derived display state for invoices.

The label and severity shown for an invoice depend on its stored status and on
how many whole days have passed since it was received. They are recomputed on
every read because ``now`` keeps moving; nothing here is persisted and the
stored status is never modified.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from invoice_tracker.config.workflow import ALERT_AFTER_DAYS, OVERDUE_AFTER_DAYS
from invoice_tracker.models.invoice import Invoice

SEVERITY_PAID = 'paid'
SEVERITY_INFO = 'info'
SEVERITY_OVERDUE = 'overdue'
SEVERITY_ALERT = 'alert'
SEVERITY_NORMAL = 'normal'

IN_FLIGHT_LABELS = {
    Invoice.STATUS_SENT_TO_FINANCE: 'Sent to Finance',
    Invoice.STATUS_ASSIGNED: 'Assigned to Supply Chain',
}

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    severity: str
    days_elapsed: int

    def to_dict(self):
        return asdict(self)


def _as_datetime(value: DateLike, tzinfo) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value) if 'T' in value or ' ' in value else date.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None and tzinfo is not None:
            value = value.replace(tzinfo=tzinfo)
        elif value.tzinfo is not None and tzinfo is None:
            value = value.replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min, tzinfo=tzinfo)


def days_elapsed(received: DateLike, now: datetime) -> int:
    """Whole days between receipt and now, floored (negative for future dates)."""
    start = _as_datetime(received, now.tzinfo)
    return (now - start) // timedelta(days=1)


def status_display(status: Optional[str], received: DateLike, now: datetime) -> StatusDisplay:
    elapsed = days_elapsed(received, now)
    if status == Invoice.STATUS_PAID:
        return StatusDisplay('Paid', SEVERITY_PAID, elapsed)
    if status in IN_FLIGHT_LABELS:
        return StatusDisplay(IN_FLIGHT_LABELS[status], SEVERITY_INFO, elapsed)
    if elapsed >= OVERDUE_AFTER_DAYS:
        return StatusDisplay('Overdue', SEVERITY_OVERDUE, elapsed)
    if elapsed >= ALERT_AFTER_DAYS:
        return StatusDisplay('Alert', SEVERITY_ALERT, elapsed)
    return StatusDisplay((status or '').upper(), SEVERITY_NORMAL, elapsed)


def is_overdue(status: Optional[str], received: DateLike, now: datetime) -> bool:
    """Overdue for reporting purposes: past the overdue threshold and not paid."""
    return status != Invoice.STATUS_PAID and days_elapsed(received, now) >= OVERDUE_AFTER_DAYS


__all__ = ['StatusDisplay', 'days_elapsed', 'status_display', 'is_overdue']
