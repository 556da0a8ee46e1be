from __future__ import annotations
"""Filtered invoice queries shared by the listing, statistics and report endpoints."""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Mapping
from sqlalchemy import or_
from invoice_tracker.models.invoice import Invoice
from invoice_tracker.utils.filters import apply_filters
from invoice_tracker.utils.sorting import apply_multi_sort

SORTABLE = {
    'invoice_number': Invoice.invoice_number,
    'supplier': Invoice.supplier,
    'amount': Invoice.amount,
    'received_date': Invoice.received_date,
    'payment_date': Invoice.payment_date,
    'status': Invoice.status,
    'department': Invoice.department,
    'created_at': Invoice.created_at,
    'updated_at': Invoice.updated_at,
    'id': Invoice.id,
}


def _search(q, term: str):
    like = f'%{term}%'
    return q.filter(or_(
        Invoice.invoice_number.ilike(like),
        Invoice.supplier.ilike(like),
        Invoice.description.ilike(like),
    ))


FILTER_SPECS: Dict[str, Dict[str, Any]] = {
    'status': {'op': lambda q, v: q.filter(Invoice.status == v), 'validate': lambda v: v in Invoice.ALL_STATUSES},
    'department': {'op': lambda q, v: q.filter(Invoice.department == v)},
    'search': {'op': _search},
    'received_from': {'coerce': date.fromisoformat, 'op': lambda q, v: q.filter(Invoice.received_date >= v)},
    'received_to': {'coerce': date.fromisoformat, 'op': lambda q, v: q.filter(Invoice.received_date <= v)},
}


def filtered_invoices(session, params: Mapping[str, Any]):
    return apply_filters(session.query(Invoice), FILTER_SPECS, params)


def sorted_invoices(q, sort_expr):
    """Newest first unless the caller asks for an explicit order."""
    return apply_multi_sort(q, sort_expr, SORTABLE, Invoice.id, default=[Invoice.created_at.desc()])


def invoice_stats(invoices) -> Dict[str, Any]:
    invoices = list(invoices)
    total_amount = sum((Decimal(str(i.amount or 0)) for i in invoices), Decimal('0'))
    return {
        'total': len(invoices),
        'pending': sum(1 for i in invoices if i.status == Invoice.STATUS_PENDING),
        'approved': sum(1 for i in invoices if i.status == Invoice.STATUS_APPROVED),
        'paid': sum(1 for i in invoices if i.status == Invoice.STATUS_PAID),
        'total_amount': float(total_amount),
    }


__all__ = ['SORTABLE', 'FILTER_SPECS', 'filtered_invoices', 'sorted_invoices', 'invoice_stats']
