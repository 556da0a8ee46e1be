from __future__ import annotations
"""CSV and HTML invoice reports.

Both renderers are pure functions of (invoices, now): the full input is
materialized, rows are derived with the same status display rules the API
uses, and the only time-varying part of the output is the HTML "Generated on"
line.
"""
import csv
import io
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional
from jinja2 import Environment, PackageLoader, select_autoescape
from invoice_tracker.models.invoice import Invoice
from invoice_tracker.services.status_display import status_display, is_overdue

CSV_HEADERS = [
    'Invoice Number', 'Supplier', 'Amount', 'Received Date', 'Days Elapsed',
    'Status', 'Description', 'Assigned To', 'Payment Date',
]
CENTS = Decimal('0.01')

_env = Environment(
    loader=PackageLoader('invoice_tracker', 'templates'),
    autoescape=select_autoescape(['html']),
    keep_trailing_newline=True,
)


@dataclass(frozen=True)
class ReportRow:
    invoice_number: str
    supplier: str
    amount: Decimal
    received_date: str
    days_elapsed: int
    status_label: str
    description: str
    assigned_to: str
    payment_date: str
    css_class: str


@dataclass(frozen=True)
class ReportSummary:
    count: int
    total_amount: Decimal
    paid_count: int
    overdue_count: int


def _date_text(value: Any) -> str:
    if value is None:
        return ''
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


def _row_class(invoice: Any, now: datetime) -> str:
    if invoice.status == Invoice.STATUS_PAID:
        return 'paid'
    if is_overdue(invoice.status, invoice.received_date, now):
        return 'overdue'
    return ''


def build_rows(invoices: Iterable[Any], now: datetime) -> List[ReportRow]:
    rows = []
    for inv in invoices:
        display = status_display(inv.status, inv.received_date, now)
        rows.append(ReportRow(
            invoice_number=inv.invoice_number or '',
            supplier=inv.supplier or '',
            amount=Decimal(str(inv.amount or 0)),
            received_date=_date_text(inv.received_date),
            days_elapsed=display.days_elapsed,
            status_label=display.label,
            description=inv.description or '',
            assigned_to=inv.assigned_to_person or '',
            payment_date=_date_text(inv.payment_date),
            css_class=_row_class(inv, now),
        ))
    return rows


def summarize(invoices: Iterable[Any], now: datetime) -> ReportSummary:
    invoices = list(invoices)
    return ReportSummary(
        count=len(invoices),
        total_amount=sum((Decimal(str(inv.amount or 0)) for inv in invoices), Decimal('0')),
        paid_count=sum(1 for inv in invoices if inv.status == Invoice.STATUS_PAID),
        overdue_count=sum(1 for inv in invoices if is_overdue(inv.status, inv.received_date, now)),
    )


def render_csv(invoices: Iterable[Any], now: datetime) -> str:
    """Header line unquoted, then text columns quoted and numbers bare."""
    output = io.StringIO()
    csv.writer(output, lineterminator='\n').writerow(CSV_HEADERS)
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator='\n')
    for row in build_rows(invoices, now):
        writer.writerow([
            row.invoice_number,
            row.supplier,
            row.amount.quantize(CENTS),
            row.received_date,
            row.days_elapsed,
            row.status_label,
            row.description,
            row.assigned_to,
            row.payment_date,
        ])
    return output.getvalue()


def render_html(invoices: Iterable[Any], now: datetime, title: Optional[str] = None) -> str:
    invoices = list(invoices)
    template = _env.get_template('reports/invoice_report.html')
    return template.render(
        title=title or 'Invoice Report',
        generated_on=now.strftime('%Y-%m-%d %H:%M:%S'),
        headers=CSV_HEADERS,
        summary=summarize(invoices, now),
        rows=build_rows(invoices, now),
    )


__all__ = ['CSV_HEADERS', 'ReportRow', 'ReportSummary', 'build_rows', 'summarize', 'render_csv', 'render_html']
