from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from invoice_tracker.services.reports import render_csv, render_html, summarize, CSV_HEADERS

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
HEADER = 'Invoice Number,Supplier,Amount,Received Date,Days Elapsed,Status,Description,Assigned To,Payment Date'


def _inv(**kw):
    base = dict(
        invoice_number='INV-1', supplier='Acme', amount=Decimal('10.00'), description='',
        received_date=date(2026, 3, 29), payment_date=None, assigned_to_person=None, status='pending',
    )
    base.update(kw)
    return SimpleNamespace(**base)


def test_empty_report_csv_is_header_only():
    assert render_csv([], NOW) == HEADER + '\n'
    assert ','.join(CSV_HEADERS) == HEADER


def test_empty_report_html_has_zero_summary():
    html = render_html([], NOW)
    assert '<span id="count">0</span>' in html
    assert '<span id="paid-count">0</span>' in html
    assert '<span id="overdue-count">0</span>' in html
    assert '<span id="total-amount">0.00</span>' in html
    assert 'Generated on: 2026-03-31 12:00:00' in html


def test_csv_row_quoting_and_display_label():
    rows = [_inv(invoice_number='INV-"7"', supplier='Smith, Jones', amount=Decimal('1234.5'), description='say "hi"')]
    lines = render_csv(rows, NOW).splitlines()
    assert lines[1] == '"INV-""7""","Smith, Jones",1234.50,"2026-03-29",2,"PENDING","say ""hi""","",""'


def test_csv_overdue_and_paid_rows():
    rows = [
        _inv(received_date=date(2026, 3, 1)),
        _inv(received_date=date(2026, 3, 1), status='paid', payment_date=date(2026, 3, 20)),
    ]
    lines = render_csv(rows, NOW).splitlines()
    assert ',30,"Overdue",' in lines[1]
    assert lines[2].endswith(',30,"Paid","","","2026-03-20"')


def test_html_row_classes_and_escaping():
    rows = [
        _inv(invoice_number='A', received_date=date(2026, 3, 1)),
        _inv(invoice_number='B', status='paid', received_date=date(2026, 3, 1)),
        _inv(invoice_number='C', supplier='<b>Evil</b>'),
    ]
    html = render_html(rows, NOW)
    assert '<tr class="overdue">' in html
    assert '<tr class="paid">' in html
    assert '<b>Evil</b>' not in html
    assert '&lt;b&gt;Evil&lt;/b&gt;' in html
    assert '<span id="count">3</span>' in html
    assert '<span id="overdue-count">1</span>' in html


def test_report_is_deterministic():
    rows = [_inv(), _inv(invoice_number='INV-2', status='approved', received_date=date(2026, 3, 10))]
    assert render_csv(rows, NOW) == render_csv(list(rows), NOW)
    assert render_html(rows, NOW) == render_html(list(rows), NOW)


def test_summary_totals():
    rows = [_inv(amount=Decimal('10.25')), _inv(amount=Decimal('4.75'), status='paid')]
    s = summarize(rows, NOW)
    assert s.count == 2
    assert s.total_amount == Decimal('15.00')
    assert s.paid_count == 1
    assert s.overdue_count == 0


def test_csv_numbers_bare_and_blank_text_quoted():
    rows = [_inv(amount=Decimal('0'), description=None, received_date=date(2026, 3, 31))]
    assert render_csv(rows, NOW).splitlines()[1] == '"INV-1","Acme",0.00,"2026-03-31",0,"PENDING","","",""'
