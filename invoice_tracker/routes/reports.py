from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request, abort, make_response
from invoice_tracker import get_db
from invoice_tracker.config.workflow import REPORT_PERIODS, REPORT_FORMATS
from invoice_tracker.decorators.auth import require_action
from invoice_tracker.decorators.audit import audit_log
from invoice_tracker.services.functions import functions_client
from invoice_tracker.services.invoice_query import filtered_invoices, sorted_invoices
from invoice_tracker.services.reports import render_csv, render_html

rpt_bp = Blueprint('reports', __name__)


def _report_invoices():
    q = sorted_invoices(filtered_invoices(get_db(), request.args), request.args.get('sort'))
    return q.all()


def _download(body: str, mimetype: str, filename: str):
    resp = make_response(body)
    resp.mimetype = mimetype
    resp.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp


@rpt_bp.get('/invoices.csv')
@require_action('report.read')
def invoices_csv(auth):
    now = datetime.now(timezone.utc)
    body = render_csv(_report_invoices(), now)
    return _download(body, 'text/csv', f'invoices-{now.date().isoformat()}.csv')


@rpt_bp.get('/invoices.html')
@require_action('report.read')
def invoices_html(auth):
    now = datetime.now(timezone.utc)
    body = render_html(_report_invoices(), now, title=request.args.get('title'))
    if request.args.get('download') in ('1', 'true'):
        return _download(body, 'text/html', f'invoices-{now.date().isoformat()}.html')
    resp = make_response(body)
    resp.mimetype = 'text/html'
    return resp


@rpt_bp.post('/email')
@require_action('report.email')
@audit_log('REPORT.EMAIL', entity='Report', meta_keys=['type', 'format'])
def email_report(auth):
    data = request.get_json(silent=True) or {}
    report_type = data.get('type')
    report_format = data.get('format')
    if report_type not in REPORT_PERIODS:
        abort(400, description=f"type must be one of {', '.join(REPORT_PERIODS)}")
    if report_format not in REPORT_FORMATS:
        abort(400, description=f"format must be one of {', '.join(REPORT_FORMATS)}")
    result = functions_client().generate_report(report_type, report_format)
    return {
        'type': report_type,
        'format': report_format,
        'emails_sent': int(result.get('emails_sent') or 0),
        'message': result.get('message'),
    }


@rpt_bp.post('/overdue-notices')
@require_action('report.overdue_notices')
@audit_log('REPORT.OVERDUE_NOTICES', entity='Report', meta_keys=['message'])
def overdue_notices(auth):
    result = functions_client().send_supply_chain_email()
    return {'message': result.get('message') or 'Overdue invoice notifications have been sent'}
