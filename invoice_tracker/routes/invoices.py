from __future__ import annotations
import base64
from datetime import datetime, timezone
from flask import Blueprint, request, abort
from sqlalchemy import select
from invoice_tracker import get_db
from invoice_tracker.decorators.auth import require_action
from invoice_tracker.decorators.audit import audit_log
from invoice_tracker.models.invoice import Invoice
from invoice_tracker.services import workflow
from invoice_tracker.services.functions import functions_client
from invoice_tracker.services.invoice_query import filtered_invoices, sorted_invoices, invoice_stats
from invoice_tracker.services.status_display import status_display
from invoice_tracker.utils.listing import apply_pagination, cached_list_response, cached_resource_response, latest_timestamp
from invoice_tracker.utils.validation import require_fields, parse_amount, parse_date, optional_text

inv_bp = Blueprint('invoices', __name__)

EDITABLE_FIELDS = (
    'invoice_number', 'supplier', 'amount', 'description', 'received_date', 'payment_date',
    'assigned_to_person', 'finance_notes', 'supply_chain_notes', 'status', 'department', 'file_url',
)
EXTRACT_CONTENT_TYPES = ('image/jpeg', 'image/png', 'image/webp', 'image/gif', 'application/pdf')


def _iso(value):
    return value.isoformat() if value is not None else None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _display_validators(rows, now: datetime):
    """Last-Modified and ETag variant for bodies carrying the display block.

    Labels roll over at UTC midnight, so Last-Modified is never earlier than
    the start of the current day and the day is part of the ETag.
    """
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    latest = latest_timestamp(rows)
    return (max(latest, day_start) if latest else day_start), now.date().isoformat()


def _invoice_json(inv: Invoice, now=None):
    now = now or _now()
    return {
        'id': inv.id,
        'invoice_number': inv.invoice_number,
        'supplier': inv.supplier,
        'amount': float(inv.amount) if inv.amount is not None else None,
        'description': inv.description,
        'received_date': _iso(inv.received_date),
        'payment_date': _iso(inv.payment_date),
        'assigned_to_person': inv.assigned_to_person,
        'finance_notes': inv.finance_notes,
        'supply_chain_notes': inv.supply_chain_notes,
        'status': inv.status,
        'department': inv.department,
        'file_url': inv.file_url,
        'user_id': inv.user_id,
        'created_at': _iso(inv.created_at),
        'updated_at': _iso(inv.updated_at),
        'display': status_display(inv.status, inv.received_date, now).to_dict(),
    }


def _get_invoice_or_404(invoice_id: int) -> Invoice:
    inv = get_db().execute(select(Invoice).where(Invoice.id == invoice_id)).scalar_one_or_none()
    if not inv:
        abort(404)
    return inv


def _snapshot(invoice_id):
    inv = get_db().get(Invoice, invoice_id)
    return _invoice_json(inv) if inv else {}


def _non_empty(raw, field_name: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        abort(400, description=f'{field_name} required')
    return raw


@inv_bp.route('', methods=['GET', 'HEAD'])
@require_action('invoice.read')
def list_invoices(auth):
    session = get_db()
    q = sorted_invoices(filtered_invoices(session, request.args), request.args.get('sort'))
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    now = _now()
    latest, day = _display_validators(rows, now)
    return cached_list_response([_invoice_json(r, now) for r in rows], total, limit, offset, latest, variant=day)


@inv_bp.get('/stats')
@require_action('invoice.read')
def stats(auth):
    return invoice_stats(filtered_invoices(get_db(), request.args).all())


@inv_bp.route('/<int:invoice_id>', methods=['GET', 'HEAD'])
@require_action('invoice.read')
def get_invoice(invoice_id: int, auth):
    inv = _get_invoice_or_404(invoice_id)
    now = _now()
    latest, day = _display_validators([inv], now)
    return cached_resource_response(_invoice_json(inv, now), latest, variant=day)


@inv_bp.post('')
@require_action('invoice.create')
@audit_log('INVOICE.CREATE', entity='Invoice', entity_id_key='id', meta_keys=['invoice_number', 'supplier', 'amount'])
def create_invoice(auth):
    session = get_db()
    data = request.get_json(silent=True) or {}
    require_fields(data, 'invoice_number', 'supplier', 'amount', 'received_date')
    inv = Invoice(
        invoice_number=_non_empty(data.get('invoice_number'), 'invoice_number'),
        supplier=_non_empty(data.get('supplier'), 'supplier'),
        amount=parse_amount(data.get('amount')),
        description=optional_text(data.get('description'), 'description') or '',
        received_date=parse_date(data.get('received_date'), 'received_date'),
        department=optional_text(data.get('department'), 'department'),
        file_url=optional_text(data.get('file_url'), 'file_url'),
        status=Invoice.STATUS_PENDING,
        user_id=auth.user_id,
    )
    session.add(inv)
    session.commit()
    return _invoice_json(inv), 201


def _parse_update(data: dict) -> dict:
    unknown = sorted(k for k in data if k not in EDITABLE_FIELDS)
    if unknown:
        abort(400, description=f"unknown field(s): {', '.join(unknown)}")
    if not data:
        abort(400, description='no fields to update')
    changes = {}
    for key, raw in data.items():
        if key in ('invoice_number', 'supplier'):
            changes[key] = _non_empty(raw, key)
        elif key == 'amount':
            changes[key] = parse_amount(raw)
        elif key == 'description':
            changes[key] = optional_text(raw, key) or ''
        elif key == 'received_date':
            changes[key] = parse_date(raw, key)
        elif key == 'payment_date':
            changes[key] = parse_date(raw, key, required=False)
        elif key == 'status':
            if not isinstance(raw, str):
                abort(400, description='status invalid')
            changes[key] = raw
        else:
            changes[key] = optional_text(raw, key)
    return changes


@inv_bp.patch('/<int:invoice_id>')
@require_action('invoice.update')
@audit_log(
    'INVOICE.UPDATE',
    entity='Invoice',
    entity_id_key='id',
    diff_keys=['status', 'amount', 'payment_date', 'assigned_to_person'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')),
)
def update_invoice(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    changes = _parse_update(request.get_json(silent=True) or {})
    # Status first so an illegal transition aborts before any field is touched
    if 'status' in changes:
        workflow.transition(inv, changes.pop('status'), auth)
    for key, value in changes.items():
        setattr(inv, key, value)
    session.commit()
    return _invoice_json(inv)


@inv_bp.delete('/<int:invoice_id>')
@require_action('invoice.delete')
@audit_log('INVOICE.DELETE', entity='Invoice', entity_id_arg='invoice_id')
def delete_invoice(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    session.delete(inv)
    session.commit()
    return '', 204


@inv_bp.post('/<int:invoice_id>/assign')
@require_action('invoice.assign')
@audit_log('INVOICE.ASSIGN', entity='Invoice', entity_id_key='id', diff_keys=['status', 'assigned_to_person'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def assign_invoice(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    data = request.get_json(silent=True) or {}
    workflow.assign_to_supply_chain(
        inv, auth,
        optional_text(data.get('assigned_to_person'), 'assigned_to_person'),
        optional_text(data.get('supply_chain_notes'), 'supply_chain_notes'),
    )
    session.commit()
    return _invoice_json(inv)


@inv_bp.post('/<int:invoice_id>/send-to-finance')
@require_action('invoice.send_to_finance')
@audit_log('INVOICE.SEND_TO_FINANCE', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def send_invoice_to_finance(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    data = request.get_json(silent=True) or {}
    workflow.send_to_finance(inv, auth, optional_text(data.get('supply_chain_notes'), 'supply_chain_notes'))
    session.commit()
    return _invoice_json(inv)


@inv_bp.post('/<int:invoice_id>/mark-paid')
@require_action('invoice.mark_paid')
@audit_log('INVOICE.PAY', entity='Invoice', entity_id_key='id', diff_keys=['status', 'payment_date'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def mark_invoice_paid(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    data = request.get_json(silent=True) or {}
    workflow.mark_paid(
        inv, auth,
        parse_date(data.get('payment_date'), 'payment_date'),
        optional_text(data.get('finance_notes'), 'finance_notes'),
    )
    session.commit()
    return _invoice_json(inv)


@inv_bp.post('/<int:invoice_id>/approve')
@require_action('invoice.approve')
@audit_log('INVOICE.APPROVE', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def approve_invoice(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    workflow.approve(inv, auth)
    session.commit()
    return _invoice_json(inv)


@inv_bp.post('/<int:invoice_id>/reject')
@require_action('invoice.reject')
@audit_log('INVOICE.REJECT', entity='Invoice', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _snapshot(kw.get('invoice_id')))
def reject_invoice(invoice_id: int, auth):
    session = get_db()
    inv = _get_invoice_or_404(invoice_id)
    workflow.reject(inv, auth)
    session.commit()
    return _invoice_json(inv)


@inv_bp.get('/transitions')
@require_action('invoice.read')
def list_transitions(auth):
    return {'data': workflow.transitions_map()}


@inv_bp.post('/extract')
@require_action('invoice.extract')
def extract_invoice(auth):
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        abort(400, description='file required')
    content_type = upload.mimetype or 'application/octet-stream'
    if content_type not in EXTRACT_CONTENT_TYPES:
        abort(400, description=f'unsupported file type {content_type}')
    raw = upload.read()
    if not raw:
        abort(400, description='file is empty')
    result = functions_client().extract_invoice_data(base64.b64encode(raw).decode('ascii'), content_type)
    # Extraction only pre-fills the form; nothing is persisted here
    return {'data': result.get('data', result)}
