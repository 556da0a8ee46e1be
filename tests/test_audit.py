from flask import Flask
from invoice_tracker import get_db
from invoice_tracker.models.audit import AuditLog
from tests.test_utils_seed import create_invoice
from tests.test_lifecycle_helpers import headers_for


def _latest(action, entity_id):
    return get_db().query(AuditLog).filter_by(action=action, entity_id=str(entity_id)).order_by(AuditLog.id.desc()).first()


def test_mark_paid_writes_audit_with_diff(app_context: Flask):
    client = app_context.test_client()
    editor = headers_for('aud_editor@example.com', 'editor')
    inv = create_invoice()
    resp = client.post(f'/invoices/{inv.id}/mark-paid', json={'payment_date': '2026-04-01'}, headers=editor)
    assert resp.status_code == 200
    log = _latest('INVOICE.PAY', inv.id)
    assert log is not None
    assert log.entity == 'Invoice'
    assert log.actor_role == 'editor'
    assert log.meta['changes']['status'] == {'before': 'pending', 'after': 'paid'}
    assert log.meta['changes']['payment_date'] == {'before': None, 'after': '2026-04-01'}


def test_failed_action_not_audited(app_context: Flask):
    client = app_context.test_client()
    editor = headers_for('aud_editor@example.com', 'editor')
    inv = create_invoice(status='paid')
    resp = client.post(f'/invoices/{inv.id}/send-to-finance', headers=editor)
    assert resp.status_code == 400
    assert _latest('INVOICE.SEND_TO_FINANCE', inv.id) is None


def test_delete_audited_by_path_id(app_context: Flask):
    client = app_context.test_client()
    admin = headers_for('aud_admin@example.com', 'admin')
    inv = create_invoice()
    assert client.delete(f'/invoices/{inv.id}', headers=admin).status_code == 204
    log = _latest('INVOICE.DELETE', inv.id)
    assert log is not None and log.actor_role == 'admin'


def test_audit_log_listing_filters(app_context: Flask):
    client = app_context.test_client()
    editor = headers_for('aud_editor@example.com', 'editor')
    admin = headers_for('aud_admin@example.com', 'admin')
    inv = create_invoice()
    client.post(f'/invoices/{inv.id}/assign', json={'assigned_to_person': 'Kim'}, headers=editor)
    assert client.get('/iam/audit/logs', headers=editor).status_code == 403
    body = client.get(f'/iam/audit/logs?action=INVOICE.ASSIGN&entity_id={inv.id}', headers=admin).get_json()
    assert body['pagination']['total'] == 1
    row = body['data'][0]
    assert row['meta']['changes']['assigned_to_person'] == {'before': None, 'after': 'Kim'}
    assert client.get('/iam/audit/logs?actor_user_id=abc', headers=admin).status_code == 400
