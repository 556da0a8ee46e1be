from datetime import date
from decimal import Decimal
import pytest
from flask import Flask
from tests.test_utils_seed import ensure_user, create_invoice
from tests.test_lifecycle_helpers import jwt_headers, headers_for, create_invoice_and_assert


def test_create_and_get_invoice(app_context: Flask):
    client = app_context.test_client()
    uploader = ensure_user('inv_uploader@example.com', role='uploader')
    headers = jwt_headers(uploader.id)
    body = create_invoice_and_assert(client, headers, invoice_number='INV-CRT-1', department='Operations')
    assert body['user_id'] == uploader.id
    assert body['amount'] == 1250.5
    assert body['display']['severity'] in ('normal', 'alert', 'overdue')
    resp = client.get(f"/invoices/{body['id']}", headers=headers)
    assert resp.status_code == 200
    got = resp.get_json()
    assert got['invoice_number'] == 'INV-CRT-1'
    assert got['department'] == 'Operations'
    assert resp.headers.get('ETag')


def test_create_requires_fields(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_uploader@example.com', 'uploader')
    resp = client.post('/invoices', json={'invoice_number': 'X'}, headers=headers)
    assert resp.status_code == 400
    assert 'required' in resp.get_json()['error']['detail']


@pytest.mark.parametrize('amount', [-1, '12.345', 'abc', True])
def test_create_rejects_bad_amount(app_context: Flask, amount):
    client = app_context.test_client()
    headers = headers_for('inv_uploader@example.com', 'uploader')
    resp = client.post('/invoices', json={
        'invoice_number': 'INV-BAD', 'supplier': 'S', 'amount': amount, 'received_date': '2026-01-01',
    }, headers=headers)
    assert resp.status_code == 400


def test_viewer_cannot_create(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    resp = client.post('/invoices', json={'invoice_number': 'N', 'supplier': 'S', 'amount': 1, 'received_date': '2026-01-01'}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error']['status'] == 403


def test_user_without_role_can_read_but_not_edit(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_norole@example.com')
    inv = create_invoice()
    assert client.get(f'/invoices/{inv.id}', headers=headers).status_code == 200
    assert client.patch(f'/invoices/{inv.id}', json={'supplier': 'X'}, headers=headers).status_code == 403


def test_missing_token_is_unauthorized(client):
    resp = client.get('/invoices')
    assert resp.status_code == 401


def test_update_round_trip(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_editor@example.com', 'editor')
    inv = create_invoice()
    changes = {
        'invoice_number': 'INV-RT-9',
        'supplier': 'Globex',
        'amount': 987.65,
        'description': 'Steel rods',
        'received_date': '2026-02-01',
        'payment_date': '2026-02-10',
        'assigned_to_person': 'Dana',
        'finance_notes': 'wire',
        'supply_chain_notes': 'checked',
        'department': 'Maintenance',
        'file_url': 'https://files.example.com/inv.pdf',
    }
    resp = client.patch(f'/invoices/{inv.id}', json=changes, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    got = client.get(f'/invoices/{inv.id}', headers=headers).get_json()
    for key, value in changes.items():
        assert got[key] == value, key


def test_update_rejects_unknown_fields(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_editor@example.com', 'editor')
    inv = create_invoice()
    resp = client.patch(f'/invoices/{inv.id}', json={'colour': 'red'}, headers=headers)
    assert resp.status_code == 400
    assert 'colour' in resp.get_json()['error']['detail']


def test_update_rejects_rounding_amount(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_editor@example.com', 'editor')
    inv = create_invoice()
    resp = client.patch(f'/invoices/{inv.id}', json={'amount': 1.005}, headers=headers)
    assert resp.status_code == 400


def test_update_illegal_status_leaves_fields_untouched(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_editor@example.com', 'editor')
    inv = create_invoice(status='paid', supplier='Original')
    resp = client.patch(f'/invoices/{inv.id}', json={'status': 'pending', 'supplier': 'Changed'}, headers=headers)
    assert resp.status_code == 400
    assert 'paid -> pending' in resp.get_json()['error']['detail']
    got = client.get(f'/invoices/{inv.id}', headers=headers).get_json()
    assert got['status'] == 'paid'
    assert got['supplier'] == 'Original'


def test_delete_requires_admin(app_context: Flask):
    client = app_context.test_client()
    inv = create_invoice()
    lite = headers_for('inv_lite@example.com', 'lite_admin')
    assert client.delete(f'/invoices/{inv.id}', headers=lite).status_code == 403
    admin = headers_for('inv_admin@example.com', 'admin')
    assert client.delete(f'/invoices/{inv.id}', headers=admin).status_code == 204
    assert client.get(f'/invoices/{inv.id}', headers=admin).status_code == 404


def test_list_filters_and_search(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    create_invoice(supplier='Zeta Filters Unique', department='QA-Filters')
    create_invoice(supplier='Other', description='contains zeta filters unique text', department='QA-Filters', status='approved')
    create_invoice(supplier='Unrelated', department='QA-Filters')
    resp = client.get('/invoices?search=zeta filters unique', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['pagination']['total'] == 2
    resp = client.get('/invoices?department=QA-Filters&status=approved', headers=headers)
    data = resp.get_json()['data']
    assert len(data) == 1 and data[0]['supplier'] == 'Other'
    resp = client.get('/invoices?department=QA-Filters&status=all', headers=headers)
    assert resp.get_json()['pagination']['total'] == 3


def test_list_rejects_bad_filters(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    assert client.get('/invoices?status=lost', headers=headers).status_code == 400
    assert client.get('/invoices?received_from=yesterday', headers=headers).status_code == 400
    assert client.get('/invoices?sort=-colour', headers=headers).status_code == 400


def test_list_newest_first_and_rows_carry_display(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    create_invoice(department='QA-Order', days_ago=25)
    create_invoice(department='QA-Order', days_ago=1)
    data = client.get('/invoices?department=QA-Order', headers=headers).get_json()['data']
    assert data[0]['id'] > data[1]['id']
    assert {row['display']['label'] for row in data} == {'Overdue', 'PENDING'}


def test_list_received_from_and_sort(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    create_invoice(department='QA-Sort', amount=Decimal('30.00'), received_date=date(2026, 5, 1))
    create_invoice(department='QA-Sort', amount=Decimal('10.00'), received_date=date(2026, 5, 3))
    create_invoice(department='QA-Sort', amount=Decimal('20.00'), received_date=date(2026, 4, 1))
    resp = client.get('/invoices?department=QA-Sort&received_from=2026-05-01&sort=amount', headers=headers)
    amounts = [row['amount'] for row in resp.get_json()['data']]
    assert amounts == [10.0, 30.0]


def test_stats(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    create_invoice(department='QA-Stats', amount=Decimal('10.50'))
    create_invoice(department='QA-Stats', amount=Decimal('4.50'), status='paid')
    create_invoice(department='QA-Stats', amount=Decimal('5.00'), status='approved')
    resp = client.get('/invoices/stats?department=QA-Stats', headers=headers)
    assert resp.get_json() == {'total': 3, 'pending': 1, 'approved': 1, 'paid': 1, 'total_amount': 20.0}


def test_list_pagination_meta(app_context: Flask):
    client = app_context.test_client()
    headers = headers_for('inv_viewer@example.com', 'viewer')
    for _ in range(3):
        create_invoice(department='QA-Page')
    body = client.get('/invoices?department=QA-Page&limit=2&offset=1', headers=headers).get_json()
    assert body['pagination'] == {'total': 3, 'limit': 2, 'offset': 1, 'returned': 2}
    assert client.get('/invoices?limit=abc', headers=headers).status_code == 400
